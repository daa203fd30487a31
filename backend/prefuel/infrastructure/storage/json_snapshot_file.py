"""Local filesystem storage for the snapshot document, with rotating backups.

Storage layout:
    <data_file>                                   — current snapshot (JSON)
    <backup_dir>/data-<YYYYMMDD_HHmmss_ffffff>.json — timestamped copies, newest N kept

Writes go to a sibling temp file first and are swapped in with ``os.replace``,
so a crash mid-write never leaves a truncated snapshot behind.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from prefuel.application.interfaces import SnapshotRepository
from prefuel.domain.exceptions import PersistenceWarning

logger = logging.getLogger(__name__)

_BACKUP_PREFIX = "data-"


def _datetime_stamp() -> str:
    """Return a sortable UTC stamp suitable for filenames: YYYYMMDD_HHmmss_ffffff."""
    return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")


class JsonSnapshotFile(SnapshotRepository):
    """Infrastructure adapter persisting the snapshot as one JSON document."""

    def __init__(self, data_file: str | Path, backup_dir: str | Path, keep: int = 5):
        self._data_file = Path(data_file)
        self._backup_dir = Path(backup_dir)
        self._keep = max(0, keep)

    @property
    def data_file(self) -> Path:
        return self._data_file

    def load(self) -> dict[str, Any] | None:
        if not self._data_file.exists():
            logger.info("No snapshot at %s", self._data_file)
            return None
        try:
            data = json.loads(self._data_file.read_text("utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Snapshot %s is unreadable: %s", self._data_file, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Snapshot %s is not a JSON object — ignoring", self._data_file)
            return None
        return data

    def save(self, snapshot: dict[str, Any]) -> None:
        try:
            text = json.dumps(snapshot, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise PersistenceWarning(f"Snapshot is not JSON-serialisable: {exc}") from exc

        try:
            self._atomic_write(self._data_file, text)
        except OSError as exc:
            raise PersistenceWarning(f"Could not write {self._data_file}: {exc}") from exc

        # The primary write already succeeded; a failed backup only loses history.
        try:
            self._write_backup(text)
        except OSError as exc:
            logger.warning("Snapshot backup failed: %s", exc)

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _atomic_write(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _write_backup(self, text: str) -> None:
        if self._keep == 0:
            return
        self._backup_dir.mkdir(parents=True, exist_ok=True)
        backup = self._backup_dir / f"{_BACKUP_PREFIX}{_datetime_stamp()}.json"
        backup.write_text(text, "utf-8")
        self._rotate()

    def _rotate(self) -> None:
        """Delete the oldest backups beyond the configured retention count."""
        backups = sorted(self._backup_dir.glob(f"{_BACKUP_PREFIX}*.json"))
        for stale in backups[: max(0, len(backups) - self._keep)]:
            stale.unlink(missing_ok=True)
            logger.debug("Removed old snapshot backup %s", stale.name)

    def backups(self) -> list[Path]:
        """Existing backup files, oldest first."""
        if not self._backup_dir.exists():
            return []
        return sorted(self._backup_dir.glob(f"{_BACKUP_PREFIX}*.json"))
