from .auth_service import AuthService
from .change_bus import ChangeBus, Subscription
from .live_channel import LiveChannel
from .snapshot_store import ListResult, ReceiveResult, SnapshotStore
from .stats_service import StatsService

__all__ = [
    "AuthService",
    "ChangeBus",
    "Subscription",
    "LiveChannel",
    "ListResult",
    "ReceiveResult",
    "SnapshotStore",
    "StatsService",
]
