"""FastAPI dependency injection — hands the process-wide services to endpoints.

The store, bus and auth service are built once in the application lifespan
and parked on ``app.state``; everything here just reads them back.
"""

from collections.abc import Callable
from datetime import timedelta

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from prefuel.application.services import (
    AuthService,
    ChangeBus,
    LiveChannel,
    SnapshotStore,
    StatsService,
)
from prefuel.config import Settings
from prefuel.domain.entities import Role, User
from prefuel.domain.exceptions import AuthenticationError, ForbiddenError

_bearer = HTTPBearer(auto_error=False)


def build_auth_service(settings: Settings) -> AuthService:
    return AuthService(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expiry=timedelta(days=settings.jwt_expiry_days),
    )


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_snapshot_store(request: Request) -> SnapshotStore:
    return request.app.state.store


def get_change_bus(request: Request) -> ChangeBus:
    return request.app.state.bus


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth


def get_live_channel(
    bus: ChangeBus = Depends(get_change_bus),
    settings: Settings = Depends(get_app_settings),
) -> LiveChannel:
    """A fresh channel per connection; each one owns a single bus subscription."""
    return LiveChannel(bus, heartbeat_interval=settings.heartbeat_interval_seconds)


def get_stats_service(store: SnapshotStore = Depends(get_snapshot_store)) -> StatsService:
    return StatsService(store)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """Resolve the ``Authorization: Bearer`` header to a user, or fail with 401."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing bearer token")
    return auth.verify(credentials.credentials)


def require_role(*roles: Role) -> Callable[..., User]:
    """Dependency factory: the current user, provided their role is one of ``roles``."""
    allowed = frozenset(roles)

    async def _dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise ForbiddenError("perform this action", user.role.value)
        return user

    return _dependency
