from .errors import (
    ApiError,
    AuthenticationError,
    ConflictError,
    EntityNotFoundError,
    ForbiddenError,
    TransportError,
    ValidationFailedError,
)
from .live_client import ConnectionState, ExponentialBackoff, LiveClient
from .request_gateway import QueuedWrite, RequestGateway
from .view_state import Notice, ViewState, reduce_entities, refreshes_stats

__all__ = [
    "ApiError",
    "AuthenticationError",
    "ConflictError",
    "EntityNotFoundError",
    "ForbiddenError",
    "TransportError",
    "ValidationFailedError",
    "ConnectionState",
    "ExponentialBackoff",
    "LiveClient",
    "QueuedWrite",
    "RequestGateway",
    "Notice",
    "ViewState",
    "reduce_entities",
    "refreshes_stats",
]
