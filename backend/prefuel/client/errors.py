"""Structured errors raised by the client SDK.

Server failures arrive as ``{"detail", "kind"}`` bodies; they are turned back
into typed exceptions here so callers can branch on the class instead of
parsing status codes.
"""

from typing import Any

import httpx


class ApiError(Exception):
    """A request reached the server and was refused."""

    def __init__(self, status_code: int, detail: str, kind: str = "error", body: Any = None):
        self.status_code = status_code
        self.detail = detail
        self.kind = kind
        self.body = body
        super().__init__(f"{status_code} {kind}: {detail}")


class ValidationFailedError(ApiError):
    @property
    def errors(self) -> list[dict[str, Any]]:
        """Per-field problems, when the server reported them."""
        if isinstance(self.body, dict):
            errors = self.body.get("errors")
            if isinstance(errors, list):
                return errors
            if isinstance(self.body.get("detail"), list):
                return self.body["detail"]
        return []


class ForbiddenError(ApiError):
    pass


class EntityNotFoundError(ApiError):
    pass


class ConflictError(ApiError):
    pass


class AuthenticationError(ApiError):
    pass


class TransportError(Exception):
    """The server could not be reached, or the connection broke mid-request."""


_STATUS_ERRORS: dict[int, type[ApiError]] = {
    400: ValidationFailedError,
    401: AuthenticationError,
    403: ForbiddenError,
    404: EntityNotFoundError,
    409: ConflictError,
    422: ValidationFailedError,
}


def error_from_response(response: httpx.Response) -> ApiError:
    """Build the matching :class:`ApiError` subclass for a non-2xx response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    detail: Any = None
    kind = "error"
    if isinstance(body, dict):
        detail = body.get("detail")
        kind = str(body.get("kind") or kind)
    if not isinstance(detail, str):
        # FastAPI request-validation errors carry a list here.
        detail = response.reason_phrase if detail is None else str(detail)

    error_cls = _STATUS_ERRORS.get(response.status_code, ApiError)
    return error_cls(response.status_code, detail, kind=kind, body=body)
