"""Maps domain exceptions onto HTTP responses.

Each :class:`DomainError` already knows its status code; the body is its
``to_dict()`` so clients can branch on ``kind`` instead of message text.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from prefuel.domain.exceptions import AuthenticationError, DomainError

logger = logging.getLogger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc)

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
