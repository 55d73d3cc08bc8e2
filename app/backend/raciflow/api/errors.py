"""Exception handlers mapping domain errors to JSON responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from raciflow.engine.errors import DomainError

logger = logging.getLogger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Render an expected business-rule failure with its status and details."""

    logger.warning(
        "Domain error on %s %s: %s - %s",
        request.method,
        request.url.path,
        exc.error_code,
        exc.message,
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
