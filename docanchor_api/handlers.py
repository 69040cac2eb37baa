"""Exception handlers - map anchoring errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from docanchor_api.errors import (
    AnchorError,
    DuplicateRecordError,
    InvalidInputError,
    RecordNotFoundError,
)
from docanchor_api.settings import get_settings

logger = logging.getLogger(__name__)

# Expected outcomes, not defects
_EXPECTED = (InvalidInputError, DuplicateRecordError, RecordNotFoundError)


def error_body(exc: AnchorError) -> dict:
    """Response body; raw ledger messages only go in the diagnostic field."""
    body = {"success": False, "message": exc.message, "code": exc.code}
    if exc.detail and get_settings().show_error_details:
        body["error"] = exc.detail
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """Register anchoring error handlers on the FastAPI app."""

    @app.exception_handler(AnchorError)
    async def anchor_error_handler(request: Request, exc: AnchorError) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", None)
        log_extra = {
            "correlation_id": correlation_id,
            "path": request.url.path,
            "error_code": exc.code,
        }
        if isinstance(exc, _EXPECTED):
            logger.info(f"{exc.code}: {exc.message}", extra=log_extra)
        else:
            logger.error(f"{exc.code}: {exc.message} ({exc.detail})", extra=log_extra)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc))
