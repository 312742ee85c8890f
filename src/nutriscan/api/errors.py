"""Mapping of domain errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status

from nutriscan.domain.errors import (
    AnalysisFailed,
    ImageUploadFailed,
    LinkFailed,
    NotFound,
    NutriScanError,
    PersistenceFailed,
    QuotaExceeded,
    ValidationFailed,
)

_logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[NutriScanError], int] = {
    QuotaExceeded: status.HTTP_429_TOO_MANY_REQUESTS,
    AnalysisFailed: status.HTTP_502_BAD_GATEWAY,
    PersistenceFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ImageUploadFailed: status.HTTP_502_BAD_GATEWAY,
    LinkFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
    NotFound: status.HTTP_404_NOT_FOUND,
    ValidationFailed: status.HTTP_422_UNPROCESSABLE_CONTENT,
}


def status_for(exc: NutriScanError) -> int:
    """Return the HTTP status code for a domain error."""
    for error_type, code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def nutriscan_error_handler(
    request: Request, exc: NutriScanError
) -> JSONResponse:
    """Render a domain error with enough context for the caller to retry."""
    code = status_for(exc)
    _logger.warning(
        "%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message
    )
    return JSONResponse(status_code=code, content={"error": exc.to_dict()})


def register_error_handlers(app: FastAPI) -> None:
    """Register the domain error handler on an app."""
    app.add_exception_handler(NutriScanError, nutriscan_error_handler)
