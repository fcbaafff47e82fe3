"""
HTTP-facing error type and the handlers that render it.

Every error response has the same shape:
    {"error": "<human-readable reason>", "details": <optional>}

Validation failures are a normal occurrence (bad SDK payloads, hand-typed
query strings) so they map to 400, not FastAPI's default 422.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """An error surfaced to the HTTP caller as {error, details?}."""

    def __init__(
        self,
        status_code: int,
        error: str,
        details: Any = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details
        self.headers = headers


def _error_body(error: str, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": error}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return body


async def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error, exc.details),
        headers=exc.headers,
    )


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Collapse pydantic's error list into {field: [messages]}."""
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query")]
        field = ".".join(loc) or "body"
        field_errors.setdefault(field, []).append(err.get("msg", "Invalid value"))

    if request.method == "GET":
        message = "Invalid query parameters"
    else:
        message = "Invalid request body"

    logger.info("Rejected %s %s: %s", request.method, request.url.path, field_errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(message, field_errors),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
