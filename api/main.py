from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.observability import (
    RequestIdFilter,
    monotonic_ms,
    new_request_id,
    request_log_fields,
    reset_request_id,
    set_request_id,
)
from api.routes import router
from tracker.config import get_settings
from tracker.errors import (
    CodeCollisionError,
    DuplicateAssignmentError,
    EmptyRosterError,
    MalformedValueError,
    NotFoundError,
    PartialWriteError,
    TrackerError,
)
from tracker.logging_config import log_context, setup_logging

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

ERROR_STATUS: dict[type, int] = {
    NotFoundError: 404,
    DuplicateAssignmentError: 409,
    EmptyRosterError: 422,
    MalformedValueError: 422,
    CodeCollisionError: 503,
    PartialWriteError: 500,
}


def error_status(exc: TrackerError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 400


def tracker_error_handler(request: Request, exc: Exception) -> JSONResponse:
    code = error_status(exc)
    log = logger.error if code >= 500 else logger.info
    log("tracker_error", extra=log_context(error=type(exc).__name__, path=request.url.path))
    return JSONResponse(status_code=code, content={"error": type(exc).__name__, "detail": str(exc)})


def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors(include_url=False, include_context=False) if isinstance(exc, ValidationError) else []
    return JSONResponse(status_code=422, content={"error": "ValidationError", "detail": errors})


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level, env=settings.app_env)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())

    app = FastAPI(title="Test Tracker API", version="1.0.0")
    app.add_exception_handler(TrackerError, tracker_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.include_router(router)

    @app.middleware("http")
    async def request_context_and_logging(request: Request, call_next: Callable) -> Response:
        request_id = (request.headers.get(REQUEST_ID_HEADER) or "").strip() or new_request_id()
        token = set_request_id(request_id)
        started_ms = monotonic_ms()
        client_ip = getattr(request.client, "host", None)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "http_request_error",
                extra=request_log_fields(
                    method=request.method,
                    path=request.url.path,
                    status_code=500,
                    duration_ms=monotonic_ms() - started_ms,
                    client_ip=client_ip,
                ),
            )
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info(
                "http_request",
                extra=request_log_fields(
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=monotonic_ms() - started_ms,
                    client_ip=client_ip,
                ),
            )
            return response
        finally:
            reset_request_id(token)

    return app


app = create_app()
