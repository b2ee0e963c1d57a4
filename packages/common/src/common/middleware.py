"""
Request tracing middleware for FastAPI apps.

Every request gets a request id (taken from ``X-Request-ID`` when the caller
sends one) that is bound into the structlog context for the duration of the
request, stored on ``request.state.request_id`` and echoed in the response.
"""

import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request, Response

logger = structlog.get_logger("common.middleware")

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64
QUIET_PATHS = frozenset({"/health"})


def get_client_ip(request: Request) -> str:
    """Client address, preferring the first hop of ``X-Forwarded-For``."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    if request.client and request.client.host:
        return str(request.client.host)
    return "unknown"


def _request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if not incoming:
        return str(uuid.uuid4())
    return incoming[:MAX_REQUEST_ID_LENGTH]


def _quiet_paths(app: FastAPI) -> frozenset[str]:
    """Health plus wherever this app serves its docs and schema."""
    served = (app.docs_url, app.redoc_url, app.openapi_url)
    return QUIET_PATHS | {path for path in served if path}


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


async def request_logging_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = _request_id(request)
    request.state.request_id = request_id

    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        client_ip=get_client_ip(request),
        method=request.method,
        path=request.url.path,
    )

    started = time.perf_counter()
    quiet = request.url.path in _quiet_paths(request.app)

    if not quiet:
        logger.debug("http_request_started")

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            "http_request_failed",
            error=str(e),
            error_type=type(e).__name__,
            duration_ms=_elapsed_ms(started),
            exc_info=True,
        )
        raise
    else:
        if not quiet:
            logger.info(
                "http_request_finished",
                status_code=response.status_code,
                duration_ms=_elapsed_ms(started),
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        structlog.contextvars.clear_contextvars()


def setup_logging_middleware(app: FastAPI) -> None:
    app.middleware("http")(request_logging_middleware)
