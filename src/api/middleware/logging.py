"""
Request Logging Middleware

Tags every request with a short request id, binds it into the structlog
context for the duration of the request and logs the outcome (status code
and duration). The id is echoed back in the ``X-Request-ID`` header.
"""

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from src.utils.logging_config import bind_context, clear_context, get_logger

logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Adds request tracing and access logging to all HTTP requests."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        bind_context(request_id=request_id)

        method = request.method
        path = request.url.path
        start_time = time.perf_counter()

        logger.debug(
            "Request started",
            method=method,
            path=path,
            client_ip=request.client.host if request.client else "unknown",
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Request failed with exception",
                method=method,
                path=path,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                error=str(e),
            )
            raise
        else:
            # 404s are an expected outcome for feeds whose upstream data is gone
            log_method = logger.info if response.status_code < 500 else logger.warning
            log_method(
                "Request completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()
