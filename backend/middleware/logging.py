"""Request/Response logging middleware for development.

One line per request, tagged with a short correlation id that is echoed back
in the X-Request-ID header.

IMPORTANT: This middleware should only be enabled in development mode
to avoid performance overhead and privacy concerns in production.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger("api.requests")

# Paths to exclude from logging (noisy endpoints)
EXCLUDED_PATHS = {
    "/health",
    "/",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
}

# Run-status polling and generated images
EXCLUDED_PREFIXES = (
    "/api/v1/generate/status",
    "/storage/",
)

SENSITIVE_QUERY_PARAMS = frozenset({"key", "api_key", "token"})


def _should_skip(path: str) -> bool:
    return path in EXCLUDED_PATHS or path.startswith(EXCLUDED_PREFIXES)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log method, path, status and duration for each request.

    Uploads are never logged; query parameters that may carry credentials
    are masked. Enable from main.py when APP_MODE is DEV.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if _should_skip(request.url.path):
            return await call_next(request)

        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        log_parts = [f"[{request_id}]", f"{request.method} {request.url.path}"]
        query_params = dict(request.query_params)
        if query_params:
            masked = {
                k: ("***" if k.lower() in SENSITIVE_QUERY_PARAMS else v)
                for k, v in query_params.items()
            }
            log_parts.append(f"params={masked}")
        request_desc = " ".join(log_parts)

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(f"{request_desc} - ERROR ({duration:.3f}s): {e}")
            raise

        duration = time.time() - start_time
        status_class = response.status_code // 100
        if status_class == 5:
            log_func = logger.error
        elif status_class == 4:
            log_func = logger.warning
        elif request.method == "GET":
            log_func = logger.debug
        else:
            log_func = logger.info
        log_func(f"{request_desc} - {response.status_code} ({duration:.3f}s)")

        response.headers["X-Request-ID"] = request_id
        return response


def configure_request_logging(log_level: str = "INFO") -> None:
    """Set the request logger level and give it its own handler."""
    request_logger = logging.getLogger("api.requests")
    request_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    # Prevent duplicate emission via root logger handlers.
    request_logger.propagate = False

    if not request_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        request_logger.addHandler(handler)
