"""Cache-Control headers advertising the offline cache strategy per request class."""

import logging
from dataclasses import dataclass
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachePolicy:
    request_class: str
    strategy: str
    header: str


NAVIGATION_POLICY = CachePolicy("navigation", "network-first", "no-cache")
GENERATED_ASSET_POLICY = CachePolicy(
    "generated-asset", "cache-first", "public, max-age=31536000, immutable"
)
API_POLICY = CachePolicy("api", "network-only", "no-store")
STATIC_POLICY = CachePolicy("static", "cache-first", "public, max-age=3600")

# Live service endpoints outside /api/
NETWORK_ONLY_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})


def cache_policy_for(path: str, accept: str = "") -> CachePolicy:
    """
    Classify a request path.

    Navigation requests get the network with a cached-shell fallback,
    generated images never change once written, model-backed API calls are
    never cached.
    """
    if path in NETWORK_ONLY_PATHS:
        return API_POLICY
    if path == "/" or "text/html" in (accept or ""):
        if not path.startswith("/api/") and not path.startswith("/storage/"):
            return NAVIGATION_POLICY
    if path.startswith("/storage/"):
        return GENERATED_ASSET_POLICY
    if path.startswith("/api/"):
        return API_POLICY
    return STATIC_POLICY


class CacheControlMiddleware(BaseHTTPMiddleware):
    """Set Cache-Control on every response from the policy table."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        policy = cache_policy_for(request.url.path, request.headers.get("accept", ""))
        response.headers["Cache-Control"] = policy.header
        return response
