"""Middleware package for request logging and cache headers."""

from .cache_control import CacheControlMiddleware, cache_policy_for
from .logging import RequestLoggingMiddleware, configure_request_logging

__all__ = [
    "CacheControlMiddleware",
    "cache_policy_for",
    "RequestLoggingMiddleware",
    "configure_request_logging",
]
