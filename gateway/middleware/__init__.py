"""Middleware module for the integration gateway."""

from gateway.middleware.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware
from gateway.middleware.request_logging import RequestLoggingMiddleware

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimitMiddleware",
    "RequestLoggingMiddleware",
]
