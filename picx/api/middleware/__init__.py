"""
Middleware
Request ids, access logging and latency tracking.
"""

from .logging import REQUEST_ID_HEADER, RequestLoggingMiddleware
from .timing import LatencyTracker, RequestTimingMiddleware, get_latency_tracker

__all__ = [
    "REQUEST_ID_HEADER",
    "RequestLoggingMiddleware",
    "LatencyTracker",
    "RequestTimingMiddleware",
    "get_latency_tracker",
]
