# Middleware package init
"""
Cross-cutting HTTP concerns applied to every request.

Execution order for a request (last added runs first):
    RateLimit → RequestID → Logging → GZip → CORS → route

Responses unwind in reverse, so the request id header is set before the
access log line is written.
"""
