# Middleware package init
"""
WriteUp Backend: Middleware Package
===================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    - Request ID first: every access-log line and ErrorEnvelope carries the ID
    - Logging measures the full duration, compression included

Starlette runs the last-added middleware first, so main.py adds them in
the reverse of this order.
"""
