# Middleware package init
"""
Memora Backend — Middleware Package
====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first, so every later log line can be correlated
    2. Logging measures the full duration and the final status code
    3. GZip and CORS are Starlette's own middleware

    Responses travel the chain in reverse, which is how X-Request-ID ends
    up on every response, including error responses.
"""
