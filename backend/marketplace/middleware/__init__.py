"""
Marketplace Backend: Middleware Package
=======================================

Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    - Rate limit rejects abusive clients before anything else runs
    - Request ID sets the correlation id the access log and error bodies use
    - Access log sees the final status and total duration
"""
