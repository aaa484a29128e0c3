"""
Munich Weekly Backend — Middleware Package
===========================================

Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → route

The rate limiter rejects before anything else runs; the request id is
assigned before the access log line is written so the two correlate.
"""
