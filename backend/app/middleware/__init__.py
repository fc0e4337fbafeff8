# Middleware package init
"""
Circles Backend — Middleware Package
======================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Rate Limit] → [Logging] → [GZip] → [CORS] → Route

    1. Request ID first: even a rate-limited 429 carries the correlation ID
    2. Rate Limit: abusive clients are rejected before any route work
    3. Logging: access line with status and duration
"""
