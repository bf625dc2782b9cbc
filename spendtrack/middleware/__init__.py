# Middleware package init
"""
SpendTrack Backend — Middleware Package
========================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [CORS] → Route Handler

    Request ID runs first so that the access log line and any error
    response carry the same correlation id.
"""
