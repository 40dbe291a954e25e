# Middleware package init
"""
StudyNotes Backend — Middleware Package
=========================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    - Request ID runs first so every log line of the request carries the ID
    - Logging measures the full handler duration and the final status code
"""
