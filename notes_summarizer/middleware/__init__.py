# Middleware package init
"""
Notes Summarizer - Middleware Package
=======================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    - Request ID runs first so every log line and error envelope can carry it.
    - Logging measures duration and logs the final status code.
"""
