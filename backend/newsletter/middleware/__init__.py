# Middleware package init
"""
Newsletter Backend: Middleware Package
======================================

Middleware Chain:
    Request → [Request ID] → [Logging] → Route Handler

    1. Request ID: sets the correlation ID every later log line carries
    2. Logging: one access line per request with status and duration
"""
