"""Adapter package for external I/O implementations.

Purpose:
    Concrete implementations for domain ports: the booking gateway over HTTP
    and local JSON storage for console settings.

Dependencies:
    ``requests`` for the gateway transport; the standard library for files.

Call context:
    Imported by ``sandbook.app.controller`` for runtime wiring and by tests
    for transport-level behavior verification.
"""
