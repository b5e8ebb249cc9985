"""Application composition layer for the operator console.

The controller wires settings, the REST gateway, use cases and view models
into one session; ``main`` exposes them as a command-line tool.
"""
