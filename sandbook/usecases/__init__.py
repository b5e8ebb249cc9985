"""Use-case layer for orchestrating console workflows.

Each module coordinates domain objects and the gateway port without
performing transport I/O directly, preserving MVVM + Hexagonal boundaries.
"""
