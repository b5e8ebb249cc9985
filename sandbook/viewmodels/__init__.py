"""ViewModel package for console state and command surfaces.

Call context:
    ``sandbook.app.controller.ConsoleController`` builds these view models and
    the CLI (or any front end) reads their state after each awaited command.

Dependencies:
    Modules in this package depend on domain types, use cases and formatting
    helpers only. Transport and persistence stay in ``sandbook.adapters``.
"""
