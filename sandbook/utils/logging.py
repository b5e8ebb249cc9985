"""Logging setup for the console.

Root level precedence: ``SANDBOOK_LOG_LEVEL``, then a truthy
``SANDBOOK_DEBUG``, then the settings ``debug_logging`` flag. Module levels
come from ``CONSOLE_MODULE_LEVELS`` (skipped in debug) and then from
``SANDBOOK_LOG_MODULES``, e.g. ``sandbook.adapters=DEBUG,urllib3=ERROR``.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Mapping, Optional, Set

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"

LEVEL_ENV = "SANDBOOK_LOG_LEVEL"
DEBUG_ENV = "SANDBOOK_DEBUG"
MODULES_ENV = "SANDBOOK_LOG_MODULES"

# The CLI prints every notice itself; their log records would repeat on stderr.
CONSOLE_MODULE_LEVELS: Dict[str, int] = {
    "sandbook.viewmodels.notices_vm": logging.ERROR,
    "urllib3": logging.WARNING,
}

_log = logging.getLogger(__name__)
_tuned: Set[str] = set()


def parse_level(text: Optional[str]) -> Optional[int]:
    """``"debug"``, ``"WARNING"`` or ``"10"`` to a level; ``None`` if unrecognised."""
    value = (text or "").strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper()) if value else None
    return level if isinstance(level, int) else None


def parse_module_levels(text: Optional[str]) -> Dict[str, int]:
    """Parse ``name=LEVEL`` pairs separated by commas; bad pairs are skipped."""
    levels: Dict[str, int] = {}
    for chunk in (text or "").split(","):
        name, sep, raw = chunk.partition("=")
        level = parse_level(raw)
        if not sep or not name.strip() or level is None:
            if chunk.strip():
                _log.warning("%s: ignoring '%s'", MODULES_ENV, chunk.strip())
            continue
        levels[name.strip()] = level
    return levels


def env_level(environ: Optional[Mapping[str, str]] = None) -> Optional[int]:
    env = os.environ if environ is None else environ
    level = parse_level(env.get(LEVEL_ENV))
    if level is not None:
        return level
    if (env.get(DEBUG_ENV) or "").strip().lower() in {"1", "true", "yes", "on"}:
        return logging.DEBUG
    return None


def env_debug_forced(environ: Optional[Mapping[str, str]] = None) -> bool:
    """True when the environment alone already asks for DEBUG output."""
    level = env_level(environ)
    return level is not None and level <= logging.DEBUG


def configure_root(environ: Optional[Mapping[str, str]] = None) -> int:
    """Install the stderr handler once and apply env-only levels."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    return apply_preferences(False, environ)


def apply_preferences(debug_enabled: bool, environ: Optional[Mapping[str, str]] = None) -> int:
    """Set root and module levels for the settings flag; returns the root level."""
    env = os.environ if environ is None else environ
    forced = env_level(env)
    level = forced if forced is not None else (logging.DEBUG if debug_enabled else logging.INFO)
    logging.getLogger().setLevel(level)

    modules: Dict[str, int] = {} if level <= logging.DEBUG else dict(CONSOLE_MODULE_LEVELS)
    modules.update(parse_module_levels(env.get(MODULES_ENV)))
    for name in _tuned - set(modules):
        logging.getLogger(name).setLevel(logging.NOTSET)
    for name, module_level in modules.items():
        logging.getLogger(name).setLevel(module_level)
    _tuned.clear()
    _tuned.update(modules)
    return level


__all__ = [
    "CONSOLE_MODULE_LEVELS",
    "apply_preferences",
    "configure_root",
    "env_debug_forced",
    "env_level",
    "parse_level",
    "parse_module_levels",
]
