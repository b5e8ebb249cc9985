from __future__ import annotations

import logging

import pytest

from sandbook.utils import logging as logging_utils

NOTICES = "sandbook.viewmodels.notices_vm"


@pytest.fixture(autouse=True)
def _restore_levels():
    names = ["", NOTICES, "urllib3", "sandbook.adapters"]
    levels = {name: logging.getLogger(name).level for name in names}
    yield
    logging_utils.apply_preferences(False, {})
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


def test_env_level_overrides_settings_flag() -> None:
    env = {"SANDBOOK_LOG_LEVEL": "warning", "SANDBOOK_DEBUG": "1"}

    assert logging_utils.configure_root(env) == logging.WARNING
    assert logging_utils.apply_preferences(True, env) == logging.WARNING
    assert logging_utils.env_debug_forced(env) is False


def test_debug_flag_forces_debug() -> None:
    env = {"SANDBOOK_DEBUG": "yes"}

    assert logging_utils.env_debug_forced(env) is True
    assert logging_utils.apply_preferences(False, env) == logging.DEBUG


def test_console_defaults_quiet_notices_until_debug() -> None:
    assert logging_utils.apply_preferences(False, {}) == logging.INFO
    assert logging.getLogger(NOTICES).level == logging.ERROR
    assert logging.getLogger("urllib3").level == logging.WARNING

    assert logging_utils.apply_preferences(True, {}) == logging.DEBUG
    assert logging.getLogger(NOTICES).level == logging.NOTSET
    assert logging.getLogger(NOTICES).getEffectiveLevel() == logging.DEBUG


def test_module_overrides_from_env() -> None:
    env = {"SANDBOOK_LOG_MODULES": "sandbook.adapters=debug, sandbook.viewmodels.notices_vm=20, bogus"}

    logging_utils.apply_preferences(False, env)

    assert logging.getLogger("sandbook.adapters").level == logging.DEBUG
    assert logging.getLogger(NOTICES).level == logging.INFO


def test_parse_helpers() -> None:
    assert logging_utils.parse_level(" Warning ") == logging.WARNING
    assert logging_utils.parse_level("15") == 15
    assert logging_utils.parse_level("loud") is None
    assert logging_utils.parse_module_levels("a=ERROR,,b=nope,c") == {"a": logging.ERROR}
