from __future__ import annotations

import pytest

from sandbook.viewmodels.settings_vm import ConsoleSettings, SettingsVM, default_settings_payload


def test_defaults() -> None:
    payload = default_settings_payload()

    assert payload["request_timeout_s"] == 10
    assert payload["retries"] == 2
    assert payload["duplicate_start_policy"] == "allow"
    assert payload["slot_window_days"] == 5
    assert set(payload) == set(ConsoleSettings.__annotations__) | {"debug_logging"}


def test_apply_dict_coerces_values() -> None:
    vm = SettingsVM()

    vm.apply_dict(
        {
            "api_base_url": " https://api.example.org/ ",
            "request_timeout_s": "15",
            "retries": 0,
            "duplicate_start_policy": "REJECT",
            "debug_logging": "yes",
        }
    )

    assert vm.api_base_url == "https://api.example.org"
    assert vm.request_timeout_s == 15
    assert vm.retries == 0
    assert vm.duplicate_start_policy == "reject"
    assert vm.debug_logging is True


@pytest.mark.parametrize(
    "payload",
    [
        {"unknown": 1},
        {"request_timeout_s": 0},
        {"retries": "many"},
        {"duplicate_start_policy": "queue"},
        {"api_base_url": "ftp://host"},
    ],
)
def test_apply_dict_rejects_bad_values(payload) -> None:
    with pytest.raises(ValueError):
        SettingsVM().apply_dict(payload)


def test_apply_env_overrides_only_set_values() -> None:
    vm = SettingsVM()
    vm.apply_dict({"api_base_url": "http://file.local", "api_key": "file-key"})

    applied = vm.apply_env(
        {"SANDBOOK_API_URL": "http://env.local", "SANDBOOK_RETRIES": "1", "SANDBOOK_API_KEY": " "}
    )

    assert applied == {"api_base_url": "http://env.local", "retries": "1"}
    assert vm.api_base_url == "http://env.local"
    assert vm.retries == 1
    assert vm.api_key == "file-key"


def test_cmd_save_requires_base_url() -> None:
    saved = []
    vm = SettingsVM(on_save=saved.append)

    with pytest.raises(ValueError):
        vm.cmd_save()

    vm.api_base_url = "http://api.local"
    vm.cmd_save()
    assert saved[0]["api_base_url"] == "http://api.local"
