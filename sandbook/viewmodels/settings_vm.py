from __future__ import annotations

import os
from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Dict, Mapping, Optional

from sandbook.domain.delivery_slots import DEFAULT_WINDOW_DAYS
from sandbook.usecases.booking_sessions import DUPLICATE_START_POLICIES

from ..utils.logging import env_debug_forced

ENV_KEYS: Dict[str, str] = {
    "SANDBOOK_API_URL": "api_base_url",
    "SANDBOOK_API_KEY": "api_key",
    "SANDBOOK_TIMEOUT_S": "request_timeout_s",
    "SANDBOOK_RETRIES": "retries",
    "SANDBOOK_DUPLICATE_POLICY": "duplicate_start_policy",
}


@dataclass
class ConsoleSettings:
    """Typed runtime settings that persist via StorageLocal."""

    api_base_url: str = ""
    api_key: str = ""
    request_timeout_s: int = 10
    retries: int = 2
    duplicate_start_policy: str = "allow"
    slot_window_days: int = DEFAULT_WINDOW_DAYS


class SettingsVM:
    """Keeps console settings state and validation, no I/O here."""

    def __init__(
        self,
        *,
        config: Optional[ConsoleSettings] = None,
        on_save: Optional[Callable[[dict], None]] = None,
    ) -> None:
        self.config = config or ConsoleSettings()
        self.on_save = on_save
        self.debug_logging: bool = env_debug_forced()

    # ------------------------------------------------------------------
    # Properties bridging to the typed config
    # ------------------------------------------------------------------
    @property
    def api_base_url(self) -> str:
        return self.config.api_base_url

    @api_base_url.setter
    def api_base_url(self, value: str) -> None:
        self.config = replace(self.config, api_base_url=self._coerce_url(value))

    @property
    def api_key(self) -> str:
        return self.config.api_key

    @api_key.setter
    def api_key(self, value: str) -> None:
        self.config = replace(self.config, api_key=self._coerce_optional_str(value))

    @property
    def request_timeout_s(self) -> int:
        return self.config.request_timeout_s

    @request_timeout_s.setter
    def request_timeout_s(self, value: int) -> None:
        coerced = self._coerce_int("request_timeout_s", value, minimum=1)
        self.config = replace(self.config, request_timeout_s=coerced)

    @property
    def retries(self) -> int:
        return self.config.retries

    @retries.setter
    def retries(self, value: int) -> None:
        self.config = replace(self.config, retries=self._coerce_int("retries", value, minimum=0))

    @property
    def duplicate_start_policy(self) -> str:
        return self.config.duplicate_start_policy

    @duplicate_start_policy.setter
    def duplicate_start_policy(self, value: str) -> None:
        self.config = replace(self.config, duplicate_start_policy=self._coerce_policy(value))

    @property
    def slot_window_days(self) -> int:
        return self.config.slot_window_days

    @slot_window_days.setter
    def slot_window_days(self, value: int) -> None:
        coerced = self._coerce_int("slot_window_days", value, minimum=0)
        self.config = replace(self.config, slot_window_days=coerced)

    # ------------------------------------------------------------------
    def is_valid(self) -> bool:
        return bool(self.api_base_url)

    def apply_dict(self, payload: Mapping[str, Any]) -> None:
        """Apply persisted settings to the view-model."""

        if not isinstance(payload, Mapping):
            raise ValueError("Settings payload must be a mapping of flat keys.")

        allowed_flat_keys = {*ConsoleSettings.__annotations__.keys(), "debug_logging"}
        unknown = set(payload.keys()) - allowed_flat_keys
        if unknown:
            raise ValueError(f"Unsupported settings keys: {', '.join(sorted(str(key) for key in unknown))}")

        updates: Dict[str, Any] = {}
        for cfg_key in ConsoleSettings.__annotations__.keys():
            if cfg_key in payload:
                updates[cfg_key] = self._coerce_config_value(cfg_key, payload[cfg_key])

        if updates:
            self.config = replace(self.config, **updates)

        if "debug_logging" in payload:
            self.debug_logging = self._coerce_bool(payload["debug_logging"])

    def apply_env(self, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """Overlay ``SANDBOOK_*`` environment values; returns the applied keys."""
        env = os.environ if environ is None else environ
        overrides = {
            cfg_key: env[var] for var, cfg_key in ENV_KEYS.items() if env.get(var, "").strip()
        }
        if overrides:
            self.apply_dict(overrides)
        return overrides

    def to_dict(self) -> dict:
        snapshot = asdict(self.config)
        snapshot["debug_logging"] = bool(self.debug_logging)
        return snapshot

    def set_debug_logging(self, enabled: bool) -> None:
        self.debug_logging = self._coerce_bool(enabled)

    def cmd_save(self) -> None:
        if not self.is_valid():
            raise ValueError("Settings invalid: api_base_url is required.")
        if self.on_save:
            self.on_save(self.to_dict())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _coerce_config_value(self, key: str, raw: Any) -> Any:
        if key == "api_base_url":
            return self._coerce_url(raw)
        if key == "api_key":
            return self._coerce_optional_str(raw)
        if key == "request_timeout_s":
            return self._coerce_int(key, raw, minimum=1)
        if key in {"retries", "slot_window_days"}:
            return self._coerce_int(key, raw, minimum=0)
        if key == "duplicate_start_policy":
            return self._coerce_policy(raw)
        raise ValueError(f"Unhandled config field: {key}")

    @staticmethod
    def _coerce_url(value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("api_base_url must be a string.")
        text = value.strip().rstrip("/")
        if text and not text.startswith(("http://", "https://")):
            raise ValueError("api_base_url must start with http:// or https://.")
        return text

    @staticmethod
    def _coerce_policy(value: Any) -> str:
        text = str(value or "").strip().lower()
        if text not in DUPLICATE_START_POLICIES:
            raise ValueError(
                f"duplicate_start_policy must be one of {', '.join(DUPLICATE_START_POLICIES)}."
            )
        return text

    @staticmethod
    def _coerce_optional_str(value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @staticmethod
    def _coerce_bool(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return bool(value)
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    @staticmethod
    def _coerce_int(name: str, value: Any, *, minimum: Optional[int] = None) -> int:
        if isinstance(value, bool):
            raise ValueError(f"{name} must be an integer.")
        if isinstance(value, (int, float)):
            coerced = int(value)
        elif isinstance(value, str):
            try:
                coerced = int(value.strip())
            except (TypeError, ValueError) as exc:
                raise ValueError(f"{name} must be an integer.") from exc
        else:
            raise ValueError(f"{name} must be an integer.")
        if minimum is not None and coerced < minimum:
            raise ValueError(f"{name} must be at least {minimum}.")
        return coerced


def default_settings_payload() -> dict:
    """Return a fresh snapshot containing the default settings payload."""
    return SettingsVM().to_dict()
