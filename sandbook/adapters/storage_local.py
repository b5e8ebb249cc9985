from __future__ import annotations
import json
import os
from typing import Dict, Optional

from sandbook.domain.ports import StoragePort


class StorageLocal(StoragePort):
    """Local filesystem storage for console settings (JSON)."""

    SETTINGS_FILE = "user_settings.json"

    def __init__(self, root_dir: str = ".") -> None:
        self.root = root_dir

    @property
    def settings_path(self) -> str:
        return os.path.join(self.root, self.SETTINGS_FILE)

    def save_user_settings(self, payload: Dict) -> None:
        os.makedirs(self.root, exist_ok=True)
        tmp_path = self.settings_path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2, sort_keys=True)
        os.replace(tmp_path, self.settings_path)

    def load_user_settings(self) -> Optional[Dict]:
        path = self.settings_path
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: settings file must contain a JSON object")
        return data
