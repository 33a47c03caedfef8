from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "ChunaTrainer"


def _base_root() -> Path:
    override = os.environ.get("CHUNA_HOME")
    if override:
        return Path(override)
    local_appdata = os.environ.get("LOCALAPPDATA")
    if local_appdata:
        return Path(local_appdata) / APP_NAME
    return Path.home() / f".{APP_NAME.lower()}"


def get_data_root() -> Path:
    return _base_root() / "data"


def get_log_root() -> Path:
    return _base_root() / "logs"


def get_reports_root() -> Path:
    return get_data_root() / "reports"


def get_settings_path() -> Path:
    return _base_root() / "settings.json"
