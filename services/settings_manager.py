"""
Settings Manager - Quan ly load/save settings cua ung dung.

File: ~/.context-tree/settings.json

API (typed):
    settings = load_app_settings()  # -> AppSettings
    save_app_settings(settings)
    update_app_setting(respect_gitignore=False)
"""

import json
import threading
from typing import Any, Dict

from config.app_settings import AppSettings
from config.paths import SETTINGS_FILE
from core.logging_config import log_debug, log_error

# Thread-safe lock de tranh race condition khi save settings
_settings_lock = threading.Lock()


def _load_app_settings_unlocked() -> AppSettings:
    """
    Load settings tu file KHONG co lock.

    Chi duoc goi tu ben trong code da acquire _settings_lock,
    hoac tu load_app_settings() (read-only, khong can lock).
    """
    try:
        if SETTINGS_FILE.exists():
            content = SETTINGS_FILE.read_text(encoding="utf-8")
            saved = json.loads(content)
            if isinstance(saved, dict):
                return AppSettings.from_dict(saved)
            log_debug(f"[Settings] Ignoring non-object settings file {SETTINGS_FILE}")
    except (OSError, json.JSONDecodeError) as e:
        log_debug(f"[Settings] Could not load {SETTINGS_FILE}: {e}")
    return AppSettings()


def _save_app_settings_unlocked(settings: AppSettings) -> bool:
    """
    Save AppSettings ra file KHONG co lock.

    Merge voi existing data de bao toan extra keys.
    """
    try:
        existing_data: Dict[str, Any] = {}
        try:
            if SETTINGS_FILE.exists():
                loaded = json.loads(SETTINGS_FILE.read_text(encoding="utf-8"))
                if isinstance(loaded, dict):
                    existing_data = loaded
        except (OSError, json.JSONDecodeError):
            pass

        updated = {**existing_data, **settings.to_dict()}
        SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
        SETTINGS_FILE.write_text(json.dumps(updated, indent=2), encoding="utf-8")
        return True
    except OSError as e:
        log_error(f"[Settings] Failed to save {SETTINGS_FILE}", e)
        return False


def load_app_settings() -> AppSettings:
    """
    Load settings tu file va tra ve AppSettings typed instance.

    Neu file khong ton tai hoac loi, tra ve defaults.
    """
    return _load_app_settings_unlocked()


def save_app_settings(settings: AppSettings) -> bool:
    """Save AppSettings ra file (thread-safe)."""
    with _settings_lock:
        return _save_app_settings_unlocked(settings)


def update_app_setting(**kwargs: Any) -> bool:
    """
    Update mot hoac nhieu settings fields cung luc (thread-safe, atomic).

    Toan bo read-modify-write duoc bao ve boi _settings_lock
    de tranh race condition khi 2 threads update dong thoi.

    Raises:
        TypeError: Neu key khong phai la AppSettings field
    """
    # Validate fields truoc khi acquire lock de fail-fast
    valid_fields = set(AppSettings.__dataclass_fields__)
    for key in kwargs:
        if key not in valid_fields:
            raise TypeError(
                f"'{key}' is not a valid AppSettings field. "
                f"Valid fields: {sorted(valid_fields)}"
            )

    with _settings_lock:
        settings = _load_app_settings_unlocked()
        for key, value in kwargs.items():
            setattr(settings, key, value)
        return _save_app_settings_unlocked(settings)
