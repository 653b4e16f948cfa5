"""
Config Package - Chứa các constants và cấu hình của ứng dụng

Bao gồm:
- app_settings: Typed settings (ignore rules, concurrency, watcher)
- paths: Đường dẫn app dir, log dir, settings/session files
"""

from config.app_settings import AppSettings, DEFAULT_MAX_FILE_BYTES

__all__ = [
    "AppSettings",
    "DEFAULT_MAX_FILE_BYTES",
]
