"""
Application Paths - Centralized path definitions cho Context Tree

Module này định nghĩa tất cả các đường dẫn sử dụng trong ứng dụng.
Tập trung ở một nơi để tránh hardcode rải rác và đảm bảo consistency.

App data được lưu tại: ~/.context-tree/
- logs/      : Log files
- settings.json, session.json
"""

import os
from pathlib import Path


# =============================================================================
# Tên ứng dụng - Single source of truth cho naming
# =============================================================================
APP_NAME = "context-tree"

# =============================================================================
# Thư mục gốc của ứng dụng
# =============================================================================
APP_DIR = Path.home() / f".{APP_NAME}"

# =============================================================================
# Các thư mục con
# =============================================================================
LOG_DIR = APP_DIR / "logs"

# =============================================================================
# Các file cấu hình và dữ liệu
# =============================================================================
SETTINGS_FILE = APP_DIR / "settings.json"
SESSION_FILE = APP_DIR / "session.json"

# =============================================================================
# Environment Variables - Tên biến môi trường cho debug mode
# =============================================================================
DEBUG_ENV_VAR = "CONTEXT_TREE_DEBUG"

# Kiểm tra debug mode từ environment variable
DEBUG_MODE = os.environ.get(DEBUG_ENV_VAR, "").lower() in ("1", "true", "yes")
