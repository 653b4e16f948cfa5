"""
Logging Configuration - Centralized logging setup

Cung cấp logging nhất quán cho toàn bộ core (scanner, selection, watcher).
Log file được lưu tại ~/.context-tree/logs/

- Log rotation (max 5 files, 2MB each)
- Buffered writes qua MemoryHandler (flush ngay khi có ERROR)
- Console chỉ hiện WARNING trở lên, trừ khi bật debug mode
"""

import logging
import logging.handlers
import sys
from typing import Optional

from config.paths import LOG_DIR, DEBUG_MODE

LOGGER_NAME = "context-tree"

# Logger singleton
_logger: Optional[logging.Logger] = None
_debug_mode: bool = DEBUG_MODE

# Log rotation config
MAX_LOG_SIZE = 2 * 1024 * 1024  # 2MB per file
MAX_LOG_FILES = 5
BUFFER_CAPACITY = 100


def get_logger() -> logging.Logger:
    """
    Get hoặc tạo logger singleton.

    File handler chỉ được gắn một lần; nếu không tạo được thư mục log
    (read-only home, sandbox) thì chỉ log ra console.
    """
    global _logger

    if _logger is not None:
        return _logger

    _logger = logging.getLogger(LOGGER_NAME)
    _logger.setLevel(logging.DEBUG if _debug_mode else logging.INFO)
    _logger.propagate = True

    if _logger.handlers:
        return _logger

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if _debug_mode else logging.WARNING)
    console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    _logger.addHandler(console_handler)

    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            LOG_DIR / "app.log",
            maxBytes=MAX_LOG_SIZE,
            backupCount=MAX_LOG_FILES,
            encoding="utf-8",
        )
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(threadName)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

        memory_handler = logging.handlers.MemoryHandler(
            capacity=BUFFER_CAPACITY,
            flushLevel=logging.ERROR,
            target=file_handler,
        )
        memory_handler.setLevel(logging.DEBUG if _debug_mode else logging.INFO)
        _logger.addHandler(memory_handler)

    except OSError as e:
        _logger.warning(f"Could not create log file: {e}")

    return _logger


def flush_logs() -> None:
    """
    Flush buffered logs to disk.
    Gọi trước khi đóng workspace / thoát process.
    """
    if _logger is None:
        return
    for handler in _logger.handlers:
        try:
            handler.flush()
        except (OSError, ValueError):
            pass  # handler đã đóng khi shutdown


def set_debug_mode(enabled: bool) -> None:
    """Bật/tắt DEBUG level tại runtime."""
    global _debug_mode
    _debug_mode = enabled

    logger = get_logger()
    new_level = logging.DEBUG if enabled else logging.INFO
    logger.setLevel(new_level)
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(
            handler, logging.FileHandler
        ):
            handler.setLevel(logging.DEBUG if enabled else logging.WARNING)
        else:
            handler.setLevel(new_level)


def log_error(message: str, exc: Optional[BaseException] = None) -> None:
    """Log error với optional exception details"""
    logger = get_logger()
    if exc is not None:
        logger.error(f"{message}: {exc}", exc_info=_debug_mode)
    else:
        logger.error(message)


def log_warning(message: str) -> None:
    """Log warning"""
    get_logger().warning(message)


def log_info(message: str) -> None:
    """Log info"""
    get_logger().info(message)


def log_debug(message: str) -> None:
    """Log debug - only written if debug mode is enabled"""
    if _debug_mode:
        get_logger().debug(message)
