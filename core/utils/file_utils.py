"""
File System Utilities - Binary detection va OS system path checks.

Ignore/gitignore logic nam o core.ignore_engine; tree building nam o
core.utils.file_scanner.
"""

import platform
import re
from pathlib import Path

import filetype

from core.constants import BINARY_EXTENSIONS

_LINUX_SYSTEM_DIRS = ("/proc", "/sys", "/dev")
_WINDOWS_RESERVED = re.compile(r"^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])$", re.IGNORECASE)


def is_binary_by_extension(file_path: Path) -> bool:
    """Check nhanh theo extension (khong I/O)."""
    return file_path.suffix.lower() in BINARY_EXTENSIONS


def is_binary_file(file_path: Path) -> bool:
    """
    Check if file is binary using extension, null bytes, and magic bytes.
    Returns True if file is binary (image, video, audio, executable, etc.)

    OPTIMIZED: Check extension first (no I/O), then content if needed.
    """
    # 1. Extension (FAST - no I/O)
    if is_binary_by_extension(file_path):
        return True

    try:
        file_size = file_path.stat().st_size
        if file_size == 0:
            return False

        # 2. Chi doc 8KB dau
        chunk_size = min(8192, file_size)
        with open(file_path, "rb") as f:
            chunk = f.read(chunk_size)
    except OSError:
        return False

    # 3. Null bytes (FAST)
    if b"\x00" in chunk:
        return True

    # 4. Magic bytes voi filetype (SLOWER)
    return filetype.guess(chunk) is not None


def is_system_path(file_path: Path) -> bool:
    """
    Check if path is an OS system path that should be excluded.
    Supports: Windows, macOS, Linux
    """
    system = platform.system()
    name = file_path.name
    path_str = str(file_path)

    if system == "Windows":
        # Reserved names (CON, PRN, AUX, NUL, COM1-9, LPT1-9)
        if _WINDOWS_RESERVED.match(name):
            return True
        lower_path = path_str.lower()
        if "\\windows\\" in lower_path or "\\system32\\" in lower_path:
            return True

    elif system == "Darwin":  # macOS
        if name in (".Trashes", ".fseventsd") or name.startswith(".Spotlight-"):
            return True

    elif system == "Linux":
        for system_dir in _LINUX_SYSTEM_DIRS:
            if path_str == system_dir or path_str.startswith(system_dir + "/"):
                return True

    return False
