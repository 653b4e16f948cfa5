"""
Core Utilities Package

Chứa các utility modules:
- file_utils: Binary detection, OS system paths
- file_scanner: DirectoryScanner (ignore-aware tree building)
- cancellation: CancellationToken, TaskHandle
- owner_executor: Single owning context cho tree mutation
"""

from core.utils.cancellation import CancellationToken, TaskHandle
from core.utils.file_utils import (
    is_binary_by_extension,
    is_binary_file,
    is_system_path,
)
from core.utils.owner_executor import OwnerExecutor

__all__ = [
    # cancellation
    "CancellationToken",
    "TaskHandle",
    # file_utils
    "is_binary_by_extension",
    "is_binary_file",
    "is_system_path",
    # owner_executor
    "OwnerExecutor",
]
