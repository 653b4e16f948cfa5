"""
File Watcher Package.

Export cac symbols chinh:
- FileWatcher (class chinh)
- IgnoreEngineStrategy, DefaultIgnoreStrategy
- ChangeEvent, ChangeKind (data classes)
"""

from services.file_watcher_pkg.ignore_strategies import (
    DefaultIgnoreStrategy,
    IgnoreEngineStrategy,
)
from services.file_watcher_pkg.service import FileWatcher
from services.interfaces.file_watcher_service import ChangeEvent, ChangeKind

__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "DefaultIgnoreStrategy",
    "FileWatcher",
    "IgnoreEngineStrategy",
]
