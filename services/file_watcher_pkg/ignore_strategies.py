"""
Ignore Strategies cho File Watcher.

Chua cac implementation cua IIgnoreStrategy:
- DefaultIgnoreStrategy: Bo qua cac thu muc pho bien (.git, node_modules, ...)
- IgnoreEngineStrategy: Dung IgnoreEngine cua workspace hien tai, nhung
  LUON cho qua thay doi cua chinh cac ignore files (.gitignore, ...)
"""

from pathlib import Path
from typing import Callable, FrozenSet, Optional

from core.constants import (
    BUILTIN_EXCLUSIONS,
    DEFAULT_EXCLUSION_CATEGORIES,
    IGNORE_SOURCE_FILES,
)
from core.ignore_engine import IgnoreEngine
from services.interfaces.file_watcher_service import IIgnoreStrategy


class DefaultIgnoreStrategy(IIgnoreStrategy):
    """
    Ignore strategy mac dinh - bo qua cac thu muc pho bien.

    Dung khi chua co IgnoreEngine (vd: watcher chay doc lap).
    """

    IGNORED_PATTERNS: FrozenSet[str] = frozenset(
        set(DEFAULT_EXCLUSION_CATEGORIES.values()) | BUILTIN_EXCLUSIONS
    )

    def should_ignore(self, path: str, is_directory: bool = False) -> bool:
        """True neu bat ky phan nao cua path nam trong IGNORED_PATTERNS."""
        return any(part in self.IGNORED_PATTERNS for part in Path(path).parts)


class IgnoreEngineStrategy(IIgnoreStrategy):
    """
    Loc events bang IgnoreEngine hien tai cua workspace.

    engine_provider duoc goi moi event vi engine bi thay sau moi full rescan.
    Path bi ignore neu no hoac bat ky thu muc cha nao bi ignore (scanner
    khong recurse vao thu muc bi ignore nen descendants cung khong co trong tree).
    """

    def __init__(self, engine_provider: Callable[[], Optional[IgnoreEngine]]):
        self._engine_provider = engine_provider

    def should_ignore(self, path: str, is_directory: bool = False) -> bool:
        engine = self._engine_provider()
        if engine is None:
            return False

        rel_path = engine.relative_path(path)
        if not rel_path:
            return False
        if rel_path == ".." or rel_path.startswith("../"):
            # Ngoai root
            return True

        if rel_path in IGNORE_SOURCE_FILES:
            return False

        parts = rel_path.split("/")
        for depth in range(1, len(parts)):
            if engine.is_ignored("/".join(parts[:depth]), True):
                return True
        return engine.is_ignored(rel_path, is_directory)
