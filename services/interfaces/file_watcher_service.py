"""
Interfaces cho File Watcher Service.

Dinh nghia contracts cho:
- IFileWatcherService: Start/stop theo doi file system
- IIgnoreStrategy: Xac dinh path nao can bo qua
- IEventDebouncer: Gom nhom events va dispatch sau debounce
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional


class ChangeKind(Enum):
    """Loai thay doi filesystem."""

    CREATED = "created"
    DELETED = "deleted"
    RENAMED = "renamed"
    MODIFIED = "modified"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ChangeEvent:
    """
    Dai dien cho mot su kien thay doi file.

    Attributes:
        path: Duong dan tuyet doi cua file/folder bi thay doi
        kind: Loai su kien
        is_directory: True neu la thu muc
        dest_path: Duong dan moi (chi co voi RENAMED)
    """

    path: str
    kind: ChangeKind
    is_directory: bool = False
    dest_path: Optional[str] = None


# Callback nhan 1 batch events da debounce
BatchCallback = Callable[[List[ChangeEvent]], None]


class IIgnoreStrategy(ABC):
    """
    Interface xac dinh logic bo qua path.

    Implementation co the dua tren hardcoded patterns,
    IgnoreEngine cua workspace, hoac bat ky logic nao khac.
    """

    @abstractmethod
    def should_ignore(self, path: str, is_directory: bool = False) -> bool:
        """
        Kiem tra xem path co nen bi bo qua khong.

        Args:
            path: Duong dan tuyet doi can kiem tra
            is_directory: Path la thu muc

        Returns:
            True neu path can bi bo qua
        """
        ...


class IEventDebouncer(ABC):
    """
    Interface gom nhom events va dispatch sau debounce.

    Nhan events lien tuc, chi trigger callback sau khi
    khong co event moi trong khoang thoi gian debounce.
    """

    @abstractmethod
    def add_event(self, event: ChangeEvent) -> None:
        """Them mot event vao hang doi va reset debounce timer."""
        ...

    @abstractmethod
    def cleanup(self) -> None:
        """Don dep timer va pending events khi shutdown."""
        ...


class IFileWatcherService(ABC):
    """
    Interface cho dich vu theo doi file trong workspace.

    Moi implementation phai dam bao:
    - Thread-safe start/stop
    - Auto-stop khi switch sang path moi
    - Loi khi start duoc log, watcher o trang thai stopped (khong raise)
    """

    @abstractmethod
    def start(
        self,
        path: Path,
        on_batch: BatchCallback,
        debounce_seconds: float = 1.0,
    ) -> bool:
        """
        Bat dau theo doi mot thu muc.

        Args:
            path: Duong dan thu muc can theo doi
            on_batch: Callback nhan batch events sau debounce
            debounce_seconds: Thoi gian debounce (mac dinh 1.0s)

        Returns:
            True neu watcher da chay
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """Dung theo doi."""
        ...

    @abstractmethod
    def is_running(self) -> bool:
        """Kiem tra watcher co dang chay khong."""
        ...

    @property
    @abstractmethod
    def current_path(self) -> Optional[Path]:
        """Lay duong dan dang duoc theo doi."""
        ...
