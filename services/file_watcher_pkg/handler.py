"""
Workspace Event Handler cho File Watcher.

Nhan events tu watchdog, ap dung ignore strategy,
va delegate events hop le sang debouncer.

Mapping watchdog -> ChangeKind:
- created -> CREATED
- deleted -> DELETED
- moved -> RENAMED (co dest_path)
- modified (chi file) -> MODIFIED
- opened / closed: bo qua (khong thay doi noi dung)
- loai event khac -> UNKNOWN
"""

import os

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CLOSED_NO_WRITE,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    EVENT_TYPE_OPENED,
    FileSystemEvent,
    FileSystemEventHandler,
)

from core.logging_config import log_debug
from services.interfaces.file_watcher_service import (
    ChangeEvent,
    ChangeKind,
    IEventDebouncer,
    IIgnoreStrategy,
)

# Events khong lam thay doi noi dung
_NOISE_EVENT_TYPES = frozenset(
    {EVENT_TYPE_OPENED, EVENT_TYPE_CLOSED, EVENT_TYPE_CLOSED_NO_WRITE}
)

_HANDLED_EVENT_TYPES = frozenset(
    {EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}
)


def _as_str(path: object) -> str:
    return os.fsdecode(path) if isinstance(path, bytes) else str(path or "")


class WorkspaceEventHandler(FileSystemEventHandler):
    """
    Event handler nhan events tu watchdog va delegate cho debouncer.

    Khong chua logic debounce hay business logic nao khac.
    """

    def __init__(
        self,
        ignore_strategy: IIgnoreStrategy,
        debouncer: IEventDebouncer,
    ):
        super().__init__()
        self._ignore_strategy = ignore_strategy
        self._debouncer = debouncer

    def _handle_event(self, event: FileSystemEvent, kind: ChangeKind) -> None:
        """
        Flow:
        1. Kiem tra ignore strategy (moved: chi bo qua khi ca 2 dau deu ignore)
        2. Tao ChangeEvent
        3. Gui cho debouncer
        """
        src_path = _as_str(event.src_path)
        is_directory = bool(event.is_directory)
        dest_path = None
        if kind is ChangeKind.RENAMED:
            dest_path = _as_str(getattr(event, "dest_path", "")) or None

        ignored = self._ignore_strategy.should_ignore(src_path, is_directory)
        if ignored and dest_path:
            ignored = self._ignore_strategy.should_ignore(dest_path, is_directory)
        if ignored:
            return

        change_event = ChangeEvent(
            path=src_path,
            kind=kind,
            is_directory=is_directory,
            dest_path=dest_path,
        )

        log_debug(f"[FileWatcher] Event: {kind.value} - {src_path}")
        self._debouncer.add_event(change_event)

    # Override watchdog event handlers
    def on_any_event(self, event: FileSystemEvent) -> None:
        """Loai event khong biet truoc -> UNKNOWN (full rescan)."""
        if event.event_type in _HANDLED_EVENT_TYPES or event.event_type in _NOISE_EVENT_TYPES:
            return
        self._handle_event(event, ChangeKind.UNKNOWN)

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle_event(event, ChangeKind.CREATED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle_event(event, ChangeKind.DELETED)

    def on_modified(self, event: FileSystemEvent) -> None:
        # Chi xu ly file, khong xu ly folder (folder modified qua nhieu noise)
        if not event.is_directory:
            self._handle_event(event, ChangeKind.MODIFIED)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle_event(event, ChangeKind.RENAMED)
