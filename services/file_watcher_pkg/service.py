"""
FileWatcher Service - Wiring va lifecycle management.

Class nay chi lam 1 viec: khoi tao cac dependencies
(IgnoreStrategy, EventDebouncer, WorkspaceEventHandler)
va quan ly lifecycle cua watchdog Observer.
"""

import threading
from pathlib import Path
from typing import Any, Optional

from watchdog.observers import Observer

from core.logging_config import log_error, log_info
from services.file_watcher_pkg.debouncer import TimerEventDebouncer
from services.file_watcher_pkg.handler import WorkspaceEventHandler
from services.file_watcher_pkg.ignore_strategies import DefaultIgnoreStrategy
from services.interfaces.file_watcher_service import (
    BatchCallback,
    IFileWatcherService,
    IIgnoreStrategy,
)


class FileWatcher(IFileWatcherService):
    """
    Service theo doi thay doi file trong workspace.

    Wiring dependencies:
    - IIgnoreStrategy -> DefaultIgnoreStrategy (co the thay doi qua constructor)
    - IEventDebouncer -> TimerEventDebouncer (tao moi moi lan start)
    - WorkspaceEventHandler cau noi giua watchdog va debouncer

    Usage:
        watcher = FileWatcher(IgnoreEngineStrategy(lambda: engine))
        watcher.start(Path("/path/to/workspace"), on_batch=reconciler.handle_batch)
        # ... later
        watcher.stop()
    """

    def __init__(self, ignore_strategy: Optional[IIgnoreStrategy] = None):
        self._observer: Optional[Any] = None
        self._debouncer: Optional[TimerEventDebouncer] = None
        self._handler: Optional[WorkspaceEventHandler] = None
        self._current_path: Optional[Path] = None
        self._ignore_strategy: IIgnoreStrategy = ignore_strategy or DefaultIgnoreStrategy()
        self._lock = threading.RLock()

    def start(
        self,
        path: Path,
        on_batch: BatchCallback,
        debounce_seconds: float = 1.0,
    ) -> bool:
        """
        Bat dau theo doi mot thu muc.

        Neu dang theo doi thu muc khac, se tu dong stop truoc.
        Loi khi start duoc log va watcher o trang thai stopped.
        """
        with self._lock:
            self.stop()

            path = Path(path)
            if not path.is_dir():
                log_error(f"[FileWatcher] Invalid path: {path}")
                return False

            try:
                # Wire dependencies: Strategy -> Debouncer -> Handler -> Observer
                self._debouncer = TimerEventDebouncer(
                    on_batch=on_batch,
                    debounce_seconds=debounce_seconds,
                )
                self._handler = WorkspaceEventHandler(
                    ignore_strategy=self._ignore_strategy,
                    debouncer=self._debouncer,
                )

                observer = Observer()
                observer.schedule(self._handler, str(path), recursive=True)
                observer.start()
                self._observer = observer

                self._current_path = path
                log_info(f"[FileWatcher] Started watching: {path}")
                return True

            except Exception as e:
                log_error(f"[FileWatcher] Failed to start watching {path}", e)
                self.stop()
                return False

    def stop(self) -> None:
        """Dung theo doi."""
        with self._lock:
            if self._debouncer is not None:
                self._debouncer.cleanup()
                self._debouncer = None

            self._handler = None

            observer = self._observer
            if observer is not None:
                try:
                    observer.stop()
                    observer.join(timeout=2.0)
                    log_info(f"[FileWatcher] Stopped watching: {self._current_path}")
                except Exception as e:
                    log_error("[FileWatcher] Error stopping", e)
                finally:
                    self._observer = None

            self._current_path = None

    def is_running(self) -> bool:
        observer = self._observer
        return observer is not None and observer.is_alive()

    @property
    def current_path(self) -> Optional[Path]:
        return self._current_path
