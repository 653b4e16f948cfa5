"""
Event Debouncer cho File Watcher.

Gom nhom cac file system events va dispatch 1 batch sau debounce.
Tranh spam callback khi co nhieu thay doi lien tuc (vd: IDE auto-save,
git checkout).
"""

import threading
from threading import Timer
from typing import List, Optional

from core.logging_config import log_debug, log_error
from services.interfaces.file_watcher_service import (
    BatchCallback,
    ChangeEvent,
    IEventDebouncer,
)


class TimerEventDebouncer(IEventDebouncer):
    """
    Debouncer su dung threading.Timer.

    Doi mot khoang thoi gian (debounce_seconds) sau event cuoi cung
    truoc khi trigger callback. Neu co event moi trong khoang thoi gian do,
    timer duoc reset.

    add_event() duoc goi tu watchdog thread, callback chay tren timer thread.
    """

    def __init__(self, on_batch: BatchCallback, debounce_seconds: float = 1.0):
        self._on_batch = on_batch
        self._debounce_seconds = debounce_seconds
        self._timer: Optional[Timer] = None
        self._pending_events: List[ChangeEvent] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending_events)

    def add_event(self, event: ChangeEvent) -> None:
        """
        Them event vao hang doi va reset debounce timer.

        Chi khi khong co event moi trong debounce_seconds thi callback moi duoc goi.
        """
        with self._lock:
            if self._closed:
                return
            self._pending_events.append(event)

            # Cancel timer cu neu co
            if self._timer is not None:
                self._timer.cancel()

            self._timer = Timer(self._debounce_seconds, self._trigger_callback)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> None:
        """Dispatch ngay cac events dang cho (khong doi het debounce)."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._trigger_callback()

    def cleanup(self) -> None:
        """Don dep timer va pending events khi shutdown."""
        with self._lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending_events.clear()

    def _trigger_callback(self) -> None:
        """Copy + clear pending events roi goi on_batch 1 lan."""
        with self._lock:
            if not self._pending_events:
                return
            events = self._pending_events
            self._pending_events = []
            self._timer = None

        log_debug(f"[FileWatcher] Dispatching batch of {len(events)} events")

        try:
            self._on_batch(events)
        except Exception as e:
            log_error("[FileWatcher] Error in batch callback", e)
