"""
Cancellation primitives - thay the global cancellation flags.

Moi unit of work (1 lan toggle selection, 1 lan rescan) co TaskHandle rieng.
Worker kiem tra token.is_cancelled() o ranh gioi batch (khong bao gio giua
mot item). Cancel duoc goi tu owning context khi co action moi
(last-action-wins).
"""

import itertools
import threading
from typing import Optional

_task_counter = itertools.count(1)


class CancellationToken:
    """Co huy thread-safe, chi chuyen tu False -> True."""

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()


class TaskHandle:
    """
    Handle de track va cancel mot unit of work.

    Attributes:
        task_id: "<kind>-<so thu tu>" (vd: "toggle-12")
        token: CancellationToken chia se voi worker
    """

    def __init__(self, kind: str):
        self.task_id = f"{kind}-{next(_task_counter)}"
        self.token = CancellationToken()
        self._done = threading.Event()
        self._error: Optional[BaseException] = None

    def cancel(self) -> None:
        """Cancel task (worker se dung o batch boundary tiep theo)."""
        self.token.cancel()

    def is_cancelled(self) -> bool:
        return self.token.is_cancelled()

    def is_done(self) -> bool:
        return self._done.is_set()

    def mark_done(self, error: Optional[BaseException] = None) -> None:
        """Goi boi worker khi ket thuc (hoan thanh, bi huy hoac loi)."""
        self._error = error
        self._done.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Doi task ket thuc. Tra ve True neu da ket thuc truoc timeout."""
        return self._done.wait(timeout=timeout)

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def __repr__(self) -> str:
        state = "cancelled" if self.is_cancelled() else "done" if self.is_done() else "running"
        return f"TaskHandle({self.task_id}, {state})"
