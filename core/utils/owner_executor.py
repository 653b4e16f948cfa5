"""
OwnerExecutor - Single owning execution context cho moi mutation cua tree.

Khong dung lock tren toan tree: correctness dua tren single-writer
confinement. Worker threads (scan, token counting) chi gui KET QUA ve day
qua submit()/call(); chi owner thread duoc sua FileNode va selection state.

call() tu chinh owner thread chay inline (tranh deadlock khi callback
cua owner goi lai API cong khai).
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

from core.logging_config import log_error

T = TypeVar("T")


class OwnerExecutor:
    """
    Thread rieng (max_workers=1) so huu node tree.

    Usage:
        owner = OwnerExecutor()
        owner.call(model.replace, scan_result)     # block cho den khi xong
        owner.submit(coordinator.recompute_total)  # fire-and-forget (Future)
        owner.shutdown()
    """

    def __init__(self, name: str = "tree-owner"):
        self._name = name
        self._thread_ident: Optional[int] = None
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=name,
            initializer=self._remember_thread,
        )
        self._shutdown = False

    def _remember_thread(self) -> None:
        self._thread_ident = threading.get_ident()

    def is_owner_thread(self) -> bool:
        """True neu dang chay tren owner thread."""
        return self._thread_ident == threading.get_ident()

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Future[T]":
        """
        Xep fn vao hang doi cua owner thread.

        Sau shutdown(), tra ve Future da cancel thay vi raise.
        """
        if self._shutdown:
            future: "Future[T]" = Future()
            future.cancel()
            return future
        try:
            return self._executor.submit(self._run_logged, fn, *args, **kwargs)
        except RuntimeError:
            # Executor da shutdown giua chung
            future = Future()
            future.cancel()
            return future

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Chay fn tren owner thread va doi ket qua (inline neu da o owner thread)."""
        if self.is_owner_thread():
            return fn(*args, **kwargs)
        return self.submit(fn, *args, **kwargs).result()

    @staticmethod
    def _run_logged(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            log_error(f"[OwnerExecutor] {getattr(fn, '__name__', fn)} failed", e)
            raise

    def shutdown(self, wait: bool = True) -> None:
        """Dung owner thread. Cac task chua chay bi huy."""
        self._shutdown = True
        self._executor.shutdown(wait=wait, cancel_futures=True)
