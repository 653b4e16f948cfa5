"""
ChangeReconciler - Dong bo tree voi filesystem sau moi batch thay doi.

Phan loai batch (da debounce boi FileWatcher):
- Rong -> NOOP
- Qua max_change_batch events -> DROPPED (tranh rescan lien tuc khi
  checkout / npm install)
- Co created / deleted / renamed / unknown, hoac 1 ignore file (.gitignore,
  .git/info/exclude, .ignore) bi sua -> FULL_RESCAN
- Chi modified -> INCREMENTAL (recount tung file co trong registry)

Full rescan (last-action-wins, chay tren worker):
1. Doc lai ignore files (engine moi) va scan lai root
2. Tren owning context: snapshot selection hien tai (files + folders),
   thay tree, chon lai cac path con ton tai
3. Dem tokens cho moi file chua co count, tinh lai aggregates va total
"""

import threading
from concurrent.futures import CancelledError, ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from core.constants import IGNORE_SOURCE_FILES
from core.errors import ScanCancelledError
from core.ignore_engine import IgnoreEngine
from core.logging_config import log_debug, log_error, log_info
from core.tree_model import TreeModel
from core.utils.cancellation import TaskHandle
from core.utils.file_scanner import DirectoryScanner, ScanResult
from core.utils.owner_executor import OwnerExecutor
from services.interfaces.file_watcher_service import ChangeEvent, ChangeKind
from services.interfaces.tokenization_service import ITokenCounter
from services.selection_coordinator import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_CONCURRENCY,
    SelectionCoordinator,
)

DEFAULT_MAX_CHANGE_BATCH = 100

# Cac loai thay doi lam thay doi cau truc tree
_STRUCTURAL_KINDS = frozenset(
    {ChangeKind.CREATED, ChangeKind.DELETED, ChangeKind.RENAMED, ChangeKind.UNKNOWN}
)


class ReconcileAction(Enum):
    """Quyet dinh cua handle_batch()."""

    DROPPED = "dropped"
    FULL_RESCAN = "full_rescan"
    INCREMENTAL = "incremental"
    NOOP = "noop"


def is_ignore_source(path: Optional[str], root: Optional[Path]) -> bool:
    """True neu path la 1 ignore file cua root (rules doi -> can rescan)."""
    if path is None or root is None:
        return False
    try:
        rel_path = Path(path).relative_to(root).as_posix()
    except ValueError:
        return False
    return rel_path in IGNORE_SOURCE_FILES


def classify_batch(
    events: Sequence[ChangeEvent],
    max_change_batch: int = DEFAULT_MAX_CHANGE_BATCH,
    root: Optional[Path] = None,
) -> ReconcileAction:
    """Phan loai 1 batch events (pure)."""
    if not events:
        return ReconcileAction.NOOP
    if len(events) > max_change_batch:
        return ReconcileAction.DROPPED
    for event in events:
        if event.kind in _STRUCTURAL_KINDS:
            return ReconcileAction.FULL_RESCAN
        if is_ignore_source(event.path, root) or is_ignore_source(event.dest_path, root):
            return ReconcileAction.FULL_RESCAN
    return ReconcileAction.INCREMENTAL


class ChangeReconciler:
    """
    Ap dung thay doi filesystem len TreeModel va giu selection qua moi lan rescan.

    engine_factory duoc goi moi lan full rescan de doc lai ignore files.
    """

    def __init__(
        self,
        root: Path,
        model: TreeModel,
        coordinator: SelectionCoordinator,
        token_counter: ITokenCounter,
        owner: OwnerExecutor,
        engine_factory: Callable[[], IgnoreEngine],
        scanner: Optional[DirectoryScanner] = None,
        workers: Optional[ThreadPoolExecutor] = None,
        max_change_batch: int = DEFAULT_MAX_CHANGE_BATCH,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self._root = Path(root)
        self._model = model
        self._coordinator = coordinator
        self._counter = token_counter
        self._owner = owner
        self._engine_factory = engine_factory
        self._scanner = scanner or DirectoryScanner()
        self._owns_workers = workers is None
        self._workers = workers or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="change-reconciler"
        )
        self._max_change_batch = max_change_batch
        self._max_concurrency = max(1, max_concurrency)
        self._batch_size = max(1, batch_size)

        self._engine: Optional[IgnoreEngine] = None
        self._rescan: Optional[TaskHandle] = None
        self._incremental: Optional[TaskHandle] = None
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def ignore_engine(self) -> Optional[IgnoreEngine]:
        """Engine cua tree dang hien thi (None truoc lan scan dau)."""
        return self._engine

    @property
    def current_rescan(self) -> Optional[TaskHandle]:
        return self._rescan

    # === Batch entry point (watcher thread) ===

    def handle_batch(self, events: Sequence[ChangeEvent]) -> ReconcileAction:
        """Phan loai va xu ly 1 batch events da debounce."""
        events = list(events)
        action = classify_batch(events, self._max_change_batch, self._root)

        if action is ReconcileAction.DROPPED:
            log_info(
                f"[ChangeReconciler] Dropping batch of {len(events)} changes "
                f"(limit {self._max_change_batch})"
            )
        elif action is ReconcileAction.FULL_RESCAN:
            log_debug(f"[ChangeReconciler] {len(events)} changes -> full rescan")
            self.full_rescan()
        elif action is ReconcileAction.INCREMENTAL:
            paths = [event.path for event in events]
            if self.incremental_update(paths) is None:
                action = ReconcileAction.NOOP
        return action

    # === Full rescan ===

    def full_rescan(self) -> TaskHandle:
        """
        Bat dau full rescan bat dong bo. Rescan dang chay bi cancel.

        Returns:
            TaskHandle cua lan rescan nay
        """
        handle = TaskHandle("rescan")
        with self._lock:
            previous, self._rescan = self._rescan, handle
            if previous is not None:
                previous.cancel()
            if self._incremental is not None:
                self._incremental.cancel()

        try:
            self._workers.submit(self._run_rescan, handle)
        except RuntimeError:
            handle.mark_done()
        return handle

    def refresh(self, timeout: Optional[float] = None) -> TaskHandle:
        """
        Manual refresh: full rescan va doi ket thuc (du watcher co chay hay khong).

        Returns:
            TaskHandle (kiem tra handle.error neu can)
        """
        handle = self.full_rescan()
        if handle.wait(timeout):
            self._coordinator.wait_idle(timeout)
        return handle

    def _run_rescan(self, handle: TaskHandle) -> None:
        try:
            if handle.is_cancelled():
                handle.mark_done()
                return

            engine = self._engine_factory()
            result = self._scanner.scan(self._root, engine, handle.token)

            installed = self._owner.call(self._install, handle, engine, result)
            if not installed:
                handle.mark_done()
                return

            self._fill_tokens(handle)

            if handle.is_cancelled():
                handle.mark_done()
                return

            total = self._coordinator.recompute_total()
            log_info(
                f"[ChangeReconciler] {handle.task_id} done: {result.file_count} files, "
                f"{total} selected tokens"
            )
            handle.mark_done()

        except (ScanCancelledError, CancelledError):
            log_debug(f"[ChangeReconciler] {handle.task_id} cancelled")
            handle.mark_done()
        except Exception as e:
            log_error(f"[ChangeReconciler] {handle.task_id} failed", e)
            handle.mark_done(e)

    def _install(self, handle: TaskHandle, engine: IgnoreEngine, result: ScanResult) -> bool:
        """Owning context: thay tree va chon lai selection cu."""
        if handle.is_cancelled():
            return False

        # Snapshot ca folders: trang thai folder khong suy ra lai tu files
        selected_paths = self._coordinator.selected_paths
        selected_files = len(self._coordinator.selected_files)
        self._engine = engine
        self._model.replace(result)
        restored = self._coordinator.reapply_selection(selected_paths)

        if selected_files != restored:
            log_info(
                f"[ChangeReconciler] Selection restored {restored}/{selected_files} files"
            )
        return True

    def _fill_tokens(self, handle: TaskHandle) -> None:
        """Worker: dem tokens cho moi file chua co count, theo batch."""
        paths = self._owner.call(
            lambda: [n.path for n in self._model.file_nodes() if not n.tokens_loaded]
        )
        for start in range(0, len(paths), self._batch_size):
            if handle.is_cancelled():
                return
            batch = [Path(p) for p in paths[start:start + self._batch_size]]
            results = self._counter.count_tokens_batch(
                batch, self._max_concurrency, handle.token
            )
            if results:
                self._owner.call(self._apply_if_current, handle, results)

    def _apply_if_current(self, handle: TaskHandle, results: List[Tuple[str, int]]) -> None:
        if not handle.is_cancelled():
            self._model.apply_token_counts(results)

    # === Incremental ===

    def incremental_update(self, paths: Iterable[str]) -> Optional[TaskHandle]:
        """
        Recount cac files da bi sua (chi files co trong registry).

        Returns:
            TaskHandle, hoac None neu khong co file nao can dem
        """
        requested = [str(p) for p in paths]
        targets = self._owner.call(self._files_in_registry, requested)
        if not targets:
            log_debug("[ChangeReconciler] No tracked files in modified batch")
            return None

        for path in targets:
            self._counter.invalidate(path)

        handle = TaskHandle("incremental")
        with self._lock:
            self._incremental = handle
        try:
            self._workers.submit(self._run_incremental, handle, targets)
        except RuntimeError:
            handle.mark_done()
        return handle

    def _files_in_registry(self, paths: List[str]) -> List[str]:
        seen = set()
        targets = []
        for path in paths:
            node = self._model.get(path)
            if node is not None and not node.is_dir and path not in seen:
                seen.add(path)
                targets.append(path)
        return targets

    def _run_incremental(self, handle: TaskHandle, paths: List[str]) -> None:
        try:
            if handle.is_cancelled():
                handle.mark_done()
                return
            results = self._counter.count_tokens_batch(
                [Path(p) for p in paths], self._max_concurrency, handle.token
            )
            self._owner.call(self._apply_incremental, handle, results)
            handle.mark_done()
        except CancelledError:
            handle.mark_done()
        except Exception as e:
            log_error(f"[ChangeReconciler] {handle.task_id} failed", e)
            handle.mark_done(e)

    def _apply_incremental(self, handle: TaskHandle, results: List[Tuple[str, int]]) -> None:
        if handle.is_cancelled():
            return
        changed = self._model.apply_token_counts(results)
        total = self._coordinator.recompute_total()
        log_debug(
            f"[ChangeReconciler] {handle.task_id}: {changed}/{len(results)} files changed, "
            f"total {total}"
        )

    # === Lifecycle ===

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Doi rescan + incremental gan nhat ket thuc (khong goi tu owning context)."""
        for handle in (self._rescan, self._incremental):
            if handle is not None and not handle.wait(timeout):
                return False
        return True

    def cancel(self) -> None:
        for handle in (self._rescan, self._incremental):
            if handle is not None:
                handle.cancel()

    def shutdown(self) -> None:
        self.cancel()
        if self._owns_workers:
            self._workers.shutdown(wait=True, cancel_futures=True)
