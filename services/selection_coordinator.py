"""
SelectionCoordinator - Toggle selection tren subtree + recount tokens.

Flow cua 1 lan toggle (moi buoc tren owning context tru recount):
1. Resolve node, subtree = node + moi descendant
2. new_state = not (target dang selected); apply cho MOI path trong subtree
3. Cancel unit dang chay (last-action-wins), tao TaskHandle moi
4. Recount tren worker pool: batch recount_batch_size files, toi da
   max_concurrency workers; cancellation chi check o ranh gioi batch
5. Ket qua moi batch duoc apply len TreeModel tren owning context
6. Unit cuoi cung (khong bi cancel) tinh lai total tu selection hien tai

Unit bi cancel: bo do dang, flags giu nguyen, khong log loi.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from core.logging_config import log_debug, log_error, log_warning
from core.tree_model import ModelChange, TreeModel
from core.utils.cancellation import TaskHandle
from core.utils.owner_executor import OwnerExecutor
from services.interfaces.tokenization_service import ITokenCounter
from services.selection_manager import SelectionManager

DEFAULT_MAX_CONCURRENCY = 8
DEFAULT_BATCH_SIZE = 100


@dataclass(frozen=True)
class SelectionUpdate:
    """
    Ket qua cua toggle_selection().

    Attributes:
        new_state: Trang thai moi cua moi path trong subtree
        affected_paths: Target + moi descendant (files va folders)
        handle: Unit recount tokens cho lan toggle nay
    """

    new_state: bool
    affected_paths: FrozenSet[str]
    handle: TaskHandle


class SelectionCoordinator:
    """
    Dieu phoi selection flags (FileNode.is_selected + SelectionManager) va
    recount tokens bat dong bo.

    Public methods an toan tu moi thread: chung chuyen viec ve OwnerExecutor.
    """

    def __init__(
        self,
        model: TreeModel,
        token_counter: ITokenCounter,
        owner: OwnerExecutor,
        workers: Optional[ThreadPoolExecutor] = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        batch_size: int = DEFAULT_BATCH_SIZE,
        on_selection_changed: Optional[Callable[[Set[str], int], None]] = None,
    ):
        self._model = model
        self._counter = token_counter
        self._owner = owner
        self._owns_workers = workers is None
        self._workers = workers or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="selection-recount"
        )
        self._max_concurrency = max(1, max_concurrency)
        self._batch_size = max(1, batch_size)
        self._selection = SelectionManager(on_selection_changed=on_selection_changed)
        self._current: Optional[TaskHandle] = None

    # === Read access ===

    @property
    def selection(self) -> SelectionManager:
        """SelectionManager ben duoi (chi doc tren owning context)."""
        return self._selection

    @property
    def total_tokens(self) -> int:
        return self._selection.total_tokens

    @property
    def selected_paths(self) -> Set[str]:
        return self._owner.call(lambda: self._selection.selected_paths)

    @property
    def selected_files(self) -> Set[str]:
        return self._owner.call(lambda: self._selection.selected_files)

    @property
    def current_task(self) -> Optional[TaskHandle]:
        return self._current

    def is_selected(self, path: str) -> bool:
        return self._owner.call(self._selection.is_selected, str(path))

    def snapshot(self) -> List[str]:
        """Sorted list selected file paths (JSON serializable)."""
        return self._owner.call(lambda: sorted(self._selection.iterate_files()))

    # === Toggle ===

    def toggle_selection(self, target_path: str) -> Optional[SelectionUpdate]:
        """
        Dao trang thai selection cua target va toan bo subtree.

        Returns:
            SelectionUpdate, hoac None neu path khong co trong tree
        """
        return self._owner.call(self._toggle, str(target_path))

    def _toggle(self, target_path: str) -> Optional[SelectionUpdate]:
        node = self._model.get(target_path)
        if node is None:
            log_warning(f"[SelectionCoordinator] Toggle ignored, unknown path: {target_path}")
            return None

        subtree = self._model.subtree(node)
        new_state = not self._selection.is_selected(node.path)
        affected = frozenset(n.path for n in subtree)
        file_paths = [n.path for n in subtree if not n.is_dir]

        for n in subtree:
            n.is_selected = new_state
        if new_state:
            self._selection.add_many(affected, file_paths)
        else:
            self._selection.remove_many(affected)
        self._selection.bump_generation()

        handle = self._start_unit("toggle", file_paths if new_state else [])

        self._model.notify(ModelChange.SELECTION_CHANGED)
        self._selection.notify_changed()

        log_debug(
            f"[SelectionCoordinator] {handle.task_id}: {target_path} -> {new_state} "
            f"({len(affected)} paths, {len(file_paths)} files)"
        )
        return SelectionUpdate(new_state=new_state, affected_paths=affected, handle=handle)

    # === Restore / clear ===

    def restore_selection(self, paths: Iterable[str]) -> int:
        """
        Chon lai selection da luu (session restore, chi co file paths).

        Chi path tro toi FILE con ton tai moi duoc chon. Folder co it nhat 1 file
        va moi file ben duoi deu duoc chon thi cung duoc danh dau selected.
        Selection cu bi thay the.

        Returns:
            So files duoc chon lai
        """
        wanted = [str(p) for p in paths]
        return self._owner.call(self._restore, wanted)

    def _restore(self, wanted: List[str]) -> int:
        file_set: Set[str] = set()
        for path in wanted:
            node = self._model.get(path)
            if node is not None and not node.is_dir:
                file_set.add(path)

        selected_dirs: List[str] = []
        root = self._model.root
        if root is not None:
            # node_id -> (co file ben duoi, moi file ben duoi deu selected)
            status: Dict[int, Tuple[bool, bool]] = {}
            for node in reversed(list(root.iter_subtree())):
                if not node.is_dir:
                    node.is_selected = node.path in file_set
                    status[node.node_id] = (True, node.is_selected)
                    continue
                has_file = False
                all_selected = True
                for child in node.children:
                    child_has_file, child_selected = status[child.node_id]
                    if child_has_file:
                        has_file = True
                        all_selected = all_selected and child_selected
                node.is_selected = has_file and all_selected
                status[node.node_id] = (has_file, node.is_selected)
                if node.is_selected:
                    selected_dirs.append(node.path)

        self._commit_selection("restore", file_set.union(selected_dirs), file_set)

        dropped = len(set(wanted)) - len(file_set)
        log_debug(
            f"[SelectionCoordinator] Restored {len(file_set)} files"
            + (f", dropped {dropped} missing" if dropped else "")
        )
        return len(file_set)

    def reapply_selection(self, paths: Iterable[str]) -> int:
        """
        Chon lai dung cac paths (files + folders) con ton tai, dung sau full rescan.

        Khac restore_selection: trang thai folder giu nguyen nhu truoc rescan,
        khong suy ra tu files ben duoi. Path da bi xoa bi bo qua.

        Returns:
            So files duoc chon lai
        """
        wanted = [str(p) for p in paths]
        return self._owner.call(self._reapply, wanted)

    def _reapply(self, wanted: List[str]) -> int:
        kept: Set[str] = set()
        file_set: Set[str] = set()
        for path in wanted:
            node = self._model.get(path)
            if node is None:
                continue
            kept.add(path)
            if not node.is_dir:
                file_set.add(path)

        root = self._model.root
        if root is not None:
            for node in root.iter_subtree():
                node.is_selected = node.path in kept

        self._commit_selection("reapply", kept, file_set)
        return len(file_set)

    def _commit_selection(self, label: str, paths: Set[str], files: Set[str]) -> None:
        """Owning context: thay selection, recount total, notify."""
        self._selection.replace_all(paths, files)
        self._start_unit(label, [])

        self._model.notify(ModelChange.SELECTION_CHANGED)
        self._selection.notify_changed()

    def clear(self) -> None:
        """Bo chon moi thu (cancel recount dang chay)."""
        self._owner.call(self._clear)

    def _clear(self) -> None:
        if self._current is not None:
            self._current.cancel()
        for path in self._selection.selected_paths:
            node = self._model.get(path)
            if node is not None:
                node.is_selected = False
        self._selection.clear()
        self._model.notify(ModelChange.SELECTION_CHANGED)
        self._selection.notify_changed()

    # === Totals ===

    def recompute_total(self) -> int:
        """Tinh lai total = tong own token count cua moi selected file."""
        return self._owner.call(self._recompute_total)

    def _recompute_total(self) -> int:
        total = 0
        for path in self._selection.iterate_files():
            node = self._model.get(path)
            if node is not None:
                total += node.token_count

        changed = total != self._selection.total_tokens
        self._selection.set_total_tokens(total, self._selection.selection_generation)
        if changed:
            self._model.notify(ModelChange.SELECTION_CHANGED)
        return total

    # === Recount units ===

    def _start_unit(self, kind: str, priority_paths: List[str]) -> TaskHandle:
        """
        Cancel unit cu, tao unit moi dem: priority_paths + moi selected file
        chua co token count. Chay tren owning context.
        """
        if self._current is not None:
            self._current.cancel()

        handle = TaskHandle(kind)
        self._current = handle

        seen: Set[str] = set()
        paths: List[str] = []
        for path in priority_paths:
            if path not in seen:
                seen.add(path)
                paths.append(path)
        for path in self._selection.iterate_files():
            if path in seen:
                continue
            node = self._model.get(path)
            if node is not None and not node.tokens_loaded:
                seen.add(path)
                paths.append(path)

        try:
            self._workers.submit(self._run_recount, handle, paths)
        except RuntimeError:
            # Worker pool da shutdown
            handle.mark_done()
        return handle

    def _run_recount(self, handle: TaskHandle, paths: List[str]) -> None:
        """Worker: dem tokens theo batch, gui ket qua ve owning context."""
        try:
            for start in range(0, len(paths), self._batch_size):
                if handle.is_cancelled():
                    log_debug(f"[SelectionCoordinator] {handle.task_id} superseded")
                    handle.mark_done()
                    return

                batch = [Path(p) for p in paths[start:start + self._batch_size]]
                results = self._counter.count_tokens_batch(
                    batch, self._max_concurrency, handle.token
                )
                if results:
                    self._owner.submit(self._model.apply_token_counts, results)

            future = self._owner.submit(self._finalize, handle)
            if future.cancelled():
                handle.mark_done()
        except Exception as e:
            log_error(f"[SelectionCoordinator] {handle.task_id} recount failed", e)
            handle.mark_done(e)

    def _finalize(self, handle: TaskHandle) -> None:
        """Owning context: total chi duoc tinh boi unit khong bi cancel."""
        try:
            if not handle.is_cancelled():
                self._recompute_total()
        finally:
            handle.mark_done()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Doi unit gan nhat (ke ca unit moi tao trong luc doi) ket thuc.

        KHONG goi tu owning context (finalize can owning context de chay).

        Returns:
            True neu idle truoc timeout
        """
        if self._owner.is_owner_thread():
            raise RuntimeError("wait_idle() cannot be called from the owner thread")

        while True:
            handle = self._current
            if handle is None:
                return True
            if not handle.wait(timeout):
                return False
            if handle is self._current:
                # Flush cac apply_token_counts con trong hang doi
                self._owner.call(lambda: None)
                return True

    def shutdown(self) -> None:
        """Cancel unit dang chay va dung worker pool (neu tu tao)."""
        if self._current is not None:
            self._current.cancel()
        if self._owns_workers:
            self._workers.shutdown(wait=True, cancel_futures=True)
