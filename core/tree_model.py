"""
TreeModel - So huu node tree + flat registry path -> node.

Tach khoi SelectionCoordinator va ChangeReconciler:
- FileNode: 1 entry tren filesystem (file hoac folder)
- TreeModel: root + registry, aggregate token counts bottom-up,
  change notification cho display layer

Invariant:
- Folder: aggregate_tokens = tong aggregate_tokens cua children
- File: aggregate_tokens = token_count

Ownership: parent so huu children (list). Back-reference toi parent la
weakref, chi dung de propagate aggregate len tren.

Thread Safety: Moi mutation PHAI chay tren owning context (OwnerExecutor).
"""

import itertools
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from core.logging_config import log_error

if TYPE_CHECKING:
    from core.utils.file_scanner import ScanResult

_node_ids = itertools.count(1)


@dataclass(eq=False)
class FileNode:
    """
    Mot node trong file tree (file hoac folder).

    token_count chi co nghia voi file. tokens_loaded=False nghia la
    token counter chua dem file nay (aggregate coi nhu 0).
    """

    path: str  # Duong dan tuyet doi
    name: str  # Ten hien thi
    is_dir: bool = False
    children: List["FileNode"] = field(default_factory=list, repr=False)
    is_selected: bool = False
    token_count: int = 0
    aggregate_tokens: int = 0
    tokens_loaded: bool = False
    node_id: int = field(default_factory=lambda: next(_node_ids))
    _parent_ref: Optional["weakref.ReferenceType[FileNode]"] = field(
        default=None, repr=False
    )

    @property
    def parent(self) -> Optional["FileNode"]:
        """Parent node (non-owning), None cho root."""
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    def add_child(self, child: "FileNode") -> None:
        """Gan child vao cuoi danh sach children va set back-reference."""
        child._parent_ref = weakref.ref(self)
        self.children.append(child)

    def iter_subtree(self) -> Iterator["FileNode"]:
        """Pre-order: node nay truoc, roi toi moi descendant."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


class ModelChange(Enum):
    """Loai thay doi gui toi listeners."""

    TREE_REPLACED = "tree_replaced"
    TOKENS_CHANGED = "tokens_changed"
    SELECTION_CHANGED = "selection_changed"


ModelListener = Callable[[ModelChange], None]


class TreeModel:
    """
    So huu node tree va registry sinh ra tu DirectoryScanner.

    Display layer subscribe qua add_listener() va doc lai cac field can thiet
    khi nhan notification (khong gan voi UI framework nao).
    """

    def __init__(self) -> None:
        self._root: Optional[FileNode] = None
        self._registry: Dict[str, FileNode] = {}
        self._listeners: List[ModelListener] = []

    # === Read access ===

    @property
    def root(self) -> Optional[FileNode]:
        return self._root

    @property
    def registry(self) -> Dict[str, FileNode]:
        """Flat registry path -> node. KHONG modify tu ben ngoai."""
        return self._registry

    def __len__(self) -> int:
        return len(self._registry)

    def __contains__(self, path: object) -> bool:
        return path in self._registry

    def get(self, path: str) -> Optional[FileNode]:
        """Lookup O(1) theo duong dan tuyet doi."""
        return self._registry.get(path)

    def file_nodes(self) -> List[FileNode]:
        return [node for node in self._registry.values() if not node.is_dir]

    def file_paths(self) -> List[str]:
        return [node.path for node in self._registry.values() if not node.is_dir]

    def subtree(self, node: FileNode) -> List[FileNode]:
        """Node + moi descendant (files va folders)."""
        return list(node.iter_subtree())

    def selected_files(self) -> List[FileNode]:
        """
        Traverse toan bo tree, tra ve cac file dang selected.

        Dung de verify/restore, KHONG phai hot path (SelectionCoordinator
        tu giu total tokens).
        """
        if self._root is None:
            return []
        return [
            node
            for node in self._root.iter_subtree()
            if not node.is_dir and node.is_selected
        ]

    # === Mutation (owning context only) ===

    def replace(self, scan_result: "ScanResult") -> None:
        """Thay toan bo tree (full rescan). Aggregates duoc tinh lai."""
        self._root = scan_result.root_node
        self._registry = scan_result.registry
        self.recompute_all()
        self.notify(ModelChange.TREE_REPLACED)

    def clear(self) -> None:
        self._root = None
        self._registry = {}
        self.notify(ModelChange.TREE_REPLACED)

    def recompute_aggregate(self, node: FileNode) -> None:
        """
        Tinh lai aggregate cua node tu children, roi lan len parent toi root.

        Chi phi O(depth), khong phai O(size).
        """
        current: Optional[FileNode] = node
        while current is not None:
            if current.is_dir:
                current.aggregate_tokens = sum(
                    child.aggregate_tokens for child in current.children
                )
            else:
                current.aggregate_tokens = current.token_count
            current = current.parent

    def recompute_all(self) -> None:
        """Post-order recompute cho toan bo tree (sau scan / apply batch lon)."""
        if self._root is None:
            return
        order = list(self._root.iter_subtree())
        for node in reversed(order):
            if node.is_dir:
                node.aggregate_tokens = sum(c.aggregate_tokens for c in node.children)
            else:
                node.aggregate_tokens = node.token_count

    def set_token_count(self, path: str, count: int, propagate: bool = True) -> bool:
        """
        Cap nhat own token count cua 1 file.

        Args:
            path: Duong dan file
            count: So tokens moi
            propagate: Lan aggregate len root ngay (False khi apply batch lon)

        Returns:
            True neu count thay doi (hoac lan dau duoc load)
        """
        node = self._registry.get(path)
        if node is None or node.is_dir:
            return False

        changed = not node.tokens_loaded or node.token_count != count
        node.token_count = count
        node.tokens_loaded = True
        if changed and propagate:
            self.recompute_aggregate(node)
        return changed

    def apply_token_counts(self, results: Iterable[Tuple[str, int]]) -> int:
        """
        Apply ket qua tu token counter. Notify 1 lan neu co thay doi.

        Batch nho propagate tung file (O(k * depth)); batch lon tinh lai ca cay.

        Returns:
            So files co count thay doi
        """
        results = list(results)
        bulk = len(results) > max(64, len(self._registry) // 8)

        changed = 0
        for path, count in results:
            if self.set_token_count(path, count, propagate=not bulk):
                changed += 1

        if changed:
            if bulk:
                self.recompute_all()
            self.notify(ModelChange.TOKENS_CHANGED)
        return changed

    # === Change notification ===

    def add_listener(self, listener: ModelListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ModelListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify(self, change: ModelChange) -> None:
        """Goi moi listener. Loi cua listener duoc log, khong lan ra ngoai."""
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                log_error(f"[TreeModel] Listener failed on {change.value}", e)
