"""
SelectionManager - Quan ly selection state cho file tree.

Tach rieng selection state ra khoi TreeModel de:
1. Unit test selection ma khong can tree / filesystem
2. Tach biet concerns: TreeModel lo tree structure + token aggregates,
   SelectionManager lo tap hop paths dang chon + tong tokens

State:
- _selected_paths: files + folders dang chon (source of truth)
- _selected_files: chi files (dung de tinh tong tokens)
- _total_tokens + _total_for_generation: tong tokens va generation no duoc tinh
- _selection_generation: stale data protection

Thread Safety: All methods MUST be called from the owning context
(OwnerExecutor). No internal locking needed.
"""

from typing import Callable, Iterable, Iterator, Optional, Set


class SelectionManager:
    """
    Quan ly selection state thuan tuy.

    Callback on_selection_changed duoc goi SAU moi lan selection doi
    (notify_changed) de display layer co the repaint.
    """

    def __init__(
        self,
        on_selection_changed: Optional[Callable[[Set[str], int], None]] = None,
    ) -> None:
        """
        Args:
            on_selection_changed: Callback(selected_paths, generation) goi khi selection doi.
        """
        self._selected_paths: Set[str] = set()
        self._selected_files: Set[str] = set()

        # Stale data protection
        self._selection_generation: int = 0
        self._total_tokens: int = 0
        self._total_for_generation: int = 0

        self._on_selection_changed = on_selection_changed

    @property
    def selected_paths(self) -> Set[str]:
        """Tra ve ban sao cua selected paths (files + folders)."""
        return set(self._selected_paths)

    @property
    def selected_files(self) -> Set[str]:
        """Tra ve ban sao cua selected file paths."""
        return set(self._selected_files)

    @property
    def selection_generation(self) -> int:
        return self._selection_generation

    @property
    def total_tokens(self) -> int:
        """Tong tokens lan tinh gan nhat (co the stale, xem is_total_fresh)."""
        return self._total_tokens

    @property
    def total_for_generation(self) -> int:
        return self._total_for_generation

    def is_total_fresh(self) -> bool:
        """True neu total duoc tinh cho selection hien tai."""
        return self._total_for_generation == self._selection_generation

    def is_selected(self, path: str) -> bool:
        return path in self._selected_paths

    def count(self) -> int:
        """So paths dang selected (files + folders)."""
        return len(self._selected_paths)

    def file_count(self) -> int:
        return len(self._selected_files)

    # === Internal access methods (zero-copy, chi dung cho internal read-only) ===

    def iterate_files(self) -> Iterator[str]:
        """Iterator qua selected files KHONG tao copy. KHONG modify khi dang iterate."""
        return iter(self._selected_files)

    # === Mutation ===

    def add_many(self, paths: Iterable[str], file_paths: Iterable[str]) -> int:
        """
        Them nhieu paths vao selection (khong trigger callback).

        Args:
            paths: Moi path (files + folders) can them
            file_paths: Tap con la files

        Returns:
            So paths moi duoc them (chua co truoc do)
        """
        before = len(self._selected_paths)
        self._selected_paths.update(paths)
        self._selected_files.update(file_paths)
        return len(self._selected_paths) - before

    def remove_many(self, paths: Iterable[str]) -> int:
        """
        Xoa nhieu paths khoi selection (khong trigger callback).

        Returns:
            So paths da bi xoa
        """
        paths = set(paths)
        before = len(self._selected_paths)
        self._selected_paths -= paths
        self._selected_files -= paths
        return before - len(self._selected_paths)

    def replace_all(self, paths: Iterable[str], file_paths: Iterable[str]) -> None:
        """
        Thay the toan bo selection bang set moi.

        Tu dong bump generation. Dung cho session restore va post-rescan restore.
        """
        self._selected_paths = set(paths)
        self._selected_files = set(file_paths)
        self.bump_generation()

    def clear(self) -> None:
        """Xoa toan bo selection (total = 0, fresh)."""
        self._selected_paths.clear()
        self._selected_files.clear()
        generation = self.bump_generation()
        self.set_total_tokens(0, generation)

    def set_total_tokens(self, total: int, generation: int) -> bool:
        """
        Luu tong tokens NEU generation con fresh.

        Returns:
            True neu da luu, False neu generation da cu (selection doi giua chung)
        """
        if generation != self._selection_generation:
            return False
        self._total_tokens = total
        self._total_for_generation = generation
        return True

    def bump_generation(self) -> int:
        """
        Tang generation counter.

        PHAI goi sau MOI thay doi selection de stale data protection hoat dong.
        """
        self._selection_generation += 1
        return self._selection_generation

    def notify_changed(self) -> None:
        """
        Thong bao selection da thay doi qua callback.

        Goi method nay SAU KHI da hoan thanh tat ca mutations
        va bump_generation().
        """
        if self._on_selection_changed is not None:
            self._on_selection_changed(
                set(self._selected_paths), self._selection_generation
            )

    def reset(self) -> None:
        """
        Reset toan bo state. Dung khi doi workspace.

        Generation duoc BUMP (khong reset ve 0) de dam bao monotonic invariant.
        Khong trigger callback.
        """
        self._selected_paths.clear()
        self._selected_files.clear()
        self._selection_generation += 1
        self._total_tokens = 0
        self._total_for_generation = self._selection_generation
