"""
ITokenCounter - Interface cho dich vu dem token.

Dinh nghia contract ma SelectionCoordinator va ChangeReconciler dung.
Cho phep dependency injection va testability (fake counter trong tests).

Methods:
- count_tokens_for_file(): Dem token cho 1 file (0 neu loi)
- count_tokens_batch(): Dem nhieu files, tra ve ket qua tung phan neu loi
- invalidate(): Xoa cache cua 1 file (file vua bi sua)
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from core.utils.cancellation import CancellationToken


class ITokenCounter(ABC):
    """
    Interface cho token counter.

    Moi implementation phai dam bao:
    - Thread-safe (duoc goi tu worker threads)
    - KHONG raise cho loi I/O hay encode: file loi dem = 0
    """

    @abstractmethod
    def count_tokens_for_file(self, file_path: Path) -> int:
        """
        Dem so token trong mot file.

        Returns:
            So luong tokens, hoac 0 neu skip/error
        """
        ...

    @abstractmethod
    def count_tokens_batch(
        self,
        file_paths: Sequence[Path],
        max_concurrency: int,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[Tuple[str, int]]:
        """
        Dem token cho nhieu files voi toi da max_concurrency workers.

        Args:
            file_paths: Danh sach file can dem
            max_concurrency: So workers toi da
            cancel_token: Neu da cancel truoc khi bat dau -> tra ve []

        Returns:
            List (path string, count). Co the thieu entries neu bi cancel.
        """
        ...

    @abstractmethod
    def invalidate(self, path: str) -> None:
        """Xoa cached count cua 1 file (goi khi file thay doi)."""
        ...
