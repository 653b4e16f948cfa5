"""
Token cache voi LRU eviction va mtime-based invalidation.

Thread-safe OrderedDict cache:
- Key: file path string
- Value: (mtime, token_count)
- Eviction: Khi dat max_size, xoa entry it dung nhat
- Invalidation: Khi file thay doi (mtime khac), cache miss
"""

import threading
from collections import OrderedDict
from typing import Dict, Optional, Tuple

# Maximum so entries trong cache
MAX_CACHE_SIZE = 2000


class TokenCache:
    """
    LRU cache cho token counts, thread-safe.

    Mtime-based invalidation: cache entry chi valid
    khi file khong bi thay doi ke tu lan cache cuoi.
    """

    def __init__(self, max_size: int = MAX_CACHE_SIZE):
        self._store: "OrderedDict[str, Tuple[float, int]]" = OrderedDict()
        self._lock = threading.Lock()
        self._max_size = max_size

    def get(self, path: str, mtime: float) -> Optional[int]:
        """
        Lay token count tu cache neu mtime khop.

        Args:
            path: File path string
            mtime: Modification time hien tai cua file

        Returns:
            Token count neu cache hit, None neu miss hoac stale
        """
        with self._lock:
            cached = self._store.get(path)
            if cached is None:
                return None
            cached_mtime, cached_count = cached
            if cached_mtime != mtime:
                return None
            # LRU: move to end
            self._store.move_to_end(path)
            return cached_count

    def put(self, path: str, mtime: float, count: int) -> None:
        """Luu token count, evict entries cu khi dat max_size."""
        with self._lock:
            self._put_locked(path, mtime, count)

    def put_batch(self, entries: Dict[str, Tuple[float, int]]) -> None:
        """Luu nhieu entries voi 1 lan lay lock."""
        with self._lock:
            for path, (mtime, count) in entries.items():
                self._put_locked(path, mtime, count)

    def _put_locked(self, path: str, mtime: float, count: int) -> None:
        if path in self._store:
            self._store.move_to_end(path)
        else:
            while len(self._store) >= self._max_size:
                self._store.popitem(last=False)
        self._store[path] = (mtime, count)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def clear_file(self, path: str) -> None:
        """
        Xoa cache entry cho mot file cu the.

        Goi khi file watcher phat hien file thay doi.
        """
        with self._lock:
            self._store.pop(path, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
