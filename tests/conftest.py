"""
Shared fixtures cho test suite.

- FakeTokenCounter: ITokenCounter in-memory, dem tokens = so tu (whitespace split)
- make_tree: tao cay thu muc tu dict {relative path: noi dung}
- owner: OwnerExecutor tu dong shutdown
"""

import threading
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from core.ignore_engine import clear_cache
from core.utils.cancellation import CancellationToken
from core.utils.owner_executor import OwnerExecutor
from services.interfaces.tokenization_service import ITokenCounter


class FakeTokenCounter(ITokenCounter):
    """
    Token counter gia: count = so tu trong file.

    gate: neu set, count_tokens_batch() doi gate truoc khi dem (test cancellation).
    started: duoc set khi count_tokens_batch() bat dau.
    """

    def __init__(self, gate: Optional[threading.Event] = None):
        self.gate = gate
        self.started = threading.Event()
        self.batches: List[List[str]] = []
        self.invalidated: List[str] = []
        self.failing: set = set()
        self._lock = threading.Lock()

    def count_tokens_for_file(self, file_path: Path) -> int:
        if str(file_path) in self.failing:
            return 0
        try:
            return len(Path(file_path).read_text(encoding="utf-8").split())
        except OSError:
            return 0

    def count_tokens_batch(
        self,
        file_paths: Sequence[Path],
        max_concurrency: int,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[Tuple[str, int]]:
        with self._lock:
            self.batches.append([str(p) for p in file_paths])
        self.started.set()
        if self.gate is not None:
            self.gate.wait(timeout=10)
        return [(str(p), self.count_tokens_for_file(p)) for p in file_paths]

    def invalidate(self, path: str) -> None:
        with self._lock:
            self.invalidated.append(path)

    @property
    def counted_paths(self) -> List[str]:
        with self._lock:
            return [p for batch in self.batches for p in batch]


def words(count: int) -> str:
    """Noi dung co dung `count` tokens theo FakeTokenCounter."""
    return " ".join(["tok"] * count)


def make_tree(root: Path, files: Dict[str, str]) -> Path:
    """Tao files (va thu muc cha). Key ket thuc "/" -> thu muc rong."""
    for rel, content in files.items():
        target = root / rel
        if rel.endswith("/"):
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


@pytest.fixture(autouse=True)
def _fresh_ignore_cache():
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def fake_counter() -> FakeTokenCounter:
    return FakeTokenCounter()


@pytest.fixture
def owner():
    executor = OwnerExecutor()
    yield executor
    executor.shutdown()
