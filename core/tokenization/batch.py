"""
Batch/parallel token counting.

Functions:
- get_worker_count(): Tinh so workers toi uu
- count_files_parallel(): ThreadPoolExecutor, 1 file / task
- count_files_encode_batch(): Doc files roi encode_batch() 1 lan (HF tokenizers)

Cancellation chi duoc check o dau moi batch: mot batch da bat dau se chay xong.
Ket qua luon giu thu tu input; file loi -> count 0 (co log), batch tiep tuc.
"""

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from core.encoders import Encoder
from core.logging_config import log_error
from core.tokenization.cache import TokenCache
from core.tokenization.counter import MAX_BYTES, load_file_for_count
from core.utils.cancellation import CancellationToken

# So file toi thieu de trigger parallel processing
MIN_FILES_FOR_PARALLEL = 10

TokenResult = Tuple[str, int]


def get_worker_count(num_tasks: int, max_workers: int) -> int:
    """
    So workers cho 1 batch: khong vuot qua max_workers, so tasks hay CPU cores.
    """
    cpu_count = os.cpu_count() or 4
    return max(1, min(max_workers, num_tasks, cpu_count))


def count_files_parallel(
    file_paths: Sequence[Path],
    count_one: Callable[[Path], int],
    max_workers: int,
    cancel_token: Optional[CancellationToken] = None,
) -> List[TokenResult]:
    """
    Dem token song song voi ThreadPoolExecutor.

    Args:
        file_paths: Danh sach files can dem
        count_one: Ham dem 1 file (raise -> count 0)
        max_workers: So workers toi da
        cancel_token: Batch bi bo qua neu da cancel truoc khi bat dau

    Returns:
        List (path, count) theo thu tu input
    """
    if not file_paths:
        return []
    if cancel_token is not None and cancel_token.is_cancelled():
        return []

    def _safe_count(path: Path) -> int:
        try:
            return count_one(path)
        except Exception as e:
            log_error(f"[TokenCounter] Counting failed for {path}", e)
            return 0

    # Batch nho: chay tuan tu (tao thread ton hon dem)
    if len(file_paths) < MIN_FILES_FOR_PARALLEL or max_workers <= 1:
        return [(str(path), _safe_count(path)) for path in file_paths]

    counts: Dict[int, int] = {}
    num_workers = get_worker_count(len(file_paths), max_workers)
    with ThreadPoolExecutor(max_workers=num_workers, thread_name_prefix="token-count") as executor:
        futures = {
            executor.submit(_safe_count, path): index
            for index, path in enumerate(file_paths)
        }
        for future in as_completed(futures):
            counts[futures[future]] = future.result()

    return [(str(path), counts.get(index, 0)) for index, path in enumerate(file_paths)]


def count_files_encode_batch(
    file_paths: Sequence[Path],
    encoder: Encoder,
    cache: Optional[TokenCache] = None,
    max_bytes: Optional[int] = MAX_BYTES,
    cancel_token: Optional[CancellationToken] = None,
) -> List[TokenResult]:
    """
    Doc tat ca files roi encode 1 lan bang encoder.count_batch().

    PERFORMANCE: HF tokenizers encode_batch() chay Rust multi-thread,
    nhanh hon nhieu so voi loop tung file.
    """
    if not file_paths:
        return []
    if cancel_token is not None and cancel_token.is_cancelled():
        return []

    counts: Dict[str, int] = {}
    texts: List[str] = []
    text_paths: List[Tuple[str, float]] = []

    for path in file_paths:
        known, content, mtime = load_file_for_count(path, cache, max_bytes)
        if known is not None:
            counts[str(path)] = known
            continue
        texts.append(content or "")
        text_paths.append((str(path), mtime))

    if texts:
        batch_counts = encoder.count_batch(texts)
        entries: Dict[str, Tuple[float, int]] = {}
        for (path_str, mtime), count in zip(text_paths, batch_counts):
            counts[path_str] = count
            entries[path_str] = (mtime, count)
        if cache is not None and entries:
            cache.put_batch(entries)

    return [(str(path), counts.get(str(path), 0)) for path in file_paths]
