"""
Package core.tokenization - Token counting pipeline.

Modules:
- cache: LRU cache voi mtime invalidation
- counter: Core counting logic cho 1 file
- batch: Parallel/batch processing
"""

from core.tokenization.batch import count_files_encode_batch, count_files_parallel
from core.tokenization.cache import TokenCache
from core.tokenization.counter import MAX_BYTES, count_tokens_for_file

__all__ = [
    "MAX_BYTES",
    "TokenCache",
    "count_files_encode_batch",
    "count_files_parallel",
    "count_tokens_for_file",
]
