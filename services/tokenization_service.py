"""
TokenizationService - Concrete implementation cua ITokenCounter.

Moi trang thai (encoder, tokenizer_repo, cache) duoc quan ly o instance level,
khong co global state.

Fallback Strategy:
  Khi encoder khong load duoc (offline, loi network), Encoder se dung
  estimate_tokens() va emit warning log MOT LAN.

Dependency Flow:
  TokenizationService -> core.encoders.Encoder
                      -> core.tokenization (counter, batch, TokenCache)
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from core.encoders import ENCODER_HF, Encoder
from core.logging_config import log_debug
from core.tokenization import (
    MAX_BYTES,
    TokenCache,
    count_files_encode_batch,
    count_files_parallel,
    count_tokens_for_file,
)
from core.utils.cancellation import CancellationToken
from services.interfaces.tokenization_service import ITokenCounter


class TokenizationService(ITokenCounter):
    """
    Dich vu dem token - thread-safe.

    Ho tro tiktoken va Hugging Face tokenizers (khi co tokenizer_repo).
    """

    def __init__(
        self,
        tokenizer_repo: Optional[str] = None,
        max_file_bytes: Optional[int] = MAX_BYTES,
        cache: Optional[TokenCache] = None,
    ) -> None:
        """
        Args:
            tokenizer_repo: HF repo ID (vd: "Xenova/claude-tokenizer") hoac None
            max_file_bytes: Files lon hon dem = 0 (None = khong gioi han)
            cache: TokenCache dung chung (mac dinh tao moi)
        """
        self._encoder = Encoder(tokenizer_repo)
        self._max_file_bytes = max_file_bytes
        self._cache = cache if cache is not None else TokenCache()

    @property
    def encoder(self) -> Encoder:
        return self._encoder

    @property
    def cache(self) -> TokenCache:
        return self._cache

    def count_tokens(self, text: str) -> int:
        """Dem so token trong text."""
        return self._encoder.count(text)

    def count_tokens_for_file(self, file_path: Path) -> int:
        return count_tokens_for_file(
            Path(file_path), self._encoder, self._cache, self._max_file_bytes
        )

    def count_tokens_batch(
        self,
        file_paths: Sequence[Path],
        max_concurrency: int,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[Tuple[str, int]]:
        """
        Dem token cho nhieu files.

        Tu dong chon strategy phu hop:
        - HF encode_batch() khi dung Hugging Face tokenizer
        - ThreadPoolExecutor cho tiktoken / estimate
        """
        paths = [Path(p) for p in file_paths]
        if self._encoder.encoder_type == ENCODER_HF:
            return count_files_encode_batch(
                paths,
                self._encoder,
                self._cache,
                self._max_file_bytes,
                cancel_token=cancel_token,
            )
        return count_files_parallel(
            paths,
            self.count_tokens_for_file,
            max_workers=max_concurrency,
            cancel_token=cancel_token,
        )

    def invalidate(self, path: str) -> None:
        self._cache.clear_file(str(path))
        log_debug(f"[TokenizationService] Invalidated {path}")

    def set_tokenizer_repo(self, tokenizer_repo: Optional[str]) -> None:
        """Doi tokenizer (reset encoder + xoa cache vi count cu khong con dung)."""
        if tokenizer_repo != self._encoder.tokenizer_repo:
            self._encoder.set_tokenizer_repo(tokenizer_repo)
            self._cache.clear()

    def clear_cache(self) -> None:
        self._cache.clear()
