"""
Encoders - Chon va khoi tao tokenizer cho token counting.

Backends (theo thu tu uu tien):
- Hugging Face tokenizers (khi co tokenizer_repo)
- tiktoken (o200k_base -> cl100k_base -> p50k_base -> gpt2)
- Uoc luong ~4 ky tu = 1 token (khi khong load duoc encoder nao)

Encoder KHONG doc settings truc tiep: tokenizer_repo duoc inject qua
constructor.
"""

import threading
from typing import Any, List, Optional

import tiktoken
from tokenizers import Tokenizer

from core.logging_config import log_error, log_info, log_warning

# Thu tu encodings tiktoken
TIKTOKEN_ENCODINGS = ("o200k_base", "cl100k_base", "p50k_base", "gpt2")

ENCODER_HF = "hf"
ENCODER_TIKTOKEN = "tiktoken"
ENCODER_ESTIMATE = "estimate"


def estimate_tokens(text: str) -> int:
    """
    Uoc luong so token khi encoder khong kha dung.

    Quy tac: ~4 ky tu = 1 token (heuristic pho bien).
    Day la uoc luong, khong chinh xac 100%.
    """
    if not text:
        return 0
    return max(1, len(text) // 4)


class Encoder:
    """
    Lazy-loaded tokenizer, thread-safe.

    Usage:
        encoder = Encoder()                      # tiktoken
        encoder = Encoder("Xenova/claude-tokenizer")  # HF tokenizers
        encoder.count("hello world")
    """

    def __init__(self, tokenizer_repo: Optional[str] = None):
        self._tokenizer_repo = tokenizer_repo
        self._backend: Optional[Any] = None
        self._encoder_type = ""
        self._lock = threading.Lock()
        self._warned = False

    @property
    def tokenizer_repo(self) -> Optional[str]:
        return self._tokenizer_repo

    @property
    def encoder_type(self) -> str:
        """"hf", "tiktoken" hoac "estimate" (load neu chua load)."""
        self._ensure_loaded()
        return self._encoder_type

    def _ensure_loaded(self) -> None:
        # Fast path: da khoi tao (khong can lock)
        if self._encoder_type:
            return

        with self._lock:
            if self._encoder_type:
                return

            if self._tokenizer_repo:
                try:
                    self._backend = Tokenizer.from_pretrained(self._tokenizer_repo)
                    self._encoder_type = ENCODER_HF
                    log_info(f"[Encoders] Using {self._tokenizer_repo} tokenizer")
                    return
                except Exception as e:
                    # Fallback sang tiktoken
                    log_error(
                        f"[Encoders] Failed to load tokenizer from {self._tokenizer_repo}", e
                    )

            for encoding_name in TIKTOKEN_ENCODINGS:
                try:
                    self._backend = tiktoken.get_encoding(encoding_name)
                    self._encoder_type = ENCODER_TIKTOKEN
                    log_info(f"[Encoders] Using tiktoken {encoding_name}")
                    return
                except Exception:
                    continue

            self._backend = None
            self._encoder_type = ENCODER_ESTIMATE

    def _warn_estimate(self) -> None:
        if not self._warned:
            self._warned = True
            log_warning("[Encoders] No tokenizer available, using ~4 chars/token estimate")

    def count(self, text: str) -> int:
        """Dem so token trong text."""
        if not text:
            return 0
        self._ensure_loaded()

        backend = self._backend
        if backend is None:
            self._warn_estimate()
            return estimate_tokens(text)

        try:
            if self._encoder_type == ENCODER_HF:
                return len(backend.encode(text).ids)
            return len(backend.encode_ordinary(text))
        except Exception as e:
            log_error("[Encoders] Encode failed, using estimate", e)
            return estimate_tokens(text)

    def count_batch(self, texts: List[str]) -> List[int]:
        """
        Dem nhieu texts cung luc.

        HF: encode_batch() (Rust multi-thread). tiktoken: encode_ordinary_batch().
        """
        if not texts:
            return []
        self._ensure_loaded()

        backend = self._backend
        if backend is None:
            self._warn_estimate()
            return [estimate_tokens(text) for text in texts]

        try:
            if self._encoder_type == ENCODER_HF:
                return [len(encoding.ids) for encoding in backend.encode_batch(texts)]
            return [len(tokens) for tokens in backend.encode_ordinary_batch(texts)]
        except Exception as e:
            log_error("[Encoders] Batch encode failed, counting one by one", e)
            return [self.count(text) for text in texts]

    def reset(self) -> None:
        """Bo encoder da load (vd: sau khi doi tokenizer_repo)."""
        with self._lock:
            self._backend = None
            self._encoder_type = ""
            self._warned = False
        log_info("[Encoders] Encoder reset - will reload on next count")

    def set_tokenizer_repo(self, tokenizer_repo: Optional[str]) -> None:
        if tokenizer_repo != self._tokenizer_repo:
            self._tokenizer_repo = tokenizer_repo
            self.reset()
