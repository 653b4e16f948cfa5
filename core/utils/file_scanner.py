"""
File Scanner - Ignore-aware directory tree scanning voi cancellation token.

Features:
- Depth-first, KHONG bao gio follow symlinks (symlink bi bo qua hoan toan)
- Entry bi IgnoreEngine loai: khong tao node, khong recurse vao
- Children: directories truoc, roi ten (locale-aware, case-insensitive)
- Entry khong doc duoc: bo qua + log, scan van tiep tuc
- Throttled progress updates (200ms interval)
- Cancellation qua CancellationToken (raise ScanCancelledError, khong tra
  ve cay dang do)
"""

import locale
import os
import time
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from config.app_settings import DEFAULT_MAX_FILE_BYTES
from core.errors import ScanCancelledError
from core.ignore_engine import IgnoreEngine
from core.logging_config import log_debug, log_error, log_info, log_warning
from core.tree_model import FileNode
from core.utils.cancellation import CancellationToken
from core.utils.file_utils import is_system_path


@dataclass
class ScanProgress:
    """
    Progress information during directory scanning.

    Attributes:
        directories: Số directories đã scan
        files: Số files đã tìm thấy
        current_path: Path đang được scan
    """

    directories: int = 0
    files: int = 0
    current_path: str = ""


@dataclass
class ScanResult:
    """
    Ket qua 1 lan scan.

    Attributes:
        root_node: Node cua scan root
        registry: Duong dan tuyet doi -> node (gom ca root)
        file_count: So files trong tree
        dir_count: So folders trong tree (gom ca root)
        skipped: So entries khong doc duoc (permission, stat loi)
    """

    root_node: FileNode
    registry: Dict[str, FileNode] = field(default_factory=dict)
    file_count: int = 0
    dir_count: int = 0
    skipped: int = 0


# Type alias cho progress callback
ProgressCallback = Callable[[ScanProgress], None]


def _fold_name(name: str) -> str:
    """casefold + bo dau ('Éclair' -> 'eclair') truoc khi collate."""
    decomposed = unicodedata.normalize("NFKD", name.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def sort_key(name: str, is_dir: bool) -> Tuple[bool, str, str]:
    """
    Directories truoc, roi ten locale-aware khong phan biet hoa thuong.

    strxfrm theo LC_COLLATE cua process (WorkspaceService set tu environment).
    """
    return (not is_dir, locale.strxfrm(_fold_name(name)), name)


class _ScanState:
    """Mutable state cua 1 lan scan (scanner co the chay song song)."""

    def __init__(self, root_node: FileNode, cancel_token: Optional[CancellationToken]):
        self.result = ScanResult(root_node=root_node, registry={root_node.path: root_node})
        self.progress = ScanProgress()
        self.last_progress_time: float = 0
        self.cancel_token = cancel_token


class DirectoryScanner:
    """
    Build FileNode tree tu filesystem, chi giu entries IgnoreEngine cho qua.

    Scanner khong giu state giua cac lan scan; moi scan() doc lai filesystem.
    """

    # Constants
    THROTTLE_INTERVAL_MS = 200  # 200ms giữa các progress updates
    CANCEL_CHECK_EVERY = 50  # Check cancellation moi 50 files

    def __init__(
        self,
        max_file_bytes: Optional[int] = DEFAULT_MAX_FILE_BYTES,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self._max_file_bytes = max_file_bytes
        self._progress_callback = progress_callback

    def scan(
        self,
        root_path: Path,
        ignore_engine: IgnoreEngine,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ScanResult:
        """
        Scan directory voi progress updates.

        Args:
            root_path: Directory root để scan
            ignore_engine: Engine quyet dinh entry nao bi loai
            cancel_token: Token de huy scan giua chung

        Returns:
            ScanResult voi root node + registry

        Raises:
            NotADirectoryError: root_path khong phai thu muc
            ScanCancelledError: cancel_token bi cancel truoc khi scan xong
        """
        root_path = Path(root_path).resolve()
        if not root_path.is_dir():
            raise NotADirectoryError(str(root_path))

        started = time.perf_counter()
        root_node = FileNode(
            path=str(root_path),
            name=root_path.name or str(root_path),
            is_dir=True,
        )
        state = _ScanState(root_node, cancel_token)
        state.result.dir_count = 1

        entries = self._list_entries(root_path, state)
        if entries is not None:
            self._scan_directory(root_node, "", entries, ignore_engine, state)

        self._emit_progress(state, force=True)

        result = state.result
        log_info(
            f"[DirectoryScanner] Scanned {root_path}: {result.file_count} files, "
            f"{result.dir_count} dirs, {result.skipped} skipped "
            f"in {(time.perf_counter() - started) * 1000:.0f}ms"
        )
        return result

    def _list_entries(self, dir_path: Path, state: _ScanState) -> Optional[List[os.DirEntry]]:
        """Doc entries cua 1 directory. None neu khong doc duoc (da log)."""
        try:
            with os.scandir(dir_path) as entries_iter:
                return list(entries_iter)
        except OSError as e:
            state.result.skipped += 1
            log_warning(f"[DirectoryScanner] Cannot read directory {dir_path}: {e}")
            return None

    def _check_cancelled(self, state: _ScanState) -> None:
        if state.cancel_token is not None and state.cancel_token.is_cancelled():
            raise ScanCancelledError(state.result.root_node.path)

    def _scan_directory(
        self,
        dir_node: FileNode,
        rel_dir: str,
        entries: List[os.DirEntry],
        ignore_engine: IgnoreEngine,
        state: _ScanState,
    ) -> None:
        """Scan mot directory recursively (entries da duoc doc san)."""
        self._check_cancelled(state)

        state.progress.directories += 1
        state.progress.current_path = dir_node.path
        self._emit_progress(state)

        # Phan loai 1 lan, symlinks bi bo qua hoan toan
        classified: List[Tuple[os.DirEntry, bool]] = []
        for entry in entries:
            try:
                if entry.is_symlink():
                    continue
                if entry.is_dir(follow_symlinks=False):
                    classified.append((entry, True))
                elif entry.is_file(follow_symlinks=False):
                    classified.append((entry, False))
            except OSError as e:
                state.result.skipped += 1
                log_warning(f"[DirectoryScanner] Cannot stat {entry.path}: {e}")

        classified.sort(key=lambda item: sort_key(item[0].name, item[1]))

        file_index = 0
        for entry, is_dir in classified:
            rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name

            if is_system_path(Path(entry.path)):
                continue
            if ignore_engine.is_ignored(rel_path, is_dir):
                continue

            if is_dir:
                child_entries = self._list_entries(Path(entry.path), state)
                if child_entries is None:
                    continue
                child = FileNode(path=entry.path, name=entry.name, is_dir=True)
                dir_node.add_child(child)
                state.result.registry[child.path] = child
                state.result.dir_count += 1
                self._scan_directory(child, rel_path, child_entries, ignore_engine, state)
                continue

            file_index += 1
            if file_index % self.CANCEL_CHECK_EVERY == 0:
                self._check_cancelled(state)

            if self._max_file_bytes is not None:
                try:
                    size = entry.stat(follow_symlinks=False).st_size
                except OSError as e:
                    state.result.skipped += 1
                    log_warning(f"[DirectoryScanner] Cannot stat {entry.path}: {e}")
                    continue
                if size > self._max_file_bytes:
                    log_debug(
                        f"[DirectoryScanner] Skipping large file {entry.path} ({size} bytes)"
                    )
                    continue

            child = FileNode(path=entry.path, name=entry.name, is_dir=False)
            dir_node.add_child(child)
            state.result.registry[child.path] = child
            state.result.file_count += 1
            state.progress.files += 1

    def _emit_progress(self, state: _ScanState, force: bool = False) -> None:
        """
        Emit progress với throttling.

        Args:
            state: State cua scan hien tai
            force: Bỏ qua throttle và emit ngay
        """
        callback = self._progress_callback
        if not callback:
            return

        current_time = time.time() * 1000  # Convert to ms
        time_since_last = current_time - state.last_progress_time

        if force or time_since_last >= self.THROTTLE_INTERVAL_MS:
            state.last_progress_time = current_time
            # Copy progress để an toàn
            progress_copy = ScanProgress(
                directories=state.progress.directories,
                files=state.progress.files,
                current_path=state.progress.current_path,
            )

            try:
                callback(progress_copy)
            except Exception as e:
                log_error("[DirectoryScanner] Progress callback failed", e)
