"""
WorkspaceService - Wiring cho 1 workspace root.

Tao va so huu:
- OwnerExecutor (owning context cho moi tree mutation)
- TreeModel, SelectionCoordinator, ChangeReconciler
- FileWatcher (neu settings.watch_enabled)

Usage:
    with WorkspaceService(settings) as workspace:
        workspace.open(Path("/path/to/project"))
        workspace.toggle("/path/to/project/src")
        workspace.wait_idle()
        print(workspace.total_tokens)
"""

import locale
from pathlib import Path
from typing import Callable, Optional

from config.app_settings import AppSettings
from core.errors import WorkspaceNotOpenError
from core.ignore_engine import IgnoreEngine, build_ignore_engine
from core.logging_config import flush_logs, log_info, log_warning
from core.tree_model import TreeModel
from core.utils.cancellation import TaskHandle
from core.utils.file_scanner import DirectoryScanner, ProgressCallback
from core.utils.owner_executor import OwnerExecutor
from services.change_reconciler import ChangeReconciler
from services.file_watcher_pkg import FileWatcher, IgnoreEngineStrategy
from services.interfaces.file_watcher_service import IFileWatcherService
from services.interfaces.tokenization_service import ITokenCounter
from services.selection_coordinator import SelectionCoordinator, SelectionUpdate
from services.session_state import load_selection, save_selection
from services.tokenization_service import TokenizationService


def init_collation_locale() -> None:
    """
    Set LC_COLLATE tu environment de scanner sap xep ten theo locale.

    Locale khong ton tai tren may -> giu locale hien tai (log warning).
    """
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        log_warning(f"[Workspace] Could not set collation locale: {e}")


class WorkspaceService:
    """Facade: mo 1 root, toggle selection, refresh, luu/khoi phuc selection."""

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        token_counter: Optional[ITokenCounter] = None,
        watcher_factory: Optional[Callable[[IgnoreEngineStrategy], IFileWatcherService]] = None,
        session_file: Optional[Path] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """
        Args:
            settings: AppSettings (mac dinh: defaults)
            token_counter: ITokenCounter (mac dinh: TokenizationService theo settings)
            watcher_factory: Tao watcher tu ignore strategy (mac dinh: FileWatcher)
            session_file: File luu selection (mac dinh: ~/.context-tree/session.json)
            progress_callback: Scan progress (throttled 200ms)
        """
        self._settings = settings or AppSettings()
        self._token_counter = token_counter or TokenizationService(
            tokenizer_repo=self._settings.tokenizer_repo,
            max_file_bytes=self._settings.max_file_bytes,
        )
        self._watcher_factory = watcher_factory or FileWatcher
        self._session_file = session_file
        self._progress_callback = progress_callback
        init_collation_locale()

        self._root: Optional[Path] = None
        self._owner: Optional[OwnerExecutor] = None
        self._model: Optional[TreeModel] = None
        self._coordinator: Optional[SelectionCoordinator] = None
        self._reconciler: Optional[ChangeReconciler] = None
        self._watcher: Optional[IFileWatcherService] = None

    # === Properties ===

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def is_open(self) -> bool:
        return self._root is not None

    @property
    def root(self) -> Path:
        self._require_open()
        return self._root

    @property
    def model(self) -> TreeModel:
        self._require_open()
        return self._model

    @property
    def coordinator(self) -> SelectionCoordinator:
        self._require_open()
        return self._coordinator

    @property
    def reconciler(self) -> ChangeReconciler:
        self._require_open()
        return self._reconciler

    @property
    def watcher(self) -> Optional[IFileWatcherService]:
        return self._watcher

    @property
    def total_tokens(self) -> int:
        return self.coordinator.total_tokens

    def _require_open(self) -> None:
        if self._root is None:
            raise WorkspaceNotOpenError("No workspace is open")

    # === Lifecycle ===

    def open(self, root: Path, timeout: Optional[float] = None) -> TaskHandle:
        """
        Mo workspace: scan + dem tokens (dong bo), roi start watcher neu bat.

        Raises:
            NotADirectoryError: root khong phai thu muc

        Returns:
            TaskHandle cua lan scan dau (handle.error != None neu scan loi)
        """
        root = Path(root).resolve()
        if not root.is_dir():
            raise NotADirectoryError(str(root))

        self.close()

        settings = self._settings
        owner = OwnerExecutor()
        model = TreeModel()
        coordinator = SelectionCoordinator(
            model,
            self._token_counter,
            owner,
            max_concurrency=settings.max_concurrency,
            batch_size=settings.recount_batch_size,
        )

        def engine_factory() -> IgnoreEngine:
            return build_ignore_engine(root, settings)

        reconciler = ChangeReconciler(
            root,
            model,
            coordinator,
            self._token_counter,
            owner,
            engine_factory,
            scanner=DirectoryScanner(
                max_file_bytes=settings.max_file_bytes,
                progress_callback=self._progress_callback,
            ),
            max_change_batch=settings.max_change_batch,
            max_concurrency=settings.max_concurrency,
            batch_size=settings.recount_batch_size,
        )

        self._root = root
        self._owner = owner
        self._model = model
        self._coordinator = coordinator
        self._reconciler = reconciler

        log_info(f"[Workspace] Opening {root}")
        handle = reconciler.refresh(timeout)

        if settings.watch_enabled:
            watcher = self._watcher_factory(
                IgnoreEngineStrategy(lambda: reconciler.ignore_engine)
            )
            if watcher.start(root, reconciler.handle_batch, settings.debounce_seconds):
                self._watcher = watcher
            else:
                log_warning(f"[Workspace] Watcher unavailable for {root}, use refresh()")

        return handle

    def close(self) -> None:
        """Stop watcher, cancel moi viec dang chay, dung thread pools."""
        if self._root is None:
            return

        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        if self._reconciler is not None:
            self._reconciler.shutdown()
        if self._coordinator is not None:
            self._coordinator.shutdown()
        if self._owner is not None:
            self._owner.shutdown()

        log_info(f"[Workspace] Closed {self._root}")
        flush_logs()
        self._root = None
        self._owner = None
        self._model = None
        self._coordinator = None
        self._reconciler = None

    def __enter__(self) -> "WorkspaceService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # === Operations ===

    def toggle(self, path: str) -> Optional[SelectionUpdate]:
        return self.coordinator.toggle_selection(str(path))

    def refresh(self, timeout: Optional[float] = None) -> TaskHandle:
        """Manual full rescan (dong bo), khong phu thuoc watcher."""
        return self.reconciler.refresh(timeout)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Doi rescan/incremental va recount selection hien tai ket thuc."""
        return self.reconciler.wait_idle(timeout) and self.coordinator.wait_idle(timeout)

    def save_selection(self) -> bool:
        return save_selection(self.root, self.coordinator.snapshot(), self._session_file)

    def restore_saved_selection(self) -> int:
        """
        Chon lai selection da luu cho root hien tai.

        Returns:
            So files duoc chon lai (file khong con ton tai bi bo qua)
        """
        paths = load_selection(self.root, self._session_file)
        return self.coordinator.restore_selection(paths)
