"""
AppSettings - Typed settings dataclass cho Context Tree.

Thay the Dict[str, Any] bang dataclass co type hints, validation va default values.
Tat ca settings duoc truy cap qua typed fields thay vi string keys.

Settings KHONG duoc doc truc tiep tu core: caller (WorkspaceService) load
AppSettings roi truyen gia tri vao constructor cua IgnoreEngine,
DirectoryScanner, SelectionCoordinator va ChangeReconciler.

Su dung:
    settings = load_app_settings()
    engine = build_ignore_engine(root, settings)
"""

import typing
from dataclasses import dataclass
from typing import Any, Optional


# === Default values cho settings ===
DEFAULT_MAX_FILE_BYTES = 5 * 1024 * 1024


@dataclass
class AppSettings:
    """
    Typed settings cho Context Tree.

    Moi field tuong ung voi mot key trong settings.json.
    Default values duoc su dung khi settings.json chua co key tuong ung.
    """

    # --- Ignore Settings ---
    # Co respect .gitignore (+ .git/info/exclude) hay khong
    respect_gitignore: bool = True
    # Co respect .ignore hay khong
    respect_dotignore: bool = True
    # Hien thi file/folder bat dau bang "."
    show_hidden_files: bool = False

    # --- Default exclusion categories (user co the tat tung loai) ---
    exclude_node_modules: bool = True
    exclude_git: bool = True
    exclude_build: bool = True
    exclude_dist: bool = True
    exclude_next: bool = True
    exclude_venv: bool = True
    exclude_ds_store: bool = True
    exclude_derived_data: bool = True

    # Pattern don gian cua user (separated by newline, "#" la comment)
    custom_patterns: str = ""

    # --- Scan / Token Settings ---
    # Files lon hon gioi han nay bi bo qua khi scan (None = khong gioi han)
    max_file_bytes: Optional[int] = DEFAULT_MAX_FILE_BYTES
    # So workers toi da khi dem token
    max_concurrency: int = 8
    # So files moi batch khi recount token cho selection
    recount_batch_size: int = 100
    # HF repo cho tokenizer (None = dung tiktoken)
    tokenizer_repo: Optional[str] = None

    # --- File Watcher Settings ---
    watch_enabled: bool = True
    # Thoi gian gom nhom events (giay)
    debounce_seconds: float = 1.0
    # Batch lon hon gioi han nay bi bo qua (vd: git checkout)
    max_change_batch: int = 100

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppSettings":
        """
        Tao AppSettings tu dict, chi lay cac keys trung voi field names.

        Bao gom type validation: neu value co type khong khop voi
        field declaration, se bo qua va dung default thay the.

        Args:
            data: Dict settings (thuong tu settings.json)

        Returns:
            AppSettings instance voi values tu dict, fallback ve defaults
        """
        type_hints = typing.get_type_hints(cls)

        filtered: dict[str, Any] = {}
        for key, value in data.items():
            if key not in type_hints:
                continue

            expected_type = type_hints[key]

            # Optional[X] chap nhan None hoac X
            allowed: tuple = (expected_type,)
            if typing.get_origin(expected_type) is typing.Union:
                allowed = typing.get_args(expected_type)

            if value is None:
                if type(None) in allowed:
                    filtered[key] = value
                continue

            # Strict type check: reject bool when expecting int
            # (isinstance(True, int) == True in Python, but we want strict validation)
            if isinstance(value, bool) and bool not in allowed:
                continue

            # int hop le cho field float
            if float in allowed and isinstance(value, int):
                filtered[key] = float(value)
                continue

            if isinstance(value, tuple(t for t in allowed if isinstance(t, type))):
                filtered[key] = value
            # Khong raise loi, chi bo qua value sai type -> dung default

        return cls(**filtered)

    def to_dict(self) -> dict[str, Any]:
        """Chuyen doi AppSettings thanh dict de luu xuong file."""
        return {name: getattr(self, name) for name in self.__dataclass_fields__}

    def get_custom_patterns_list(self) -> list[str]:
        """
        Parse custom_patterns string thanh list cac patterns.

        Loai bo dong trong va comments (bat dau bang #).
        """
        return [
            line.strip()
            for line in self.custom_patterns.splitlines()
            if line.strip() and not line.strip().startswith("#")
        ]

    def get_default_exclusions(self) -> set[str]:
        """Tap hop ten cac default exclusions dang duoc bat."""
        from core.constants import DEFAULT_EXCLUSION_CATEGORIES

        return {
            name
            for setting_name, name in DEFAULT_EXCLUSION_CATEGORIES.items()
            if getattr(self, setting_name, True)
        }

