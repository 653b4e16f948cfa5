"""
Session State Service - Lưu trữ và khôi phục selection theo workspace

File: ~/.context-tree/session.json

{
  "workspaces": {
    "/abs/root": {"selected_files": [...], "saved_at": "2026-01-01T10:00:00"}
  }
}

Restore KHÔNG set flags trực tiếp: caller đưa danh sách path cho
SelectionCoordinator.restore_selection() (chỉ file còn tồn tại được chọn lại).
"""

import json
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from config.paths import SESSION_FILE
from core.logging_config import log_debug, log_error, log_info

_session_lock = threading.Lock()


@dataclass
class WorkspaceSession:
    """Selection đã lưu của 1 workspace root."""

    selected_files: List[str] = field(default_factory=list)
    saved_at: Optional[str] = None


def _session_path(session_file: Optional[Path]) -> Path:
    return session_file if session_file is not None else SESSION_FILE


def _read_all(path: Path) -> Dict[str, Any]:
    try:
        if not path.exists():
            return {}
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        log_debug(f"[Session] Could not load {path}: {e}")
        return {}
    if not isinstance(data, dict) or not isinstance(data.get("workspaces"), dict):
        return {}
    return data


def save_selection(
    root: Path,
    selected_files: Iterable[str],
    session_file: Optional[Path] = None,
) -> bool:
    """
    Lưu selection của workspace root (ghi đè entry cũ của root đó).

    Returns:
        True nếu lưu thành công
    """
    path = _session_path(session_file)
    entry = WorkspaceSession(
        selected_files=sorted(set(selected_files)),
        saved_at=datetime.now().isoformat(),
    )

    with _session_lock:
        data = _read_all(path)
        workspaces = data.setdefault("workspaces", {})
        workspaces[str(Path(root))] = asdict(entry)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            log_error(f"[Session] Failed to save session for {root}", e)
            return False

    log_debug(f"[Session] Saved {len(entry.selected_files)} files for {root}")
    return True


def load_selection(root: Path, session_file: Optional[Path] = None) -> List[str]:
    """
    Load selection đã lưu của root.

    Returns:
        Danh sách path (có thể chứa file không còn tồn tại), [] nếu không có
    """
    with _session_lock:
        data = _read_all(_session_path(session_file))

    raw = data.get("workspaces", {}).get(str(Path(root)))
    if not isinstance(raw, dict):
        return []

    files = raw.get("selected_files", [])
    if not isinstance(files, list):
        return []

    selected = [f for f in files if isinstance(f, str)]
    log_info(f"[Session] Loaded {len(selected)} saved files for {root}")
    return selected


def clear_session_state(session_file: Optional[Path] = None) -> bool:
    """Xóa session state file."""
    path = _session_path(session_file)
    with _session_lock:
        try:
            if path.exists():
                path.unlink()
            return True
        except OSError as e:
            log_error(f"[Session] Failed to clear session {path}", e)
            return False
