"""
Unit tests cho Session State Service
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from services.session_state import (
    WorkspaceSession,
    clear_session_state,
    load_selection,
    save_selection,
)


class TestWorkspaceSession:
    """Test WorkspaceSession dataclass"""

    def test_default_values(self):
        state = WorkspaceSession()
        assert state.selected_files == []
        assert state.saved_at is None


class TestSaveLoadSelection:
    """Test save and load selection"""

    @pytest.fixture
    def session_file(self, tmp_path: Path) -> Path:
        return tmp_path / "state" / "session.json"

    def test_save_and_load(self, session_file: Path):
        root = Path("/home/user/project")
        files = ["/home/user/project/b.py", "/home/user/project/a.py"]

        assert save_selection(root, files, session_file) is True
        assert session_file.exists()
        assert load_selection(root, session_file) == sorted(files)

    def test_format_file(self, session_file: Path):
        save_selection(Path("/r"), ["/r/a.py", "/r/a.py"], session_file)
        data = json.loads(session_file.read_text(encoding="utf-8"))

        entry = data["workspaces"][str(Path("/r"))]
        assert entry["selected_files"] == ["/r/a.py"]
        assert entry["saved_at"]

    def test_nhieu_workspace_doc_lap(self, session_file: Path):
        save_selection(Path("/one"), ["/one/a.py"], session_file)
        save_selection(Path("/two"), ["/two/b.py"], session_file)
        save_selection(Path("/one"), ["/one/c.py"], session_file)

        assert load_selection(Path("/one"), session_file) == ["/one/c.py"]
        assert load_selection(Path("/two"), session_file) == ["/two/b.py"]

    def test_load_workspace_chua_luu(self, session_file: Path):
        assert load_selection(Path("/nowhere"), session_file) == []

    def test_load_file_hong(self, session_file: Path):
        session_file.parent.mkdir(parents=True)
        session_file.write_text("{not json", encoding="utf-8")
        assert load_selection(Path("/r"), session_file) == []

    def test_load_bo_qua_entry_sai_kieu(self, session_file: Path):
        session_file.parent.mkdir(parents=True)
        session_file.write_text(
            json.dumps({"workspaces": {str(Path("/r")): {"selected_files": ["/r/a.py", 3, None]}}}),
            encoding="utf-8",
        )
        assert load_selection(Path("/r"), session_file) == ["/r/a.py"]

    def test_save_ghi_de_file_hong(self, session_file: Path):
        session_file.parent.mkdir(parents=True)
        session_file.write_text("garbage", encoding="utf-8")

        assert save_selection(Path("/r"), ["/r/a.py"], session_file)
        assert load_selection(Path("/r"), session_file) == ["/r/a.py"]

    def test_default_session_file(self, tmp_path: Path):
        default_file = tmp_path / "session.json"
        with patch("services.session_state.SESSION_FILE", default_file):
            assert save_selection(Path("/r"), ["/r/x.py"])
            assert load_selection(Path("/r")) == ["/r/x.py"]
        assert default_file.exists()


class TestClearSession:
    def test_clear(self, tmp_path: Path):
        session_file = tmp_path / "session.json"
        save_selection(Path("/r"), ["/r/a.py"], session_file)

        assert clear_session_state(session_file) is True
        assert not session_file.exists()
        assert load_selection(Path("/r"), session_file) == []

    def test_clear_khi_chua_co_file(self, tmp_path: Path):
        assert clear_session_state(tmp_path / "missing.json") is True
