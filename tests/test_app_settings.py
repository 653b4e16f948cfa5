"""
Tests cho AppSettings dataclass va typed settings API.

Coverage:
- AppSettings.from_dict() voi day du fields, partial fields, extra keys, sai type
- AppSettings.to_dict() roundtrip
- get_custom_patterns_list() / get_default_exclusions()
- load_app_settings() / save_app_settings() / update_app_setting()
"""

import json
import pytest
from unittest.mock import patch

from config.app_settings import DEFAULT_MAX_FILE_BYTES, AppSettings


# ============================================================
# AppSettings dataclass tests
# ============================================================


class TestAppSettings:
    """Test AppSettings dataclass creation va methods."""

    def test_default_values(self):
        """Test AppSettings co default values dung."""
        settings = AppSettings()
        assert settings.respect_gitignore is True
        assert settings.respect_dotignore is True
        assert settings.show_hidden_files is False
        assert settings.max_file_bytes == DEFAULT_MAX_FILE_BYTES
        assert settings.max_concurrency == 8
        assert settings.recount_batch_size == 100
        assert settings.debounce_seconds == 1.0
        assert settings.max_change_batch == 100
        assert settings.tokenizer_repo is None

    def test_from_dict_full(self):
        """Test from_dict voi nhieu fields."""
        data = {
            "respect_gitignore": False,
            "show_hidden_files": True,
            "custom_patterns": "*.bak\nscratch",
            "max_concurrency": 4,
            "debounce_seconds": 0.5,
            "tokenizer_repo": "Xenova/claude-tokenizer",
        }
        settings = AppSettings.from_dict(data)
        assert settings.respect_gitignore is False
        assert settings.show_hidden_files is True
        assert settings.custom_patterns == "*.bak\nscratch"
        assert settings.max_concurrency == 4
        assert settings.debounce_seconds == 0.5
        assert settings.tokenizer_repo == "Xenova/claude-tokenizer"

    def test_from_dict_partial(self):
        """Test from_dict voi chi mot so fields - con lai la defaults."""
        settings = AppSettings.from_dict({"max_concurrency": 2})
        assert settings.max_concurrency == 2
        # Defaults cho cac fields con lai
        assert settings.respect_gitignore is True
        assert settings.watch_enabled is True

    def test_from_dict_extra_keys_ignored(self):
        """Test from_dict bo qua cac keys khong phai AppSettings field."""
        data = {
            "max_concurrency": 2,
            "unknown_key": "should_be_ignored",
            "another_extra": 42,
        }
        settings = AppSettings.from_dict(data)
        assert settings.max_concurrency == 2
        # Extra keys bi bo qua, khong raise loi
        assert not hasattr(settings, "unknown_key")

    def test_from_dict_sai_type_dung_default(self):
        """Value sai type bi bo qua (bool khong duoc chap nhan cho int)."""
        settings = AppSettings.from_dict(
            {"max_concurrency": True, "respect_gitignore": "no", "max_change_batch": "10"}
        )
        assert settings.max_concurrency == 8
        assert settings.respect_gitignore is True
        assert settings.max_change_batch == 100

    def test_from_dict_optional_fields(self):
        """Optional fields chap nhan None, float field chap nhan int."""
        settings = AppSettings.from_dict({"max_file_bytes": None, "debounce_seconds": 2})
        assert settings.max_file_bytes is None
        assert settings.debounce_seconds == 2.0
        assert isinstance(settings.debounce_seconds, float)

    def test_from_dict_none_cho_field_khong_optional(self):
        settings = AppSettings.from_dict({"max_concurrency": None})
        assert settings.max_concurrency == 8

    def test_from_dict_empty(self):
        """Test from_dict voi dict rong -> tat ca defaults."""
        settings = AppSettings.from_dict({})
        defaults = AppSettings()
        assert settings.to_dict() == defaults.to_dict()

    def test_to_dict_roundtrip(self):
        """Test from_dict(to_dict()) cho ket qua giong nhau."""
        original = AppSettings(
            exclude_node_modules=False,
            custom_patterns="*.tmp",
            max_file_bytes=1024,
        )
        restored = AppSettings.from_dict(original.to_dict())
        assert original.to_dict() == restored.to_dict()

    def test_get_custom_patterns_list(self):
        """Test parse custom_patterns string thanh list patterns."""
        settings = AppSettings(custom_patterns="*secret*\n  dist  \n\n# comment\nbuild")
        assert settings.get_custom_patterns_list() == ["*secret*", "dist", "build"]

    def test_get_custom_patterns_list_comments_only(self):
        """Test custom patterns chi co comments."""
        settings = AppSettings(custom_patterns="# comment1\n# comment2")
        assert settings.get_custom_patterns_list() == []

    def test_get_default_exclusions(self):
        """Moi category tat thi ten tuong ung khong con trong set."""
        defaults = AppSettings().get_default_exclusions()
        assert {"node_modules", ".git", "build", "dist", ".venv"} <= defaults

        settings = AppSettings(exclude_node_modules=False, exclude_git=False)
        exclusions = settings.get_default_exclusions()
        assert "node_modules" not in exclusions
        assert ".git" not in exclusions
        assert "dist" in exclusions


# ============================================================
# Typed settings manager API tests
# ============================================================


class TestTypedSettingsManager:
    """Test load_app_settings, save_app_settings, update_app_setting."""

    def test_load_app_settings_no_file(self, tmp_path):
        """Test load khi file chua ton tai -> defaults."""
        from services.settings_manager import load_app_settings

        fake_file = tmp_path / "nonexistent.json"
        with patch("services.settings_manager.SETTINGS_FILE", fake_file):
            settings = load_app_settings()
            assert isinstance(settings, AppSettings)
            assert settings.to_dict() == AppSettings().to_dict()

    def test_load_app_settings_with_file(self, tmp_path):
        """Test load tu existing file."""
        from services.settings_manager import load_app_settings

        settings_file = tmp_path / "settings.json"
        settings_file.write_text(
            json.dumps(
                {
                    "respect_dotignore": False,
                    "max_change_batch": 50,
                }
            )
        )

        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            settings = load_app_settings()
            assert settings.respect_dotignore is False
            assert settings.max_change_batch == 50
            # Default cho cac fields khong co trong file
            assert settings.respect_gitignore is True

    def test_load_app_settings_invalid_json(self, tmp_path):
        """Test load khi file corrupt -> defaults."""
        from services.settings_manager import load_app_settings

        settings_file = tmp_path / "settings.json"
        settings_file.write_text("not json {{{")

        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            settings = load_app_settings()
            assert settings.max_concurrency == 8

    def test_load_app_settings_khong_phai_object(self, tmp_path):
        from services.settings_manager import load_app_settings

        settings_file = tmp_path / "settings.json"
        settings_file.write_text("[1, 2, 3]")

        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            assert load_app_settings().to_dict() == AppSettings().to_dict()

    def test_save_app_settings(self, tmp_path):
        """Test save -> load roundtrip."""
        from services.settings_manager import (
            load_app_settings,
            save_app_settings,
        )

        settings_file = tmp_path / "nested" / "settings.json"

        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            original = AppSettings(show_hidden_files=True, respect_gitignore=False)
            assert save_app_settings(original) is True

            loaded = load_app_settings()
            assert loaded.show_hidden_files is True
            assert loaded.respect_gitignore is False

    def test_save_preserves_extra_keys(self, tmp_path):
        """Test save bao toan extra keys trong file (keys khong thuoc AppSettings)."""
        from services.settings_manager import save_app_settings

        settings_file = tmp_path / "settings.json"
        settings_file.write_text(json.dumps({"custom_key": "custom_value"}))

        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            assert save_app_settings(AppSettings()) is True

            saved = json.loads(settings_file.read_text())
            assert saved["custom_key"] == "custom_value"  # Extra key van con
            assert saved["respect_gitignore"] is True

    def test_update_app_setting_single(self, tmp_path):
        """Test update 1 field."""
        from services.settings_manager import (
            load_app_settings,
            update_app_setting,
        )

        settings_file = tmp_path / "settings.json"

        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            assert update_app_setting(max_concurrency=2) is True
            settings = load_app_settings()
            assert settings.max_concurrency == 2

    def test_update_app_setting_multiple(self, tmp_path):
        """Test update nhieu fields cung luc."""
        from services.settings_manager import (
            load_app_settings,
            update_app_setting,
        )

        settings_file = tmp_path / "settings.json"

        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            assert (
                update_app_setting(
                    custom_patterns="*.log",
                    watch_enabled=False,
                )
                is True
            )

            settings = load_app_settings()
            assert settings.custom_patterns == "*.log"
            assert settings.watch_enabled is False

    def test_update_app_setting_invalid_field(self, tmp_path):
        """Test update voi field khong ton tai -> TypeError."""
        from services.settings_manager import update_app_setting

        settings_file = tmp_path / "settings.json"

        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            with pytest.raises(TypeError, match="not a valid AppSettings field"):
                update_app_setting(invalid_field="value")
