"""Tests for configuration loading and validation."""
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from vault_resort.config import ResortConfig, config


class TestResortConfig:
    """Tests for ResortConfig."""

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("VAULT_RESORT_VAULT_PATH", str(tmp_path))
        monkeypatch.setenv("VAULT_RESORT_FOLDER_LOCATION", "vault_folder")
        monkeypatch.setenv("VAULT_RESORT_VAULT_FOLDER", "media")
        monkeypatch.setenv("VAULT_RESORT_NOTE_EXTENSIONS", "md, .Canvas ,txt")
        monkeypatch.setenv("VAULT_RESORT_IGNORED_FOLDERS", ".git,Templates")

        cfg = ResortConfig()
        assert cfg.get_vault_path() == tmp_path.resolve()
        assert cfg.folder_location == "vault_folder"
        assert cfg.vault_folder == "media"
        assert cfg.get_note_extensions() == frozenset({"md", "canvas", "txt"})
        assert cfg.get_ignored_folders() == frozenset({".git", "Templates"})

    def test_defaults(self, monkeypatch):
        for name in (
            "VAULT_RESORT_FOLDER_LOCATION",
            "VAULT_RESORT_FOLDER_TEMPLATE",
            "VAULT_RESORT_NOTE_EXTENSIONS",
        ):
            monkeypatch.delenv(name, raising=False)

        cfg = ResortConfig()
        assert cfg.folder_location == "subfolder"
        assert cfg.folder_template == "{notename} (attachments)"
        assert cfg.get_note_extensions() == frozenset({"md", "canvas"})

    def test_rejects_unknown_location(self):
        with pytest.raises(PydanticValidationError):
            ResortConfig(folder_location="nowhere")

    def test_rejects_empty_template(self):
        with pytest.raises(PydanticValidationError):
            ResortConfig(folder_location="subfolder", folder_template="  ")

    def test_rejects_notefolder_in_subfolder_mode(self):
        with pytest.raises(PydanticValidationError):
            ResortConfig(folder_location="subfolder", folder_template="{notefolder}/assets")
        cfg = ResortConfig(folder_location="vault_folder", folder_template="{notefolder}/assets")
        assert cfg.folder_template == "{notefolder}/assets"

    def test_same_folder_allows_empty_template(self):
        cfg = ResortConfig(folder_location="same_folder", folder_template="")
        assert cfg.folder_location == "same_folder"

    def test_rejects_empty_extensions(self):
        with pytest.raises(PydanticValidationError):
            ResortConfig(note_extensions=" , ")

    def test_assignment_is_validated(self):
        cfg = ResortConfig(folder_location="subfolder", folder_template="{notename}")
        with pytest.raises(PydanticValidationError):
            cfg.folder_location = "nowhere"

    def test_test_config_points_at_vault(self, test_config, vault_dir):
        assert config.get_vault_path() == Path(vault_dir).resolve()
