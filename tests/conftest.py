"""Common test fixtures for Vault Resort."""

import tempfile
from pathlib import Path

import pytest

from vault_resort import observability
from vault_resort.config import config
from vault_resort.services.attachment_folders import AttachmentFolderPolicy
from vault_resort.services.resort_service import ResortService
from vault_resort.storage.link_cache import LinkCache
from vault_resort.storage.vault import FileSystemVault


@pytest.fixture(autouse=True)
def isolated_metrics(monkeypatch, tmp_path_factory):
    """Keep the global metrics collector away from the user's home directory."""
    metrics_file = tmp_path_factory.mktemp("metrics") / "metrics.json"
    monkeypatch.setattr(observability.metrics, "metrics_file", metrics_file)
    monkeypatch.setattr(observability.metrics, "save_every", 0)
    observability.metrics.reset()
    yield observability.metrics
    observability.metrics.reset()


@pytest.fixture
def vault_dir():
    """Create a temporary vault directory."""
    with tempfile.TemporaryDirectory() as root:
        yield Path(root)


@pytest.fixture
def write_files(vault_dir):
    """Write files into the temporary vault.

    Takes a mapping of store path to content; ``bytes`` values are written
    as binary, everything else as UTF-8 text.
    """
    def _write(files):
        for path, content in files.items():
            target = vault_dir / path
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content, encoding="utf-8")
        return vault_dir
    return _write


@pytest.fixture
def vault(vault_dir):
    """Create a FileSystemVault over the temporary directory."""
    return FileSystemVault(vault_dir)


@pytest.fixture
def link_cache(vault):
    """Create a link cache over the test vault."""
    return LinkCache(vault)


@pytest.fixture
def assets_policy():
    """Canonical folder ``<note folder>/<note name>/assets``."""
    return AttachmentFolderPolicy("subfolder", "{notename}/assets")


@pytest.fixture
def resort_service(vault, link_cache, assets_policy):
    """Create a ResortService with the ``{notename}/assets`` policy."""
    return ResortService(vault, link_cache, assets_policy)


@pytest.fixture
def test_config(vault_dir, monkeypatch):
    """Point the global config at the test vault (auto-restored)."""
    monkeypatch.setattr(config, "vault_path", vault_dir)
    monkeypatch.setattr(config, "folder_template", "{notename}/assets")
    monkeypatch.setattr(config, "folder_location", "subfolder")
    yield config
