"""Tests for the link cache and link resolution."""
import pytest

from vault_resort.models.schema import VaultFile
from vault_resort.storage.link_cache import LinkCache


@pytest.fixture
def resolver_vault(write_files):
    write_files({
        "Docs/A.md": "![[img.png]]",
        "Docs/B.md": "",
        "Docs/img.png": b"docs",
        "Other/img.png": b"other",
        "Other/Deep/chart.PNG": b"chart",
        "root.pdf": b"pdf",
        "Readme.md": "",
    })


class TestLinkCache:
    """Tests for caching of note link records."""

    def test_force_resolve_parses_notes(self, resolver_vault, link_cache):
        count = link_cache.force_resolve()
        assert count == 3
        cached = link_cache.get_cached_links(VaultFile(path="Docs/A.md"))
        assert [r.link for r in cached.embeds] == ["img.png"]

    def test_note_extensions(self, resolver_vault, vault):
        cache = LinkCache(vault, note_extensions=[".MD"])
        assert cache.is_note(VaultFile(path="Docs/A.md"))
        assert not cache.is_note(VaultFile(path="board.canvas"))
        assert not cache.is_note(VaultFile(path="Docs/img.png"))

    def test_force_resolve_sees_edits(self, resolver_vault, vault_dir, link_cache):
        link_cache.force_resolve()
        (vault_dir / "Docs" / "B.md").write_text("![[root.pdf]]", encoding="utf-8")
        note = VaultFile(path="Docs/B.md")
        assert link_cache.get_cached_links(note).is_empty

        link_cache.force_resolve()
        assert [r.link for r in link_cache.get_cached_links(note).embeds] == ["root.pdf"]

    def test_lazy_parse_without_resolve(self, resolver_vault, link_cache):
        cached = link_cache.get_cached_links(VaultFile(path="Docs/A.md"))
        assert not cached.is_empty

    def test_canvas_notes(self, write_files, link_cache):
        write_files({
            "board.canvas": '{"nodes": [{"id": "1", "type": "file", "file": "img.png"}]}',
            "img.png": b"x",
        })
        link_cache.force_resolve()
        cached = link_cache.get_cached_links(VaultFile(path="board.canvas"))
        assert [r.link for r in cached.embeds] == ["img.png"]

    def test_ignored_folders_are_not_indexed(self, write_files, link_cache):
        write_files({
            ".obsidian/workspace.json": "{}",
            ".trash/old.png": b"x",
            "Note.md": "",
        })
        assert [f.path for f in link_cache.files()] == ["Note.md"]


class TestResolve:
    """Tests for link resolution order."""

    def test_exact_path(self, resolver_vault, link_cache):
        assert link_cache.resolve("Other/img.png", "Docs/A.md").path == "Other/img.png"

    def test_implied_markdown_extension(self, resolver_vault, link_cache):
        assert link_cache.resolve("Docs/B", "Readme.md").path == "Docs/B.md"

    def test_relative_to_source_folder(self, resolver_vault, link_cache):
        assert link_cache.resolve("img.png", "Docs/A.md").path == "Docs/img.png"

    def test_dot_relative(self, resolver_vault, link_cache):
        assert link_cache.resolve("../Other/img.png", "Docs/A.md").path == "Other/img.png"
        assert link_cache.resolve("./img.png", "Docs/A.md").path == "Docs/img.png"

    def test_dot_relative_escaping_vault(self, resolver_vault, link_cache):
        assert link_cache.resolve("../../img.png", "Docs/A.md") is None

    def test_basename_prefers_shortest_path(self, resolver_vault, link_cache):
        # Neither copy is in the source folder: shortest path, then lexicographic
        assert link_cache.resolve("img.png", "Readme.md").path == "Docs/img.png"

    def test_suffix_match(self, resolver_vault, link_cache):
        assert link_cache.resolve("Deep/chart.PNG", "Readme.md").path == "Other/Deep/chart.PNG"

    def test_case_insensitive_fallback(self, resolver_vault, link_cache):
        assert link_cache.resolve("chart.png", "Readme.md").path == "Other/Deep/chart.PNG"
        assert link_cache.resolve("docs/IMG.png", "Readme.md").path == "Docs/img.png"

    def test_unresolved(self, resolver_vault, link_cache):
        assert link_cache.resolve("missing.png", "Docs/A.md") is None
        assert link_cache.resolve("   ", "Docs/A.md") is None
