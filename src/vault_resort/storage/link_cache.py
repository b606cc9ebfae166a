"""Per-note link cache and link resolution.

Holds the parsed link records of every note in a vault snapshot and
resolves link text against the vault's files, the way a note editor
resolves ``[[link]]`` text from a given source note.
"""
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional

from vault_resort.exceptions import VaultError
from vault_resort.models.schema import CachedLinks, VaultFile
from vault_resort.observability import traced
from vault_resort.storage.markdown_parser import MarkdownLinkParser
from vault_resort.storage.vault import FileSystemVault
from vault_resort.utils import (
    ROOT_FOLDER,
    join_paths,
    normalize_path,
    parent_path,
    parse_file_path,
    resolve_relative,
)

logger = logging.getLogger(__name__)

DEFAULT_NOTE_EXTENSIONS: FrozenSet[str] = frozenset({"md", "canvas"})


class LinkCache:
    """Link records for every note plus a link resolver over the vault.

    The cache is filled from disk by :meth:`force_resolve`; until then, or
    for notes added later, :meth:`get_cached_links` parses on demand.

    Args:
        vault: Vault to read notes and list files from.
        parser: Link parser (a default one is created when omitted).
        note_extensions: Extensions, without dot, of note files.
    """

    def __init__(
        self,
        vault: FileSystemVault,
        parser: Optional[MarkdownLinkParser] = None,
        note_extensions: Optional[Iterable[str]] = None,
    ) -> None:
        self.vault = vault
        self.parser = parser or MarkdownLinkParser()
        self.note_extensions = (
            frozenset(e.lower().lstrip(".") for e in note_extensions)
            if note_extensions is not None
            else DEFAULT_NOTE_EXTENSIONS
        )
        self._links: Dict[str, CachedLinks] = {}
        self._files_by_path: Dict[str, VaultFile] = {}
        self._files_by_name: Dict[str, List[VaultFile]] = {}
        self._files: List[VaultFile] = []
        self._indexed = False

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    @traced("force_resolve")
    def force_resolve(self) -> int:
        """Drop all cached state and re-read every note from disk.

        Returns:
            Number of notes parsed.
        """
        self._links.clear()
        self._index_files()
        count = 0
        for file in self._files:
            if self.is_note(file):
                self._links[file.path] = self._parse(file)
                count += 1
        logger.debug(f"Link cache resolved: {count} notes, {len(self._files)} files")
        return count

    def _index_files(self) -> None:
        self._files = self.vault.list_files()
        self._files_by_path = {f.path: f for f in self._files}
        self._files_by_name = {}
        for f in self._files:
            self._files_by_name.setdefault(f.name.lower(), []).append(f)
        self._indexed = True

    def _ensure_indexed(self) -> None:
        if not self._indexed:
            self._index_files()

    def _parse(self, note: VaultFile) -> CachedLinks:
        try:
            content = self.vault.read_text(note)
        except VaultError as e:
            logger.warning(f"Could not read note {note.path}: {e}")
            return CachedLinks()
        if note.extension == "canvas":
            return self.parser.parse_canvas(content)
        return self.parser.parse(content)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_note(self, file: VaultFile) -> bool:
        """True if the file has a note extension."""
        return file.extension in self.note_extensions

    def files(self) -> List[VaultFile]:
        """All files of the current snapshot."""
        self._ensure_indexed()
        return list(self._files)

    def notes(self) -> List[VaultFile]:
        """All note files of the current snapshot, in listing order."""
        return [f for f in self.files() if self.is_note(f)]

    def get_cached_links(self, note: VaultFile) -> CachedLinks:
        """Get the link records of a note, parsing it if not cached yet."""
        cached = self._links.get(note.path)
        if cached is None:
            cached = self._parse(note)
            self._links[note.path] = cached
        return cached

    # ------------------------------------------------------------------
    # Link resolution
    # ------------------------------------------------------------------

    def resolve(self, linkpath: str, source_path: str) -> Optional[VaultFile]:
        """Resolve link text written in a note to a vault file.

        Tried in order: ``./``/``../`` paths relative to the source note,
        exact vault paths, paths relative to the source note's folder, and
        finally a match on the trailing path segments anywhere in the
        vault, preferring the source note's folder, then the shortest
        path. A ``.md`` extension is implied when the link has none.

        Returns:
            The resolved file, or None if nothing matches.
        """
        self._ensure_indexed()
        linkpath = linkpath.strip()
        if not linkpath:
            return None
        source_folder = parent_path(source_path)

        try:
            if linkpath.startswith(("./", "../")):
                return self._lookup_exact(resolve_relative(source_folder, linkpath))
            target = normalize_path(linkpath)
        except ValueError as e:
            logger.debug(f"Unresolvable link path '{linkpath}': {e}")
            return None
        if target == ROOT_FOLDER:
            return None

        found = self._lookup_exact(target)
        if found is None and source_folder != ROOT_FOLDER:
            found = self._lookup_exact(join_paths(source_folder, target))
        if found is None:
            found = self._lookup_suffix(target, source_folder)
        return found

    def _variants(self, path: str) -> List[str]:
        variants = [path]
        if not path.lower().endswith(".md"):
            variants.append(f"{path}.md")
        return variants

    def _lookup_exact(self, path: str) -> Optional[VaultFile]:
        for variant in self._variants(path):
            found = self._files_by_path.get(variant)
            if found is not None:
                return found
        lowered = {v.lower() for v in self._variants(path)}
        for candidate_path, file in self._files_by_path.items():
            if candidate_path.lower() in lowered:
                return file
        return None

    def _lookup_suffix(self, target: str, source_folder: str) -> Optional[VaultFile]:
        for variant in self._variants(target):
            name = parse_file_path(variant).name.lower()
            candidates = [
                f for f in self._files_by_name.get(name, [])
                if self._ends_with(f.path, variant)
            ]
            if not candidates:
                continue
            exact_case = [f for f in candidates if self._ends_with(f.path, variant, True)]
            pool = exact_case or candidates
            pool.sort(key=lambda f: (f.parent != source_folder, len(f.path), f.path))
            return pool[0]
        return None

    @staticmethod
    def _ends_with(path: str, suffix: str, case_sensitive: bool = False) -> bool:
        if not case_sensitive:
            path, suffix = path.lower(), suffix.lower()
        return path == suffix or path.endswith("/" + suffix)
