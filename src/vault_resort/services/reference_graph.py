"""Bidirectional reference graph between notes and attachments.

The graph is rebuilt from scratch on every :meth:`ReferenceGraph.rebuild`
and holds three views of one edge set:

- note path -> (attachment path -> Link)
- attachment path -> (note path -> note file)
- note path -> canonical attachment folder

Edges are recorded through a single insert routine so both directions
always agree. The first link from a note to a given attachment wins;
later duplicates are ignored.
"""
import logging
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from vault_resort.exceptions import ResortError
from vault_resort.models.schema import CanonicalFolder, Link, VaultFile
from vault_resort.observability import timed_operation
from vault_resort.services.link_normalizer import normalize_links
from vault_resort.storage.link_cache import LinkCache

logger = logging.getLogger(__name__)

FolderPolicy = Callable[[str], str]


class ReferenceGraph:
    """Note/attachment reference graph over a link cache snapshot.

    Args:
        link_cache: Source of notes, their cached links and link resolution.
        folder_for: Canonical-folder policy, ``folder_for(note_path) -> folder``.
    """

    def __init__(self, link_cache: LinkCache, folder_for: FolderPolicy) -> None:
        self.link_cache = link_cache
        self.folder_for = folder_for
        self._note_to_attachments: Dict[str, Dict[str, Link]] = {}
        self._attachment_to_notes: Dict[str, Dict[str, VaultFile]] = {}
        self._note_to_folder: Dict[str, CanonicalFolder] = {}
        self._attachments: Dict[str, VaultFile] = {}

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Forget every edge and canonical folder."""
        self._note_to_attachments.clear()
        self._attachment_to_notes.clear()
        self._note_to_folder.clear()
        self._attachments.clear()

    def rebuild(self) -> "ReferenceGraph":
        """Refresh the link cache and rebuild the graph from all notes."""
        with timed_operation("rebuild_graph") as op:
            self.link_cache.force_resolve()
            self.clear()

            for note in self.link_cache.notes():
                cached = self.link_cache.get_cached_links(note)
                if cached.is_empty:
                    continue

                links = list(
                    normalize_links(
                        note, cached, self.link_cache.resolve, self.link_cache.is_note
                    )
                )
                if not links:
                    continue

                self._record_canonical_folder(note)
                self._note_to_attachments.setdefault(note.path, {})
                for link in links:
                    self.add_edge(note, link)

            op["notes"] = len(self._note_to_attachments)
            op["attachments"] = len(self._attachment_to_notes)
        logger.info(
            f"Reference graph built: {len(self._note_to_attachments)} notes, "
            f"{len(self._attachment_to_notes)} attachments, {self.edge_count()} edges"
        )
        return self

    def _record_canonical_folder(self, note: VaultFile) -> None:
        try:
            folder = self.folder_for(note.path)
        except (ResortError, ValueError) as e:
            logger.warning(f"No canonical folder for {note.path}: {e}")
            return
        self._note_to_folder[note.path] = CanonicalFolder(folder=folder, note_path=note.path)

    def add_edge(self, note: VaultFile, link: Link) -> bool:
        """Record a note -> attachment reference in both directions.

        Returns:
            True if the edge is new, False if it was already recorded.
        """
        attachment = link.resolved_target
        outgoing = self._note_to_attachments.setdefault(note.path, {})
        if attachment.path in outgoing:
            return False

        outgoing[attachment.path] = link
        self._attachments.setdefault(attachment.path, attachment)
        self._attachment_to_notes.setdefault(attachment.path, {})[note.path] = note
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def canonical_folders(self) -> Iterator[Tuple[str, CanonicalFolder]]:
        """(note path, canonical folder) in note-scan order."""
        return iter(list(self._note_to_folder.items()))

    def canonical_folder(self, note_path: str) -> Optional[CanonicalFolder]:
        return self._note_to_folder.get(note_path)

    def attachments_of(self, note_path: str) -> Mapping[str, Link]:
        """Attachments referenced by a note, keyed by attachment path."""
        return MappingProxyType(self._note_to_attachments.get(note_path, {}))

    def notes_referencing(self, attachment_path: str) -> Mapping[str, VaultFile]:
        """Notes referencing an attachment, keyed by note path."""
        return MappingProxyType(self._attachment_to_notes.get(attachment_path, {}))

    def references(self, note_path: str, attachment_path: str) -> bool:
        return attachment_path in self._note_to_attachments.get(note_path, {})

    def attachment(self, attachment_path: str) -> Optional[VaultFile]:
        return self._attachments.get(attachment_path)

    def attachment_paths(self) -> Iterator[str]:
        """Referenced attachment paths in first-reference order."""
        return iter(list(self._attachment_to_notes))

    def note_paths(self) -> Iterator[str]:
        """Paths of notes with at least one attachment link, in scan order."""
        return iter(list(self._note_to_attachments))

    def candidate_folders(self, attachment_path: str) -> List[CanonicalFolder]:
        """Canonical folders of all notes referencing an attachment.

        Notes without a recorded canonical folder are left out.
        """
        candidates: List[CanonicalFolder] = []
        for note_path in self._attachment_to_notes.get(attachment_path, {}):
            folder = self._note_to_folder.get(note_path)
            if folder is not None:
                candidates.append(folder)
        return candidates

    def edge_count(self) -> int:
        return sum(len(targets) for targets in self._note_to_attachments.values())
