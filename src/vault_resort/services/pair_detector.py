"""Detection of misplaced attachments.

Turns a built :class:`ReferenceGraph` into resort pairs with two passes:

1. Folder-contents scan: for each note's canonical folder, every
   attachment sitting there that the note does not reference, but other
   notes do, is proposed for those notes' folders.
2. Global mismatch scan: every referenced attachment not handled by the
   first pass whose folder is none of its referencing notes' canonical
   folders.

An attachment is emitted at most once. Attachments whose folder already
is one of their candidate folders, and attachments without any candidate
folder, are never emitted.
"""
import logging
from typing import Callable, Iterable, List, Set

from vault_resort.exceptions import VaultError
from vault_resort.models.schema import CanonicalFolder, ResortPair, VaultFile, VaultFolder
from vault_resort.services.reference_graph import ReferenceGraph
from vault_resort.storage.vault import FileSystemVault

logger = logging.getLogger(__name__)


class ResortPairDetector:
    """Finds attachments that live outside their notes' attachment folders.

    Args:
        vault: Vault used to list the files of canonical folders.
        is_note: Predicate telling note files from attachments.
    """

    def __init__(
        self, vault: FileSystemVault, is_note: Callable[[VaultFile], bool]
    ) -> None:
        self.vault = vault
        self.is_note = is_note

    def detect(self, graph: ReferenceGraph) -> List[ResortPair]:
        """Run both passes over an already built graph."""
        pairs: List[ResortPair] = []
        processed: Set[str] = set()

        first = self._scan_folder_contents(graph, processed)
        pairs.extend(first)
        second = self._scan_mismatches(graph, processed)
        pairs.extend(second)

        logger.info(
            f"Detected {len(pairs)} misplaced attachments "
            f"({len(first)} by folder contents, {len(second)} by mismatch)"
        )
        return pairs

    def _scan_folder_contents(
        self, graph: ReferenceGraph, processed: Set[str]
    ) -> List[ResortPair]:
        pairs: List[ResortPair] = []
        for note_path, canonical in graph.canonical_folders():
            folder = self.vault.get_by_path(canonical.folder)
            if not isinstance(folder, VaultFolder):
                logger.debug(f"Could not resolve folder {canonical.folder!r} of {note_path}")
                continue

            try:
                files = self.vault.list_folder_files(folder)
            except VaultError as e:
                logger.warning(f"Skipping folder {folder.path}: {e}")
                continue

            for attachment in files:
                if attachment.path in processed or self.is_note(attachment):
                    continue
                # in this note's folder, but this note does not reference it
                if graph.references(note_path, attachment.path):
                    continue

                candidates = graph.candidate_folders(attachment.path)
                if not candidates:
                    continue
                if any(c.folder == folder.path for c in candidates):
                    continue

                processed.add(attachment.path)
                pairs.append(self._make_pair(attachment, folder.path, candidates))
        return pairs

    def _scan_mismatches(
        self, graph: ReferenceGraph, processed: Set[str]
    ) -> List[ResortPair]:
        pairs: List[ResortPair] = []
        for attachment_path in graph.attachment_paths():
            if attachment_path in processed:
                continue

            candidates = graph.candidate_folders(attachment_path)
            if not candidates:
                continue

            attachment = graph.attachment(attachment_path)
            if attachment is None:
                continue
            if any(c.folder == attachment.parent for c in candidates):
                continue

            processed.add(attachment_path)
            pairs.append(self._make_pair(attachment, attachment.parent, candidates))
        return pairs

    @staticmethod
    def _make_pair(
        attachment: VaultFile, current_folder: str, candidates: Iterable[CanonicalFolder]
    ) -> ResortPair:
        return ResortPair(
            attachment=attachment,
            current_folder=current_folder,
            current_path=attachment.path,
            candidate_folders=list(candidates),
        )
