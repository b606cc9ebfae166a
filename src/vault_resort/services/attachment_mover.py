"""Execution of confirmed attachment moves.

Selections are processed strictly one after another so that the
collision check for a destination folder always sees the result of the
previous move. A failing selection is reported and skipped; the batch
always runs to the end.
"""
import logging
from typing import Callable, Iterable, Optional

from vault_resort.exceptions import ResortError
from vault_resort.models.schema import (
    MoveFailure,
    MoveReport,
    MoveSelection,
    VaultFolder,
)
from vault_resort.observability import timed_operation
from vault_resort.storage.vault import FileSystemVault
from vault_resort.utils import join_paths, next_free_name

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


class AttachmentMover:
    """Moves attachments into their chosen folders.

    Args:
        vault: Vault to move files in.
        notify: Receives one user-facing message per failed selection.
    """

    def __init__(self, vault: FileSystemVault, notify: Optional[Notifier] = None) -> None:
        self.vault = vault
        self.notify = notify

    def move_all(self, selections: Iterable[MoveSelection]) -> int:
        """Move every selection and return the number of successful moves."""
        return self.execute(selections).success_count

    def execute(self, selections: Iterable[MoveSelection]) -> MoveReport:
        """Move every selection and return the full outcome."""
        report = MoveReport()
        with timed_operation("move_attachments") as op:
            for selection in selections:
                self._move_one(selection, report)
            op["moved"] = report.success_count
            op["failed"] = report.failure_count
        if report.success_count:
            logger.info(
                f"Moved {report.success_count} attachment"
                f"{'s' if report.success_count > 1 else ''}"
            )
        return report

    def destination_path(self, selection: MoveSelection) -> str:
        """Path the file would get in its destination folder, before collisions."""
        return join_paths(selection.destination_folder, selection.source_file.name)

    def _move_one(self, selection: MoveSelection, report: MoveReport) -> None:
        source_file = selection.source_file
        dest_path = self.destination_path(selection)
        if dest_path == selection.source_path:
            report.skipped_count += 1
            return

        try:
            existing = self.vault.get_by_path(dest_path)
            if existing is not None and existing.path != source_file.path:
                dest_path = self._free_destination(selection)

            if not isinstance(self.vault.get_by_path(selection.destination_folder), VaultFolder):
                self.vault.create_folder(selection.destination_folder)

            source_folder = self.vault.get_by_path(source_file.parent)
            self.vault.move(source_file, dest_path)
        except (ResortError, OSError) as e:
            reason = e.message if isinstance(e, ResortError) else str(e)
            message = f"Failed to move {source_file.name}: {reason}"
            logger.error(f"Failed to move {selection.source_path}: {e}")
            report.failures.append(MoveFailure(source_path=selection.source_path, message=message))
            if self.notify is not None:
                self.notify(message)
            return

        report.success_count += 1
        if isinstance(source_folder, VaultFolder):
            self._remove_if_empty(source_folder)

    def _free_destination(self, selection: MoveSelection) -> str:
        folder = self.vault.get_by_path(selection.destination_folder)
        existing = self.vault.child_names(folder) if isinstance(folder, VaultFolder) else []
        name = next_free_name(existing, selection.source_file.name)
        return join_paths(selection.destination_folder, name)

    def _remove_if_empty(self, folder: VaultFolder) -> None:
        if folder.is_root:
            return
        try:
            if self.vault.folder_is_empty(folder):
                self.vault.delete(folder)
        except (ResortError, OSError) as e:
            logger.debug(f"Could not remove empty folder {folder.path}: {e}")
