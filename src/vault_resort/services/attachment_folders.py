"""Canonical attachment folder policy.

Computes, for a note path, the folder its attachments are expected to
live in. The resort core only calls :meth:`AttachmentFolderPolicy.folder_for`.
"""
import logging
from typing import Optional

from vault_resort.config import FOLDER_LOCATIONS, ResortConfig
from vault_resort.exceptions import ConfigurationError, ErrorCode
from vault_resort.utils import ROOT_FOLDER, join_paths, parse_file_path

logger = logging.getLogger(__name__)


class AttachmentFolderPolicy:
    """Maps a note path to its canonical attachment folder.

    Args:
        location: ``subfolder`` (template below the note's folder),
            ``same_folder`` (the note's folder) or ``vault_folder``
            (template below ``vault_folder``).
        template: ``str.format`` template; ``{notename}`` is the note's file
            name without extension, ``{notefolder}`` its folder path
            (empty at the vault root, ``vault_folder`` location only).
        vault_folder: Base folder for the ``vault_folder`` location.

    Examples:
        >>> AttachmentFolderPolicy("subfolder", "{notename}/assets").folder_for("Docs/A.md")
        'Docs/A/assets'
        >>> AttachmentFolderPolicy("same_folder").folder_for("Docs/A.md")
        'Docs'
    """

    def __init__(
        self,
        location: str = "subfolder",
        template: str = "{notename} (attachments)",
        vault_folder: str = "attachments",
    ) -> None:
        if location not in FOLDER_LOCATIONS:
            raise ConfigurationError(
                f"Unknown attachment folder location '{location}'",
                config_key="folder_location",
                code=ErrorCode.CONFIG_INVALID,
            )
        if location == "subfolder" and "{notefolder}" in template:
            raise ConfigurationError(
                "{notefolder} is only valid with the vault_folder location",
                config_key="folder_template",
            )
        self.location = location
        self.template = template
        self.vault_folder = vault_folder

    @classmethod
    def from_config(cls, cfg: Optional[ResortConfig] = None) -> "AttachmentFolderPolicy":
        """Build the policy from configuration (the global config by default)."""
        if cfg is None:
            from vault_resort.config import config as cfg
        return cls(
            location=cfg.folder_location,
            template=cfg.folder_template,
            vault_folder=cfg.vault_folder,
        )

    def folder_for(self, note_path: str) -> str:
        """Compute the canonical attachment folder of a note.

        Raises:
            ConfigurationError: If the template uses an unknown placeholder.
        """
        parsed = parse_file_path(note_path)
        note_folder = parsed.folder

        if self.location == "same_folder":
            return note_folder

        try:
            rendered = self.template.format(
                notename=parsed.stem,
                notefolder="" if note_folder == ROOT_FOLDER else note_folder,
            )
        except (KeyError, IndexError) as e:
            raise ConfigurationError(
                f"Invalid attachment folder template '{self.template}': {e}",
                config_key="folder_template",
            ) from e

        base = note_folder if self.location == "subfolder" else self.vault_folder
        return join_paths(base, rendered)

    def __call__(self, note_path: str) -> str:
        return self.folder_for(note_path)
