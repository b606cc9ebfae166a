"""Configuration module for Vault Resort."""

import logging
import os
from pathlib import Path
from typing import FrozenSet

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from vault_resort import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config: survives package upgrades
_USER_ENV = Path.home() / ".vault-resort" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

FOLDER_LOCATIONS = ("subfolder", "same_folder", "vault_folder")


def _split_csv(value: str) -> FrozenSet[str]:
    """Split a comma-separated setting into a set of trimmed, non-empty items."""
    return frozenset(item.strip() for item in value.split(",") if item.strip())


class ResortConfig(BaseModel):
    """Configuration for attachment resorting."""

    # Root directory of the vault to scan
    vault_path: Path = Field(
        default_factory=lambda: Path(os.getenv("VAULT_RESORT_VAULT_PATH", "."))
    )
    # Where a note's attachment folder lives:
    #   subfolder    -> <note folder>/<template>
    #   same_folder  -> <note folder>
    #   vault_folder -> <vault_folder>/<template>
    folder_location: str = Field(
        default_factory=lambda: os.getenv("VAULT_RESORT_FOLDER_LOCATION", "subfolder")
    )
    # str.format template; {notename} is the note stem, {notefolder} its folder
    folder_template: str = Field(
        default_factory=lambda: os.getenv(
            "VAULT_RESORT_FOLDER_TEMPLATE", "{notename} (attachments)"
        )
    )
    vault_folder: str = Field(
        default_factory=lambda: os.getenv("VAULT_RESORT_VAULT_FOLDER", "attachments")
    )
    # Extensions (without dot) of files treated as notes
    note_extensions: str = Field(
        default_factory=lambda: os.getenv("VAULT_RESORT_NOTE_EXTENSIONS", "md,canvas")
    )
    # Top-level or nested folder names never scanned
    ignored_folders: str = Field(
        default_factory=lambda: os.getenv(
            "VAULT_RESORT_IGNORED_FOLDERS", ".obsidian,.trash,.git"
        )
    )
    # Server configuration
    server_name: str = Field(default=os.getenv("VAULT_RESORT_SERVER_NAME", "vault-resort"))
    server_version: str = Field(default=__version__)
    log_level: str = Field(
        default_factory=lambda: os.getenv("VAULT_RESORT_LOG_LEVEL", "INFO")
    )

    model_config = {"validate_assignment": True}

    @model_validator(mode="after")
    def _validate_folder_policy(self) -> "ResortConfig":
        """Validate attachment folder policy settings."""
        if self.folder_location not in FOLDER_LOCATIONS:
            raise ValueError(
                f"folder_location must be one of {', '.join(FOLDER_LOCATIONS)}, "
                f"got '{self.folder_location}'"
            )
        if self.folder_location != "same_folder" and not self.folder_template.strip():
            raise ValueError("folder_template cannot be empty")
        if self.folder_location == "subfolder" and "{notefolder}" in self.folder_template:
            raise ValueError("{notefolder} is only valid with folder_location vault_folder")
        if not self.get_note_extensions():
            raise ValueError("note_extensions must name at least one extension")
        return self

    def get_note_extensions(self) -> FrozenSet[str]:
        """Get note extensions, lowercased and without leading dots."""
        return frozenset(ext.lower().lstrip(".") for ext in _split_csv(self.note_extensions))

    def get_ignored_folders(self) -> FrozenSet[str]:
        """Get folder names excluded from vault listings."""
        return _split_csv(self.ignored_folders)

    def get_vault_path(self) -> Path:
        """Get the absolute path to the vault root."""
        return self.vault_path.expanduser().resolve()


# Create a global config instance
config = ResortConfig()
