"""Data models for Vault Resort."""

from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from vault_resort.utils import ROOT_FOLDER, normalize_path, parse_file_path


def validate_store_path(value: str, field_name: str = "path") -> str:
    """Validate and normalize a vault-relative store path.

    Raises:
        ValueError: If the path is empty or tries to escape the vault.
    """
    if value is None or not str(value).strip():
        raise ValueError(f"{field_name} cannot be empty")
    return normalize_path(str(value))


class VaultFile(BaseModel):
    """A file in the vault, identified by its store path."""

    path: str = Field(..., description="Vault-relative POSIX path of the file")

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Normalize the path; the vault root is not a file."""
        normalized = validate_store_path(v, "File path")
        if normalized == ROOT_FOLDER:
            raise ValueError("File path cannot be the vault root")
        return normalized

    @property
    def name(self) -> str:
        return parse_file_path(self.path).name

    @property
    def stem(self) -> str:
        return parse_file_path(self.path).stem

    @property
    def extension(self) -> str:
        return parse_file_path(self.path).extension

    @property
    def parent(self) -> str:
        """Path of the folder containing this file (``/`` at the root)."""
        return parse_file_path(self.path).folder

    def __str__(self) -> str:
        return self.path


class VaultFolder(BaseModel):
    """A folder in the vault; the root folder has path ``/``."""

    path: str = Field(..., description="Vault-relative POSIX path of the folder")

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        return normalize_path(v or ROOT_FOLDER)

    @property
    def is_root(self) -> bool:
        return self.path == ROOT_FOLDER

    def __str__(self) -> str:
        return self.path


class RawLink(BaseModel):
    """A link record as cached for a note, before resolution.

    ``original`` is the link exactly as written (``![[img.png|200]]``,
    ``[text](file.pdf)``); ``link`` is its target text without markers or
    alias; ``display_text`` is the alias or visible text, if any.
    """

    original: str = Field(default="", description="Link text as written in the note")
    link: str = Field(default="", description="Link target text")
    display_text: Optional[str] = Field(default=None, description="Alias or visible text")

    model_config = {"frozen": True, "extra": "forbid"}


class CachedLinks(BaseModel):
    """All link records cached for one note."""

    links: List[RawLink] = Field(default_factory=list)
    embeds: List[RawLink] = Field(default_factory=list)
    frontmatter_links: List[RawLink] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def is_empty(self) -> bool:
        """True if the note has no links, embeds or frontmatter links at all."""
        return not (self.links or self.embeds or self.frontmatter_links)

    def all_records(self) -> List[RawLink]:
        """Links, then frontmatter links, then embeds."""
        return [*self.links, *self.frontmatter_links, *self.embeds]


class Link(BaseModel):
    """A note's reference to an attachment, resolved to a concrete file."""

    text: str = Field(..., description="Link target text as cached")
    dest: str = Field(..., description="Link as originally written")
    resolved_target: VaultFile = Field(..., description="File the link resolves to")

    model_config = {"frozen": True, "extra": "forbid"}


class CanonicalFolder(BaseModel):
    """The folder a note's attachments are expected to live in."""

    folder: str = Field(..., description="Canonical attachment folder path")
    note_path: str = Field(..., description="Note this folder belongs to")

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("folder")
    @classmethod
    def validate_folder(cls, v: str) -> str:
        return normalize_path(v or ROOT_FOLDER)


class ResortPair(BaseModel):
    """A misplaced attachment and every folder it could be moved to."""

    attachment: VaultFile
    current_folder: str = Field(..., description="Folder the attachment is in now")
    current_path: str = Field(..., description="Current path of the attachment")
    candidate_folders: List[CanonicalFolder] = Field(
        ..., min_length=1, description="One entry per referencing note"
    )

    model_config = {"frozen": True, "extra": "forbid"}

    def candidate_paths(self) -> List[str]:
        """Candidate folder paths in candidate order."""
        return [c.folder for c in self.candidate_folders]


class MoveSelection(BaseModel):
    """A confirmed instruction to move one file into a destination folder."""

    source_path: str
    destination_folder: str
    source_file: VaultFile

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("source_path")
    @classmethod
    def validate_source(cls, v: str) -> str:
        return validate_store_path(v, "Source path")

    @field_validator("destination_folder")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        return normalize_path(v or ROOT_FOLDER)

    @classmethod
    def from_pair(cls, pair: ResortPair, candidate_index: int = 0) -> "MoveSelection":
        """Select one of a pair's candidate folders.

        Raises:
            IndexError: If the candidate index is out of range.
        """
        if candidate_index < 0:
            raise IndexError(f"Candidate index {candidate_index} out of range")
        candidate = pair.candidate_folders[candidate_index]
        return cls(
            source_path=pair.current_path,
            destination_folder=candidate.folder,
            source_file=pair.attachment,
        )


@dataclass(frozen=True)
class MoveFailure:
    """A selection that could not be moved.

    Attributes:
        source_path: Path of the file that failed to move.
        message: Human-readable reason, including the file name.
    """

    source_path: str
    message: str


@dataclass
class MoveReport:
    """Outcome of a move batch."""

    success_count: int = 0
    skipped_count: int = 0
    failures: List[MoveFailure] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def to_dict(self) -> dict:
        return {
            "success_count": self.success_count,
            "skipped_count": self.skipped_count,
            "failure_count": self.failure_count,
            "failures": [
                {"source_path": f.source_path, "message": f.message}
                for f in self.failures
            ],
        }
