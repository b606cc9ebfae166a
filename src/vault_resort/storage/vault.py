"""Filesystem-backed vault storage.

Maps vault-relative store paths onto a directory tree and provides the
file listing, lookup, folder creation/deletion and atomic rename
primitives the resort core relies on.
"""
import logging
import os
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Union

from vault_resort.exceptions import (
    ErrorCode,
    FolderNotFoundError,
    MoveError,
    ValidationError,
    VaultError,
)
from vault_resort.models.schema import VaultFile, VaultFolder
from vault_resort.utils import ROOT_FOLDER, normalize_path, parent_path

logger = logging.getLogger(__name__)

DEFAULT_IGNORED_FOLDERS: FrozenSet[str] = frozenset({".obsidian", ".trash", ".git"})


class FileSystemVault:
    """A vault rooted at a directory on disk.

    Args:
        root: Directory holding the vault.
        ignored_folders: Folder names skipped during listings, wherever
            they appear in the tree. Hidden entries are always skipped.
    """

    def __init__(
        self,
        root: Union[str, Path],
        ignored_folders: Optional[Iterable[str]] = None,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise VaultError(
                f"Vault root is not a directory: {self.root}",
                operation="open",
                code=ErrorCode.VAULT_NOT_FOUND,
            )
        self.ignored_folders = (
            frozenset(ignored_folders)
            if ignored_folders is not None
            else DEFAULT_IGNORED_FOLDERS
        )

    # ------------------------------------------------------------------
    # Path mapping
    # ------------------------------------------------------------------

    def to_disk_path(self, path: str) -> Path:
        """Map a store path to its location on disk.

        Raises:
            ValidationError: If the path would escape the vault.
        """
        try:
            normalized = normalize_path(path)
        except ValueError as e:
            raise ValidationError(
                str(e), field="path", value=path, code=ErrorCode.PATH_TRAVERSAL_DETECTED
            ) from e
        if normalized == ROOT_FOLDER:
            return self.root
        return self.root / normalized

    def to_store_path(self, disk_path: Path) -> str:
        """Map a location on disk back to its store path.

        A symlink maps to its own location in the vault, never to its target.
        """
        return normalize_path(disk_path.relative_to(self.root).as_posix())

    def _is_skipped(self, name: str) -> bool:
        return name.startswith(".") or name in self.ignored_folders

    def _folder_disk_path(self, folder: VaultFolder) -> Path:
        disk_path = self.to_disk_path(folder.path)
        if not disk_path.is_dir():
            raise FolderNotFoundError(folder.path)
        return disk_path

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_files(self) -> List[VaultFile]:
        """List every file in the vault in a stable, sorted walk order."""
        files: List[VaultFile] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if not self._is_skipped(d))
            base = Path(dirpath)
            for filename in sorted(filenames):
                entry = base / filename
                # dangling symlinks are not files
                if filename.startswith(".") or not entry.is_file():
                    continue
                files.append(VaultFile(path=self.to_store_path(entry)))
        return files

    def get_by_path(self, path: str) -> Optional[Union[VaultFile, VaultFolder]]:
        """Look up a file or folder by store path; None if nothing is there."""
        try:
            disk_path = self.to_disk_path(path)
        except ValidationError:
            return None
        if disk_path.is_dir():
            return VaultFolder(path=path)
        if disk_path.is_file():
            return VaultFile(path=path)
        return None

    def list_folder_files(self, folder: VaultFolder) -> List[VaultFile]:
        """List the files directly inside a folder, sorted by name."""
        disk_path = self._folder_disk_path(folder)
        try:
            entries = sorted(disk_path.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise VaultError(
                f"Failed to list folder: {folder.path}",
                operation="list",
                path=folder.path,
                original_error=e,
            ) from e
        return [
            VaultFile(path=self.to_store_path(entry))
            for entry in entries
            if entry.is_file() and not entry.name.startswith(".")
        ]

    def child_names(self, folder: VaultFolder) -> List[str]:
        """Names of every entry in a folder: files, folders and hidden ones."""
        disk_path = self._folder_disk_path(folder)
        try:
            return sorted(entry.name for entry in disk_path.iterdir())
        except OSError as e:
            raise VaultError(
                f"Failed to list folder: {folder.path}",
                operation="list",
                path=folder.path,
                original_error=e,
            ) from e

    def folder_is_empty(self, folder: VaultFolder) -> bool:
        """True if the folder has no children at all (hidden ones included)."""
        disk_path = self._folder_disk_path(folder)
        try:
            return next(disk_path.iterdir(), None) is None
        except OSError as e:
            raise VaultError(
                f"Failed to inspect folder: {folder.path}",
                operation="list",
                path=folder.path,
                original_error=e,
            ) from e

    def read_text(self, file: VaultFile) -> str:
        """Read a file's content as UTF-8 text."""
        try:
            return self.to_disk_path(file.path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise VaultError(
                f"Failed to read file: {file.path}",
                operation="read",
                path=file.path,
                original_error=e,
            ) from e

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_folder(self, path: str) -> VaultFolder:
        """Create a folder and any missing ancestors."""
        disk_path = self.to_disk_path(path)
        try:
            disk_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise VaultError(
                f"Failed to create folder: {path}",
                operation="create_folder",
                path=path,
                code=ErrorCode.VAULT_WRITE_FAILED,
                original_error=e,
            ) from e
        logger.debug(f"Created folder: {path}")
        return VaultFolder(path=path)

    def delete(self, folder: VaultFolder) -> None:
        """Delete an empty folder.

        Raises:
            VaultError: If the folder is the vault root, is not empty, or
                cannot be removed.
        """
        if folder.is_root:
            raise VaultError(
                "Refusing to delete the vault root",
                operation="delete",
                path=folder.path,
                code=ErrorCode.VAULT_DELETE_FAILED,
            )
        disk_path = self.to_disk_path(folder.path)
        try:
            disk_path.rmdir()
        except OSError as e:
            code = (
                ErrorCode.FOLDER_NOT_EMPTY
                if disk_path.is_dir() and any(disk_path.iterdir())
                else ErrorCode.VAULT_DELETE_FAILED
            )
            raise VaultError(
                f"Failed to delete folder: {folder.path}",
                operation="delete",
                path=folder.path,
                code=code,
                original_error=e,
            ) from e
        logger.debug(f"Deleted folder: {folder.path}")

    def move(self, file: VaultFile, new_path: str) -> VaultFile:
        """Atomically rename a file to a new store path.

        The destination folder must already exist and the destination
        path must be free; existing files are never overwritten.

        Raises:
            MoveError: If the source is missing, the destination is taken,
                or the rename fails.
        """
        source = self.to_disk_path(file.path)
        destination = self.to_disk_path(new_path)

        if not source.is_file():
            raise MoveError(
                f"Source file does not exist: {file.path}",
                source_path=file.path,
                destination_path=new_path,
                code=ErrorCode.MOVE_SOURCE_MISSING,
            )
        if destination.exists():
            raise MoveError(
                f"Destination already exists: {new_path}",
                source_path=file.path,
                destination_path=new_path,
                code=ErrorCode.MOVE_DESTINATION_EXISTS,
            )
        if not destination.parent.is_dir():
            raise MoveError(
                f"Destination folder does not exist: {parent_path(new_path)}",
                source_path=file.path,
                destination_path=new_path,
            )
        try:
            os.rename(source, destination)
        except OSError as e:
            raise MoveError(
                f"Failed to move {file.path} to {new_path}: {e.strerror or e}",
                source_path=file.path,
                destination_path=new_path,
                original_error=e,
            ) from e
        logger.debug(f"Moved {file.path} -> {new_path}")
        return VaultFile(path=new_path)
