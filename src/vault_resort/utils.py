"""Path utilities for vault-relative store paths.

Store paths are POSIX strings relative to the vault root, with no leading
or trailing slash. The vault root folder itself is represented as ``/``.
"""
import posixpath
from dataclasses import dataclass
from typing import Iterable

ROOT_FOLDER = "/"


@dataclass(frozen=True)
class ParsedPath:
    """Components of a store path.

    Attributes:
        folder: Parent folder path (``/`` for files at the vault root).
        name: File name including extension.
        stem: File name without its extension.
        extension: Lowercased extension without the dot ("" if none).
    """

    folder: str
    name: str
    stem: str
    extension: str


def normalize_path(path: str) -> str:
    """Normalize a store path.

    Converts backslashes, collapses duplicate separators, drops ``.``
    segments and leading/trailing slashes. The empty path and ``/`` both
    normalize to the root folder.

    Raises:
        ValueError: If the path contains a ``..`` segment (path traversal).
    """
    segments = []
    for segment in path.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            raise ValueError(f"Path cannot contain '..' (path traversal): {path}")
        segments.append(segment)
    if not segments:
        return ROOT_FOLDER
    return "/".join(segments)


def is_root(folder: str) -> bool:
    """Check whether a folder path denotes the vault root."""
    return normalize_path(folder) == ROOT_FOLDER


def join_paths(*parts: str) -> str:
    """Join store path parts, ignoring root and empty parts."""
    pieces = [p.strip("/") for p in parts if p and p.strip("/")]
    if not pieces:
        return ROOT_FOLDER
    return normalize_path("/".join(pieces))


def parent_path(path: str) -> str:
    """Get the parent folder of a store path (``/`` at the vault root)."""
    normalized = normalize_path(path)
    if normalized == ROOT_FOLDER:
        return ROOT_FOLDER
    folder = posixpath.dirname(normalized)
    return folder or ROOT_FOLDER


def parse_file_path(path: str) -> ParsedPath:
    """Split a store path into folder, name, stem and extension.

    Examples:
        >>> parse_file_path("Docs/A.md")
        ParsedPath(folder='Docs', name='A.md', stem='A', extension='md')
        >>> parse_file_path("archive.tar.gz").stem
        'archive.tar'
    """
    normalized = normalize_path(path)
    name = posixpath.basename(normalized) if normalized != ROOT_FOLDER else ""
    stem, dot_ext = posixpath.splitext(name)
    return ParsedPath(
        folder=parent_path(normalized),
        name=name,
        stem=stem,
        extension=dot_ext[1:].lower(),
    )


def resolve_relative(base_folder: str, relative: str) -> str:
    """Resolve a ``./`` or ``../`` link path against a base folder.

    Raises:
        ValueError: If the result would escape the vault root.
    """
    base = [] if is_root(base_folder) else normalize_path(base_folder).split("/")
    for segment in relative.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not base:
                raise ValueError(f"Link escapes the vault root: {relative}")
            base.pop()
            continue
        base.append(segment)
    return "/".join(base) if base else ROOT_FOLDER


def next_free_name(existing_names: Iterable[str], desired_name: str) -> str:
    """Pick a file name that does not collide with any existing name.

    Returns ``desired_name`` when it is free, otherwise appends the smallest
    positive integer suffix `` (n)`` before the extension that is not taken.

    Examples:
        >>> next_free_name(["x.png"], "x.png")
        'x (1).png'
        >>> next_free_name(["x.png", "x (1).png"], "x.png")
        'x (2).png'
        >>> next_free_name([], "notes")
        'notes'
    """
    taken = set(existing_names)
    if desired_name not in taken:
        return desired_name

    stem, ext = posixpath.splitext(desired_name)
    counter = 1
    while f"{stem} ({counter}){ext}" in taken:
        counter += 1
    return f"{stem} ({counter}){ext}"
