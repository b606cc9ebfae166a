"""Normalization of a note's cached link records into attachment links."""

import logging
import re
from typing import Callable, Iterable, Iterator, Optional
from urllib.parse import unquote

from vault_resort.models.schema import CachedLinks, Link, RawLink, VaultFile

logger = logging.getLogger(__name__)

# [text](url) as a whole record, capturing the url
MARKDOWN_LINK = re.compile(r"^!?\[[^\]]*\]\((?P<url>.+)\)$")
# |alias, \|alias, #heading, \#heading and everything after
LINK_SUFFIX = re.compile(r"(?:\||\\\||#|\\#).+$")
URL_SCHEME = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.-]*:|//)")

Resolver = Callable[[str, str], Optional[VaultFile]]
NotePredicate = Callable[[VaultFile], bool]


def clean_destination(original: str) -> Optional[str]:
    """Reduce a raw link to the destination text to resolve.

    Returns None when the record can never name an attachment: empty links,
    same-note heading links and markdown links to an anchor or URL.

    Examples:
        >>> clean_destination("![[img.png|200]]")
        'img.png'
        >>> clean_destination("[[Report.pdf#page=3]]")
        'Report.pdf'
        >>> clean_destination("[components](#components)") is None
        True
    """
    if not original or original.startswith("[[#"):
        return None

    dest = original
    if dest.startswith("[[") and dest.endswith("]]"):
        dest = dest[2:-2]
    elif dest.startswith("![[") and dest.endswith("]]"):
        dest = dest[3:-2]
    else:
        m = MARKDOWN_LINK.match(dest)
        if m:
            url = m.group("url").strip()
            # drop an optional "title"
            url = re.sub(r"\s+\"[^\"]*\"$", "", url)
            if url.startswith("<") and url.endswith(">"):
                url = url[1:-1]
            if url.startswith("#") or URL_SCHEME.match(url):
                return None
            dest = unquote(url)

    dest = LINK_SUFFIX.sub("", dest).strip()
    return dest or None


class NormalizedLinks:
    """Lazy, restartable sequence of one note's resolved attachment links.

    Records are taken in cache order (links, frontmatter links, embeds).
    Unresolvable records and links to other notes are dropped. Several
    records may yield the same target; callers deduplicate. Every
    iteration re-reads the records and re-resolves them.
    """

    def __init__(
        self,
        note: VaultFile,
        records: Iterable[RawLink],
        resolve: Resolver,
        is_note: NotePredicate,
    ) -> None:
        self.note = note
        self._records = list(records)
        self._resolve = resolve
        self._is_note = is_note

    def __iter__(self) -> Iterator[Link]:
        for record in self._records:
            dest = clean_destination(record.original)
            if dest is None:
                continue

            target = self._resolve(dest, self.note.path)
            if target is None:
                logger.debug(
                    f"Could not resolve link {record.original!r} in {self.note.path} "
                    f"(parsed as: {dest!r})"
                )
                continue
            if self._is_note(target):
                continue

            yield Link(text=record.link, dest=record.original, resolved_target=target)


def normalize_links(
    note: VaultFile,
    cached: Optional[CachedLinks],
    resolve: Resolver,
    is_note: NotePredicate,
) -> NormalizedLinks:
    """Normalize the cached link records of one note.

    Args:
        note: The note the records belong to.
        cached: The note's cached link records (None means no links).
        resolve: Link resolution service, ``resolve(dest, note_path)``.
        is_note: Predicate telling note files from attachments.
    """
    records = cached.all_records() if cached is not None else []
    return NormalizedLinks(note, records, resolve, is_note)
