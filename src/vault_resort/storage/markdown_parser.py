"""Link extraction from markdown and canvas notes.

Produces the cached link records of a note: body links, embeds and
frontmatter links. Kept separate from the link cache so parsing stays
independently testable.
"""
import json
import logging
import re
from typing import Any, Iterator, List, Optional, Tuple

import frontmatter
import yaml

from vault_resort.models.schema import CachedLinks, RawLink

logger = logging.getLogger(__name__)

# [[target]], [[target|alias]], ![[target#heading|alias]]
WIKI_LINK = re.compile(r"(?P<bang>!?)\[\[(?P<body>[^\[\]\n]+?)\]\]")
# [text](url), ![alt](url), [text](<url with spaces>)
MD_LINK = re.compile(
    r"(?P<bang>!?)\[(?P<text>[^\[\]\n]*)\]\((?P<url><[^>\n]+>|[^)\s]+)(?:\s+\"[^\"]*\")?\)"
)
# A frontmatter value that is exactly one wikilink
FRONTMATTER_WIKI_LINK = re.compile(r"^\s*\[\[(?P<body>[^\[\]\n]+?)\]\]\s*$")

FENCE = re.compile(r"^\s*(```|~~~)")
INLINE_CODE = re.compile(r"`[^`\n]*`")


def _split_alias(body: str) -> Tuple[str, Optional[str]]:
    """Split ``target|alias`` (also the escaped ``target\\|alias`` form)."""
    match = re.search(r"\\?\|", body)
    if not match:
        return body, None
    return body[: match.start()], body[match.end():]


def _strip_code(text: str) -> str:
    """Blank out fenced code blocks and inline code spans."""
    lines: List[str] = []
    in_fence = False
    for line in text.split("\n"):
        if FENCE.match(line):
            in_fence = not in_fence
            lines.append("")
            continue
        if in_fence:
            lines.append("")
            continue
        lines.append(INLINE_CODE.sub(lambda m: " " * len(m.group(0)), line))
    return "\n".join(lines)


class MarkdownLinkParser:
    """Extracts link records from note content."""

    def parse(self, content: str) -> CachedLinks:
        """Parse a markdown note.

        Args:
            content: Raw markdown, optionally with YAML frontmatter.

        Returns:
            The note's links, embeds and frontmatter links, each in
            document order.
        """
        metadata, body = self._split_frontmatter(content)
        links, embeds = self._parse_body(body)
        return CachedLinks(
            links=links,
            embeds=embeds,
            frontmatter_links=list(self._parse_frontmatter_links(metadata)),
        )

    def parse_canvas(self, content: str) -> CachedLinks:
        """Parse a JSON canvas; every ``file`` node becomes an embed."""
        try:
            data = json.loads(content) if content.strip() else {}
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping malformed canvas: {e}")
            return CachedLinks()

        embeds: List[RawLink] = []
        nodes = data.get("nodes", []) if isinstance(data, dict) else []
        for node in nodes:
            if not isinstance(node, dict) or node.get("type") != "file":
                continue
            target = node.get("file")
            if isinstance(target, str) and target.strip():
                embeds.append(
                    RawLink(original=f"![[{target}]]", link=target, display_text=None)
                )
        return CachedLinks(embeds=embeds)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _split_frontmatter(content: str) -> Tuple[dict, str]:
        """Separate YAML frontmatter from the body; bad YAML is treated as body."""
        try:
            post = frontmatter.loads(content)
        except (yaml.YAMLError, ValueError) as e:
            logger.debug(f"Could not parse frontmatter, scanning whole note: {e}")
            return {}, content
        return dict(post.metadata), post.content

    @staticmethod
    def _parse_body(body: str) -> Tuple[List[RawLink], List[RawLink]]:
        links: List[Tuple[int, RawLink]] = []
        embeds: List[Tuple[int, RawLink]] = []
        text = _strip_code(body)

        for m in WIKI_LINK.finditer(text):
            target, alias = _split_alias(m.group("body"))
            record = RawLink(
                original=m.group(0),
                link=target.strip(),
                display_text=alias.strip() if alias is not None else None,
            )
            (embeds if m.group("bang") else links).append((m.start(), record))

        # Wikilinks are blanked so their insides are not re-read as markdown
        text = WIKI_LINK.sub(lambda m: " " * len(m.group(0)), text)
        for m in MD_LINK.finditer(text):
            url = m.group("url")
            if url.startswith("<") and url.endswith(">"):
                url = url[1:-1]
            record = RawLink(
                original=m.group(0),
                link=url.strip(),
                display_text=m.group("text") or None,
            )
            (embeds if m.group("bang") else links).append((m.start(), record))

        links.sort(key=lambda item: item[0])
        embeds.sort(key=lambda item: item[0])
        return [r for _, r in links], [r for _, r in embeds]

    @classmethod
    def _parse_frontmatter_links(cls, metadata: dict) -> Iterator[RawLink]:
        for value in metadata.values():
            yield from cls._walk_frontmatter_value(value)

    @classmethod
    def _walk_frontmatter_value(cls, value: Any) -> Iterator[RawLink]:
        if isinstance(value, str):
            m = FRONTMATTER_WIKI_LINK.match(value)
            if m:
                target, alias = _split_alias(m.group("body"))
                yield RawLink(
                    original=value.strip(),
                    link=target.strip(),
                    display_text=alias.strip() if alias is not None else None,
                )
        elif isinstance(value, dict):
            for item in value.values():
                yield from cls._walk_frontmatter_value(item)
        elif isinstance(value, (list, tuple)):
            for item in value:
                yield from cls._walk_frontmatter_value(item)
