"""Storage layer for Vault Resort."""

from vault_resort.storage.link_cache import LinkCache
from vault_resort.storage.markdown_parser import MarkdownLinkParser
from vault_resort.storage.vault import FileSystemVault

__all__ = [
    "FileSystemVault",
    "LinkCache",
    "MarkdownLinkParser",
]
