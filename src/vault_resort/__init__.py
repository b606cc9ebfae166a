"""
Vault Resort - keeps note attachments in the folders their notes expect.

This package scans a vault of notes, builds a reference graph between notes
and the non-note files they link or embed, detects attachments that sit in
the wrong attachment folder, and moves user-approved attachments into place.
It also ships a Model Context Protocol (MCP) server exposing these operations.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("vault-resort")
except PackageNotFoundError:
    __version__ = "0.3.0"
