# tests/test_mcp_server.py
"""Tests for the MCP server implementation."""
from unittest.mock import MagicMock, patch

import pytest

from vault_resort.exceptions import VaultError
from vault_resort.server.mcp_server import ResortMcpServer


class TestMcpServer:
    """Tests for the ResortMcpServer class."""

    @pytest.fixture(autouse=True)
    def server(self, resort_service):
        """Create a server with FastMCP mocked out, capturing the tool functions."""
        self.registered_tools = {}
        self.mock_mcp = MagicMock()

        def mock_tool_decorator(*args, **kwargs):
            def tool_wrapper(func):
                self.registered_tools[kwargs.get('name')] = func
                return func
            return tool_wrapper
        self.mock_mcp.tool = mock_tool_decorator

        with patch('vault_resort.server.mcp_server.FastMCP', return_value=self.mock_mcp):
            self.server = ResortMcpServer(service=resort_service)
        yield self.server

    def test_tools_registered(self):
        """Test that every tool is registered."""
        assert set(self.registered_tools) == {"resort_detect", "resort_apply", "resort_metrics"}

    def test_detect_lists_pairs(self, write_files):
        """Test the resort_detect tool."""
        write_files({
            "Docs/A.md": "![[loose.pdf]]",
            "Docs/C.md": "![[loose.pdf]]",
            "loose.pdf": b"pdf",
        })
        result = self.registered_tools['resort_detect']()

        assert "Found 1 misplaced attachment" in result
        assert "0. loose.pdf" in result
        assert "[0:0] -> Docs/A/assets (from Docs/A.md)" in result
        assert "[0:1] -> Docs/C/assets (from Docs/C.md)" in result

    def test_detect_nothing_found(self):
        """Test resort_detect on a tidy vault."""
        assert self.registered_tools['resort_detect']() == "No misplaced attachments found."

    def test_apply_requires_detect(self):
        """Test that resort_apply is rejected before any detection."""
        result = self.registered_tools['resort_apply'](choices="all")
        assert result.startswith("Error:")
        assert "resort_detect" in result

    def test_apply_moves_chosen_candidate(self, write_files, vault_dir):
        """Test the resort_apply tool."""
        write_files({
            "Docs/A.md": "![[loose.pdf]]",
            "Docs/C.md": "![[loose.pdf]]",
            "loose.pdf": b"pdf",
        })
        self.registered_tools['resort_detect']()
        result = self.registered_tools['resort_apply'](choices="0:1")

        assert "Moved 1 of 1 attachments." in result
        assert (vault_dir / "Docs/C/assets/loose.pdf").exists()

        # a second apply needs a new detection
        assert self.registered_tools['resort_apply'](choices="0:0").startswith("Error:")

    def test_apply_reports_failures(self, write_files, vault_dir):
        """Test that per-item failures are listed."""
        write_files({"Docs/A.md": "![[img.png]]", "img.png": b"x"})
        self.registered_tools['resort_detect']()
        (vault_dir / "img.png").unlink()

        result = self.registered_tools['resort_apply'](choices="all")
        assert "Moved 0 of 1 attachments." in result
        assert "Failed to move img.png" in result

    def test_apply_invalid_choice(self, write_files):
        """Test resort_apply with an out-of-range choice."""
        write_files({"Docs/A.md": "![[img.png]]", "img.png": b"x"})
        self.registered_tools['resort_detect']()
        result = self.registered_tools['resort_apply'](choices="5:0")
        assert result == "Error: Pair index 5 out of range for 1 pairs"

    def test_metrics_tool(self):
        """Test the resort_metrics tool."""
        self.registered_tools['resort_detect']()
        result = self.registered_tools['resort_metrics']()
        assert "# Resort Metrics" in result
        assert "detect_resort_pairs: 1 calls" in result

    def test_format_error_response(self):
        """Test error formatting for domain and unexpected errors."""
        domain = self.server.format_error_response(VaultError("Vault is gone"))
        assert domain == "Error: Vault is gone"

        unexpected = self.server.format_error_response(RuntimeError("boom"))
        assert unexpected.startswith("Error: An unexpected error occurred (ref: ")
        assert "boom" not in unexpected

        io_error = self.server.format_error_response(OSError("/secret/path"))
        assert "/secret/path" not in io_error
