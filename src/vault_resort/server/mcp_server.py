"""MCP server implementation for Vault Resort."""

import logging
import uuid
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from vault_resort.config import config
from vault_resort.exceptions import ErrorCode, ResortError, ValidationError
from vault_resort.models.schema import ResortPair
from vault_resort.observability import metrics, timed_operation
from vault_resort.services.resort_service import (
    ResortService,
    parse_choices,
    selections_from_choices,
)

logger = logging.getLogger(__name__)


def format_pairs(pairs: List[ResortPair]) -> str:
    """Render detected pairs as an indexed list for selection."""
    if not pairs:
        return "No misplaced attachments found."

    output = f"Found {len(pairs)} misplaced attachment{'s' if len(pairs) != 1 else ''}:\n\n"
    for i, pair in enumerate(pairs):
        output += f"{i}. {pair.current_path}\n"
        output += f"   Current folder: {pair.current_folder}\n"
        for j, candidate in enumerate(pair.candidate_folders):
            output += f"   [{i}:{j}] -> {candidate.folder} (from {candidate.note_path})\n"
        output += "\n"
    output += (
        "Apply with resort_apply, e.g. choices=\"0:0,1:0\" or choices=\"all\" "
        "for the first candidate of every pair."
    )
    return output


class ResortMcpServer:
    """MCP server for Vault Resort."""

    def __init__(self, service: Optional[ResortService] = None):
        """Initialize the MCP server.

        Args:
            service: Pre-built resort service. When None, one is built from
                the global config.
        """
        self.mcp = FastMCP(config.server_name)
        self.service = service or ResortService.from_config(config)
        self._last_pairs: Optional[List[ResortPair]] = None
        self._register_tools()
        logger.info(
            f"Vault Resort MCP server {config.server_version} initialized "
            f"for {self.service.vault.root}"
        )

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Args:
            error: The exception that occurred

        Returns:
            Formatted error message with appropriate level of detail
        """
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, ResortError):
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error: Invalid input (ref: {error_id})"
        elif isinstance(error, OSError):
            # Don't expose paths
            logger.error(f"File system error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: A file system error occurred (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="resort_detect")
        def resort_detect() -> str:
            """Scan the vault for attachments stored outside their notes' attachment folders.

            Lists every misplaced attachment with its candidate folders, one
            per referencing note. The result is kept for resort_apply.
            """
            with timed_operation("resort_detect") as op:
                try:
                    pairs = self.service.detect_resort_pairs()
                    self._last_pairs = pairs
                    op["result_count"] = len(pairs)
                    return format_pairs(pairs)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="resort_apply")
        def resort_apply(choices: str) -> str:
            """Move attachments found by the last resort_detect.

            Args:
                choices: Comma-separated "pair:candidate" indices, e.g. "0:0,2:1",
                    or "all" to move every pair to its first candidate folder
            """
            with timed_operation("resort_apply") as op:
                try:
                    if self._last_pairs is None:
                        raise ValidationError(
                            "Nothing to apply; run resort_detect first",
                            field="choices",
                            code=ErrorCode.INVALID_SELECTION,
                        )
                    indices = parse_choices(choices, self._last_pairs)
                    selections = selections_from_choices(self._last_pairs, indices)
                    report = self.service.execute_moves(selections)
                    # Paths changed on disk; a new detection is required
                    self._last_pairs = None
                    op["moved"] = report.success_count

                    output = f"Moved {report.success_count} of {len(selections)} attachments."
                    if report.skipped_count:
                        output += f"\nSkipped {report.skipped_count} already in place."
                    if report.failures:
                        output += "\n\nFailures:\n"
                        for failure in report.failures:
                            output += f"- {failure.message}\n"
                    return output
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="resort_metrics")
        def resort_metrics() -> str:
            """Report timing and success metrics of resort operations."""
            summary = metrics.get_summary()
            output = "# Resort Metrics\n\n"
            output += f"**Uptime:** {summary['uptime_seconds']:.0f}s\n"
            output += f"**Total Operations:** {summary['total_operations']}\n"
            output += f"**Success Rate:** {summary['overall_success_rate']:.1%}\n\n"

            for name, data in sorted(metrics.get_metrics().items()):
                output += (
                    f"- {name}: {data['count']} calls, "
                    f"{data['error_count']} errors, "
                    f"avg {data['avg_duration_ms']}ms\n"
                )
                if data["last_error"]:
                    output += f"  last error: {data['last_error']}\n"
            return output

    def run(self) -> None:
        """Run the MCP server."""
        self.mcp.run()
