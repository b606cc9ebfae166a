#!/usr/bin/env python
"""Main entry point for the Vault Resort MCP server."""
import argparse
import atexit
import logging
import os
import sys
from pathlib import Path

from vault_resort.config import FOLDER_LOCATIONS, config
from vault_resort.exceptions import ResortError
from vault_resort.observability import configure_logging, metrics
from vault_resort.server.mcp_server import ResortMcpServer


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Vault Resort MCP Server")
    parser.add_argument(
        "--vault",
        help="Root directory of the vault",
        type=str,
        default=os.environ.get("VAULT_RESORT_VAULT_PATH")
    )
    parser.add_argument(
        "--folder-location",
        help="Where note attachment folders live",
        choices=list(FOLDER_LOCATIONS),
        default=None
    )
    parser.add_argument(
        "--folder-template",
        help="Attachment folder template, e.g. '{notename} (attachments)'",
        type=str,
        default=None
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("VAULT_RESORT_LOG_LEVEL", "INFO")
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.vault:
        config.vault_path = Path(args.vault)
    if args.folder_location:
        config.folder_location = args.folder_location
    if args.folder_template:
        config.folder_template = args.folder_template
    config.log_level = args.log_level


def _save_metrics_on_exit():
    """Save metrics to disk on server shutdown."""
    if metrics.save_metrics():
        logging.getLogger(__name__).info("Metrics saved to disk on shutdown")


def main(argv=None):
    """Run the Vault Resort MCP server."""
    args = parse_args(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        log_dir = configure_logging(level=log_level, console=True)
    except OSError as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")

    try:
        update_config(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    atexit.register(_save_metrics_on_exit)

    try:
        logger.info(f"Starting Vault Resort MCP server for {config.get_vault_path()}")
        server = ResortMcpServer()
    except ResortError as e:
        logger.error(f"Failed to open vault: {e}")
        sys.exit(1)
    server.run()


if __name__ == "__main__":
    main()
