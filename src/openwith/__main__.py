"""Entry point for the OpenWith MCP server."""

import argparse
import logging
import sys

from .models import OpenWithConfig
from .server import initialize_managers, mcp
from .utils.logging import set_package_level, setup_logger

logger = setup_logger(__name__)


def main() -> None:
    """Main entry point for the MCP server."""
    parser = argparse.ArgumentParser(
        description="OpenWith MCP Server - View and change default apps for file types"
    )
    parser.add_argument(
        "--duti",
        type=str,
        help="Path to the duti tool (default: found in PATH or /opt/homebrew/bin/duti)",
    )
    parser.add_argument(
        "--lsregister",
        type=str,
        help="Path to the LaunchServices lsregister tool",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=60,
        help="Timeout in seconds for registry tool invocations (default: 60)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    args = parser.parse_args()

    set_package_level(getattr(logging, args.log_level))

    overrides: dict[str, object] = {"command_timeout": args.timeout}
    if args.duti:
        overrides["duti_path"] = args.duti
    if args.lsregister:
        overrides["lsregister_path"] = args.lsregister

    try:
        initialize_managers(OpenWithConfig(**overrides))
    except Exception as e:
        logger.error(f"Failed to initialize server: {e}")
        sys.exit(1)

    logger.info("Starting OpenWith MCP server...")

    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down...")
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
