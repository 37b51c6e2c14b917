"""
Command line entry point for the Dealbuster server.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from .orchestrator import ApplicationOrchestrator
from .utils.logging import get_logger


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="dealbuster",
        description="Serve the centralized vs decentralized deal aggregation demo",
    )
    parser.add_argument(
        "config_path",
        nargs="?",
        default=None,
        help="YAML or JSON configuration file (standard locations are searched if omitted)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        default=None,
        help="Override the configured log level",
    )
    return parser.parse_args(argv)


async def async_main(config_path: Optional[str] = None, log_level: Optional[str] = None):
    """Run the server until a shutdown signal arrives."""
    logger = get_logger("main")

    try:
        orchestrator = ApplicationOrchestrator(config_path, log_level=log_level)
        await orchestrator.run()

    except Exception as e:
        logger.error("Dealbuster failed", extra={"error": str(e)}, exc_info=True)
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)

    try:
        asyncio.run(async_main(args.config_path, args.log_level))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")


if __name__ == "__main__":
    main()
