"""
Entry point of the Mina MCP server.

Loads configuration (config.yaml, environment, command-line overrides),
sets up logging on stderr and serves the MCP tools over stdio until the
client closes stdin.

Usage:
    mina-mcp --api-key <key>
    python -m mina_mcp.main
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from mina_mcp import __version__
from mina_mcp.common.config import Config, apply_overrides, load_config
from mina_mcp.common.logging import get_logger, setup_logging
from mina_mcp.server.mcp_server import MinaMCPServer
from mina_mcp.server.transports.stdio import StdioTransport

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(prog="mina-mcp", description="Mina Blockchain MCP Server")
    parser.add_argument("-k", "--api-key", type=str, help="Blockberry API key")
    parser.add_argument("--base-url", type=str, help="Override the Blockberry API base URL")
    parser.add_argument(
        "-c", "--config", type=Path, default=Path("config.yaml"), help="Path to config.yaml"
    )
    parser.add_argument("--log-level", type=str, help="Override the logging level")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """Load configuration and apply command-line overrides."""
    config = load_config(args.config)
    return apply_overrides(
        config, api_key=args.api_key, base_url=args.base_url, log_level=args.log_level
    )


async def serve(config: Config) -> None:
    """Run the MCP server on stdio until EOF."""
    server = MinaMCPServer(config)
    logger.info(event="server_health", **server.health_check())

    transport = StdioTransport(server)
    await transport.run()


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    load_dotenv()

    args = parse_args(argv)
    config = build_config(args)
    setup_logging(config)

    if not config.blockberry.is_configured:
        logger.warning(
            event="api_key_missing",
            message="BLOCKBERRY_API_KEY not set. zkApp transaction queries will fail.",
        )

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info(event="application_shutdown", reason="Keyboard interrupt")
    except Exception as e:
        logger.critical(event="application_crashed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    main()
