# src/powerplatform_mcp/__main__.py
import logging

from powerplatform_mcp.config import get_settings
from powerplatform_mcp.logging_setup import setup_logging
from powerplatform_mcp.mcp_server import mcp

logger = logging.getLogger(__name__)


def main():
    setup_logging(get_settings())
    logger.info("Starting PowerPlatform MCP server (stdio)...")
    mcp.run()


if __name__ == "__main__":
    main()
