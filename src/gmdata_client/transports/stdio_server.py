# GM Data Client
# File: transports/stdio_server.py
# Version: v2

"""STDIO entrypoint for the GM Data MCP server.

This is the script behind the ``gmdata-mcp`` console command.

It:

- configures logging,
- creates a FastMCP server,
- registers the GM Data tools, and
- runs the built-in stdio transport.
"""

from __future__ import annotations

import logging
import os

from mcp.server.fastmcp import FastMCP

from ..tools import register_all_tools


def main() -> None:
    """Synchronous entrypoint for console_scripts."""
    # stdout carries the MCP protocol, so logs go to stderr (the default).
    logging.basicConfig(
        level=os.getenv("GMDATA_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    mcp = FastMCP("gmdata-client")
    register_all_tools(mcp)

    # Let FastMCP handle stdio + event loop setup.
    mcp.run()


if __name__ == "__main__":
    main()
