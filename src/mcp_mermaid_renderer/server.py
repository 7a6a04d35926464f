from __future__ import annotations
import logging
from mcp.server.fastmcp import FastMCP
from .tools import register as register_tools

logger = logging.getLogger("mcp.mermaid.server")

mcp = FastMCP("mermaid-renderer")

# Tools and the studio they share are registered once at import time;
# __main__ initializes the studio before running the transport.
studio = register_tools(mcp)
