# src/mcp_mermaid_renderer/tools/__init__.py
from __future__ import annotations

from typing import Optional

from mcp.server.fastmcp import FastMCP

from ..studio import DiagramStudio
from .diagram_export import register_diagram_export
from .mermaid_render import register_mermaid_render

def register(mcp: FastMCP, studio: Optional[DiagramStudio] = None) -> DiagramStudio:
    studio = studio or DiagramStudio()
    register_mermaid_render(mcp, studio)
    register_diagram_export(mcp, studio)
    return studio
