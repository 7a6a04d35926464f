"""MCP server that normalizes, renders and exports Mermaid diagrams."""

__version__ = "0.1.0"
