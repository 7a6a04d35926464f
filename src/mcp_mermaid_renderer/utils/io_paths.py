# src/mcp_mermaid_renderer/utils/io_paths.py
from __future__ import annotations
import os
from pathlib import Path

DEFAULT_OUTPUT_DIR = "/tmp/mcp-mermaid-renderer"

def ensure_output_dir(base: str | os.PathLike | None = None) -> Path:
    p = Path(base or os.getenv("OUTPUT_DIR", DEFAULT_OUTPUT_DIR))
    p.mkdir(parents=True, exist_ok=True)
    return p
