# src/mcp_mermaid_renderer/utils/checksums.py
from __future__ import annotations
import hashlib

def sha256_of_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
