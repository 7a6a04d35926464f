# src/mcp_mermaid_renderer/engine/fences.py
from __future__ import annotations

import re

_FENCE_RE = re.compile(r"^\s*```(?:mermaid|graphviz)?\s*\n?(.*?)\n?\s*```\s*\Z", re.DOTALL)

def strip_markdown_fences(text: str) -> str:
    """
    Return the interior of a text wholly wrapped in one ``` fence (optionally
    tagged mermaid/graphviz), trimmed; otherwise the trimmed text.

    Nested decoration is unwrapped until nothing changes, so applying this
    twice is the same as applying it once.
    """
    s = (text or "").strip()
    while True:
        m = _FENCE_RE.match(s)
        if not m or not m.group(1):
            return s
        inner = m.group(1).strip()
        if inner == s:
            return s
        s = inner
