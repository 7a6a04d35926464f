# src/mcp_mermaid_renderer/engine/normalizer.py
from __future__ import annotations

import logging
import re
from typing import List, Optional

from ..models.normalization import (
    ALIAS_KEYWORDS,
    DIALECT_KEYWORDS,
    DialectTag,
    NormalizationResult,
)

log = logging.getLogger("mcp.mermaid.engine.normalizer")

DEFAULT_HEADER = "flowchart TD"
UNKNOWN_DIAGRAM_ERROR = "Unknown or unsupported diagram type."

# A keyword only counts when it is not the prefix of a longer identifier.
_KEYWORD_END = r"(?![A-Za-z0-9_])"

_INLINE_FENCE_RE = re.compile(r"```mermaid|```")
_ALIAS_RE = re.compile(
    r"^\s*(?:" + "|".join(ALIAS_KEYWORDS) + r")" + _KEYWORD_END, re.IGNORECASE
)
_VALID_HEADER_RE = re.compile(r"^(?:" + "|".join(DIALECT_KEYWORDS) + r")" + _KEYWORD_END)

_SUBGRAPH_RE = re.compile(r"^(\s*)subgraph\s+(.*?)\s*$")
_EDGE_LABEL_RE = re.compile(r'--\s*"([^"]+)"\s*-->')

_SEQ_BLOCK_OPENERS = ("loop", "alt", "opt", "par", "critical", "break", "rect", "box", "subgraph")

_GANTT_DATE_FORMAT = "  dateFormat  YYYY-MM-DD"
_PIE_TITLE = "  title Pie Chart"
_JOURNEY_TITLE = "  title Journey"
_TITLE_RE = re.compile(r"title\s+", re.IGNORECASE)


def detect_dialect(code: str) -> Optional[DialectTag]:
    for keyword in DIALECT_KEYWORDS:
        if re.match(re.escape(keyword) + _KEYWORD_END, code):
            return DialectTag(keyword)
    return None


def _insert_after_header(code: str, line: str) -> str:
    header, sep, rest = code.partition("\n")
    return f"{header}\n{line}{sep}{rest}"


# -------- flowchart / graph --------

def _quote_subgraph_title(line: str) -> str:
    m = _SUBGRAPH_RE.match(line)
    if not m:
        return line
    indent, title = m.group(1), m.group(2)
    # already quoted, or id["label"] form
    if not title or title.startswith('"') or "[" in title:
        return line
    if not re.search(r"\s", title):
        return line
    return f'{indent}subgraph "{title.replace(chr(34), "#quot;")}"'


def _repair_flowchart(code: str) -> str:
    fixed: List[str] = []
    for ln in code.split("\n"):
        ln = _quote_subgraph_title(ln)
        ln = _EDGE_LABEL_RE.sub(r"-->|\1|", ln)
        fixed.append(ln)
    return "\n".join(fixed)


# -------- sequenceDiagram --------

def _first_word(line: str) -> str:
    parts = line.strip().split(None, 1)
    return parts[0] if parts else ""


def _strip_sequence_subgraphs(code: str) -> str:
    """
    Drop every `subgraph ... end` block, nested blocks included. The closing
    `end` is found by counting nested block openers. An unterminated block is
    left untouched.
    """
    lines = code.split("\n")
    out: List[str] = []
    i = 0
    while i < len(lines):
        if _first_word(lines[i]) != "subgraph":
            out.append(lines[i])
            i += 1
            continue
        depth = 0
        j = i
        while j < len(lines):
            word = _first_word(lines[j])
            if word in _SEQ_BLOCK_OPENERS:
                depth += 1
            elif word == "end":
                depth -= 1
                if depth == 0:
                    break
            j += 1
        if j >= len(lines):
            out.extend(lines[i:])
            break
        i = j + 1
    return "\n".join(out)


# -------- entry point --------

def _transform(raw: str) -> NormalizationResult:
    code = raw.strip()
    code = _INLINE_FENCE_RE.sub("", code).strip()

    dialect = detect_dialect(code)

    if _ALIAS_RE.match(code):
        code = _ALIAS_RE.sub(DEFAULT_HEADER, code, count=1)
        dialect = DialectTag.FLOWCHART

    if dialect is None:
        code = f"{DEFAULT_HEADER}\n{code}"
        dialect = DialectTag.FLOWCHART

    if dialect in (DialectTag.FLOWCHART, DialectTag.GRAPH):
        code = _repair_flowchart(code)
    elif dialect is DialectTag.SEQUENCE:
        code = _strip_sequence_subgraphs(code)
    elif dialect is DialectTag.GANTT:
        if "dateFormat" not in code:
            code = _insert_after_header(code, _GANTT_DATE_FORMAT)
    elif dialect is DialectTag.PIE:
        if not _TITLE_RE.search(code):
            code = _insert_after_header(code, _PIE_TITLE)
    elif dialect is DialectTag.JOURNEY:
        if not _TITLE_RE.search(code):
            code = _insert_after_header(code, _JOURNEY_TITLE)

    if not _VALID_HEADER_RE.match(code):
        return NormalizationResult(code=code, error=UNKNOWN_DIAGRAM_ERROR)

    return NormalizationResult(code=code, dialect=dialect)


def normalize_diagram(raw: str) -> NormalizationResult:
    """
    Make Mermaid source acceptable to the engine:
      - drop stray ``` markers
      - detect the dialect from the leading keyword
      - rewrite networkDiagram / architectureDiagram to a flowchart
      - default to `flowchart TD` when no keyword is present
      - apply dialect-specific repairs, then validate the header
    Never raises; failures come back in `error`.
    """
    try:
        return _transform(raw)
    except Exception as e:
        log.warning("normalize.failed", extra={"error": str(e)})
        return NormalizationResult(
            code="" if raw is None else str(raw),
            error=f"Transformation failed: {e}",
        )
