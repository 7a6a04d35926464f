# src/mcp_mermaid_renderer/engine/svg_rewrite.py
from __future__ import annotations

import logging
import re
from typing import List, Optional, Set, Tuple

from .svg_markup import Element, build_tree, fmt_number, parse_number

log = logging.getLogger("mcp.mermaid.engine.svg_rewrite")

_TRANSLATE_RE = re.compile(r"translate\(\s*[^,)\s]+\s*[,\s]\s*[^)]+\)")
_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")

LABEL_TEXT_TEMPLATE = (
    '<text x="{x}" y="{y}" font-family="Arial, sans-serif" font-size="16" fill="#222" '
    'text-anchor="middle" dominant-baseline="middle">{label}</text>'
)


def _is_translated_group(el: Element) -> bool:
    return el.local_name == "g" and bool(_TRANSLATE_RE.search(el.attrs.get("transform") or ""))


def _label_span(fo: Element) -> Optional[Element]:
    for el in fo.iter():
        if el.local_name == "span" and "nodeLabel" in el.classes:
            return el
    return None


def _background_rect(group: Element, before: int) -> Optional[Element]:
    for el in group.iter():
        if el is group:
            continue
        if el.local_name == "rect" and el.end <= before:
            return el
    return None


def _label_text(span: Element, source: str) -> str:
    return _WS_RE.sub(" ", _TAG_RE.sub(" ", span.inner(source))).strip()


def _text_node(rect: Element, fo: Element, label: str) -> str:
    x = parse_number(rect.attrs.get("x")) or 0.0
    y = parse_number(rect.attrs.get("y")) or 0.0
    width = parse_number(rect.attrs.get("width"))
    if width is None:
        width = parse_number(fo.attrs.get("width")) or 0.0
    height = parse_number(rect.attrs.get("height"))
    if height is None:
        height = parse_number(fo.attrs.get("height")) or 0.0
    return LABEL_TEXT_TEMPLATE.format(
        x=fmt_number(x + width / 2),
        y=fmt_number(y + height / 2),
        label=label,
    )


def convert_foreign_object_labels_to_text(svg: str) -> str:
    """
    Replace Mermaid's HTML node labels (<foreignObject> holding a
    span.nodeLabel) with plain <text> nodes, which rasterizers can draw.

    Each label is matched against its nearest translated <g> ancestor that
    holds a <rect> before the label; the text is centered on that rect. A
    group yields at most one replacement. Unmatched labels stay as they are.
    """
    replacements: List[Tuple[int, int, str]] = []
    used_groups: Set[int] = set()

    for root in build_tree(svg):
        for fo in root.iter():
            if fo.local_name != "foreignobject":
                continue
            span = _label_span(fo)
            if span is None:
                continue
            for group in fo.ancestors():
                if not _is_translated_group(group) or id(group) in used_groups:
                    continue
                rect = _background_rect(group, fo.start)
                if rect is None:
                    continue
                used_groups.add(id(group))
                replacements.append((fo.start, fo.end, _text_node(rect, fo, _label_text(span, svg))))
                break

    if not replacements:
        return svg

    out = svg
    for start, end, text in sorted(replacements, reverse=True):
        out = out[:start] + text + out[end:]
    log.debug("svg.rewrite.labels", extra={"replaced": len(replacements)})
    return out
