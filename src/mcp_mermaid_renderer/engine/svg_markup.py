# src/mcp_mermaid_renderer/engine/svg_markup.py
"""Lightweight scanning of serialized SVG markup.

Mermaid output embeds HTML fragments (``<br>``, unclosed ``<img>``) inside
``foreignObject`` labels, so it is frequently not well-formed XML. The helpers
here tokenize the text into tags and build a loose element tree that keeps
source offsets, which lets callers splice replacements into the original
string without re-serializing anything they did not touch.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

SVG_NS = "http://www.w3.org/2000/svg"

DEFAULT_WIDTH = 800.0
DEFAULT_HEIGHT = 600.0

TEXT_STYLE = (
    "<style>\n"
    "  text { font-family: Arial, sans-serif; font-size: 16px; fill: #222; }\n"
    "</style>"
)

_TOKEN_RE = re.compile(
    r"<!--.*?-->"
    r"|<!\[CDATA\[.*?\]\]>"
    r"|<\?.*?\?>"
    r"|<![^>]*>"
    r"|</\s*(?P<close>[\w:.-]+)\s*>"
    r"|<(?P<open>[\w:.-]+)(?P<attrs>(?:\s+[^\s=/>]+(?:\s*=\s*(?:\"[^\"]*\"|'[^']*'|[^\s\"'>]+))?)*)\s*(?P<selfclose>/?)>",
    re.DOTALL,
)
_ATTR_RE = re.compile(r"([^\s=/>]+)(?:\s*=\s*(?:\"([^\"]*)\"|'([^']*)'|([^\s\"'>]+)))?")
_NUMBER_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")
_SVG_OPEN_RE = re.compile(r"(<svg[^>]*>)", re.IGNORECASE)

# HTML elements that never carry a closing tag.
_VOID_TAGS = {"br", "hr", "img", "input", "meta", "link", "wbr", "col", "area", "source"}


@dataclass
class Element:
    name: str
    attrs: Dict[str, str]
    start: int          # offset of "<"
    open_end: int       # offset just past the start tag
    close_start: int = -1
    end: int = -1       # offset just past the end tag
    parent: Optional["Element"] = None
    children: List["Element"] = field(default_factory=list)

    @property
    def local_name(self) -> str:
        return self.name.split(":", 1)[-1].lower()

    @property
    def classes(self) -> List[str]:
        return (self.attrs.get("class") or "").split()

    def iter(self) -> Iterator["Element"]:
        yield self
        for child in self.children:
            yield from child.iter()

    def ancestors(self) -> Iterator["Element"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def inner(self, source: str) -> str:
        return source[self.open_end:self.close_start]


def parse_attrs(raw: str) -> Dict[str, str]:
    attrs: Dict[str, str] = {}
    for m in _ATTR_RE.finditer(raw or ""):
        value = next((g for g in m.groups()[1:] if g is not None), "")
        attrs[m.group(1)] = value
    return attrs


def build_tree(source: str) -> List[Element]:
    """
    Return the top-level elements of `source`. Unclosed elements are closed
    at the end of their parent; stray closing tags are ignored.
    """
    roots: List[Element] = []
    stack: List[Element] = []

    def _attach(el: Element) -> None:
        if stack:
            el.parent = stack[-1]
            stack[-1].children.append(el)
        else:
            roots.append(el)

    def _close(el: Element, close_start: int, end: int) -> None:
        el.close_start = close_start
        el.end = end

    for m in _TOKEN_RE.finditer(source):
        if m.group("open"):
            el = Element(
                name=m.group("open"),
                attrs=parse_attrs(m.group("attrs")),
                start=m.start(),
                open_end=m.end(),
            )
            _attach(el)
            if m.group("selfclose") or el.local_name in _VOID_TAGS:
                _close(el, m.end(), m.end())
            else:
                stack.append(el)
        elif m.group("close"):
            name = m.group("close")
            idx = next((k for k in range(len(stack) - 1, -1, -1) if stack[k].name == name), None)
            if idx is None:
                continue
            while len(stack) > idx + 1:
                dangling = stack.pop()
                _close(dangling, m.start(), m.start())
            _close(stack.pop(), m.start(), m.end())

    while stack:
        dangling = stack.pop()
        _close(dangling, len(source), len(source))
    return roots


def find_svg_root(source: str) -> Optional[Element]:
    for root in build_tree(source):
        for el in root.iter():
            if el.local_name == "svg":
                return el
    return None


def extract_svg(source: str) -> Optional[str]:
    """Serialized text of the first <svg> element in `source`, if any."""
    root = find_svg_root(source)
    if root is None:
        return None
    return source[root.start:root.end]


def parse_number(value: Optional[str]) -> Optional[float]:
    """Leading numeric value of an attribute ("800px" -> 800.0)."""
    if value is None:
        return None
    m = _NUMBER_RE.match(value)
    if not m:
        return None
    try:
        number = float(m.group(1))
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def fmt_number(value: float) -> str:
    if value == 0:
        return "0"
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def natural_size(svg_text: str) -> Tuple[float, float]:
    """
    Width/height of the document: the viewBox when it has four numbers,
    else the width/height attributes, else 800x600.
    """
    root = find_svg_root(svg_text)
    if root is None:
        return DEFAULT_WIDTH, DEFAULT_HEIGHT

    view_box = root.attrs.get("viewBox")
    if view_box:
        parts = [p for p in re.split(r"[\s,]+", view_box.strip()) if p]
        if len(parts) == 4:
            numbers = [parse_number(p) for p in parts]
            if all(n is not None for n in numbers):
                return float(numbers[2]), float(numbers[3])  # type: ignore[arg-type]

    width = parse_number(root.attrs.get("width"))
    height = parse_number(root.attrs.get("height"))
    return (
        width if width is not None else DEFAULT_WIDTH,
        height if height is not None else DEFAULT_HEIGHT,
    )


def _render_start_tag(el: Element, source: str) -> str:
    selfclose = el.end == el.open_end and source[el.start:el.open_end].rstrip().endswith("/>")
    body = "".join(f' {k}="{v.replace(chr(34), "&quot;")}"' for k, v in el.attrs.items())
    return f"<{el.name}{body}{' /' if selfclose else ''}>"


def update_root_attributes(
    svg_text: str,
    attrs: Optional[Dict[str, str]] = None,
    style: Optional[Dict[str, str]] = None,
) -> str:
    """
    Rewrite the root <svg> start tag, setting `attrs` and merging `style`
    declarations into its style attribute. The rest of the text is untouched.
    """
    root = find_svg_root(svg_text)
    if root is None:
        return svg_text

    if attrs:
        root.attrs.update(attrs)
    if style:
        decls: Dict[str, str] = {}
        for chunk in (root.attrs.get("style") or "").split(";"):
            if ":" in chunk:
                k, v = chunk.split(":", 1)
                decls[k.strip()] = v.strip()
        decls.update(style)
        root.attrs["style"] = "; ".join(f"{k}: {v}" for k, v in decls.items()) + ";"

    return svg_text[:root.start] + _render_start_tag(root, svg_text) + svg_text[root.open_end:]


def ensure_svg_namespace(svg_text: str) -> str:
    if f'xmlns="{SVG_NS}"' in svg_text:
        return svg_text
    idx = svg_text.find("<svg")
    if idx < 0:
        return svg_text
    cut = idx + len("<svg")
    return f'{svg_text[:cut]} xmlns="{SVG_NS}"{svg_text[cut:]}'


def inject_text_style(svg_text: str) -> str:
    """Insert the default text style rule right after the opening <svg> tag."""
    return _SVG_OPEN_RE.sub(lambda m: m.group(1) + TEXT_STYLE, svg_text, count=1)
