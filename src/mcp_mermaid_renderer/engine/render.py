# src/mcp_mermaid_renderer/engine/render.py
from __future__ import annotations

import html
import logging
import time
from typing import Optional

from ..errors import RenderError
from ..utils.logging import preview
from .fences import strip_markdown_fences
from .mermaid_cli import RenderEngine
from .normalizer import normalize_diagram
from .surface import Surface, SurfaceRegistry
from .svg_markup import extract_svg, fmt_number, natural_size, update_root_attributes

log = logging.getLogger("mcp.mermaid.engine.render")

FENCE_HINT = "Tip: Make sure your diagram code doesn't include markdown code fences (```)."
DIAGNOSTIC_CLASS = "diagram-error"

_FIT_STYLE = {"width": "100%", "height": "100%", "max-height": "100%"}


def _diagnostic_panel(message: str, code: str) -> str:
    return (
        f'<div class="{DIAGNOSTIC_CLASS}" role="alert">'
        "<p><strong>Diagram rendering error:</strong></p>"
        f"<p>{html.escape(message)}</p>"
        f"<p>{html.escape(FENCE_HINT)}</p>"
        f"<pre><code>{html.escape(code)}</code></pre>"
        "</div>"
    )


def _fit_to_container(surface: Surface, svg: str) -> None:
    """Mount `svg` stretched to the container; shrink (never enlarge) to fit."""
    svg = extract_svg(svg) or svg
    natural_w, natural_h = natural_size(svg)
    surface.replace(update_root_attributes(
        svg,
        attrs={"preserveAspectRatio": "xMidYMid meet"},
        style=_FIT_STYLE,
    ))

    if natural_w <= 0 or natural_h <= 0:
        return
    scale = min(surface.width / natural_w, surface.height / natural_h)
    if scale < 1:
        surface.transform = f"scale({fmt_number(scale)})"


async def render_diagram(
    mount_id: str,
    raw: str,
    *,
    engine: RenderEngine,
    surfaces: SurfaceRegistry,
) -> Optional[str]:
    """
    Normalize `raw`, render it through `engine` and mount the result on the
    surface registered as `mount_id`.

    Returns the rendered SVG text, or None when there is no surface, the
    source is blank, or the engine failed (the surface then shows a
    diagnostic panel). Raises RenderError when the source cannot be
    normalized; the engine is not called in that case.
    """
    surface = surfaces.get(mount_id)
    source = strip_markdown_fences(raw or "")

    if surface is None:
        if source:
            log.warning("render.no_surface", extra={"mount_id": mount_id})
        return None

    if not source:
        surface.clear()
        log.info("render.cleared", extra={"mount_id": mount_id})
        return None

    result = normalize_diagram(source)
    if result.error:
        log.warning("render.normalize_failed", extra={"mount_id": mount_id, "error": result.error})
        raise RenderError(
            f"Diagram transformation failed: {result.error}",
            data={"mount_id": mount_id},
        )

    render_id = f"mermaid-svg-{mount_id}-{time.monotonic_ns()}"
    t0 = time.time()
    try:
        output = await engine.render(render_id, result.code)
    except Exception as e:
        message = e.message if isinstance(e, RenderError) else str(e)
        log.error("render.failed", extra={
            "mount_id": mount_id,
            "render_id": render_id,
            "error": message,
            "code_preview": preview(result.code),
        })
        surface.replace(_diagnostic_panel(message, result.code))
        return None

    _fit_to_container(surface, output.svg)
    if output.bind_functions is not None:
        output.bind_functions(surface)

    log.info("render.ok", extra={
        "mount_id": mount_id,
        "render_id": render_id,
        "dialect": result.dialect.value if result.dialect else None,
        "transform": surface.transform,
        "took_ms": int((time.time() - t0) * 1000),
    })
    return output.svg
