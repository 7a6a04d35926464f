# src/mcp_mermaid_renderer/export/emitters.py
from __future__ import annotations

import base64
import json
import logging
from typing import Callable, Optional

from ..engine.fences import strip_markdown_fences
from ..engine.surface import Surface
from ..engine.svg_markup import ensure_svg_namespace, extract_svg, inject_text_style, natural_size
from ..engine.svg_rewrite import convert_foreign_object_labels_to_text
from ..errors import ExportPreconditionError, RasterizationError
from ..models.artifact import ExportArtifact
from .download import ArtifactSink
from .raster import RasterCanvas, Rasterizer

log = logging.getLogger("mcp.mermaid.export.emitters")

Notifier = Callable[[str], None]

SVG_FILENAME = "diagram.svg"
PNG_FILENAME = "diagram.png"
JSON_FILENAME = "diagram.json"

SVG_MEDIA_TYPE = "image/svg+xml;charset=utf-8"
PNG_MEDIA_TYPE = "image/png"
JSON_MEDIA_TYPE = "application/json"

RASTER_SCALE = 3
RASTER_PADDING = 20

CANVAS_UNAVAILABLE = "Could not create canvas context for PNG export."
RASTER_FAILED = "Failed to render SVG for PNG export. Please try using SVG export instead."
PNG_EXPORT_FAILED = "Failed to export PNG. Please try again or use SVG export instead."


def _live_svg(surface: Optional[Surface]) -> str:
    svg = extract_svg(surface.content) if surface is not None else None
    if not svg:
        raise ExportPreconditionError(
            "Nothing to export: no rendered diagram on this surface.",
            data={"mount_id": surface.mount_id if surface is not None else None},
        )
    return svg


def export_svg(surface: Optional[Surface], sink: ArtifactSink) -> ExportArtifact:
    svg = ensure_svg_namespace(_live_svg(surface))
    return sink.deliver(svg, SVG_FILENAME, SVG_MEDIA_TYPE)


def _preview_markup(png: bytes) -> str:
    data = base64.b64encode(png).decode("ascii")
    return (
        f'<img src="data:image/png;base64,{data}" alt="Diagram PNG preview" '
        'style="max-width: 100%; height: auto;" />'
    )


async def export_png(
    surface: Optional[Surface],
    sink: ArtifactSink,
    *,
    rasterizer: Rasterizer,
    notify: Notifier,
    preview: Optional[Surface] = None,
) -> Optional[ExportArtifact]:
    """
    Rasterize the mounted diagram at 3x with 20px padding on white and
    deliver it as diagram.png.

    Labels held in foreignObject HTML are rewritten to <text> first, since
    the rasterizer draws no HTML. Canvas, rasterization and encoding
    failures are reported through `notify` and yield None.
    """
    svg = _live_svg(surface)
    prepared = convert_foreign_object_labels_to_text(inject_text_style(ensure_svg_namespace(svg)))
    width, height = natural_size(prepared)

    try:
        canvas = RasterCanvas.allocate(width, height, scale=RASTER_SCALE, padding=RASTER_PADDING)
    except (ValueError, MemoryError, OSError) as e:
        log.error("export.png.canvas_failed", extra={"width": width, "height": height, "error": str(e)})
        notify(CANVAS_UNAVAILABLE)
        return None

    try:
        await rasterizer.draw(prepared, canvas, width, height)
    except RasterizationError as e:
        log.error("export.png.raster_failed", extra={"error": e.message, "data": e.data}, exc_info=True)
        notify(RASTER_FAILED)
        return None

    try:
        png = canvas.encode_png()
    except (OSError, ValueError) as e:
        log.error("export.png.failed", extra={"error": str(e)}, exc_info=True)
        notify(PNG_EXPORT_FAILED)
        return None

    artifact = sink.deliver(png, PNG_FILENAME, PNG_MEDIA_TYPE)
    if preview is not None:
        preview.replace(_preview_markup(png))
    log.info("export.png.ok", extra={"canvas": list(canvas.size), "size_bytes": artifact.size_bytes})
    return artifact


def export_json(source: str, sink: ArtifactSink) -> ExportArtifact:
    code = strip_markdown_fences(source or "")
    if not code:
        raise ExportPreconditionError("Nothing to export: diagram source is empty.")
    payload = json.dumps({"diagramCode": code}, indent=2, ensure_ascii=False)
    return sink.deliver(payload, JSON_FILENAME, JSON_MEDIA_TYPE)
