from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from ..errors import handle_exception
from ..models.io_contracts import ExportResponse
from ..studio import DiagramStudio

log = logging.getLogger("mcp.mermaid.tools.export")


def register_diagram_export(mcp: FastMCP, studio: DiagramStudio) -> None:
    log.info("tool.register", extra={
        "tools": ["diagram.export.svg", "diagram.export.png", "diagram.export.json"],
        "output_dir": studio.settings.OUTPUT_DIR,
    })

    @mcp.tool(name="diagram.export.svg", title="Export Diagram as SVG")
    async def diagram_export_svg(mount_id: str) -> Dict[str, Any]:
        """Write the diagram currently shown on `mount_id` to diagram.svg."""
        try:
            artifact = studio.export_svg(mount_id)
        except Exception as e:
            log.warning("tool.execution.failed", extra={"tool": "diagram.export.svg", "error": str(e)})
            return ExportResponse(error=handle_exception(e)["error"]).model_dump()
        return ExportResponse(artifact=artifact).model_dump()

    @mcp.tool(name="diagram.export.png", title="Export Diagram as PNG")
    async def diagram_export_png(
        mount_id: str,
        preview_mount_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Rasterize the diagram on `mount_id` (3x, white background) to diagram.png.
        `preview_mount_id` optionally receives an <img> preview of the result.
        Failures come back as user-facing `messages`.
        """
        t0 = time.time()
        try:
            artifact, messages = await studio.export_png(mount_id, preview_mount_id=preview_mount_id)
        except Exception as e:
            log.warning("tool.execution.failed", extra={"tool": "diagram.export.png", "error": str(e)})
            return ExportResponse(error=handle_exception(e)["error"]).model_dump()

        log.info("tool.response", extra={
            "tool": "diagram.export.png",
            "ok": artifact is not None,
            "took_ms": int((time.time() - t0) * 1000),
        })
        return ExportResponse(artifact=artifact, messages=messages).model_dump()

    @mcp.tool(name="diagram.export.json", title="Export Diagram Source as JSON")
    async def diagram_export_json(
        mount_id: Optional[str] = None,
        code: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Write {"diagramCode": ...} to diagram.json, from `code` or the last source rendered on `mount_id`."""
        try:
            artifact = studio.export_json(mount_id, code)
        except Exception as e:
            log.warning("tool.execution.failed", extra={"tool": "diagram.export.json", "error": str(e)})
            return ExportResponse(error=handle_exception(e)["error"]).model_dump()
        return ExportResponse(artifact=artifact).model_dump()
