from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from ..engine.render import DIAGNOSTIC_CLASS
from ..errors import RenderError, handle_exception
from ..models.io_contracts import MountRequest, NormalizeResponse, RenderRequest, RenderResponse
from ..studio import DiagramStudio
from ..utils.logging import preview, want_verbose_inputs

log = logging.getLogger("mcp.mermaid.tools.render")


def _error_payload(exc: Exception) -> Dict[str, Any]:
    return handle_exception(exc)["error"]


def register_mermaid_render(mcp: FastMCP, studio: DiagramStudio) -> None:
    log.info("tool.register", extra={
        "tools": [
            "diagram.surface.mount",
            "diagram.surface.clear",
            "diagram.mermaid.normalize",
            "diagram.mermaid.render",
        ],
        "debounce_ms": studio.settings.RENDER_DEBOUNCE_MS,
    })

    @mcp.tool(name="diagram.surface.mount", title="Mount Diagram Surface")
    async def diagram_surface_mount(
        mount_id: str,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Register (or resize) a render surface:
          - mount_id: host-chosen id the diagram is rendered into
          - width/height: rendered size of the container in px
        """
        try:
            req = MountRequest(mount_id=mount_id, width=width, height=height)
        except Exception as e:
            log.exception("tool.request.invalid")
            return {"error": _error_payload(ValueError(f"invalid_request: {e}"))}
        surface = studio.mount(req.mount_id, req.width, req.height)
        return {"mount_id": surface.mount_id, "width": surface.width, "height": surface.height}

    @mcp.tool(name="diagram.surface.clear", title="Clear Diagram Surface")
    async def diagram_surface_clear(mount_id: str) -> Dict[str, Any]:
        return {"mount_id": mount_id, "cleared": studio.clear(mount_id)}

    @mcp.tool(name="diagram.mermaid.normalize", title="Normalize Mermaid Source")
    async def diagram_mermaid_normalize(code: str) -> Dict[str, Any]:
        """Repair Mermaid source so the engine accepts it. Never fails; problems come back in `error`."""
        result = studio.normalize(code)
        resp = NormalizeResponse(
            code=result.code,
            dialect=result.dialect.value if result.dialect else None,
            error=result.error,
        ).model_dump()
        log.info("tool.response", extra={
            "tool": "diagram.mermaid.normalize",
            "dialect": resp["dialect"],
            "error": resp["error"],
        })
        return resp

    @mcp.tool(name="diagram.mermaid.render", title="Render Mermaid Diagram")
    async def diagram_mermaid_render(
        mount_id: str,
        code: str = "",
        debounce: bool = False,
    ) -> Dict[str, Any]:
        """
        Render Mermaid source (fenced or not) onto a mounted surface:
          - mount_id: surface from diagram.surface.mount
          - code: Mermaid source
          - debounce: coalesce rapid edits to the same surface
        Engine failures leave a diagnostic panel on the surface.
        """
        t0 = time.time()
        try:
            req = RenderRequest(mount_id=mount_id, code=code, debounce=debounce)
        except Exception as e:
            log.exception("tool.request.invalid")
            return {"error": _error_payload(ValueError(f"invalid_request: {e}"))}

        if want_verbose_inputs():
            log.info("tool.request.verbose", extra={"mount_id": req.mount_id, "code": req.code})
        else:
            log.info("tool.request", extra={"mount_id": req.mount_id, "code_preview": preview(req.code, 120)})

        surface = studio.surfaces.get(req.mount_id)
        if surface is None:
            err = RenderError(f"Unknown surface: {req.mount_id}", data={"hint": "call diagram.surface.mount first"})
            return RenderResponse(mount_id=req.mount_id, rendered=False, error=_error_payload(err)).model_dump()

        try:
            outcome = await studio.render_outcome(req.mount_id, req.code, debounce=req.debounce)
        except Exception as e:
            log.warning("tool.execution.failed", extra={"mount_id": req.mount_id, "error": str(e)})
            return RenderResponse(mount_id=req.mount_id, rendered=False, error=_error_payload(e)).model_dump()

        resp = RenderResponse(
            mount_id=req.mount_id,
            rendered=outcome.svg is not None,
            superseded=outcome.superseded,
            svg=outcome.svg,
            transform=surface.transform,
        )
        # a superseded or blank request leaves no diagnostic behind
        if outcome.svg is None and not outcome.superseded and DIAGNOSTIC_CLASS in surface.content:
            resp.error = {"message": "render_failed", "data": {"surface": preview(surface.content, 2000)}}

        log.info("tool.response", extra={
            "tool": "diagram.mermaid.render",
            "mount_id": req.mount_id,
            "rendered": resp.rendered,
            "superseded": resp.superseded,
            "took_ms": int((time.time() - t0) * 1000),
        })
        return resp.model_dump()
