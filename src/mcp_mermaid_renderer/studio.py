# src/mcp_mermaid_renderer/studio.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .engine.debounce import RenderDebouncer
from .engine.mermaid_cli import EngineConfig, MermaidCliEngine, RenderEngine
from .engine.normalizer import normalize_diagram
from .engine.render import render_diagram
from .engine.surface import Surface, SurfaceRegistry
from .export.download import ArtifactSink
from .export.emitters import export_json, export_png, export_svg
from .export.raster import CairoRasterizer, Rasterizer
from .models.artifact import ExportArtifact
from .models.normalization import NormalizationResult
from .settings import Settings

log = logging.getLogger("mcp.mermaid.studio")


@dataclass(frozen=True)
class RenderOutcome:
    svg: Optional[str] = None
    superseded: bool = False


_SUPERSEDED = RenderOutcome(superseded=True)


def build_engine(settings: Settings) -> MermaidCliEngine:
    config = EngineConfig(
        start_on_load=False,
        theme=settings.MERMAID_THEME,
        security_level=settings.MERMAID_SECURITY_LEVEL,
    )
    return MermaidCliEngine(
        config,
        command=settings.MERMAID_CLI,
        work_dir=settings.ENGINE_WORK_DIR,
        puppeteer_config=settings.PUPPETEER_CONFIG,
    )


class DiagramStudio:
    """
    Owns the surfaces, the rendering engine, the artifact sink and the
    debouncer, and remembers the last source submitted to each surface.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        engine: Optional[RenderEngine] = None,
        rasterizer: Optional[Rasterizer] = None,
        sink: Optional[ArtifactSink] = None,
        debouncer: Optional[RenderDebouncer] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.engine: RenderEngine = engine or build_engine(self.settings)
        self.rasterizer: Rasterizer = rasterizer or CairoRasterizer()
        self.sink = sink or ArtifactSink(self.settings.OUTPUT_DIR)
        self.debouncer = debouncer or RenderDebouncer(self.settings.RENDER_DEBOUNCE_MS)
        self.surfaces = SurfaceRegistry()
        self._sources: Dict[str, str] = {}
        self._initialized = False

    def initialize(self) -> None:
        if self._initialized:
            return
        init = getattr(self.engine, "initialize", None)
        if callable(init):
            init()
        self._initialized = True
        log.info("studio.initialized", extra=self.settings.snapshot())

    # -------- surfaces --------

    def mount(self, mount_id: str, width: Optional[float] = None, height: Optional[float] = None) -> Surface:
        return self.surfaces.mount(
            mount_id,
            width or self.settings.SURFACE_WIDTH,
            height or self.settings.SURFACE_HEIGHT,
        )

    def clear(self, mount_id: str) -> bool:
        surface = self.surfaces.get(mount_id)
        if surface is None:
            return False
        surface.clear()
        self._sources.pop(mount_id, None)
        return True

    def source(self, mount_id: str) -> Optional[str]:
        return self._sources.get(mount_id)

    # -------- pipeline --------

    def normalize(self, code: str) -> NormalizationResult:
        return normalize_diagram(code)

    async def render(self, mount_id: str, code: str, *, debounce: bool = False) -> Optional[str]:
        return (await self.render_outcome(mount_id, code, debounce=debounce)).svg

    async def render_outcome(self, mount_id: str, code: str, *, debounce: bool = False) -> RenderOutcome:
        """Like `render`, but says whether a newer edit superseded this request."""
        if mount_id in self.surfaces:
            self._sources[mount_id] = code

        async def _run() -> RenderOutcome:
            svg = await render_diagram(mount_id, code, engine=self.engine, surfaces=self.surfaces)
            return RenderOutcome(svg=svg)

        if debounce:
            return await self.debouncer.submit(mount_id, _run, superseded=_SUPERSEDED)
        return await _run()

    def export_svg(self, mount_id: str) -> ExportArtifact:
        return export_svg(self.surfaces.get(mount_id), self.sink)

    async def export_png(
        self,
        mount_id: str,
        *,
        preview_mount_id: Optional[str] = None,
    ) -> Tuple[Optional[ExportArtifact], List[str]]:
        messages: List[str] = []
        preview = self.surfaces.get(preview_mount_id) if preview_mount_id else None
        artifact = await export_png(
            self.surfaces.get(mount_id),
            self.sink,
            rasterizer=self.rasterizer,
            notify=messages.append,
            preview=preview,
        )
        return artifact, messages

    def export_json(self, mount_id: Optional[str] = None, code: Optional[str] = None) -> ExportArtifact:
        source = code if code is not None else (self._sources.get(mount_id or "") or "")
        return export_json(source, self.sink)
