from __future__ import annotations

from typing import List, Optional, Tuple

import pytest
from PIL import Image

from mcp_mermaid_renderer.engine.mermaid_cli import RenderOutput
from mcp_mermaid_renderer.export.raster import RasterCanvas
from mcp_mermaid_renderer.settings import Settings

SAMPLE_SVG = (
    '<svg id="d" viewBox="0 0 400 300">'
    '<g class="node" transform="translate(100, 50)">'
    '<rect x="10" y="20" width="80" height="40"></rect>'
    '<foreignObject width="80" height="40"><div><span class="nodeLabel">Start</span></div></foreignObject>'
    "</g>"
    "</svg>"
)


class FakeEngine:
    def __init__(self, svg: str = SAMPLE_SVG, error: Optional[Exception] = None, bind=None):
        self.svg = svg
        self.error = error
        self.bind = bind
        self.calls: List[Tuple[str, str]] = []
        self.initialized = 0

    def initialize(self) -> None:
        self.initialized += 1

    async def render(self, render_id: str, code: str) -> RenderOutput:
        self.calls.append((render_id, code))
        if self.error is not None:
            raise self.error
        return RenderOutput(svg=self.svg, bind_functions=self.bind)


class FakeRasterizer:
    """Paints a solid black layer the size of the scaled document."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[Tuple[str, float, float]] = []
        self.transforms: list = []

    async def draw(self, svg: str, canvas: RasterCanvas, width: float, height: float) -> None:
        self.calls.append((svg, width, height))
        self.transforms.append(canvas.transform)
        if self.error is not None:
            raise self.error
        layer = Image.new("RGB", (int(width * canvas.scale), int(height * canvas.scale)), (0, 0, 0))
        canvas.draw_layer(layer)


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def fake_rasterizer() -> FakeRasterizer:
    return FakeRasterizer()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        OUTPUT_DIR=str(tmp_path / "out"),
        ENGINE_WORK_DIR=str(tmp_path / "engine"),
        RENDER_DEBOUNCE_MS=10,
        SURFACE_WIDTH=200.0,
        SURFACE_HEIGHT=150.0,
    )
