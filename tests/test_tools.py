from __future__ import annotations

import asyncio
import json

from mcp.server.fastmcp import FastMCP

from mcp_mermaid_renderer.errors import RasterizationError
from mcp_mermaid_renderer.export.emitters import RASTER_FAILED
from mcp_mermaid_renderer.studio import DiagramStudio
from mcp_mermaid_renderer.tools import register

from conftest import FakeEngine, FakeRasterizer


def _server(settings, engine=None, rasterizer=None):
    mcp = FastMCP("test-mermaid-renderer")
    studio = register(mcp, DiagramStudio(settings, engine=engine or FakeEngine(), rasterizer=rasterizer))
    return mcp, studio


def _payload(result):
    # newer SDKs return (content, structured); older ones the content list
    if isinstance(result, tuple):
        result = result[0]
    if isinstance(result, dict):
        return result
    return json.loads(result[0].text)


async def _call(mcp, name, **arguments):
    return _payload(await mcp.call_tool(name, arguments))


def test_render_on_unknown_surface_returns_render_error(settings):
    mcp, _ = _server(settings)
    resp = asyncio.run(_call(mcp, "diagram.mermaid.render", mount_id="nowhere", code="A-->B"))
    assert resp["rendered"] is False
    assert resp["error"]["code"] == -32001
    assert resp["error"]["message"] == "Unknown surface: nowhere"


def test_superseded_render_is_not_reported_as_failure(settings):
    engine = FakeEngine()
    mcp, _ = _server(settings, engine)

    async def session():
        await _call(mcp, "diagram.surface.mount", mount_id="m")
        await _call(mcp, "diagram.mermaid.render", mount_id="m", code="A-->B")
        return await asyncio.gather(
            _call(mcp, "diagram.mermaid.render", mount_id="m", code="A-->C", debounce=True),
            _call(mcp, "diagram.mermaid.render", mount_id="m", code="A-->D", debounce=True),
        )

    first, second = asyncio.run(session())
    assert first["rendered"] is False
    assert first["superseded"] is True
    assert first["error"] is None
    assert second["rendered"] is True
    assert second["superseded"] is False
    assert [code for _, code in engine.calls] == ["flowchart TD\nA-->B", "flowchart TD\nA-->D"]


def test_engine_failure_is_reported_with_the_diagnostic(settings):
    mcp, studio = _server(settings, FakeEngine(error=RuntimeError("Parse error on line 2")))

    async def session():
        await _call(mcp, "diagram.surface.mount", mount_id="m")
        return await _call(mcp, "diagram.mermaid.render", mount_id="m", code="A-->")

    resp = asyncio.run(session())
    assert resp["rendered"] is False
    assert resp["superseded"] is False
    assert resp["error"]["message"] == "render_failed"
    assert "Parse error on line 2" in resp["error"]["data"]["surface"]
    assert "diagram-error" in studio.surfaces.get("m").content


def test_blank_render_clears_without_error(settings):
    mcp, studio = _server(settings)

    async def session():
        await _call(mcp, "diagram.surface.mount", mount_id="m")
        await _call(mcp, "diagram.mermaid.render", mount_id="m", code="A-->B")
        return await _call(mcp, "diagram.mermaid.render", mount_id="m", code="   ")

    resp = asyncio.run(session())
    assert resp["rendered"] is False
    assert resp["error"] is None
    assert studio.surfaces.get("m").content == ""


def test_export_svg_without_render_returns_precondition_error(settings):
    mcp, _ = _server(settings)

    async def session():
        await _call(mcp, "diagram.surface.mount", mount_id="m")
        return await _call(mcp, "diagram.export.svg", mount_id="m")

    resp = asyncio.run(session())
    assert resp["artifact"] is None
    assert resp["error"]["code"] == -32003
    assert resp["error"]["message"].startswith("Nothing to export")


def test_export_png_raster_failure_comes_back_as_message(settings):
    rasterizer = FakeRasterizer(error=RasterizationError("no cairo"))
    mcp, _ = _server(settings, rasterizer=rasterizer)

    async def session():
        await _call(mcp, "diagram.surface.mount", mount_id="m")
        await _call(mcp, "diagram.mermaid.render", mount_id="m", code="A-->B")
        return await _call(mcp, "diagram.export.png", mount_id="m")

    resp = asyncio.run(session())
    assert resp["artifact"] is None
    assert resp["messages"] == [RASTER_FAILED]
    assert resp["error"] is None
    assert len(rasterizer.calls) == 1


def test_export_png_writes_artifact(settings, fake_rasterizer):
    mcp, _ = _server(settings, rasterizer=fake_rasterizer)

    async def session():
        await _call(mcp, "diagram.surface.mount", mount_id="m")
        await _call(mcp, "diagram.mermaid.render", mount_id="m", code="A-->B")
        return await _call(mcp, "diagram.export.png", mount_id="m")

    resp = asyncio.run(session())
    assert resp["messages"] == []
    assert resp["artifact"]["filename"] == "diagram.png"
    assert resp["artifact"]["media_type"] == "image/png"


def test_mount_rejects_blank_id_and_non_positive_size(settings):
    mcp, studio = _server(settings)

    async def session():
        return (
            await _call(mcp, "diagram.surface.mount", mount_id="   "),
            await _call(mcp, "diagram.surface.mount", mount_id="m", width=-1.0),
        )

    blank, negative = asyncio.run(session())
    for resp in (blank, negative):
        assert resp["error"]["code"] == -32602
        assert resp["error"]["message"].startswith("invalid_request:")
    assert "m" not in studio.surfaces


def test_mount_and_normalize(settings):
    mcp, _ = _server(settings)

    async def session():
        return (
            await _call(mcp, "diagram.surface.mount", mount_id=" m ", width=640.0, height=480.0),
            await _call(mcp, "diagram.mermaid.normalize", code="graph LR\nA-->B"),
        )

    mounted, normalized = asyncio.run(session())
    assert mounted == {"mount_id": "m", "width": 640.0, "height": 480.0}
    assert normalized["code"] == "graph LR\nA-->B"
    assert normalized["dialect"] == "graph"
    assert normalized["error"] is None
