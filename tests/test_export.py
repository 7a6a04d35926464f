from __future__ import annotations

import asyncio
import hashlib
import io
import json

import pytest
from PIL import Image

from mcp_mermaid_renderer.engine.surface import Surface
from mcp_mermaid_renderer.errors import ExportPreconditionError, RasterizationError
from mcp_mermaid_renderer.export import emitters
from mcp_mermaid_renderer.export.download import ArtifactSink
from mcp_mermaid_renderer.export.emitters import (
    CANVAS_UNAVAILABLE,
    RASTER_FAILED,
    export_json,
    export_png,
    export_svg,
)
from mcp_mermaid_renderer.export.raster import CairoRasterizer, RasterCanvas

from conftest import SAMPLE_SVG, FakeRasterizer


@pytest.fixture
def sink(tmp_path) -> ArtifactSink:
    return ArtifactSink(tmp_path / "out")


@pytest.fixture
def surface() -> Surface:
    s = Surface(mount_id="m", width=200, height=150)
    s.replace(SAMPLE_SVG)
    return s


def _png(surface, sink, rasterizer, preview=None):
    messages = []
    artifact = asyncio.run(
        export_png(surface, sink, rasterizer=rasterizer, notify=messages.append, preview=preview)
    )
    return artifact, messages


# -------- sink --------

def test_sink_writes_file_and_leaves_no_temp_files(sink):
    artifact = sink.deliver("hello", "note.txt", "text/plain")
    out_dir = sink.output_dir
    assert [p.name for p in out_dir.iterdir()] == ["note.txt"]
    assert (out_dir / "note.txt").read_text(encoding="utf-8") == "hello"
    assert artifact.size_bytes == 5
    assert artifact.sha256 == hashlib.sha256(b"hello").hexdigest()


def test_sink_overwrites_previous_artifact(sink):
    sink.deliver(b"one", "diagram.json", "application/json")
    artifact = sink.deliver(b"two", "diagram.json", "application/json")
    assert open(artifact.path, "rb").read() == b"two"


# -------- svg --------

def test_export_svg_adds_namespace(surface, sink):
    artifact = export_svg(surface, sink)
    assert artifact.filename == "diagram.svg"
    assert artifact.media_type == "image/svg+xml;charset=utf-8"
    text = open(artifact.path, encoding="utf-8").read()
    assert text.startswith('<svg xmlns="http://www.w3.org/2000/svg" id="d"')
    assert text.count("xmlns=") == 1


@pytest.mark.parametrize("content", ["", '<div class="diagram-error">oops</div>'])
def test_export_svg_needs_a_rendered_document(content, sink):
    s = Surface(mount_id="m", width=1, height=1, content=content)
    with pytest.raises(ExportPreconditionError):
        export_svg(s, sink)
    with pytest.raises(ExportPreconditionError):
        export_svg(None, sink)


# -------- json --------

def test_export_json_trims_and_indents(sink):
    artifact = export_json("  flowchart TD\nA-->B  ", sink)
    text = open(artifact.path, encoding="utf-8").read()
    assert text == '{\n  "diagramCode": "flowchart TD\\nA-->B"\n}'
    assert json.loads(text) == {"diagramCode": "flowchart TD\nA-->B"}
    assert artifact.filename == "diagram.json"


def test_export_json_strips_fences(sink):
    artifact = export_json("```mermaid\npie\n```", sink)
    assert json.loads(open(artifact.path, encoding="utf-8").read()) == {"diagramCode": "pie"}


def test_export_json_rejects_empty_source(sink):
    with pytest.raises(ExportPreconditionError):
        export_json("   ", sink)


# -------- png --------

def test_canvas_geometry():
    canvas = RasterCanvas.allocate(400, 300, scale=3, padding=20)
    assert canvas.size == (1320, 1020)
    assert canvas.transform == (3, 0.0, 0.0, 3, 60, 60)
    assert canvas.image.getpixel((0, 0)) == (255, 255, 255)


def test_export_png_pads_scales_and_fills_white(surface, sink, fake_rasterizer):
    artifact, messages = _png(surface, sink, fake_rasterizer)

    assert messages == []
    assert artifact.filename == "diagram.png"
    assert artifact.media_type == "image/png"
    with Image.open(artifact.path) as img:
        assert img.size == (1320, 1020)
        assert img.getpixel((0, 0))[:3] == (255, 255, 255)
        assert img.getpixel((60, 60))[:3] == (0, 0, 0)
        assert img.getpixel((1319, 1019))[:3] == (255, 255, 255)

    svg, width, height = fake_rasterizer.calls[0]
    assert (width, height) == (400.0, 300.0)
    assert fake_rasterizer.transforms[0] == (3, 0.0, 0.0, 3, 60, 60)


def test_export_png_rasterizes_plain_text_labels(surface, sink, fake_rasterizer):
    _png(surface, sink, fake_rasterizer)
    svg, _, _ = fake_rasterizer.calls[0]
    assert "foreignObject" not in svg
    assert ">Start</text>" in svg
    assert "<style>" in svg
    assert 'xmlns="http://www.w3.org/2000/svg"' in svg


def test_export_png_leaves_mounted_document_untouched(surface, sink, fake_rasterizer):
    _png(surface, sink, fake_rasterizer)
    assert surface.content == SAMPLE_SVG


def test_export_png_raster_failure_notifies(surface, sink):
    artifact, messages = _png(surface, sink, FakeRasterizer(error=RasterizationError("no cairo")))
    assert artifact is None
    assert messages == [RASTER_FAILED]
    assert not (sink.output_dir / "diagram.png").exists()


def test_export_png_canvas_failure_notifies(monkeypatch, surface, sink, fake_rasterizer):
    class _NoCanvas:
        @classmethod
        def allocate(cls, *args, **kwargs):
            raise MemoryError("too big")

    monkeypatch.setattr(emitters, "RasterCanvas", _NoCanvas)
    artifact, messages = _png(surface, sink, fake_rasterizer)
    assert artifact is None
    assert messages == [CANVAS_UNAVAILABLE]
    assert fake_rasterizer.calls == []


def test_export_png_preview(surface, sink, fake_rasterizer):
    preview = Surface(mount_id="preview", width=100, height=100)
    _png(surface, sink, fake_rasterizer, preview=preview)
    assert preview.content.startswith('<img src="data:image/png;base64,')


def test_export_png_needs_a_rendered_document(sink, fake_rasterizer):
    with pytest.raises(ExportPreconditionError):
        _png(Surface(mount_id="m", width=1, height=1), sink, fake_rasterizer)


def test_cairo_rasterizer_composites_converter_output():
    seen = {}

    def convert(svg: bytes, width: int, height: int) -> bytes:
        seen.update(svg=svg, width=width, height=height)
        buf = io.BytesIO()
        Image.new("RGBA", (width, height), (255, 0, 0, 255)).save(buf, format="PNG")
        return buf.getvalue()

    canvas = RasterCanvas.allocate(10, 10, scale=3, padding=20)
    asyncio.run(CairoRasterizer(convert=convert).draw("<svg/>", canvas, 10, 10))

    assert seen == {"svg": b"<svg/>", "width": 30, "height": 30}
    assert canvas.image.getpixel((60, 60)) == (255, 0, 0)
    assert canvas.image.getpixel((59, 59)) == (255, 255, 255)


def test_cairo_rasterizer_reports_converter_failure_as_rasterization_error():
    def convert(svg: bytes, width: int, height: int) -> bytes:
        raise SyntaxError("not well-formed (invalid token): line 1, column 40")

    canvas = RasterCanvas.allocate(10, 10)
    with pytest.raises(RasterizationError) as exc_info:
        asyncio.run(CairoRasterizer(convert=convert).draw("<svg><br></svg>", canvas, 10, 10))

    assert exc_info.value.code == -32010
    assert exc_info.value.data == {"width": 30, "height": 30}
    assert canvas.image.getpixel((60, 60)) == (255, 255, 255)


def test_export_png_through_cairo_rasterizer_notifies_on_bad_markup(surface, sink):
    def convert(svg: bytes, width: int, height: int) -> bytes:
        raise ValueError("unsupported element")

    artifact, messages = _png(surface, sink, CairoRasterizer(convert=convert))
    assert artifact is None
    assert messages == [RASTER_FAILED]
