# src/mcp_mermaid_renderer/export/raster.py
from __future__ import annotations

import asyncio
import io
import logging
import math
from typing import Callable, Optional, Protocol, Tuple

from PIL import Image

from ..errors import RasterizationError

log = logging.getLogger("mcp.mermaid.export.raster")

# (svg_bytes, output_width, output_height) -> png bytes
SvgConverter = Callable[[bytes, int, int], bytes]


class RasterCanvas:
    """
    An opaque RGB drawing surface sized for a padded, scaled document.

    The affine `transform` (a, b, c, d, e, f) maps document coordinates
    onto the canvas: scale by `scale`, then shift by `padding * scale`.
    """

    def __init__(self, image: Image.Image, scale: float, padding: float) -> None:
        self.image = image
        self.scale = scale
        self.padding = padding

    @classmethod
    def allocate(
        cls,
        width: float,
        height: float,
        *,
        scale: float = 3,
        padding: float = 20,
        background: str = "white",
    ) -> "RasterCanvas":
        size = (
            int(math.ceil((width + 2 * padding) * scale)),
            int(math.ceil((height + 2 * padding) * scale)),
        )
        if size[0] <= 0 or size[1] <= 0:
            raise ValueError(f"invalid canvas size {size}")
        image = Image.new("RGB", size, background)
        return cls(image, scale, padding)

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    @property
    def transform(self) -> Tuple[float, float, float, float, float, float]:
        return (self.scale, 0.0, 0.0, self.scale, self.padding * self.scale, self.padding * self.scale)

    def draw_layer(self, layer: Image.Image) -> None:
        """Composite a layer already scaled by `transform` at its translation."""
        _, _, _, _, e, f = self.transform
        origin = (int(round(e)), int(round(f)))
        if layer.mode in ("RGBA", "LA") or (layer.mode == "P" and "transparency" in layer.info):
            layer = layer.convert("RGBA")
            self.image.paste(layer, origin, mask=layer.split()[3])
        else:
            self.image.paste(layer.convert("RGB"), origin)

    def encode_png(self) -> bytes:
        buf = io.BytesIO()
        self.image.save(buf, format="PNG")
        return buf.getvalue()


class Rasterizer(Protocol):
    async def draw(self, svg: str, canvas: RasterCanvas, width: float, height: float) -> None:
        ...


def _cairosvg_convert(svg: bytes, output_width: int, output_height: int) -> bytes:
    import cairosvg

    return cairosvg.svg2png(
        bytestring=svg,
        output_width=output_width,
        output_height=output_height,
    )


class CairoRasterizer:
    """
    Paints an SVG document onto a RasterCanvas with cairosvg. The conversion
    runs in a worker thread. Drawing is static: no animation, no pointer
    handling.
    """

    def __init__(self, convert: Optional[SvgConverter] = None) -> None:
        self._convert = convert or _cairosvg_convert

    async def draw(self, svg: str, canvas: RasterCanvas, width: float, height: float) -> None:
        a, _, _, d, _, _ = canvas.transform
        out_w = max(1, int(round(width * a)))
        out_h = max(1, int(round(height * d)))
        try:
            png = await asyncio.to_thread(self._convert, svg.encode("utf-8"), out_w, out_h)
            with Image.open(io.BytesIO(png)) as layer:
                layer.load()
                canvas.draw_layer(layer)
        except Exception as e:
            raise RasterizationError(
                f"SVG rasterization failed: {e}",
                data={"width": out_w, "height": out_h},
            ) from e
        log.debug("raster.draw.ok", extra={"width": out_w, "height": out_h})
