# src/mcp_mermaid_renderer/engine/surface.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

log = logging.getLogger("mcp.mermaid.engine.surface")


@dataclass
class Surface:
    """
    A mount point supplied by the host: a container of a known rendered
    size whose markup is replaced by each render.
    """
    mount_id: str
    width: float
    height: float
    content: str = ""
    transform: Optional[str] = None

    def replace(self, markup: str) -> None:
        self.content = markup
        self.transform = None

    def clear(self) -> None:
        self.replace("")


class SurfaceRegistry:
    """Mount ids resolved to live surfaces."""

    def __init__(self) -> None:
        self._surfaces: Dict[str, Surface] = {}

    def mount(self, mount_id: str, width: float, height: float) -> Surface:
        surface = self._surfaces.get(mount_id)
        if surface is None:
            surface = Surface(mount_id=mount_id, width=width, height=height)
            self._surfaces[mount_id] = surface
            log.info("surface.mount", extra={"mount_id": mount_id, "width": width, "height": height})
        else:
            surface.width, surface.height = width, height
            log.info("surface.resize", extra={"mount_id": mount_id, "width": width, "height": height})
        return surface

    def get(self, mount_id: str) -> Optional[Surface]:
        return self._surfaces.get(mount_id)

    def __contains__(self, mount_id: object) -> bool:
        return mount_id in self._surfaces
