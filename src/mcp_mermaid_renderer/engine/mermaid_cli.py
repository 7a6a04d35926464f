# src/mcp_mermaid_renderer/engine/mermaid_cli.py
from __future__ import annotations

import asyncio
import json
import logging
import shlex
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from ..errors import RenderError
from ..utils.logging import preview
from .surface import Surface

log = logging.getLogger("mcp.mermaid.engine.cli")

BindFunctions = Callable[[Surface], None]


@dataclass
class RenderOutput:
    svg: str
    bind_functions: Optional[BindFunctions] = None


class RenderEngine(Protocol):
    async def render(self, render_id: str, code: str) -> RenderOutput:
        ...


class EngineConfig(BaseModel):
    """Process-wide Mermaid options, applied once at engine initialization."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start_on_load: bool = Field(default=False, alias="startOnLoad")
    theme: str = "neutral"
    security_level: str = Field(default="loose", alias="securityLevel")

    def to_mermaid_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True), ensure_ascii=False)


class MermaidCliEngine:
    """
    Renders Mermaid text to SVG with @mermaid-js/mermaid-cli (mmdc).

    `command` may be a single executable ("mmdc") or a multi-word command
    ("npx --yes @mermaid-js/mermaid-cli").
    """

    def __init__(
        self,
        config: EngineConfig,
        *,
        command: str = "mmdc",
        work_dir: str | Path | None = None,
        puppeteer_config: Optional[str] = None,
    ) -> None:
        self.config = config
        self.command = command
        self.work_dir = Path(work_dir) if work_dir else Path(tempfile.gettempdir()) / "mcp-mermaid-engine"
        self.puppeteer_config = puppeteer_config
        self._config_path: Optional[Path] = None

    @property
    def initialized(self) -> bool:
        return self._config_path is not None

    def initialize(self) -> None:
        """Write the engine config file. Call once at process start."""
        if self._config_path is not None:
            return
        self.work_dir.mkdir(parents=True, exist_ok=True)
        path = self.work_dir / "mermaid-config.json"
        path.write_text(self.config.to_mermaid_json(), encoding="utf-8")
        self._config_path = path
        log.info("engine.initialized", extra={"config": self.config.model_dump(by_alias=True), "command": self.command})

    def build_command(self, in_file: Path, out_file: Path, render_id: str) -> List[str]:
        if self._config_path is None:
            raise RenderError("Rendering engine used before initialize()")
        args = shlex.split(self.command) + [
            "-i", str(in_file),
            "-o", str(out_file),
            "-c", str(self._config_path),
            "-t", self.config.theme,
            "-I", render_id,
            "-q",
        ]
        if self.puppeteer_config:
            args += ["-p", self.puppeteer_config]
        return args

    async def render(self, render_id: str, code: str) -> RenderOutput:
        with tempfile.TemporaryDirectory(dir=self.work_dir, prefix="render-") as td:
            in_file = Path(td) / "diagram.mmd"
            out_file = Path(td) / "diagram.svg"
            in_file.write_text(code, encoding="utf-8")
            cmd = self.build_command(in_file, out_file, render_id)

            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except FileNotFoundError as e:
                raise RenderError(
                    f"Mermaid CLI not found: {self.command}",
                    data={"hint": "npm install -g @mermaid-js/mermaid-cli, or set MERMAID_CLI"},
                ) from e

            stdout, stderr = await process.communicate()
            stderr_text = stderr.decode("utf-8", errors="replace") if stderr else ""

            if process.returncode != 0:
                log.warning("engine.render.failed", extra={
                    "render_id": render_id,
                    "returncode": process.returncode,
                    "stderr": preview(stderr_text, 600),
                })
                raise RenderError(
                    _first_error_line(stderr_text) or f"mmdc exited with status {process.returncode}",
                    data={"stderr": preview(stderr_text, 2000)},
                )

            if not out_file.exists() or out_file.stat().st_size == 0:
                raise RenderError("Rendering produced no output")

            svg = out_file.read_text(encoding="utf-8")

        log.debug("engine.render.ok", extra={"render_id": render_id, "len": len(svg)})
        return RenderOutput(svg=svg)


def _first_error_line(stderr_text: str) -> str:
    for line in stderr_text.splitlines():
        line = line.strip()
        if line and ("Error" in line or "error" in line):
            return line
    return stderr_text.strip().splitlines()[0] if stderr_text.strip() else ""
