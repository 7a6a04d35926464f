# src/mcp_mermaid_renderer/settings.py
from __future__ import annotations

import logging
import pathlib

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger("mcp.mermaid.settings")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    # rendering engine (mermaid-cli)
    MERMAID_CLI: str = Field(default="mmdc")
    MERMAID_THEME: str = Field(default="neutral")
    MERMAID_SECURITY_LEVEL: str = Field(default="loose")
    PUPPETEER_CONFIG: str | None = Field(default=None)
    ENGINE_WORK_DIR: str = Field(default="/tmp/mcp-mermaid-renderer/engine")

    # artifacts
    OUTPUT_DIR: str = Field(default="/tmp/mcp-mermaid-renderer")

    # surfaces & editing
    RENDER_DEBOUNCE_MS: int = Field(default=300, ge=0)
    SURFACE_WIDTH: float = Field(default=1200.0, gt=0)
    SURFACE_HEIGHT: float = Field(default=800.0, gt=0)

    LOG_LEVEL: str = Field(default="INFO")

    def ensure_dirs(self) -> None:
        pathlib.Path(self.OUTPUT_DIR).mkdir(parents=True, exist_ok=True)
        pathlib.Path(self.ENGINE_WORK_DIR).mkdir(parents=True, exist_ok=True)
        log.info("Output dir: %s | engine work dir: %s", self.OUTPUT_DIR, self.ENGINE_WORK_DIR)

    def snapshot(self) -> dict:
        return {
            "mermaid_cli": self.MERMAID_CLI,
            "theme": self.MERMAID_THEME,
            "security_level": self.MERMAID_SECURITY_LEVEL,
            "puppeteer_config": self.PUPPETEER_CONFIG,
            "output_dir": self.OUTPUT_DIR,
            "debounce_ms": self.RENDER_DEBOUNCE_MS,
        }
