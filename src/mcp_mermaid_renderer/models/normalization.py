# src/mcp_mermaid_renderer/models/normalization.py
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class DialectTag(str, Enum):
    FLOWCHART = "flowchart"
    GRAPH = "graph"
    SEQUENCE = "sequenceDiagram"
    CLASS = "classDiagram"
    ER = "erDiagram"
    STATE = "stateDiagram"
    GANTT = "gantt"
    JOURNEY = "journey"
    PIE = "pie"
    MINDMAP = "mindmap"
    TIMELINE = "timeline"


# Detection order; first match wins.
DIALECT_KEYWORDS = tuple(tag.value for tag in DialectTag)

# Recognized aliases, rewritten to a top-down flowchart.
ALIAS_KEYWORDS = ("networkDiagram", "architectureDiagram")


class NormalizationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    error: Optional[str] = None
    dialect: Optional[DialectTag] = None

    @property
    def ok(self) -> bool:
        return self.error is None
