from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from .artifact import ExportArtifact

class MountRequest(BaseModel):
    mount_id: str = Field(min_length=1)
    width: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)

    @field_validator("mount_id", mode="before")
    @classmethod
    def _strip_mount_id(cls, v: str) -> str:
        return (v or "").strip()

class RenderRequest(BaseModel):
    mount_id: str = Field(min_length=1)
    code: str = ""
    debounce: bool = False

    @field_validator("mount_id", mode="before")
    @classmethod
    def _strip_mount_id(cls, v: str) -> str:
        return (v or "").strip()

class NormalizeResponse(BaseModel):
    code: str
    dialect: Optional[str] = None
    error: Optional[str] = None

class RenderResponse(BaseModel):
    mount_id: str
    rendered: bool
    superseded: bool = False
    svg: Optional[str] = None
    transform: Optional[str] = None
    error: Optional[Dict[str, Any]] = None

class ExportResponse(BaseModel):
    artifact: Optional[ExportArtifact] = None
    messages: List[str] = Field(default_factory=list)
    error: Optional[Dict[str, Any]] = None
