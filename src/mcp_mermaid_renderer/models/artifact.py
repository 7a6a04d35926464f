from __future__ import annotations

from pydantic import BaseModel, Field


class ExportArtifact(BaseModel):
    filename: str
    media_type: str
    path: str
    size_bytes: int = Field(ge=0)
    sha256: str
