# src/mcp_mermaid_renderer/export/download.py
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from ..models.artifact import ExportArtifact
from ..utils.checksums import sha256_of_bytes
from ..utils.io_paths import ensure_output_dir

log = logging.getLogger("mcp.mermaid.export.download")

Payload = Union[str, bytes]


class ArtifactSink:
    """
    Delivers export payloads as named files in the output directory.

    Each payload is written to a transient file next to its destination and
    then moved into place, so a reader never sees a half-written artifact.
    The transient file is always removed.
    """

    def __init__(self, output_dir: Union[str, os.PathLike, None] = None) -> None:
        self._output_dir = output_dir

    @property
    def output_dir(self) -> Path:
        return ensure_output_dir(self._output_dir)

    def deliver(self, payload: Payload, filename: str, media_type: str) -> ExportArtifact:
        data = payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)
        out_dir = self.output_dir
        target = out_dir / Path(filename).name

        fd, tmp_name = tempfile.mkstemp(dir=out_dir, prefix=".download-", suffix=target.suffix)
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, target)
        finally:
            tmp.unlink(missing_ok=True)

        artifact = ExportArtifact(
            filename=target.name,
            media_type=media_type,
            path=str(target),
            size_bytes=len(data),
            sha256=sha256_of_bytes(data),
        )
        log.info("export.delivered", extra={
            "filename": artifact.filename,
            "media_type": media_type,
            "size_bytes": artifact.size_bytes,
            "path": artifact.path,
        })
        return artifact
