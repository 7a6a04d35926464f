from __future__ import annotations

import json
import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import Any

import yaml

# ---------- small helpers ----------

def preview(s: str | bytes | Any, n: int = 300) -> str:
    try:
        if isinstance(s, bytes):
            s = s.decode("utf-8", "replace")
        s = str(s)
    except Exception:
        return "<unprintable>"
    s = s.strip()
    return s if len(s) <= n else (s[: n - 20] + "... <truncated>")

def _truthy(v: str | None) -> bool:
    return str(v or "").strip().lower() in {"1", "true", "yes", "y", "on"}

def want_verbose_inputs() -> bool:
    return _truthy(os.getenv("LOG_VERBOSE_INPUTS"))

# ---------- logging setup ----------

_STD_ATTRS = {
    "name","msg","args","levelname","levelno","pathname","filename","module","exc_info",
    "exc_text","stack_info","lineno","funcName","created","msecs","relativeCreated",
    "thread","threadName","processName","process","message","asctime","taskName",
}

class ExtraJSONFormatter(logging.Formatter):
    """
    Format: "YYYY-mm-dd HH:MM:SS.mmm | LEVEL | message | {json of extras}"
    """
    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        base_dt = self.formatTime(record, datefmt="%Y-%m-%d %H:%M:%S")
        ts = f"{base_dt}.{int(record.msecs):03d}"

        extras = {k: v for k, v in record.__dict__.items() if k not in _STD_ATTRS}

        base = f"{ts} | {record.levelname} | {record.message}"
        if record.exc_info:
            base = f"{base}\n{self.formatException(record.exc_info)}"
        if extras:
            try:
                j = json.dumps(extras, ensure_ascii=False, default=str)
            except Exception:
                j = '{"_format_error":"<unserializable extras>"}'
            return f"{base} | {j}"
        return base

def _config_path() -> Path:
    return Path(__file__).resolve().parent.parent / "config" / "logging.yaml"

def setup_logging() -> None:
    """
    Load config/logging.yaml if present; fall back to a stderr handler.
    LOG_LEVEL env overrides the root and console handler levels.
    """
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    root = logging.getLogger()
    if getattr(root, "_mermaid_logging_configured", False):
        root.setLevel(level)
        return

    cfg = _config_path()
    if cfg.exists():
        with cfg.open("r", encoding="utf-8") as f:
            cfg_dict = yaml.safe_load(f) or {}
        try:
            cfg_dict.setdefault("root", {})["level"] = level
            handlers = cfg_dict.get("handlers", {})
            if "console" in handlers:
                handlers["console"]["level"] = level
            logging.config.dictConfig(cfg_dict)
            root._mermaid_logging_configured = True  # type: ignore[attr-defined]
            return
        except (ValueError, TypeError, AttributeError, ImportError):
            logging.getLogger("mcp.mermaid.logging").warning("logging.yaml.invalid", exc_info=True)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(ExtraJSONFormatter())
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    root._mermaid_logging_configured = True  # type: ignore[attr-defined]
