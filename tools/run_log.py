"""Konsolenausgabe und JSONL-Protokoll fuer alle Pipeline-Schritte."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

LOG_DIR = Path("logs")
PIPELINE_LOG_NAME = "pipeline.log"

_log_dir = LOG_DIR


def configure_log_dir(path: Path) -> None:
    global _log_dir
    _log_dir = Path(path)


def log_path() -> Path:
    return _log_dir / PIPELINE_LOG_NAME


def console(message: str, *, tag: str = "EHRUNGEN") -> None:
    print(f"[{tag}] {message}", flush=True)


def append_log(event: str, **fields: object) -> None:
    _log_dir.mkdir(parents=True, exist_ok=True)
    payload = {"timestamp": datetime.now(timezone.utc).isoformat(), "event": event}
    for key, value in fields.items():
        if value is not None:
            payload[key] = value
    with log_path().open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(payload, ensure_ascii=False) + "\n")


__all__ = ["LOG_DIR", "append_log", "configure_log_dir", "console", "log_path"]
