"""Persistenter Zwischenstand der Extraktion (ein JSON-Array pro Eingabedatei)."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Set

from tools.run_log import append_log, console

CHECKPOINT_SUFFIX = "_extracted"


class CheckpointError(RuntimeError):
    """Checkpoint-Datei ist vorhanden, aber nicht lesbar."""


def checkpoint_path_for(input_path: Path) -> Path:
    input_path = Path(input_path)
    return input_path.with_name(f"{input_path.stem}{CHECKPOINT_SUFFIX}.json")


def write_json_atomic(path: Path, payload: Any) -> Path:
    """
    Schreibt `payload` als JSON nach `path`.

    Die Daten landen zuerst in einer temporaeren Datei im Zielverzeichnis und
    ersetzen das Ziel danach per `os.replace`. Das Ziel enthaelt damit immer
    entweder den alten oder den neuen vollstaendigen Stand.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
            handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return path


class CheckpointStore:
    def __init__(self, path: Path):
        self.path = Path(path)
        self.records: List[Dict[str, Any]] = []
        self._urls: Set[str] = set()

    def load(self) -> List[Dict[str, Any]]:
        self.records = []
        self._urls = set()
        if not self.path.exists():
            return self.records
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CheckpointError(f"Checkpoint {self.path} nicht lesbar: {exc}") from exc
        if not isinstance(payload, list):
            raise CheckpointError(f"Checkpoint {self.path} enthaelt kein JSON-Array")
        added = self.merge(item for item in payload if isinstance(item, dict))
        dropped = len(payload) - added
        if dropped:
            console(f"Warnung: {dropped} Eintraege in {self.path} ohne gueltige oder mit doppelter URL werden verworfen.")
            append_log("checkpoint.dropped", path=str(self.path), count=dropped)
        return self.records

    def contains_url(self, url: str) -> bool:
        return url in self._urls

    def merge(self, records: Iterable[Dict[str, Any]]) -> int:
        added = 0
        for record in records:
            url = record.get("url")
            if not isinstance(url, str) or url in self._urls:
                continue
            self._urls.add(url)
            self.records.append(record)
            added += 1
        return added

    def persist(self) -> Path:
        return write_json_atomic(self.path, self.records)

    def __len__(self) -> int:
        return len(self.records)


__all__ = ["CheckpointError", "CheckpointStore", "checkpoint_path_for", "write_json_atomic"]
