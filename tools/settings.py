"""
Laden der Pipeline-Konfiguration aus `config/pipeline.yaml`.

Reihenfolge (spaeter gewinnt): eingebaute Defaults, YAML-Datei, Umgebungsvariablen
(`EHRUNGEN_*`, optional aus `.env`), CLI-Optionen der einzelnen Workflows.
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional

import yaml

CONFIG_PATH = Path("config/pipeline.yaml")
ENV_PATH = Path(".env")
DEFAULT_AGENT_COMMAND = ["pi", "--mode", "json", "-p"]


class SettingsError(RuntimeError):
    """Konfigurationsdatei fehlerhaft."""


@dataclass
class Settings:
    base_url: str = "https://www.ktn.gv.at"
    user_agent: str = "KaerntenEhrungen/Scraper/1.0"
    http_timeout: float = 30.0
    concurrency: int = 5
    fetch_retries: int = 3
    fetch_base_delay: float = 1.0
    batch_size: int = 20
    max_retries: int = 3
    agent_timeout: float = 600.0
    agent_command: List[str] = field(default_factory=lambda: list(DEFAULT_AGENT_COMMAND))
    work_dir: Path = Path("data/staging/runs")
    log_dir: Path = Path("logs")


def load_env_file(path: Path = ENV_PATH) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def get_int_setting(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def get_float_setting(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise SettingsError(f"Konfiguration {path} ist kein gueltiges YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise SettingsError(f"Konfiguration {path} muss ein Mapping enthalten.")
    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name) or {}
    return value if isinstance(value, Mapping) else {}


def _command(value: Any) -> List[str]:
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, list) and all(isinstance(part, str) for part in value):
        return list(value)
    raise SettingsError("extraction.agent_command muss String oder Liste von Strings sein.")


def _convert(section: Mapping[str, Any], key: str, default: Any, cast: Callable[[Any], Any]) -> Any:
    value = section.get(key, default)
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise SettingsError(f"Ungueltiger Wert fuer '{key}': {value!r}") from exc


def load_settings(path: Optional[Path] = None, *, env_path: Path = ENV_PATH) -> Settings:
    load_env_file(env_path)
    data = _read_yaml(path or CONFIG_PATH)
    scraper = _section(data, "scraper")
    content = _section(data, "content")
    extraction = _section(data, "extraction")
    logging_cfg = _section(data, "logging")

    settings = Settings()
    settings.base_url = str(scraper.get("base_url", settings.base_url)).rstrip("/")
    settings.user_agent = str(scraper.get("user_agent", settings.user_agent))
    settings.http_timeout = _convert(scraper, "timeout", settings.http_timeout, float)
    settings.concurrency = _convert(content, "concurrency", settings.concurrency, int)
    settings.fetch_retries = _convert(content, "max_retries", settings.fetch_retries, int)
    settings.fetch_base_delay = _convert(content, "base_delay", settings.fetch_base_delay, float)
    settings.batch_size = _convert(extraction, "batch_size", settings.batch_size, int)
    settings.max_retries = _convert(extraction, "max_retries", settings.max_retries, int)
    settings.agent_timeout = _convert(extraction, "timeout", settings.agent_timeout, float)
    if "agent_command" in extraction:
        settings.agent_command = _command(extraction["agent_command"])
    settings.work_dir = Path(extraction.get("work_dir", settings.work_dir))
    settings.log_dir = Path(logging_cfg.get("log_dir", settings.log_dir))

    settings.batch_size = get_int_setting("EHRUNGEN_BATCH_SIZE", settings.batch_size)
    settings.max_retries = get_int_setting("EHRUNGEN_MAX_RETRIES", settings.max_retries)
    settings.agent_timeout = get_float_setting("EHRUNGEN_AGENT_TIMEOUT", settings.agent_timeout)
    settings.concurrency = get_int_setting("EHRUNGEN_CONCURRENCY", settings.concurrency)
    if os.environ.get("EHRUNGEN_AGENT_COMMAND"):
        settings.agent_command = _command(os.environ["EHRUNGEN_AGENT_COMMAND"])
    if os.environ.get("EHRUNGEN_WORK_DIR"):
        settings.work_dir = Path(os.environ["EHRUNGEN_WORK_DIR"])
    if os.environ.get("EHRUNGEN_LOG_DIR"):
        settings.log_dir = Path(os.environ["EHRUNGEN_LOG_DIR"])
    return settings


__all__ = ["CONFIG_PATH", "Settings", "SettingsError", "load_env_file", "load_settings"]
