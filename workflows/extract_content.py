"""
Schritt 2: Artikeltexte fuer alle Eintraege ohne `content` nachladen.

Aufruf: `python -m workflows.extract_content veranstaltungen_2025.json`
Die Datei wird an Ort und Stelle aktualisiert.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from functools import partial
from pathlib import Path
from typing import Optional, Sequence

from tools.checkpoint import write_json_atomic
from tools.content_fetcher import fill_missing_content
from tools.http_fetch import fetch_page
from tools.run_log import append_log, configure_log_dir, console
from tools.settings import SettingsError, load_settings


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Artikeltexte zu gescrapten Veranstaltungen laden")
    parser.add_argument("input", type=Path, help="JSON-Datei aus scrape_events")
    parser.add_argument("--concurrency", type=int, default=None, help="Parallele Abrufe.")
    parser.add_argument("--config", type=Path, default=None, help="Pfad zur YAML-Konfiguration.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args.config)
        configure_log_dir(settings.log_dir)
        console(f"Lese {args.input} ...", tag="content")
        data = json.loads(args.input.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, SettingsError) as exc:
        console(f"Fehler: {exc}", tag="content")
        append_log("content.failed", input=str(args.input), error=str(exc))
        return 1
    if not isinstance(data, list):
        console(f"Fehler: {args.input} enthaelt kein JSON-Array", tag="content")
        return 1

    entries = [entry for entry in data if isinstance(entry, dict) and entry.get("url")]
    missing = [entry for entry in entries if not entry.get("content")]
    concurrency = args.concurrency or settings.concurrency
    console(f"{len(missing)} von {len(data)} Eintraegen ohne Inhalt", tag="content")
    if not missing:
        console("Nichts zu tun!", tag="content")
        return 0
    console(f"Verarbeite mit {concurrency} parallelen Abrufen ...", tag="content")

    fetch = partial(fetch_page, timeout=settings.http_timeout, user_agent=settings.user_agent)
    stats = asyncio.run(
        fill_missing_content(
            missing,
            concurrency=concurrency,
            max_retries=settings.fetch_retries,
            base_delay=settings.fetch_base_delay,
            fetch=fetch,
        )
    )
    write_json_atomic(args.input, data)
    append_log("content.done", input=str(args.input), updated=stats.updated, errors=stats.errors)
    console(f"Fertig! {stats.updated} Eintraege aktualisiert, {stats.errors} Fehler", tag="content")
    console(f"Geschrieben nach {args.input}", tag="content")
    return 0


if __name__ == "__main__":
    sys.exit(main())
