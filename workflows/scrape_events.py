"""
Schritt 1: Veranstaltungsliste eines Jahres von ktn.gv.at laden.

Aufruf: `python -m workflows.scrape_events 2025`
Ergebnis: `veranstaltungen_<jahr>.json` (content ist noch leer).
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from tools.checkpoint import write_json_atomic
from tools.event_scraper import events_url, scrape_year
from tools.http_fetch import FetchError
from tools.run_log import append_log, configure_log_dir, console
from tools.settings import SettingsError, load_settings


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Veranstaltungen des Landes Kärnten scrapen")
    parser.add_argument("year", help="Jahr, z. B. 2025")
    parser.add_argument("--output", type=Path, default=None, help="Zieldatei (Standard: veranstaltungen_<jahr>.json)")
    parser.add_argument("--config", type=Path, default=None, help="Pfad zur YAML-Konfiguration.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args.config)
        configure_log_dir(settings.log_dir)
        console(f"Lade {events_url(args.year, settings.base_url)} ...", tag="scrape")
        entries = scrape_year(
            args.year,
            base_url=settings.base_url,
            timeout=settings.http_timeout,
            user_agent=settings.user_agent,
        )
    except (FetchError, SettingsError) as exc:
        console(f"Fehler: {exc}", tag="scrape")
        append_log("scrape.failed", year=args.year, error=str(exc))
        return 1

    console(f"{len(entries)} Eintraege gefunden", tag="scrape")
    output = args.output or Path(f"veranstaltungen_{args.year}.json")
    write_json_atomic(output, [entry.as_dict() for entry in entries])
    append_log("scrape.done", year=args.year, entries=len(entries), output=str(output))
    console(f"{len(entries)} Eintraege nach {output} geschrieben", tag="scrape")
    console(f"Naechster Schritt: python -m workflows.extract_content {output}", tag="scrape")
    return 0


if __name__ == "__main__":
    sys.exit(main())
