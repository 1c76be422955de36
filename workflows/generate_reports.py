"""
Schritt 4: Ergebnisse mehrerer Jahre zusammenfuehren und Berichte erzeugen.

Aufruf: `python -m workflows.generate_reports veranstaltungen_*_extracted.json`

Erzeugt im Ausgabeverzeichnis:
- ehrungen_merged.json (alle Eintraege)
- ehrungen_persons.json (eine Zeile pro geehrter Person)
- ehrungen.xlsx
- ehrungen_dashboard.html
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Sequence

from tools.checkpoint import write_json_atomic
from tools.reports import extract_year, merge_and_flatten, write_dashboard, write_excel
from tools.run_log import append_log, console

MERGED_NAME = "ehrungen_merged.json"
PERSONS_NAME = "ehrungen_persons.json"
EXCEL_NAME = "ehrungen.xlsx"
DASHBOARD_NAME = "ehrungen_dashboard.html"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Excel und HTML-Dashboard aus extrahierten Ehrungen erzeugen")
    parser.add_argument("files", nargs="+", type=Path, help="*_extracted.json Dateien")
    parser.add_argument("--output-dir", type=Path, default=Path("."), help="Zielverzeichnis.")
    return parser.parse_args(argv)


def generate(files: Sequence[Path], output_dir: Path) -> List[Path]:
    for file in files:
        console(f"Verarbeite {file} (Jahr: {extract_year(str(file))}) ...", tag="reports")
    merged, persons = merge_and_flatten(files)
    console(f"Eintraege gesamt: {len(merged)}", tag="reports")
    console(f"Geehrte Personen gesamt: {len(persons)}", tag="reports")

    output_dir.mkdir(parents=True, exist_ok=True)
    written = [
        write_json_atomic(output_dir / MERGED_NAME, merged),
        write_json_atomic(output_dir / PERSONS_NAME, [asdict(p) for p in persons]),
        write_excel(persons, output_dir / EXCEL_NAME),
        write_dashboard(persons, output_dir / DASHBOARD_NAME),
    ]
    for path in written:
        console(f"Geschrieben: {path}", tag="reports")
    append_log("reports.done", files=[str(f) for f in files], entries=len(merged), persons=len(persons))
    return written


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        generate(args.files, args.output_dir)
    except (OSError, json.JSONDecodeError, ValueError) as exc:
        console(f"Fehler: {exc}", tag="reports")
        append_log("reports.failed", error=str(exc))
        return 1
    console(f"Fertig! {args.output_dir / DASHBOARD_NAME} im Browser oeffnen.", tag="reports")
    return 0


if __name__ == "__main__":
    sys.exit(main())
