"""
Prueft eine Agenten-Ausgabedatei gegen das Ergebnis-Schema.

Aufruf: `python -m workflows.validate_output batch_output.json [--expect batch_input.json]`
Gibt `OK: ...` bzw. `ERROR: ...` aus; Exit-Code 0 bei Erfolg, sonst 1.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from tools.schema_validator import validate_records


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Agenten-Ausgabe validieren")
    parser.add_argument("file", type=Path, help="Zu pruefende JSON-Datei")
    parser.add_argument(
        "--expect",
        type=Path,
        default=None,
        help="Eingabedatei des Batches; alle dortigen URLs muessen abgedeckt sein.",
    )
    return parser.parse_args(argv)


def _expected_urls(path: Path) -> List[str]:
    data = json.loads(path.read_text(encoding="utf-8"))
    return [item["url"] for item in data if isinstance(item, dict) and isinstance(item.get("url"), str)]


def validate_file(path: Path, expect: Optional[Path] = None) -> str:
    """Liefert die OK-Meldung; Fehler (auch SchemaValidationError) als ValueError."""
    try:
        raw = path.read_text(encoding="utf-8").strip()
        expected = _expected_urls(expect) if expect else None
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Could not read file - {exc}") from exc
    if not raw:
        raise ValueError("File is empty")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON - {exc}") from exc
    validate_records(data, expected_urls=expected)
    return f"OK: Valid JSON with {len(data)} entries"


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        message = validate_file(args.file, args.expect)
    except ValueError as exc:
        print(f"ERROR: {exc}")
        return 1
    print(message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
