"""
Extraktion von Ehrungen aus Pressetexten ueber einen externen Agenten.

Ablauf pro Batch:
- Eingabe-Artefakt (url, title, content) und Prompt-Datei schreiben.
- Agenten starten, Ausgabe-Artefakt lesen, als JSON parsen und gegen das Schema
  pruefen (inklusive vollstaendiger URL-Abdeckung des Batches).
- Bei Fehlern bis zu `max_retries` Versuche; danach wird der Batch uebersprungen.
- Akzeptierte Batches landen im Checkpoint `<eingabe>_extracted.json`, der nach
  jedem Batch atomar geschrieben wird. Ein erneuter Lauf setzt dort fort.

Aufruf: `python -m workflows.extract_honors veranstaltungen_2024.json`
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from tools.agent_process import AgentProcessError, run_agent
from tools.checkpoint import CheckpointError, CheckpointStore, checkpoint_path_for
from tools.run_log import append_log, configure_log_dir, console
from tools.schema_validator import SchemaValidationError, validate_records
from tools.settings import SettingsError, load_settings

RAW_PREVIEW_CHARS = 500
TITLE_PREVIEW_CHARS = 80
SEPARATOR = "=" * 80

AgentRunner = Callable[[Path], Awaitable[Any]]


class InputFileError(RuntimeError):
    """Eingabedatei fehlt oder ist kein JSON-Array von Eintraegen."""


class MissingOutputError(RuntimeError):
    """Agent hat keine (oder eine leere) Ausgabedatei hinterlassen."""


class OutputParseError(ValueError):
    """Ausgabedatei enthaelt kein gueltiges JSON."""


@dataclass
class BatchArtifacts:
    input_path: Path
    prompt_path: Path
    output_path: Path


@dataclass
class ExtractionSummary:
    entries: int = 0
    remaining: int = 0
    batches: int = 0
    accepted_batches: int = 0
    exhausted_batches: int = 0
    agent_invocations: int = 0
    honoree_records: int = 0
    persons: int = 0
    checkpoint_records: int = 0


def new_run_id() -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return f"{stamp}-{uuid.uuid4().hex[:8]}"


def artifacts_for(run_dir: Path, batch_num: int) -> BatchArtifacts:
    prefix = f"batch_{batch_num:03d}"
    return BatchArtifacts(
        input_path=run_dir / f"{prefix}_input.json",
        prompt_path=run_dir / f"{prefix}_prompt.txt",
        output_path=run_dir / f"{prefix}_output.json",
    )


def partition(entries: Sequence[Dict[str, Any]], size: int) -> List[List[Dict[str, Any]]]:
    if size < 1:
        raise ValueError("Batch-Groesse muss mindestens 1 sein")
    return [list(entries[i : i + size]) for i in range(0, len(entries), size)]


def project_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
    return {"url": entry["url"], "title": entry.get("title", ""), "content": entry.get("content")}


def build_prompt(input_path: Path, output_path: Path) -> str:
    return f"""You are analyzing government press releases from Kärnten, Austria to extract information about honorary awards ("Ehrungen" / "Auszeichnungen").

Read the JSON file at {input_path}. It contains an array of entries with url, title, and content.

For EACH entry, determine:
1. Is this about an honorary award/recognition being given to specific people? (Not just announcements about award programs, but actual ceremonies where named individuals receive honors)
2. If yes, extract ALL persons who received an honor/award/recognition

Write your results to {output_path} as a JSON array with this EXACT format:
[
  {{
    "url": "the original url",
    "isEhrung": true or false,
    "persons": [
      {{
        "name": "Full name of person honored (without titles like Dr., Mag., etc.)",
        "gender": "male" or "female",
        "honor": "specific award/honor they received, e.g. 'Großes Goldenes Ehrenzeichen', 'Berufstitel Professor', 'Ehrenring der Stadt'"
      }}
    ]
  }}
]

IMPORTANT:
- Include EVERY entry of the input file exactly once, identified by its url
- Entries that are not about honors get "isEhrung": false and an empty "persons" array
- Skip persons in entries that are about award programs in general without naming recipients
- Politicians who are just attending/presenting are NOT honorees
- Extract the ACTUAL honor/award name, not generic descriptions
- Names should be clean: "Maria Müller" not "Frau Mag. Dr. Maria Müller"
- Determine gender from context (titles like "Frau", names, pronouns used); only "male" or "female" are allowed
- If multiple people receive the same honor, list each separately
- If one person receives multiple honors, list them once with the most significant honor

You can check your file with: {sys.executable} -m workflows.validate_output {output_path} --expect {input_path}

Write ONLY the JSON array to {output_path}, nothing else."""


def read_output(path: Path) -> Any:
    if not path.exists():
        raise MissingOutputError(f"Ausgabedatei {path} wurde nicht erstellt")
    try:
        raw = path.read_text(encoding="utf-8").strip()
    except UnicodeDecodeError as exc:
        raise OutputParseError(f"Ausgabedatei {path} ist kein gueltiges UTF-8: {exc}") from exc
    except OSError as exc:
        raise MissingOutputError(f"Ausgabedatei {path} nicht lesbar: {exc}") from exc
    if not raw:
        raise MissingOutputError(f"Ausgabedatei {path} ist leer")
    console(f"Rohausgabe (erste {RAW_PREVIEW_CHARS} Zeichen): {raw[:RAW_PREVIEW_CHARS]}")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise OutputParseError(f"JSON konnte nicht geparst werden: {exc}") from exc


def accept_records(parsed: List[Dict[str, Any]], batch: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Reduziert die Agenten-Ausgabe auf die URLs des Batches und ergaenzt title/content."""
    by_url = {entry["url"]: entry for entry in batch}
    accepted: List[Dict[str, Any]] = []
    seen: set[str] = set()
    for record in parsed:
        url = record["url"]
        if url not in by_url:
            append_log("batch.foreign_url", url=url)
            console(f"Ignoriere URL ausserhalb des Batches: {url}")
            continue
        if url in seen:
            continue
        seen.add(url)
        source = by_url[url]
        enriched = dict(record)
        enriched["title"] = source.get("title", "")
        enriched["content"] = source.get("content") or ""
        accepted.append(enriched)
    return accepted


def honoree_records(records: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [r for r in records if r.get("isEhrung") is True and r.get("persons")]


class HonorExtractor:
    def __init__(
        self,
        store: CheckpointStore,
        *,
        runner: AgentRunner,
        run_dir: Path,
        batch_size: int = 20,
        max_retries: int = 3,
    ) -> None:
        self.store = store
        self.runner = runner
        self.run_dir = Path(run_dir)
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.summary = ExtractionSummary()

    def remaining(self, entries: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [entry for entry in entries if not self.store.contains_url(entry["url"])]

    async def run(self, entries: Sequence[Dict[str, Any]]) -> ExtractionSummary:
        self.summary = ExtractionSummary(entries=len(entries))
        remaining = self.remaining(entries)
        self.summary.remaining = len(remaining)
        console(f"{len(remaining)} Eintraege offen ({len(self.store)} bereits verarbeitet)")
        if not remaining:
            console("Nichts zu tun!")
            self.summary.checkpoint_records = len(self.store)
            return self.summary

        batches = partition(remaining, self.batch_size)
        self.summary.batches = len(batches)
        for batch_num, batch in enumerate(batches, start=1):
            await self.process_batch(batch, batch_num, len(batches))
            console(SEPARATOR)
        self.summary.checkpoint_records = len(self.store)
        return self.summary

    async def process_batch(
        self, batch: Sequence[Dict[str, Any]], batch_num: int, total: int
    ) -> Optional[List[Dict[str, Any]]]:
        console(f"Verarbeite Batch {batch_num}/{total} ({len(batch)} Eintraege) ...")
        for idx, entry in enumerate(batch, start=1):
            console(f"  {idx}. {str(entry.get('title') or '')[:TITLE_PREVIEW_CHARS]}...")
        artifacts = self.prepare_batch(batch, batch_num)
        append_log("batch.start", batch=batch_num, total=total, size=len(batch), input=str(artifacts.input_path))

        records: Optional[List[Dict[str, Any]]] = None
        for attempt in range(1, self.max_retries + 1):
            console(f"Versuch {attempt}/{self.max_retries}: rufe Agent auf ...")
            try:
                records = await self.attempt(batch, artifacts)
                break
            except (AgentProcessError, MissingOutputError, OutputParseError, SchemaValidationError) as exc:
                reason = f"{type(exc).__name__}: {exc}"
                console(f"Versuch {attempt} fehlgeschlagen: {reason}")
                append_log("batch.attempt_failed", batch=batch_num, attempt=attempt, error=reason)

        if records is None:
            self.summary.exhausted_batches += 1
            console(f"Batch {batch_num} nach {self.max_retries} Versuchen fehlgeschlagen, wird uebersprungen.")
            append_log(
                "batch.exhausted",
                batch=batch_num,
                attempts=self.max_retries,
                urls=[entry["url"] for entry in batch],
            )
            return None

        self.commit(records, batch_num)
        return records

    def prepare_batch(self, batch: Sequence[Dict[str, Any]], batch_num: int) -> BatchArtifacts:
        artifacts = artifacts_for(self.run_dir, batch_num)
        self.run_dir.mkdir(parents=True, exist_ok=True)
        artifacts.input_path.write_text(
            json.dumps([project_entry(e) for e in batch], ensure_ascii=False, indent=2), encoding="utf-8"
        )
        artifacts.prompt_path.write_text(
            build_prompt(artifacts.input_path.resolve(), artifacts.output_path.resolve()), encoding="utf-8"
        )
        return artifacts

    async def attempt(self, batch: Sequence[Dict[str, Any]], artifacts: BatchArtifacts) -> List[Dict[str, Any]]:
        artifacts.output_path.unlink(missing_ok=True)
        self.summary.agent_invocations += 1
        await self.runner(artifacts.prompt_path)
        parsed = read_output(artifacts.output_path)
        validate_records(parsed, expected_urls=[entry["url"] for entry in batch])
        console("Validierung erfolgreich.")
        return accept_records(parsed, batch)

    def commit(self, records: List[Dict[str, Any]], batch_num: int) -> None:
        found = honoree_records(records)
        console(f"Ergebnisse Batch {batch_num}:")
        for record in found:
            console(f"  {str(record.get('title') or '')[:60]}...")
            for person in record["persons"]:
                console(f"    - {person['name']} ({person['gender']}): {person['honor']}")

        self.store.merge(records)
        path = self.store.persist()
        self.summary.accepted_batches += 1
        self.summary.honoree_records += len(found)
        self.summary.persons += sum(len(r["persons"]) for r in found)
        console(f"Batch {batch_num}: {len(found)} Eintraege mit Geehrten gefunden")
        console(f"Gesamt: {len(self.store)} URLs verarbeitet, gespeichert in {path}")
        append_log(
            "batch.accepted",
            batch=batch_num,
            records=len(records),
            honorees=len(found),
            checkpoint=str(path),
        )


def load_entries(path: Path) -> List[Dict[str, Any]]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InputFileError(f"Eingabedatei {path} nicht lesbar: {exc}") from exc
    if not isinstance(data, list):
        raise InputFileError(f"Eingabedatei {path} enthaelt kein JSON-Array")
    entries = [item for item in data if isinstance(item, dict) and isinstance(item.get("url"), str)]
    skipped = len(data) - len(entries)
    if skipped:
        console(f"Warnung: {skipped} Eintraege ohne gueltige URL ignoriert.")
    return entries


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ehrungen aus Veranstaltungsmeldungen extrahieren")
    parser.add_argument("input", type=Path, help="JSON-Datei aus scrape_events/extract_content")
    parser.add_argument("--config", type=Path, default=None, help="Pfad zur YAML-Konfiguration.")
    parser.add_argument("--batch-size", type=int, default=None, help="Eintraege pro Agenten-Aufruf.")
    parser.add_argument("--max-retries", type=int, default=None, help="Versuche pro Batch.")
    parser.add_argument("--timeout", type=float, default=None, help="Timeout pro Agenten-Aufruf in Sekunden.")
    return parser.parse_args(argv)


async def async_main(args: argparse.Namespace) -> ExtractionSummary:
    settings = load_settings(args.config)
    configure_log_dir(settings.log_dir)
    batch_size = args.batch_size if args.batch_size is not None else settings.batch_size
    max_retries = args.max_retries if args.max_retries is not None else settings.max_retries
    timeout = args.timeout if args.timeout is not None else settings.agent_timeout
    batch_size = max(1, int(batch_size))
    max_retries = max(1, int(max_retries))

    entries = load_entries(args.input)
    console(f"{len(entries)} Eintraege aus {args.input} geladen")

    store = CheckpointStore(checkpoint_path_for(args.input))
    store.load()
    if len(store):
        console(f"{len(store)} vorhandene Ergebnisse aus {store.path} geladen")

    run_id = new_run_id()
    runner = partial(run_agent, command=settings.agent_command, timeout=timeout)
    extractor = HonorExtractor(
        store,
        runner=runner,
        run_dir=settings.work_dir / run_id,
        batch_size=batch_size,
        max_retries=max_retries,
    )
    append_log(
        "extraction.start",
        input=str(args.input),
        run_id=run_id,
        entries=len(entries),
        batch_size=batch_size,
        max_retries=max_retries,
        timeout=timeout,
    )
    summary = await extractor.run(entries)
    append_log("extraction.done", run_id=run_id, **asdict(summary))
    console(
        f"Fertig! {summary.honoree_records} neue Eintraege mit Geehrten, "
        f"{summary.exhausted_batches} Batches uebersprungen, Checkpoint: {store.path}"
    )
    return summary


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        asyncio.run(async_main(args))
    except (InputFileError, CheckpointError, SettingsError) as exc:
        console(f"Fehler: {exc}")
        append_log("extraction.failed", error=str(exc))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
