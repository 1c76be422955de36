"""
Ergaenzt den Artikeltext (`content`) fuer gescrapte Eintraege.

Mehrere Worker ziehen Eintraege aus einer gemeinsamen Queue; jeder Worker
schreibt nur in den eigenen Eintrag. Fehlgeschlagene Abrufe werden gezaehlt,
brechen den Lauf aber nicht ab.
"""

from __future__ import annotations

import asyncio
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Sequence

from lxml import etree, html

from tools.http_fetch import FetchError, fetch_page
from tools.run_log import append_log, console

DEFAULT_CONCURRENCY = 5
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0
TITLE_PREVIEW = 50

_BLANK_LINES = re.compile(r"\n\s*\n")
_INLINE_WS = re.compile(r"[ \t]+")


@dataclass
class FetchStats:
    total: int = 0
    completed: int = 0
    errors: int = 0

    @property
    def updated(self) -> int:
        return self.completed - self.errors


def fetch_with_retry(
    url: str,
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    fetch: Callable[[str], str] = fetch_page,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    last_error: Optional[FetchError] = None
    for attempt in range(max_retries):
        try:
            return fetch(url)
        except FetchError as exc:
            last_error = exc
            if attempt < max_retries - 1:
                sleep(base_delay * (2 ** attempt))
    raise last_error or FetchError(f"{url}: keine Abrufversuche konfiguriert")


def extract_main_content(html_text: str) -> Optional[str]:
    if not html_text.strip():
        return None
    doc = html.fromstring(html_text)
    nodes = doc.xpath("//*[@id='main']")
    if not nodes:
        return None
    main = nodes[0]
    for junk in main.xpath(".//script|.//style"):
        junk.drop_tree()
    text = main.text_content()
    text = _BLANK_LINES.sub("\n\n", text)
    text = _INLINE_WS.sub(" ", text)
    return text.strip()


def _title_preview(entry: MutableMapping[str, Any]) -> str:
    return str(entry.get("title") or "")[:TITLE_PREVIEW]


def process_entry(
    entry: MutableMapping[str, Any],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    fetch: Callable[[str], str] = fetch_page,
) -> Dict[str, Any]:
    try:
        html_text = fetch_with_retry(entry["url"], max_retries=max_retries, base_delay=base_delay, fetch=fetch)
    except FetchError as exc:
        return {"success": False, "error": str(exc)}
    try:
        content = extract_main_content(html_text)
    except (ValueError, etree.ParserError) as exc:
        return {"success": False, "error": f"HTML nicht lesbar: {exc}"}
    if not content:
        return {"success": False, "error": "Kein #main-Element"}
    entry["content"] = content
    return {"success": True, "chars": len(content)}


async def fill_missing_content(
    entries: Sequence[MutableMapping[str, Any]],
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    fetch: Callable[[str], str] = fetch_page,
) -> FetchStats:
    """Laedt `content` fuer alle Eintraege ohne Text nach (aendert `entries` in place)."""
    pending: List[MutableMapping[str, Any]] = [entry for entry in entries if not entry.get("content")]
    stats = FetchStats(total=len(pending))
    queue: asyncio.Queue = asyncio.Queue()
    for entry in pending:
        queue.put_nowait(entry)

    async def worker() -> None:
        while True:
            try:
                entry = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            result = await asyncio.to_thread(
                process_entry, entry, max_retries=max_retries, base_delay=base_delay, fetch=fetch
            )
            stats.completed += 1
            progress = f"[{stats.completed}/{stats.total}]"
            if result["success"]:
                console(f"{progress} ✓ {result['chars']} Zeichen - {_title_preview(entry)}...", tag="content")
            else:
                stats.errors += 1
                console(f"{progress} ✗ {result['error']} - {_title_preview(entry)}...", tag="content")
                append_log("content.fetch_error", url=entry.get("url"), error=result["error"])

    workers = [asyncio.create_task(worker()) for _ in range(max(1, concurrency))]
    await asyncio.gather(*workers)
    return stats


__all__ = [
    "FetchStats",
    "extract_main_content",
    "fetch_with_retry",
    "fill_missing_content",
    "process_entry",
]
