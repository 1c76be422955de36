"""Liest die Veranstaltungsliste des Protokolls (LH Kaiser) fuer ein Jahr aus."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import List, Optional
from urllib.parse import urljoin

from lxml import etree, html

from tools.http_fetch import FetchError, fetch_page

BASE_URL = "https://www.ktn.gv.at"
EVENTS_PATH = "/Politik/Landesregierung/LH-Dr-Peter-Kaiser/Protokoll/Veranstaltungen-{year}"


class ListingParseError(FetchError):
    """Veranstaltungsliste geladen, aber nicht als HTML lesbar."""


@dataclass
class SourceEntry:
    date: str
    title: str
    url: str
    content: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


def _has_class(name: str) -> str:
    return f"contains(concat(' ', normalize-space(@class), ' '), ' {name} ')"


def _text(node: Optional[html.HtmlElement]) -> str:
    if node is None:
        return ""
    return " ".join(node.text_content().split())


def events_url(year: str, base_url: str = BASE_URL) -> str:
    return base_url.rstrip("/") + EVENTS_PATH.format(year=year)


def parse_events(html_text: str, *, base_url: str = BASE_URL) -> List[SourceEntry]:
    try:
        doc = html.fromstring(html_text)
    except (ValueError, etree.ParserError) as exc:
        raise ListingParseError(f"Veranstaltungsliste nicht lesbar: {exc}") from exc
    entries: List[SourceEntry] = []
    for item in doc.xpath(f"//*[{_has_class('protokollItem')}]"):
        links = item.xpath(".//a[contains(@href, 'pid=')]")
        if not links:
            continue
        href = links[0].get("href", "").strip()
        full_url = href if href.startswith("http") else urljoin(base_url.rstrip("/") + "/", href)
        headings = item.xpath(".//h2")
        strongs = item.xpath(f".//*[{_has_class('media-body')}]//*[{_has_class('text')}]//strong")
        entries.append(
            SourceEntry(
                date=_text(strongs[0]) if strongs else "",
                title=_text(headings[0]) if headings else "",
                url=full_url,
            )
        )
    return entries


def scrape_year(
    year: str,
    *,
    base_url: str = BASE_URL,
    timeout: float = 30.0,
    user_agent: Optional[str] = None,
) -> List[SourceEntry]:
    kwargs = {"timeout": timeout}
    if user_agent:
        kwargs["user_agent"] = user_agent
    html_text = fetch_page(events_url(year, base_url), **kwargs)
    return parse_events(html_text, base_url=base_url)


__all__ = ["BASE_URL", "ListingParseError", "SourceEntry", "events_url", "parse_events", "scrape_year"]
