"""HTTP-Abruf fuer Listen- und Artikelseiten von ktn.gv.at."""

from __future__ import annotations

from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

USER_AGENT = "KaerntenEhrungen/Scraper/1.0"
MAX_FETCH_BYTES = 5_000_000


class FetchError(RuntimeError):
    """Seite konnte nicht geladen werden."""


def fetch_page(url: str, *, timeout: float = 30.0, user_agent: str = USER_AGENT) -> str:
    request = Request(url, headers={"User-Agent": user_agent})
    try:
        with urlopen(request, timeout=timeout) as response:
            content = response.read(MAX_FETCH_BYTES)
            charset = response.headers.get_content_charset() or "utf-8"
    except HTTPError as exc:
        raise FetchError(f"HTTP {exc.code} für {url}") from exc
    except URLError as exc:
        raise FetchError(f"{url} nicht erreichbar ({exc.reason})") from exc
    except (TimeoutError, OSError) as exc:
        raise FetchError(f"{url} nicht erreichbar ({exc})") from exc
    return content.decode(charset, errors="replace")


__all__ = ["FetchError", "USER_AGENT", "fetch_page"]
