"""
Tests for article fetching with retry and the concurrent content filler.
"""

import json

import pytest

from tools.content_fetcher import extract_main_content, fetch_with_retry, fill_missing_content, process_entry
from tools.http_fetch import FetchError
from workflows import extract_content

ARTICLE = """
<html><body>
  <nav>Navigation</nav>
  <div id="main">
    <h1>Ehrung   im   Spiegelsaal</h1>
    <script>var tracking = 1;</script>
    <style>.x { color: red; }</style>
    <p>Landeshauptmann überreichte den Ehrenring.</p>


    <p>Weitere	Informationen</p>
  </div>
</body></html>
"""


class FlakyFetch:
    def __init__(self, failures, body=ARTICLE):
        self.failures = failures
        self.body = body
        self.calls = 0

    def __call__(self, url):
        self.calls += 1
        if self.calls <= self.failures:
            raise FetchError(f"HTTP 503 für {url}")
        return self.body


class TestFetchWithRetry:
    def test_backoff_doubles(self):
        delays = []
        fetch = FlakyFetch(failures=2)

        body = fetch_with_retry("u", max_retries=3, base_delay=1.0, fetch=fetch, sleep=delays.append)

        assert body == ARTICLE
        assert delays == [1.0, 2.0]

    def test_gives_up_after_last_attempt(self):
        delays = []
        fetch = FlakyFetch(failures=10)

        with pytest.raises(FetchError):
            fetch_with_retry("u", max_retries=3, base_delay=0.5, fetch=fetch, sleep=delays.append)

        assert fetch.calls == 3
        assert delays == [0.5, 1.0]


class TestExtractMainContent:
    def test_normalizes_main_text(self):
        text = extract_main_content(ARTICLE)

        assert "Navigation" not in text
        assert "tracking" not in text
        assert "color" not in text
        assert "Ehrung im Spiegelsaal" in text
        assert "Weitere Informationen" in text
        assert "\n\n\n" not in text
        assert text == text.strip()

    def test_missing_main_element(self):
        assert extract_main_content("<html><body><p>Hallo</p></body></html>") is None

    def test_blank_document(self):
        assert extract_main_content("   ") is None


def test_process_entry_sets_content():
    entry = {"url": "u", "title": "T"}

    result = process_entry(entry, fetch=FlakyFetch(failures=0))

    assert result["success"] is True
    assert result["chars"] == len(entry["content"])


def test_process_entry_reports_missing_main():
    entry = {"url": "u", "title": "T"}

    result = process_entry(entry, fetch=FlakyFetch(failures=0, body="<html><body></body></html>"))

    assert result["success"] is False
    assert "content" not in entry


@pytest.mark.asyncio
async def test_fill_missing_content_updates_only_missing_entries():
    def fetch(url):
        if url.endswith("kaputt"):
            raise FetchError(f"HTTP 404 für {url}")
        return ARTICLE

    entries = [
        {"url": "https://www.ktn.gv.at/?pid=1", "title": "Eins", "content": None},
        {"url": "https://www.ktn.gv.at/?pid=2", "title": "Zwei", "content": "schon da"},
        {"url": "https://www.ktn.gv.at/kaputt", "title": "Drei"},
        {"url": "https://www.ktn.gv.at/?pid=4", "title": "Vier", "content": ""},
    ]

    stats = await fill_missing_content(entries, concurrency=2, max_retries=2, base_delay=0, fetch=fetch)

    assert stats.total == 3
    assert stats.completed == 3
    assert stats.errors == 1
    assert stats.updated == 2
    assert entries[1]["content"] == "schon da"
    assert "Ehrenring" in entries[0]["content"]
    assert "Ehrenring" in entries[3]["content"]
    assert "content" not in entries[2]


def test_extract_content_workflow_updates_file_in_place(tmp_path, monkeypatch):
    monkeypatch.setattr(extract_content, "fetch_page", lambda url, **kwargs: ARTICLE)
    path = tmp_path / "veranstaltungen_2024.json"
    path.write_text(
        json.dumps(
            [
                {"date": "", "title": "Eins", "url": "https://www.ktn.gv.at/?pid=1", "content": None},
                {"date": "", "title": "Zwei", "url": "https://www.ktn.gv.at/?pid=2", "content": "schon da"},
            ]
        ),
        encoding="utf-8",
    )

    assert extract_content.main([str(path)]) == 0

    data = json.loads(path.read_text(encoding="utf-8"))
    assert "Ehrenring" in data[0]["content"]
    assert data[1]["content"] == "schon da"


@pytest.mark.asyncio
async def test_unparseable_page_is_counted_and_run_continues():
    declared = '<?xml version="1.0" encoding="utf-8"?><html><body><div id="main">x</div></body></html>'

    def fetch(url):
        return declared if url.endswith("=1") else ARTICLE

    entries = [
        {"url": "https://www.ktn.gv.at/?pid=1", "title": "Eins"},
        {"url": "https://www.ktn.gv.at/?pid=2", "title": "Zwei"},
    ]

    stats = await fill_missing_content(entries, concurrency=1, max_retries=1, base_delay=0, fetch=fetch)

    assert stats.errors == 1
    assert stats.updated == 1
    assert "content" not in entries[0]
    assert "Ehrenring" in entries[1]["content"]
