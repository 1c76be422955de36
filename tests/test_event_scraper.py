"""
Tests for parsing the yearly event list.
"""

import json

import pytest

from tools import event_scraper
from tools.event_scraper import ListingParseError, events_url, parse_events
from tools.http_fetch import FetchError
from workflows import scrape_events

LISTING = """
<html><body>
<div class="row protokollItem">
  <div class="media-body">
    <h2>Verleihung des Ehrenrings an Maria Müller</h2>
    <div class="text"><strong>12. März 2024</strong> Spiegelsaal</div>
    <a href="/Politik/Landesregierung/Protokoll?pid=123">weiter</a>
  </div>
</div>
<div class="protokollItem">
  <div class="media-body">
    <h2>  Empfang
      im Landhaus </h2>
    <a href="https://www.ktn.gv.at/?pid=456">weiter</a>
  </div>
</div>
<div class="protokollItem"><h2>Ohne Link</h2></div>
<div class="protokollItemX"><a href="/x?pid=9">falsche Klasse</a></div>
</body></html>
"""


def test_events_url():
    assert events_url("2024", "https://www.ktn.gv.at/") == (
        "https://www.ktn.gv.at/Politik/Landesregierung/LH-Dr-Peter-Kaiser/Protokoll/Veranstaltungen-2024"
    )


def test_parse_events():
    entries = parse_events(LISTING, base_url="https://www.ktn.gv.at")

    assert [e.url for e in entries] == [
        "https://www.ktn.gv.at/Politik/Landesregierung/Protokoll?pid=123",
        "https://www.ktn.gv.at/?pid=456",
    ]
    assert entries[0].title == "Verleihung des Ehrenrings an Maria Müller"
    assert entries[0].date == "12. März 2024"
    assert entries[1].title == "Empfang im Landhaus"
    assert entries[1].date == ""
    assert entries[0].as_dict()["content"] is None


def test_scrape_workflow_writes_year_file(tmp_path, monkeypatch):
    monkeypatch.setattr(event_scraper, "fetch_page", lambda url, **kwargs: LISTING)

    assert scrape_events.main(["2024"]) == 0

    data = json.loads((tmp_path / "veranstaltungen_2024.json").read_text(encoding="utf-8"))
    assert len(data) == 2
    assert set(data[0]) == {"date", "title", "url", "content"}


def test_scrape_workflow_reports_fetch_errors(tmp_path, monkeypatch):
    def broken(url, **kwargs):
        raise FetchError("HTTP 500")

    monkeypatch.setattr(event_scraper, "fetch_page", broken)

    assert scrape_events.main(["2024"]) == 1
    assert not (tmp_path / "veranstaltungen_2024.json").exists()


def test_unparseable_listing_raises_fetch_error():
    with pytest.raises(ListingParseError) as exc_info:
        parse_events('<?xml version="1.0" encoding="utf-8"?><html><body></body></html>')

    assert isinstance(exc_info.value, FetchError)


def test_scrape_workflow_reports_unparseable_listing(tmp_path, monkeypatch):
    monkeypatch.setattr(
        event_scraper, "fetch_page", lambda url, **kwargs: '<?xml version="1.0" encoding="utf-8"?><html></html>'
    )

    assert scrape_events.main(["2024"]) == 1
