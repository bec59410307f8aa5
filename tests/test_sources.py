import json
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest
import requests

from sitemap_writer.entries import UrlEntry
from sitemap_writer.sources import EntrySource, fetch_entries, parse_line, parse_record, read_entries


def test_entry_source_cursor():
    source = EntrySource([UrlEntry("https://example.com/a"), UrlEntry("https://example.com/b")])

    assert source.has_next()
    assert source.has_next()
    assert source.take().loc == "https://example.com/a"
    assert source.take().loc == "https://example.com/b"
    assert not source.has_next()
    assert source.taken == 2
    with pytest.raises(IndexError):
        source.take()


def test_entry_source_consumes_lazily():
    pulled = []

    def generate():
        for i in range(3):
            pulled.append(i)
            yield UrlEntry(f"https://example.com/{i}")

    source = EntrySource(generate())
    assert pulled == []
    source.has_next()
    assert pulled == [0]
    source.take()
    assert pulled == [0]


def test_urlset_url_defaults_to_first_entry_of_each_file():
    source = EntrySource((UrlEntry(f"https://example.com/{i}") for i in range(5)))
    # Files of 2, 2 and 1 entries.
    for size in (2, 2, 1):
        source.start_urlset()
        for _ in range(size):
            source.take()
    assert not source.has_next()

    assert [source.urlset_url(i) for i in range(3)] == [
        "https://example.com/0",
        "https://example.com/2",
        "https://example.com/4",
    ]
    with pytest.raises(IndexError):
        source.urlset_url(3)


def test_start_urlset_marks_next_entry_only():
    source = EntrySource(UrlEntry(f"https://example.com/{i}") for i in range(4))
    source.start_urlset()
    source.take()
    source.take()
    source.take()
    source.start_urlset()
    source.take()

    assert source.urlset_url(0) == "https://example.com/0"
    assert source.urlset_url(1) == "https://example.com/3"
    with pytest.raises(IndexError):
        source.urlset_url(2)


def test_urlset_url_for_empty_source():
    assert EntrySource([]).urlset_url(0) == ""


def test_urlset_url_uses_callable():
    source = EntrySource([], urlset_url=lambda i: f"https://example.com/sitemap-{i + 1}.xml")
    assert source.urlset_url(4) == "https://example.com/sitemap-5.xml"


def test_parse_line():
    assert parse_line("") is None
    assert parse_line("   # comment") is None
    assert parse_line("https://example.com/a\n") == UrlEntry("https://example.com/a")

    entry = parse_line("https://example.com/a\t2024-01-02\thttps://cdn/1.png\thttps://cdn/2.png")
    assert entry.lastmod == datetime(2024, 1, 2, tzinfo=UTC)
    assert entry.images == ("https://cdn/1.png", "https://cdn/2.png")


def test_parse_line_uses_default_lastmod_only_when_missing():
    default = datetime(2023, 5, 1, tzinfo=UTC)
    assert parse_line("https://example.com/a", default).lastmod == default
    assert parse_line("https://example.com/a\t\thttps://cdn/1.png", default).lastmod == default
    assert parse_line("https://example.com/a\t2024-01-02", default).lastmod == datetime(2024, 1, 2, tzinfo=UTC)


def test_parse_record():
    entry = parse_record({"loc": " https://example.com/a ", "lastmod": "2024-01-02", "images": "https://cdn/1.png"})
    assert entry == UrlEntry("https://example.com/a", datetime(2024, 1, 2, tzinfo=UTC), ("https://cdn/1.png",))

    with pytest.raises(ValueError):
        parse_record({"lastmod": "2024-01-02"})
    with pytest.raises(ValueError):
        parse_record(["https://example.com/a"])


def test_read_entries_tab_separated(tmp_path):
    path = tmp_path / "urls.txt"
    path.write_text(
        "# pages\nhttps://example.com/a\n\nhttps://example.com/b\t2024-01-02\thttps://cdn/b.png\n",
        encoding="utf-8",
    )

    entries = list(read_entries(path))
    assert [e.loc for e in entries] == ["https://example.com/a", "https://example.com/b"]
    assert entries[1].images == ("https://cdn/b.png",)


def test_read_entries_jsonl(tmp_path):
    path = tmp_path / "urls.jsonl"
    lines = [
        json.dumps({"loc": "https://example.com/a"}),
        "",
        json.dumps({"loc": "https://example.com/b", "lastmod": "2024-01-02T00:00:00Z", "images": ["https://cdn/1.png"]}),
    ]
    path.write_text("\n".join(lines), encoding="utf-8")

    entries = list(read_entries(path))
    assert entries[0] == UrlEntry("https://example.com/a")
    assert entries[1].lastmod == datetime(2024, 1, 2, tzinfo=UTC)
    assert entries[1].images == ("https://cdn/1.png",)


def test_read_entries_reports_bad_json_line(tmp_path):
    path = tmp_path / "urls.ndjson"
    path.write_text('{"loc": "https://example.com/a"}\n{not json}\n', encoding="utf-8")

    entries = read_entries(path)
    assert next(entries).loc == "https://example.com/a"
    with pytest.raises(ValueError, match=":2:"):
        next(entries)


def mock_response(lines, status_error=None):
    response = MagicMock()
    response.iter_lines.return_value = iter(lines)
    response.encoding = "utf-8"
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    response.__enter__.return_value = response
    return response


def test_fetch_entries_streams_lines():
    response = mock_response(["https://example.com/a", "", "# skip", "https://example.com/b\t2024-01-02"])
    with patch("sitemap_writer.sources.requests.get", return_value=response) as get:
        entries = list(fetch_entries("https://example.com/urls.txt", timeout=5))

    assert [e.loc for e in entries] == ["https://example.com/a", "https://example.com/b"]
    assert get.call_args.kwargs["stream"] is True
    assert get.call_args.kwargs["timeout"] == 5
    response.__exit__.assert_called_once()


def test_fetch_entries_raises_http_errors():
    response = mock_response([], status_error=requests.HTTPError("404 Client Error"))
    with patch("sitemap_writer.sources.requests.get", return_value=response):
        with pytest.raises(requests.HTTPError):
            list(fetch_entries("https://example.com/missing.txt", timeout=5))


def test_fetch_entries_defaults_to_utf8_without_charset():
    response = mock_response(["https://example.com/café"])
    response.encoding = None
    with patch("sitemap_writer.sources.requests.get", return_value=response):
        entries = list(fetch_entries("https://example.com/urls.txt", timeout=5))

    assert response.encoding == "utf-8"
    response.iter_lines.assert_called_once_with(decode_unicode=True)
    assert [e.loc for e in entries] == ["https://example.com/café"]
