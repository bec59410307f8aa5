"""
Entry sources: the pull-style cursor the writer consumes, plus readers that
stream entries from local files or from a remote URL list.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Protocol

import requests

from .entries import UrlEntry, parse_lastmod

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; sitemap-writer/1.0)",
    "Accept": "text/plain,application/x-ndjson,*/*;q=0.8",
}
JSONL_SUFFIXES = {".jsonl", ".ndjson"}


class Source(Protocol):
    def start_urlset(self) -> None: ...

    def has_next(self) -> bool: ...

    def take(self) -> UrlEntry: ...

    def urlset_url(self, index: int) -> str: ...


class EntrySource:
    """Cursor over an iterable of entries, shared by every urlset file of a set.

    The iterable is consumed lazily with one entry of look-ahead. Unless a
    ``urlset_url`` callable is given, urlset file ``i`` is identified by the
    location of the first entry taken after the writer's ``i``-th call to
    ``start_urlset``.
    """

    def __init__(
        self,
        entries: Iterable[UrlEntry],
        *,
        urlset_url: Callable[[int], str] | None = None,
    ) -> None:
        self._entries = iter(entries)
        self._pending: UrlEntry | None = None
        self._file_started = False
        self._urlset_url = urlset_url
        self._first_locs: list[str] = []
        self.taken = 0

    def start_urlset(self) -> None:
        self._file_started = True

    def has_next(self) -> bool:
        if self._pending is None:
            self._pending = next(self._entries, None)
        return self._pending is not None

    def take(self) -> UrlEntry:
        if not self.has_next():
            raise IndexError("entry source is exhausted")
        entry = self._pending
        self._pending = None
        if self._file_started:
            self._first_locs.append(entry.loc)
            self._file_started = False
        self.taken += 1
        return entry

    def urlset_url(self, index: int) -> str:
        if self._urlset_url is not None:
            return self._urlset_url(index)
        if index < len(self._first_locs):
            return self._first_locs[index]
        if index == 0 and not self._first_locs:
            # An empty set still has one (empty) urlset file.
            return ""
        raise IndexError(f"no urlset file {index}: only {len(self._first_locs)} started")


def parse_line(line: str, default_lastmod: datetime | None = None) -> UrlEntry | None:
    """Parse ``loc[<TAB>lastmod[<TAB>image...]]``; blank and ``#`` lines give None."""
    value = line.strip()
    if not value or value.startswith("#"):
        return None
    fields = [part.strip() for part in value.split("\t")]
    loc = fields[0]
    lastmod = parse_lastmod(fields[1]) if len(fields) > 1 and fields[1] else default_lastmod
    images = [image for image in fields[2:] if image]
    return UrlEntry(loc, lastmod, images)


def parse_record(record: dict[str, Any], default_lastmod: datetime | None = None) -> UrlEntry:
    if not isinstance(record, dict):
        raise ValueError(f"Expected a JSON object, got {record!r}")
    loc = record.get("loc")
    if not isinstance(loc, str) or not loc.strip():
        raise ValueError(f"Record without a loc: {record!r}")
    raw_lastmod = record.get("lastmod")
    lastmod = parse_lastmod(str(raw_lastmod)) if raw_lastmod else default_lastmod
    images = record.get("images") or []
    if isinstance(images, str):
        images = [images]
    return UrlEntry(loc.strip(), lastmod, images)


def read_entries(path: str | Path, default_lastmod: datetime | None = None) -> Iterator[UrlEntry]:
    file_path = Path(path)
    jsonl = file_path.suffix.lower() in JSONL_SUFFIXES
    with file_path.open("r", encoding="utf-8") as handle:
        for lineno, raw in enumerate(handle, start=1):
            if jsonl:
                value = raw.strip()
                if not value or value.startswith("#"):
                    continue
                try:
                    record = json.loads(value)
                except json.JSONDecodeError as exc:
                    raise ValueError(f"{file_path}:{lineno}: invalid JSON: {exc}") from exc
                yield parse_record(record, default_lastmod)
                continue
            entry = parse_line(raw, default_lastmod)
            if entry is not None:
                yield entry


def fetch_entries(url: str, *, timeout: int, default_lastmod: datetime | None = None) -> Iterator[UrlEntry]:
    """Stream a newline-delimited URL list from ``url``."""
    logger.debug("Fetching URL list from %s", url)
    with requests.get(url, headers=HEADERS, timeout=timeout, stream=True) as response:
        response.raise_for_status()
        # iter_lines only decodes when an encoding is known.
        response.encoding = response.encoding or "utf-8"
        for raw in response.iter_lines(decode_unicode=True):
            entry = parse_line(raw, default_lastmod)
            if entry is not None:
                yield entry
