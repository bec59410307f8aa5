"""
Streaming writer for paginated XML sitemap sets.

Entries are pulled one at a time from a source and written straight to the
destination handed out by an output, so memory use does not depend on how many
URLs there are. Every urlset file holds at most ``max_entries`` entries; when a
file fills up with input still remaining, the next file is started. Once the
input is exhausted, one index file referencing every urlset file is written.

Writes are unconditional: each destination is wrapped in an ``AbortWriter``,
which remembers the first ``OSError`` and turns every later write into a no-op.
The first failure is raised once the file is finished and aborts the whole set.
"""

from __future__ import annotations

import enum
import errno
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from xml.sax.saxutils import escape

from .entries import MAX_URLSET_BYTES, MAX_URLSET_ENTRIES, UrlEntry, as_utc
from .outputs import Destination, Output
from .sources import Source

logger = logging.getLogger(__name__)

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
IMAGE_NS = "http://www.google.com/schemas/sitemap-image/1.1"

XML_DECLARATION = b'<?xml version="1.0" encoding="UTF-8"?>\n'

INDEX_HEADER = XML_DECLARATION + f'<sitemapindex xmlns="{SITEMAP_NS}">\n'.encode()
INDEX_FOOTER = b"</sitemapindex>"

URLSET_HEADER = XML_DECLARATION + f'<urlset xmlns="{SITEMAP_NS}" xmlns:image="{IMAGE_NS}">\n'.encode()
URLSET_FOOTER = b"</urlset>"

TAG_URL_OPEN = b"  <url>\n"
TAG_URL_CLOSE = b"  </url>\n"
TAG_LOC_OPEN = b"    <loc>"
TAG_LOC_CLOSE = b"</loc>\n"
TAG_LASTMOD_OPEN = b"    <lastmod>"
TAG_LASTMOD_CLOSE = b"</lastmod>\n"
TAG_IMAGE_OPEN = b"    <image:image>\n      <image:loc>"
TAG_IMAGE_CLOSE = b"</image:loc>\n    </image:image>\n"

QUOTE_ENTITIES = {'"': "&quot;", "'": "&apos;"}
# Anything outside the XML 1.0 Char production.
INVALID_XML_CHARS_RE = re.compile("[^\t\n\r -\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def xml_text(value: str) -> bytes:
    cleaned = INVALID_XML_CHARS_RE.sub("\ufffd", value)
    return escape(cleaned, QUOTE_ENTITIES).encode("utf-8")


def rfc3339(value: datetime) -> bytes:
    """Format ``value`` as an RFC 3339 timestamp with second precision."""
    stamp = as_utc(value).replace(microsecond=0)
    if stamp.utcoffset() % timedelta(minutes=1):
        # RFC 3339 offsets have no seconds field.
        stamp = stamp.astimezone(UTC)
    if stamp.utcoffset() == timedelta(0):
        return stamp.strftime("%Y-%m-%dT%H:%M:%SZ").encode("ascii")
    return stamp.isoformat(timespec="seconds").encode("ascii")


class WriteResult(enum.Enum):
    SUCCESS = "success"
    CAPACITY_REACHED = "capacity_reached"


class AbortWriter:
    """Forward writes to ``underlying`` until one fails, then stop writing.

    After the first ``OSError`` every call returns 0 without touching the
    destination, and the original failure stays available as ``first_error``.
    A short write counts as a failure (``EIO``).
    """

    def __init__(self, underlying: Destination) -> None:
        self.underlying = underlying
        self.first_error: OSError | None = None
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        if self.first_error is not None:
            return 0
        try:
            written = self.underlying.write(data)
        except OSError as exc:
            self.first_error = exc
            return 0
        if written is None:
            written = len(data)
        self.bytes_written += written
        if written < len(data):
            self.first_error = OSError(errno.EIO, f"short write: {written} of {len(data)} bytes")
        return written

    def raise_first_error(self) -> None:
        if self.first_error is not None:
            raise self.first_error


@dataclass(frozen=True)
class UrlsetReport:
    result: WriteResult
    entries: int
    size: int


@dataclass
class WriteSummary:
    entry_counts: list[int] = field(default_factory=list)
    file_sizes: list[int] = field(default_factory=list)
    index_size: int = 0

    @property
    def urlset_files(self) -> int:
        return len(self.entry_counts)

    @property
    def total_entries(self) -> int:
        return sum(self.entry_counts)


class SitemapWriter:
    def __init__(self, max_entries: int = MAX_URLSET_ENTRIES) -> None:
        if max_entries <= 0 or max_entries > MAX_URLSET_ENTRIES:
            raise ValueError(f"max_entries must be between 1 and {MAX_URLSET_ENTRIES}, got {max_entries}")
        self.max_entries = max_entries

    def write_all(self, output: Output, source: Source) -> WriteSummary:
        """Write every urlset file needed for ``source``, then the index file.

        ``output.urlset()`` is called once per file, only when that file is about
        to be written. ``output.index()`` is called once at the end, and never if
        a urlset file failed.
        """
        summary = WriteSummary()
        while True:
            report = self.write_urlset_file(output.urlset(), source)
            summary.entry_counts.append(report.entries)
            summary.file_sizes.append(report.size)
            logger.debug(
                "Urlset file %d written: %d entries, %d bytes",
                summary.urlset_files,
                report.entries,
                report.size,
            )
            if report.size > MAX_URLSET_BYTES:
                logger.warning(
                    "Urlset file %d is %d bytes, above the %d byte protocol limit",
                    summary.urlset_files,
                    report.size,
                    MAX_URLSET_BYTES,
                )
            if report.result is WriteResult.SUCCESS:
                break

        summary.index_size = self.write_index_file(output.index(), source, summary.urlset_files)
        logger.info(
            "Sitemap set written: %d urlset files, %d entries",
            summary.urlset_files,
            summary.total_entries,
        )
        return summary

    def write_urlset_file(self, dest: Destination, source: Source) -> UrlsetReport:
        """Write one urlset file holding the next ``max_entries`` entries of ``source``."""
        writer = AbortWriter(dest)
        result = WriteResult.SUCCESS
        count = 0

        source.start_urlset()
        writer.write(URLSET_HEADER)
        while source.has_next():
            if count >= self.max_entries:
                result = WriteResult.CAPACITY_REACHED
                break
            self.write_url_entry(writer, source.take())
            count += 1
        writer.write(URLSET_FOOTER)

        writer.raise_first_error()
        return UrlsetReport(result=result, entries=count, size=writer.bytes_written)

    def write_index_file(self, dest: Destination, source: Source, nfiles: int) -> int:
        writer = AbortWriter(dest)

        writer.write(INDEX_HEADER)
        for i in range(nfiles):
            self.write_url_loc(writer, source.urlset_url(i))
        writer.write(INDEX_FOOTER)

        writer.raise_first_error()
        logger.debug("Index file written: %d entries, %d bytes", nfiles, writer.bytes_written)
        return writer.bytes_written

    def write_url_entry(self, writer: AbortWriter, entry: UrlEntry) -> None:
        writer.write(TAG_URL_OPEN)
        writer.write(TAG_LOC_OPEN)
        writer.write(xml_text(entry.loc))
        writer.write(TAG_LOC_CLOSE)
        if entry.has_lastmod:
            writer.write(TAG_LASTMOD_OPEN)
            writer.write(rfc3339(entry.lastmod))
            writer.write(TAG_LASTMOD_CLOSE)
        for image in entry.images:
            writer.write(TAG_IMAGE_OPEN)
            writer.write(xml_text(image))
            writer.write(TAG_IMAGE_CLOSE)
        writer.write(TAG_URL_CLOSE)

    def write_url_loc(self, writer: AbortWriter, loc: str) -> None:
        writer.write(TAG_URL_OPEN)
        writer.write(TAG_LOC_OPEN)
        writer.write(xml_text(loc))
        writer.write(TAG_LOC_CLOSE)
        writer.write(TAG_URL_CLOSE)


def write_all(output: Output, source: Source, *, max_entries: int = MAX_URLSET_ENTRIES) -> WriteSummary:
    return SitemapWriter(max_entries).write_all(output, source)
