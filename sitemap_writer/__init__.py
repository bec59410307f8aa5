"""
Paginated, streaming XML sitemap writer.
"""

from .entries import MAX_URLSET_ENTRIES, MIN_LASTMOD, UrlEntry, parse_lastmod
from .outputs import BufferOutput, DirectoryOutput, Output
from .sources import EntrySource, Source, fetch_entries, read_entries
from .writer import AbortWriter, SitemapWriter, WriteResult, WriteSummary, write_all

__all__ = [
    "MAX_URLSET_ENTRIES",
    "MIN_LASTMOD",
    "AbortWriter",
    "BufferOutput",
    "DirectoryOutput",
    "EntrySource",
    "Output",
    "SitemapWriter",
    "Source",
    "UrlEntry",
    "WriteResult",
    "WriteSummary",
    "fetch_entries",
    "parse_lastmod",
    "read_entries",
    "write_all",
]
