"""
URL entries and the protocol limits that apply to them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Iterable

# Hard per-file limit of the sitemaps.org protocol.
MAX_URLSET_ENTRIES = 50_000
# Uncompressed size limit of one sitemap file.
MAX_URLSET_BYTES = 50 * 1024 * 1024
# Timestamps before this are treated as "unset".
MIN_LASTMOD = datetime(2000, 1, 1, tzinfo=UTC)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def parse_lastmod(raw: str) -> datetime:
    value = raw.strip()
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError as exc:
        raise ValueError(f"Invalid lastmod value: {raw!r}") from exc


@dataclass(frozen=True)
class UrlEntry:
    loc: str
    lastmod: datetime | None = None
    images: Iterable[str] = ()

    def __post_init__(self) -> None:
        # Freeze whatever iterable was given so the entry stays immutable.
        object.__setattr__(self, "images", tuple(self.images))

    @property
    def has_lastmod(self) -> bool:
        return self.lastmod is not None and as_utc(self.lastmod) >= MIN_LASTMOD
