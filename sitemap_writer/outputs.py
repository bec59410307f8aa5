"""
Destinations for the files of a sitemap set.

An output hands the writer a fresh writable destination per urlset file and
one for the index. Closing those destinations is the output's job.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import BinaryIO, Callable, Protocol

logger = logging.getLogger(__name__)

URLSET_NAME = "sitemap-{n}.xml"
INDEX_NAME = "sitemap_index.xml"


class Destination(Protocol):
    def write(self, data: bytes) -> int | None: ...


class Output(Protocol):
    def urlset(self) -> Destination: ...

    def index(self) -> Destination: ...


class DirectoryOutput:
    """Write ``sitemap-1.xml``, ``sitemap-2.xml``, ... and ``sitemap_index.xml`` to a directory.

    Each file stays open until the next one is requested or the output is closed.
    """

    def __init__(self, out_dir: str | Path, *, urlset_name: str = URLSET_NAME, index_name: str = INDEX_NAME) -> None:
        self.out_dir = Path(out_dir)
        self.urlset_name = urlset_name
        self.index_name = index_name
        self.urlset_paths: list[Path] = []
        self.index_path: Path | None = None
        self._handle: BinaryIO | None = None

    def urlset(self) -> BinaryIO:
        path = self.out_dir / self.urlset_name.format(n=len(self.urlset_paths) + 1)
        self.urlset_paths.append(path)
        return self._open(path)

    def index(self) -> BinaryIO:
        self.index_path = self.out_dir / self.index_name
        return self._open(self.index_path)

    def urlset_url(self, base_url: str) -> Callable[[int], str]:
        """Map urlset file ``i`` to its public URL under ``base_url``."""
        base = base_url.rstrip("/")

        def url_for(index: int) -> str:
            return f"{base}/{self.urlset_name.format(n=index + 1)}"

        return url_for

    @property
    def written_paths(self) -> list[Path]:
        paths = list(self.urlset_paths)
        if self.index_path is not None:
            paths.append(self.index_path)
        return paths

    def close(self) -> None:
        if self._handle is not None:
            handle, self._handle = self._handle, None
            handle.close()

    def _open(self, path: Path) -> BinaryIO:
        self.close()
        self.out_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Opening %s", path)
        self._handle = path.open("wb")
        return self._handle

    def __enter__(self) -> DirectoryOutput:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class BufferOutput:
    """Keep every file of the set in memory."""

    def __init__(self) -> None:
        self.urlsets: list[io.BytesIO] = []
        self.index_buffer: io.BytesIO | None = None

    def urlset(self) -> io.BytesIO:
        buffer = io.BytesIO()
        self.urlsets.append(buffer)
        return buffer

    def index(self) -> io.BytesIO:
        self.index_buffer = io.BytesIO()
        return self.index_buffer

    def urlset_documents(self) -> list[bytes]:
        return [buffer.getvalue() for buffer in self.urlsets]

    def index_document(self) -> bytes | None:
        if self.index_buffer is None:
            return None
        return self.index_buffer.getvalue()
