"""
Command-line entry point: write a paginated sitemap set from a URL list.
"""

from __future__ import annotations

import argparse
import json
from datetime import datetime
from pathlib import Path
from typing import Iterator

from .entries import MAX_URLSET_ENTRIES, UrlEntry, parse_lastmod
from .logging_setup import setup_logging
from .outputs import DirectoryOutput
from .sources import EntrySource, fetch_entries, read_entries
from .writer import SitemapWriter, WriteSummary


def load_entries(args: argparse.Namespace, default_lastmod: datetime | None) -> Iterator[UrlEntry]:
    if args.urls_file:
        return read_entries(Path(args.urls_file).resolve(), default_lastmod)
    return fetch_entries(args.urls_url, timeout=args.timeout, default_lastmod=default_lastmod)


def write_summary(path: Path, args: argparse.Namespace, summary: WriteSummary, output: DirectoryOutput) -> None:
    payload = {
        "source": args.urls_file or args.urls_url,
        "base_url": args.base_url or None,
        "split_size": args.split_size,
        "total_urls": summary.total_entries,
        "sitemap_files": summary.urlset_files,
        "entries_per_file": summary.entry_counts,
        "bytes_per_file": summary.file_sizes,
        "index_bytes": summary.index_size,
        "output_files": [str(p) for p in output.written_paths],
    }
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def run_generate(args: argparse.Namespace) -> int:
    if args.split_size <= 0 or args.split_size > MAX_URLSET_ENTRIES:
        print(f"Error: split-size must be between 1 and {MAX_URLSET_ENTRIES}")
        return 2
    if not args.urls_file and not args.urls_url:
        print("Error: provide either --urls-file or --urls-url")
        return 2
    if args.urls_file and not Path(args.urls_file).is_file():
        print(f"Error: urls file not found: {Path(args.urls_file).resolve()}")
        return 2

    default_lastmod = None
    if args.default_lastmod:
        try:
            default_lastmod = parse_lastmod(args.default_lastmod)
        except ValueError as exc:
            print(f"Error: {exc}")
            return 2

    out_dir = Path(args.output_dir).resolve()
    try:
        with DirectoryOutput(out_dir) as output:
            source = EntrySource(
                load_entries(args, default_lastmod),
                urlset_url=output.urlset_url(args.base_url) if args.base_url else None,
            )
            summary = SitemapWriter(args.split_size).write_all(output, source)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}")
        return 1

    summary_path = out_dir / "SUMMARY.json"
    write_summary(summary_path, args, summary, output)

    print(f"Total URLs included: {summary.total_entries}")
    print(f"Sitemap files: {summary.urlset_files}")
    print(f"Index: {output.index_path}")
    print(f"Summary: {summary_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Write paginated XML sitemaps and a sitemap index.")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default="", help="Optional rotating log file")
    sub = parser.add_subparsers(dest="command", required=True)

    p_generate = sub.add_parser("generate", help="Generate sitemap XML from a URL list")
    p_generate.add_argument("--urls-file", default="", help="Tab-separated URL list, or .jsonl records")
    p_generate.add_argument("--urls-url", default="", help="Remote newline-delimited URL list")
    p_generate.add_argument("--output-dir", default="sitemap-output")
    p_generate.add_argument("--base-url", default="", help="Public URL the sitemap files are served from")
    p_generate.add_argument(
        "--split-size",
        type=int,
        default=MAX_URLSET_ENTRIES,
        help=f"URLs per sitemap file (max {MAX_URLSET_ENTRIES})",
    )
    p_generate.add_argument("--default-lastmod", default="", help="Optional YYYY-MM-DD for entries without lastmod")
    p_generate.add_argument("--timeout", type=int, default=20)
    p_generate.set_defaults(func=run_generate)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, args.log_file or None)
    return args.func(args)
