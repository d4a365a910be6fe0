"""
Batch driver for the capture pipeline.

Usage:
    python -m dynamic_renderer.capture_cli https://example.com/ https://example.com/about
    python -m dynamic_renderer.capture_cli --file urls.txt --env production

Exits 0 when every URL was captured, 1 otherwise.
"""
import argparse
import asyncio
import sys
from typing import List, Optional, Sequence

from dynamic_renderer.core.config import load_settings
from dynamic_renderer.core.logger import setup_logging, get_logger
from dynamic_renderer.core.manager import CaptureManager, CaptureResult

logger = get_logger(__name__)


def read_url_file(path: str) -> List[str]:
    """One URL per line; blank lines and lines starting with '#' are skipped."""
    with open(path, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip() and not line.lstrip().startswith("#")]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pre-render URLs and store them for the edge gateway.")
    parser.add_argument("urls", nargs="*", help="URLs to capture")
    parser.add_argument("--file", "-f", help="File with one URL per line")
    parser.add_argument("--env", help="Configuration environment (defaults to APP_ENV or 'development')")
    return parser


async def run_batch(manager: CaptureManager, urls: Sequence[str]) -> List[CaptureResult]:
    try:
        return await manager.batch_capture(urls)
    finally:
        await manager.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    urls = list(args.urls)
    if args.file:
        urls.extend(read_url_file(args.file))
    if not urls:
        print("No URLs given.", file=sys.stderr)
        return 2

    settings = load_settings(env=args.env)
    setup_logging(settings)

    results = asyncio.run(run_batch(CaptureManager(settings), urls))
    for result in results:
        if result.ok:
            print(f"OK    {result.url} -> {result.cache_key}")
        else:
            print(f"FAIL  {result.url}: {result.error}")
    return 0 if all(result.ok for result in results) else 1


if __name__ == "__main__":
    sys.exit(main())
