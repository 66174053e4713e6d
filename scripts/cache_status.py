from __future__ import annotations

import argparse
from pathlib import Path

from readinglog.logging_utils import console_logger
from readinglog.ocr_cache import FileOCRCache, cache_status
from readinglog.screenshots import group_screenshots_by_date, sorted_dates


def main() -> None:
    parser = argparse.ArgumentParser(description="Reading-Log: per-date OCR cache coverage for a screenshots directory")
    parser.add_argument("--screenshots-dir", default="screenshots")
    parser.add_argument("--cache-dir", default=".ocr_cache")
    args = parser.parse_args()

    logger = console_logger("cache_status", "WARNING")
    screenshots_dir = Path(args.screenshots_dir)
    if not screenshots_dir.is_dir():
        print("NA")
        return

    cache = FileOCRCache(Path(args.cache_dir), logger)
    batches = group_screenshots_by_date(screenshots_dir, logger)
    for date in sorted_dates(batches):
        status = cache_status(batches[date].records, cache)
        print(f"{date}\tfresh={status['fresh']}\tstale_or_missing={status['stale_or_missing']}")


if __name__ == "__main__":
    main()
