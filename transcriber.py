from __future__ import annotations

import argparse
import os
import sys

from readinglog.config import FAILURE_POLICIES, get_settings
from readinglog.formatting import ConnectivityError
from readinglog.logging_utils import console_logger, init_logger
from readinglog.pipeline import build_pipeline, create_formatter_client


def main() -> None:
    parser = argparse.ArgumentParser(description="Turn e-reader screenshots into per-day reading notes")
    parser.add_argument("--date", help="Only process this date (YYYY-MM-DD)")
    parser.add_argument("--screenshots-dir", default=None, help="Override SCREENSHOT_DIR")
    parser.add_argument("--output-dir", default=None, help="Override OUTPUT_DIR")
    parser.add_argument("--cache-dir", default=None, help="Override OCR_CACHE_DIR")
    parser.add_argument("--concurrency", type=int, default=None, help="Override OCR_CONCURRENCY")
    parser.add_argument(
        "--on-error",
        choices=FAILURE_POLICIES,
        default=None,
        help="What to do when a date fails: continue with the next date or abort the run",
    )
    args = parser.parse_args()

    if args.screenshots_dir:
        os.environ["SCREENSHOT_DIR"] = args.screenshots_dir
    if args.output_dir:
        os.environ["OUTPUT_DIR"] = args.output_dir
    if args.cache_dir:
        os.environ["OCR_CACHE_DIR"] = args.cache_dir
    if args.concurrency is not None:
        os.environ["OCR_CONCURRENCY"] = str(args.concurrency)
    if args.on_error:
        os.environ["ON_DATE_FAILURE"] = args.on_error

    try:
        settings = get_settings()
    except (RuntimeError, ValueError) as exc:
        console_logger("transcriber").error("Configuration error: %s", exc)
        sys.exit(1)

    logger = init_logger("transcriber", settings.logging.directory, settings.logging.level)

    try:
        client = create_formatter_client(settings, logger)
        client.verify_connectivity()
    except (ConnectivityError, RuntimeError) as exc:
        logger.error("Startup check failed: %s", exc)
        sys.exit(1)

    if not settings.paths.screenshot_dir.is_dir():
        logger.error("Screenshot directory not found: %s", settings.paths.screenshot_dir)
        sys.exit(1)

    pipeline = build_pipeline(settings, logger, client=client)
    report = pipeline.run(only_date=args.date)

    logger.info(
        "Done. processed=%s failed=%s skipped_files=%s",
        len(report.processed),
        len(report.failed),
        len(report.skipped_files),
    )
    for date, message in report.failed.items():
        logger.error("  %s: %s", date, message)

    if not report.ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
