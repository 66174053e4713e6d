from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .models import DailyBatch, ScreenshotRecord

# Screenshot_20251202_190647_Evie.jpg -> ("2025-12-02", "19:06:47")
_FILENAME_RE = re.compile(r"^Screenshot_(\d{8})_(\d{6})")
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}


def parse_screenshot_filename(filename: str) -> Optional[Tuple[str, str]]:
    """Return ``(YYYY-MM-DD, HH:MM:SS)`` for a screenshot filename, or None.

    Digits are sliced at fixed offsets without calendar validation, so a
    month of ``13`` comes back unchanged.
    """
    match = _FILENAME_RE.match(filename)
    if not match:
        return None

    ymd, hms = match.groups()
    date = f"{ymd[0:4]}-{ymd[4:6]}-{ymd[6:8]}"
    time = f"{hms[0:2]}:{hms[2:4]}:{hms[4:6]}"
    return date, time


def list_screenshot_files(directory: Path) -> List[str]:
    """Image filenames in ``directory``, sorted by name."""
    return sorted(
        child.name
        for child in directory.iterdir()
        if child.is_file() and child.suffix.lower() in IMAGE_EXTENSIONS
    )


def build_records(directory: Path, filenames: Iterable[str], log, skipped: List[str] | None = None) -> List[ScreenshotRecord]:
    records: List[ScreenshotRecord] = []
    for filename in filenames:
        meta = parse_screenshot_filename(filename)
        if meta is None:
            log.info("Skipping %s (unexpected filename pattern)", filename)
            if skipped is not None:
                skipped.append(filename)
            continue
        date, time = meta
        records.append(ScreenshotRecord(filename=filename, path=directory / filename, capture_date=date, capture_time=time))
    return records


def group_records_by_date(records: Iterable[ScreenshotRecord]) -> Dict[str, DailyBatch]:
    batches: Dict[str, DailyBatch] = {}
    for record in records:
        batch = batches.get(record.capture_date)
        if batch is None:
            batch = batches[record.capture_date] = DailyBatch(date=record.capture_date)
        batch.add(record)
    return batches


def group_screenshots_by_date(directory: Path, log, skipped: List[str] | None = None) -> Dict[str, DailyBatch]:
    filenames = list_screenshot_files(directory)
    return group_records_by_date(build_records(directory, filenames, log, skipped))


def sorted_dates(batches: Dict[str, DailyBatch]) -> List[str]:
    # YYYY-MM-DD sorts lexically in chronological order.
    return sorted(batches)
