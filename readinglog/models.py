from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List


@dataclass(frozen=True)
class ScreenshotRecord:
    filename: str
    path: Path
    capture_date: str
    capture_time: str


@dataclass
class DailyBatch:
    date: str
    records: List[ScreenshotRecord] = field(default_factory=list)

    def add(self, record: ScreenshotRecord) -> None:
        if record.capture_date != self.date:
            raise ValueError(f"{record.filename} belongs to {record.capture_date}, not {self.date}")
        self.records.append(record)


@dataclass(frozen=True)
class CacheEntry:
    text: str
    mtime_ns: int


@dataclass(frozen=True)
class RawEntry:
    capture_time: str
    raw_text: str
    filename: str = ""
    cached: bool = False


@dataclass
class RunReport:
    processed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    skipped_files: List[str] = field(default_factory=list)
    aborted: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed and not self.aborted
