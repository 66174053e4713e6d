from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from .models import CacheEntry, ScreenshotRecord
from .utils import atomic_write_text, ensure_directory, file_mtime_ns

MtimeFn = Callable[[Path], int]


class FileOCRCache:
    """OCR results stored as one JSON file per screenshot.

    An entry is a hit only while its ``mtime_ns`` equals the screenshot's
    current modification time. Stale entries get overwritten on the next
    ``store``; nothing is ever purged.
    """

    def __init__(self, cache_dir: Path, log, mtime_of: MtimeFn = file_mtime_ns):
        self._cache_dir = ensure_directory(cache_dir)
        self._logger = log
        self._mtime_of = mtime_of

    def path_for(self, filename: str) -> Path:
        return self._cache_dir / f"{filename}.json"

    def lookup(self, record: ScreenshotRecord) -> Optional[str]:
        entry = self._read_entry(record.filename)
        if entry is None:
            return None
        if entry.mtime_ns != self._mtime_of(record.path):
            self._logger.debug("Stale OCR cache for %s", record.filename)
            return None
        return entry.text

    def store(self, record: ScreenshotRecord, text: str) -> None:
        payload = {"text": text, "mtime_ns": self._mtime_of(record.path)}
        atomic_write_text(self.path_for(record.filename), json.dumps(payload, ensure_ascii=False))

    def _read_entry(self, filename: str) -> Optional[CacheEntry]:
        path = self.path_for(filename)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CacheEntry(text=str(data["text"]), mtime_ns=int(data["mtime_ns"]))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            self._logger.warning("Ignoring unreadable OCR cache %s: %s", path.name, exc)
            return None


class InMemoryOCRCache:
    def __init__(self, mtime_of: MtimeFn = file_mtime_ns):
        self._mtime_of = mtime_of
        self.entries: Dict[str, CacheEntry] = {}

    def lookup(self, record: ScreenshotRecord) -> Optional[str]:
        entry = self.entries.get(record.filename)
        if entry is None or entry.mtime_ns != self._mtime_of(record.path):
            return None
        return entry.text

    def store(self, record: ScreenshotRecord, text: str) -> None:
        self.entries[record.filename] = CacheEntry(text=text, mtime_ns=self._mtime_of(record.path))


def cache_status(records: Iterable[ScreenshotRecord], cache) -> dict[str, int]:
    fresh = 0
    stale_or_missing = 0
    for record in records:
        if cache.lookup(record) is None:
            stale_or_missing += 1
        else:
            fresh += 1
    return {"fresh": fresh, "stale_or_missing": stale_or_missing}
