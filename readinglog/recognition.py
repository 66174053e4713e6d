from __future__ import annotations

from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from pathlib import Path
from typing import List, Optional

import pytesseract
from PIL import Image

from .config import OCRSettings
from .models import RawEntry, ScreenshotRecord

DEFAULT_CONCURRENCY = 6


class RecognitionError(RuntimeError):
    def __init__(self, filename: str, cause: BaseException):
        super().__init__(f"OCR failed for {filename}: {cause}")
        self.filename = filename
        self.cause = cause


class TesseractRecognizer:
    def __init__(self, settings: OCRSettings):
        self._language = settings.language
        if settings.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = settings.tesseract_cmd

    def recognize(self, image_path: Path) -> str:
        if not image_path.exists():
            raise FileNotFoundError(image_path)
        with Image.open(image_path) as image:
            return pytesseract.image_to_string(image, lang=self._language)


class BoundedRecognizer:
    """Runs OCR for one day's screenshots with at most ``max_workers`` engine calls in flight.

    Cache hits are resolved up front and never reach the engine. Results come
    back in input order no matter which worker finishes first. A single
    failure fails the whole batch.
    """

    def __init__(self, recognizer, cache, log, max_workers: int = DEFAULT_CONCURRENCY):
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._recognizer = recognizer
        self._cache = cache
        self._logger = log
        self._max_workers = max_workers

    def recognize_batch(self, records: List[ScreenshotRecord]) -> List[RawEntry]:
        slots: List[Optional[RawEntry]] = [None] * len(records)
        misses: List[int] = []

        for index, record in enumerate(records):
            text = self._cache.lookup(record)
            if text is None:
                misses.append(index)
                continue
            self._logger.info("  (Cached) OCR for %s", record.filename)
            slots[index] = RawEntry(capture_time=record.capture_time, raw_text=text, filename=record.filename, cached=True)

        if misses:
            self._run_misses(records, misses, slots)

        return [entry for entry in slots if entry is not None]

    def _run_misses(self, records: List[ScreenshotRecord], misses: List[int], slots: List[Optional[RawEntry]]) -> None:
        executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="ocr")
        try:
            futures = {executor.submit(self._recognize_one, records[index]): index for index in misses}
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in done:
                exc = future.exception()
                if exc is not None:
                    for other in pending:
                        other.cancel()
                    raise exc
                slots[futures[future]] = future.result()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    def _recognize_one(self, record: ScreenshotRecord) -> RawEntry:
        self._logger.info("  (New OCR) for %s...", record.filename)
        try:
            text = self._recognizer.recognize(record.path)
        except Exception as exc:
            raise RecognitionError(record.filename, exc) from exc
        self._cache.store(record, text)
        return RawEntry(capture_time=record.capture_time, raw_text=text, filename=record.filename, cached=False)
