from __future__ import annotations

from pathlib import Path
from typing import Optional, Set

from .config import AppSettings
from .formatting import BatchFormatter, FormattingError
from .models import DailyBatch, RunReport
from .notes import NoteStore
from .ocr_cache import FileOCRCache
from .recognition import BoundedRecognizer, RecognitionError, TesseractRecognizer
from .screenshots import group_screenshots_by_date, sorted_dates

# Errors that end one date's processing without touching its note.
DATE_ERRORS = (RecognitionError, FormattingError, OSError, ValueError)


class ReadingPipeline:
    """Screenshots directory → per-day markdown notes.

    Dates run one at a time in ascending order. A failing date leaves its note
    untouched; ``on_date_failure`` decides whether the run moves on
    (``continue``) or stops there (``abort``).
    """

    def __init__(
        self,
        screenshot_dir: Path,
        recognizer: BoundedRecognizer,
        formatter: BatchFormatter,
        notes: NoteStore,
        log,
        on_date_failure: str = "continue",
    ):
        if on_date_failure not in {"continue", "abort"}:
            raise ValueError(f"Unknown failure policy: {on_date_failure}")
        self._screenshot_dir = screenshot_dir
        self._recognizer = recognizer
        self._formatter = formatter
        self._notes = notes
        self._logger = log
        self._on_date_failure = on_date_failure
        self._completed: Set[str] = set()

    def run(self, only_date: Optional[str] = None) -> RunReport:
        report = RunReport()
        self._logger.info("Grouping screenshots by date...")
        batches = group_screenshots_by_date(self._screenshot_dir, self._logger, report.skipped_files)

        dates = sorted_dates(batches)
        if only_date is not None:
            dates = [d for d in dates if d == only_date]
            if not dates:
                self._logger.warning("No screenshots found for %s", only_date)

        for date in dates:
            try:
                self.process_date(batches[date])
            except DATE_ERRORS as exc:
                report.failed[date] = str(exc)
                self._logger.error("Failed to process %s: %s", date, exc)
                if self._on_date_failure == "abort":
                    self._logger.error("Run aborted after failure on %s", date)
                    report.aborted = True
                    break
                continue
            report.processed.append(date)

        return report

    def process_date(self, batch: DailyBatch) -> Path:
        if batch.date in self._completed:
            raise RuntimeError(f"{batch.date} was already processed in this run")

        self._logger.info("Processing %s screenshots for %s...", len(batch.records), batch.date)
        entries = self._recognizer.recognize_batch(batch.records)

        self._logger.info("  → All screenshots for this date OCR'd. Sending for formatting...")
        formatted = self._formatter.format_day(batch.date, entries)

        path = self._notes.append(batch.date, formatted)
        self._completed.add(batch.date)
        return path


def create_formatter_client(settings: AppSettings, log):
    if settings.formatter_backend == "local":
        from .local_llm_client import LocalLLMFormatter

        return LocalLLMFormatter(settings.local_llm, log)

    from .gemini_client import GeminiFormatter

    if settings.gemini is None:
        raise RuntimeError("Gemini settings are missing")
    return GeminiFormatter(settings.gemini, log)


def build_pipeline(settings: AppSettings, log, client=None) -> ReadingPipeline:
    if client is None:
        client = create_formatter_client(settings, log)
    cache = FileOCRCache(settings.paths.cache_dir, log)
    recognizer = BoundedRecognizer(TesseractRecognizer(settings.ocr), cache, log, max_workers=settings.ocr.concurrency)
    return ReadingPipeline(
        screenshot_dir=settings.paths.screenshot_dir,
        recognizer=recognizer,
        formatter=BatchFormatter(client, log),
        notes=NoteStore(settings.paths.output_dir, log),
        log=log,
        on_date_failure=settings.on_date_failure,
    )
