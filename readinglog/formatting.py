from __future__ import annotations

from typing import Iterable, List

from .models import RawEntry

ENTRY_DELIMITER = "---"

PROMPT_TEMPLATE = """You are an OCR cleanup and formatting assistant for e-reader screenshots. I have a batch of texts for a specific day, and your task is to clean them up and format them.

For each text entry provided, follow these rules:
1.  **Cleanup:** Remove all OCR errors, stray characters, and any user interface elements (like page numbers, battery icons, or clock times) that are not part of the main text.
2.  **Formatting:**
    *   The entire passage for a single screenshot should be on one line, with no internal newlines, UNLESS it is dialogue or a list.
    *   Preserve line breaks for dialogue (e.g., lines starting with "-") and for list items.
    *   Join paragraphs that were split across multiple lines into a single line.
3.  **Output Structure:**
    *   The timestamp must be on its own line and in **bold** (e.g., **HH:MM:SS**).
    *   The cleaned-up text must start on the very next line.
    *   Separate each complete entry (timestamp and text) with a single blank line.

Here is the batch of texts for the date {date}. Each entry is separated by "---" and includes a timestamp.
---
{text_batch}
---
Return ONLY the formatted text. Do not add any extra titles, bullet points, commentary, or introductions."""


class FormattingError(RuntimeError):
    pass


class ConnectivityError(RuntimeError):
    pass


def render_raw_entry(entry: RawEntry) -> str:
    return f"[TIMESTAMP: {entry.capture_time}]\n{entry.raw_text}\n{ENTRY_DELIMITER}"


def render_raw_entries(entries: Iterable[RawEntry]) -> str:
    return "\n".join(render_raw_entry(entry) for entry in entries)


def build_formatting_prompt(date: str, text_batch: str) -> str:
    return PROMPT_TEMPLATE.format(date=date, text_batch=text_batch)


class BatchFormatter:
    """Sends one request per day to a text-generation client.

    ``client`` needs ``generate(prompt) -> str``; see GeminiFormatter and
    LocalLLMFormatter.
    """

    def __init__(self, client, log):
        self._client = client
        self._logger = log

    def format_day(self, date: str, entries: List[RawEntry]) -> str:
        if not entries:
            raise FormattingError(f"No OCR text to format for {date}")

        prompt = build_formatting_prompt(date, render_raw_entries(entries))
        try:
            text = self._client.generate(prompt)
        except FormattingError:
            raise
        except Exception as exc:
            raise FormattingError(f"Formatting request for {date} failed: {exc}") from exc

        cleaned = (text or "").strip()
        if not cleaned:
            raise FormattingError(f"Formatting service returned no text for {date}")
        self._logger.debug("Formatted %s entries for %s (%s chars)", len(entries), date, len(cleaned))
        return cleaned
