from __future__ import annotations

from pathlib import Path
from typing import Optional

from .utils import atomic_write_text, ensure_directory


def canonical_header(date: str) -> str:
    return f"# Reading – [[{date}]]\n\n"


def merge_note(date: str, existing: Optional[str], formatted: str) -> str:
    """Combine a day's note with newly formatted text.

    The result always starts with exactly one canonical header. Whatever was
    already in the note is kept (trailing whitespace trimmed) ahead of the new
    text. Content without the header is treated as a legacy note: the header
    is put in front of it rather than replacing it.
    """
    header = canonical_header(date)
    previous = ""
    if existing is not None:
        previous = existing[len(header):] if existing.startswith(header) else existing

    content = header
    if previous.strip():
        content += previous.rstrip() + "\n\n"
    return content + formatted


class NoteStore:
    def __init__(self, output_dir: Path, log):
        self._output_dir = ensure_directory(output_dir)
        self._logger = log

    def path_for(self, date: str) -> Path:
        return self._output_dir / f"{date}.md"

    def read(self, date: str) -> Optional[str]:
        path = self.path_for(date)
        if not path.exists():
            return None
        # Hand-edited notes may not be UTF-8; bad bytes become U+FFFD.
        return path.read_text(encoding="utf-8", errors="replace")

    def append(self, date: str, formatted: str) -> Path:
        # Full rewrite so header normalization applies to legacy files too.
        path = self.path_for(date)
        existing = self.read(date)
        atomic_write_text(path, merge_note(date, existing, formatted))
        self._logger.info("  → Formatted content appended to %s", path.name)
        return path
