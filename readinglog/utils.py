from __future__ import annotations

from pathlib import Path
from tempfile import NamedTemporaryFile


def ensure_directory(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def file_mtime_ns(path: Path) -> int:
    return path.stat().st_mtime_ns


def atomic_write_text(path: Path, text: str) -> Path:
    """Write text to a sibling temp file, then replace the target in one step."""
    ensure_directory(path.parent)
    with NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=str(path.parent), suffix=".tmp") as tmp:
        tmp.write(text)
        tmp_path = Path(tmp.name)
    try:
        tmp_path.replace(path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
    return path
