from __future__ import annotations

import argparse
from pathlib import Path

from readinglog.config import OCRSettings
from readinglog.logging_utils import console_logger
from readinglog.ocr_cache import FileOCRCache
from readinglog.recognition import BoundedRecognizer, TesseractRecognizer
from readinglog.screenshots import build_records


def main() -> None:
    parser = argparse.ArgumentParser(description="Run OCR on a single screenshot and print the raw text")
    parser.add_argument("--image", required=True)
    parser.add_argument("--lang", default="eng")
    parser.add_argument("--tesseract-cmd", default=None)
    parser.add_argument("--cache-dir", default=None, help="Also read/write the OCR cache in this directory")
    args = parser.parse_args()

    logger = console_logger("ocr_one")
    image = Path(args.image)
    recognizer = TesseractRecognizer(OCRSettings(language=args.lang, concurrency=1, tesseract_cmd=args.tesseract_cmd))

    if not args.cache_dir:
        print(recognizer.recognize(image))
        return

    records = build_records(image.parent, [image.name], logger)
    if not records:
        raise SystemExit(f"{image.name} does not follow the Screenshot_YYYYMMDD_HHMMSS naming convention")

    runner = BoundedRecognizer(recognizer, FileOCRCache(Path(args.cache_dir), logger), logger, max_workers=1)
    entry = runner.recognize_batch(records)[0]
    print("time:", entry.capture_time)
    print("cached:", entry.cached)
    print(entry.raw_text)


if __name__ == "__main__":
    main()
