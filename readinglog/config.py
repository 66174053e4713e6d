from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

FAILURE_POLICIES = ("continue", "abort")
FORMATTER_BACKENDS = ("gemini", "local")


@dataclass(frozen=True)
class PathSettings:
    screenshot_dir: Path
    output_dir: Path
    cache_dir: Path


@dataclass(frozen=True)
class OCRSettings:
    language: str = "eng"
    concurrency: int = 6
    tesseract_cmd: str | None = None


@dataclass(frozen=True)
class GeminiSettings:
    api_key: str
    model: str
    max_tokens: int
    temperature: float
    max_retries: int = 0
    retry_buffer_seconds: float = 0.5
    request_spacing_seconds: float = 0.0


@dataclass(frozen=True)
class LocalLLMSettings:
    base_url: str
    api_key: str | None
    model: str
    max_tokens: int
    temperature: float
    timeout_seconds: float


@dataclass(frozen=True)
class LoggingSettings:
    directory: Path
    level: str = "INFO"


@dataclass(frozen=True)
class AppSettings:
    formatter_backend: str
    on_date_failure: str
    paths: PathSettings
    ocr: OCRSettings
    gemini: GeminiSettings | None
    local_llm: LocalLLMSettings
    logging: LoggingSettings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    dotenv_path = Path(__file__).resolve().parents[1] / ".env"
    load_dotenv(dotenv_path=dotenv_path, override=False, encoding="utf-8-sig")

    backend = os.getenv("FORMATTER_BACKEND", "gemini").strip().lower()
    if backend not in FORMATTER_BACKENDS:
        raise RuntimeError(f"FORMATTER_BACKEND must be one of {FORMATTER_BACKENDS}, got '{backend}'")

    on_date_failure = os.getenv("ON_DATE_FAILURE", "continue").strip().lower()
    if on_date_failure not in FAILURE_POLICIES:
        raise RuntimeError(f"ON_DATE_FAILURE must be one of {FAILURE_POLICIES}, got '{on_date_failure}'")

    paths = PathSettings(
        screenshot_dir=Path(os.getenv("SCREENSHOT_DIR", "screenshots")).resolve(),
        output_dir=Path(os.getenv("OUTPUT_DIR", "output")).resolve(),
        cache_dir=Path(os.getenv("OCR_CACHE_DIR", ".ocr_cache")).resolve(),
    )

    ocr = OCRSettings(
        language=os.getenv("OCR_LANGUAGE", "eng"),
        concurrency=max(1, int(os.getenv("OCR_CONCURRENCY", "6"))),
        tesseract_cmd=os.getenv("TESSERACT_CMD") or None,
    )

    # The Gemini credential is only mandatory when Gemini does the formatting.
    gemini = None
    if backend == "gemini":
        gemini = GeminiSettings(
            api_key=_require("GEMINI_API_KEY"),
            model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            max_tokens=int(os.getenv("GEMINI_MAX_TOKENS", "8192")),
            temperature=float(os.getenv("GEMINI_TEMPERATURE", "0.2")),
            max_retries=int(os.getenv("GEMINI_MAX_RETRIES", "0")),
            retry_buffer_seconds=float(os.getenv("GEMINI_RETRY_BUFFER_SECONDS", "0.5")),
            request_spacing_seconds=float(os.getenv("GEMINI_REQUEST_SPACING_SECONDS", "0")),
        )

    local_llm = LocalLLMSettings(
        base_url=os.getenv("LOCAL_LLM_BASE_URL", "http://localhost:1234/v1").rstrip("/"),
        api_key=os.getenv("LOCAL_LLM_API_KEY") or None,
        model=os.getenv("LOCAL_LLM_MODEL", "auto"),
        max_tokens=int(os.getenv("LOCAL_LLM_MAX_TOKENS", "4096")),
        temperature=float(os.getenv("LOCAL_LLM_TEMPERATURE", "0.2")),
        timeout_seconds=float(os.getenv("LOCAL_LLM_TIMEOUT_SECONDS", "120")),
    )

    logging_settings = LoggingSettings(
        directory=Path(os.getenv("LOG_DIR", "logs")).resolve(),
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )

    return AppSettings(
        formatter_backend=backend,
        on_date_failure=on_date_failure,
        paths=paths,
        ocr=ocr,
        gemini=gemini,
        local_llm=local_llm,
        logging=logging_settings,
    )


def _require(key: str) -> str:
    value = os.getenv(key)
    if not value:
        raise RuntimeError(f"Environment variable '{key}' is required but missing")
    return value
