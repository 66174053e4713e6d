from __future__ import annotations

import os
import unittest
from pathlib import Path
from unittest.mock import patch

from readinglog import config
from readinglog.config import get_settings

BASE_ENV = {
    "FORMATTER_BACKEND": "gemini",
    "GEMINI_API_KEY": "test-key",
    "SCREENSHOT_DIR": "shots",
    "OUTPUT_DIR": "notes",
    "OCR_CACHE_DIR": ".cache",
}


class SettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        get_settings.cache_clear()
        # Keep a developer's .env out of the picture.
        self._dotenv = patch.object(config, "load_dotenv", lambda **kwargs: False)
        self._dotenv.start()

    def tearDown(self) -> None:
        self._dotenv.stop()
        get_settings.cache_clear()

    def test_defaults(self) -> None:
        with patch.dict(os.environ, BASE_ENV, clear=True):
            settings = get_settings()

        self.assertEqual(settings.formatter_backend, "gemini")
        self.assertEqual(settings.on_date_failure, "continue")
        self.assertEqual(settings.ocr.concurrency, 6)
        self.assertEqual(settings.ocr.language, "eng")
        self.assertIsNone(settings.ocr.tesseract_cmd)
        self.assertEqual(settings.gemini.model, "gemini-2.5-flash")
        self.assertEqual(settings.gemini.max_retries, 0)
        self.assertEqual(settings.paths.screenshot_dir, Path("shots").resolve())
        self.assertEqual(settings.paths.cache_dir, Path(".cache").resolve())
        self.assertEqual(settings.logging.level, "INFO")

    def test_missing_gemini_key_is_fatal(self) -> None:
        env = {k: v for k, v in BASE_ENV.items() if k != "GEMINI_API_KEY"}
        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(RuntimeError) as ctx:
                get_settings()
        self.assertIn("GEMINI_API_KEY", str(ctx.exception))

    def test_local_backend_does_not_need_gemini_key(self) -> None:
        env = {k: v for k, v in BASE_ENV.items() if k != "GEMINI_API_KEY"}
        env.update(FORMATTER_BACKEND="local", LOCAL_LLM_BASE_URL="http://127.0.0.1:8080/v1/")
        with patch.dict(os.environ, env, clear=True):
            settings = get_settings()
        self.assertIsNone(settings.gemini)
        self.assertEqual(settings.local_llm.base_url, "http://127.0.0.1:8080/v1")

    def test_overrides(self) -> None:
        env = dict(BASE_ENV, OCR_CONCURRENCY="2", ON_DATE_FAILURE="ABORT", TESSERACT_CMD="/opt/tesseract", LOG_LEVEL="debug")
        with patch.dict(os.environ, env, clear=True):
            settings = get_settings()
        self.assertEqual(settings.ocr.concurrency, 2)
        self.assertEqual(settings.on_date_failure, "abort")
        self.assertEqual(settings.ocr.tesseract_cmd, "/opt/tesseract")
        self.assertEqual(settings.logging.level, "DEBUG")

    def test_invalid_policy_and_backend(self) -> None:
        for key, value in [("ON_DATE_FAILURE", "ignore"), ("FORMATTER_BACKEND", "openai")]:
            with self.subTest(key=key):
                get_settings.cache_clear()
                with patch.dict(os.environ, dict(BASE_ENV, **{key: value}), clear=True):
                    with self.assertRaises(RuntimeError):
                        get_settings()


if __name__ == "__main__":
    unittest.main()
