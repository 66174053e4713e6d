from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import transcriber
from readinglog import config
from readinglog.formatting import ConnectivityError


class FakeTesseract:
    def __init__(self, settings):
        self.settings = settings

    def recognize(self, image_path: Path) -> str:
        return f"raw {image_path.name}"


class TranscriberMainTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.shots = self.root / "screenshots"
        self.shots.mkdir()
        self.output = self.root / "output"
        self.env = {
            "GEMINI_API_KEY": "test-key",
            "SCREENSHOT_DIR": str(self.shots),
            "OUTPUT_DIR": str(self.output),
            "OCR_CACHE_DIR": str(self.root / ".ocr_cache"),
            "LOG_DIR": str(self.root / "logs"),
        }
        config.get_settings.cache_clear()
        self._dotenv = patch.object(config, "load_dotenv", lambda **kwargs: False)
        self._dotenv.start()

    def tearDown(self) -> None:
        self._dotenv.stop()
        config.get_settings.cache_clear()
        self._tmp.cleanup()

    def _run(self, *argv: str) -> None:
        with patch("sys.argv", ["transcriber.py", *argv]):
            transcriber.main()

    def test_missing_api_key_exits_before_touching_files(self) -> None:
        env = {k: v for k, v in self.env.items() if k != "GEMINI_API_KEY"}
        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(SystemExit) as ctx:
                self._run()
        self.assertEqual(ctx.exception.code, 1)
        self.assertFalse(self.output.exists())

    def test_failed_connectivity_check_exits(self) -> None:
        client = MagicMock()
        client.verify_connectivity.side_effect = ConnectivityError("API key not valid")
        with patch.dict(os.environ, self.env, clear=True), patch.object(transcriber, "create_formatter_client", return_value=client):
            with self.assertRaises(SystemExit) as ctx:
                self._run()
        self.assertEqual(ctx.exception.code, 1)
        self.assertFalse(self.output.exists())
        self.assertFalse((self.root / ".ocr_cache").exists())

    def test_full_run_writes_notes(self) -> None:
        (self.shots / "Screenshot_20251202_190000_X.jpg").write_bytes(b"img")
        (self.shots / "IMG_1234.jpg").write_bytes(b"img")
        client = MagicMock()
        client.generate.return_value = "**19:00:00**\nFormatted."

        with patch.dict(os.environ, self.env, clear=True), patch.object(
            transcriber, "create_formatter_client", return_value=client
        ), patch("readinglog.pipeline.TesseractRecognizer", FakeTesseract):
            self._run("--concurrency", "2")

        client.verify_connectivity.assert_called_once_with()
        note = (self.output / "2025-12-02.md").read_text(encoding="utf-8")
        self.assertEqual(note, "# Reading – [[2025-12-02]]\n\n**19:00:00**\nFormatted.")
        self.assertTrue((self.root / ".ocr_cache" / "Screenshot_20251202_190000_X.jpg.json").exists())

    def test_failed_date_gives_non_zero_exit(self) -> None:
        (self.shots / "Screenshot_20251202_190000_X.jpg").write_bytes(b"img")
        client = MagicMock()
        client.generate.side_effect = RuntimeError("500 internal")

        with patch.dict(os.environ, self.env, clear=True), patch.object(
            transcriber, "create_formatter_client", return_value=client
        ), patch("readinglog.pipeline.TesseractRecognizer", FakeTesseract):
            with self.assertRaises(SystemExit) as ctx:
                self._run()
        self.assertEqual(ctx.exception.code, 1)
        self.assertFalse((self.output / "2025-12-02.md").exists())


if __name__ == "__main__":
    unittest.main()
