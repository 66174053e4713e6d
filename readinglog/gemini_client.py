from __future__ import annotations

import random
import re
import time
from typing import Any

import google.generativeai as genai

from .config import GeminiSettings
from .formatting import ConnectivityError

PING_PROMPT = "Hello, Gemini!"


class GeminiFormatter:
    def __init__(self, settings: GeminiSettings, log, model=None):
        self._settings = settings
        self._logger = log
        if model is None:
            genai.configure(api_key=settings.api_key)
            model = genai.GenerativeModel(settings.model)
        self._model = model

    def generate(self, prompt: str) -> str:
        generation_config = {
            "max_output_tokens": self._settings.max_tokens,
            "temperature": self._settings.temperature,
        }

        # Optional spacing to stay under per-minute quotas.
        if self._settings.request_spacing_seconds > 0:
            time.sleep(self._settings.request_spacing_seconds)

        response = self._generate_with_retry(
            prompt=prompt,
            generation_config=generation_config,
            max_retries=self._settings.max_retries,
            retry_buffer_seconds=self._settings.retry_buffer_seconds,
        )
        return response.text or ""

    def verify_connectivity(self) -> None:
        self._logger.info("Verifying Gemini API key and connectivity...")
        try:
            response = self._model.generate_content(PING_PROMPT)
            text = response.text or ""
        except Exception as exc:
            raise ConnectivityError(f"Gemini connectivity check failed: {exc}") from exc
        if not text.strip():
            raise ConnectivityError("Gemini test call returned no content. Check your API key and network.")
        self._logger.info("Gemini API key and connectivity confirmed (%s)", self._settings.model)

    def _generate_with_retry(
        self,
        *,
        prompt: str,
        generation_config: dict[str, Any],
        max_retries: int,
        retry_buffer_seconds: float,
    ):
        for attempt in range(max_retries + 1):
            try:
                return self._model.generate_content(prompt, generation_config=generation_config)
            except Exception as exc:
                if not self._is_rate_limited(exc) or attempt >= max_retries:
                    raise

                wait_seconds = self._compute_retry_wait_seconds(exc, attempt)
                wait_seconds = max(0.0, wait_seconds + max(0.0, retry_buffer_seconds))
                self._logger.warning(
                    "Gemini rate limit hit (attempt %s/%s). Waiting %.1fs then retrying...",
                    attempt + 1,
                    max_retries + 1,
                    wait_seconds,
                )
                time.sleep(wait_seconds)

        raise RuntimeError("Gemini generate_content failed unexpectedly")

    def _is_rate_limited(self, exc: Exception) -> bool:
        # google.api_core.exceptions.ResourceExhausted maps to HTTP 429.
        try:
            from google.api_core.exceptions import ResourceExhausted
        except ImportError:
            ResourceExhausted = None

        if ResourceExhausted is not None and isinstance(exc, ResourceExhausted):
            return True

        message = str(exc)
        return "429" in message or "Quota exceeded" in message or "rate limit" in message.lower()

    def _compute_retry_wait_seconds(self, exc: Exception, attempt: int) -> float:
        # Prefer the server-suggested delay.
        match = re.search(r"Please retry in\s+([0-9]+(?:\.[0-9]+)?)s", str(exc))
        if match:
            return float(match.group(1))

        base = min(60.0, (2.0 ** attempt))
        return base + random.uniform(0.0, 1.0)
