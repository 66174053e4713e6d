from __future__ import annotations

from typing import Any

import requests

from .config import LocalLLMSettings
from .formatting import ConnectivityError, FormattingError

SYSTEM_PROMPT = "You clean up OCR text from e-reader screenshots and return only the formatted passages."


class LocalLLMFormatter:
    """Formatter backed by an OpenAI-compatible HTTP API (e.g., LM Studio).

    Expected base URL: http://localhost:1234/v1
    Endpoint used:     POST {base_url}/chat/completions
    """

    def __init__(self, settings: LocalLLMSettings, log, session: requests.Session | None = None):
        self._settings = settings
        self._logger = log
        self._session = session or requests.Session()
        self._model = self._resolve_model(settings)

    def generate(self, prompt: str) -> str:
        payload: dict[str, Any] = {
            "model": self._model,
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
            "stream": False,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        return self._chat(payload)

    def verify_connectivity(self) -> None:
        self._logger.info("Verifying local LLM connectivity (%s)...", self._settings.base_url)
        payload = {
            "model": self._model,
            "temperature": 0.0,
            "max_tokens": 16,
            "stream": False,
            "messages": [{"role": "user", "content": "ping"}],
        }
        try:
            text = self._chat(payload)
        except FormattingError as exc:
            raise ConnectivityError(str(exc)) from exc
        if not text.strip():
            raise ConnectivityError("Local LLM test call returned no content")
        self._logger.info("Local LLM connectivity confirmed (model=%s)", self._model)

    def _chat(self, payload: dict[str, Any]) -> str:
        url = f"{self._settings.base_url}/chat/completions"
        try:
            res = self._session.post(url, headers=self._headers(), json=payload, timeout=self._settings.timeout_seconds)
        except requests.RequestException as exc:
            raise FormattingError(f"Local LLM request failed: {exc}") from exc

        if res.status_code >= 400:
            raise FormattingError(f"Local LLM HTTP {res.status_code}: {res.text}")

        try:
            data = res.json()
        except ValueError as exc:
            raise FormattingError(f"Local LLM returned non-JSON response: {res.text[:200]}") from exc
        if not isinstance(data, dict):
            raise FormattingError(f"Local LLM returned unexpected payload: {type(data).__name__}")
        text = (((data.get("choices") or [{}])[0]).get("message") or {}).get("content")

        if isinstance(text, list):
            # Some servers return structured content; join the text chunks.
            parts = [str(item.get("text") or "") for item in text if isinstance(item, dict) and item.get("type") == "text"]
            text = "\n".join(p for p in parts if p)

        return text if isinstance(text, str) else ""

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"
        return headers

    def _resolve_model(self, settings: LocalLLMSettings) -> str:
        configured = (settings.model or "").strip()
        if configured and configured.lower() not in {"local-model", "auto"}:
            return configured

        # Auto-detect via the OpenAI-compatible models endpoint.
        try:
            res = self._session.get(f"{settings.base_url}/models", headers=self._headers(), timeout=min(10.0, settings.timeout_seconds))
            if res.status_code >= 400:
                self._logger.warning("Local LLM models discovery failed (HTTP %s)", res.status_code)
                return configured or "local-model"

            models = res.json().get("data")
            if isinstance(models, list) and models:
                first = models[0]
                if isinstance(first, dict) and first.get("id"):
                    model_id = str(first["id"])
                    self._logger.info("Auto-selected LOCAL_LLM_MODEL=%s", model_id)
                    return model_id
        except (requests.RequestException, ValueError) as exc:
            self._logger.warning("Local LLM models discovery failed: %s", exc)

        return configured or "local-model"
