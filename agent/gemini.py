from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from config.settings import Settings


logger = logging.getLogger("whatsapp_relay.gemini")

Content = Dict[str, Any]


class CompletionError(RuntimeError):
    """The completion endpoint could not be reached or answered with an error."""


def text_turn(role: Optional[str], text: str) -> Content:
    turn: Content = {"parts": [{"text": text}]}
    if role:
        turn["role"] = role
    return turn


def first_candidate_text(data: Any) -> Optional[str]:
    """Read ``candidates[0].content.parts[0].text``; ``None`` if any step is missing."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(text, str) or not text:
        return None
    return text


class GeminiClient:
    def __init__(
        self,
        settings: Settings,
        model: str,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._model = model
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    @property
    def endpoint(self) -> str:
        base = self._settings.gemini_base_url.rstrip("/")
        return f"{base}/models/{self._model}:generateContent"

    def generate(self, contents: List[Content]) -> Any:
        if not self._settings.gemini_api_key:
            raise CompletionError("GEMINI_API_KEY not set. Please configure it in environment or .env")

        logger.info("Calling %s with %s turns", self._model, len(contents))
        try:
            with httpx.Client(timeout=self._settings.http_timeout_seconds, transport=self._transport) as client:
                response = client.post(
                    self.endpoint,
                    params={"key": self._settings.gemini_api_key},
                    json={"contents": contents},
                )
                response.raise_for_status()
                try:
                    return response.json()
                except ValueError:
                    logger.warning("Gemini API returned a non-JSON body: %s", response.text[:200])
                    return None
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:500]
            raise CompletionError(f"Gemini API HTTP {exc.response.status_code}: {body}") from exc
        except httpx.HTTPError as exc:
            raise CompletionError(f"Gemini API call failed: {exc}") from exc
