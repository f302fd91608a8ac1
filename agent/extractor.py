from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from agent.core.memory import ConversationStore
from agent.core.models import ProfileRecord, Role, utcnow
from agent.core.prompt import build_extraction_prompt
from agent.gemini import CompletionError, GeminiClient, first_candidate_text, text_turn


logger = logging.getLogger("whatsapp_relay.extractor")


def slice_braces(text: str) -> str:
    """Cut ``text`` down to the span from the first ``{`` to the last ``}``.

    Models often wrap the JSON they were asked for in prose or code fences.
    Text without such a span is returned unchanged.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return text
    return text[start: end + 1]


def extract_json_object(text: Optional[str]) -> Dict[str, Any]:
    """Parse the brace-delimited JSON object out of ``text``; ``{}`` on failure."""
    if not text:
        return {}
    segment = slice_braces(text)
    try:
        parsed = json.loads(segment)
    except json.JSONDecodeError as exc:
        logger.error("JSON parse error: %s", exc)
        return {}
    if not isinstance(parsed, dict):
        logger.error("JSON parse error: expected an object, got %s", type(parsed).__name__)
        return {}
    return parsed


class ProfileExtractor:
    def __init__(
        self,
        store: ConversationStore,
        client: GeminiClient,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._client = client
        self._clock = clock

    def build_prompt(self, user_id: str) -> Optional[str]:
        history = self._store.read(user_id)
        if not history:
            return None
        user_text = "\n".join(m.text for m in history if m.role == Role.USER)
        return build_extraction_prompt(phone=user_id, messages=user_text)

    def run(self, user_id: str) -> Optional[ProfileRecord]:
        """Extract a fresh profile for ``user_id`` and replace the stored one.

        Returns the stored profile, or ``None`` when nothing was written
        (no conversation yet, the completion call failed, or the profile
        write failed). A reply that cannot be parsed still stores an empty,
        freshly stamped profile.
        """
        prompt = self.build_prompt(user_id)
        if prompt is None:
            return None

        try:
            data = self._client.generate([text_turn(Role.USER.value, prompt)])
        except CompletionError as exc:
            logger.error("Gemini extract error for %s: %s", user_id, exc)
            return None

        raw = first_candidate_text(data) or "{}"
        extracted = extract_json_object(raw)
        profile = ProfileRecord.from_extracted(extracted, extracted_at=self._clock())
        try:
            self._store.upsert_profile(user_id, profile)
        except Exception as exc:
            logger.error("Gemini extract error for %s: profile write failed: %s", user_id, exc)
            return None
        logger.info(
            "Profile updated for %s: %s fields extracted",
            user_id,
            len([k for k in extracted if k != "phone"]),
        )
        return profile
