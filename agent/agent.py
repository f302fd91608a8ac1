from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from agent.core.memory import ConversationStore
from agent.core.models import Message, Role
from agent.core.prompt import build_instruction
from agent.gemini import CompletionError, Content, GeminiClient, first_candidate_text, text_turn


logger = logging.getLogger("whatsapp_relay.agent")

UNDERSTAND_FALLBACK = "Sorry, I couldn't understand."
UNAVAILABLE_FALLBACK = "Sorry, I couldn't reply right now."


@dataclass(frozen=True)
class ReplyResult:
    """Reply text plus, for fallback replies, why the model answer was not used."""

    text: str
    cause: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.cause is None

    @classmethod
    def success(cls, text: str) -> "ReplyResult":
        return cls(text=text)

    @classmethod
    def degraded(cls, fallback: str, cause: str) -> "ReplyResult":
        return cls(text=fallback, cause=cause)


def to_contents(history: List[Message], instruction: str) -> List[Content]:
    contents: List[Content] = [text_turn(Role.MODEL.value, instruction)]
    for message in history:
        role = Role.USER.value if message.role == Role.USER else Role.MODEL.value
        contents.append(text_turn(role, message.text))
    return contents


class ReplyGenerator:
    def __init__(self, store: ConversationStore, client: GeminiClient) -> None:
        self._store = store
        self._client = client

    def build_contents(self, user_id: str, prompt: Optional[str] = None) -> List[Content]:
        # The instruction turn is rebuilt on every call and never stored.
        history = self._store.read(user_id)
        return to_contents(history, build_instruction(prompt))

    def reply(self, user_id: str, prompt: Optional[str] = None) -> ReplyResult:
        contents = self.build_contents(user_id, prompt)
        try:
            data = self._client.generate(contents)
        except CompletionError as exc:
            logger.error("Gemini error for %s: %s", user_id, exc)
            return ReplyResult.degraded(UNAVAILABLE_FALLBACK, str(exc))

        text = first_candidate_text(data)
        if text is None:
            logger.warning("Gemini response for %s had no candidate text", user_id)
            return ReplyResult.degraded(UNDERSTAND_FALLBACK, "response missing candidates[0].content.parts[0].text")
        return ReplyResult.success(text)
