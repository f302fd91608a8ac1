"""Per-message orchestration for inbound WhatsApp webhook deliveries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from agent.agent import ReplyGenerator, ReplyResult
from agent.core.locks import KeyedLock
from agent.core.memory import ConversationStore
from agent.core.models import Role
from agent.extractor import ProfileExtractor
from agent.tools.whatsapp import WhatsAppNotifier
from config.settings import Settings


logger = logging.getLogger("whatsapp_relay.pipeline")


class WebhookText(BaseModel):
    body: Optional[str] = None


class WebhookMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sender: str = Field(..., alias="from")
    id: Optional[str] = None
    text: Optional[WebhookText] = None
    context: Optional[Dict[str, Any]] = None

    @field_validator("sender", "id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


@dataclass(frozen=True)
class InboundMessage:
    sender: str
    text: str
    message_id: Optional[str] = None
    reply_to: Optional[str] = None


def _first(value: Any) -> Any:
    if isinstance(value, list) and value:
        return value[0]
    return None


def first_message_of_entry(entry: Any) -> Optional[InboundMessage]:
    """Pick ``changes[0].value.messages[0]`` out of one webhook entry."""
    if not isinstance(entry, dict):
        return None
    change = _first(entry.get("changes"))
    if not isinstance(change, dict) or not isinstance(change.get("value"), dict):
        return None
    raw = _first(change["value"].get("messages"))
    if not isinstance(raw, dict):
        return None

    try:
        message = WebhookMessage.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Ignoring malformed webhook message: %s", exc)
        return None

    text = (message.text.body if message.text else None) or ""
    # A context marker means the user replied to an earlier message; thread
    # our answer against the inbound message itself.
    reply_to = message.id if message.context is not None else None
    return InboundMessage(sender=message.sender, text=text, message_id=message.id, reply_to=reply_to)


def first_message(payload: Any) -> Optional[InboundMessage]:
    """Pick ``entry[0].changes[0].value.messages[0]`` out of a webhook body."""
    if not isinstance(payload, dict):
        return None
    return first_message_of_entry(_first(payload.get("entry")))


class MessagePipeline:
    def __init__(
        self,
        settings: Settings,
        store: ConversationStore,
        generator: ReplyGenerator,
        notifier: WhatsAppNotifier,
        extractor: ProfileExtractor,
        locks: Optional[KeyedLock] = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._generator = generator
        self._notifier = notifier
        self._extractor = extractor
        self._locks = locks or KeyedLock()

    @property
    def store(self) -> ConversationStore:
        return self._store

    def verify(self, mode: Optional[str], token: Optional[str], challenge: Optional[str]) -> Optional[str]:
        """Answer the subscription handshake; ``None`` means reject."""
        if mode and token == self._settings.verify_token:
            logger.info("Webhook verified")
            return challenge or ""
        logger.warning("Webhook verification failed (mode=%s)", mode)
        return None

    def process(self, inbound: InboundMessage, prompt: Optional[str] = None) -> ReplyResult:
        """Store, answer, deliver, then profile one inbound message.

        Steps run strictly in order. Writes already made are kept when a
        later step raises.
        """
        with self._locks.hold(inbound.sender):
            logger.info("User message from %s: %s chars", inbound.sender, len(inbound.text))
            self._store.append(inbound.sender, Role.USER, inbound.text)

            result = self._generator.reply(inbound.sender, prompt)
            if not result.ok:
                logger.warning("Replying to %s with fallback text: %s", inbound.sender, result.cause)
            self._store.append(inbound.sender, Role.MODEL, result.text)

            self._notifier.send(inbound.sender, result.text, inbound.reply_to)
            self._extractor.run(inbound.sender)
            return result

    def handle_webhook(self, payload: Any) -> Optional[ReplyResult]:
        inbound = first_message(payload)
        if inbound is None:
            logger.info("Webhook delivery without a message; nothing to do")
            return None
        return self.process(inbound)

    def handle_entry(self, entry: Any, prompt: Optional[str] = None) -> Optional[ReplyResult]:
        inbound = first_message_of_entry(entry)
        if inbound is None:
            logger.info("Test entry without a message; nothing to do")
            return None
        return self.process(inbound, prompt)
