from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from config.settings import Settings


logger = logging.getLogger("whatsapp_relay.whatsapp")


def build_payload(to: str, text: str, reply_to: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "messaging_product": "whatsapp",
        "to": to,
        "text": {"body": text},
    }
    if reply_to:
        payload["context"] = {"message_id": reply_to}
    return payload


class WhatsAppNotifier:
    """Sends text replies through the WhatsApp Cloud API.

    Delivery is best effort: a failed send is logged and dropped, so the
    reply stays in the conversation history even though it never arrived.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def endpoint(self) -> str:
        base = self._settings.graph_base_url.rstrip("/")
        return f"{base}/{self._settings.graph_api_version}/{self._settings.phone_number_id}/messages"

    def send(self, to: str, text: str, reply_to: Optional[str] = None) -> bool:
        if not self._settings.whatsapp_token or not self._settings.phone_number_id:
            logger.error("WhatsApp send skipped for %s: WHATSAPP_TOKEN or PHONE_NUMBER_ID not set", to)
            return False

        headers = {
            "Authorization": f"Bearer {self._settings.whatsapp_token}",
            "Content-Type": "application/json",
        }
        try:
            with httpx.Client(timeout=self._settings.http_timeout_seconds, transport=self._transport) as client:
                response = client.post(self.endpoint, json=build_payload(to, text, reply_to), headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "WhatsApp send error for %s: HTTP %s %s",
                to,
                exc.response.status_code,
                exc.response.text[:500],
            )
            return False
        except httpx.HTTPError as exc:
            logger.error("WhatsApp send error for %s: %s", to, exc)
            return False

        logger.info("WhatsApp reply sent to %s (threaded=%s)", to, bool(reply_to))
        return True
