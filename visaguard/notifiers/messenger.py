"""
Webhook messenger: forwards alerts to an external messaging service.

The receiving service (an SMS or chat gateway) gets one JSON POST per
alert with the person's name, phone number and the alert text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from visaguard.notifiers.base import Messenger
from visaguard.store.records import Person

logger = logging.getLogger(__name__)


@dataclass
class WebhookConfig:
    """Configuration for the outbound webhook."""

    url: str
    timeout: float = 10.0
    token: str = ""
    headers: dict[str, str] = field(default_factory=dict)


class WebhookMessenger(Messenger):
    """
    POST alerts to a webhook.

    Usage:
        with WebhookMessenger(WebhookConfig(url="https://hooks.example.org/visa")) as m:
            m.send(person, "Ana Silva's Visa has expired (Oct 17, 2026).")
    """

    def __init__(self, config: WebhookConfig, client: Optional[httpx.Client] = None) -> None:
        self.config = config
        headers = {"Content-Type": "application/json", **config.headers}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = client or httpx.Client(headers=headers, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    @staticmethod
    def build_payload(person: Person, message: str) -> dict[str, Any]:
        return {
            "person_id": person.id,
            "name": person.full_name,
            "phone_number": person.phone_number,
            "document_type": person.document_label,
            "expiration_date": person.expiration_date,
            "message": message,
        }

    def send(self, person: Person, message: str) -> dict[str, Any]:
        if not person.phone_number:
            logger.debug("Person %s has no phone number; sending webhook anyway", person.id)
        resp = self._client.post(self.config.url, json=self.build_payload(person, message))
        resp.raise_for_status()
        logger.info("Forwarded alert for %s to %s", person.id, self.config.url)
        try:
            return resp.json()
        except ValueError:
            return {"status": resp.status_code}
