"""
Notification ports used by the expiration engine.

A Notifier shows a titled message to the user. A Messenger forwards the
alert text to an external channel for the person concerned. Both are
fire-and-forget: the engine never inspects their return values.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from visaguard.store.records import Person

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Deliver a titled message to the user."""

    @abstractmethod
    def show(self, title: str, body: str) -> None:
        ...


class Messenger(ABC):
    """Forward an alert to an external channel (SMS, chat, webhook)."""

    @abstractmethod
    def send(self, person: Person, message: str) -> Any:
        ...


class NullMessenger(Messenger):
    """Default external channel: records the call and sends nothing."""

    def send(self, person: Person, message: str) -> None:
        logger.debug(
            "No messenger configured; not forwarding alert for %s (%s)",
            person.id, person.phone_number or "no phone",
        )


class MultiNotifier(Notifier):
    """Fan a notification out to several notifiers; one failing does not stop the rest."""

    def __init__(self, notifiers: list[Notifier]) -> None:
        self.notifiers = list(notifiers)

    def show(self, title: str, body: str) -> None:
        for notifier in self.notifiers:
            try:
                notifier.show(title, body)
            except Exception:
                logger.exception("%s failed to show '%s'", type(notifier).__name__, title)
