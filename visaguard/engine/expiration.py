"""
Expiration engine: decides when a tracked document crosses an alert
threshold and fires each alert exactly once.

Three tiers, checked in order on every run and each gated by its own
one-shot flag on the record:

    early warning   7 < days <= 30   notified30
    urgent warning  0 < days <= 7    notified7
    expired         days <= 0        notifiedExpired

A fired tier sends one notification through the Notifier port and one
message through the Messenger port, then sets its flag. Tiers skipped
while the application was not running are not replayed.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Optional

from jinja2 import BaseLoader, Environment

from visaguard.engine.dates import (
    ExpiryStatus,
    days_left,
    format_date,
    parse_date,
    plural_days,
    status_of,
)
from visaguard.notifiers.base import Messenger, Notifier, NullMessenger
from visaguard.store.persons import PersonRepository
from visaguard.store.records import FIELD_KEYS, Person

logger = logging.getLogger(__name__)

TEST_NOTIFICATION = ("VisaGuard", "Notification system is working correctly!")


class AlertSeverity(Enum):
    INFO = "informational"
    URGENT = "urgent"
    CRITICAL = "critical"


@dataclass(frozen=True)
class AlertTier:
    """One alert threshold: a day range, the flag that gates it, and its wording."""

    name: str
    flag: str
    lower: Optional[int]  # exclusive; None means unbounded
    upper: int  # inclusive
    severity: AlertSeverity
    title: str
    template: str

    def matches(self, days: int) -> bool:
        if days > self.upper:
            return False
        return self.lower is None or days > self.lower


ALERT_TIERS: tuple[AlertTier, ...] = (
    AlertTier(
        name="early",
        flag="notified30",
        lower=7,
        upper=30,
        severity=AlertSeverity.INFO,
        title="Visa Expiration Warning",
        template="{{ name }}'s {{ document }} expires in {{ days_text }} ({{ expires }}).",
    ),
    AlertTier(
        name="urgent",
        flag="notified7",
        lower=0,
        upper=7,
        severity=AlertSeverity.URGENT,
        title="Visa Expiring Soon",
        template="URGENT: {{ name }}'s {{ document }} expires in {{ days_text }} ({{ expires }}).",
    ),
    AlertTier(
        name="expired",
        flag="notified_expired",
        lower=None,
        upper=0,
        severity=AlertSeverity.CRITICAL,
        title="Visa Expired",
        template=(
            "{{ name }}'s {{ document }} has expired ({{ expires }}"
            "{% if days < 0 %}, {{ days_text }} ago{% endif %})."
        ),
    ),
)


@dataclass
class Alert:
    """A single alert fired for a tracked person."""

    person_id: str
    name: str
    document_type: str
    tier: str
    severity: AlertSeverity
    title: str
    message: str
    days_remaining: int
    expiration_date: date

    def to_dict(self) -> dict[str, Any]:
        return {
            "person_id": self.person_id,
            "name": self.name,
            "document_type": self.document_type,
            "tier": self.tier,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "days_remaining": self.days_remaining,
            "expiration_date": self.expiration_date.isoformat(),
        }

    def format_text(self) -> str:
        severity_prefix = {
            AlertSeverity.INFO: "[INFO]",
            AlertSeverity.URGENT: "[URGENT]",
            AlertSeverity.CRITICAL: "[EXPIRED]",
        }
        return f"{severity_prefix[self.severity]} {self.title}: {self.message}"


def summarize(persons: list[Person], today: date) -> dict[str, int]:
    """Count persons by expiry status. Records without a usable date are 'untracked'."""
    counts = {status.value: 0 for status in ExpiryStatus}
    untracked = 0
    for person in persons:
        expires = parse_date(person.expiration_date)
        if expires is None:
            untracked += 1
            continue
        counts[status_of(days_left(expires, today)).value] += 1
    counts["total"] = len(persons)
    counts["untracked"] = untracked
    return counts


class ExpirationEngine:
    """
    Evaluate every tracked person against the alert tiers.

    Usage:
        engine = ExpirationEngine(repo, ConsoleNotifier())
        engine.check_expirations()            # once per day, no-op after that
        engine.check_expirations(force=True)  # explicit user request
    """

    def __init__(
        self,
        repository: PersonRepository,
        notifier: Notifier,
        messenger: Optional[Messenger] = None,
        clock: Optional[Callable[[], date]] = None,
        tiers: tuple[AlertTier, ...] = ALERT_TIERS,
    ) -> None:
        self.repository = repository
        self.notifier = notifier
        self.messenger = messenger or NullMessenger()
        self.clock = clock or date.today
        self.tiers = tiers
        self._lock = threading.RLock()
        self._jinja_env = Environment(loader=BaseLoader(), autoescape=False)
        self._templates = {
            tier.name: self._jinja_env.from_string(tier.template) for tier in tiers
        }

    def today(self) -> date:
        return self.clock()

    def check_expirations(self, force: bool = False) -> list[Alert]:
        """
        Run one check over all records and return the alerts that fired.

        Unless forced, a second check on the same calendar day does nothing.
        """
        with self._lock:
            today = self.today()
            today_str = today.isoformat()

            if not force and self.repository.get_last_check_date() == today_str:
                logger.debug("Expirations already checked on %s, skipping", today_str)
                return []

            persons = self.repository.list_persons()
            alerts: list[Alert] = []
            flag_changes: dict[str, dict[str, bool]] = {}

            for person in persons:
                before = {tier.flag: getattr(person, tier.flag) for tier in self.tiers}
                alerts.extend(self._evaluate(person, today))
                changed = {
                    FIELD_KEYS[flag]: True
                    for flag, was_set in before.items()
                    if getattr(person, flag) and not was_set
                }
                if changed:
                    flag_changes[person.id] = changed

            # Re-reads the stored list so records added or deleted meanwhile survive.
            self.repository.mark_notified(flag_changes)
            self.repository.set_last_check_date(today_str)

            logger.info(
                "Expiration check on %s%s: %d record(s), %d alert(s)",
                today_str, " (forced)" if force else "", len(persons), len(alerts),
            )
            return alerts

    def stats(self) -> dict[str, int]:
        return summarize(self.repository.list_persons(), self.today())

    def send_test_notification(self) -> None:
        title, body = TEST_NOTIFICATION
        self.notifier.show(title, body)

    # ---- internal helpers ----

    def _evaluate(self, person: Person, today: date) -> list[Alert]:
        expires = parse_date(person.expiration_date)
        if expires is None:
            return []

        days = days_left(expires, today)
        fired: list[Alert] = []
        last_fired = -1

        # No early return: every tier is checked on every run.
        for index, tier in enumerate(self.tiers):
            if not tier.matches(days) or getattr(person, tier.flag):
                continue
            alert = self._build_alert(tier, person, days, expires)
            self._deliver(alert, person)
            setattr(person, tier.flag, True)
            fired.append(alert)
            last_fired = index

        # Earlier tiers jumped over are marked passed without notifying.
        for tier in self.tiers[:max(last_fired, 0)]:
            if not getattr(person, tier.flag):
                setattr(person, tier.flag, True)

        return fired

    def _build_alert(self, tier: AlertTier, person: Person, days: int, expires: date) -> Alert:
        message = self._templates[tier.name].render(
            name=person.full_name,
            document=person.document_label,
            days=days,
            days_text=plural_days(days),
            expires=format_date(expires),
        )
        return Alert(
            person_id=person.id,
            name=person.full_name,
            document_type=person.document_label,
            tier=tier.name,
            severity=tier.severity,
            title=tier.title,
            message=message,
            days_remaining=days,
            expiration_date=expires,
        )

    def _deliver(self, alert: Alert, person: Person) -> None:
        logger.info("%s", alert.format_text())
        try:
            self.notifier.show(alert.title, alert.message)
        except Exception:
            logger.exception("Notifier failed for person %s", person.id)
        try:
            self.messenger.send(person, alert.message)
        except Exception:
            logger.exception("Messenger failed for person %s", person.id)
