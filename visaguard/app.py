"""
Application controller: owns the store, engine, notifiers and the
check scheduler for one VisaGuard process.

Checks are triggered three ways:
    startup    once, shortly after the process starts   (force=False)
    recurring  every check interval, 24 hours default   (force=False)
    request    explicit user request or SIGUSR1          (force=True)

All triggers run on the thread that calls ``run_forever``, one at a time.
"""

from __future__ import annotations

import logging
import signal
import threading
import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from visaguard.config import AppConfig
from visaguard.engine.expiration import Alert, ExpirationEngine
from visaguard.notifiers.base import Messenger, MultiNotifier, Notifier, NullMessenger
from visaguard.notifiers.console import ConsoleNotifier, DesktopNotifier
from visaguard.notifiers.email_notifier import EmailNotifier
from visaguard.notifiers.messenger import WebhookConfig, WebhookMessenger
from visaguard.store.persons import PersonRepository
from visaguard.store.record_store import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class ScheduledCheck:
    """A check trigger with its next due time on the monotonic clock."""

    name: str
    due: float
    force: bool = False
    interval: Optional[float] = None  # None means run once


class CheckScheduler:
    """
    Run expiration checks on a timetable, single-threaded.

    Usage:
        scheduler = CheckScheduler(engine.check_expirations)
        scheduler.schedule("startup", delay=1.5)
        scheduler.schedule("recurring", delay=86400, interval=86400)
        scheduler.run_forever()   # until stop() is called
    """

    def __init__(
        self,
        check: Callable[[bool], list[Alert]],
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.check = check
        self.monotonic = monotonic
        self.jobs: list[ScheduledCheck] = []
        self._wake = threading.Event()
        self._stopping = False
        self._forced_pending = False

    def schedule(
        self,
        name: str,
        delay: float,
        interval: Optional[float] = None,
        force: bool = False,
    ) -> ScheduledCheck:
        job = ScheduledCheck(name=name, due=self.monotonic() + delay, force=force, interval=interval)
        self.jobs.append(job)
        return job

    def next_due(self) -> Optional[float]:
        if not self.jobs:
            return None
        return min(job.due for job in self.jobs)

    def request_check(self) -> None:
        """Ask for a forced check; the running loop picks it up immediately."""
        self._forced_pending = True
        self._wake.set()

    def stop(self) -> None:
        self._stopping = True
        self._wake.set()

    @property
    def stopping(self) -> bool:
        return self._stopping

    def run_pending(self, now: Optional[float] = None) -> list[Alert]:
        """Run the pending forced request and every job that is due, in due order."""
        now = self.monotonic() if now is None else now
        alerts: list[Alert] = []

        if self._forced_pending:
            self._forced_pending = False
            alerts.extend(self._run("request", force=True))

        for job in sorted(self.jobs, key=lambda j: j.due):
            if job.due > now:
                continue
            alerts.extend(self._run(job.name, force=job.force))
            if job.interval is None:
                self.jobs.remove(job)
            else:
                # Skip missed periods rather than replaying them.
                while job.due <= now:
                    job.due += job.interval
        return alerts

    def run_forever(self) -> None:
        logger.info("Scheduler started with %d trigger(s)", len(self.jobs))
        while not self._stopping:
            due = self.next_due()
            timeout = None if due is None else max(0.0, due - self.monotonic())
            self._wake.wait(timeout)
            self._wake.clear()
            if self._stopping:
                break
            self.run_pending()
        logger.info("Scheduler stopped")

    def _run(self, name: str, force: bool) -> list[Alert]:
        logger.debug("Running %s check (force=%s)", name, force)
        try:
            return self.check(force)
        except Exception:
            logger.exception("%s check failed", name.capitalize())
            return []


def _single_notifier(name: str, config: AppConfig) -> Notifier:
    if name == "console":
        return ConsoleNotifier()
    if name == "email":
        return EmailNotifier(config.email)
    return DesktopNotifier()


def build_notifier(config: AppConfig) -> Notifier:
    """Build the configured notifier; several names fan out through a MultiNotifier."""
    notifiers = [_single_notifier(name, config) for name in config.notifier_names]
    if len(notifiers) == 1:
        return notifiers[0]
    return MultiNotifier(notifiers)


def build_messenger(config: AppConfig) -> Messenger:
    if config.webhook_url:
        return WebhookMessenger(
            WebhookConfig(
                url=config.webhook_url,
                timeout=config.webhook_timeout,
                token=config.webhook_token,
            )
        )
    return NullMessenger()


class Application:
    """
    Wire VisaGuard together for one process and tear it down on exit.

    Usage:
        with Application(load_config()) as app:
            app.run()
    """

    def __init__(
        self,
        config: AppConfig,
        notifier: Optional[Notifier] = None,
        messenger: Optional[Messenger] = None,
        clock: Optional[Callable[[], date]] = None,
    ) -> None:
        self.config = config
        self.store = RecordStore(config.db_url)
        self.repository = PersonRepository(self.store)
        self.notifier = notifier or build_notifier(config)
        self.messenger = messenger or build_messenger(config)
        self.engine = ExpirationEngine(
            self.repository, self.notifier, self.messenger, clock=clock
        )
        self.scheduler = CheckScheduler(self.engine.check_expirations)
        self._previous_handlers: dict[int, object] = {}

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def request_check(self) -> list[Alert]:
        """Explicit user-initiated check; bypasses the once-per-day guard."""
        return self.engine.check_expirations(force=True)

    def run(self, install_signals: bool = True) -> None:
        """Block running startup and recurring checks until a shutdown signal."""
        interval = self.config.check_interval_seconds
        self.scheduler.schedule("startup", delay=self.config.startup_delay_seconds)
        self.scheduler.schedule("recurring", delay=interval, interval=interval)
        if install_signals:
            self._install_signal_handlers()
        try:
            self.scheduler.run_forever()
        finally:
            if install_signals:
                self._restore_signal_handlers()

    def shutdown(self) -> None:
        self.scheduler.stop()

    def close(self) -> None:
        self.scheduler.stop()
        close = getattr(self.messenger, "close", None)
        if callable(close):
            close()
        self.store.close()

    # ---- signals ----

    def _install_signal_handlers(self) -> None:
        def _stop(signum, _frame):
            logger.info("Received signal %d, shutting down", signum)
            self.shutdown()

        def _check_now(_signum, _frame):
            logger.info("Check requested via signal")
            self.scheduler.request_check()

        handlers = {signal.SIGINT: _stop, signal.SIGTERM: _stop}
        if hasattr(signal, "SIGUSR1"):
            handlers[signal.SIGUSR1] = _check_now
        for signum, handler in handlers.items():
            self._previous_handlers[signum] = signal.signal(signum, handler)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()
