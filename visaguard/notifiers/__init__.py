"""
Notification adapters for expiry alerts.

Supports terminal and desktop notifications, email alerts, and
forwarding to an external messaging webhook.
"""

from visaguard.notifiers.base import Messenger, MultiNotifier, Notifier, NullMessenger
from visaguard.notifiers.console import ConsoleNotifier, DesktopNotifier
from visaguard.notifiers.email_notifier import EmailConfig, EmailNotifier
from visaguard.notifiers.messenger import WebhookConfig, WebhookMessenger

__all__ = [
    "Messenger",
    "MultiNotifier",
    "Notifier",
    "NullMessenger",
    "ConsoleNotifier",
    "DesktopNotifier",
    "EmailConfig",
    "EmailNotifier",
    "WebhookConfig",
    "WebhookMessenger",
]
