"""
Application configuration.

Settings come from built-in defaults, an optional JSON config file, and
``VISAGUARD_*`` environment variables, in that order of precedence (later
wins). SMTP and webhook secrets are read from the environment variables
named in the config file, never from the file itself.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from visaguard.notifiers.email_notifier import EmailConfig

NOTIFIER_CHOICES = ("console", "desktop", "email")

ENV_PREFIX = "VISAGUARD_"


@dataclass
class AppConfig:
    """Runtime settings for VisaGuard.

    Attributes:
        db_url: SQLAlchemy URL of the record store.
        startup_delay_seconds: Delay before the startup check in ``run`` mode.
        check_interval_hours: Period of the recurring check.
        notifier: Which notifiers deliver alerts: one of console, desktop, email,
            or several joined by commas (e.g. "desktop,email").
        email: SMTP settings, used when notifier is "email".
        webhook_url: When set, alerts are also forwarded to this webhook.
        webhook_token: Bearer token for the webhook (from the environment).
        webhook_timeout: Webhook request timeout in seconds.
        log_level: Root logging level name.
    """

    db_url: str = "sqlite:///visaguard.db"
    startup_delay_seconds: float = 1.5
    check_interval_hours: float = 24.0
    notifier: str = "desktop"
    email: EmailConfig = field(default_factory=EmailConfig)
    webhook_url: str = ""
    webhook_token: str = ""
    webhook_timeout: float = 10.0
    log_level: str = "INFO"

    @property
    def check_interval_seconds(self) -> float:
        return self.check_interval_hours * 3600

    @property
    def notifier_names(self) -> list[str]:
        return [name.strip().lower() for name in self.notifier.split(",") if name.strip()]

    def validate(self) -> None:
        names = self.notifier_names
        unknown = [name for name in names if name not in NOTIFIER_CHOICES]
        if not names or unknown:
            raise ValueError(
                f"Unknown notifier '{self.notifier}'. Options: {', '.join(NOTIFIER_CHOICES)}"
            )
        if self.check_interval_hours <= 0:
            raise ValueError("check_interval_hours must be positive")
        if self.startup_delay_seconds < 0:
            raise ValueError("startup_delay_seconds cannot be negative")


def _parse_email(entry: dict[str, Any], env: Mapping[str, str]) -> EmailConfig:
    password_env = entry.get("password_env", "")
    password = env.get(password_env, "") if password_env else ""
    recipients = entry.get("recipients", [])
    if isinstance(recipients, str):
        recipients = [r.strip() for r in recipients.split(",") if r.strip()]
    return EmailConfig(
        smtp_host=entry.get("smtp_host", "smtp.gmail.com"),
        smtp_port=int(entry.get("smtp_port", 587)),
        use_tls=entry.get("use_tls", True),
        username=entry.get("username", ""),
        password=password,
        from_address=entry.get("from_address", entry.get("username", "")),
        from_name=entry.get("from_name", "VisaGuard"),
        recipients=recipients,
        subject_prefix=entry.get("subject_prefix", "[VisaGuard]"),
    )


def load_config(
    config_path: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """Build an AppConfig from defaults, an optional JSON file, and the environment.

    Args:
        config_path: Path to a JSON config file. When None, only defaults
            and environment variables are used.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        A validated AppConfig.

    Raises:
        FileNotFoundError: If config_path is given but does not exist.
        json.JSONDecodeError: If the JSON is malformed.
        ValueError: If a setting is out of range or unknown.
    """
    env = os.environ if environ is None else environ
    raw: dict[str, Any] = {}

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)

    webhook = raw.get("webhook", {})
    token_env = webhook.get("token_env", "")

    config = AppConfig(
        db_url=raw.get("db_url", AppConfig.db_url),
        startup_delay_seconds=float(raw.get("startup_delay_seconds", AppConfig.startup_delay_seconds)),
        check_interval_hours=float(raw.get("check_interval_hours", AppConfig.check_interval_hours)),
        notifier=raw.get("notifier", AppConfig.notifier),
        email=_parse_email(raw.get("email", {}), env),
        webhook_url=webhook.get("url", ""),
        webhook_token=env.get(token_env, "") if token_env else "",
        webhook_timeout=float(webhook.get("timeout", AppConfig.webhook_timeout)),
        log_level=raw.get("log_level", AppConfig.log_level),
    )

    # --- Environment overrides ---
    if env.get(f"{ENV_PREFIX}DB_URL"):
        config.db_url = env[f"{ENV_PREFIX}DB_URL"]
    if env.get(f"{ENV_PREFIX}NOTIFIER"):
        config.notifier = env[f"{ENV_PREFIX}NOTIFIER"].lower()
    if env.get(f"{ENV_PREFIX}WEBHOOK_URL"):
        config.webhook_url = env[f"{ENV_PREFIX}WEBHOOK_URL"]
    if env.get(f"{ENV_PREFIX}LOG_LEVEL"):
        config.log_level = env[f"{ENV_PREFIX}LOG_LEVEL"].upper()

    config.validate()
    return config
