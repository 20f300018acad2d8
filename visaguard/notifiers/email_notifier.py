"""
Email notifier: sends expiry alerts via SMTP.

Each notification becomes a multipart (plain text + HTML) message to the
configured recipients.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from jinja2 import BaseLoader, Environment

from visaguard.notifiers.base import Notifier

logger = logging.getLogger(__name__)

HTML_TEMPLATE = """\
<!DOCTYPE html><html><head><meta charset="utf-8">
<style>body{font-family:Helvetica,Arial,sans-serif;font-size:12pt;line-height:1.5;\
max-width:600px;margin:30px auto;}</style></head>
<body><h2>{{ title }}</h2>
{% for para in paragraphs %}<p>{{ para }}</p>
{% endfor %}<p><small>Sent by VisaGuard.</small></p></body></html>
"""


@dataclass
class EmailConfig:
    """SMTP configuration for alert emails."""

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    use_tls: bool = True
    username: str = ""
    password: str = ""
    from_address: str = ""
    from_name: str = "VisaGuard"
    recipients: list[str] = field(default_factory=list)
    subject_prefix: str = "[VisaGuard]"

    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_address and self.recipients)


@dataclass
class EmailMessage:
    """A fully formed alert email ready to send."""

    to: list[str]
    subject: str
    body_text: str
    body_html: str = ""
    from_address: str = ""
    from_name: str = ""

    def to_mime(self) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["To"] = ", ".join(self.to)
        msg["From"] = (
            f"{self.from_name} <{self.from_address}>"
            if self.from_name
            else self.from_address
        )
        msg["Subject"] = self.subject
        msg.attach(MIMEText(self.body_text, "plain", "utf-8"))
        if self.body_html:
            msg.attach(MIMEText(self.body_html, "html", "utf-8"))
        return msg


class EmailNotifier(Notifier):
    """
    Send each notification as an email.

    Usage:
        config = EmailConfig(username="...", password="...",
                             from_address="alerts@example.org",
                             recipients=["me@example.org"])
        EmailNotifier(config).show("Visa Expired", "Ana Silva's Visa has expired.")
    """

    def __init__(self, config: EmailConfig) -> None:
        if not config.is_configured():
            raise ValueError(
                "Email notifier needs smtp_host, from_address and at least one recipient."
            )
        self.config = config
        self._jinja_env = Environment(loader=BaseLoader(), autoescape=True)
        self._html_template = self._jinja_env.from_string(HTML_TEMPLATE)

    def format_message(self, title: str, body: str) -> EmailMessage:
        return EmailMessage(
            to=list(self.config.recipients),
            subject=f"{self.config.subject_prefix} {title}".strip(),
            body_text=body,
            body_html=self._html_template.render(
                title=title,
                paragraphs=[p for p in body.split("\n\n") if p.strip()],
            ),
            from_address=self.config.from_address,
            from_name=self.config.from_name,
        )

    def show(self, title: str, body: str) -> None:
        if not body.strip():
            return
        self.send(self.format_message(title, body))

    def send(self, message: EmailMessage) -> None:
        """Send via SMTP. smtplib errors propagate to the caller."""
        mime = message.to_mime()
        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port) as server:
            if self.config.use_tls:
                context = ssl.create_default_context()
                server.ehlo()
                server.starttls(context=context)
                server.ehlo()
            if self.config.username:
                server.login(self.config.username, self.config.password)
            server.sendmail(self.config.from_address, message.to, mime.as_string())
        logger.info("Alert email '%s' sent to %s", message.subject, ", ".join(message.to))
