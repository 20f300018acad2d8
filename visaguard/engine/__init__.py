"""
Expiration engine: day arithmetic, tiered alert policy, and checks.
"""

from visaguard.engine.dates import (
    ExpiryStatus,
    days_label,
    days_left,
    format_date,
    parse_date,
    status_of,
)
from visaguard.engine.expiration import (
    ALERT_TIERS,
    Alert,
    AlertSeverity,
    AlertTier,
    ExpirationEngine,
    summarize,
)

__all__ = [
    "ExpiryStatus",
    "days_label",
    "days_left",
    "format_date",
    "parse_date",
    "status_of",
    "ALERT_TIERS",
    "Alert",
    "AlertSeverity",
    "AlertTier",
    "ExpirationEngine",
    "summarize",
]
