"""
Person records tracked by VisaGuard.

Records are persisted as JSON objects with camelCase keys; in Python they
are plain dataclasses with snake_case attributes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

DEFAULT_DOCUMENT_TYPE = "Document"

# Python attribute -> persisted key
FIELD_KEYS = {
    "id": "id",
    "first_name": "firstName",
    "last_name": "lastName",
    "phone_number": "phoneNumber",
    "document_type": "documentType",
    "country": "country",
    "expiration_date": "expirationDate",
    "notified30": "notified30",
    "notified7": "notified7",
    "notified_expired": "notifiedExpired",
}


class InvalidPersonError(ValueError):
    """Raised when a new person is missing required data."""


def _as_flag(value: Any) -> bool:
    # JSON true, or a string spelling of it; anything else reads as not yet notified
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


@dataclass
class Person:
    """One tracked travel or immigration document."""

    id: str
    first_name: str = ""
    last_name: str = ""
    phone_number: str = ""
    document_type: str = DEFAULT_DOCUMENT_TYPE
    country: str = ""
    expiration_date: Optional[str] = None
    notified30: bool = False
    notified7: bool = False
    notified_expired: bool = False
    # keys found in storage that this version does not know about
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def document_label(self) -> str:
        return self.document_type or DEFAULT_DOCUMENT_TYPE

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        for attr, key in FIELD_KEYS.items():
            data[key] = getattr(self, attr)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Person:
        known = set(FIELD_KEYS.values())
        return cls(
            id=str(data.get("id", "")),
            first_name=data.get("firstName") or "",
            last_name=data.get("lastName") or "",
            phone_number=data.get("phoneNumber") or "",
            document_type=data.get("documentType") or DEFAULT_DOCUMENT_TYPE,
            country=data.get("country") or "",
            expiration_date=data.get("expirationDate") or None,
            notified30=_as_flag(data.get("notified30")),
            notified7=_as_flag(data.get("notified7")),
            notified_expired=_as_flag(data.get("notifiedExpired")),
            extra={k: v for k, v in data.items() if k not in known},
        )


def new_person(
    first_name: str,
    last_name: str,
    country: str,
    expiration_date: str | date,
    document_type: str = "",
    phone_number: str = "",
) -> Person:
    """
    Validate user input and build a fresh Person with all alert flags off.

    Raises InvalidPersonError before anything is created when a required
    field is blank or the expiration date is not a YYYY-MM-DD date.
    """
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    country = (country or "").strip()
    document_type = (document_type or "").strip()
    phone_number = (phone_number or "").strip()

    missing = [
        label
        for label, value in (
            ("first name", first_name),
            ("last name", last_name),
            ("country", country),
            ("expiration date", expiration_date),
        )
        if not value
    ]
    if missing:
        raise InvalidPersonError(f"Missing required field(s): {', '.join(missing)}")

    if isinstance(expiration_date, datetime):
        expiration_date = expiration_date.date()
    if isinstance(expiration_date, date):
        expiration_str = expiration_date.isoformat()
    else:
        expiration_str = str(expiration_date).strip()
        try:
            datetime.strptime(expiration_str, "%Y-%m-%d")
        except ValueError:
            raise InvalidPersonError(
                f"Invalid expiration date: {expiration_str}. Use YYYY-MM-DD."
            )

    return Person(
        id=uuid.uuid4().hex,
        first_name=first_name,
        last_name=last_name,
        phone_number=phone_number,
        document_type=document_type or DEFAULT_DOCUMENT_TYPE,
        country=country,
        expiration_date=expiration_str,
    )
