"""
Typed access to the tracked persons and the last-check cursor.

Every change to ``persons`` is a transactional read-modify-write of the
stored list, so an add, a delete and a check's flag updates made from
different processes never overwrite each other.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from visaguard.store.record_store import LAST_CHECK_KEY, PERSONS_KEY, RecordStore
from visaguard.store.records import Person, new_person

logger = logging.getLogger(__name__)


def _valid_entries(entries: list[Any]) -> list[dict[str, Any]]:
    valid = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning("Ignoring malformed person entry: %r", entry)
            continue
        valid.append(entry)
    return valid


class PersonRepository:
    """
    Read and write Person records through a RecordStore.

    Usage:
        repo = PersonRepository(RecordStore("sqlite:///visaguard.db"))
        person = repo.add_person("Ana", "Silva", "Portugal", "2027-01-31", "Visa")
        repo.delete_person(person.id)
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    # ---- Read ----

    def list_persons(self) -> list[Person]:
        return [Person.from_dict(entry) for entry in _valid_entries(self.store.get(PERSONS_KEY))]

    def get_person(self, person_id: str) -> Optional[Person]:
        for person in self.list_persons():
            if person.id == person_id:
                return person
        return None

    def get_last_check_date(self) -> str:
        return self.store.get(LAST_CHECK_KEY)

    # ---- Write ----

    def set_last_check_date(self, value: str | date) -> bool:
        if isinstance(value, date):
            value = value.isoformat()
        return self.store.set(LAST_CHECK_KEY, value)

    def add_person(
        self,
        first_name: str,
        last_name: str,
        country: str,
        expiration_date: str | date,
        document_type: str = "",
        phone_number: str = "",
    ) -> Person:
        """Validate and append a new person. Raises InvalidPersonError."""
        person = new_person(
            first_name=first_name,
            last_name=last_name,
            country=country,
            expiration_date=expiration_date,
            document_type=document_type,
            phone_number=phone_number,
        )

        def append(entries: list[Any]) -> list[dict[str, Any]]:
            nonlocal person
            entries = _valid_entries(entries)
            existing_ids = {str(e.get("id", "")) for e in entries}
            while person.id in existing_ids:
                person = new_person(
                    first_name, last_name, country, expiration_date, document_type, phone_number
                )
            return entries + [person.to_dict()]

        if self.store.update(PERSONS_KEY, append):
            logger.info("Added %s (%s, expires %s)", person.full_name, person.id, person.expiration_date)
        return person

    def mark_notified(self, flags_by_id: dict[str, dict[str, bool]]) -> bool:
        """
        Apply alert flag changes to the stored records, matched by id.

        ``flags_by_id`` maps a person id to persisted flag keys and values,
        e.g. ``{"p1": {"notified30": True}}``. Records that no longer exist
        are skipped; every other stored field is left as it is now.
        """
        if not flags_by_id:
            return True

        def apply(entries: list[Any]) -> list[dict[str, Any]]:
            entries = _valid_entries(entries)
            for entry in entries:
                flags = flags_by_id.get(str(entry.get("id", "")))
                if flags:
                    entry.update(flags)
            return entries

        return self.store.update(PERSONS_KEY, apply)

    # ---- Delete ----

    def delete_person(self, person_id: str) -> bool:
        removed = False

        def remove(entries: list[Any]) -> Optional[list[dict[str, Any]]]:
            nonlocal removed
            entries = _valid_entries(entries)
            remaining = [e for e in entries if str(e.get("id", "")) != person_id]
            removed = len(remaining) != len(entries)
            return remaining if removed else None

        if not self.store.update(PERSONS_KEY, remove) or not removed:
            return False
        logger.info("Removed person %s", person_id)
        return True
