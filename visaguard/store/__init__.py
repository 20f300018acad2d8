"""
Record store: persistent key-value state and typed person access.
"""

from visaguard.store.record_store import (
    Base,
    LAST_CHECK_KEY,
    PERSONS_KEY,
    RecordStore,
    StoreEntry,
)
from visaguard.store.records import InvalidPersonError, Person, new_person
from visaguard.store.persons import PersonRepository

__all__ = [
    "Base",
    "LAST_CHECK_KEY",
    "PERSONS_KEY",
    "RecordStore",
    "StoreEntry",
    "InvalidPersonError",
    "Person",
    "new_person",
    "PersonRepository",
]
