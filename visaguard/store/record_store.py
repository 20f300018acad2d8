"""
SQLAlchemy-backed key-value store for VisaGuard state.

Holds two named values, ``persons`` (list of person objects) and
``lastCheckDate`` (ISO date string), each as a JSON document in its own
row. Reads never fail the caller: a missing, unreadable, or corrupted
value comes back as the key's empty default. Writes report failure with
a False return and a log entry.

Several processes may share one database (``visaguard run`` alongside
``visaguard add``). ``update`` performs a read-modify-write of one value
inside a single write-locked transaction, so concurrent edits are
applied one after the other instead of overwriting each other.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, event, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

logger = logging.getLogger(__name__)

PERSONS_KEY = "persons"
LAST_CHECK_KEY = "lastCheckDate"

# Factories so callers never share a mutable default
DEFAULTS: dict[str, Callable[[], Any]] = {
    PERSONS_KEY: list,
    LAST_CHECK_KEY: str,
}


class Base(DeclarativeBase):
    pass


class StoreEntry(Base):
    """A single named value, JSON-encoded."""

    __tablename__ = "store_entries"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<StoreEntry(key='{self.key}', updated_at={self.updated_at})>"


def _use_immediate_transactions(engine) -> None:
    """Make every SQLite transaction take the database write lock when it begins."""

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        # pysqlite would otherwise defer BEGIN until the first write
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class RecordStore:
    """
    Key-value interface over the VisaGuard database.

    Usage:
        store = RecordStore("sqlite:///visaguard.db")
        persons = store.get("persons")
        store.set("lastCheckDate", "2026-10-18")
        store.update("persons", lambda persons: persons + [new_entry])
    """

    def __init__(self, db_url: str = "sqlite:///visaguard.db") -> None:
        self.db_url = db_url
        self.engine = create_engine(db_url, echo=False)
        if self.engine.dialect.name == "sqlite":
            _use_immediate_transactions(self.engine)
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            # Keep running; every read will fall back to defaults.
            logger.error("Could not initialise store at %s: %s", db_url, e)
        self.SessionFactory = sessionmaker(bind=self.engine)

    def _session(self) -> Session:
        return self.SessionFactory()

    @staticmethod
    def default(key: str) -> Any:
        factory = DEFAULTS.get(key)
        return factory() if factory else None

    def _decode(self, key: str, raw: Optional[str]) -> Any:
        if raw is None:
            return self.default(key)
        try:
            value = json.loads(raw)
        except ValueError as e:
            logger.warning("Stored '%s' is not valid JSON, using default: %s", key, e)
            return self.default(key)

        factory = DEFAULTS.get(key)
        if factory is not None and not isinstance(value, factory):
            logger.warning(
                "Stored '%s' has unexpected type %s, using default",
                key, type(value).__name__,
            )
            return factory()
        return value

    # ---- Read ----

    def get(self, key: str) -> Any:
        """Return the stored value for key, or its empty default."""
        try:
            with self._session() as session:
                entry = session.get(StoreEntry, key)
                raw = entry.value if entry is not None else None
        except SQLAlchemyError as e:
            logger.warning("Could not read '%s' from store, using default: %s", key, e)
            return self.default(key)
        return self._decode(key, raw)

    # ---- Write ----

    def set(self, key: str, value: Any) -> bool:
        """Overwrite the whole value for key. Returns False on failure."""
        return self.update(key, lambda _current: value)

    def update(self, key: str, mutate: Callable[[Any], Any]) -> bool:
        """
        Atomically replace the value for key with ``mutate(current)``.

        The read, the call to mutate and the write happen in one
        transaction that holds the write lock (``BEGIN IMMEDIATE`` on
        SQLite, ``SELECT ... FOR UPDATE`` elsewhere). When mutate returns
        None nothing is written. Returns False if the store failed.
        """
        try:
            with self._session() as session:
                entry = session.execute(
                    select(StoreEntry).where(StoreEntry.key == key).with_for_update()
                ).scalar_one_or_none()
                current = self._decode(key, entry.value if entry is not None else None)
                value = mutate(current)
                if value is None:
                    return True
                encoded = json.dumps(value, ensure_ascii=False)
                if entry is None:
                    session.add(StoreEntry(key=key, value=encoded))
                else:
                    entry.value = encoded
                    entry.updated_at = datetime.utcnow()
                session.commit()
        except (SQLAlchemyError, TypeError, ValueError) as e:
            logger.error("Failed to write '%s' to store: %s", key, e)
            return False
        return True

    # ---- Delete ----

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if a value was removed."""
        try:
            with self._session() as session:
                entry = session.get(StoreEntry, key)
                if entry is None:
                    return False
                session.delete(entry)
                session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to delete '%s' from store: %s", key, e)
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()
