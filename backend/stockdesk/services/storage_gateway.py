# Overview: Storage gateway; owns the schema, transaction boundaries and retry policy.

from __future__ import annotations

import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class StorageError(Exception):
    """Unexpected persistence failure. Never shown verbatim to clients."""


def init_schema() -> None:
    """Create all tables that do not exist yet (safe to call on every startup)."""
    from .. import models  # noqa: F401

    db.create_all()


class StorageGateway:
    """
    Thin wrapper over one SQLAlchemy session.

    Components receive a gateway in their constructor instead of reaching
    for a module-level handle, so a test or a script can hand them any
    session it likes.
    """

    def __init__(self, session):
        self.session = session

    # ------------------------------------------------------------------
    # Primitive operations
    # ------------------------------------------------------------------

    def get(self, model, ident, *, for_update: bool = False):
        """
        Point lookup by primary key.

        for_update applies row-level locking. NOTE: SQLite ignores
        SELECT ... FOR UPDATE; there the immediate transaction already
        holds the write lock.
        """
        query = self.session.query(model).filter(model.__mapper__.primary_key[0] == ident)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def query(self, *entities):
        return self.session.query(*entities)

    def add(self, obj):
        """Stage obj and flush so generated keys and constraints apply now."""
        self.session.add(obj)
        self.flush()
        return obj

    def delete(self, obj) -> None:
        self.session.delete(obj)
        self.flush()

    def flush(self) -> None:
        try:
            self.session.flush()
        except (OperationalError, StaleDataError):
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.exception("Flush failed")
            raise StorageError("Failed to save changes") from exc

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.exception("Commit failed")
            raise StorageError("Failed to save changes") from exc

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _begin_immediate(self) -> None:
        # SQLite only takes the write lock at the first write unless asked;
        # take it up front so two sales can't both read the same stock.
        if self.session.get_bind().dialect.name != "sqlite":
            return
        raw = self.session.connection().connection.driver_connection
        if not raw.in_transaction:
            self.session.execute(text("BEGIN IMMEDIATE"))

    @contextmanager
    def transaction(self, *, immediate: bool = False):
        """
        All-or-nothing unit of work.

        Commits when the block exits cleanly, rolls back on any exception.
        Lock/version conflicts propagate untouched so run_with_retry can
        retry them; other database errors become StorageError.
        """
        try:
            if immediate:
                self._begin_immediate()
            yield self
            self.session.commit()
        except (OperationalError, StaleDataError):
            self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.exception("Transaction failed")
            raise StorageError("Failed to save changes") from exc
        except Exception:
            self.session.rollback()
            raise

    def run_with_retry(self, func, *, attempts: int = 3, backoff_base: float = 0.1):
        """
        Execute a DB operation with retry on concurrency-related failures.

        Retries on OperationalError (deadlocks, locks) and StaleDataError
        (optimistic locking conflicts). Exhausted retries raise StorageError.
        """
        for attempt in range(attempts):
            try:
                return func()
            except (OperationalError, StaleDataError) as exc:
                self.session.rollback()
                if attempt >= attempts - 1:
                    current_app.logger.exception("Giving up after %d attempts", attempts)
                    raise StorageError("Storage is busy, try again") from exc
                current_app.logger.warning(
                    "Retrying after concurrency conflict (attempt %d/%d): %s",
                    attempt + 1, attempts, exc.__class__.__name__,
                )
                time.sleep(backoff_base * (2 ** attempt))
