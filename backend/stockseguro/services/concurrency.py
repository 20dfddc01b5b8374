# Overview: Service-layer operations for concurrency; encapsulates transaction and retry handling.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from ..extensions import db


class ConcurrencyError(RuntimeError):
    """
    A conditional write inside a commit affected zero rows.

    The input was valid when checked, but another writer got there first.
    The whole transaction is rolled back; retrying from scratch is safe.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def begin_immediate() -> None:
    """
    Take the SQLite write lock before the commit phase reads anything.

    Other dialects rely on their own row locking; this is a no-op there.
    NOTE: pysqlite only opens a transaction on DML, so prior SELECTs in the
    same session leave no transaction open.
    """
    if db.engine.dialect.name != "sqlite":
        return
    dbapi_connection = db.session.connection().connection.dbapi_connection
    if not dbapi_connection.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Execute a DB operation with retry on lock contention.

    Retries on OperationalError ("database is locked" under concurrent
    writers). ConcurrencyError is not retried here: it means the business
    check lost a race and the caller decides what to report.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
