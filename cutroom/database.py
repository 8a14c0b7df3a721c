"""Session helpers shared by the services.

Every multi-row write goes through :func:`transaction` so that a plan tree, an
order with its items or a roll with its generated id is either committed as a
whole or not at all.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import event, func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import db
from .errors import ConflictError, PersistenceError

logger = logging.getLogger(__name__)


@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def utcnow():
    # naive UTC, stored unchanged by both SQLite and Postgres timestamp columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


def ci_like(column, term: str):
    """Portable case-insensitive substring match for Postgres/SQLite. ``%`` and
    ``_`` in ``term`` match literally."""
    return func.lower(column).contains(term.lower(), autoescape=True)


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    # psycopg2 carries the SQLSTATE, sqlite3 only the message
    return getattr(orig, "pgcode", None) == "23505" or "UNIQUE constraint failed" in str(orig)


@contextmanager
def transaction():
    """Commit the session when the block exits, roll back on any error.

    ``IntegrityError`` propagates unchanged so callers can retry or translate
    it; other SQLAlchemy failures become :class:`PersistenceError`.
    """
    try:
        yield db.session
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("transaction rolled back: %s", exc)
        raise PersistenceError("database operation failed") from exc
    except Exception:
        db.session.rollback()
        raise


def retry_on_conflict(operation, attempts: int, what: str):
    """Re-run ``operation`` while it loses unique-constraint races.

    Any other integrity failure (NOT NULL, foreign key) is not a race and
    becomes :class:`PersistenceError` without a retry.

    ``operation`` must open its own :func:`transaction`, so each attempt starts
    from a clean session and re-reads whatever the winner committed.
    """
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                logger.error("%s failed: %s", what, exc.orig)
                raise PersistenceError(f"{what} could not be stored") from exc
            logger.warning(
                "%s collided with a concurrent write (attempt %d/%d): %s",
                what, attempt, attempts, exc.orig,
            )
    raise ConflictError(f"{what} collided with concurrent writes, please retry")
