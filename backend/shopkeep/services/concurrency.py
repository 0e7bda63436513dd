# Overview: Transaction boundary and row locking shared by the invoice and settlement services.

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError
from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id columns still catch lost updates there.
    """
    return query.with_for_update()


def run_atomic(func, *, description: str = "operation"):
    """
    Run func() and commit, or roll back everything it wrote.

    Concurrency failures (lock timeouts, deadlocks, optimistic-lock version
    mismatches, uniqueness races) are surfaced as ConflictError. Nothing is
    retried: the caller decides whether to try again.
    """
    try:
        result = func()
        db.session.commit()
        return result
    except (OperationalError, StaleDataError) as exc:
        db.session.rollback()
        logger.warning("%s aborted by concurrent update: %s", description, exc)
        raise ConflictError(f"{description} conflicted with a concurrent update; please retry") from exc
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("%s violated a database constraint: %s", description, exc.orig)
        raise ConflictError(f"{description} violated a uniqueness or integrity constraint") from exc
    except Exception:
        db.session.rollback()
        raise
