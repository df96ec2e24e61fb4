# Overview: Transaction scope and retry helpers shared by every mutating service.

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work():
    """
    One atomic transaction around a workflow.

    Yields the session every step must use. Commits when the block exits
    normally; on any exception rolls back everything done in the block and
    re-raises, so callers never observe a partially applied movement.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def _retry_policy(attempts, backoff_base):
    if attempts is None:
        attempts = current_app.config.get("DB_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("DB_RETRY_BACKOFF", 0.1)
    return max(1, int(attempts)), float(backoff_base)


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (database locked, deadlocks),
    StaleDataError (optimistic locking conflicts) and IntegrityError (a
    concurrent unit of work created the same unique row first; the rerun
    finds it). Business errors are never retried; they propagate on the
    first attempt.
    """
    attempts, backoff_base = _retry_policy(attempts, backoff_base)
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError, IntegrityError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt)
            logger.warning(
                "Retrying after %s (attempt %d/%d, sleeping %.2fs)",
                type(exc).__name__, attempt + 1, attempts, delay,
            )
            time.sleep(delay)

