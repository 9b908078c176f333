# Overview: Service-layer operations for concurrency; encapsulates business logic and database work.

from __future__ import annotations

import threading
import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Employee


# Fixed pool: employees hash onto stripes, so the lock set never grows
EMPLOYEE_LOCK_STRIPES = 64
_employee_locks = tuple(threading.RLock() for _ in range(EMPLOYEE_LOCK_STRIPES))


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def commit_with_retry(*, attempts: int = 3, backoff_base: float = 0.1):
    """Commit current session with retry handling."""
    def _op():
        db.session.commit()
    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)


def _lock_for_employee(employee_pk: int):
    return _employee_locks[employee_pk % EMPLOYEE_LOCK_STRIPES]


@contextmanager
def employee_commit_guard(employee_pk: int):
    """
    Serialize eligibility-check-and-commit for one employee.

    Three layers, so that two requests for the same employee can never both
    read the same consumption and both commit:
    - an in-process re-entrant lock striped by employee (threads of this worker)
    - SELECT ... FOR UPDATE on the employee row (databases that support it)
    - the employee's version_id, bumped by every order commit, so a writer
      in another process fails with StaleDataError instead of over-consuming

    Re-entrant: the bulk pipeline holds the guard while calling the shared
    order creation path, which takes it again.
    """
    lock = _lock_for_employee(employee_pk)
    with lock:
        # populate_existing: a copy loaded before the lock may predate the last commit
        query = db.session.query(Employee).filter_by(id=employee_pk).populate_existing()
        employee = lock_for_update(query).first()
        yield employee
