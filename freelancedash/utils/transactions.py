"""
Transaction helpers for the store session.

``atomic`` commits a unit of work or rolls all of it back. ``retry_transient``
re-runs a whole service call when the store reports a transient failure;
every retried call must be safe to repeat (the lifecycle writes are
conditional UPDATEs, so a repeat either re-claims or fails cleanly).
"""
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import wraps

from flask import current_app, has_app_context
from sqlalchemy.exc import DisconnectionError, OperationalError

from freelancedash.utils.exceptions import Unavailable

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (OperationalError, DisconnectionError)


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@contextmanager
def atomic(session):
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def config_value(name, default):
    if has_app_context():
        return current_app.config.get(name, default)
    return default


def retry_transient(attempts=None, base_delay=None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            max_attempts = attempts or config_value("STORE_RETRY_ATTEMPTS", 3)
            delay = base_delay if base_delay is not None else config_value("STORE_RETRY_BASE_DELAY", 0.2)

            for attempt in range(1, max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except TRANSIENT_ERRORS as e:
                    if attempt >= max_attempts:
                        logger.error(
                            "%s failed after %d attempts: %s", fn.__name__, attempt, e
                        )
                        raise Unavailable(
                            "Document store unavailable, please retry",
                            details={"operation": fn.__name__, "attempts": attempt},
                        ) from e
                    wait = delay * (2 ** (attempt - 1))
                    logger.warning(
                        "%s hit a transient store error (attempt %d/%d), retrying in %.2fs: %s",
                        fn.__name__, attempt, max_attempts, wait, e,
                    )
                    time.sleep(wait)

        return wrapper

    return decorator
