# core/utils/retry.py
import functools
import logging
import time

from django.conf import settings

from core.exceptions import ConcurrencyConflictError

logger = logging.getLogger(__name__)


def retry_on_conflict(func=None, *, max_attempts=None, backoff=None):
    """
    Re-run a whole atomic operation when the ledger reports a lost update.

    Must wrap *outside* transaction.atomic so every attempt starts from a
    fresh read. Any other exception propagates immediately.
    """
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            attempts = max_attempts or settings.BILLING.get('CONCURRENCY_MAX_ATTEMPTS', 3)
            delay = backoff if backoff is not None else settings.BILLING.get('CONCURRENCY_BACKOFF_SECONDS', 0.05)

            for attempt in range(1, attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except ConcurrencyConflictError:
                    if attempt >= attempts:
                        logger.error(f"{fn.__qualname__}: giving up after {attempt} conflicting attempts")
                        raise
                    logger.warning(f"{fn.__qualname__}: concurrent update detected, retry {attempt}/{attempts - 1}")
                    if delay:
                        time.sleep(delay * attempt)
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
