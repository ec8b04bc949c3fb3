from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from ..core.exceptions import StorageError

T = TypeVar("T")

log = logging.getLogger("adcoin_ledger.retry")


def with_retry(
    fn: Callable[[], T],
    *,
    retries: int = 3,
    delay: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run a read-only call, retrying only on StorageError.

    Waits ``delay * attempt`` between attempts and re-raises the last error.
    Never use this around ledger mutations; those are retried by the caller.
    """
    attempts = max(int(retries), 1)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except StorageError as exc:
            log.warning("Read failed (attempt %d/%d): %s", attempt, attempts, exc)
            if attempt == attempts:
                raise
            sleep(delay * attempt)
    raise AssertionError("unreachable")
