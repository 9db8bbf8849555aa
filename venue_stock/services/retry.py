from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from venue_stock.app.core import config
from venue_stock.services.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = config.STORE_RETRY_ATTEMPTS
    base_delay: float = config.STORE_RETRY_BASE_DELAY
    max_delay: float = config.STORE_RETRY_MAX_DELAY

    def delay_for(self, attempt: int) -> float:
        """Délai avant la tentative attempt+1 (attempt commence à 1)."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


def with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Exécute fn, retry uniquement sur TransientStoreError.
    Toute autre exception remonte immédiatement.
    """
    policy = policy or RetryPolicy()
    attempts = max(1, policy.attempts)

    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except TransientStoreError as exc:
            if attempt >= attempts:
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "transient store error (attempt %s/%s), retrying in %.2fs: %s",
                attempt,
                attempts,
                delay,
                exc,
            )
            sleep(delay)

    raise AssertionError("unreachable")
