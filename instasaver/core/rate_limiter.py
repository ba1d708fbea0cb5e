"""Request pacing for Instagram API lookups."""

import asyncio
import random
import time
from typing import Optional

from instasaver.utils.config import REQUEST_DELAY, REQUEST_JITTER
from instasaver.utils.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Spaces API requests by ``delay`` seconds, give or take ``jitter``.

    One instance is shared by every resolver so that a story lookup (two
    requests) and a post lookup issued back to back stay paced together.
    """

    def __init__(self, delay: float = REQUEST_DELAY, jitter: float = REQUEST_JITTER):
        self.delay = delay
        self.jitter = jitter
        self.last_request_at: Optional[float] = None
        self._lock: Optional[asyncio.Lock] = None

    async def wait(self) -> None:
        """Sleep until the next request is allowed, then claim the slot."""
        # Created lazily so the lock binds to the loop that uses it
        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            if self.last_request_at is not None:
                gap = self.delay + random.uniform(-self.jitter, self.jitter)
                remaining = gap - (time.monotonic() - self.last_request_at)
                if remaining > 0:
                    logger.debug(f"Rate limiting: waiting {remaining:.2f}s")
                    await asyncio.sleep(remaining)

            self.last_request_at = time.monotonic()


_shared_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """The process-wide limiter used when a resolver is not given its own."""
    global _shared_limiter
    if _shared_limiter is None:
        _shared_limiter = RateLimiter()
    return _shared_limiter
