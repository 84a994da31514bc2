"""
Fixed-interval rate limiting between subjects.
Keeps a minimum gap between extraction attempts against the portal.
"""

import logging
import random
import time
from typing import Callable, Optional

from harvester.config import RateLimitConfig

logger = logging.getLogger(__name__)


class RateLimiter:
    """Enforces a minimum delay between consecutive subject attempts."""

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize rate limiter with configuration.

        Args:
            config: RateLimitConfig instance, uses defaults if None
            clock: Monotonic time source in seconds
            sleep: Blocking sleep function
        """
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._sleep = sleep
        self._last_attempt_time: Optional[float] = None
        self._attempts = 0
        self._total_waited = 0.0

    def _interval(self) -> float:
        jitter_range = self.config.min_interval * self.config.jitter_percent
        if not jitter_range:
            return self.config.min_interval
        # jitter only lengthens the gap
        return self.config.min_interval + random.uniform(0, jitter_range)

    def wait(self):
        """Block until the minimum interval since the last attempt has passed."""
        if self._last_attempt_time is None:
            return

        elapsed = self._clock() - self._last_attempt_time
        remaining = self._interval() - elapsed
        if remaining > 0:
            logger.debug("Throttling for %.1fs", remaining)
            self._sleep(remaining)
            self._total_waited += remaining

    def record_attempt(self):
        """Mark the end of a subject attempt, whatever its outcome."""
        self._attempts += 1
        self._last_attempt_time = self._clock()

    def get_stats(self) -> dict:
        """
        Get rate limiter statistics.

        Returns:
            Dict with current state info
        """
        return {
            'min_interval': self.config.min_interval,
            'attempts': self._attempts,
            'total_waited': self._total_waited,
        }

    def reset(self):
        """Reset rate limiter to initial state."""
        self._last_attempt_time = None
        self._attempts = 0
        self._total_waited = 0.0
