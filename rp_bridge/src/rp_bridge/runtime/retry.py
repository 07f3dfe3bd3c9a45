from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger("rp_bridge.retry")


class RetryExecutor:
    """Run a single remote call with a fixed delay between bounded attempts."""

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        delay_s: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if delay_s < 0:
            raise ValueError("delay_s must be >= 0")
        self._max_attempts = max_attempts
        self._delay_s = delay_s
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def execute(self, operation: Callable[[], T], *, description: str = "operation") -> T:
        """Return the operation's result; re-raise its last failure on exhaustion."""
        for attempt in range(1, self._max_attempts + 1):
            try:
                return operation()
            except Exception as exc:
                if attempt >= self._max_attempts:
                    logger.error(
                        "%s failed after %d attempt(s): %s",
                        description,
                        attempt,
                        exc,
                    )
                    raise
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                    description,
                    attempt,
                    self._max_attempts,
                    self._delay_s,
                    exc,
                )
                self._sleep(self._delay_s)
        raise AssertionError("unreachable")
