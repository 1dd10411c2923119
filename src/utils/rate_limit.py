"""
Throttle policies for calls to the external classifier.

Batch segmentation is a sequential loop; the policy decides how long to pause
between consecutive calls so a burst never trips Bedrock rate limits.
"""

import time
from typing import Callable, Optional


class Throttle:
    """No-op policy; subclasses decide how long to wait."""

    def wait(self) -> None:
        """Block until the next call is allowed."""
        return None


class FixedDelayThrottle(Throttle):
    """Enforce a minimum gap between consecutive calls."""

    def __init__(
        self,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self._monotonic = monotonic
        self._last_call: Optional[float] = None

    def wait(self) -> None:
        now = self._monotonic()
        if self._last_call is not None:
            remaining = self.delay_seconds - (now - self._last_call)
            if remaining > 0:
                self._sleep(remaining)
                now = self._monotonic()
        self._last_call = now
