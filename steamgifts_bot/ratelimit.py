"""A jittered sleeper for spacing out requests at a human-like pace."""

from __future__ import annotations

import random
import threading
import time
from datetime import timedelta


class WaitCancelled(Exception):
    """A wait was cancelled before it finished."""


def _seconds(value: float | timedelta) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


class Limiter:
    """Delays callers for a uniformly random time in [minimum, maximum).

    Durations are seconds or timedeltas. A negative minimum is clamped to
    zero; a maximum below the minimum makes every wait exactly the minimum.
    Safe for use from several threads.
    """

    def __init__(self, minimum: float | timedelta, maximum: float | timedelta) -> None:
        low = max(_seconds(minimum), 0.0)
        high = max(_seconds(maximum), low)
        self.minimum = low
        self.maximum = high
        self._lock = threading.Lock()
        self._rng = random.Random()

    def wait(self, cancel: threading.Event | None = None) -> None:
        """Block for a jittered delay; raise WaitCancelled if cancel is set."""
        with self._lock:
            delay = self.minimum
            span = self.maximum - self.minimum
            if span > 0:
                delay += self._rng.random() * span
        if delay <= 0:
            if cancel is not None and cancel.is_set():
                raise WaitCancelled("wait cancelled")
            return
        if cancel is None:
            time.sleep(delay)
            return
        if cancel.wait(delay):
            raise WaitCancelled("wait cancelled")