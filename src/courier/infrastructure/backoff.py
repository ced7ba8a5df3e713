"""Backoff strategies: how long to wait before the next attempt.

All strategies honor a ``Retry-After`` header (integer seconds) on a
429 response before applying their own math. Delays are seconds (float).
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from http import HTTPStatus
from typing import Optional

import requests


def retry_after(response: Optional[requests.Response]) -> Optional[float]:
    """Server-mandated delay from a 429 response, if it sent a usable one"""
    if response is None or response.status_code != HTTPStatus.TOO_MANY_REQUESTS:
        return None
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    if seconds < 0:
        return None
    return float(seconds)


class BackoffStrategy(ABC):
    """Computes the wait before attempt ``attempt + 1``.

    Instances hold configuration only and may be shared across threads.
    """

    def __call__(self, attempt: int, response: Optional[requests.Response] = None) -> float:
        delay = retry_after(response)
        if delay is not None:
            return delay
        return max(0.0, self.compute(attempt))

    @abstractmethod
    def compute(self, attempt: int) -> float:
        pass

    @staticmethod
    def _rng() -> random.Random:
        # seeded from os.urandom; never shared between computations
        return random.Random()


class ConstantBackoff(BackoffStrategy):
    """Same delay between every attempt"""

    def __init__(self, delay: float):
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self.delay = delay

    def compute(self, attempt: int) -> float:
        return self.delay

    def __repr__(self) -> str:
        return f"ConstantBackoff(delay={self.delay})"


class LinearJitterBackoff(BackoffStrategy):
    """``(min_delay + jitter) * attempt`` with jitter in ``[0, max_delay - min_delay)``"""

    def __init__(self, min_delay: float, max_delay: float):
        if min_delay < 0 or max_delay < 0:
            raise ValueError("delays must be non-negative")
        self.min_delay = min_delay
        self.max_delay = max_delay

    def compute(self, attempt: int) -> float:
        span = max(0.0, self.max_delay - self.min_delay)
        jitter = self._rng().random() * span
        return (self.min_delay + jitter) * attempt

    def __repr__(self) -> str:
        return f"LinearJitterBackoff(min_delay={self.min_delay}, max_delay={self.max_delay})"


class ExponentialJitterBackoff(BackoffStrategy):
    """Random delay in ``[min_delay, min(max_delay, min_delay * attempt * 2 ** attempt))``"""

    def __init__(self, min_delay: float, max_delay: float):
        if min_delay < 0 or max_delay < 0:
            raise ValueError("delays must be non-negative")
        self.min_delay = min_delay
        self.max_delay = max_delay

    def compute(self, attempt: int) -> float:
        base = self.min_delay * attempt
        capped = min(self.max_delay, base * 2.0 ** attempt)
        if self.min_delay > capped:
            capped = self.max_delay
        span = max(0.0, capped - self.min_delay)
        return self.min_delay + self._rng().random() * span

    def __repr__(self) -> str:
        return f"ExponentialJitterBackoff(min_delay={self.min_delay}, max_delay={self.max_delay})"
