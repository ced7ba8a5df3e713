"""Outcome of a single attempt and the retry decision derived from it"""

from dataclasses import dataclass
from typing import Optional

import requests


@dataclass(frozen=True)
class Outcome:
    """What one HTTP exchange produced.

    ``response`` is set when the server answered, ``error`` when the transport
    failed (or the call context had already fired).
    """

    response: Optional[requests.Response] = None
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class RetryDecision:
    """Whether to try again, plus the normalized error (None on success)"""

    should_retry: bool
    error: Optional[BaseException] = None
