"""Retry decisions: outcome classification and attempt-limit gating.

``retry_policy`` maps one attempt's outcome to a ``RetryDecision``; request
retryers wrap it with cancellation and attempt-limit checks and own the
backoff strategy used between attempts.
"""

from __future__ import annotations

import logging
import re
import ssl
from abc import ABC, abstractmethod
from http import HTTPStatus
from typing import Iterator, Optional

import requests

from courier.domain.config import RetryConfig
from courier.domain.errors import TransportError, UnexpectedStatusError, UnknownAuthorityError
from courier.domain.models.outcome import RetryDecision
from courier.infrastructure.backoff import (
    BackoffStrategy,
    ConstantBackoff,
    ExponentialJitterBackoff,
    LinearJitterBackoff,
)
from courier.infrastructure.context import CallContext

logger = logging.getLogger(__name__)

_REDIRECTS_RE = re.compile(r"stopped after \d+ redirects\Z")
_SCHEME_RE = re.compile(r"unsupported protocol scheme")

# OpenSSL verify codes meaning "issuer not trusted"
_UNTRUSTED_ISSUER_CODES = frozenset({2, 18, 19, 20, 21})
_UNTRUSTED_ISSUER_RE = re.compile(r"unable to get (local )?issuer certificate|self[- ]signed certificate")


def _error_chain(error: BaseException) -> Iterator[BaseException]:
    """Walk an error and everything it wraps (cause, context, reason, args)"""
    seen = set()
    stack = [error]
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        linked = [current.__cause__, current.__context__, getattr(current, "reason", None)]
        linked.extend(arg for arg in current.args if isinstance(arg, BaseException))
        if isinstance(current, TransportError):
            linked.append(current.cause)
        stack.extend(e for e in linked if isinstance(e, BaseException))


def _is_redirect_limit(error: BaseException) -> bool:
    return any(
        isinstance(e, requests.exceptions.TooManyRedirects) or _REDIRECTS_RE.search(str(e))
        for e in _error_chain(error)
    )


def _is_unsupported_scheme(error: BaseException) -> bool:
    return any(
        isinstance(e, (requests.exceptions.InvalidSchema, requests.exceptions.MissingSchema))
        or _SCHEME_RE.search(str(e))
        for e in _error_chain(error)
    )


def _is_unknown_authority(error: BaseException) -> bool:
    for e in _error_chain(error):
        if isinstance(e, UnknownAuthorityError):
            return True
        if isinstance(e, ssl.SSLCertVerificationError):
            if getattr(e, "verify_code", None) in _UNTRUSTED_ISSUER_CODES:
                return True
            if _UNTRUSTED_ISSUER_RE.search(str(e)):
                return True
    return False


def status_text(response: requests.Response) -> str:
    """``"<code> <reason>"`` as sent on the status line"""
    code = response.status_code or 0
    reason = response.reason
    if not reason:
        try:
            reason = HTTPStatus(code).phrase
        except ValueError:
            reason = ""
    if not code:
        return reason or "0"
    return f"{code} {reason}".strip()


def retry_policy(
    response: Optional[requests.Response], error: Optional[BaseException]
) -> RetryDecision:
    """Classify one attempt's outcome.

    Transport errors are retryable unless they are permanent misconfigurations
    (redirect loop, bad URL scheme, untrusted certificate). Responses are
    retryable on status 0 and 5xx other than 501; any other non-2xx is fatal.
    """
    if error is not None:
        if _is_redirect_limit(error) or _is_unsupported_scheme(error):
            return RetryDecision(False, error)
        if _is_unknown_authority(error):
            if isinstance(error, TransportError) and not isinstance(error, UnknownAuthorityError):
                return RetryDecision(False, UnknownAuthorityError(error.method, error.url, error))
            return RetryDecision(False, error)
        return RetryDecision(True, error)

    code = (response.status_code if response is not None else None) or 0
    if code == 0 or (500 <= code <= 599 and code != HTTPStatus.NOT_IMPLEMENTED):
        status = status_text(response) if response is not None else "0"
        return RetryDecision(True, UnexpectedStatusError(code, status))

    if code < 200 or code >= 300:
        return RetryDecision(False, UnexpectedStatusError(code, status_text(response)))

    return RetryDecision(False, None)


class RequestRetryer(ABC):
    """Decides whether an attempt should be repeated and how long to wait"""

    @abstractmethod
    def check_retry(
        self,
        ctx: CallContext,
        response: Optional[requests.Response],
        attempt: int,
        error: Optional[BaseException],
    ) -> RetryDecision:
        pass

    @abstractmethod
    def backoff(self, attempt: int, response: Optional[requests.Response]) -> float:
        pass


class NopRequestRetryer(RequestRetryer):
    """Single attempt, never retries"""

    def check_retry(self, ctx, response, attempt, error) -> RetryDecision:
        if ctx.cancelled:
            return RetryDecision(False, ctx.err())
        return RetryDecision(False, retry_policy(response, error).error)

    def backoff(self, attempt, response) -> float:
        return 0.0

    def __repr__(self) -> str:
        return "NopRequestRetryer()"


class BoundedRequestRetryer(RequestRetryer):
    """Retries retryable outcomes until ``max_attempts`` attempts were made"""

    def __init__(self, max_attempts: int, backoff: BackoffStrategy):
        if max_attempts < 0:
            raise ValueError("max_attempts must be non-negative")
        self.max_attempts = max_attempts
        self._backoff = backoff

    def check_retry(self, ctx, response, attempt, error) -> RetryDecision:
        if ctx.cancelled:
            return RetryDecision(False, ctx.err())

        decision = retry_policy(response, error)
        if attempt >= self.max_attempts:
            return RetryDecision(False, decision.error)
        return decision

    def backoff(self, attempt, response) -> float:
        return self._backoff(attempt, response)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(max_attempts={self.max_attempts}, backoff={self._backoff!r})"


class ConstantRequestRetryer(BoundedRequestRetryer):
    """Bounded retryer waiting the same delay between attempts"""

    def __init__(self, max_attempts: int, delay: float):
        super().__init__(max_attempts, ConstantBackoff(delay))
        self.delay = delay


def build_retryer(config: RetryConfig) -> RequestRetryer:
    """Create the retryer described by a retry configuration section"""
    if config.max_attempts == 0:
        retryer: RequestRetryer = NopRequestRetryer()
    elif config.strategy == "constant":
        retryer = ConstantRequestRetryer(config.max_attempts, config.delay)
    elif config.strategy == "linear":
        retryer = BoundedRequestRetryer(
            config.max_attempts, LinearJitterBackoff(config.min_delay, config.max_delay)
        )
    else:
        retryer = BoundedRequestRetryer(
            config.max_attempts, ExponentialJitterBackoff(config.min_delay, config.max_delay)
        )
    logger.debug(f"Using retryer: {retryer!r}")
    return retryer
