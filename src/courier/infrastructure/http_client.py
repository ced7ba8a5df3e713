"""HTTP request executor (requests + tenacity attempt loop).

One logical call goes through ``RequestExecutor.send``: the prepared request
is re-sent until the retryer says stop, with drained connections and a
cancellable backoff wait between attempts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests
from tenacity import RetryCallState, Retrying, retry_if_result

from courier.domain.errors import GiveUpError, TransportError
from courier.domain.models.envelope import RPCError, RPCResponse
from courier.domain.models.outcome import Outcome, RetryDecision
from courier.infrastructure.context import CallContext
from courier.infrastructure.retry import NopRequestRetryer, RequestRetryer

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
DRAIN_LIMIT = 4096


@dataclass(frozen=True)
class _Attempt:
    outcome: Outcome
    decision: RetryDecision


class RequestExecutor:
    """Sends a prepared JSON-RPC request with retries.

    The executor itself is stateless between calls; all per-call state lives
    in ``send``. The session's connection pool is shared by concurrent calls.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        retryer: Optional[RequestRetryer] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        logger: Optional[logging.Logger] = logger,
    ):
        """Initialize executor

        Args:
            session: HTTP session (a new one is created if None)
            retryer: Retry strategy (single attempt if None)
            timeout: Per-attempt HTTP timeout in seconds
            logger: Where transport and drain failures are reported (None = silent)
        """
        self.session = session or requests.Session()
        self.retryer = retryer or NopRequestRetryer()
        self.timeout = timeout
        self.logger = logger

    def send(self, request: requests.PreparedRequest, ctx: Optional[CallContext] = None) -> RPCResponse:
        """Deliver the request and decode the JSON-RPC response envelope.

        Args:
            request: Prepared POST request; it is never mutated
            ctx: Cancellation context for the whole call

        Returns:
            Decoded response envelope

        Raises:
            CancelledError: If the context fired before or between attempts
            TransportError: If the last attempt failed at transport level
            UnexpectedStatusError: If the last response had a non-2xx status
            RPCError: If the envelope carries an error object
            GiveUpError: If the retryer stopped without an error
        """
        if ctx is None:
            ctx = CallContext.background()
        request = _buffered(request)

        last: Optional[_Attempt] = None
        attempts = 0
        retrying = Retrying(
            retry=retry_if_result(lambda a: a.decision.should_retry),
            wait=self._wait,
            sleep=self._sleeper(ctx),
            after=self._drain_before_retry,
            before_sleep=self._log_retry,
        )
        for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                last = self._attempt(request, ctx, attempts)
            if not attempt.retry_state.outcome.failed:
                attempt.retry_state.set_result(last)

        return self._finalize(request, last, attempts)

    def close_idle_connections(self) -> None:
        for adapter in self.session.adapters.values():
            adapter.close()

    def _attempt(self, request: requests.PreparedRequest, ctx: CallContext, number: int) -> _Attempt:
        if ctx.cancelled:
            outcome = Outcome(error=ctx.err())
        else:
            outcome = self._exchange(request.copy(), ctx)
            if outcome.error is not None:
                self._log(logging.ERROR, "%s %s request failed: %s", request.method, request.url, outcome.error)

        decision = self.retryer.check_retry(ctx, outcome.response, number, outcome.error)
        return _Attempt(outcome, decision)

    def _exchange(self, request: requests.PreparedRequest, ctx: CallContext) -> Outcome:
        try:
            response = self.session.send(request, stream=True, timeout=ctx.remaining(self.timeout))
        except requests.exceptions.RequestException as e:
            return Outcome(error=TransportError(request.method, request.url, e))
        return Outcome(response=response)

    def _wait(self, retry_state: RetryCallState) -> float:
        last = retry_state.outcome.result()
        return self.retryer.backoff(retry_state.attempt_number, last.outcome.response)

    def _sleeper(self, ctx: CallContext) -> Callable[[float], None]:
        def sleep(seconds: float) -> None:
            if ctx.wait(seconds):
                self.close_idle_connections()
                raise ctx.err()

        return sleep

    def _drain_before_retry(self, retry_state: RetryCallState) -> None:
        # consume any response to reuse the connection
        response = retry_state.outcome.result().outcome.response
        if response is not None:
            self._drain(response)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        last = retry_state.outcome.result()
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        self._log(
            logging.WARNING,
            "Attempt %d failed: %s. Retrying in %.2fs...",
            retry_state.attempt_number,
            last.decision.error,
            delay,
        )

    def _finalize(
        self, request: requests.PreparedRequest, last: Optional[_Attempt], attempts: int
    ) -> RPCResponse:
        if last is not None:
            outcome, decision = last.outcome, last.decision
            if (
                outcome.response is not None
                and outcome.error is None
                and decision.error is None
                and not decision.should_retry
            ):
                return self._decode(outcome.response)

        self.close_idle_connections()

        error: Optional[BaseException] = None
        if last is not None:
            if last.outcome.response is not None:
                self._drain(last.outcome.response)
            error = last.decision.error or last.outcome.error

        if error is None:
            raise GiveUpError(request.method, request.url, attempts)
        raise error

    def _decode(self, response: requests.Response) -> RPCResponse:
        try:
            data = response.json()
        finally:
            response.close()

        envelope = RPCResponse.model_validate(data)
        if envelope.error is not None:
            raise RPCError.from_object(envelope.error)
        return envelope

    def _drain(self, response: requests.Response) -> None:
        try:
            for _ in response.iter_content(chunk_size=DRAIN_LIMIT):
                break
        except (requests.exceptions.RequestException, OSError) as e:
            self._log(logging.ERROR, "error reading response body: %s", e)
        finally:
            response.close()

    def _log(self, level: int, msg: str, *args: Any) -> None:
        if self.logger is not None:
            self.logger.log(level, msg, *args)


def _buffered(request: requests.PreparedRequest) -> requests.PreparedRequest:
    """Return a request whose body can be replayed on every attempt."""
    body = request.body
    if body is None or isinstance(body, (bytes, str)):
        return request

    buffered = request.copy()
    data = body.read() if hasattr(body, "read") else b"".join(body)
    if isinstance(data, str):
        data = data.encode("utf-8")
    buffered.headers.pop("Transfer-Encoding", None)
    buffered.body = data
    buffered.prepare_content_length(data)
    return buffered
