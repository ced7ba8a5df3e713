"""Errors raised by the JSON-RPC client.

Every terminal failure of a call surfaces as one of these (or as a decode
error raised verbatim by the JSON layer).
"""

from __future__ import annotations

from typing import Optional


class ClientError(Exception):
    """Base class for client errors."""

    pass


class TransportError(ClientError):
    """The HTTP exchange itself failed (no usable response).

    Formats as ``<METHOD> "<URL>": <cause>``.
    """

    def __init__(self, method: str, url: str, cause: object):
        self.method = method
        self.url = url
        self.cause = cause
        super().__init__(f'{method} "{url}": {cause}')
        if isinstance(cause, BaseException):
            self.__cause__ = cause


class UnknownAuthorityError(TransportError):
    """Server certificate is not signed by a trusted authority."""

    REASON = "x509: certificate signed by unknown authority"

    def __init__(self, method: str, url: str, cause: Optional[BaseException] = None):
        super().__init__(method, url, self.REASON)
        if cause is not None:
            self.__cause__ = cause


class UnexpectedStatusError(ClientError):
    """Server answered with a non-2xx status."""

    def __init__(self, status_code: int, status: str):
        self.status_code = status_code
        self.status = status
        super().__init__(f"unexpected HTTP status: {status}")


class GiveUpError(ClientError):
    """Loop stopped without any classified error."""

    def __init__(self, method: str, url: str, attempts: int):
        self.attempts = attempts
        super().__init__(f"{method} {url} giving up after {attempts} attempt(s)")


class CancelledError(ClientError):
    """Call context was cancelled."""

    def __init__(self, message: str = "context canceled"):
        super().__init__(message)


class DeadlineExceededError(CancelledError):
    """Call context deadline passed."""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)
