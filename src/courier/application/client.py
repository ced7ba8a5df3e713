"""JSON-RPC client: builds, signs and delivers calls"""

from __future__ import annotations

import logging
from typing import Any, Optional, Type, TypeVar

import requests
from pydantic import TypeAdapter
from requests.auth import AuthBase

from courier.domain.config import AppConfig, ClientConfig
from courier.domain.models.envelope import RPCRequest
from courier.infrastructure.context import CallContext
from courier.infrastructure.http_client import RequestExecutor
from courier.infrastructure.retry import NopRequestRetryer, RequestRetryer, build_retryer
from courier.infrastructure.signer import Signer, hmac256_signer

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTENT_TYPE = "application/json; charset=utf-8"


class SignatureAuth(AuthBase):
    """Sets ``Authorization: Basic <signature>`` on the prepared request.

    An explicit auth object also keeps requests from replacing the header
    with credentials found in ~/.netrc.
    """

    def __init__(self, signature: str):
        self.signature = signature

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        request.headers["Authorization"] = f"Basic {self.signature}"
        return request


class Client:
    """Calls remote JSON-RPC methods over HTTP POST.

    Retryer, signer and session are fixed at construction and shared by all
    calls; a client can be used from several threads at once.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: Optional[requests.Session] = None,
        retryer: Optional[RequestRetryer] = None,
        signer: Optional[Signer] = None,
        logger: Optional[logging.Logger] = logger,
    ):
        self.config = config
        self.signer: Signer = signer or hmac256_signer
        self.logger = logger
        self.executor = RequestExecutor(
            session=session,
            retryer=retryer or NopRequestRetryer(),
            timeout=config.timeout,
            logger=logger,
        )

    @classmethod
    def from_config(cls, config: AppConfig, **kwargs: Any) -> "Client":
        """Create a client whose retryer follows the ``retry`` section"""
        kwargs.setdefault("retryer", build_retryer(config.retry))
        return cls(config.client, **kwargs)

    @property
    def session(self) -> requests.Session:
        return self.executor.session

    def call(
        self,
        method: str,
        params: Any = None,
        result_type: Optional[Type[T]] = None,
        *,
        ctx: Optional[CallContext] = None,
        request_id: str = "1",
    ) -> Any:
        """Call a remote method

        Args:
            method: JSON-RPC method name
            params: Anything JSON-serializable by pydantic (dicts, models, ...)
            result_type: Type to validate the result into (raw JSON if None)
            ctx: Cancellation context for the call
            request_id: JSON-RPC request id

        Returns:
            The ``result`` member of the response

        Raises:
            ClientError: If the call failed (see ``RequestExecutor.send``)
            ValueError: If the response body is not valid JSON
        """
        body = RPCRequest(method=method, params=params, id=request_id or "1").to_bytes()
        if self.logger is not None:
            self.logger.debug("request body: %s", body.decode("utf-8"))

        signature = self.signer(self.config.public_key, self.config.secret.get_secret_value(), body)
        request = requests.Request(
            "POST",
            self.config.base_url,
            data=body,
            headers={"Content-Type": CONTENT_TYPE, "Accept": CONTENT_TYPE},
            auth=SignatureAuth(signature),
        )
        prepared = self.session.prepare_request(request)

        envelope = self.executor.send(prepared, ctx)
        if result_type is None:
            return envelope.result
        return TypeAdapter(result_type).validate_python(envelope.result)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
