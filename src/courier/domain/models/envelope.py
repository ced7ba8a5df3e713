"""JSON-RPC 2.0 envelope models"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict

from courier.domain.errors import ClientError

JSONRPC_VERSION = "2.0"


class RPCRequest(BaseModel):
    """Outgoing call envelope"""

    jsonrpc: str = JSONRPC_VERSION
    method: str
    params: Any = None
    id: str = "1"

    def to_bytes(self) -> bytes:
        """Serialize to compact JSON bytes (the exact payload that gets signed)"""
        return self.model_dump_json().encode("utf-8")


class RPCErrorObject(BaseModel):
    """Protocol-level error carried by a response"""

    code: int = 0
    message: str = ""


class RPCResponse(BaseModel):
    """Incoming response envelope.

    Every field is optional: ``{}`` is a successful response without result.
    """

    model_config = ConfigDict(extra="ignore")

    jsonrpc: Optional[str] = None
    result: Any = None
    error: Optional[RPCErrorObject] = None
    id: Optional[Union[str, int]] = None


class RPCError(ClientError):
    """Server accepted the request but the method call failed"""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{message} ({code})")

    @classmethod
    def from_object(cls, error: RPCErrorObject) -> "RPCError":
        return cls(error.code, error.message)
