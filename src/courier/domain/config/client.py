"""Client connection configuration model."""

from pydantic import BaseModel, Field, SecretStr

BASE_URL_V3 = "https://api.client.ch/v3"


class ClientConfig(BaseModel):
    """Configuration for the API endpoint and credentials.

    Attributes:
        public_key: Public key sent as part of the request signature
        secret: Shared secret used to sign request bodies
        base_url: JSON-RPC endpoint (every call is a POST to it)
        timeout: Per-attempt HTTP timeout in seconds
    """

    public_key: str = ""
    secret: SecretStr = SecretStr("")
    base_url: str = BASE_URL_V3
    timeout: float = Field(60.0, gt=0.0)
