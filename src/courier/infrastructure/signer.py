"""Request signing for the ``Authorization: Basic`` header"""

import base64
import hashlib
import hmac
from typing import Callable

# (public_key, secret, body) -> signature
Signer = Callable[[str, str, bytes], str]


def hmac256_signer(public_key: str, secret: str, body: bytes) -> str:
    """Sign a request body with HMAC-SHA256.

    The body is base64url-encoded (no padding) before hashing; the signature is
    ``base64("<public_key>:<hex digest>")``.
    """
    encoded_body = base64.urlsafe_b64encode(body).rstrip(b"=")
    digest = hmac.new(secret.encode("utf-8"), encoded_body, hashlib.sha256).hexdigest()
    return base64.b64encode(f"{public_key}:{digest}".encode("utf-8")).decode("ascii")
