"""Call a JSON-RPC method against a throwaway local server.

The mock server does not authenticate requests; a real endpoint needs real
credentials in ``ClientConfig``.
"""

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from pydantic import BaseModel

from courier.application.client import Client
from courier.domain.config import ClientConfig
from courier.domain.errors import ClientError
from courier.infrastructure.context import CallContext
from courier.infrastructure.retry import ConstantRequestRetryer


class MerchantRequest(BaseModel):
    merchant_id: int


class MerchantDetails(BaseModel):
    merchant_id: int
    name: str


class _MockHandler(BaseHTTPRequestHandler):
    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length") or 0))
        body = b'{"jsonrpc": "2.0", "result": {"merchant_id": 1, "name": "City Tours"}, "id": "1"}'
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


def main():
    logging.basicConfig(level=logging.DEBUG, format="[%(levelname)s] %(message)s")

    server = ThreadingHTTPServer(("127.0.0.1", 0), _MockHandler)
    threading.Thread(target=server.serve_forever, daemon=True).start()
    print(f"server is running on port {server.server_port}")

    config = ClientConfig(
        public_key="key",
        secret="secret",
        base_url=f"http://127.0.0.1:{server.server_port}",
    )
    try:
        with Client(config, retryer=ConstantRequestRetryer(3, 0.5)) as client:
            details = client.call(
                "merchant.GetDetails",
                MerchantRequest(merchant_id=1),
                result_type=MerchantDetails,
                ctx=CallContext(timeout=10),
            )
        print(f"response: {details}")
    except ClientError as e:
        print(f"request failed: {e}")
    finally:
        server.shutdown()
        server.server_close()
        print("server is terminated")


if __name__ == "__main__":
    main()
