"""Shared fixtures: scripted transport adapter and a local JSON-RPC server"""

from __future__ import annotations

import io
import json
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, List, Optional

import pytest
import requests
from requests.adapters import BaseAdapter

BASE_URL = "http://rpc.test/"


class TrackedResponse(requests.Response):
    """Response remembering whether it was closed"""

    was_closed = False

    def close(self):
        self.was_closed = True
        super().close()


def make_response(
    status_code: int,
    payload: Any = None,
    headers: Optional[dict] = None,
    request: Optional[requests.PreparedRequest] = None,
) -> requests.Response:
    r = TrackedResponse()
    r.status_code = status_code
    try:
        r.reason = HTTPStatus(status_code).phrase
    except ValueError:
        r.reason = ""
    if payload is None:
        body = b""
    elif isinstance(payload, bytes):
        body = payload
    elif isinstance(payload, str):
        body = payload.encode("utf-8")
    else:
        body = json.dumps(payload).encode("utf-8")
    r.raw = io.BytesIO(body)
    r.headers["Content-Type"] = "application/json"
    if headers:
        r.headers.update(headers)
    if request is not None:
        r.url = request.url
        r.request = request
    return r


class ScriptedAdapter(BaseAdapter):
    """Transport adapter replaying a script of responses/exceptions.

    Each step is a ``(status, payload)`` tuple, an exception instance to
    raise, or a callable ``(request) -> Response``. The last step repeats.
    """

    def __init__(self, *steps: Any):
        super().__init__()
        self.steps = list(steps)
        self.requests: List[requests.PreparedRequest] = []
        self.responses: List[requests.Response] = []
        self.closed = 0

    def send(self, request, **kwargs):
        self.requests.append(request)
        step = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            response = step(request)
        else:
            status, payload = step[0], step[1]
            headers = step[2] if len(step) > 2 else None
            response = make_response(status, payload, headers, request)
        self.responses.append(response)
        return response

    def close(self):
        self.closed += 1


@pytest.fixture
def scripted_session() -> Callable[..., tuple]:
    """Build ``(session, adapter)`` with the adapter mounted for BASE_URL"""

    def _build(*steps: Any):
        adapter = ScriptedAdapter(*steps)
        session = requests.Session()
        session.trust_env = False
        session.mount("http://rpc.test", adapter)
        return session, adapter

    return _build


def prepare_post(body: bytes = b'{"jsonrpc":"2.0","method":"any.method","params":null,"id":"1"}'):
    return requests.Request("POST", BASE_URL, data=body).prepare()


class _RPCHandler(BaseHTTPRequestHandler):
    def do_POST(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length)
        server = self.server
        with server.lock:
            server.received.append((dict(self.headers), body))
            count = len(server.received)
        status, payload = server.responder(count)
        if isinstance(payload, (bytes, str)):
            data = payload.encode("utf-8") if isinstance(payload, str) else payload
        else:
            data = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def rpc_server():
    """Local HTTP server; set ``server.responder = lambda n: (status, payload)``"""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _RPCHandler)
    server.received = []
    server.lock = threading.Lock()
    server.responder = lambda n: (200, {"jsonrpc": "2.0", "result": None, "id": "1"})
    server.url = f"http://127.0.0.1:{server.server_port}/"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


@pytest.fixture
def local_session():
    session = requests.Session()
    session.trust_env = False
    yield session
    session.close()
