from __future__ import annotations

import random
import socket
import threading
import time
from contextlib import suppress
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
import requests

from trafficsync.common.errors import MalformedPayload, NetworkFailure, RequestTimeout
from trafficsync.common.http import (
    CancellationToken,
    HttpClient,
    HttpStatusError,
    RetryConfig,
    RetryableHttpError,
    TimeoutConfig,
)
from trafficsync.harvest.legacy_xml import parse_camera_xml


class FakeResponse:
    def __init__(self, status_code: int, body: bytes = b"", encoding: str | None = "utf-8"):
        self.status_code = status_code
        self.encoding = encoding
        self._body = body
        self.closed = False

    def iter_content(self, chunk_size: int):
        for start in range(0, len(self._body), chunk_size):
            yield self._body[start : start + chunk_size]

    def close(self):
        self.closed = True


class HangingResponse:
    status_code = 200
    encoding = "utf-8"

    def __init__(self):
        self.closed = threading.Event()

    def iter_content(self, chunk_size: int):
        yield b"<cameras>"
        time.sleep(0.3)
        yield b"<camera/>"
        time.sleep(0.3)
        yield b"</cameras>"

    def close(self):
        self.closed.set()


def test_http_get_json_success(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))

    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(200, b'{"ok": true}'))
    payload = client.get_json("https://example.com")

    assert payload == {"ok": True}


def test_http_get_text_passes_stream_and_bounded_timeout(monkeypatch):
    seen = {}

    def fake_request(**kwargs):
        seen.update(kwargs)
        return FakeResponse(200, "<cameras/>".encode("utf-8"))

    client = HttpClient(timeout=TimeoutConfig(connect=20, read=30, deadline=12))
    monkeypatch.setattr(client.session, "request", fake_request)

    assert client.get_text("https://example.com/cams") == "<cameras/>"
    assert seen["stream"] is True
    assert seen["timeout"] == (12, 12)
    assert "trafficsync" in seen["headers"]["User-Agent"]


def test_http_non_ok_status_raises_and_closes(monkeypatch):
    response = FakeResponse(404, b"missing")
    client = HttpClient()
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: response)

    with pytest.raises(HttpStatusError) as excinfo:
        client.get_text("https://example.com")

    assert excinfo.value.status_code == 404
    assert response.closed is True


def test_http_retryable_status_raises_retryable_error(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(503, b"{}"))

    with pytest.raises(RetryableHttpError):
        client.get_json("https://example.com")


def test_http_retries_retryable_status_when_configured(monkeypatch):
    responses = [FakeResponse(503), FakeResponse(200, b"[1, 2]")]
    client = HttpClient()
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: responses.pop(0))

    payload = client.get_json(
        "https://example.com",
        retry_config=RetryConfig(max_attempts=2, multiplier=0, max_wait=0),
    )

    assert payload == [1, 2]
    assert responses == []


def test_http_invalid_json_raises_malformed_payload(monkeypatch):
    client = HttpClient()
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(200, b"<html>"))

    with pytest.raises(MalformedPayload):
        client.get_json("https://example.com")


def test_http_connection_error_is_network_failure(monkeypatch):
    def boom(**_kwargs):
        raise requests.ConnectionError("refused")

    client = HttpClient()
    monkeypatch.setattr(client.session, "request", boom)

    with pytest.raises(NetworkFailure):
        client.get_text("https://example.com")


def test_http_transport_timeout_is_request_timeout(monkeypatch):
    def slow(**_kwargs):
        raise requests.ReadTimeout("too slow")

    client = HttpClient()
    monkeypatch.setattr(client.session, "request", slow)

    with pytest.raises(RequestTimeout):
        client.get_text("https://example.com")


def test_http_deadline_stops_reading_and_closes_response(monkeypatch):
    response = HangingResponse()
    client = HttpClient(timeout=TimeoutConfig(connect=1, read=1, deadline=0.05))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: response)

    with pytest.raises(RequestTimeout):
        client.get_text("https://example.com/slow")

    assert response.closed.is_set()


def test_cancellation_token_runs_callbacks_once():
    token = CancellationToken()
    calls: list[str] = []
    token.on_cancel(lambda: calls.append("a"))

    token.cancel()
    token.cancel()
    token.on_cancel(lambda: calls.append("late"))

    assert token.cancelled is True
    assert calls == ["a", "late"]
    with pytest.raises(RequestTimeout):
        token.raise_if_cancelled("https://example.com")


class TrickleServer:
    """Localhost server that answers one request a line (or byte) at a time."""

    def __init__(self, head: bytes, trickle: bytes, interval: float = 0.5, count: int = 20):
        self.head = head
        self.trickle = trickle
        self.interval = interval
        self.count = count
        self.stopped = threading.Event()
        self.listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.listener.bind(("127.0.0.1", 0))
        self.listener.listen(1)
        self.thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def url(self) -> str:
        host, port = self.listener.getsockname()
        return f"http://{host}:{port}/cameras"

    def _serve(self):
        conn, _addr = self.listener.accept()
        with conn, suppress(OSError):
            conn.recv(65536)
            conn.sendall(self.head)
            for _ in range(self.count):
                if self.stopped.wait(self.interval):
                    return
                conn.sendall(self.trickle)

    def __enter__(self):
        self.thread.start()
        return self

    def __exit__(self, *_exc):
        self.stopped.set()
        self.listener.close()
        self.thread.join(timeout=2)


def _local_client(deadline: float) -> HttpClient:
    client = HttpClient(timeout=TimeoutConfig(connect=3, read=3, deadline=deadline))
    client.session.trust_env = False
    return client


@pytest.mark.parametrize(
    "head,trickle",
    [
        (b"HTTP/1.1 200 OK\r\n", b"X-Pad: 1\r\n"),
        (b"HTTP/1.1 200 OK\r\nContent-Type: text/xml\r\nContent-Length: 100\r\n\r\n", b"<"),
    ],
    ids=["headers", "body"],
)
def test_http_deadline_aborts_slow_socket(head, trickle):
    client = _local_client(deadline=1.0)

    with TrickleServer(head, trickle) as server:
        started = time.monotonic()
        with pytest.raises(RequestTimeout):
            client.get_text(server.url)
        elapsed = time.monotonic() - started

    client.close()
    assert elapsed < 2.5


class _XmlHandler(BaseHTTPRequestHandler):
    body = (
        "<cameras><camera><id>9</id><name>SH1: Taupō</name>"
        "<latitude>-38.68</latitude><longitude>176.07</longitude></camera></cameras>"
    ).encode("utf-8")

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Type", "text/xml")
        self.send_header("Content-Length", str(len(self.body)))
        self.end_headers()
        self.wfile.write(self.body)

    def log_message(self, *_args):
        pass


def test_http_text_without_charset_decodes_as_utf8():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _XmlHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    client = _local_client(deadline=5.0)
    try:
        host, port = server.server_address
        text = client.get_text(f"http://{host}:{port}/cameras")
    finally:
        client.close()
        server.shutdown()
        server.server_close()

    records = parse_camera_xml(text, random.Random(0))
    assert [record.name for record in records] == ["SH1: Taupō"]


def test_http_declared_charset_is_honoured(monkeypatch):
    response = FakeResponse(200, "Taupō".encode("utf-16"))
    response.headers = {"Content-Type": "text/plain; charset=utf-16"}
    client = HttpClient()
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: response)

    assert client.get_text("https://example.com") == "Taupō"


def test_http_deadline_in_header_phase_maps_to_timeout_not_network_failure(monkeypatch):
    client = HttpClient(timeout=TimeoutConfig(connect=1, read=1, deadline=0.05))

    def stalled(**_kwargs):
        time.sleep(0.2)
        raise AttributeError("'NoneType' object has no attribute 'readline'")

    monkeypatch.setattr(client.session, "request", stalled)

    with pytest.raises(RequestTimeout):
        client.get_text("https://example.com/stalled")
