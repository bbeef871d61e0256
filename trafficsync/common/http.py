"""HTTP client with hard per-request deadlines and optional retries."""

from __future__ import annotations

import json
import socket
import threading
from contextlib import contextmanager, suppress
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Callable, Iterator

import requests
from requests.adapters import HTTPAdapter
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

from trafficsync.common.constants import REQUEST_TIMEOUT_SECONDS, USER_AGENT
from trafficsync.common.errors import MalformedPayload, NetworkFailure, PipelineError, RequestTimeout

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}
CHUNK_SIZE = 64 * 1024
DEFAULT_CHARSET = "utf-8"


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = REQUEST_TIMEOUT_SECONDS
    read: float = REQUEST_TIMEOUT_SECONDS
    deadline: float = REQUEST_TIMEOUT_SECONDS


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 1
    multiplier: float = 1.0
    max_wait: float = 10.0


class HttpRequestError(NetworkFailure):
    error_code = "HTTP_ERROR"


class HttpStatusError(HttpRequestError):
    error_code = "HTTP_STATUS"

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"HTTP status {status_code} from {url}")
        self.url = url
        self.status_code = status_code


class RetryableHttpError(HttpStatusError):
    pass


class CancellationToken:
    """One-shot cancellation signal shared between a deadline timer and a request.

    Callbacks registered with :meth:`on_cancel` run on the timer thread when the token
    fires. Pooled connections register a socket shutdown here, so a read blocked on
    a slow peer returns at the deadline instead of at the next transport timeout.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._callbacks: list[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            callback()

    def raise_if_cancelled(self, url: str = "") -> None:
        if self._event.is_set():
            raise RequestTimeout(f"Request cancelled after deadline: {url}")


@contextmanager
def cancel_after(seconds: float) -> Iterator[CancellationToken]:
    token = CancellationToken()
    timer = threading.Timer(seconds, token.cancel)
    timer.daemon = True
    timer.start()
    try:
        yield token
    finally:
        timer.cancel()


_request_scope = threading.local()


def _active_token() -> CancellationToken | None:
    return getattr(_request_scope, "token", None)


@contextmanager
def _bind_token(token: CancellationToken) -> Iterator[CancellationToken]:
    _request_scope.token = token
    try:
        yield token
    finally:
        _request_scope.token = None


class _AbortableConnectionMixin:
    sock: socket.socket | None

    def connect(self) -> None:
        super().connect()
        token = _active_token()
        if token is not None and token.cancelled:
            self.abort()

    def abort(self) -> None:
        sock = self.sock
        if sock is None:
            return
        # shutdown() wakes a recv blocked on another thread; close() does not.
        with suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)


class _AbortableHTTPConnection(_AbortableConnectionMixin, HTTPConnection):
    pass


class _AbortableHTTPSConnection(_AbortableConnectionMixin, HTTPSConnection):
    pass


class _DeadlinePoolMixin:
    def _get_conn(self, timeout: float | None = None):
        conn = super()._get_conn(timeout)
        token = _active_token()
        if token is not None:
            token.on_cancel(conn.abort)
        return conn


class _DeadlineHTTPConnectionPool(_DeadlinePoolMixin, HTTPConnectionPool):
    ConnectionCls = _AbortableHTTPConnection


class _DeadlineHTTPSConnectionPool(_DeadlinePoolMixin, HTTPSConnectionPool):
    ConnectionCls = _AbortableHTTPSConnection


class DeadlineAdapter(HTTPAdapter):
    """Transport adapter whose connections are torn down when the bound deadline fires."""

    def init_poolmanager(self, *args, **kwargs) -> None:
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": _DeadlineHTTPConnectionPool,
            "https": _DeadlineHTTPSConnectionPool,
        }


def _declared_charset(response) -> str | None:
    headers = getattr(response, "headers", None) or {}
    content_type = headers.get("Content-Type") or ""
    for param in content_type.split(";")[1:]:
        key, _, value = param.strip().partition("=")
        if key.lower() == "charset" and value:
            return value.strip("\"'")
    return None


@dataclass(frozen=True)
class FetchedResponse:
    url: str
    status_code: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        try:
            return json.loads(self.text)
        except ValueError as exc:
            raise MalformedPayload(f"Invalid JSON payload from {self.url}") from exc


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.session = requests.Session()
        adapter = DeadlineAdapter()
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self, accept: str, headers: dict[str, str] | None) -> dict[str, str]:
        out = {"User-Agent": USER_AGENT, "Accept": accept}
        if headers:
            out.update(headers)
        return out

    def _raise_for_status_or_retry(self, url: str, status: int) -> None:
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableHttpError(url, status)
        if not 200 <= status < 300:
            raise HttpStatusError(url, status)

    def _read_body(self, response, token: CancellationToken, url: str) -> bytes:
        chunks: list[bytes] = []
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                token.raise_if_cancelled(url)
                if chunk:
                    chunks.append(chunk)
        except PipelineError:
            raise
        except (requests.RequestException, OSError, ValueError) as exc:
            if token.cancelled or isinstance(exc, requests.Timeout):
                raise RequestTimeout(f"Request timed out while reading {url}") from exc
            raise NetworkFailure(f"Connection dropped while reading {url}: {exc}") from exc
        except Exception as exc:
            if token.cancelled:
                raise RequestTimeout(f"Request cancelled while reading {url}") from exc
            raise
        token.raise_if_cancelled(url)
        return b"".join(chunks)

    def _decode(self, response, body: bytes) -> str:
        # requests assumes ISO-8859-1 for text/* without a charset; the feeds are UTF-8.
        encoding = _declared_charset(response) or DEFAULT_CHARSET
        try:
            return body.decode(encoding, errors="replace")
        except LookupError:
            return body.decode(DEFAULT_CHARSET, errors="replace")

    def _fetch(
        self,
        url: str,
        *,
        params: dict[str, Any] | None,
        accept: str,
        headers: dict[str, str] | None,
        timeout: TimeoutConfig | None,
    ) -> FetchedResponse:
        req_timeout = timeout or self.timeout
        connect = min(req_timeout.connect, req_timeout.deadline)
        read = min(req_timeout.read, req_timeout.deadline)

        with cancel_after(req_timeout.deadline) as token, _bind_token(token):
            try:
                response = self.session.request(
                    method="GET",
                    url=url,
                    params=params,
                    headers=self._headers(accept, headers),
                    timeout=(connect, read),
                    stream=True,
                )
            except requests.RequestException as exc:
                if token.cancelled or isinstance(exc, requests.Timeout):
                    raise RequestTimeout(f"Request to {url} timed out") from exc
                raise NetworkFailure(f"Request to {url} failed: {exc}") from exc
            except Exception as exc:
                if token.cancelled:
                    raise RequestTimeout(f"Request to {url} cancelled after deadline") from exc
                raise

            try:
                self._raise_for_status_or_retry(url, response.status_code)
                body = self._read_body(response, token, url)
            finally:
                response.close()

        return FetchedResponse(url=url, status_code=response.status_code, text=self._decode(response, body))

    def fetch(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        accept: str = "*/*",
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
        retry_config: RetryConfig | None = None,
    ) -> FetchedResponse:
        policy = retry_config or self.retry

        @retry(
            stop=stop_after_attempt(max(policy.max_attempts, 1)),
            wait=wait_exponential_jitter(
                initial=policy.multiplier,
                max=policy.max_wait,
                jitter=1.0,
            ),
            retry=retry_if_exception_type(RetryableHttpError),
            reraise=True,
        )
        def _wrapped() -> FetchedResponse:
            return self._fetch(url, params=params, accept=accept, headers=headers, timeout=timeout)

        return _wrapped()

    def get_text(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
        retry_config: RetryConfig | None = None,
    ) -> str:
        return self.fetch(
            url,
            params=params,
            accept="application/xml, text/xml, text/plain, */*",
            headers=headers,
            timeout=timeout,
            retry_config=retry_config,
        ).text

    def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
        retry_config: RetryConfig | None = None,
    ) -> Any:
        return self.fetch(
            url,
            params=params,
            accept="application/json",
            headers=headers,
            timeout=timeout,
            retry_config=retry_config,
        ).json()
