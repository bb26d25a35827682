"""HTTP transport with retry, idempotency and multipart uploads.

Retry policy:
- Transient: connection errors, timeouts, HTTP 408/409/425/429 and 5xx.
  Everything else (e.g. 400/401/404/422) raises immediately.
- Up to max_retries extra attempts; delay = min(max_delay, initial * 2^(attempt-1))
  plus up to 25% jitter, still capped at max_delay.
- Per-call RetryPolicy fields win; unset fields come from the transport defaults.
- Exhausted retries -> TransportError(attempts, last_error).
- A cancel_event (threading.Event) is checked between attempts -> RequestCancelledError.

Idempotency:
- idempotent=True attaches Idempotency-Key. A caller-supplied "_idempotency_key"
  in the body wins (and is stripped); otherwise the key is derived from the body.
- One key per call, reused on every retry.

Multipart:
- Parts come from MultipartRequestBuilder (FilePart for files, scalars otherwise).
- Files are opened only inside the call (ExitStack) and closed on every exit path.
- The body is streamed with an exact Content-Length; upload progress is reported per read.
"""
from __future__ import annotations

import json
import os
import random
import threading
import time
import uuid
from contextlib import ExitStack
from dataclasses import dataclass
from typing import IO, Any, Callable, Dict, List, Optional, Tuple, Union

import requests

from .config import Settings, TransportConfig
from .errors import (
    ApiResponseError,
    ConfigError,
    FileMissingError,
    FileNotReadableError,
    RequestCancelledError,
    TransportError,
)
from .idempotency import IdempotencyService
from .logging_util import get_logger, log_exhausted, log_retry
from .types import FilePart

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int, int, int], None]

TRANSIENT_STATUS = frozenset({408, 409, 425, 429})

def is_transient_status(status: int) -> bool:
    return status in TRANSIENT_STATUS or 500 <= status <= 599

@dataclass
class RetryPolicy:
    max_retries: Optional[int] = None
    initial_delay_ms: Optional[int] = None
    max_delay_ms: Optional[int] = None

    def resolve(self, defaults: "RetryPolicy") -> "RetryPolicy":
        return RetryPolicy(
            max_retries=self.max_retries if self.max_retries is not None else defaults.max_retries,
            initial_delay_ms=self.initial_delay_ms if self.initial_delay_ms is not None else defaults.initial_delay_ms,
            max_delay_ms=self.max_delay_ms if self.max_delay_ms is not None else defaults.max_delay_ms,
        )

def backoff_delay_ms(attempt: int, initial_ms: int, max_ms: int, rand: Callable[[], float] = random.random) -> float:
    delay = min(float(max_ms), float(initial_ms) * (2 ** max(0, attempt - 1)))
    return min(float(max_ms), delay + delay * 0.25 * rand())

def api_error_from_response(resp: requests.Response) -> ApiResponseError:
    message = "API error"
    error_type = code = param = None
    try:
        body = resp.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            message = str(err.get("message") or message)
            error_type = err.get("type")
            code = str(err["code"]) if err.get("code") is not None else None
            param = err.get("param")
        elif isinstance(err, str):
            message = err
        elif isinstance(body.get("message"), str):
            message = body["message"]
    elif resp.text:
        message = resp.text[:800]

    details = [f"{k}={v}" for k, v in (("type", error_type), ("code", code), ("param", param)) if v]
    if details:
        message = f"{message} [{' '.join(details)}]"
    return ApiResponseError(resp.status_code, message, error_type, code, param)

def _field_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)

def _open_part(name: str, part: FilePart) -> IO[bytes]:
    """Open a validated upload; the file may have changed since it was checked."""
    try:
        return open(part.path, "rb")
    except FileNotFoundError as e:
        raise FileMissingError(name, "file must exist", part.path, f"{name}: file does not exist: {part.path}") from e
    except OSError as e:
        raise FileNotReadableError(
            name, "file must be readable", part.path, f"{name}: file is not readable: {part.path} ({e})"
        ) from e

class MultipartBody:
    """File-like multipart/form-data body streamed from open handles."""

    def __init__(
        self,
        parts: Dict[str, Any],
        handles: Dict[str, IO[bytes]],
        boundary: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.boundary = boundary or uuid.uuid4().hex
        self._callback = progress_callback
        self._segments: List[Union[bytes, Tuple[IO[bytes], int]]] = []
        b = self.boundary

        for name, value in parts.items():
            if value is None:
                continue
            if isinstance(value, FilePart):
                head = (
                    f"--{b}\r\n"
                    f'Content-Disposition: form-data; name="{name}"; filename="{value.filename}"\r\n'
                    f"Content-Type: {value.content_type or 'application/octet-stream'}\r\n\r\n"
                )
                handle = handles[name]
                handle.seek(0)
                self._segments.append(head.encode("utf-8"))
                self._segments.append((handle, value.size))
                self._segments.append(b"\r\n")
            else:
                self._segments.append(
                    (
                        f"--{b}\r\n"
                        f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
                        f"{_field_text(value)}\r\n"
                    ).encode("utf-8")
                )
        self._segments.append(f"--{b}--\r\n".encode("ascii"))

        self.total = sum(len(s) if isinstance(s, bytes) else s[1] for s in self._segments)
        self.sent = 0
        self._index = 0
        self._offset = 0

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def __len__(self) -> int:
        return self.total

    def read(self, size: int = -1) -> bytes:
        out = bytearray()
        while self._index < len(self._segments) and (size < 0 or len(out) < size):
            want = -1 if size < 0 else size - len(out)
            seg = self._segments[self._index]
            if isinstance(seg, bytes):
                chunk = seg[self._offset:] if want < 0 else seg[self._offset:self._offset + want]
                seg_len = len(seg)
            else:
                handle, seg_len = seg
                remaining = seg_len - self._offset
                chunk = handle.read(remaining if want < 0 else min(want, remaining))
                if not chunk and remaining > 0:
                    raise IOError(f"file shrank while uploading: {getattr(handle, 'name', '?')}")
            out += chunk
            self._offset += len(chunk)
            if self._offset >= seg_len:
                self._index += 1
                self._offset = 0

        self.sent += len(out)
        if out and self._callback is not None:
            self._callback(0, 0, self.total, self.sent)
        return bytes(out)

class Transport:
    def __init__(
        self,
        base_url: str = "https://api.openai.com",
        api_key: Optional[str] = None,
        api_key_env: str = "OPENAI_API_KEY",
        timeout: float = 60.0,
        defaults: Optional[RetryPolicy] = None,
        session: Optional[requests.Session] = None,
        idempotency: Optional[IdempotencyService] = None,
        idempotency_enabled: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.api_key_env = api_key_env
        self.timeout = timeout
        self.defaults = (defaults or RetryPolicy()).resolve(RetryPolicy(2, 200, 2000))
        self.session = session or requests.Session()
        self.idempotency = idempotency or IdempotencyService()
        self.idempotency_enabled = idempotency_enabled
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "Transport":
        t: TransportConfig = settings.transport
        kwargs.setdefault("idempotency", IdempotencyService(settings.responses.idempotency_bucket))
        kwargs.setdefault("idempotency_enabled", settings.responses.idempotency_enabled)
        return cls(
            base_url=t.base_url,
            api_key_env=t.api_key_env,
            timeout=t.timeout,
            defaults=RetryPolicy(t.max_retries, t.initial_delay_ms, t.max_delay_ms),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # public calls
    # ------------------------------------------------------------------
    def post_json(
        self,
        path: str,
        body: Dict[str, Any],
        idempotent: bool = False,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        retry: Optional[RetryPolicy] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        resp = self._post_json_raw(path, body, idempotent, headers, timeout, retry, cancel_event)
        return self._decode(resp)

    def post_binary(
        self,
        path: str,
        body: Dict[str, Any],
        idempotent: bool = False,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        retry: Optional[RetryPolicy] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> bytes:
        hdrs = dict(headers or {})
        hdrs.setdefault("Accept", "*/*")
        resp = self._post_json_raw(path, body, idempotent, hdrs, timeout, retry, cancel_event)
        return resp.content

    def post_multipart(
        self,
        path: str,
        parts: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        progress_callback: Optional[ProgressCallback] = None,
        idempotent: bool = False,
        timeout: Optional[float] = None,
        retry: Optional[RetryPolicy] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        fields = dict(parts)
        hdrs = self._headers(headers, fields, idempotent)

        with ExitStack() as stack:
            handles = {
                name: stack.enter_context(_open_part(name, part))
                for name, part in fields.items()
                if isinstance(part, FilePart)
            }

            holder: Dict[str, MultipartBody] = {}

            def send() -> requests.Response:
                body = MultipartBody(fields, handles, progress_callback=progress_callback)
                holder["body"] = body
                h = dict(hdrs)
                h["Content-Type"] = body.content_type
                return self.session.post(
                    self._url(path), data=body, headers=h, timeout=timeout or self.timeout
                )

            resp = self._request_with_retry(path, send, retry, cancel_event)

        if progress_callback is not None:
            body = holder["body"]
            received = len(resp.content or b"")
            progress_callback(received, received, body.total, body.sent)
        return self._decode(resp)

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _post_json_raw(self, path, body, idempotent, headers, timeout, retry, cancel_event) -> requests.Response:
        payload = dict(body)
        hdrs = self._headers(headers, payload, idempotent)
        hdrs.setdefault("Content-Type", "application/json")

        def send() -> requests.Response:
            return self.session.post(self._url(path), json=payload, headers=hdrs, timeout=timeout or self.timeout)

        return self._request_with_retry(path, send, retry, cancel_event)

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _api_key(self) -> str:
        key = (self.api_key or os.getenv(self.api_key_env) or "").strip().strip(" \"'`")
        if not key:
            raise ConfigError(f"Missing environment variable: {self.api_key_env}")
        return key

    def _headers(self, extra: Optional[Dict[str, str]], payload: Dict[str, Any], idempotent: bool) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self._api_key()}", "Accept": "application/json"}
        headers.update(extra or {})

        supplied = payload.pop("_idempotency_key", None)
        if idempotent and self.idempotency_enabled:
            if isinstance(supplied, str) and supplied:
                headers["Idempotency-Key"] = supplied
            else:
                headers.setdefault("Idempotency-Key", self.idempotency.build_key(payload))
        return headers

    def _wait(self, seconds: float, cancel_event: Optional[threading.Event]) -> None:
        if seconds <= 0:
            return
        if cancel_event is not None:
            cancel_event.wait(seconds)
        else:
            self._sleep(seconds)

    def _request_with_retry(
        self,
        path: str,
        send: Callable[[], requests.Response],
        retry: Optional[RetryPolicy],
        cancel_event: Optional[threading.Event],
    ) -> requests.Response:
        policy = (retry or RetryPolicy()).resolve(self.defaults)
        attempts = 0
        last_error: Optional[BaseException] = None

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise RequestCancelledError(attempts)

            attempts += 1
            try:
                resp = send()
            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = e
            except requests.RequestException as e:
                raise TransportError("request failed", attempts, e) from e
            else:
                if resp.status_code < 400:
                    return resp
                err = api_error_from_response(resp)
                if not is_transient_status(resp.status_code):
                    raise err
                last_error = err

            if attempts > policy.max_retries:
                log_exhausted(logger, path, attempts, last_error)
                raise TransportError("maximum retry attempts exceeded", attempts, last_error) from last_error

            delay_ms = backoff_delay_ms(attempts, policy.initial_delay_ms, policy.max_delay_ms)
            log_retry(logger, path, attempts, policy.max_retries + 1, last_error, delay_ms)
            self._wait(delay_ms / 1000.0, cancel_event)

    @staticmethod
    def _decode(resp: requests.Response) -> Dict[str, Any]:
        content_type = (resp.headers.get("Content-Type") or "").lower()
        if content_type.startswith("text/plain"):
            return {"text": resp.text}
        try:
            data = resp.json()
        except ValueError as e:
            raise ApiResponseError(resp.status_code, f"response is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ApiResponseError(resp.status_code, "unexpected response format")
        return data
