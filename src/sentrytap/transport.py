"""Diagnostics for failed Sentry submissions.

``LogSentrySendFailures`` is a ``requests`` transport adapter that wraps the
adapter actually used to talk to Sentry. Submissions that fail (HTTP status
>= 400 or a transport error) are reported to an error handler with the
decoded event's exceptions and the response body, so failures in the
reporting path are not lost silently. DSNs are redacted from every body that
reaches the handler. Successful submissions are passed through without any
further inspection.

The adapter is a diagnostic tap only: it never retries and always returns (or
raises) exactly what the wrapped adapter did.
"""

from __future__ import annotations

import gzip
import json
import zlib
from collections.abc import Callable, Iterator
from typing import Any

import requests
from requests.adapters import BaseAdapter, HTTPAdapter
from sentry_sdk.transport import Transport

from .errors import SentryRoundTripError, redact_dsn
from .logging import get_logger

HTTP_ERROR_STATUS = 400
USER_AGENT = "sentrytap/0.1.0"
ENVELOPE_CONTENT_TYPE = "application/x-sentry-envelope"
_EVENT_ITEM_TYPES = ("event", "transaction")
_CHUNK_SIZE = 8192
_END = object()

RoundTripHandler = Callable[[requests.PreparedRequest, SentryRoundTripError], None]


def log_error_handler(request: requests.PreparedRequest, err: SentryRoundTripError) -> None:
    """Default handler: one error-level log line with the populated fields."""
    get_logger().error(err.message, **err.attributes())


class TeeStream:
    """Stream wrapper copying everything read from ``source`` into a buffer.

    ``source`` may be file-like (``read``) or an iterable of chunks, the two
    body shapes ``requests`` streams. The source is closed on ``close`` or
    when used as a context manager.
    """

    def __init__(self, source: Any) -> None:
        self._source = source
        self._chunks: Iterator[Any] | None = None if hasattr(source, "read") else iter(source)
        self._pending = b""
        self._buffer = bytearray()
        self.exhausted = False
        self.error: Exception | None = None

    def __enter__(self) -> TeeStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @staticmethod
    def _to_bytes(chunk: Any) -> bytes:
        if isinstance(chunk, str):
            return chunk.encode("utf-8")
        return bytes(chunk)

    def _next_chunk(self, size: int) -> bytes:
        if self._chunks is None:
            return self._to_bytes(self._source.read(size) if size >= 0 else self._source.read())
        # Empty chunks are skipped; only an exhausted iterator ends the stream
        while not self._pending:
            chunk = next(self._chunks, _END)
            if chunk is _END:
                return b""
            self._pending = self._to_bytes(chunk)
        if size < 0 or size >= len(self._pending):
            data, self._pending = self._pending, b""
        else:
            data, self._pending = self._pending[:size], self._pending[size:]
        return data

    def read(self, size: int = -1) -> bytes:
        if self.exhausted:
            return b""
        if size is None or size < 0:
            parts = []
            while chunk := self._next_chunk(_CHUNK_SIZE):
                parts.append(chunk)
            data = b"".join(parts)
            self.exhausted = True
        else:
            data = self._next_chunk(size)
            if not data and size:
                self.exhausted = True
        self._buffer.extend(data)
        return data

    def __iter__(self) -> Iterator[bytes]:
        while chunk := self.read(_CHUNK_SIZE):
            yield chunk

    @property
    def captured(self) -> bytes:
        return bytes(self._buffer)

    def drain(self) -> bytes:
        """Read whatever the consumer left unread; return the full copy.

        A read failure is kept on ``error`` and the partial copy returned.
        """
        if not self.exhausted and self.error is None:
            try:
                self.read()
            except Exception as exc:  # any stream fault ends inspection
                self.error = exc
        return self.captured

    def close(self) -> None:
        close = getattr(self._source, "close", None)
        if callable(close):
            close()


def _decompress(body: bytes, encoding: str | None) -> bytes:
    encoding = (encoding or "").strip().lower()
    if encoding in ("", "identity"):
        return body
    if encoding == "gzip":
        return gzip.decompress(body)
    if encoding == "deflate":
        return zlib.decompress(body)
    raise ValueError(f"unsupported content encoding {encoding!r}")


def _envelope_event(payload: bytes) -> dict[str, Any] | None:
    """First event/transaction item of a Sentry envelope, if any."""
    header_end = payload.find(b"\n")
    if header_end < 0:
        return None
    json.loads(payload[:header_end])
    pos = header_end + 1
    while pos < len(payload):
        line_end = payload.find(b"\n", pos)
        if line_end < 0:
            line_end = len(payload)
        line = payload[pos:line_end].strip()
        pos = line_end + 1
        if not line:
            continue
        item_header = json.loads(line)
        if not isinstance(item_header, dict):
            raise ValueError("envelope item header is not an object")
        length = item_header.get("length")
        if length is None:
            end = payload.find(b"\n", pos)
            end = len(payload) if end < 0 else end
            item, pos = payload[pos:end], end + 1
        else:
            item, pos = payload[pos : pos + int(length)], pos + int(length) + 1
        if item_header.get("type") in _EVENT_ITEM_TYPES:
            event = json.loads(item)
            return event if isinstance(event, dict) else None
    return None


def decode_event(body: bytes, content_encoding: str | None = None) -> dict[str, Any]:
    """Decode a Sentry request body into the event JSON.

    Accepts a bare event document or an envelope, optionally gzip/deflate
    compressed. Raises ``ValueError`` when no event can be recovered.
    """
    try:
        payload = _decompress(body, content_encoding)
    except (OSError, EOFError, zlib.error) as exc:
        raise ValueError(f"could not decompress request body: {exc}") from exc
    try:
        doc = json.loads(payload)
    except json.JSONDecodeError as exc:
        if b"\n" not in payload.strip():
            raise
        event = _envelope_event(payload)
        if event is None:
            raise ValueError("envelope holds no event item") from exc
        return event
    if not isinstance(doc, dict):
        raise ValueError(f"expected a JSON object, got {type(doc).__name__}")
    return doc


def _exception_values(event: dict[str, Any] | None) -> list[dict[str, Any]] | None:
    if event is None:
        return None
    exception = event.get("exception")
    if isinstance(exception, dict):
        exception = exception.get("values")
    return exception or None


class LogSentrySendFailures(BaseAdapter):
    """Transport adapter reporting failed Sentry submissions to ``error_handler``."""

    def __init__(
        self,
        inner: BaseAdapter | None = None,
        error_handler: RoundTripHandler = log_error_handler,
    ) -> None:
        super().__init__()
        self.inner = inner if inner is not None else HTTPAdapter()
        self.error_handler = error_handler

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        if request.body is None:
            return self.inner.send(request, **kwargs)

        body = request.body
        if isinstance(body, (bytes, bytearray, str)):
            tee = TeeStream([body])
        else:
            tee = TeeStream(body)
            request.body = tee
        with tee:
            try:
                response = self.inner.send(request, **kwargs)
            except Exception:
                request.body = self._restore(body, tee)
                self._safe_inspect(request, tee, None)
                raise
            failed = response.status_code >= HTTP_ERROR_STATUS
            request.body = self._restore(body, tee)
            if failed:
                self._safe_inspect(request, tee, response)
            return response

    @staticmethod
    def _restore(original: Any, tee: TeeStream) -> Any:
        if isinstance(original, (bytes, bytearray, str)):
            return original
        # Unread bytes are pulled in so the restored body is complete
        return tee.drain()

    def _safe_inspect(
        self,
        request: requests.PreparedRequest,
        tee: TeeStream,
        response: requests.Response | None,
    ) -> None:
        try:
            self._inspect(request, tee, response)
        except Exception as exc:  # the inner outcome is returned or raised regardless
            get_logger().log_error("sentry round trip inspection failed", error=repr(exc))

    def _inspect(
        self,
        request: requests.PreparedRequest,
        tee: TeeStream,
        response: requests.Response | None,
    ) -> None:
        status = response.status_code if response is not None else 0
        body = tee.drain()
        if tee.error is not None:
            self._emit(
                request,
                SentryRoundTripError(
                    "Sentry event send failure: error recovering request body",
                    status=status,
                    error=tee.error,
                ),
            )
            return

        event: dict[str, Any] | None = None
        try:
            event = decode_event(body, request.headers.get("Content-Encoding"))
        except (ValueError, TypeError, RecursionError) as exc:
            self._emit(
                request,
                SentryRoundTripError(
                    "Sentry event send failure: error recovering request json",
                    status=status,
                    error=exc,
                    request=redact_dsn(body),
                ),
            )

        response_body: bytes | None = None
        if response is not None:
            try:
                # requests caches the content, the caller can still read it
                response_body = redact_dsn(response.content or b"")
            except (requests.RequestException, OSError) as exc:
                self._emit(
                    request,
                    SentryRoundTripError(
                        "Sentry event send failure: error reading response body",
                        status=status,
                        error=exc,
                    ),
                )

        self._emit(
            request,
            SentryRoundTripError(
                "Sentry event",
                status=status,
                exception=_exception_values(event),
                response=response_body,
            ),
        )

    def _emit(self, request: requests.PreparedRequest, err: SentryRoundTripError) -> None:
        try:
            self.error_handler(request, err)
        except Exception as exc:  # handler faults must not reach the caller
            get_logger().log_error("sentry round trip handler failed", error=str(exc))

    def close(self) -> None:
        self.inner.close()


def mount_send_failure_logging(
    session: requests.Session,
    prefix: str = "https://",
    *,
    error_handler: RoundTripHandler = log_error_handler,
) -> LogSentrySendFailures:
    """Wrap the adapter ``session`` uses for ``prefix`` with the failure tap."""
    adapter = LogSentrySendFailures(session.get_adapter(prefix), error_handler)
    session.mount(prefix, adapter)
    return adapter


class RequestsTransport(Transport):
    """Synchronous Sentry transport sending envelopes through ``requests``.

    Every submission passes through ``LogSentrySendFailures``; use it as
    ``sentry_sdk.init(dsn, transport=RequestsTransport)``.
    """

    timeout = 30

    def __init__(
        self,
        options: dict[str, Any] | None = None,
        *,
        session: requests.Session | None = None,
        error_handler: RoundTripHandler = log_error_handler,
    ) -> None:
        super().__init__(options)
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", USER_AGENT)
        for prefix in ("https://", "http://"):
            mount_send_failure_logging(self._session, prefix, error_handler=error_handler)
        self._auth = self.parsed_dsn.to_auth(USER_AGENT) if self.parsed_dsn else None

    def capture_envelope(self, envelope: Any) -> None:
        if self._auth is None:
            return
        headers = {
            "Content-Type": ENVELOPE_CONTENT_TYPE,
            "X-Sentry-Auth": self._auth.to_header(),
        }
        try:
            self._session.post(
                self._auth.get_api_url(),
                data=envelope.serialize(),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            # already reported by the adapter; the SDK must not see it
            get_logger().debug("sentry envelope not delivered", error=str(exc))

    def kill(self) -> None:
        self._session.close()


__all__ = [
    "HTTP_ERROR_STATUS",
    "LogSentrySendFailures",
    "RequestsTransport",
    "TeeStream",
    "decode_event",
    "log_error_handler",
    "mount_send_failure_logging",
]
