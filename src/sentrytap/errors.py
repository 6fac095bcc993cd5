"""Error types & DSN redaction.

Public API:
- CapturedFailure: the exception framework adapters capture for a 500 response
- SentryRoundTripError: diagnostic record for a failed Sentry submission
- redact_dsn(body) -> bytes / redact_dsn_text(text) -> str

Sentry ingestion URLs embed the project key in the host/path, so any request
or response body that is logged passes through the redactor first.
"""
from __future__ import annotations

import re
from typing import Any

_DSN_PATTERN = re.compile(rb"""[^ '"]+sentry\.io/[^ '"]+""")
_DSN_TEXT_PATTERN = re.compile(r"""[^ '"]+sentry\.io/[^ '"]+""")

REDACTION_PLACEHOLDER = "REDACTED"


def redact_dsn(body: bytes) -> bytes:
    """Replace every credential-bearing ``*sentry.io/*`` run with ``REDACTED``."""
    if not body:
        return body
    return _DSN_PATTERN.sub(REDACTION_PLACEHOLDER.encode("ascii"), body)


def redact_dsn_text(text: str) -> str:
    if not text:
        return text
    return _DSN_TEXT_PATTERN.sub(REDACTION_PLACEHOLDER, text)


class CapturedFailure(Exception):
    """A server response with status 500, reported to Sentry by URL and body."""

    def __init__(self, url: str, body: str = "") -> None:
        super().__init__(f"500 {url}:{body}")
        self.url = url
        self.body = body


class SentryRoundTripError(RuntimeError):
    """Raised (or handed to a handler) when submitting an event to Sentry failed."""

    def __init__(
        self,
        message: str,
        *,
        status: int = 0,
        error: BaseException | None = None,
        request: bytes | None = None,
        exception: list[dict[str, Any]] | None = None,
        response: bytes | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.error = error
        self.request = request
        self.exception = exception
        self.response = response

    def attributes(self) -> dict[str, Any]:
        """Populated fields as log attributes; absent fields are omitted."""
        attrs: dict[str, Any] = {}
        if self.status:
            attrs["status"] = self.status
        if self.exception is not None:
            attrs["exception"] = repr(self.exception)
        if self.request is not None:
            attrs["request"] = self.request.decode("utf-8", errors="replace")
        if self.response is not None:
            attrs["response"] = self.response.decode("utf-8", errors="replace")
        if self.error is not None:
            # transport exceptions quote the ingest URL, which carries the key
            attrs["error"] = redact_dsn_text(str(self.error))
        return attrs

    def __str__(self) -> str:
        text = self.message
        if self.error is not None:
            text += f": {redact_dsn_text(str(self.error))}"
        pairs = [
            f"{k}={v}" for k, v in self.attributes().items() if k != "error"
        ]
        if pairs:
            text += " " + " ".join(pairs)
        return text


__all__ = [
    "REDACTION_PLACEHOLDER",
    "CapturedFailure",
    "SentryRoundTripError",
    "redact_dsn",
    "redact_dsn_text",
]
