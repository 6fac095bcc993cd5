"""Sentry fingerprinting for captured 500 responses.

Group on the URL and the beginning of the response body. The same URL can
fail in different ways, so the body is part of the key, but the longer the
body the more likely it holds variable content (timestamps, request ids).
Only a short snippet is used. The URL path is normalized so segments holding
ids collapse into a placeholder.

See: https://docs.sentry.io/platforms/python/usage/sdk-fingerprinting/
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import sentry_sdk
from sentry_sdk.utils import BadDsn

from .classify import BeforeSend, Event, Hint, original_exception
from .config import DEFAULT_CONFIG, TapConfig
from .errors import CapturedFailure
from .logging import get_logger
from .normalize import normalize_path, parse_url

ErrorHandler = Callable[[Exception], None]


def fingerprint_key(
    failure: CapturedFailure, *, placeholder: str = "", snippet_length: int = 15
) -> list[str]:
    """``[normalized_path, body_snippet]`` for ``failure``.

    The snippet is the first ``snippet_length`` bytes of the UTF-8 body.

    Raises ``ValueError`` when the URL cannot be parsed.
    """
    # Byte prefix; a multi-byte character cut at the boundary is dropped
    snippet = failure.body.encode("utf-8")[:snippet_length].decode("utf-8", errors="ignore")
    path = normalize_path(parse_url(failure.url).path, placeholder)
    return [path, snippet]


def sentry_fingerprint(event: Event, hint: Hint, config: TapConfig = DEFAULT_CONFIG) -> None:
    oe = original_exception(hint)
    if isinstance(oe, CapturedFailure):
        event["fingerprint"] = fingerprint_key(
            oe, placeholder=config.path_placeholder, snippet_length=config.snippet_length
        )


def default_fingerprint_error_handler(err: Exception) -> None:
    get_logger().log_error("error during fingerprinting", error=str(err))


def make_fingerprint_hook(
    on_error: ErrorHandler = default_fingerprint_error_handler,
    config: TapConfig = DEFAULT_CONFIG,
) -> BeforeSend:
    def _before_send(event: Event, hint: Hint) -> Event:
        try:
            sentry_fingerprint(event, hint, config)
        except ValueError as exc:
            on_error(exc)
        return event

    return _before_send


def _chain(first: BeforeSend, second: BeforeSend | None) -> BeforeSend:
    if second is None:
        return first

    def _before_send(event: Event, hint: Hint) -> Event | None:
        result = first(event, hint)
        if result is None:
            return None
        return second(result, hint)

    return _before_send


def client_with_fingerprint(
    client: Any,
    on_error: ErrorHandler = default_fingerprint_error_handler,
    config: TapConfig = DEFAULT_CONFIG,
) -> Any:
    """Copy of ``client`` that fingerprints ``CapturedFailure`` events.

    Stack traces are disabled: for a captured 500 the only frame is the
    middleware that reported it. An existing ``before_send`` still runs after
    fingerprinting. The original client is returned if a new one cannot be
    built.
    """
    options: dict[str, Any] = dict(getattr(client, "options", None) or {})
    options["attach_stacktrace"] = False
    options["before_send"] = _chain(
        make_fingerprint_hook(on_error, config), options.get("before_send")
    )
    try:
        return sentry_sdk.Client(**options)
    except (BadDsn, TypeError) as exc:
        get_logger().log_error("could not build fingerprinting client", error=str(exc))
        return client


__all__ = [
    "client_with_fingerprint",
    "default_fingerprint_error_handler",
    "fingerprint_key",
    "make_fingerprint_hook",
    "sentry_fingerprint",
]
