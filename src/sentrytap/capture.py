"""Framework-neutral reporting of 500 responses.

Web framework middlewares record the status and body of each response they
serve and call ``capture_if_server_error`` once the handler has finished.
"""

from __future__ import annotations

from typing import Any

from sentry_sdk.utils import event_from_exception

from .config import DEFAULT_CONFIG, TapConfig
from .errors import CapturedFailure
from .fingerprint import ErrorHandler, client_with_fingerprint, default_fingerprint_error_handler

SERVER_ERROR_STATUS = 500


def captured_failure(url: str, body: str, config: TapConfig = DEFAULT_CONFIG) -> CapturedFailure:
    return CapturedFailure(url, body if config.log_response_bodies else "")


def capture_server_error(
    client: Any,
    url: str,
    body: str = "",
    *,
    config: TapConfig = DEFAULT_CONFIG,
    on_error: ErrorHandler = default_fingerprint_error_handler,
    scope: Any = None,
) -> str | None:
    """Report a 500 response for ``url`` through a fingerprinting copy of ``client``.

    Returns the Sentry event id, or ``None`` if the event was dropped.
    """
    failure = captured_failure(url, body, config)
    reporter = client_with_fingerprint(client, on_error, config)
    try:
        raise failure
    except CapturedFailure as exc:
        # raising attaches a traceback, as a middleware-raised error would have
        exc_info = (type(exc), exc, exc.__traceback__)
    event, hint = event_from_exception(exc_info, client_options=reporter.options)
    return reporter.capture_event(event, hint=hint, scope=scope)


def capture_if_server_error(
    client: Any,
    status: int,
    url: str,
    body: str = "",
    **kwargs: Any,
) -> str | None:
    if status != SERVER_ERROR_STATUS:
        return None
    return capture_server_error(client, url, body, **kwargs)


__all__ = [
    "SERVER_ERROR_STATUS",
    "capture_if_server_error",
    "capture_server_error",
    "captured_failure",
]
