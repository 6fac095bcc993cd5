"""sentrytap - make Sentry reporting failures visible and server errors group well.

High-level public API:

import requests, sentry_sdk
from sentrytap import (
    RequestsTransport, client_with_fingerprint, make_error_type_filter,
    mount_send_failure_logging,
)

# Route Sentry traffic through the failure-logging adapter
sentry_sdk.init(dsn, transport=RequestsTransport,
                before_send=make_error_type_filter())

# Or tap an existing requests session
mount_send_failure_logging(session)

# Group 500 responses by normalized path and body snippet
capture_if_server_error(client, status, url, body)
"""

from __future__ import annotations

from .capture import capture_if_server_error, capture_server_error, captured_failure
from .classify import classify_error_type, make_error_type_filter
from .config import DEFAULT_CONFIG, ConfigError, TapConfig, load_config
from .errors import CapturedFailure, SentryRoundTripError, redact_dsn
from .fingerprint import (
    client_with_fingerprint,
    default_fingerprint_error_handler,
    fingerprint_key,
    make_fingerprint_hook,
)
from .logging import configure_logging, configure_logging_from_config, get_logger
from .normalize import normalize_url_path
from .transport import (
    LogSentrySendFailures,
    RequestsTransport,
    log_error_handler,
    mount_send_failure_logging,
)

# Version constant (sync manually with pyproject)
__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CONFIG",
    "CapturedFailure",
    "ConfigError",
    "LogSentrySendFailures",
    "RequestsTransport",
    "SentryRoundTripError",
    "TapConfig",
    "capture_if_server_error",
    "capture_server_error",
    "captured_failure",
    "classify_error_type",
    "client_with_fingerprint",
    "configure_logging",
    "configure_logging_from_config",
    "default_fingerprint_error_handler",
    "fingerprint_key",
    "get_logger",
    "load_config",
    "log_error_handler",
    "make_error_type_filter",
    "make_fingerprint_hook",
    "mount_send_failure_logging",
    "normalize_url_path",
    "redact_dsn",
    "__version__",
]
