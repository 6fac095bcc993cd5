"""URL path normalization for Sentry grouping.

Path segments holding ids (numbers, UUIDs, hashes) make otherwise identical
URLs group separately. ``normalize_url_path`` replaces every segment that
contains a digit with a placeholder so ``/orders/98765/items/1`` and
``/orders/12/items/7`` share ``/orders/-omitted-/items/-omitted-``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from urllib.parse import ParseResult, SplitResult, urlsplit

from .config import DEFAULT_PLACEHOLDER

_DIGIT = re.compile(r"[0-9]")
# API version segments are kept even though they contain a digit
_VERSION_SEGMENTS = frozenset({"v1", "v2"})


def parse_url(url: str) -> SplitResult:
    """Parse ``url``, raising ``ValueError`` for malformed input.

    ``urlsplit`` is lenient about ports, so the port is validated eagerly.
    """
    parts = urlsplit(url)
    parts.port  # noqa: B018 - raises ValueError for an invalid port
    return parts


def normalize_path(path: str, placeholder: str = "") -> str:
    placeholder = placeholder or DEFAULT_PLACEHOLDER
    segments = [
        placeholder if seg not in _VERSION_SEGMENTS and _DIGIT.search(seg) else seg
        for seg in path.split("/")
    ]
    # Stripping every trailing slash keeps the result idempotent for "/a//"
    return "/".join(segments).rstrip("/")


def normalize_url_path(
    url: str | SplitResult | ParseResult,
    placeholder: str = "",
    *,
    on_error: Callable[[Exception], None] | None = None,
) -> str:
    """Return the normalized path of ``url``.

    A raw string that fails to parse is reported through ``on_error`` and
    returned unchanged.
    """
    if isinstance(url, str):
        try:
            parts: SplitResult | ParseResult = parse_url(url)
        except ValueError as exc:
            if on_error is not None:
                on_error(exc)
            return url
    else:
        parts = url
    return normalize_path(parts.path, placeholder)


__all__ = ["normalize_path", "normalize_url_path", "parse_url"]
