"""Error-type classification for Sentry events.

Exceptions are often wrapped in generic types (``raise RuntimeError("...")
from err``) which makes every failure report the same type. The classifier
walks the cause chain past known generic types until it reaches one that is
not generic; that type is assumed to be the useful one. When every type in the
chain is generic, the outermost one is reported with its module prefix
stripped.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any

from .config import DEFAULT_GENERIC_TYPE_PREFIXES

Event = dict[str, Any]
Hint = dict[str, Any]
BeforeSend = Callable[[Event, Hint], "Event | None"]


def error_type_name(err: object) -> str:
    """Qualified type name of ``err``, e.g. ``builtins.ValueError``.

    Objects that describe a foreign error chain may expose ``type_name``.
    """
    explicit = getattr(err, "type_name", None)
    if isinstance(explicit, str):
        return explicit
    cls = type(err)
    return f"{cls.__module__}.{cls.__qualname__}"


def unwrap_error(err: object) -> object | None:
    """Next error in the chain: ``unwrap()``, ``__cause__`` then ``__context__``."""
    unwrap = getattr(err, "unwrap", None)
    if callable(unwrap):
        return unwrap()
    cause = getattr(err, "__cause__", None)
    if cause is not None:
        return cause
    if getattr(err, "__suppress_context__", False):
        return None
    return getattr(err, "__context__", None)


def _cut_prefix(name: str, prefix: str) -> str | None:
    if prefix.endswith("."):
        if name.startswith(prefix):
            return name[len(prefix):]
        return None
    if name == prefix:
        return prefix.rsplit(".", 1)[-1]
    return None


def strip_generic_prefix(name: str, prefixes: Iterable[str]) -> tuple[str, bool]:
    """Strip the first matching generic prefix from ``name``.

    Returns the stripped name and whether a prefix matched. A prefix ending in
    ``.`` is a namespace and matches any name below it; any other prefix is a
    full type name and strips to its unqualified tail. Each prefix is also
    tried with a leading ``*``.
    """
    for prefix in prefixes:
        for candidate in (prefix, "*" + prefix):
            after = _cut_prefix(name, candidate)
            if after is not None:
                return after, True
    return name.lstrip("*"), False


def classify_error_type(
    err: object | None, generic_prefixes: Sequence[str] = DEFAULT_GENERIC_TYPE_PREFIXES
) -> str | None:
    """Most specific type name in the chain of ``err``.

    Returns ``None`` when ``err`` is ``None``.
    """
    first: str | None = None
    seen: set[int] = set()
    current = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        name, generic = strip_generic_prefix(error_type_name(current), generic_prefixes)
        if first is None:
            first = name
        if not generic:
            return name
        current = unwrap_error(current)
    return first


def original_exception(hint: Hint | None) -> BaseException | None:
    """The exception that triggered an event, taken from a ``before_send`` hint."""
    if not hint:
        return None
    exc_info = hint.get("exc_info")
    if exc_info and len(exc_info) > 1:
        return exc_info[1]
    return None


def make_error_type_filter(generic_prefixes: Sequence[str] | None = None) -> BeforeSend:
    """Build a ``before_send`` hook that rewrites the reported exception type."""
    prefixes = tuple(generic_prefixes or DEFAULT_GENERIC_TYPE_PREFIXES)

    def _before_send(event: Event, hint: Hint) -> Event:
        oe = original_exception(hint)
        if oe is None:
            return event
        values = (event.get("exception") or {}).get("values") or []
        if not values:
            return event
        classification = classify_error_type(oe, prefixes)
        if classification is not None and classification != values[-1].get("type"):
            values[-1]["type"] = classification
        return event

    return _before_send


__all__ = [
    "classify_error_type",
    "error_type_name",
    "make_error_type_filter",
    "original_exception",
    "strip_generic_prefix",
    "unwrap_error",
]
