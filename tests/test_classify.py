from __future__ import annotations

from sentrytap.classify import (
    classify_error_type,
    error_type_name,
    make_error_type_filter,
    strip_generic_prefix,
    unwrap_error,
)
from sentrytap.config import DEFAULT_GENERIC_TYPE_PREFIXES


class SpecificError(Exception):
    pass


class ChainLink:
    """Error from a foreign chain exposing a type name and an explicit cause."""

    def __init__(self, type_name: str, cause: ChainLink | None = None) -> None:
        self.type_name = type_name
        self._cause = cause

    def unwrap(self) -> ChainLink | None:
        return self._cause


SPECIFIC = f"{__name__}.SpecificError"


def _wrapped(inner: BaseException, outer: BaseException) -> BaseException:
    try:
        try:
            raise inner
        except BaseException as exc:
            raise outer from exc
    except BaseException as exc:
        return exc


def test_plain_exception_strips_to_bare_name():
    assert classify_error_type(Exception("boom")) == "Exception"


def test_specific_type_is_returned_unchanged():
    assert classify_error_type(SpecificError("boom")) == SPECIFIC


def test_generic_wrapper_unwraps_to_specific_cause():
    err = _wrapped(SpecificError("inner"), RuntimeError("wrapping"))
    assert classify_error_type(err) == SPECIFIC


def test_implicit_context_is_followed():
    try:
        try:
            raise SpecificError("inner")
        except SpecificError:
            raise RuntimeError("while handling")
    except RuntimeError as exc:
        err = exc
    assert classify_error_type(err) == SPECIFIC


def test_suppressed_context_is_not_followed():
    try:
        try:
            raise SpecificError("inner")
        except SpecificError:
            raise RuntimeError("clean") from None
    except RuntimeError as exc:
        err = exc
    assert unwrap_error(err) is None
    assert classify_error_type(err) == "RuntimeError"


def test_all_generic_chain_falls_back_to_outermost():
    err = _wrapped(Exception("inner"), RuntimeError("outer"))
    assert classify_error_type(err) == "RuntimeError"


def test_specific_outer_stops_immediately():
    err = _wrapped(Exception("inner"), SpecificError("outer"))
    assert classify_error_type(err) == SPECIFIC


def test_none_yields_none():
    assert classify_error_type(None) is None


def test_builtin_types_not_in_prefixes_are_specific():
    assert classify_error_type(ValueError("x")) == "builtins.ValueError"
    # exact-name prefixes do not match longer names
    name, generic = strip_generic_prefix("builtins.ExceptionGroup", DEFAULT_GENERIC_TYPE_PREFIXES)
    assert (name, generic) == ("builtins.ExceptionGroup", False)


def test_namespace_prefix_strips_module():
    err = _wrapped(KeyError("k"), ValueError("v"))
    assert classify_error_type(err, ["builtins."]) == "ValueError"


def test_pointer_marker_prefixes_match():
    assert strip_generic_prefix("*errors.errorString", ["errors."]) == ("errorString", True)
    assert strip_generic_prefix("*app.MyErr", ["errors."]) == ("app.MyErr", False)


def test_foreign_chain_via_unwrap():
    chain = ChainLink("*fmt.wrapError", ChainLink("*errors.errorString", ChainLink("app.testErr")))
    assert classify_error_type(chain, ["errors.", "fmt."]) == "app.testErr"
    generic_only = ChainLink("fmt.wrapError", ChainLink("*errors.errorString"))
    assert classify_error_type(generic_only, ["errors.", "fmt."]) == "wrapError"


def test_cyclic_chain_terminates():
    a = RuntimeError("a")
    b = RuntimeError("b")
    a.__cause__ = b
    b.__cause__ = a
    assert classify_error_type(a) == "RuntimeError"


def test_error_type_name_uses_module_and_qualname():
    assert error_type_name(ValueError()) == "builtins.ValueError"
    assert error_type_name(SpecificError()) == SPECIFIC


def _event(type_name: str) -> dict:
    return {"exception": {"values": [{"type": "Inner"}, {"type": type_name, "value": "x"}]}}


def test_filter_rewrites_last_exception_type():
    err = _wrapped(SpecificError("inner"), RuntimeError("outer"))
    hint = {"exc_info": (type(err), err, err.__traceback__)}
    event = make_error_type_filter()(_event("RuntimeError"), hint)
    assert event["exception"]["values"][-1]["type"] == SPECIFIC
    assert event["exception"]["values"][0]["type"] == "Inner"


def test_filter_uses_configured_prefixes():
    err = _wrapped(KeyError("k"), ValueError("v"))
    hint = {"exc_info": (type(err), err, None)}
    event = make_error_type_filter(["builtins."])(_event("ValueError"), hint)
    assert event["exception"]["values"][-1]["type"] == "ValueError"


def test_filter_noop_without_error_or_exceptions():
    hook = make_error_type_filter()
    event = _event("Whatever")
    assert hook(event, {}) is event
    assert event["exception"]["values"][-1]["type"] == "Whatever"
    empty = {"exception": {"values": []}}
    assert hook(empty, {"exc_info": (SpecificError, SpecificError(), None)}) == empty
    assert hook({"message": "no exception"}, {"exc_info": (ValueError, ValueError(), None)}) == {
        "message": "no exception"
    }
