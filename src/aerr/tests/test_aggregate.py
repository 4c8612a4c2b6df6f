"""Tests for chain aggregation.

Validates:
- Message combination, code and attribute precedence
- Stack deduplication across wrapped links
- Single-link, empty and plain-error chains
- The flattened per-link rendering
- Cycle guard
"""

from __future__ import annotations

import re

import pytest

import aerr
from aerr import Aggregate, CompositeError

_FRAME = re.compile(r"^.+\.\(.+\):\d+$")


def _unique(frames: list[str]) -> list[str]:
    return list(dict.fromkeys(frames))


# ═════════════════════════════════════════════════════════════════════════════
# Layered Scenario (controller -> service -> repository -> db)
# ═════════════════════════════════════════════════════════════════════════════


def query_database(query: str) -> CompositeError:
    return aerr.code("DB_ERROR").message("database query failed").stack_trace() \
        .with_("query", query).with_("driver", "postgres") \
        .err(TimeoutError("connection timeout"))


def find_user(user_id: str) -> CompositeError:
    err = query_database("SELECT * FROM users WHERE id = ?")
    return aerr.code("REPOSITORY_ERROR").message("failed to find user in repository").stack_trace() \
        .with_("user_id", user_id).with_("table", "users").wrap(err)


def get_user(user_id: str) -> CompositeError:
    return aerr.code("SERVICE_ERROR").message("user service failed") \
        .with_("service", "UserService").with_("operation", "GetUser").wrap(find_user(user_id))


def handle_request(user_id: str) -> CompositeError:
    return aerr.code("CONTROLLER_ERROR").message("failed to handle user request") \
        .with_("endpoint", f"/api/users/{user_id}").with_("method", "GET").wrap(get_user(user_id))


def test_scenario_nested_layers() -> None:
    """Outermost code, all messages, union of attributes, db stack only."""
    err = handle_request("12345")
    db = aerr.as_type(aerr.unwrap(aerr.unwrap(aerr.unwrap(err))), CompositeError)
    assert db is not None and db.code == "DB_ERROR"

    agg = aerr.aggregate(err)

    assert agg.code == "CONTROLLER_ERROR"
    assert agg.message == (
        "failed to handle user request: user service failed: failed to find user in repository: "
        "database query failed: connection timeout"
    )
    assert set(agg.attributes) == {
        "endpoint", "method", "service", "operation", "user_id", "table", "query", "driver",
    }
    assert list(agg.stacktrace) == _unique(aerr.format_stack(db.stack))
    assert any("query_database" in f for f in agg.stacktrace)


def test_scenario_single_finalized_link() -> None:
    """err() with a plain cause: own code, combined message, attributes, stack."""
    err = aerr.code("DB_ERROR").message("database query failed").stack_trace() \
        .with_("query", "SELECT 1").err(TimeoutError("connection timeout"))

    agg = aerr.aggregate(err)

    assert agg.code == "DB_ERROR"
    assert agg.message == "database query failed: connection timeout"
    assert agg.attributes == {"query": "SELECT 1"}
    assert agg.stacktrace
    assert all(_FRAME.match(f) for f in agg.stacktrace)


def test_scenario_none_values_dropped() -> None:
    """A None attribute value at any link never reaches the merged map."""
    inner = aerr.message("inner").with_("a", None).with_("b", 1).err()
    outer = aerr.message("outer").with_("c", None).wrap(inner)

    assert aerr.aggregate(outer).attributes == {"b": 1}


# ═════════════════════════════════════════════════════════════════════════════
# Properties
# ═════════════════════════════════════════════════════════════════════════════


def test_message_combination_skips_empty() -> None:
    """Messages join outer to inner with ': ', empty link messages skipped."""
    e1 = aerr.message("m3").err(ValueError("t"))
    e2 = aerr.code("ONLY_CODE").wrap(e1)
    e3 = aerr.message("m1").wrap(e2)

    assert aerr.aggregate(e3).message == "m1: m3: t"


def test_outermost_code_wins() -> None:
    """The first non-empty code walking outward-in is kept."""
    inner = aerr.code("INNER").message("i").err()
    middle = aerr.message("m").wrap(inner)
    outer = aerr.code("OUTER").message("o").wrap(middle)

    assert aerr.aggregate(outer).code == "OUTER"
    assert aerr.aggregate(middle).code == "INNER"


def test_outer_attribute_wins() -> None:
    """On a key collision the outer link's value is kept."""
    inner = aerr.message("i").with_("key", "inner").with_("only_inner", 1).err()
    outer = aerr.message("o").with_("key", "outer").wrap(inner)

    assert aerr.aggregate(outer).attributes == {"key": "outer", "only_inner": 1}


def test_shared_stack_listed_once() -> None:
    """A stack reused by several wrappers shows each frame exactly once."""
    inner = aerr.message("i").stack_trace().err()
    outer = aerr.message("o").wrap(aerr.message("m").wrap(inner))

    agg = aerr.aggregate(outer)
    assert list(agg.stacktrace) == _unique(aerr.format_stack(inner.stack))
    assert len(set(agg.stacktrace)) == len(agg.stacktrace)


def test_independent_stacks_are_merged_in_order() -> None:
    """Distinct stacks merge outer first, shared frames kept once."""
    def capture_inner() -> CompositeError:
        return aerr.message("i").stack_trace().err()

    inner = capture_inner()
    outer = aerr.message("o").stack_trace().err(inner)  # err() captures its own stack

    agg = aerr.aggregate(outer)
    outer_frames = _unique(aerr.format_stack(outer.stack))
    assert list(agg.stacktrace[:len(outer_frames)]) == outer_frames
    assert any("capture_inner" in f for f in agg.stacktrace[len(outer_frames):])
    assert len(set(agg.stacktrace)) == len(agg.stacktrace)


def test_single_link_aggregates_to_itself() -> None:
    """No cause: the aggregate is exactly the link's own fields."""
    err = aerr.code("C").message("just me").with_("k", "v").stack_trace().err()

    agg = aerr.aggregate(err)
    assert agg.message == "just me"
    assert agg.code == "C"
    assert agg.attributes == {"k": "v"}
    assert list(agg.stacktrace) == _unique(aerr.format_stack(err.stack))


# ═════════════════════════════════════════════════════════════════════════════
# Edge Cases
# ═════════════════════════════════════════════════════════════════════════════


def test_none_root_is_empty() -> None:
    """aggregate(None) is all-empty and renders as an empty dict."""
    agg = aerr.aggregate(None)
    assert agg == Aggregate()
    assert agg.to_dict() == {}


def test_plain_root() -> None:
    """A plain error aggregates to just its message."""
    assert aerr.aggregate(ValueError("boom")).to_dict() == {"message": "boom"}


def test_empty_messages_give_empty_message() -> None:
    """No messages anywhere is not an error."""
    agg = aerr.aggregate(aerr.code("C").err())
    assert agg.message == ""
    assert agg.to_dict() == {"code": "C"}


def test_bare_terminal_error_uses_type_name() -> None:
    """A terminal exception without text contributes its type name."""
    assert aerr.aggregate(aerr.message("read failed").err(TimeoutError())).message == "read failed: TimeoutError"


def test_cycle_guard(caplog: pytest.LogCaptureFixture) -> None:
    """A cause cycle stops the walk instead of looping."""
    a = aerr.message("a").err()
    b = aerr.message("b").err(a)
    a.__cause__ = b  # force a cycle

    with caplog.at_level("DEBUG", logger="aerr.aggregate"):
        assert aerr.aggregate(b).message == "b: a"
    assert "cycle" in caplog.text


def test_to_dict_field_order_and_error_values() -> None:
    """to_dict keeps code, message, attributes, stacktrace order; errors become text."""
    err = aerr.code("C").message("m").with_("cause", KeyError("k")).with_("nested", {"e": ValueError("v")}) \
        .stack_trace().err()

    out = aerr.aggregate(err).to_dict()
    assert list(out) == ["code", "message", "attributes", "stacktrace"]
    assert out["attributes"] == {"cause": "'k'", "nested": {"e": "v"}}


def test_traces() -> None:
    """traces() is the merged stacktrace alone."""
    inner = aerr.message("i").stack_trace().err()
    outer = aerr.message("o").wrap(inner)

    assert outer.traces() == list(aerr.aggregate(outer).stacktrace)
    assert aerr.traces(ValueError("plain")) == []


# ═════════════════════════════════════════════════════════════════════════════
# Flattened Variant
# ═════════════════════════════════════════════════════════════════════════════


def test_flatten_one_record_per_link() -> None:
    """Each link becomes a record; the terminal error closes the list."""
    inner = aerr.code("DB").message("query failed").with_("q", "SELECT 1").with_("skip", None) \
        .err(TimeoutError("connection timeout"))
    outer = aerr.code("SVC").message("service failed").wrap(inner)

    assert aerr.flatten_dict(outer) == {"errors": [
        {"code": "SVC", "message": "service failed"},
        {"code": "DB", "message": "query failed", "data": {"q": "SELECT 1"}},
        {"error": "connection timeout"},
    ]}
    records = aerr.flatten(outer)
    assert records[-1].is_terminal and not records[0].is_terminal


def test_flatten_shared_stack_under_outermost_link() -> None:
    """A reused stack is listed once, on the outermost link carrying it."""
    inner = aerr.message("i").stack_trace().err()
    outer = aerr.message("o").wrap(inner)

    first, second = aerr.flatten(outer)
    assert list(first.stacktrace or ()) == _unique(aerr.format_stack(inner.stack))
    assert second.stacktrace is None


def test_render_variant_from_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """log_value follows AERR_RENDER_VARIANT unless overridden."""
    err = aerr.code("C").message("m").err(ValueError("v"))
    assert err.log_value() == {"code": "C", "message": "m: v"}

    monkeypatch.setenv("AERR_RENDER_VARIANT", "Flattened")
    aerr.clear_settings_cache()
    assert err.log_value() == {"errors": [{"code": "C", "message": "m"}, {"error": "v"}]}
    assert err.log_value("merged") == {"code": "C", "message": "m: v"}
