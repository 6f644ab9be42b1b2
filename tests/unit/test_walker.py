"""Unit tests for probe.snmp.walker lock-step GETBULK pagination."""

from __future__ import annotations

import math

import pytest

from probe.snmp import InvalidArgument, ProtocolError, TransportError, VarBind
from probe.snmp.walker import walk_tables
from tests.fixtures.fake_agent import FakeAgent, column

TABLE_A = "1.3.6.1.9.1"
TABLE_B = "1.3.6.1.9.2"
TRAILER = "1.3.6.1.9.3"


def _values(prefix: str, n: int) -> list[str]:
    return [f"{prefix}{i}" for i in range(1, n + 1)]


def _agent(**tables: list[str]) -> FakeAgent:
    objects: dict[str, str] = {}
    objects.update(column(TABLE_A, tables.get("a", [])))
    objects.update(column(TABLE_B, tables.get("b", [])))
    objects.update(column(TRAILER, ["t1", "t2"]))
    return FakeAgent(objects)


class ScriptedSession:
    """Returns canned GETBULK pages in order and records every request."""

    def __init__(self, pages: list[list[VarBind]]) -> None:
        self.pages = list(pages)
        self.requests: list[list[str]] = []

    def get(self, oids):  # noqa: ANN001, ANN201
        raise AssertionError("walker must only use GETBULK")

    def get_bulk(self, oids, max_repetitions):  # noqa: ANN001, ANN201
        self.requests.append(list(oids))
        return self.pages.pop(0) if self.pages else []

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Full walks
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("rows", [0, 1, 3, 4, 9, 10, 23])
@pytest.mark.parametrize("page_size", [1, 3, 4, 10])
def test_full_walk_returns_every_row_once_in_bounded_pages(rows, page_size):
    agent = _agent(a=_values("a", rows))

    results = walk_tables(agent, {"a": TABLE_A}, page_size=page_size)

    assert results == {"a": _values("a", rows)}
    # one page per page_size rows, plus the empty page that shows the column ended
    assert len(agent.bulk_calls) == math.ceil(rows / page_size) + 1


def test_tables_are_walked_in_lock_step_with_one_request_per_page():
    agent = _agent(a=_values("a", 3), b=_values("b", 7))

    results = walk_tables(agent, {"a": TABLE_A, "b": TABLE_B}, page_size=4)

    assert results == {"a": _values("a", 3), "b": _values("b", 7)}
    assert agent.bulk_calls == [
        ([f"{TABLE_A}.0", f"{TABLE_B}.0"], 4),
        ([f"{TABLE_A}.3", f"{TABLE_B}.4"], 4),
        ([f"{TABLE_B}.7"], 4),
    ]


def test_zero_row_table_is_exhausted_after_first_page():
    agent = _agent(b=_values("b", 2))

    results = walk_tables(agent, {"a": TABLE_A, "b": TABLE_B}, page_size=5)

    assert results == {"a": [], "b": ["b1", "b2"]}
    assert agent.bulk_calls[1] == ([f"{TABLE_B}.2"], 5)
    assert len(agent.bulk_calls) == 2


def test_table_at_end_of_mib_view_terminates():
    agent = FakeAgent(column(TABLE_A, _values("a", 4)))

    results = walk_tables(agent, {"a": TABLE_A}, page_size=3)

    assert results == {"a": _values("a", 4)}
    assert len(agent.bulk_calls) == 3


def test_rewalk_from_scratch_yields_same_rows():
    agent = _agent(a=_values("a", 6), b=_values("b", 2))
    tables = {"a": TABLE_A, "b": TABLE_B}

    first = walk_tables(agent, tables, page_size=2)
    second = walk_tables(agent, tables, page_size=5)

    assert {k: sorted(v) for k, v in first.items()} == {k: sorted(v) for k, v in second.items()}


def test_empty_table_spec_makes_no_request():
    agent = _agent(a=_values("a", 3))
    assert walk_tables(agent, {}) == {}
    assert agent.calls == 0


# ---------------------------------------------------------------------------
# Stop predicate
# ---------------------------------------------------------------------------


def test_always_false_predicate_matches_walk_without_predicate():
    plain_agent = _agent(a=_values("a", 11), b=_values("b", 5))
    pred_agent = _agent(a=_values("a", 11), b=_values("b", 5))
    tables = {"a": TABLE_A, "b": TABLE_B}

    plain = walk_tables(plain_agent, tables, page_size=3)
    with_pred = walk_tables(pred_agent, tables, stop=lambda results: False, page_size=3)

    assert with_pred == plain
    assert pred_agent.bulk_calls == plain_agent.bulk_calls


def test_predicate_stops_walk_early_with_rows_so_far():
    agent = _agent(a=_values("a", 20))

    results = walk_tables(agent, {"a": TABLE_A}, stop=lambda r: "a7" in r["a"], page_size=5)

    assert results == {"a": _values("a", 10)}
    assert len(agent.bulk_calls) == 2


def test_predicate_sees_accumulated_rows_after_every_page():
    agent = _agent(a=_values("a", 5))
    seen_counts: list[int] = []

    def record(results):  # noqa: ANN001, ANN202
        seen_counts.append(len(results["a"]))
        return False

    walk_tables(agent, {"a": TABLE_A}, stop=record, page_size=2)

    assert seen_counts == [2, 4, 5, 5]


# ---------------------------------------------------------------------------
# Cursor bookkeeping and errors
# ---------------------------------------------------------------------------


def test_out_of_order_rows_are_kept_and_index_only_moves_forward():
    session = ScriptedSession(
        [
            [VarBind(f"{TABLE_A}.2", "b"), VarBind(f"{TABLE_A}.1", "a")],
            [VarBind(f"{TABLE_A}.2", "b"), VarBind(f"{TRAILER}.1", "x")],
        ]
    )

    results = walk_tables(session, {"a": TABLE_A}, page_size=2)

    assert results == {"a": ["b", "a"]}
    assert session.requests == [[f"{TABLE_A}.0"], [f"{TABLE_A}.2"]]


class ReversedRepetitions(FakeAgent):
    """Answers each GETBULK repetition with the tables in reverse request order."""

    def get_bulk(self, oids, max_repetitions):  # noqa: ANN001, ANN201
        bindings = super().get_bulk(oids, max_repetitions)
        width = len(oids)
        return [
            binding
            for start in range(0, len(bindings), width)
            for binding in reversed(bindings[start : start + width])
        ]


@pytest.mark.parametrize("page_size", [1, 2])
def test_tables_answered_in_reverse_order_are_walked_completely(page_size):
    objects: dict[str, str] = {}
    objects.update(column(TABLE_A, _values("a", 3)))
    objects.update(column(TABLE_B, _values("b", 3)))
    objects.update(column(TRAILER, ["t1"]))
    agent = ReversedRepetitions(objects)

    results = walk_tables(agent, {"a": TABLE_A, "b": TABLE_B}, page_size=page_size)

    assert results == {"a": _values("a", 3), "b": _values("b", 3)}


def test_bindings_outside_every_table_are_ignored():
    session = ScriptedSession(
        [[VarBind(f"{TABLE_A}.1", "a1"), VarBind("1.3.6.1.2.1.1.5.0", "sysName")]]
    )

    results = walk_tables(session, {"a": TABLE_A}, page_size=2)

    assert results == {"a": ["a1"]}
    assert len(session.requests) == 2


def test_malformed_row_index_raises_protocol_error():
    session = ScriptedSession([[VarBind(f"{TABLE_A}.x", "bad")]])
    with pytest.raises(ProtocolError, match="malformed row index"):
        walk_tables(session, {"a": TABLE_A}, page_size=1)


@pytest.mark.parametrize("page_size", [0, -3])
def test_non_positive_page_size_is_rejected(page_size):
    agent = _agent(a=_values("a", 3))
    with pytest.raises(InvalidArgument):
        walk_tables(agent, {"a": TABLE_A}, page_size=page_size)
    assert agent.calls == 0


def test_transport_error_propagates():
    agent = FakeAgent(column(TABLE_A, ["a1"]), fail_with="Timeout: No Response from 10.0.0.1")
    with pytest.raises(TransportError, match="Timeout"):
        walk_tables(agent, {"a": TABLE_A})
