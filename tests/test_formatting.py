"""Tests for record formatting."""

from dataclasses import replace
from datetime import datetime, timezone

from statebot.formatting import describe_change, format_facts, format_history, format_state
from statebot.models import StateRecord, Transition

TS = datetime(2024, 1, 1, 12, 30, 5, tzinfo=timezone.utc)


def transition(from_state, to_state) -> Transition:
    return Transition(from_state=from_state, to_state=to_state, timestamp=TS)


def test_format_state():
    record = StateRecord(current_state="A", confidence=0.9, facts=("f1",))
    assert format_state(record) == "state: A (confidence 0.90, 1 fact(s))"


def test_format_state_with_error():
    text = format_state(StateRecord(error="timeout"))
    assert text.startswith("state: (none)")
    assert "last determination failed: timeout" in text


def test_format_facts():
    assert format_facts(StateRecord()) == "No facts."
    assert format_facts(StateRecord(facts=("a", "b"))) == "1. a\n2. b"


def test_format_history_limit():
    record = StateRecord(
        transitions=(transition(None, "A"), transition("A", "B"), transition("B", "A"))
    )

    assert format_history(StateRecord()) == "No transitions yet."
    assert format_history(record, limit=2) == "[12:30:05] A → B\n[12:30:05] B → A"
    assert format_history(record).startswith("[12:30:05] (none) → A")


class TestDescribeChange:
    def test_first_snapshot_is_silent(self):
        assert describe_change(None, StateRecord()) is None

    def test_transition(self):
        old = StateRecord()
        new = StateRecord(
            current_state="A", confidence=0.9, transitions=(transition(None, "A"),)
        )
        assert describe_change(old, new) == "→ (none) → A (confidence 0.90)"

    def test_cleared(self):
        old = StateRecord(current_state="A")
        assert describe_change(old, replace(old, current_state=None)) == "→ state cleared"

    def test_new_error(self):
        old = StateRecord()
        new = replace(old, error="boom")
        assert describe_change(old, new) == "⚠ determination failed: boom"
        assert describe_change(new, new) is None

    def test_fact_change_is_silent(self):
        old = StateRecord()
        assert describe_change(old, replace(old, facts=("f1",))) is None
