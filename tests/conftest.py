import pytest

from valuesort.items import Item
from valuesort.ranker import ValueRanker
from valuesort.session import SessionState


def decision_dict(winner, loser, duration=1000, auto=False):
    return {"winner": winner, "loser": loser, "timestamp": 0, "durationMs": duration, "auto": auto}


def state_with(names, decisions):
    """Session payload with default ratings and the given decision history."""
    return {
        "version": 1,
        "items": [{"name": name} for name in names],
        "decisions": [decision_dict(w, l) for w, l in decisions],
        "conflicts": [],
    }


@pytest.fixture
def four_items():
    return [Item(name) for name in ["A", "B", "C", "D"]]


@pytest.fixture
def fixed_clock():
    return lambda: 1700000000.0


@pytest.fixture
def sample_ranker(fixed_clock):
    return ValueRanker(["A", "B", "C", "D"], clock=fixed_clock)


@pytest.fixture
def chain_ranker(fixed_clock):
    # A > B, B > C already recorded
    state = SessionState.from_dict(state_with("ABCD", [("A", "B"), ("B", "C")]))
    return ValueRanker(state=state, clock=fixed_clock)
