import pandas as pd
import pytest

from valuesort.constants import INITIAL_VALUES
from valuesort.errors import DegenerateCatalogueError, InvalidDecisionError
from valuesort.items import Decision, Item
from valuesort.ranker import (
    CONFLICT_RECORDED,
    DECISION_COMMITTED,
    PAIR_PRESENTED,
    PROGRESS_CHANGED,
    PairKind,
    ValueRanker,
    assign_custom_quantiles,
    assign_levels,
    parse_input,
    read_input,
)
from valuesort.session import SessionState

from conftest import state_with


def play(model, rounds, side=0, elapsed_ms=1000):
    """Answer ``rounds`` questions, always picking the same side."""
    asked = 0
    while asked < rounds:
        pair = model.next_pair()
        if pair.is_auto:
            continue
        model.submit_decision(pair.pair_id, side, elapsed_ms)
        asked += 1


def test_default_catalogue():
    model = ValueRanker()
    assert [item.name for item in model.items] == INITIAL_VALUES
    assert all(item.rating == 1500 and item.rd == 350 for item in model.items)


def test_first_pair_is_undetermined(sample_ranker):
    pair = sample_ranker.next_pair()
    assert pair.names == ("A", "B")
    assert pair.kind is PairKind.COMPARISON
    assert not pair.is_auto and not pair.is_tie_breaker
    assert pair.reason is None
    # still pending until answered
    assert sample_ranker.next_pair() is pair


def test_submit_decision_updates_state(sample_ranker):
    pair = sample_ranker.next_pair()
    decision = sample_ranker.submit_decision(pair.pair_id, 1, 1500)

    assert decision == Decision("B", "A", 1700000000000, 1500, False)
    assert sample_ranker.decisions == [decision]
    # confident: 40 * 1.5
    assert sample_ranker.item("B").rating == pytest.approx(1530)
    assert sample_ranker.item("A").rating == pytest.approx(1470)
    assert sample_ranker.item("A").opponents == {"B"}
    assert sample_ranker.pending is None


def test_transitive_pair_is_auto_resolved(chain_ranker):
    assert chain_ranker.is_reachable("A", "C")
    assert not chain_ranker.is_reachable("C", "A")

    pair = chain_ranker.next_pair()
    assert pair.names == ("A", "C")
    assert pair.kind is PairKind.INFERRED
    assert pair.is_auto
    assert pair.auto_winner == 0
    assert pair.resolution.path == ["A", "B", "C"]
    assert pair.reason == "Logic: A > B > C"

    last = chain_ranker.decisions[-1]
    assert last == Decision("A", "C", 1700000000000, 0, True)
    # inferred: 40 * 0.5
    assert chain_ranker.item("A").rating == pytest.approx(1510)
    assert chain_ranker.item("C").rating == pytest.approx(1490)
    assert chain_ranker.pending is None


def test_contradiction_is_asked_and_recorded_as_is(fixed_clock):
    state = SessionState.from_dict(
        state_with("ABCD", [("A", "B"), ("B", "C"), ("C", "D"), ("D", "A")])
    )
    model = ValueRanker(state=state, clock=fixed_clock)

    pair = model.next_pair()
    assert pair.names == ("A", "C")
    assert pair.kind is PairKind.CONTRADICTION
    assert pair.is_tie_breaker and not pair.is_auto
    assert pair.reason.startswith("Conflict")

    model.submit_decision(pair.pair_id, 1, 5000)
    assert model.decisions[-1] == Decision("C", "A", 1700000000000, 5000, False)
    assert len(model.decisions) == 5


def test_explicit_result_against_implied_order_is_kept(fixed_clock):
    # every pair has met, so the next pair is a rematch of the leaders
    state = SessionState.from_dict(state_with("ABC", [("A", "B"), ("B", "C"), ("A", "C")]))
    model = ValueRanker(state=state, clock=fixed_clock)

    pair = model.next_pair()
    assert pair.kind is PairKind.REMATCH
    assert pair.names == ("A", "B")
    assert model.is_reachable("A", "B")

    decision = model.submit_decision(pair.pair_id, 1, 4000)
    assert decision == Decision("B", "A", 1700000000000, 4000, False)
    assert model.decisions[-1] == decision
    assert len(model.decisions) == 4
    assert model.is_reachable("B", "A")
    assert model.is_reachable("A", "B")


def test_hard_choice_events(sample_ranker):
    events = []
    sample_ranker.subscribe(events.append)

    pair = sample_ranker.next_pair()
    sample_ranker.submit_decision(pair.pair_id, 0, 12000)

    assert [event.kind for event in events] == [
        PAIR_PRESENTED,
        DECISION_COMMITTED,
        CONFLICT_RECORDED,
        PROGRESS_CHANGED,
    ]
    decision, confident = events[1].payload
    assert decision.winner == "A" and not confident
    assert events[2].payload.pair == ("A", "B")
    assert sample_ranker.conflicts[0].duration_ms == 12000


def test_auto_resolution_never_logs_conflict(chain_ranker):
    events = []
    chain_ranker.subscribe(events.append)
    chain_ranker.next_pair()
    assert CONFLICT_RECORDED not in [event.kind for event in events]
    assert chain_ranker.conflicts == []


def test_never_repeats_previous_pair(sample_ranker):
    previous = None
    for _ in range(25):
        pair = sample_ranker.next_pair()
        assert pair.first.name != pair.second.name
        key = tuple(sorted(pair.names))
        assert key != previous
        previous = key
        if not pair.is_auto:
            sample_ranker.submit_decision(pair.pair_id, 0, 1000)


def test_rematches_after_every_pair_played(sample_ranker):
    play(sample_ranker, 6)
    for item in sample_ranker.items:
        assert len(item.opponents) == 3

    pair = sample_ranker.next_pair()
    assert pair.kind is PairKind.REMATCH
    assert pair.is_tie_breaker
    assert pair.first.name == sample_ranker.ranked_items()[0].name
    assert not pair.is_auto


@pytest.mark.parametrize("side", [2, -1, True, "0"])
def test_invalid_side_rejected(sample_ranker, side):
    pair = sample_ranker.next_pair()
    with pytest.raises(InvalidDecisionError):
        sample_ranker.submit_decision(pair.pair_id, side, 1000)
    assert sample_ranker.decisions == []
    assert sample_ranker.pending is pair
    assert all(item.rating == 1500 for item in sample_ranker.items)


def test_stale_or_missing_pair_rejected(sample_ranker):
    with pytest.raises(InvalidDecisionError):
        sample_ranker.submit_decision(1, 0, 1000)

    pair = sample_ranker.next_pair()
    with pytest.raises(InvalidDecisionError):
        sample_ranker.submit_decision(pair.pair_id + 1, 0, 1000)
    with pytest.raises(InvalidDecisionError):
        sample_ranker.submit_decision(pair.pair_id, 0, -5)

    sample_ranker.submit_decision(pair.pair_id, 0, 1000)
    with pytest.raises(InvalidDecisionError):
        sample_ranker.submit_decision(pair.pair_id, 0, 1000)


def test_elapsed_defaults_to_wall_clock(sample_ranker):
    pair = sample_ranker.next_pair()
    decision = sample_ranker.submit_decision(pair.pair_id, 0)
    assert 0 <= decision.duration_ms < 3000


def test_request_reset(sample_ranker):
    pair = sample_ranker.next_pair()
    sample_ranker.submit_decision(pair.pair_id, 0, 15000)
    sample_ranker.next_pair()

    sample_ranker.request_reset()

    assert sample_ranker.decisions == []
    assert sample_ranker.conflicts == []
    assert sample_ranker.pending is None
    assert [item.name for item in sample_ranker.items] == ["A", "B", "C", "D"]
    assert all(item == Item(item.name) for item in sample_ranker.items)
    assert not sample_ranker.is_reachable("A", "B")


def test_degenerate_catalogue():
    with pytest.raises(DegenerateCatalogueError):
        ValueRanker(["A"])
    with pytest.raises(DegenerateCatalogueError):
        ValueRanker(["A", "A"])
    with pytest.raises(DegenerateCatalogueError):
        ValueRanker(state=SessionState([Item("A")]))


def test_round_trip(sample_ranker, fixed_clock):
    play(sample_ranker, 4, side=0, elapsed_ms=11000)
    play(sample_ranker, 3, side=1, elapsed_ms=800)

    restored = ValueRanker.from_state(sample_ranker.to_dict(), clock=fixed_clock)
    assert restored.state == sample_ranker.state
    assert restored.to_dict() == sample_ranker.to_dict()
    assert len(restored.conflicts) == 4


def test_save_and_resume(sample_ranker, tmp_path):
    play(sample_ranker, 3)
    path = str(tmp_path / "session.json")
    sample_ranker.save_state(path)

    resumed = ValueRanker.load_or_create(path)
    assert resumed.state == sample_ranker.state
    assert resumed.catalogue == ["A", "B", "C", "D"]


def test_malformed_state_falls_back_to_fresh():
    model = ValueRanker.from_state({"version": 1, "items": []}, ["X", "Y"])
    assert [item.name for item in model.items] == ["X", "Y"]
    assert model.decisions == []

    model = ValueRanker.from_state(state_with("AB", [("A", "Q")]), ["X", "Y", "Z"])
    assert [item.name for item in model.items] == ["X", "Y", "Z"]

    model = ValueRanker.from_state({"version": 1, "items": [None, {"name": "B"}]}, ["X", "Y"])
    assert [item.name for item in model.items] == ["X", "Y"]


def test_load_or_create_recovers(tmp_path):
    missing = ValueRanker.load_or_create(str(tmp_path / "nope.json"), ["X", "Y"])
    assert [item.name for item in missing.items] == ["X", "Y"]

    broken = tmp_path / "broken.json"
    broken.write_text("{]")
    model = ValueRanker.load_or_create(str(broken), ["X", "Y"])
    assert [item.name for item in model.items] == ["X", "Y"]

    binary = tmp_path / "binary.json"
    binary.write_bytes(b"\xff\xfe")
    model = ValueRanker.load_or_create(str(binary), ["X", "Y"])
    assert [item.name for item in model.items] == ["X", "Y"]


def test_manual_order(sample_ranker):
    pair = sample_ranker.next_pair()
    sample_ranker.submit_decision(pair.pair_id, 1, 5000)  # B beats A

    sample_ranker.set_manual_order(["C", "A"])
    assert sample_ranker.has_manual_order()
    assert [item.name for item in sample_ranker.ranked_items()] == ["C", "A", "B", "D"]

    sample_ranker.clear_manual_order()
    assert [item.name for item in sample_ranker.ranked_items()] == ["B", "C", "D", "A"]

    with pytest.raises(ValueError):
        sample_ranker.set_manual_order(["C", "Nope"])
    with pytest.raises(ValueError):
        sample_ranker.set_manual_order(["C", "C"])


def test_manual_rank_survives_round_trip(sample_ranker):
    sample_ranker.set_manual_order(["D", "C", "B", "A"])
    restored = ValueRanker.from_state(sample_ranker.to_dict())
    assert [item.name for item in restored.ranked_items()] == ["D", "C", "B", "A"]


def test_export_rankings(sample_ranker):
    play(sample_ranker, 2)

    csv_output = sample_ranker.export_rankings("csv")
    assert isinstance(csv_output, pd.DataFrame)
    assert list(csv_output.columns) == ["Rank", "Item", "Rating", "RD", "Matches"]
    assert csv_output["Rank"].tolist() == [1, 2, 3, 4]

    json_output = sample_ranker.export_rankings("json")
    assert set(json_output) == {"rankings", "order", "conflicts", "metadata"}
    assert json_output["metadata"]["total_decisions"] == len(sample_ranker.decisions)
    assert json_output["metadata"]["phase"] == "discovery"

    md_output = sample_ranker.export_rankings("markdown")
    assert "| Rank | Item | Rating | RD | Matches |" in md_output

    with pytest.raises(ValueError):
        sample_ranker.export_rankings("xml")


def test_visualize_rankings(sample_ranker, capsys):
    play(sample_ranker, 2)
    sample_ranker.visualize_rankings()
    out = capsys.readouterr().out
    assert "Ranking visualization" in out
    assert "#" in out


def test_read_input_csv(tmp_path):
    df = pd.DataFrame({"Item": ["Family", "Health", "Fun"]})
    csv_path = tmp_path / "values.csv"
    df.to_csv(csv_path, index=False)
    result = read_input(str(csv_path))
    assert list(result.columns) == ["Item"]
    assert result["Item"].tolist() == ["Family", "Health", "Fun"]

    df.to_csv(csv_path, index=False, header=False)
    result = read_input(str(csv_path))
    assert result["Item"].tolist() == ["Family", "Health", "Fun"]


def test_read_input_string():
    result = read_input("Family, Health,Fun")
    assert result["Item"].tolist() == ["Family", "Health", "Fun"]


def test_parse_input():
    df = pd.DataFrame({"Item": ["A", " B ", "", "A", "C"]})
    assert parse_input(df) == ["A", "B", "C"]
    assert parse_input(pd.DataFrame(columns=["Item"])) == []


def test_assign_levels():
    levels = assign_levels(["A", "B", "C", "D"], 2)
    assert levels == {"A": 2, "B": 2, "C": 1, "D": 1}


def test_assign_custom_quantiles():
    quantiles = assign_custom_quantiles(["A", "B", "C", "D"], [0, 0.5, 1])
    assert quantiles == {"A": 1, "B": 1, "C": 2, "D": 2}


def test_assign_custom_quantiles_without_leading_zero():
    names = ["A", "B", "C", "D"]
    assert assign_custom_quantiles(names, [0.5, 1]) == {"A": 1, "B": 1, "C": 2, "D": 2}
    assert assign_custom_quantiles(names, [0.25, 0.5, 1]) == {"A": 1, "B": 2, "C": 3, "D": 3}


def test_assign_levels_rejects_zero():
    with pytest.raises(ValueError):
        assign_levels(["A", "B"], 0)
