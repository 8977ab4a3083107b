import logging
import os
import time
from enum import Enum
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

import pandas as pd

from .conflicts import ConflictLog
from .constants import INITIAL_VALUES
from .errors import DegenerateCatalogueError, InvalidDecisionError, MalformedSessionError
from .inference import PreferenceGraph, Resolution
from .items import ConflictRecord, Decision, Item
from .matchmaker import is_discovery, select_next_pair
from .progress import ProgressReport, progress_report
from .rating import apply_result, is_confident
from .session import SessionState, load_session, save_session

logger = logging.getLogger(__name__)


def read_input(data_input: str) -> pd.DataFrame:
    """
    Reads .csv into a dataframe, or splits a comma-separated string into a dataframe.
    Returns DataFrame with an 'Item' column.
    """
    if os.path.exists(data_input) and data_input.endswith(".csv"):
        try:
            df = pd.read_csv(data_input, dtype=str, na_filter=False)
            if "Item" not in df.columns:
                # No header row: the first column holds the names
                df = pd.read_csv(data_input, header=None, dtype=str, na_filter=False)
                df = df.iloc[:, :1]
                df.columns = ["Item"]
        except pd.errors.EmptyDataError:
            return pd.DataFrame(columns=["Item"])
        return df[["Item"]]

    items = [item.strip() for item in data_input.split(",")]
    return pd.DataFrame({"Item": items})


def parse_input(df: pd.DataFrame) -> List[str]:
    """
    Extract the catalogue from the input dataframe: stripped, non-empty,
    first occurrence wins.
    """
    names = []
    for raw in df["Item"].tolist():
        name = str(raw).strip()
        if name and name not in names:
            names.append(name)
    return names


def assign_custom_quantiles(
    ordered_names: Sequence[str], quantile_cutoffs: List[float]
) -> Dict[str, int]:
    """
    Tier 1 holds the names before the first non-zero cutoff, tier 2 the next
    slice, and so on. A leading 0 cutoff is optional.
    """
    num_items = len(ordered_names)
    cutoff_positions = [int(c * num_items) for c in quantile_cutoffs]

    quantiles = {}
    for i, name in enumerate(ordered_names):
        quantiles[name] = 1 + sum(1 for p in cutoff_positions if 0 < p <= i)
    return quantiles


def assign_levels(ordered_names: Sequence[str], num_levels: int) -> Dict[str, int]:
    """Split a best-first order into ``num_levels`` tiers; the best tier is ``num_levels``."""
    if num_levels < 1:
        raise ValueError(f"Number of levels must be at least 1, got {num_levels}")
    total_items = len(ordered_names)
    items_per_level = max(1, total_items // num_levels)
    remainder = total_items % num_levels if total_items >= num_levels else 0
    levels = {}
    current_level = num_levels
    count = 0
    for name in ordered_names:
        levels[name] = max(1, current_level)
        count += 1
        if count >= items_per_level:
            if remainder > 0:
                remainder -= 1
            else:
                current_level -= 1
                count = 0
    return levels


class PairKind(Enum):
    COMPARISON = "comparison"
    CONTRADICTION = "contradiction"  # history implies both directions
    REMATCH = "rematch"  # every pair played, refining the leaders
    INFERRED = "inferred"  # outcome implied by history, resolved automatically


class PendingPair(NamedTuple):
    pair_id: int
    first: Item
    second: Item
    kind: PairKind
    resolution: Optional[Resolution] = None

    @property
    def names(self) -> Tuple[str, str]:
        return self.first.name, self.second.name

    @property
    def is_auto(self) -> bool:
        return self.kind is PairKind.INFERRED

    @property
    def is_tie_breaker(self) -> bool:
        return self.kind in (PairKind.CONTRADICTION, PairKind.REMATCH)

    @property
    def auto_winner(self) -> Optional[int]:
        if self.resolution is None:
            return None
        return 0 if self.resolution.winner == self.first.name else 1

    @property
    def reason(self) -> Optional[str]:
        if self.resolution is not None:
            return self.resolution.reason
        if self.kind is PairKind.CONTRADICTION:
            return f"Conflict: {self.first.name} and {self.second.name} each beat the other"
        if self.kind is PairKind.REMATCH:
            return "Tie breaker: all pairs played, refining the leaders"
        return None


class EngineEvent(NamedTuple):
    kind: str
    payload: Any


PAIR_PRESENTED = "pair_presented"
DECISION_COMMITTED = "decision_committed"
CONFLICT_RECORDED = "conflict_recorded"
PROGRESS_CHANGED = "progress_changed"


class ValueRanker:
    """
    Ranking engine for one session.

    Owns the items, the decision history and the conflict log. Callers ask for
    a pair with ``next_pair``, answer it with ``submit_decision`` and read the
    order with ``ranked_items``; item fields are only changed by the engine.
    """

    def __init__(
        self,
        names: Optional[Sequence[str]] = None,
        state: Optional[SessionState] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if names is None:
            names = [item.name for item in state.items] if state is not None else INITIAL_VALUES
        self.catalogue: List[str] = list(names)
        if state is None:
            if len(set(self.catalogue)) < 2 or len(set(self.catalogue)) != len(self.catalogue):
                raise DegenerateCatalogueError(len(set(self.catalogue)))
            state = SessionState.fresh(self.catalogue)
        elif len(state.items) < 2:
            raise DegenerateCatalogueError(len(state.items))

        self.clock = clock
        self.listeners: List[Callable[[EngineEvent], None]] = []
        self._load(state)

    @classmethod
    def from_state(
        cls,
        data: Any,
        names: Optional[Sequence[str]] = None,
        clock: Callable[[], float] = time.time,
    ) -> "ValueRanker":
        """Rehydrate from a persisted payload, or start fresh if it is malformed."""
        try:
            state = SessionState.from_dict(data)
        except MalformedSessionError as exc:
            logger.warning("%s; starting a fresh session", exc)
            return cls(names, clock=clock)
        return cls(names, state, clock)

    @classmethod
    def load_or_create(
        cls,
        filename: str,
        names: Optional[Sequence[str]] = None,
        clock: Callable[[], float] = time.time,
    ) -> "ValueRanker":
        try:
            state = load_session(filename)
        except FileNotFoundError:
            logger.info("No session at %s, starting fresh", filename)
            return cls(names, clock=clock)
        except MalformedSessionError as exc:
            logger.warning("%s; starting a fresh session", exc)
            return cls(names, clock=clock)
        return cls(names, state, clock)

    def _load(self, state: SessionState) -> None:
        self._items: List[Item] = state.items
        self._by_name: Dict[str, Item] = {item.name: item for item in state.items}
        self._decisions: List[Decision] = list(state.decisions)
        self.conflict_log = ConflictLog(state.conflicts)
        self.graph = PreferenceGraph(self._decisions)
        self._pending: Optional[PendingPair] = None
        self._last_pair: Optional[Tuple[str, str]] = None
        self._presented_at: Optional[float] = None
        self._pair_counter = 0

    # -- read access --------------------------------------------------------

    @property
    def items(self) -> List[Item]:
        return list(self._items)

    @property
    def decisions(self) -> List[Decision]:
        return list(self._decisions)

    @property
    def conflicts(self) -> List[ConflictRecord]:
        return self.conflict_log.records

    @property
    def state(self) -> SessionState:
        return SessionState(self._items, list(self._decisions), self.conflict_log.records)

    @property
    def pending(self) -> Optional[PendingPair]:
        return self._pending

    def item(self, name: str) -> Item:
        return self._by_name[name]

    def is_reachable(self, from_name: str, to_name: str) -> bool:
        return self.graph.is_reachable(from_name, to_name)

    def progress(self) -> ProgressReport:
        return progress_report(len(self._decisions))

    @property
    def phase(self) -> str:
        return "discovery" if is_discovery(len(self._decisions)) else "tournament"

    # -- events -------------------------------------------------------------

    def subscribe(self, listener: Callable[[EngineEvent], None]) -> None:
        self.listeners.append(listener)

    def _emit(self, kind: str, payload: Any) -> None:
        event = EngineEvent(kind, payload)
        for listener in self.listeners:
            listener(event)

    # -- the comparison loop ------------------------------------------------

    def next_pair(self) -> PendingPair:
        """
        Present the next pair.

        While a pair is awaiting a decision it is returned again. Pairs whose
        outcome history already implies are committed on the spot and come
        back with kind INFERRED; call ``next_pair`` again to get a question.
        """
        if self._pending is not None:
            return self._pending

        matchup = select_next_pair(self._items, self._decisions, self._last_pair)
        first, second = matchup.first, matchup.second
        self._pair_counter += 1
        self._last_pair = matchup.names

        resolution = None
        if matchup.is_rematch:
            kind = PairKind.REMATCH
        else:
            verdict = self.graph.verdict(first.name, second.name)
            if verdict.is_contradiction:
                kind = PairKind.CONTRADICTION
            elif verdict.is_implied:
                kind = PairKind.INFERRED
                resolution = self.graph.resolve_pair(first.name, second.name)
            else:
                kind = PairKind.COMPARISON

        pair = PendingPair(self._pair_counter, first, second, kind, resolution)
        self._emit(PAIR_PRESENTED, pair)

        if pair.is_auto:
            logger.info("Auto-resolved %s vs %s (%s)", first.name, second.name, pair.reason)
            self._commit(pair, pair.auto_winner, 0, auto=True)
        else:
            self._pending = pair
            self._presented_at = time.monotonic()
        return pair

    def submit_decision(
        self, pair_id: int, winning_side: int, elapsed_ms: Optional[int] = None
    ) -> Decision:
        """
        Record the user's choice for the pending pair.

        ``winning_side`` is 0 for the first item and 1 for the second. When
        ``elapsed_ms`` is omitted the time since presentation is used.
        """
        pending = self._pending
        if pending is None:
            raise InvalidDecisionError("No pair is awaiting a decision")
        if pair_id != pending.pair_id:
            raise InvalidDecisionError(
                f"Pair {pair_id} is not pending (expected {pending.pair_id})"
            )
        if winning_side not in (0, 1) or isinstance(winning_side, bool):
            raise InvalidDecisionError(f"Winning side must be 0 or 1, got {winning_side!r}")
        if elapsed_ms is None:
            elapsed_ms = int((time.monotonic() - self._presented_at) * 1000)
        if elapsed_ms < 0:
            raise InvalidDecisionError(f"Elapsed time cannot be negative: {elapsed_ms}")

        self._pending = None
        self._presented_at = None
        return self._commit(pending, winning_side, int(elapsed_ms), auto=False)

    def _commit(self, pair: PendingPair, winning_side: int, duration_ms: int, auto: bool) -> Decision:
        winner = pair.first if winning_side == 0 else pair.second
        loser = pair.second if winning_side == 0 else pair.first
        confident = is_confident(duration_ms, auto)

        apply_result(winner, loser, confident, auto)
        decision = Decision(
            winner.name, loser.name, int(self.clock() * 1000), duration_ms, auto
        )
        self._decisions.append(decision)
        self.graph.add(winner.name, loser.name)
        self._emit(DECISION_COMMITTED, (decision, confident))

        record = self.conflict_log.record_if_hard(decision)
        if record is not None:
            self._emit(CONFLICT_RECORDED, record)

        self._emit(PROGRESS_CHANGED, self.progress())
        return decision

    def request_reset(self) -> None:
        """Clear decisions and conflicts and restore the initial catalogue."""
        logger.info("Resetting session (%d decisions discarded)", len(self._decisions))
        self._load(SessionState.fresh(self.catalogue))
        self._emit(PROGRESS_CHANGED, self.progress())

    # -- ordering -----------------------------------------------------------

    def has_manual_order(self) -> bool:
        return any(item.manual_rank is not None for item in self._items)

    def ranked_items(self) -> List[Item]:
        """
        Items best first. Once any item has a manual rank the manual order
        wins for every ranked item; unranked items follow by rating.
        """
        if self.has_manual_order():
            return sorted(
                self._items,
                key=lambda item: (
                    item.manual_rank is None,
                    item.manual_rank if item.manual_rank is not None else 0,
                    -item.rating,
                ),
            )
        return sorted(self._items, key=lambda item: item.rating, reverse=True)

    def set_manual_order(self, names: Sequence[str]) -> None:
        unknown = [name for name in names if name not in self._by_name]
        if unknown:
            raise ValueError(f"Unknown items: {', '.join(unknown)}")
        if len(set(names)) != len(names):
            raise ValueError("Manual order lists an item twice")
        for item in self._items:
            item.manual_rank = None
        for rank, name in enumerate(names, 1):
            self._by_name[name].manual_rank = rank

    def clear_manual_order(self) -> None:
        for item in self._items:
            item.manual_rank = None

    # -- persistence & export -----------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return self.state.to_dict()

    def save_state(self, filename: str) -> None:
        """Save current state to file"""
        save_session(self.state, filename)

    def visualize_rankings(self) -> None:
        """Display a simple ASCII visualization of ratings"""
        ranked = self.ranked_items()
        low = min(item.rating for item in ranked)
        high = max(item.rating for item in ranked)
        span = (high - low) or 1.0
        max_name_len = max(len(item.name) for item in ranked)

        print("\nRanking visualization:")
        for item in ranked:
            bar_length = int((item.rating - low) / span * 40)
            print(
                f"{item.name:<{max_name_len}} | {'#' * bar_length}{' ' * (40 - bar_length)} | {item.rating:.0f}"
            )

    def export_rankings(self, format: str = "csv") -> Union[str, Dict, pd.DataFrame]:
        """Export rankings in various formats"""
        ranked = self.ranked_items()
        progress = self.progress()

        if format == "json":
            return {
                "rankings": {item.name: item.rating for item in ranked},
                "order": [item.name for item in ranked],
                "conflicts": [
                    {"pair": list(c.pair), "winner": c.winner, "durationMs": c.duration_ms}
                    for c in self.conflicts
                ],
                "metadata": {
                    "total_decisions": len(self._decisions),
                    "auto_decisions": sum(1 for d in self._decisions if d.auto),
                    "progress": progress.percent,
                    "phase": self.phase,
                    "manual_order": self.has_manual_order(),
                },
            }
        elif format == "markdown":
            lines = ["| Rank | Item | Rating | RD | Matches |", "|------|------|--------|----|---------|"]
            for rank, item in enumerate(ranked, 1):
                lines.append(
                    f"| {rank} | {item.name} | {item.rating:.1f} | {item.rd:.1f} | {item.match_count} |"
                )
            return "\n".join(lines)
        elif format == "csv":
            return pd.DataFrame(
                {
                    "Rank": list(range(1, len(ranked) + 1)),
                    "Item": [item.name for item in ranked],
                    "Rating": [item.rating for item in ranked],
                    "RD": [item.rd for item in ranked],
                    "Matches": [item.match_count for item in ranked],
                }
            )
        else:
            raise ValueError(f"Unknown format: {format}")
