"""
Phase-aware pair selection.

Discovery: of the pairs that never met, take the most uncertain one (largest
combined rd). Tournament: of the pairs that never met, take the closest one
(smallest rating gap). Once every pair has met, keep rematching the leaders.
"""
import logging
from typing import List, NamedTuple, Optional, Sequence, Tuple

from .constants import DISCOVERY_CUTOFF
from .errors import DegenerateCatalogueError
from .items import Decision, Item, pair_key

logger = logging.getLogger(__name__)


class Matchup(NamedTuple):
    first: Item
    second: Item
    is_rematch: bool = False

    @property
    def names(self) -> Tuple[str, str]:
        return self.first.name, self.second.name


def is_discovery(total_decisions: int) -> bool:
    return total_decisions < DISCOVERY_CUTOFF


def unplayed_pairs(items: Sequence[Item]) -> List[Tuple[Item, Item]]:
    """All pairs that have never faced each other, in catalogue order."""
    pairs = []
    for i, item_a in enumerate(items):
        for item_b in items[i + 1:]:
            if not item_a.has_faced(item_b):
                pairs.append((item_a, item_b))
    return pairs


def leader_pairs(items: Sequence[Item]) -> List[Tuple[Item, Item]]:
    """Pairs among items sorted by rating, leader vs runner-up first."""
    leaders = sorted(items, key=lambda item: item.rating, reverse=True)
    return [
        (item_a, item_b)
        for i, item_a in enumerate(leaders)
        for item_b in leaders[i + 1:]
    ]


def rank_candidates(
    pairs: List[Tuple[Item, Item]], total_decisions: int
) -> List[Tuple[Item, Item]]:
    if is_discovery(total_decisions):
        return sorted(pairs, key=lambda p: p[0].rd + p[1].rd, reverse=True)
    return sorted(pairs, key=lambda p: abs(p[0].rating - p[1].rating))


def select_next_pair(
    items: Sequence[Item],
    decisions: Sequence[Decision],
    last_pair: Optional[Tuple[str, str]] = None,
) -> Matchup:
    """
    Pick the next pair to present.

    ``last_pair`` holds the names of the previously presented pair; it is only
    repeated when there is no other candidate.
    """
    if len({item.name for item in items}) < 2:
        raise DegenerateCatalogueError(len(items))

    total = len(decisions)
    pairs = unplayed_pairs(items)
    rematch = not pairs
    if rematch:
        candidates = leader_pairs(items)
    else:
        candidates = rank_candidates(pairs, total)

    chosen = candidates[0]
    if (
        last_pair is not None
        and len(candidates) > 1
        and pair_key(chosen[0].name, chosen[1].name) == pair_key(*last_pair)
    ):
        chosen = candidates[1]

    logger.debug(
        "Selected %s vs %s (%s, %d decisions, %d candidates)",
        chosen[0].name,
        chosen[1].name,
        "rematch" if rematch else ("discovery" if is_discovery(total) else "tournament"),
        total,
        len(candidates),
    )
    return Matchup(chosen[0], chosen[1], rematch)
