from typing import Iterable, List, NamedTuple, Optional, Set, Tuple

from .constants import DEFAULT_RATING, DEFAULT_RD


class Item:
    """A rateable value and its Glicko-lite state."""

    def __init__(
        self,
        name: str,
        rating: float = DEFAULT_RATING,
        rd: float = DEFAULT_RD,
        match_count: int = 0,
        opponents: Optional[Iterable[str]] = None,
        manual_rank: Optional[int] = None,
    ) -> None:
        self.name = name
        self.rating = float(rating)
        self.rd = float(rd)
        self.match_count = int(match_count)
        self.opponents: Set[str] = set(opponents or ())
        self.manual_rank = manual_rank

    def has_faced(self, other: "Item") -> bool:
        return other.name in self.opponents

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return (
            self.name == other.name
            and self.rating == other.rating
            and self.rd == other.rd
            and self.match_count == other.match_count
            and self.opponents == other.opponents
            and self.manual_rank == other.manual_rank
        )

    def __repr__(self) -> str:
        return (
            f"Item({self.name!r}, rating={self.rating:.1f}, rd={self.rd:.1f}, "
            f"matches={self.match_count})"
        )


class Decision(NamedTuple):
    """One recorded preference: an edge winner -> loser in the preference graph."""

    winner: str
    loser: str
    timestamp: int
    duration_ms: int
    auto: bool = False


class ConflictRecord(NamedTuple):
    """A manual decision that took longer than the hard-choice threshold."""

    pair: Tuple[str, str]
    winner: str
    duration_ms: int


def pair_key(name_a: str, name_b: str) -> Tuple[str, str]:
    """Create a consistent key for a pair regardless of order"""
    return tuple(sorted([name_a, name_b]))


def build_items(names: Iterable[str]) -> List[Item]:
    return [Item(name) for name in names]
