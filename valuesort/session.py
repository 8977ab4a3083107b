"""
Session state and its persisted JSON shape.

Loading always goes through ``migrate``, which upgrades older payloads one
version at a time and backfills fields they lack:

* version 0: the accumulator-era shape ``{values, history, conflicts}`` with
  ``score``/``matches``/``playedAgainst`` per value and ``duration`` on
  history and conflict entries;
* version 1: ``{version, items, decisions, conflicts}`` with Glicko-lite
  fields.
"""
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from .constants import DEFAULT_RATING, DEFAULT_RD, SESSION_VERSION
from .errors import MalformedSessionError
from .items import ConflictRecord, Decision, Item, build_items

logger = logging.getLogger(__name__)


class SessionState:
    """The unit of persistence: items, decisions and conflict records."""

    def __init__(
        self,
        items: List[Item],
        decisions: Optional[List[Decision]] = None,
        conflicts: Optional[List[ConflictRecord]] = None,
    ) -> None:
        self.items = items
        self.decisions = decisions if decisions is not None else []
        self.conflicts = conflicts if conflicts is not None else []

    @classmethod
    def fresh(cls, names: Iterable[str]) -> "SessionState":
        return cls(build_items(names))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": SESSION_VERSION,
            "items": [item_to_dict(item) for item in self.items],
            "decisions": [
                {
                    "winner": d.winner,
                    "loser": d.loser,
                    "timestamp": d.timestamp,
                    "durationMs": d.duration_ms,
                    "auto": d.auto,
                }
                for d in self.decisions
            ],
            "conflicts": [
                {"pair": list(c.pair), "winner": c.winner, "durationMs": c.duration_ms}
                for c in self.conflicts
            ],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "SessionState":
        data = migrate(data)
        try:
            items = [item_from_dict(raw) for raw in data["items"]]
            decisions = [
                Decision(
                    raw["winner"],
                    raw["loser"],
                    int(raw.get("timestamp", 0)),
                    int(raw.get("durationMs", 0)),
                    bool(raw.get("auto", False)),
                )
                for raw in data.get("decisions") or []
            ]
            conflicts = [
                ConflictRecord(
                    tuple(raw["pair"]), raw["winner"], int(raw.get("durationMs", 0))
                )
                for raw in data.get("conflicts") or []
            ]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise MalformedSessionError(f"bad entry: {exc!r}") from exc

        state = cls(items, decisions, conflicts)
        state.validate()
        state.close_opponents()
        return state

    def validate(self) -> None:
        """Check that every name referenced by history exists in the catalogue."""
        names = [item.name for item in self.items]
        if not names:
            raise MalformedSessionError("item catalogue is empty")
        known = set(names)
        if len(known) != len(names):
            raise MalformedSessionError("duplicate item names")

        for d in self.decisions:
            for name in (d.winner, d.loser):
                if name not in known:
                    raise MalformedSessionError(f"decision references unknown item {name!r}")
        for c in self.conflicts:
            if len(c.pair) != 2:
                raise MalformedSessionError(f"conflict pair {c.pair!r} is not a pair")
            for name in (*c.pair, c.winner):
                if name not in known:
                    raise MalformedSessionError(f"conflict references unknown item {name!r}")
        for item in self.items:
            stray = item.opponents - known
            if stray:
                raise MalformedSessionError(
                    f"{item.name!r} lists unknown opponents {sorted(stray)!r}"
                )

    def close_opponents(self) -> None:
        """Make the opponent sets contain both sides of every decision."""
        by_name = {item.name: item for item in self.items}
        for d in self.decisions:
            by_name[d.winner].opponents.add(d.loser)
            by_name[d.loser].opponents.add(d.winner)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SessionState):
            return NotImplemented
        return (
            self.items == other.items
            and self.decisions == other.decisions
            and self.conflicts == other.conflicts
        )


def item_to_dict(item: Item) -> Dict[str, Any]:
    data = {
        "name": item.name,
        "rating": item.rating,
        "rd": item.rd,
        "matchCount": item.match_count,
        "opponents": sorted(item.opponents),
    }
    if item.manual_rank is not None:
        data["manualRank"] = item.manual_rank
    return data


def item_from_dict(raw: Dict[str, Any]) -> Item:
    if not isinstance(raw, dict):
        raise MalformedSessionError(f"item entry is not an object: {raw!r}")
    manual_rank = raw.get("manualRank")
    return Item(
        raw["name"],
        rating=raw.get("rating", DEFAULT_RATING),
        rd=raw.get("rd", DEFAULT_RD),
        match_count=raw.get("matchCount", 0),
        opponents=raw.get("opponents") or [],
        manual_rank=int(manual_rank) if manual_rank is not None else None,
    )


def _upgrade_v0(data: Dict[str, Any]) -> Dict[str, Any]:
    values = data.get("values")
    if values is None:
        values = data.get("items")
    if not isinstance(values, list):
        raise MalformedSessionError("item catalogue is missing")

    items = []
    for raw in values:
        if isinstance(raw, str):
            raw = {"name": raw}
        if not isinstance(raw, dict) or "name" not in raw:
            raise MalformedSessionError(f"item entry without a name: {raw!r}")
        items.append(
            {
                "name": raw["name"],
                "rating": raw.get("rating", DEFAULT_RATING),
                "rd": raw.get("rd", DEFAULT_RD),
                "matchCount": raw.get("matchCount", raw.get("matches", 0)),
                "opponents": sorted(set(raw.get("opponents", raw.get("playedAgainst")) or [])),
                **({"manualRank": raw["manualRank"]} if raw.get("manualRank") is not None else {}),
            }
        )

    decisions = [
        {
            "winner": raw.get("winner"),
            "loser": raw.get("loser"),
            "timestamp": raw.get("timestamp", 0),
            "durationMs": raw.get("durationMs", raw.get("duration", 0)),
            "auto": raw.get("auto", False),
        }
        for raw in data.get("decisions", data.get("history")) or []
    ]
    conflicts = [
        {
            "pair": raw.get("pair"),
            "winner": raw.get("winner"),
            "durationMs": raw.get("durationMs", raw.get("duration", 0)),
        }
        for raw in data.get("conflicts") or []
    ]
    return {"version": 1, "items": items, "decisions": decisions, "conflicts": conflicts}


MIGRATIONS = {0: _upgrade_v0}


def migrate(data: Any) -> Dict[str, Any]:
    """Upgrade a persisted payload to the current session version."""
    if not isinstance(data, dict):
        raise MalformedSessionError("session payload is not an object")

    version = data.get("version", 0)
    if not isinstance(version, int) or version > SESSION_VERSION or version < 0:
        raise MalformedSessionError(f"unsupported session version {version!r}")

    while version < SESSION_VERSION:
        logger.info("Migrating session from version %d", version)
        data = MIGRATIONS[version](data)
        version = data["version"]

    if not isinstance(data.get("items"), list):
        raise MalformedSessionError("item catalogue is missing")
    return data


def save_session(state: SessionState, filename: str) -> None:
    """Save session state to a JSON file"""
    with open(filename, "w") as f:
        json.dump(state.to_dict(), f, indent=2)


def load_session(filename: str) -> SessionState:
    """Load session state from a JSON file; FileNotFoundError propagates."""
    with open(filename, "r") as f:
        try:
            data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedSessionError(f"invalid JSON: {exc}", filename) from exc
    return SessionState.from_dict(data)
