import logging
from typing import Iterable, Iterator, List, Optional

from .constants import HARD_CHOICE_THRESHOLD_MS
from .items import ConflictRecord, Decision

logger = logging.getLogger(__name__)


def is_hard_choice(decision: Decision) -> bool:
    return not decision.auto and decision.duration_ms > HARD_CHOICE_THRESHOLD_MS


class ConflictLog:
    """Append-only record of the comparisons the user struggled with."""

    def __init__(self, records: Optional[Iterable[ConflictRecord]] = None) -> None:
        self._records: List[ConflictRecord] = list(records or ())

    def record_if_hard(self, decision: Decision) -> Optional[ConflictRecord]:
        if not is_hard_choice(decision):
            return None
        record = ConflictRecord(
            (decision.winner, decision.loser), decision.winner, decision.duration_ms
        )
        self._records.append(record)
        logger.info(
            "Hard choice: %s vs %s took %.1fs",
            decision.winner, decision.loser, decision.duration_ms / 1000,
        )
        return record

    @property
    def records(self) -> List[ConflictRecord]:
        return list(self._records)

    def __iter__(self) -> Iterator[ConflictRecord]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)
