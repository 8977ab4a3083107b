from .errors import (
    DegenerateCatalogueError,
    InvalidDecisionError,
    MalformedSessionError,
    ValueSortError,
)
from .inference import PreferenceGraph, is_reachable
from .items import ConflictRecord, Decision, Item
from .matchmaker import select_next_pair
from .progress import estimate_progress, progress_report
from .rating import apply_result
from .ranker import (
    PairKind,
    PendingPair,
    ValueRanker,
    read_input,
    parse_input,
    assign_levels,
    assign_custom_quantiles,
)
from .session import SessionState

__version__ = "0.7.0"
__all__ = [
    "ValueRanker",
    "PairKind",
    "PendingPair",
    "SessionState",
    "Item",
    "Decision",
    "ConflictRecord",
    "PreferenceGraph",
    "is_reachable",
    "select_next_pair",
    "apply_result",
    "estimate_progress",
    "progress_report",
    "read_input",
    "parse_input",
    "assign_levels",
    "assign_custom_quantiles",
    "ValueSortError",
    "MalformedSessionError",
    "InvalidDecisionError",
    "DegenerateCatalogueError",
]
