"""Exceptions raised by the ranking engine."""

from typing import Optional


class ValueSortError(Exception):
    """Base exception for all engine errors."""


class MalformedSessionError(ValueSortError):
    """Raised when persisted session state cannot be rehydrated."""

    def __init__(self, reason: str, source: Optional[str] = None) -> None:
        self.reason = reason
        self.source = source
        msg = f"Malformed session: {reason}"
        if source:
            msg += f" ({source})"
        super().__init__(msg)


class InvalidDecisionError(ValueSortError, ValueError):
    """Raised when a submitted decision does not match the pending pair."""


class DegenerateCatalogueError(ValueSortError):
    """Raised when fewer than two distinct items are available to compare."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(
            f"At least 2 distinct items are needed to rank, got {count}"
        )
