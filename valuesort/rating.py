"""
Glicko-lite rating updates.

A simplified, tunable take on Glicko: each item keeps an Elo-style rating and
a rating deviation (rd). The rd scales how far a result moves the ratings and
shrinks with every observation, so the order locks in as evidence piles up.
"""
import logging

from .constants import (
    CONFIDENT_MULTIPLIER,
    CONFIDENT_THRESHOLD_MS,
    INFERRED_MULTIPLIER,
    K_BASE,
    MIN_RD,
    RD_DECAY,
    VOLATILITY_SCALE,
)
from .items import Item

logger = logging.getLogger(__name__)


def expected_score(winner_rating: float, loser_rating: float) -> float:
    """Probability that the first item beats the second on the logistic Elo curve."""
    return 1 / (1 + 10 ** ((loser_rating - winner_rating) / 400))


def is_confident(duration_ms: int, auto: bool) -> bool:
    """Quick manual choices count as confident; inferred ones never do."""
    return not auto and duration_ms < CONFIDENT_THRESHOLD_MS


def k_factor(winner: Item, loser: Item, is_confident: bool, is_inferred: bool) -> float:
    k = K_BASE
    if is_confident:
        k *= CONFIDENT_MULTIPLIER
    if is_inferred:
        k *= INFERRED_MULTIPLIER
    # rd sum is at least 2 * MIN_RD, so this never reaches zero
    return k * (winner.rd + loser.rd) / VOLATILITY_SCALE


def apply_result(
    winner: Item, loser: Item, is_confident: bool, is_inferred: bool
) -> float:
    """
    Update both items in place after ``winner`` was preferred over ``loser``.

    Ratings move by the same amount in opposite directions, both deviations
    decay towards MIN_RD, match counts go up by one and each side is added to
    the other's opponents. Returns the rating delta.
    """
    final_k = k_factor(winner, loser, is_confident, is_inferred)
    expected = expected_score(winner.rating, loser.rating)
    delta = final_k * (1 - expected)

    winner.rating += delta
    loser.rating -= delta

    winner.rd = max(MIN_RD, winner.rd * RD_DECAY)
    loser.rd = max(MIN_RD, loser.rd * RD_DECAY)

    winner.match_count += 1
    loser.match_count += 1
    winner.opponents.add(loser.name)
    loser.opponents.add(winner.name)

    logger.debug(
        "%s beat %s: delta=%.2f (k=%.2f, expected=%.3f, confident=%s, inferred=%s)",
        winner.name, loser.name, delta, final_k, expected, is_confident, is_inferred,
    )
    return delta
