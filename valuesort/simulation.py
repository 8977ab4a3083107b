"""
Offline simulations of a ranking session.

A synthetic user always prefers the item with the better (lower) true rank and
answers quickly more often when the two are far apart. Sessions are played
either with the Glicko-lite engine (the real matchmaker and rating update) or
with the older accumulator scheme (+2 for a confident win, +1 otherwise,
least-played pairing), and the final order is scored against the truth.
"""
import click
import sys
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.stats import spearmanr

from .items import Decision, Item
from .matchmaker import select_next_pair
from .rating import apply_result

SCORING_METHODS = ["accumulator", "glicko"]


def make_items(num_values: int) -> List[Item]:
    # index i has true rank i + 1
    return [Item(f"value-{i + 1:02d}") for i in range(num_values)]


def simulated_confidence(rank_a: int, rank_b: int, rng: np.random.Generator) -> bool:
    if abs(rank_a - rank_b) > 10:
        return bool(rng.random() < 0.8)
    return bool(rng.random() < 0.4)


def accumulator_pair(items: Sequence[Item], rng: np.random.Generator) -> tuple:
    """Least-played item against the least-played item it has not met yet."""
    shuffled = [items[i] for i in rng.permutation(len(items))]
    candidates = sorted(shuffled, key=lambda item: item.match_count)
    first = candidates[0]
    for other in candidates[1:]:
        if not first.has_faced(other):
            return first, other
    return first, candidates[1]


def score_order(ordered: Sequence[Item], true_rank: Dict[str, int]) -> Dict[str, float]:
    ranks = [true_rank[item.name] for item in ordered]
    correlation = spearmanr(np.arange(1, len(ranks) + 1), ranks)[0]
    return {
        "top1_correct": float(ranks[0] == 1),
        "top3_correct": float(sum(1 for r in ranks[:3] if r <= 3)),
        "top5_correct": float(sum(1 for r in ranks[:5] if r <= 5)),
        "true_winner_rank": float(ranks.index(1) + 1),
        "spearman": float(correlation),
    }


def simulate_session(
    num_values: int,
    num_matches: int,
    rng: np.random.Generator,
    scoring: str = "glicko",
) -> Dict[str, float]:
    if scoring not in SCORING_METHODS:
        raise ValueError(f"Unknown scoring method: {scoring}")
    if num_values < 2:
        raise ValueError("At least 2 values are needed to simulate a session")

    items = make_items(num_values)
    true_rank = {item.name: i + 1 for i, item in enumerate(items)}
    scores = {item.name: 0 for item in items}
    decisions: List[Decision] = []
    last_pair = None

    for m in range(num_matches):
        if scoring == "glicko":
            matchup = select_next_pair(items, decisions, last_pair)
            first, second = matchup.first, matchup.second
            last_pair = matchup.names
        else:
            first, second = accumulator_pair(items, rng)

        winner, loser = (first, second) if true_rank[first.name] < true_rank[second.name] else (second, first)
        confident = simulated_confidence(true_rank[first.name], true_rank[second.name], rng)

        if scoring == "glicko":
            apply_result(winner, loser, confident, False)
        else:
            scores[winner.name] += 2 if confident else 1
            winner.match_count += 1
            loser.match_count += 1
            winner.opponents.add(loser.name)
            loser.opponents.add(winner.name)
        decisions.append(Decision(winner.name, loser.name, m, 0, False))

    if scoring == "glicko":
        ordered = sorted(items, key=lambda item: item.rating, reverse=True)
    else:
        ordered = sorted(items, key=lambda item: scores[item.name], reverse=True)
    return score_order(ordered, true_rank)


def summarize(runs: List[Dict[str, float]]) -> Dict[str, float]:
    frame = pd.DataFrame(runs)
    return {
        "top1_accuracy": frame["top1_correct"].mean(),
        "top3_avg_correct": frame["top3_correct"].mean(),
        "top5_avg_correct": frame["top5_correct"].mean(),
        "avg_winner_rank": frame["true_winner_rank"].mean(),
        "avg_spearman": frame["spearman"].mean(),
    }


def compare_scoring(
    num_simulations: int = 100,
    num_values: int = 53,
    num_matches: int = 120,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """Accumulator vs Glicko-lite over the same number of matches."""
    rng = np.random.default_rng(seed)
    rows = []
    for scoring in SCORING_METHODS:
        runs = [
            simulate_session(num_values, num_matches, rng, scoring)
            for _ in range(num_simulations)
        ]
        rows.append({"scoring": scoring, **summarize(runs)})
    return pd.DataFrame(rows).set_index("scoring")


def convergence(
    match_counts: Sequence[int] = (120, 150, 200, 300, 500),
    num_simulations: int = 50,
    num_values: int = 53,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """Glicko-lite accuracy as the number of matches grows."""
    rng = np.random.default_rng(seed)
    rows = []
    for num_matches in match_counts:
        runs = [
            simulate_session(num_values, num_matches, rng, "glicko")
            for _ in range(num_simulations)
        ]
        rows.append({"matches": num_matches, **summarize(runs)})
    return pd.DataFrame(rows).set_index("matches")


@click.command()
@click.option("--simulations", default=100, type=int, help="Number of simulated sessions per configuration")
@click.option("--values", "num_values", default=53, type=int, help="Number of items in the simulated catalogue")
@click.option("--matches", default=120, type=int, help="Matches per simulated session")
@click.option(
    "--convergence",
    "convergence_counts",
    default=None,
    type=str,
    help="Space-separated match counts; runs the convergence test instead of the comparison",
)
@click.option("--seed", default=None, type=int, help="Random seed")
@click.option("--output", required=False, help="Write the results table to this CSV file")
def main(
    simulations: int,
    num_values: int,
    matches: int,
    convergence_counts: Optional[str],
    seed: Optional[int],
    output: Optional[str],
) -> None:
    if convergence_counts:
        counts = [int(x) for x in convergence_counts.split(" ") if x]
        print(f"Convergence test: {simulations} sessions per match count, {num_values} values")
        results = convergence(counts, simulations, num_values, seed)
    else:
        print(f"Simulations: {simulations} | Matches per run: {matches} | Values: {num_values}")
        results = compare_scoring(simulations, num_values, matches, seed)

    if output:
        results.to_csv(output)
        print(f"Results saved to {output}")
    else:
        results.to_csv(sys.stdout, float_format="%.3f")


if __name__ == "__main__":
    main()
