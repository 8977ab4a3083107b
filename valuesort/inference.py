"""
Transitive inference over the decision history.

Every decision is a directed edge winner -> loser. If a chain of explicit wins
already leads from one item to the other, asking the user about that pair is
redundant and the outcome can be filled in automatically.
"""
from collections import deque
from typing import Dict, Iterable, List, NamedTuple, Optional, Set

from .items import Decision


class Resolution(NamedTuple):
    """An outcome implied by history, with the chain of wins that implies it."""

    winner: str
    loser: str
    path: List[str]

    @property
    def reason(self) -> str:
        return "Logic: " + " > ".join(self.path)


class PairVerdict(NamedTuple):
    forward: bool  # first is known to beat second
    backward: bool  # second is known to beat first

    @property
    def is_contradiction(self) -> bool:
        return self.forward and self.backward

    @property
    def is_implied(self) -> bool:
        return self.forward != self.backward


class PreferenceGraph:
    """
    Adjacency structure for the preference graph.

    Edges are added as decisions are recorded. Reachable sets are memoized per
    source and the memo is dropped whenever a new edge arrives.
    """

    def __init__(self, decisions: Optional[Iterable[Decision]] = None) -> None:
        self.edges: Dict[str, Set[str]] = {}
        self._reachable: Dict[str, Set[str]] = {}
        for decision in decisions or ():
            self.add(decision.winner, decision.loser)

    def add(self, winner: str, loser: str) -> None:
        targets = self.edges.setdefault(winner, set())
        if loser in targets:
            return
        targets.add(loser)
        self._reachable.clear()

    def reachable_from(self, source: str) -> Set[str]:
        if source in self._reachable:
            return self._reachable[source]

        visited = {source}
        queue = deque([source])
        while queue:
            current = queue.popleft()
            for neighbor in self.edges.get(current, ()):
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(neighbor)

        self._reachable[source] = visited
        return visited

    def is_reachable(self, from_name: str, to_name: str) -> bool:
        """Does history already imply ``from_name`` is preferred over ``to_name``?"""
        return to_name in self.reachable_from(from_name)

    def shortest_path(self, from_name: str, to_name: str) -> Optional[List[str]]:
        """Shortest chain of wins from one item to another, or None."""
        parents: Dict[str, Optional[str]] = {from_name: None}
        queue = deque([from_name])
        while queue:
            current = queue.popleft()
            if current == to_name:
                path = []
                node: Optional[str] = current
                while node is not None:
                    path.append(node)
                    node = parents[node]
                return path[::-1]
            for neighbor in sorted(self.edges.get(current, ())):
                if neighbor not in parents:
                    parents[neighbor] = current
                    queue.append(neighbor)
        return None

    def verdict(self, first: str, second: str) -> PairVerdict:
        return PairVerdict(
            self.is_reachable(first, second), self.is_reachable(second, first)
        )

    def resolve_pair(self, first: str, second: str) -> Optional[Resolution]:
        """Return the implied outcome when exactly one direction is reachable."""
        verdict = self.verdict(first, second)
        if not verdict.is_implied:
            return None
        winner, loser = (first, second) if verdict.forward else (second, first)
        return Resolution(winner, loser, self.shortest_path(winner, loser))


def is_reachable(decisions: Iterable[Decision], from_name: str, to_name: str) -> bool:
    """One-shot reachability check that builds the graph from full history."""
    return PreferenceGraph(decisions).is_reachable(from_name, to_name)
