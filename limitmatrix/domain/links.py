"""Parent/child links between combinations of one contract.

Links form a directed graph that must stay acyclic: a combination may not,
directly or through other links, depend on itself.
"""

from collections import defaultdict, deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .constants import DEFAULT_LINK_TYPE, MAX_DESCRIPTION_LENGTH
from .entities import LimitCombination
from .exceptions import ValidationError


@dataclass
class LinkedCombination:
    """Core business entity for a dependency between two combinations."""

    id: int | None
    contract_id: int
    parent_combination_id: int
    child_combination_id: int
    link_type: str = DEFAULT_LINK_TYPE
    description: str | None = None

    def __post_init__(self):
        """Validate link data after initialization."""
        self.validate()

    def validate(self) -> None:
        """Validate link business rules."""
        if self.parent_combination_id == self.child_combination_id:
            raise ValidationError(
                "Parent and child combinations cannot be the same",
                field="childCombinationId",
            )
        if not self.link_type or not self.link_type.strip():
            raise ValidationError("Link type cannot be empty", field="linkType")
        if self.description and len(self.description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Link description cannot be longer than {MAX_DESCRIPTION_LENGTH} "
                + "characters",
                field="description",
            )

    @property
    def edge(self) -> tuple[int, int]:
        return self.parent_combination_id, self.child_combination_id


def _adjacency(edges: Iterable[tuple[int, int]]) -> dict[int, list[int]]:
    graph: dict[int, list[int]] = defaultdict(list)
    for parent, child in edges:
        graph[parent].append(child)
    return graph


def reachable_from(edges: Iterable[tuple[int, int]], start: int) -> set[int]:
    """All combination ids reachable from ``start`` by following links."""
    graph = _adjacency(edges)
    seen: set[int] = set()
    queue = deque([start])
    while queue:
        node = queue.popleft()
        for child in graph.get(node, ()):
            if child not in seen:
                seen.add(child)
                queue.append(child)
    return seen


def creates_cycle(
    edges: Iterable[tuple[int, int]], parent_id: int, child_id: int
) -> bool:
    """Whether adding ``parent_id -> child_id`` would close a cycle."""
    if parent_id == child_id:
        return True
    return parent_id in reachable_from(edges, child_id)


def available_children(
    combinations: Sequence[LimitCombination],
    links: Sequence[LinkedCombination],
    parent_id: int,
) -> list[LimitCombination]:
    """Combinations that can still be linked below ``parent_id``.

    Excludes the parent itself, its existing children and any combination
    from which the parent is already reachable.
    """
    edges = [link.edge for link in links]
    existing_children = {
        link.child_combination_id
        for link in links
        if link.parent_combination_id == parent_id
    }
    ancestors_blocked = {
        combination.id
        for combination in combinations
        if combination.id is not None
        and parent_id in reachable_from(edges, combination.id)
    }
    return [
        combination
        for combination in combinations
        if combination.id is not None
        and combination.id != parent_id
        and combination.id not in existing_children
        and combination.id not in ancestors_blocked
    ]
