"""Dependency validation and ordering for resource graphs."""

from __future__ import annotations

import heapq
import logging
from collections import defaultdict

from core.errors import ConfigurationError, DependencyError
from core.models import ResourceGraph
from core.policy.validation import validate_statement

logger = logging.getLogger(__name__)


def validate_graph(graph: ResourceGraph) -> None:
    """Check declarations, references and edges; raise on the first problem."""
    seen: set[str] = set()
    for declaration in graph.declarations:
        if not declaration.logical_id.isalnum():
            raise ConfigurationError(f"Logical id {declaration.logical_id!r} must be alphanumeric")
        if declaration.logical_id in seen:
            raise ConfigurationError(f"Duplicate logical id {declaration.logical_id!r}")
        seen.add(declaration.logical_id)
        for statement in declaration.statements:
            validate_statement(statement, owner=declaration.logical_id)

    for declaration in graph.declarations:
        missing = sorted(declaration.references() - seen)
        if missing:
            raise DependencyError(f"{declaration.logical_id} references undeclared resources: {', '.join(missing)}")

    for edge in graph.edges:
        if edge.dependent not in seen:
            raise DependencyError(f"Edge {edge} has an undeclared dependent {edge.dependent!r}")
        if edge.dependency not in seen:
            raise DependencyError(f"Edge {edge} has an undeclared dependency {edge.dependency!r}")
        if edge.dependent == edge.dependency:
            raise DependencyError(f"{edge.dependent} depends on itself")

    cycle = find_cycle(graph)
    if cycle:
        raise DependencyError(f"Dependency cycle: {' -> '.join(cycle)}")
    # references and attachments add implicit ordering on top of the explicit edges
    topological_order(graph)
    logger.debug("Graph %s valid: %d declarations, %d edges", graph.stack_id, len(graph.declarations), len(graph.edges))


def _adjacency(graph: ResourceGraph) -> dict[str, list[str]]:
    adjacency: dict[str, list[str]] = defaultdict(list)
    for edge in graph.edges:
        adjacency[edge.dependent].append(edge.dependency)
    for targets in adjacency.values():
        targets.sort()
    return adjacency


def find_cycle(graph: ResourceGraph) -> list[str]:
    """Return one dependency cycle as a path of logical ids, or an empty list."""
    adjacency = _adjacency(graph)
    visiting, done = 1, 2
    state: dict[str, int] = {}
    stack: list[str] = []

    def visit(node: str) -> list[str]:
        state[node] = visiting
        stack.append(node)
        for target in adjacency.get(node, []):
            if state.get(target) == visiting:
                return stack[stack.index(target):] + [target]
            if target not in state:
                found = visit(target)
                if found:
                    return found
        stack.pop()
        state[node] = done
        return []

    for node in sorted(adjacency):
        if node not in state:
            found = visit(node)
            if found:
                return found
    return []


def topological_order(graph: ResourceGraph) -> list[str]:
    """Creation order with dependencies first; ties resolve by declaration order."""
    position = {logical_id: index for index, logical_id in enumerate(graph.logical_ids())}
    remaining: dict[str, int] = {logical_id: 0 for logical_id in position}
    dependents: dict[str, list[str]] = defaultdict(list)
    pairs = sorted(_effective_pairs(graph) | graph.edge_pairs())
    for dependent, dependency in pairs:
        for endpoint in (dependent, dependency):
            if endpoint not in position:
                raise DependencyError(f"{dependent} -> {dependency}: undeclared dependency {endpoint!r}")
    for dependent, dependency in pairs:
        remaining[dependent] += 1
        dependents[dependency].append(dependent)

    ready = [(position[node], node) for node, count in remaining.items() if count == 0]
    heapq.heapify(ready)
    order: list[str] = []
    while ready:
        _, node = heapq.heappop(ready)
        order.append(node)
        for dependent in dependents[node]:
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, (position[dependent], dependent))

    if len(order) != len(position):
        raise DependencyError(f"Dependency cycle among: {', '.join(sorted(set(position) - set(order)))}")
    return order


def depends_on(graph: ResourceGraph, logical_id: str) -> list[str]:
    """Explicit dependencies of a declaration, extended to the dependencies' attachments."""
    targets: set[str] = set()
    for dependent, dependency in graph.edge_pairs():
        if dependent != logical_id:
            continue
        targets.add(dependency)
        targets.update(item.logical_id for item in graph.attachments(dependency))
    targets.discard(logical_id)
    return sorted(targets)


def _effective_pairs(graph: ResourceGraph) -> set[tuple[str, str]]:
    pairs = {(declaration.logical_id, target) for declaration in graph.declarations for target in depends_on(graph, declaration.logical_id)}
    for declaration in graph.declarations:
        pairs.update((declaration.logical_id, ref) for ref in declaration.references() if ref != declaration.logical_id)
    return pairs


__all__ = ["depends_on", "find_cycle", "topological_order", "validate_graph"]
