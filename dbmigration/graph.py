"""
Dependency graph between descriptors.

Nodes are descriptors keyed by logical id; an edge (dependent, dependency)
means the executor must not apply `dependent` before `dependency` exists.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from .errors import DependencyCycleError, NamingCollisionError, UnresolvedReferenceError
from .models import DependencyEdge, Descriptor

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Registry of descriptors plus the explicit edges between them."""

    def __init__(self) -> None:
        self._nodes: Dict[str, Descriptor] = {}
        self._names: Dict[Tuple[str, str], str] = {}
        self._edges: List[DependencyEdge] = []

    def add(self, descriptor: Descriptor, name: Optional[str] = None) -> Descriptor:
        """
        Register a descriptor.

        Args:
            descriptor: The descriptor to register
            name: Provider-side name; must be unique per descriptor kind

        Raises:
            NamingCollisionError: logical id or provider-side name already taken
        """
        if descriptor.logical_id in self._nodes:
            raise NamingCollisionError(descriptor.logical_id, kind="logical id")
        if name is not None:
            key = (descriptor.kind, name)
            if key in self._names:
                raise NamingCollisionError(name, kind=f"{descriptor.kind} name")
            self._names[key] = descriptor.logical_id
        self._nodes[descriptor.logical_id] = descriptor
        logger.debug("registered %s %s", descriptor.kind, descriptor.logical_id)
        return descriptor

    def get(self, logical_id: str) -> Descriptor:
        try:
            return self._nodes[logical_id]
        except KeyError:
            raise UnresolvedReferenceError(f"no descriptor registered as {logical_id!r}") from None

    def lookup(self, kind: str, name: str) -> Descriptor:
        """Find a registered descriptor by kind and provider-side name."""
        logical_id = self._names.get((kind, name))
        if logical_id is None:
            raise UnresolvedReferenceError(f"no {kind} named {name!r} is registered")
        return self._nodes[logical_id]

    def __contains__(self, descriptor: object) -> bool:
        logical_id = getattr(descriptor, "logical_id", None)
        return logical_id is not None and self._nodes.get(logical_id) is descriptor

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> Tuple[Descriptor, ...]:
        return tuple(self._nodes.values())

    @property
    def edges(self) -> Tuple[DependencyEdge, ...]:
        return tuple(self._edges)

    def require(self, dependent: Descriptor, dependency: Descriptor) -> DependencyEdge:
        """Record that `dependent` depends on `dependency`."""
        for descriptor in (dependent, dependency):
            if descriptor not in self:
                raise UnresolvedReferenceError(
                    f"{descriptor.kind} {descriptor.logical_id!r} is not registered in the graph"
                )
        if dependent.logical_id == dependency.logical_id:
            raise DependencyCycleError([dependent.logical_id, dependency.logical_id])

        edge = DependencyEdge(dependent.logical_id, dependency.logical_id)
        if edge not in self._edges:
            self._edges.append(edge)
            logger.debug("edge %s -> %s", edge.dependent, edge.dependency)
        return edge

    def dependencies_of(self, logical_id: str) -> List[str]:
        return [e.dependency for e in self._edges if e.dependent == logical_id]

    def validate(self) -> None:
        """Raise DependencyCycleError if the edge set has a self-edge or a cycle."""
        for edge in self._edges:
            if edge.dependent == edge.dependency:
                raise DependencyCycleError([edge.dependent, edge.dependency])

        visiting: List[str] = []
        done = set()

        def visit(node: str) -> None:
            if node in done:
                return
            if node in visiting:
                raise DependencyCycleError(visiting[visiting.index(node):] + [node])
            visiting.append(node)
            for dep in self.dependencies_of(node):
                visit(dep)
            visiting.pop()
            done.add(node)

        for logical_id in self._nodes:
            visit(logical_id)

    def topological_order(self) -> List[str]:
        """
        Logical ids ordered so every dependency precedes its dependents.

        Ties are broken by registration order, so the result is deterministic.
        """
        self.validate()
        order: List[str] = []
        placed = set()
        pending = list(self._nodes)
        while pending:
            for logical_id in pending:
                if all(dep in placed for dep in self.dependencies_of(logical_id)):
                    order.append(logical_id)
                    placed.add(logical_id)
                    pending.remove(logical_id)
                    break
        return order

    def to_dict(self) -> dict:
        return {
            "nodes": [self._nodes[logical_id].to_dict() for logical_id in self.topological_order()],
            "edges": [{"dependent": e.dependent, "dependency": e.dependency} for e in self._edges],
        }
