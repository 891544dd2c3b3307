"""Explicit build context threaded through every provisioner."""

from __future__ import annotations

from dataclasses import dataclass, field

from .graph import DependencyGraph


@dataclass(frozen=True)
class BuildContext:
    """Deploy target plus the graph every descriptor is registered in."""

    account: str
    region: str
    graph: DependencyGraph = field(default_factory=DependencyGraph)
