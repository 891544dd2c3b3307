"""
Error taxonomy for the migration stack construction pass.

All errors are fatal for the pass that raised them: nothing here is retried,
and no output records are published once one of them has been raised.
"""

from __future__ import annotations

from typing import Optional, Sequence


class MigrationStackError(Exception):
    """Base class for every error raised while building the descriptor graph."""


class ConfigurationError(MigrationStackError):
    """A required input field is missing or does not pass validation."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message if field is None else f"{field}: {message}")
        self.field = field
        self.message = message


class NamingCollisionError(MigrationStackError):
    """Two descriptors or two output records derived the same name."""

    def __init__(self, name: str, kind: str = "name"):
        super().__init__(f"duplicate {kind}: {name!r}")
        self.name = name
        self.kind = kind


class DependencyCycleError(MigrationStackError):
    """The dependency edge set contains a self-edge or a cycle."""

    def __init__(self, cycle: Sequence[str]):
        super().__init__("dependency cycle: " + " -> ".join(cycle))
        self.cycle = list(cycle)


class UnresolvedReferenceError(MigrationStackError):
    """A descriptor was referenced before it was registered."""
