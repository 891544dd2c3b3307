"""Descriptor-graph engine for the database migration stack."""

from .builder import StackBuild, build_stack
from .errors import (
    ConfigurationError,
    DependencyCycleError,
    MigrationStackError,
    NamingCollisionError,
    UnresolvedReferenceError,
)
from .parameters import resolve_parameters

__all__ = [
    "StackBuild",
    "build_stack",
    "resolve_parameters",
    "ConfigurationError",
    "DependencyCycleError",
    "MigrationStackError",
    "NamingCollisionError",
    "UnresolvedReferenceError",
]
