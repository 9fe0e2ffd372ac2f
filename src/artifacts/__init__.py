"""Artifact coordinates, namespaces and best-version search."""

from .coordinate import ArtifactCoordinate, ArtifactRegistry, ArtifactRequirement
from .guard import enforce, enforce_all
from .namespace import (
    ROOT,
    Namespace,
    NamespaceAccessor,
    NamespaceRegistry,
    default_registry,
    reset_all,
)
from .repositories import Repositories, default_local_repository
from .search import Probe, VersionSearch

__all__ = [
    "ROOT",
    "ArtifactCoordinate",
    "ArtifactRegistry",
    "ArtifactRequirement",
    "Namespace",
    "NamespaceAccessor",
    "NamespaceRegistry",
    "Probe",
    "Repositories",
    "VersionSearch",
    "default_local_repository",
    "default_registry",
    "enforce",
    "enforce_all",
    "reset_all",
]
