"""Custom exceptions raised by the artifact namespace and version search."""

from __future__ import annotations

from typing import Optional


class ArtifactNSError(Exception):
    """Base class for every error raised on purpose by this package."""


class ParseError(ArtifactNSError, ValueError):
    """Raised when a version requirement string cannot be parsed."""

    def __init__(self, message: str, text: Optional[str] = None):
        super().__init__(message)
        self.text = text


class InvalidCoordinateError(ArtifactNSError, ValueError):
    """Raised when an artifact spec lacks a group/id or has too many parts."""


class UnsatisfiedRequirementError(ArtifactNSError):
    """Raised when a selected version violates an inherited requirement."""

    def __init__(self, requirement: str, candidate: str):
        super().__init__(
            f"Version requirement {requirement} unsatisfied by {candidate}"
        )
        self.requirement = requirement
        self.candidate = candidate


class AttributeMismatchError(ArtifactNSError):
    """Raised when a selection's group/id/type/classifier contradicts a requirement."""

    def __init__(self, requirement: str, candidate: str):
        super().__init__(
            f"Artifact attributes mismatch, required {requirement}, got {candidate}"
        )
        self.requirement = requirement
        self.candidate = candidate


class ResolutionError(ArtifactNSError):
    """Raised when no probe and no default produced a version for a spec."""

    def __init__(self, spec: str, hint: Optional[str] = None):
        self.spec = spec
        self.hint = hint or "You may need to use a specific version instead of a requirement"
        super().__init__(f"Could not find {spec}\n {self.hint}")


class NamespaceError(ArtifactNSError):
    """Raised on invalid namespace hierarchy operations."""
