"""Selection guard: a chosen artifact must honour every inherited requirement."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from common.logging_utils import extra_context, is_debug_enabled
from exceptions import AttributeMismatchError, UnsatisfiedRequirementError
from .coordinate import ArtifactCoordinate, ArtifactRequirement

logger = logging.getLogger(__name__)

_PINNED_ATTRIBUTES = ("group", "id", "type", "classifier")


def enforce(
    requirement: Optional[ArtifactRequirement],
    candidate: Optional[ArtifactCoordinate],
) -> None:
    """Fail unless ``candidate`` satisfies ``requirement``.

    Passes trivially when either side is missing or the candidate carries no
    version yet. The version is checked first, then every attribute the
    requirement pins.

    Raises:
        UnsatisfiedRequirementError: the candidate version fails the requirement.
        AttributeMismatchError: group/id/type/classifier differ.
    """
    if requirement is None or candidate is None or not candidate.version:
        return
    if not requirement.requirement.satisfied_by(candidate.version):
        logger.debug(
            "Selection rejected",
            extra=extra_context(
                event="guard", outcome="unsatisfied",
                requirement=requirement.to_spec(), candidate=candidate.to_spec()
            )
        )
        raise UnsatisfiedRequirementError(requirement.to_spec(), candidate.to_spec())
    for attribute in _PINNED_ATTRIBUTES:
        pinned = getattr(requirement.coordinate, attribute)
        if pinned is not None and pinned != getattr(candidate, attribute):
            raise AttributeMismatchError(requirement.to_spec(), candidate.to_spec())
    if is_debug_enabled(logger):
        logger.debug(
            "Selection accepted",
            extra=extra_context(
                event="guard", outcome="satisfied",
                requirement=requirement.to_spec(), candidate=candidate.to_spec()
            )
        )


def enforce_all(
    requirements: Iterable[ArtifactRequirement],
    candidate: Optional[ArtifactCoordinate],
) -> None:
    """Apply ``enforce`` to each requirement, nearest scope first."""
    for requirement in requirements:
        enforce(requirement, candidate)
