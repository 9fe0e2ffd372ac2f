"""Data models for version values and version requirement trees."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

_SEGMENT_PATTERN = re.compile(r"\d+|[a-z]+")
VERSION_PATTERN = re.compile(r"^\s*(?:\d|r\d)[\w.\-]*\s*$")

Segment = Union[int, str]


def is_version(text: object) -> bool:
    """Return True when ``text`` looks like a plain version (``1.0``, ``r09``)."""
    return isinstance(text, str) and VERSION_PATTERN.match(text) is not None


def _compare_segments(left: Segment, right: Segment) -> int:
    if isinstance(left, int) and isinstance(right, int):
        return (left > right) - (left < right)
    if isinstance(left, str) and isinstance(right, str):
        return (left > right) - (left < right)
    # letters mark pre-releases and sort below any number
    return -1 if isinstance(left, str) else 1


@functools.total_ordering
class Version:
    """Tolerant, comparable version value.

    ``1``, ``1.0`` and ``1.0.0`` are equal; ``1.0rc3`` and ``1.0-rc3`` sort
    below ``1.0``; ``r09`` is accepted as a version.
    """

    __slots__ = ("text", "segments")

    def __init__(self, text: str):
        self.text = str(text).strip()
        normalized = self.text.lower().replace("-", ".").replace("_", ".")
        segments: List[Segment] = []
        for part in normalized.split("."):
            for token in _SEGMENT_PATTERN.findall(part):
                segments.append(int(token) if token.isdigit() else token)
        self.segments: Tuple[Segment, ...] = tuple(segments)

    @property
    def canonical(self) -> Tuple[Segment, ...]:
        """Segments without trailing zeros, the basis of equality and hashing."""
        segments = list(self.segments)
        while segments and segments[-1] == 0:
            segments.pop()
        return tuple(segments)

    def compare(self, other: "Version") -> int:
        """Return -1, 0 or 1 comparing this version to ``other``."""
        left, right = self.segments, other.segments
        for index in range(max(len(left), len(right))):
            lseg = left[index] if index < len(left) else 0
            rseg = right[index] if index < len(right) else 0
            result = _compare_segments(lseg, rseg)
            if result:
                return result
        return 0

    def bump(self) -> "Version":
        """Next significant release: ``5.3.1 -> 5.4``, ``5.3 -> 6``."""
        numeric: List[int] = []
        for segment in self.segments:
            if isinstance(segment, str):
                break
            numeric.append(segment)
        if not numeric:
            numeric = [0]
        if len(numeric) > 1:
            numeric.pop()
        numeric[-1] += 1
        return Version(".".join(str(n) for n in numeric))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self) -> int:
        return hash(self.canonical)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Version({self.text!r})"


def _approximately_greater(candidate: Version, required: Version) -> bool:
    return required <= candidate < required.bump()


COMPARATORS: Dict[str, Callable[[Version, Version], bool]] = {
    "=": lambda v, r: v == r,
    "!=": lambda v, r: v != r,
    ">": lambda v, r: v > r,
    "<": lambda v, r: v < r,
    ">=": lambda v, r: v >= r,
    "<=": lambda v, r: v <= r,
    "~>": _approximately_greater,
}

# Comparators whose version is an acceptable pick when nothing better is known.
DEFAULT_COMPARATORS = (None, "=", ">=", "~>")


@dataclass(frozen=True)
class Clause:
    """Leaf of a requirement tree: an optional comparator and a version."""
    comparator: Optional[str]
    version: str

    def matches(self, version: Version) -> bool:
        """Evaluate the comparator (``=`` when absent) against ``version``."""
        return COMPARATORS[self.comparator or "="](version, Version(self.version))

    def __str__(self) -> str:
        return f"{self.comparator or ''}{self.version}"


Node = Union[Clause, "VersionRequirement"]


@dataclass(frozen=True)
class VersionRequirement:
    """Boolean expression over version clauses.

    ``op`` is None for a single clause, ``'&'`` when every child must hold and
    ``'|'`` when any child may hold. ``negative`` inverts the node result.
    Instances are never mutated; ``&``, ``|`` and ``negate`` return new nodes.
    """
    op: Optional[str]
    requirements: Tuple[Node, ...] = field(default_factory=tuple)
    negative: bool = False

    @property
    def has_alternatives(self) -> bool:
        """True when the top node is a plain Or offering more than one branch."""
        return self.op == "|" and not self.negative and len(self.requirements) > 1

    @property
    def is_exact(self) -> bool:
        """True for a single pinned version such as ``1.2`` or ``=1.2``."""
        if self.negative or len(self.requirements) != 1:
            return False
        only = self.requirements[0]
        if isinstance(only, Clause):
            return only.comparator in (None, "=")
        return only.is_exact

    @property
    def default(self) -> Optional[str]:
        """Version to fall back on when no candidate satisfies the requirement.

        Alternatives are scanned from last to first, so with ``1 | 2 | 3`` the
        default is ``3``.
        """
        for requirement in reversed(self.requirements):
            if isinstance(requirement, Clause):
                if not self.negative and requirement.comparator in DEFAULT_COMPARATORS:
                    return requirement.version
            else:
                found = requirement.default
                if found:
                    return found
        return None

    def satisfied_by(self, version: Union[str, Version, None]) -> bool:
        """Return True when ``version`` satisfies this requirement.

        Blank or malformed version strings never satisfy anything.
        """
        if version is None:
            return False
        if not isinstance(version, Version):
            if not is_version(version):
                return False
            version = Version(version)
        check = any if self.op == "|" else all
        result = check(
            req.matches(version) if isinstance(req, Clause) else req.satisfied_by(version)
            for req in self.requirements
        )
        return not result if self.negative else result

    def negate(self) -> "VersionRequirement":
        """Return a copy of this node with ``negative`` flipped."""
        return VersionRequirement(self.op, self.requirements, not self.negative)

    def __and__(self, other: "VersionRequirement") -> "VersionRequirement":
        return VersionRequirement("&", (self, other))

    def __or__(self, other: "VersionRequirement") -> "VersionRequirement":
        return VersionRequirement("|", (self, other))

    def __str__(self) -> str:
        text = f" {self.op} ".join(str(req) for req in self.requirements)
        if self.negative or len(self.requirements) > 1:
            text = f"( {text} )"
        if self.negative:
            text = "!" + text
        return text
