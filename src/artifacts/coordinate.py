"""Artifact coordinates and the in-process registry of known artifacts."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from constants import Constants
from exceptions import InvalidCoordinateError
from versioning import VersionRequirement, is_requirement, parse_requirement

logger = logging.getLogger(__name__)

SpecLike = Union["ArtifactCoordinate", str, Mapping[str, Any]]


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


@dataclass(frozen=True)
class ArtifactCoordinate:
    """Group/id/type/classifier/version identifying one artifact.

    Instances are immutable; ``with_version`` returns a new coordinate.
    The version may be unset, a concrete version or a requirement expression.
    """
    group: str
    id: str
    type: str = Constants.DEFAULT_TYPE
    classifier: Optional[str] = None
    version: Optional[str] = None

    def __post_init__(self) -> None:
        if _blank(self.group):
            raise InvalidCoordinateError(f"Missing group identifier for {self._describe()}")
        if _blank(self.id):
            raise InvalidCoordinateError(f"Missing artifact identifier for {self._describe()}")
        object.__setattr__(self, "group", str(self.group).strip())
        object.__setattr__(self, "id", str(self.id).strip())
        object.__setattr__(
            self, "type", Constants.DEFAULT_TYPE if _blank(self.type) else str(self.type).strip()
        )
        object.__setattr__(
            self, "classifier", None if _blank(self.classifier) else str(self.classifier).strip()
        )
        object.__setattr__(
            self, "version", None if _blank(self.version) else str(self.version).strip()
        )

    def _describe(self) -> str:
        return repr({k: getattr(self, k, None) for k in Constants.ARTIFACT_ATTRIBUTES})

    @classmethod
    def parse(cls, spec: str) -> "ArtifactCoordinate":
        """Parse ``group:id:type:version`` or ``group:id:type:classifier:version``."""
        if not isinstance(spec, str):
            raise InvalidCoordinateError(f"Expecting an artifact spec string, found {spec!r}")
        parts = spec.strip().split(":")
        if len(parts) > 5:
            raise InvalidCoordinateError(
                f"Expecting <group:id:type:version> or <group:id:type:classifier:version>, found <{spec}>"
            )
        if len(parts) == 5:
            # Optional classifier comes before version.
            group, artifact_id, type_, classifier, version = parts
        else:
            group, artifact_id, type_, version = parts + [None] * (4 - len(parts))
            classifier = None
        return cls(group=group, id=artifact_id, type=type_, classifier=classifier, version=version)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "ArtifactCoordinate":
        """Build a coordinate from a ``{group, id, type, classifier, version}`` mapping."""
        unknown = set(mapping) - set(Constants.ARTIFACT_ATTRIBUTES)
        if unknown:
            raise InvalidCoordinateError(
                f"Unknown artifact attributes {sorted(unknown)} in {dict(mapping)!r}"
            )
        values = {k: (None if mapping.get(k) is None else str(mapping[k])) for k in mapping}
        return cls(
            group=values.get("group"),
            id=values.get("id"),
            type=values.get("type"),
            classifier=values.get("classifier"),
            version=values.get("version"),
        )

    @classmethod
    def coerce(cls, spec: SpecLike) -> "ArtifactCoordinate":
        """Accept a coordinate, a spec string or an attribute mapping."""
        if isinstance(spec, ArtifactCoordinate):
            return spec
        if isinstance(spec, str):
            return cls.parse(spec)
        if isinstance(spec, Mapping):
            return cls.from_mapping(spec)
        raise InvalidCoordinateError(
            f"Expecting a String, Mapping or ArtifactCoordinate, found {spec!r}"
        )

    @staticmethod
    def is_mapping_spec(value: Any) -> bool:
        """True for mappings whose keys are artifact attributes (not names)."""
        return isinstance(value, Mapping) and bool(set(value) & set(Constants.ARTIFACT_ATTRIBUTES))

    @property
    def unversioned_spec(self) -> str:
        """Identity without the version, used as the dictionary key for overrides."""
        if self.classifier:
            return f"{self.group}:{self.id}:{self.type}:{self.classifier}:"
        return f"{self.group}:{self.id}:{self.type}"

    @property
    def group_path(self) -> str:
        return self.group.replace(".", "/")

    @property
    def is_snapshot(self) -> bool:
        return bool(self.version) and self.version.endswith("-SNAPSHOT")

    @property
    def is_requirement(self) -> bool:
        """True when the version field is a requirement expression, not a version."""
        return is_requirement(self.version)

    @property
    def file_name(self) -> str:
        version = f"-{self.version}" if self.version else ""
        classifier = f"-{self.classifier}" if self.classifier else ""
        return f"{self.id}{version}{classifier}.{self.type}"

    def with_version(self, version: Optional[str]) -> "ArtifactCoordinate":
        return dataclasses.replace(self, version=version)

    def to_spec(self) -> str:
        """Canonical colon-delimited form; omits the version when unset."""
        if not self.version:
            return self.unversioned_spec
        if self.classifier:
            return f"{self.group}:{self.id}:{self.type}:{self.classifier}:{self.version}"
        return f"{self.group}:{self.id}:{self.type}:{self.version}"

    def to_dict(self) -> Dict[str, str]:
        data = {"group": self.group, "id": self.id, "type": self.type}
        if self.classifier:
            data["classifier"] = self.classifier
        if self.version:
            data["version"] = self.version
        return data

    def same_artifact(self, other: "ArtifactCoordinate") -> bool:
        """True when both coordinates share the unversioned identity."""
        return self.unversioned_spec == other.unversioned_spec

    def __str__(self) -> str:
        return self.to_spec()


@dataclass(frozen=True)
class ArtifactRequirement:
    """What a namespace needs: an unversioned coordinate plus a version requirement.

    ``default`` is the preferred version declared with the ``->`` shorthand, or
    else the requirement's own default; ``preferred`` tells them apart.
    """
    coordinate: ArtifactCoordinate
    requirement: VersionRequirement
    text: str
    default: Optional[str] = None
    preferred: bool = False

    @classmethod
    def create(
        cls,
        spec: SpecLike,
        requirement_text: Optional[str] = None,
        preferred: Optional[str] = None,
    ) -> "ArtifactRequirement":
        """Build from a spec whose version (or ``requirement_text``) is a requirement."""
        coordinate = ArtifactCoordinate.coerce(spec)
        text = requirement_text if requirement_text is not None else coordinate.version
        if _blank(text):
            raise InvalidCoordinateError(f"Missing version for {coordinate.to_spec()}")
        requirement = parse_requirement(text)
        return cls(
            coordinate=coordinate.with_version(None),
            requirement=requirement,
            text=text.strip(),
            default=preferred if preferred else requirement.default,
            preferred=bool(preferred),
        )

    def satisfied_by(self, candidate: Union[SpecLike, None]) -> bool:
        """Accept a bare version or a full spec of the same artifact."""
        if candidate is None:
            return False
        if isinstance(candidate, str) and ":" not in candidate:
            return self.requirement.satisfied_by(candidate)
        coordinate = ArtifactCoordinate.coerce(candidate)
        return (coordinate.same_artifact(self.coordinate)
                and self.requirement.satisfied_by(coordinate.version))

    def resolved(self) -> ArtifactCoordinate:
        """Coordinate at the default version (unversioned when there is none)."""
        return self.coordinate.with_version(self.default)

    def to_spec(self) -> str:
        return self.coordinate.with_version(self.text).to_spec()

    def __str__(self) -> str:
        return self.to_spec()


class ArtifactRegistry:
    """Artifacts known to the running process, consulted first by the search.

    Keys are full specs, so registering the same coordinate twice is a no-op.
    ``revision`` changes whenever the contents do.
    """

    def __init__(self) -> None:
        self._artifacts: Dict[str, ArtifactCoordinate] = {}
        self.revision = 0

    def register(self, *specs: SpecLike) -> List[ArtifactCoordinate]:
        registered = []
        for spec in specs:
            coordinate = ArtifactCoordinate.coerce(spec)
            self._artifacts[coordinate.to_spec()] = coordinate
            registered.append(coordinate)
        self.revision += 1
        logger.debug("Registered %d artifact(s)", len(registered))
        return registered

    def lookup(self, spec: SpecLike) -> Optional[ArtifactCoordinate]:
        return self._artifacts.get(ArtifactCoordinate.coerce(spec).to_spec())

    def list(self) -> List[ArtifactCoordinate]:
        return list(self._artifacts.values())

    def clear(self) -> None:
        self._artifacts.clear()
        self.revision += 1

    def __contains__(self, spec: object) -> bool:
        try:
            return self.lookup(spec) is not None  # type: ignore[arg-type]
        except InvalidCoordinateError:
            return False

    def __iter__(self) -> Iterator[ArtifactCoordinate]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._artifacts)
