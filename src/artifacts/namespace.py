"""Hierarchical artifact namespaces.

A namespace maps logical names to requirements (``need``), selections
(``use``) and nested namespaces (``ns``). Lookups fall back to the parent
chain, and every selection is checked against the requirements declared for
the same artifact anywhere up that chain.

Example::

    registry = NamespaceRegistry()
    registry.root.need({"lib": "org.x:lib:jar:~>2.0"})
    child = registry.namespace("app")
    child.use({"lib": "2.3"})
    child["lib"].to_spec()   # 'org.x:lib:jar:2.3'
"""
from __future__ import annotations

import logging
import re
import types
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from exceptions import InvalidCoordinateError, NamespaceError
from versioning import is_requirement, is_version
from .coordinate import ArtifactCoordinate, ArtifactRequirement, SpecLike
from .guard import enforce, enforce_all

logger = logging.getLogger(__name__)

ROOT = Constants.ROOT_NAMESPACE

ARROW = "->"

Value = Union[ArtifactCoordinate, str, "Namespace"]
NeedEntry = Tuple[Optional[str], SpecLike, Optional[str], Optional[str]]


def _flatten(items: Iterable[Any]) -> Iterator[Any]:
    for item in items:
        if isinstance(item, (list, tuple)):
            yield from _flatten(item)
        else:
            yield item


def _is_named_mapping(value: Any) -> bool:
    """True for ``{name: spec}`` mappings, as opposed to attribute mappings."""
    return isinstance(value, Mapping) and not ArtifactCoordinate.is_mapping_spec(value)


def _split_arrows(text: str) -> NeedEntry:
    """Split ``name -> coord:preferred -> requirement`` style shorthands.

    Returns ``(name, spec, requirement_text, preferred)``.
    """
    parts = [part.strip() for part in text.split(ARROW)]
    if len(parts) == 3:
        name, spec, requirement_text = parts
        preferred = ArtifactCoordinate.parse(spec).version
        return name or None, spec, requirement_text, preferred
    if len(parts) == 2:
        left, right = parts
        if left.count(":") >= 2:
            return None, left, right, ArtifactCoordinate.parse(left).version
        return left or None, right, None, None
    raise InvalidCoordinateError(f"Expecting <name -> spec -> requirement>, found <{text}>")


class Namespace:
    """Named scope of artifact requirements and selections.

    Storage keys are either symbolic names or unversioned artifact
    identities; ``alias`` links the two in both directions.
    """

    def __init__(self, name: str, registry: "NamespaceRegistry", parent: Union[None, str, "Namespace"] = None):
        self.name = name
        self.registry = registry
        self._parent = parent
        self._setting_defaults = False
        self.clear()

    def __repr__(self) -> str:
        return f"Namespace({self.name!r})"

    # ------------------------------------------------------------------
    # hierarchy

    @property
    def parent(self) -> Optional["Namespace"]:
        """Explicit parent, or the namespace named by dropping the last ``:`` segment."""
        if self.name == ROOT:
            return None
        if not isinstance(self._parent, Namespace):
            if self._parent is not None:
                self._parent = self.registry.namespace(self._parent)
            else:
                self._parent = self.registry.namespace(":".join(self.name.split(":")[:-1]))
        return self._parent

    @parent.setter
    def parent(self, parent: Union[None, str, "Namespace"]) -> None:
        if self.name == ROOT:
            raise NamespaceError("Cannot set parent of root namespace")
        self._parent = parent

    def ancestors(self) -> Iterator["Namespace"]:
        """This namespace followed by each parent up to the root."""
        scope: Optional[Namespace] = self
        while scope is not None:
            yield scope
            scope = scope.parent

    def clear(self) -> None:
        """Forget requirements, selections and aliases; identity and parent are kept."""
        self._using: Dict[str, Value] = {}
        self._requires: Dict[str, ArtifactRequirement] = {}
        self._aliases: Dict[str, str] = {}

    @property
    def search(self):
        return self.registry.search if self.registry is not None else None

    # ------------------------------------------------------------------
    # declarations

    def need(self, *specs: Any) -> "Namespace":
        """Declare requirements, optionally under a logical name.

        Accepts coordinate specs whose version is a requirement, ``{name:
        spec}`` mappings and the arrow shorthands ``"name -> coord:preferred
        -> requirement"`` and ``"coord:preferred -> requirement"``.
        """
        for item in _flatten(specs):
            for name, spec, requirement_text, preferred in self._needs(item):
                requirement = ArtifactRequirement.create(spec, requirement_text, preferred)
                unversioned = requirement.coordinate.unversioned_spec
                if requirement.preferred:
                    enforce(requirement, requirement.resolved())
                key = self._normalize(name) if name else None
                for existing in filter(None, (key, unversioned)):
                    enforce(requirement, self._local_candidate(existing, requirement))
                self._requires[unversioned] = requirement
                if key:
                    self.alias(key, unversioned)
                if is_debug_enabled(logger):
                    logger.debug(
                        "Requirement declared",
                        extra=extra_context(
                            event="need", namespace=self.name, artifact_name=name,
                            requirement=requirement.to_spec()
                        )
                    )
        return self

    def _needs(self, item: Any) -> Iterator[NeedEntry]:
        if isinstance(item, str) and ARROW in item:
            yield _split_arrows(item)
        elif _is_named_mapping(item):
            for name, spec in item.items():
                if isinstance(spec, (list, tuple)):
                    # Grouped needs share no single identity; register them unnamed.
                    for member in _flatten(spec):
                        yield from self._needs(member)
                elif isinstance(spec, str) and ARROW in spec:
                    _, target, requirement_text, preferred = _split_arrows(spec)
                    yield str(name), target, requirement_text, preferred
                else:
                    yield str(name), spec, None, None
        else:
            yield None, item, None, None

    def use(self, *specs: Any) -> "Namespace":
        """Select concrete artifacts, checking every inherited requirement first."""
        for item in _flatten(specs):
            if _is_named_mapping(item):
                for name, value in item.items():
                    self._set(name, value)
            else:
                self._set(item, item)
        return self

    def default(self, *specs: Any) -> "Namespace":
        """Like ``use``, but never replaces an acceptable existing selection."""
        self._setting_defaults = True
        try:
            return self.use(*specs)
        finally:
            self._setting_defaults = False

    def __setitem__(self, name: Any, value: Any) -> None:
        self.use({name: value})

    def alias(self, name: Any, spec: Any) -> "Namespace":
        """Link a logical name and an unversioned identity, replacing older links."""
        name_key, target = self._normalize(name), self._normalize(spec)
        for key in (name_key, target):
            previous = self._aliases.pop(key, None)
            if previous is not None:
                self._aliases.pop(previous, None)
        self._aliases[name_key] = target
        self._aliases[target] = name_key
        return self

    def _set(self, name: Any, value: Any) -> None:
        key = self._normalize(name)
        if isinstance(value, Namespace):
            self._using[key] = value
            return
        candidate, stored = self._candidate(key, value)
        keys = [key] if candidate is None else [key, candidate.unversioned_spec]
        requirements = self._requirement_chain(*keys)
        if self._setting_defaults:
            current = self._selection(key)
            nearest = requirements[0] if requirements else None
            if current is None and self._raw_version(key) is not None:
                return
            if current is not None and (nearest is None or nearest.satisfied_by(current.version)):
                return
        if candidate is not None and not candidate.is_requirement:
            enforce_all(requirements, candidate)
        self._using[key] = stored
        if candidate is not None and ":" not in key and key not in self._aliases:
            if candidate.unversioned_spec not in self._aliases:
                self.alias(key, candidate.unversioned_spec)
        if is_debug_enabled(logger):
            logger.debug(
                "Selection stored",
                extra=extra_context(
                    event="use", namespace=self.name, artifact_name=key,
                    selection=candidate.to_spec() if candidate is not None else stored
                )
            )

    def _candidate(self, key: str, value: Any) -> Tuple[Optional[ArtifactCoordinate], Value]:
        """Coordinate to guard plus the value to store for ``key``."""
        if isinstance(value, ArtifactCoordinate):
            return value, value
        if isinstance(value, Mapping):
            coordinate = ArtifactCoordinate.from_mapping(value)
            return coordinate, coordinate
        if not isinstance(value, str):
            raise InvalidCoordinateError(
                f"Expecting a version, spec, name or Namespace for {key}, found {value!r}"
            )
        text = value.strip()
        if text.count(":") >= 2:
            coordinate = ArtifactCoordinate.parse(text)
            return coordinate, coordinate
        if is_version(text) or is_requirement(text):
            base = self._base_coordinate(key)
            if base is None:
                return None, text
            coordinate = base.with_version(text)
            return coordinate, (text if is_version(text) else coordinate)
        referenced = self.spec(text)
        if referenced is None:
            raise NameError(f"No artifact named {text!r} in namespace {self.name}")
        return referenced, referenced

    # ------------------------------------------------------------------
    # lookups

    def spec(self, name: Any) -> Optional[ArtifactCoordinate]:
        """Resolved coordinate for ``name``.

        Order: local selection, alias, ancestor selections, then the nearest
        requirement (searched when a search is configured and no preferred
        version was declared). Inherited selections that fail the nearest
        requirement are ignored.
        """
        key = self._normalize(name)
        value = self._local_value(key)
        if isinstance(value, Namespace):
            return None
        if value is not None:
            coordinate = self._coordinate_for(key, value)
            if coordinate is not None and coordinate.is_requirement:
                return self._resolve(key, coordinate)
            return coordinate
        nearest = self.requirement(key)
        inherited = self._inherited(key)
        if inherited is not None:
            if nearest is None or not inherited.version or nearest.satisfied_by(inherited.version):
                return inherited
        if nearest is None:
            return None
        if self.search is not None and not nearest.preferred:
            return self._resolve(key, nearest.coordinate.with_version(nearest.text))
        return nearest.resolved()

    def only(self, *names: Any) -> Union[None, ArtifactCoordinate, "Namespace", List[Any]]:
        """Resolve one name, or a list for several; no names means every requirement."""
        if not names:
            return [self.spec(key) for key in self._requires]
        found = [self._lookup(name) for name in names]
        return found[0] if len(found) == 1 else found

    def __getitem__(self, name: Any) -> Union[None, str, ArtifactCoordinate, "Namespace"]:
        return self._lookup(name)

    def get(self, name: Any, default: Any = None) -> Any:
        found = self._lookup(name)
        return default if found is None else found

    def _lookup(self, name: Any) -> Union[None, str, ArtifactCoordinate, "Namespace"]:
        """Coordinate, sub-namespace, or the bare version selected for a name no requirement describes."""
        key = self._normalize(name)
        value = self._local_value(key)
        if isinstance(value, Namespace):
            return value
        found = self.spec(key)
        if found is None and "_" in key:
            # Flattened access: foo_bar reaches ns('foo')['bar'].
            for match in re.finditer("_", key):
                head, tail = key[:match.start()], key[match.end():]
                sub = self._using.get(head)
                if isinstance(sub, Namespace) and tail:
                    return sub._lookup(tail)
        if found is None:
            return self._raw_version(key)
        return found

    def requirement(self, name: Any) -> Optional[ArtifactRequirement]:
        """Nearest requirement for ``name`` up the ancestor chain."""
        chain = self._requirement_chain(self._normalize(name))
        return chain[0] if chain else None

    def has(self, name: Any) -> bool:
        key = self._normalize(name)
        if self.is_selected(key) or self.requirement(key) is not None:
            return True
        return self._lookup(key) is not None

    def __contains__(self, name: object) -> bool:
        return self.has(name)

    def is_selected(self, name: Any) -> bool:
        """True when a selection exists here or in an ancestor."""
        key = self._normalize(name)
        for scope in self.ancestors():
            value = self._value_in(scope, key)
            if value is not None and not isinstance(value, Namespace):
                return True
        return False

    def satisfied(self, name: Any) -> bool:
        """True when the resolved selection satisfies the nearest requirement."""
        requirement, selected = self.requirement(name), self.spec(name)
        if requirement is None or selected is None:
            return False
        return requirement.satisfied_by(selected.version)

    def satisfied_by(self, name: Any, version: SpecLike) -> bool:
        requirement = self.requirement(name)
        return requirement is not None and requirement.satisfied_by(version)

    def delete(self, name: Any) -> "Namespace":
        key = self._normalize(name)
        for entry in (key, self._aliases.get(key)):
            if entry is None:
                continue
            self._requires.pop(entry, None)
            self._using.pop(entry, None)
            self._aliases.pop(entry, None)
        return self

    def keys(self) -> List[str]:
        """Names declared in this namespace (aliases preferred over identities)."""
        names: List[str] = []
        for key in list(self._using) + [self._aliases.get(u, u) for u in self._requires]:
            if key not in names:
                names.append(key)
        return names

    def to_a(self, include_parents: bool = False) -> List[ArtifactCoordinate]:
        """Selected artifacts, one per unversioned identity, nearest scope first."""
        seen: Dict[str, ArtifactCoordinate] = {}
        scopes = list(self.ancestors()) if include_parents else [self]
        for scope in scopes:
            for key, value in scope._using.items():
                if isinstance(value, Namespace):
                    continue
                coordinate = self.spec(key)
                if coordinate is not None:
                    seen.setdefault(coordinate.unversioned_spec, coordinate)
        return list(seen.values())

    values = to_a

    def __iter__(self) -> Iterator[ArtifactCoordinate]:
        return iter(self.to_a())

    # ------------------------------------------------------------------
    # nesting and accessors

    def ns(self, name: str, *specs: Any) -> "Namespace":
        """Create or reopen the sub-namespace ``name`` and ``use`` the specs in it."""
        key = self._normalize(name)
        sub = self._using.get(key)
        if sub is None:
            sub = Namespace(f"{self.name}:{key}", self.registry, parent=self)
            self._using[key] = sub
        elif not isinstance(sub, Namespace):
            raise TypeError(f"{key} is not a sub-namespace of {self.name}")
        if specs:
            sub.use(*specs)
        return sub

    def accessor(self, *names: str) -> "NamespaceAccessor":
        """Object exposing each name as a property plus a ``has_<name>()`` method."""
        attributes: Dict[str, Any] = {}
        for name in names:
            if not name.isidentifier():
                raise ValueError(f"{name!r} is not usable as an attribute name")
            attributes[name] = property(
                lambda acc, n=name: acc.namespace.get(n),
                lambda acc, value, n=name: acc.namespace.use({n: value}),
            )
            attributes[f"has_{name}"] = lambda acc, n=name: acc.namespace.has(n)
        accessor_class = type("NamespaceAccessor", (NamespaceAccessor,), attributes)
        return accessor_class(self, names)

    # ------------------------------------------------------------------
    # internals

    def _normalize(self, name: Any) -> str:
        if isinstance(name, ArtifactCoordinate):
            return name.unversioned_spec
        if isinstance(name, Mapping):
            return ArtifactCoordinate.from_mapping(name).unversioned_spec
        text = str(name).strip()
        if text.count(":") >= 2:
            return ArtifactCoordinate.parse(text).unversioned_spec
        return text

    def _local_value(self, key: str) -> Optional[Value]:
        return self._value_in(self, key)

    @staticmethod
    def _value_in(scope: "Namespace", key: str) -> Optional[Value]:
        if key in scope._using:
            return scope._using[key]
        alias = scope._aliases.get(key)
        if alias is not None:
            return scope._using.get(alias)
        return None

    def _requirement_chain(self, *keys: str) -> List[ArtifactRequirement]:
        """Every requirement for the keys (or their aliases), nearest scope first."""
        wanted = [key for key in keys if key]
        found: List[ArtifactRequirement] = []
        for scope in self.ancestors():
            for key in list(wanted):
                alias = scope._aliases.get(key)
                if alias is not None and alias not in wanted:
                    wanted.append(alias)
            for key in wanted:
                requirement = scope._requires.get(key)
                if requirement is not None and all(requirement is not r for r in found):
                    found.append(requirement)
        return found

    def _base_coordinate(self, key: str) -> Optional[ArtifactCoordinate]:
        requirement = self.requirement(key)
        if requirement is not None:
            return requirement.coordinate
        return self._selection(key)

    def _coordinate_for(self, key: str, value: Value) -> Optional[ArtifactCoordinate]:
        if isinstance(value, ArtifactCoordinate):
            return value
        if isinstance(value, str):
            requirement = self.requirement(key)
            return requirement.coordinate.with_version(value) if requirement else None
        return None

    def _local_candidate(self, key: str, requirement: ArtifactRequirement) -> Optional[ArtifactCoordinate]:
        value = self._local_value(key)
        if isinstance(value, str) and is_version(value):
            return requirement.coordinate.with_version(value)
        if isinstance(value, ArtifactCoordinate) and not value.is_requirement:
            return value
        return None

    def _inherited(self, key: str) -> Optional[ArtifactCoordinate]:
        keys = [key] + ([self._aliases[key]] if key in self._aliases else [])
        for scope in list(self.ancestors())[1:]:
            for entry in keys:
                value = self._value_in(scope, entry)
                if value is None or isinstance(value, Namespace):
                    continue
                if isinstance(value, str) and is_version(value):
                    return self._coordinate_for(key, value)
                return scope.spec(entry)
        return None

    def _raw_version(self, key: str) -> Optional[str]:
        """Nearest selection for ``key`` when it is a bare version string."""
        for scope in self.ancestors():
            value = self._value_in(scope, key)
            if value is None:
                continue
            if isinstance(value, str) and is_version(value):
                return value
            return None
        return None

    def _selection(self, key: str) -> Optional[ArtifactCoordinate]:
        """Current selection without consulting requirements or the search."""
        value = self._local_value(key)
        if value is not None and not isinstance(value, Namespace):
            return self._coordinate_for(key, value)
        return self._inherited(key)

    def _resolve(self, key: str, coordinate: ArtifactCoordinate) -> ArtifactCoordinate:
        """Turn a requirement-versioned coordinate into a guarded concrete selection."""
        if self.search is None:
            return ArtifactRequirement.create(coordinate).resolved()
        resolved = self.search.best_version(coordinate)
        enforce_all(self._requirement_chain(key, coordinate.unversioned_spec), resolved)
        self._using[key] = resolved
        logger.info("Selected %s for %s in %s", resolved.to_spec(), key, self.name)
        return resolved


class NamespaceAccessor:
    """Attribute-style view over a fixed set of names of one namespace."""

    def __init__(self, namespace: Namespace, names: Iterable[str]):
        self.namespace = namespace
        self.names = tuple(names)

    def __repr__(self) -> str:
        return f"NamespaceAccessor({self.namespace.name!r}, {list(self.names)!r})"


class NamespaceRegistry:
    """Process- or session-wide store of namespaces, created on first reference."""

    def __init__(self, search=None):
        self.search = search
        self._instances: Dict[str, Namespace] = {}

    @staticmethod
    def qualified_name(name: Any) -> str:
        """Canonical ``a:b:c`` name for strings, sequences, modules and classes."""
        if name is None:
            return ROOT
        if isinstance(name, (list, tuple)):
            name = ":".join(str(part) for part in name)
        elif isinstance(name, types.ModuleType):
            name = name.__name__.replace(".", ":")
        elif isinstance(name, type):
            name = f"{name.__module__}.{name.__qualname__}".replace(".", ":")
        text = re.sub(r":{2,}", ":", str(name).strip())
        return text or ROOT

    def namespace(self, name: Any = None) -> Namespace:
        qualified = self.qualified_name(name)
        if qualified not in self._instances:
            self._instances[qualified] = Namespace(qualified, self)
        return self._instances[qualified]

    @property
    def root(self) -> Namespace:
        return self.namespace(ROOT)

    def clear(self) -> None:
        """Drop every namespace; the next reference creates fresh ones."""
        self._instances.clear()
        if self.search is not None:
            self.search.reset_session()

    def load(self, profiles: Optional[Mapping[Any, Any]]) -> None:
        """Populate namespaces from ``{namespace: {name: spec}}``; a None key is root."""
        if not isinstance(profiles, Mapping):
            return
        for name, uses in profiles.items():
            if uses:
                self.namespace(None if name == "~" else name).use(uses)

    def __contains__(self, name: object) -> bool:
        return self.qualified_name(name) in self._instances

    def __iter__(self) -> Iterator[Namespace]:
        return iter(list(self._instances.values()))


_DEFAULT_REGISTRY: Optional[NamespaceRegistry] = None


def default_registry() -> NamespaceRegistry:
    """Shared registry for callers that do not inject their own."""
    global _DEFAULT_REGISTRY  # pylint: disable=global-statement
    if _DEFAULT_REGISTRY is None:
        _DEFAULT_REGISTRY = NamespaceRegistry()
    return _DEFAULT_REGISTRY


def reset_all() -> None:
    """Forget every namespace in the shared registry."""
    global _DEFAULT_REGISTRY  # pylint: disable=global-statement
    if _DEFAULT_REGISTRY is not None:
        _DEFAULT_REGISTRY.clear()
    _DEFAULT_REGISTRY = None
