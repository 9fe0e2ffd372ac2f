"""Best-version search across runtime, local and remote artifact sources.

Probes are consulted in a fixed order (runtime, local, each remote, custom
probes, mvnrepository) and the first one offering a version that satisfies
the requirement wins. A failing probe counts as "no candidates"; only a
malformed requirement propagates.
"""
from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import unquote, urlsplit

import lxml.html

from common import http_client
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from constants import Constants, SearchMethod
from exceptions import ResolutionError
from versioning import VersionRequirement, is_requirement, parse_requirement
from .coordinate import ArtifactCoordinate, ArtifactRegistry, SpecLike
from .repositories import Repositories

logger = logging.getLogger(__name__)

ProbeFunction = Callable[[ArtifactCoordinate], Iterable[str]]
FilterEntry = Union[str, SearchMethod]

_HTTP_BASE = re.compile(r"^https?:", re.IGNORECASE)


@dataclass(frozen=True)
class Probe:
    """One candidate source: a probe name plus where it looks."""
    name: str
    source: Any = None

    @property
    def label(self) -> str:
        if self.source is None or callable(self.source):
            return self.name
        return f"{self.name}:{self.source}"


def _filter_token(entry: FilterEntry) -> str:
    return entry.value if isinstance(entry, SearchMethod) else str(entry)


def parse_metadata(text: str) -> List[str]:
    """Versions listed in a ``maven-metadata.xml`` document, newest-to-try first.

    Document order is reversed on purpose: repositories append new releases.
    """
    root = ET.fromstring(text)
    versions = [
        item.text.strip()
        for item in root.findall("versioning/versions/version")
        if item.text and item.text.strip()
    ]
    return list(reversed(versions))


def parse_listing(text: str) -> List[str]:
    """Directory names scraped from an HTML index page, descending.

    Only anchors whose href ends in ``/`` are kept. The ordering is plain
    string ordering, so ``9.0`` is listed before ``10.0``.
    """
    document = lxml.html.fromstring(text)
    names = []
    for anchor in document.iter("a"):
        href = anchor.get("href") or ""
        if not href.endswith("/"):
            continue
        name = unquote(href.rstrip("/").rsplit("/", 1)[-1])
        if name and name not in (".", ".."):
            names.append(name)
    return sorted(set(names), reverse=True)


def parse_search_page(text: str) -> List[str]:
    """Version links from the first column of an mvnrepository result table."""
    document = lxml.html.fromstring(text)
    anchors = document.xpath(
        '//table[contains(concat(" ", normalize-space(@class), " "), " grid ")]//tr/td[1]//a'
    )
    return [anchor.text_content().strip() for anchor in anchors if anchor.text_content().strip()]


class VersionSearch:
    """Find the best version of an artifact satisfying a requirement.

    ``include``/``exclude`` hold probe names (``runtime``, ``local``,
    ``remote``, ``mvnrepository`` or a custom name), specific sources (a
    repository URL or path) or ``all``. With an empty include list every probe
    is allowed unless excluded.
    """

    def __init__(
        self,
        repositories: Optional[Repositories] = None,
        runtime: Optional[ArtifactRegistry] = None,
        enabled: bool = True,
        include: Iterable[FilterEntry] = (),
        exclude: Iterable[FilterEntry] = (),
    ):
        self.repositories = repositories if repositories is not None else Repositories()
        self.runtime = runtime if runtime is not None else ArtifactRegistry()
        self.enabled = enabled
        self.includes: List[str] = [_filter_token(e) for e in include]
        self.excludes: List[str] = [_filter_token(e) for e in exclude]
        self._custom: List[Probe] = []
        self._session: Dict[Tuple[Any, ...], str] = {}

    # ------------------------------------------------------------------

    def include(self, *entries: FilterEntry) -> List[str]:
        """Add entries to the allow list and return it."""
        self.includes.extend(_filter_token(e) for e in entries)
        return self.includes

    def exclude(self, *entries: FilterEntry) -> List[str]:
        """Add entries to the deny list and return it."""
        self.excludes.extend(_filter_token(e) for e in entries)
        return self.excludes

    def add_probe(self, name: str, function: ProbeFunction) -> None:
        """Register a callable probe consulted after the remote repositories."""
        self._custom.append(Probe(name, function))

    def reset_session(self) -> None:
        """Drop memoized results and cached HTTP responses."""
        self._session.clear()
        http_client.clear_cache()

    @staticmethod
    def is_requirement(spec: SpecLike) -> bool:
        """True when the spec's version holds comparator, boolean or paren characters."""
        if isinstance(spec, str) and ":" not in spec:
            return is_requirement(spec)
        return is_requirement(ArtifactCoordinate.coerce(spec).version)

    def probes(self) -> List[Probe]:
        """Every probe in consultation order, before include/exclude filtering."""
        probes = [
            Probe(SearchMethod.RUNTIME.value, None),
            Probe(SearchMethod.LOCAL.value, self.repositories.local),
        ]
        probes.extend(Probe(SearchMethod.REMOTE.value, url) for url in self.repositories.remote)
        probes.extend(self._custom)
        probes.append(Probe(SearchMethod.MVNREPOSITORY.value, None))
        return probes

    def is_allowed(self, probe: Probe) -> bool:
        keys = {Constants.SEARCH_ALL, probe.name}
        if probe.source is not None and not callable(probe.source):
            keys.add(str(probe.source))
        if self.includes and not keys & set(self.includes):
            return False
        return not keys & set(self.excludes)

    # ------------------------------------------------------------------

    def best_version(self, spec: SpecLike) -> ArtifactCoordinate:
        """Resolve the spec's version requirement to a concrete version.

        Raises:
            ParseError: the version field is not a valid requirement.
            ResolutionError: no probe matched and the requirement has no default.
        """
        coordinate = ArtifactCoordinate.coerce(spec)
        requirement = parse_requirement(coordinate.version)
        result = None
        if self.enabled and (requirement.has_alternatives or not requirement.is_exact):
            result = self._search(coordinate, requirement)
        if result is None:
            result = requirement.default
        if result is None:
            logger.error("No version found for %s", coordinate.to_spec())
            raise ResolutionError(coordinate.to_spec())
        logger.info("Resolved %s to %s", coordinate.to_spec(), result)
        return coordinate.with_version(result)

    def _search(self, coordinate: ArtifactCoordinate, requirement: VersionRequirement) -> Optional[str]:
        key = self._session_key(coordinate, requirement)
        if key in self._session:
            return self._session[key]
        result = None
        for probe in self.probes():
            if not self.is_allowed(probe):
                continue
            versions = self.candidates(probe, coordinate)
            result = next((v for v in versions if requirement.satisfied_by(v)), None)
            if result is not None:
                logger.debug(
                    "Probe matched",
                    extra=extra_context(
                        event="search", component="search", action="select",
                        outcome="found", probe=probe.label, version=result
                    )
                )
                break
        # Only hits are memoized.
        if result is not None:
            self._session[key] = result
        return result

    def _session_key(self, coordinate: ArtifactCoordinate, requirement: VersionRequirement) -> Tuple[Any, ...]:
        return (
            coordinate.unversioned_spec,
            str(requirement),
            tuple(self.includes),
            tuple(self.excludes),
            tuple(probe.label for probe in self.probes()),
            self.runtime.revision,
        )

    def candidates(self, probe: Probe, coordinate: ArtifactCoordinate) -> List[str]:
        """Versions offered by one probe; errors are logged and yield nothing."""
        with Timer() as timer:
            try:
                if callable(probe.source):
                    versions = list(probe.source(coordinate))
                elif probe.name == SearchMethod.RUNTIME.value:
                    versions = self.runtime_versions(coordinate)
                elif probe.name == SearchMethod.LOCAL.value:
                    versions = self.local_versions(coordinate, probe.source)
                elif probe.name == SearchMethod.REMOTE.value:
                    versions = self.remote_versions(coordinate, probe.source)
                elif probe.name == SearchMethod.MVNREPOSITORY.value:
                    versions = self.mvnrepository_versions(coordinate)
                else:
                    raise ValueError(f"Don't know how to search {probe.label}")
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.warning("Version probe %s failed for %s: %s",
                               probe.label, coordinate.unversioned_spec, exc)
                return []
        if is_debug_enabled(logger):
            logger.debug(
                "Probe candidates",
                extra=extra_context(
                    event="search", component="search", action="probe",
                    probe=probe.label, target=coordinate.unversioned_spec,
                    candidate_count=len(versions), duration_ms=timer.duration_ms()
                )
            )
        return versions

    # ------------------------------------------------------------------

    def runtime_versions(self, coordinate: ArtifactCoordinate) -> List[str]:
        """Versions of registered artifacts sharing group, id and type."""
        wanted = (coordinate.group, coordinate.id, coordinate.type)
        return [
            known.version
            for known in self.runtime.list()
            if (known.group, known.id, known.type) == wanted and known.version
        ]

    def local_versions(self, coordinate: ArtifactCoordinate, repository: Optional[str] = None) -> List[str]:
        """Subdirectory names under ``repo/group/path/id``, string-descending."""
        root = Path(repository) if repository else Path(self.repositories.local)
        directory = root.joinpath(*coordinate.group.split("."), coordinate.id)
        if not directory.is_dir():
            return []
        return sorted((entry.name for entry in directory.iterdir() if entry.is_dir()), reverse=True)

    def remote_versions(
        self,
        coordinate: ArtifactCoordinate,
        base: Optional[str] = None,
        source: str = "metadata",
        fallback: bool = True,
    ) -> List[str]:
        """Versions from a remote repository's metadata, or its listing on 404."""
        base = (base or Constants.DEFAULT_REMOTE_REPOSITORY).rstrip("/")
        path = f"{coordinate.group_path}/{coordinate.id}"
        uris = {"metadata": f"{base}/{path}/{Constants.METADATA_FILE}"}
        if _HTTP_BASE.match(base):
            uris["listing"] = f"{base}/{path}/"
        order = [source] + ([k for k in uris if k != source] if fallback else [])
        for kind in order:
            if kind not in uris:
                continue
            status, text = self._read(uris[kind])
            if status == 404:
                continue
            if status != 200:
                logger.warning("Unexpected status %s reading %s", status, safe_url(uris[kind]))
                return []
            return parse_metadata(text) if kind == "metadata" else parse_listing(text)
        return []

    def mvnrepository_versions(self, coordinate: ArtifactCoordinate) -> List[str]:
        """Last resort: scrape the public mvnrepository artifact page."""
        url = f"{Constants.MVNREPOSITORY_URL}/{coordinate.group}/{coordinate.id}"
        status, _, text = http_client.robust_get(url)
        if status != 200:
            return []
        return parse_search_page(text)

    @staticmethod
    def _read(uri: str) -> Tuple[int, str]:
        """Fetch a URL or read a local file; missing files report 404."""
        if _HTTP_BASE.match(uri):
            status, _, text = http_client.robust_get(uri)
            return status, text
        path = Path(unquote(urlsplit(uri).path)) if uri.startswith("file:") else Path(uri)
        if not path.is_file():
            return 404, ""
        return 200, path.read_text(encoding="utf-8")
