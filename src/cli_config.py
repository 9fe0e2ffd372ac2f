"""Configuration file loading and CLI overrides for the resolver.

A config file (YAML or JSON) looks like::

    repositories:
      local: ~/.m2/repository
      remote:
        - https://repo1.maven.org/maven2
    search:
      enabled: true
      include: []
      exclude: [mvnrepository]
    artifacts:
      ~:
        commons-lang: commons-lang:commons-lang:jar:2.6
      app:
        junit: junit:junit:jar:4.13.2

CLI flags applied with ``apply_cli_overrides`` take precedence over the file.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from artifacts import ArtifactRegistry, NamespaceRegistry, Repositories, VersionSearch
from constants import SearchMethod

logger = logging.getLogger(__name__)


@dataclass
class ResolverConfig:
    """Settings for repositories, the version search and namespace profiles."""
    local_repository: Optional[str] = None
    remote_repositories: List[str] = field(default_factory=list)
    search_enabled: bool = True
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    artifacts: Dict[Any, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResolverConfig":
        repositories = data.get("repositories") or {}
        search = data.get("search") or {}
        remote = repositories.get("remote") or []
        if isinstance(remote, str):
            remote = [remote]
        return cls(
            local_repository=repositories.get("local"),
            remote_repositories=[str(url) for url in remote],
            search_enabled=bool(search.get("enabled", True)),
            include=[str(e) for e in (search.get("include") or [])],
            exclude=[str(e) for e in (search.get("exclude") or [])],
            artifacts=dict(data.get("artifacts") or {}),
        )


def load_config(path: Optional[str]) -> ResolverConfig:
    """Read a YAML (``.yml``/``.yaml``) or JSON config file.

    A missing path yields the defaults.

    Raises:
        FileNotFoundError: the path does not exist.
        ValueError: the file cannot be parsed or is not a mapping.
    """
    if not path:
        return ResolverConfig()
    with open(os.path.expanduser(path), "r", encoding="utf-8") as fh:
        try:
            if path.lower().endswith(".json"):
                data = json.load(fh) or {}
            else:
                data = yaml.safe_load(fh) or {}
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ValueError(f"Malformed configuration file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Malformed configuration file {path}: expected a mapping")
    logger.debug("Loaded configuration from %s", path)
    return ResolverConfig.from_dict(data)


def apply_cli_overrides(config: ResolverConfig, args) -> ResolverConfig:
    """Let CLI flags win over file settings."""
    if getattr(args, "LOCAL_REPO", None):
        config.local_repository = args.LOCAL_REPO
    if getattr(args, "REMOTE", None):
        config.remote_repositories = list(args.REMOTE)
    if getattr(args, "INCLUDE", None):
        config.include.extend(args.INCLUDE)
    if getattr(args, "EXCLUDE", None):
        config.exclude.extend(args.EXCLUDE)
    if getattr(args, "OFFLINE", False):
        for method in (SearchMethod.REMOTE.value, SearchMethod.MVNREPOSITORY.value):
            if method not in config.exclude:
                config.exclude.append(method)
    return config


def apply_config(
    config: ResolverConfig,
    registry: Optional[NamespaceRegistry] = None,
) -> Tuple[NamespaceRegistry, VersionSearch]:
    """Build the repositories and search, then load namespace profiles into the registry."""
    repositories = Repositories(config.local_repository, config.remote_repositories)
    search = VersionSearch(
        repositories=repositories,
        runtime=ArtifactRegistry(),
        enabled=config.search_enabled,
        include=config.include,
        exclude=config.exclude,
    )
    if registry is None:
        registry = NamespaceRegistry(search)
    else:
        registry.search = search
    registry.load(config.artifacts)
    logger.info(
        "Using local repository %s and %d remote repositories",
        repositories.local, len(repositories.remote)
    )
    return registry, search
