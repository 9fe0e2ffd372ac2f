"""Local and remote repository settings and artifact location."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List, Optional, Union

from constants import Constants
from .coordinate import ArtifactCoordinate, SpecLike


def default_local_repository() -> str:
    """Resolve the local repository from ``M2_REPO``, ``local_repo`` or ``~/.m2``."""
    for env_name in Constants.LOCAL_REPOSITORY_ENV:
        value = os.environ.get(env_name)
        if value and value.strip():
            return str(Path(value.strip()).expanduser().resolve())
    return str(Path(Constants.LOCAL_REPOSITORY_DEFAULT).expanduser())


class Repositories:
    """Where artifacts live: one local directory and an ordered list of remotes.

    Remote repositories are consulted in the order in which they appear.
    """

    def __init__(self, local: Optional[str] = None, remote: Union[None, str, Iterable[str]] = None):
        self._local: Optional[str] = None
        self.local = local
        self._remote: List[str] = []
        self.set_remote(remote)

    @property
    def local(self) -> str:
        if self._local is None:
            self._local = default_local_repository()
        return self._local

    @local.setter
    def local(self, directory: Optional[str]) -> None:
        self._local = str(Path(directory).expanduser().resolve()) if directory else None

    @property
    def remote(self) -> List[str]:
        return self._remote

    def set_remote(self, urls: Union[None, str, Iterable[str]]) -> None:
        """Replace the remote list with a single URL, several URLs, or nothing."""
        if urls is None:
            self._remote = []
        elif isinstance(urls, str):
            self._remote = [urls]
        else:
            self._remote = [str(url) for url in urls]

    def version_dir(self, spec: SpecLike) -> Path:
        """Directory holding one subdirectory per locally installed version."""
        coordinate = ArtifactCoordinate.coerce(spec)
        return Path(self.local, *coordinate.group.split("."), coordinate.id)

    def locate(self, spec: SpecLike) -> Path:
        """Path of the artifact file inside the local repository."""
        coordinate = ArtifactCoordinate.coerce(spec)
        if not coordinate.version:
            raise ValueError(f"Cannot locate {coordinate.to_spec()} without a version")
        return self.version_dir(coordinate) / coordinate.version / coordinate.file_name

    def remote_urls(self, spec: SpecLike) -> List[str]:
        """Download URL of the artifact on every remote repository, in order."""
        coordinate = ArtifactCoordinate.coerce(spec)
        if not coordinate.version:
            raise ValueError(f"Cannot build download URLs for {coordinate.to_spec()} without a version")
        relative = f"{coordinate.group_path}/{coordinate.id}/{coordinate.version}/{coordinate.file_name}"
        return [f"{base.rstrip('/')}/{relative}" for base in self.remote]
