"""Version values and the version requirement mini-language."""

from .models import Clause, Version, VersionRequirement, is_version
from .parser import is_requirement, parse_requirement

parse = parse_requirement

__all__ = [
    "Clause",
    "Version",
    "VersionRequirement",
    "is_requirement",
    "is_version",
    "parse",
    "parse_requirement",
]
