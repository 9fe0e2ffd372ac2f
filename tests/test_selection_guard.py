"""Tests for the selection guard enforcing requirements on chosen artifacts."""

import pytest

from artifacts import ArtifactCoordinate, ArtifactRequirement, enforce, enforce_all
from exceptions import AttributeMismatchError, UnsatisfiedRequirementError


def _req(spec):
    return ArtifactRequirement.create(spec)


def _coord(spec):
    return ArtifactCoordinate.parse(spec)


class TestEnforce:
    """Single requirement checks."""

    def test_missing_sides_pass(self):
        """No requirement or no candidate means nothing to check."""
        enforce(None, _coord("org.x:lib:jar:1.0"))
        enforce(_req("org.x:lib:jar:>=1.0"), None)
        enforce(_req("org.x:lib:jar:>=1.0"), _coord("org.x:lib:jar"))

    def test_satisfied(self):
        """A matching version and identity passes."""
        enforce(_req("org.x:lib:jar:>=1.0"), _coord("org.x:lib:jar:1.5"))

    def test_unsatisfied_version(self):
        """The error names both specs."""
        with pytest.raises(UnsatisfiedRequirementError) as excinfo:
            enforce(_req("org.x:lib:jar:>=1.0"), _coord("org.x:lib:jar:0.9"))
        assert excinfo.value.requirement == "org.x:lib:jar:>=1.0"
        assert excinfo.value.candidate == "org.x:lib:jar:0.9"
        assert "org.x:lib:jar:>=1.0" in str(excinfo.value)

    @pytest.mark.parametrize("candidate", [
        "org.y:lib:jar:1.5",
        "org.x:other:jar:1.5",
        "org.x:lib:war:1.5",
        "org.x:lib:jar:tests:1.5",
    ])
    def test_attribute_mismatch(self, candidate):
        """Group, id, type and classifier pinned by the requirement must match."""
        with pytest.raises(AttributeMismatchError):
            enforce(_req("org.x:lib:jar:sources:>=1.0"), _coord(candidate))

    def test_unpinned_classifier(self):
        """A requirement without classifier accepts any classifier."""
        enforce(_req("org.x:lib:jar:>=1.0"), _coord("org.x:lib:jar:sources:1.5"))

    def test_version_checked_before_attributes(self):
        """An unsatisfied version is reported even when attributes also differ."""
        with pytest.raises(UnsatisfiedRequirementError):
            enforce(_req("org.x:lib:jar:>=1.0"), _coord("org.y:lib:jar:0.1"))


class TestEnforceAll:
    """Checks across an ancestor chain of requirements."""

    def test_every_requirement_applies(self):
        """The candidate must satisfy all requirements, not only the nearest."""
        chain = [_req("org.x:lib:jar:>=1.0"), _req("org.x:lib:jar:<2.0")]
        enforce_all(chain, _coord("org.x:lib:jar:1.5"))
        with pytest.raises(UnsatisfiedRequirementError):
            enforce_all(chain, _coord("org.x:lib:jar:2.1"))

    def test_empty_chain(self):
        """No requirements means anything goes."""
        enforce_all([], _coord("org.x:lib:jar:0.0.1"))
