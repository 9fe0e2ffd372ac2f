"""Tests for artifact namespaces: requirements, selections, inheritance and nesting."""

import pytest

from artifacts import (
    ROOT,
    ArtifactCoordinate,
    ArtifactRegistry,
    NamespaceRegistry,
    VersionSearch,
    default_registry,
    reset_all,
)
from constants import SearchMethod
from exceptions import (
    AttributeMismatchError,
    NamespaceError,
    ResolutionError,
    UnsatisfiedRequirementError,
)


@pytest.fixture
def registry():
    """A fresh namespace registry without version search."""
    return NamespaceRegistry()


@pytest.fixture
def searching_registry():
    """A registry whose search only consults in-process artifacts."""
    runtime = ArtifactRegistry()
    runtime.register("org.x:lib:jar:2.4", "org.x:lib:jar:3.1")
    search = VersionSearch(runtime=runtime, include=[SearchMethod.RUNTIME])
    return NamespaceRegistry(search)


class TestNamespaceRegistry:
    """Creation, naming and lifecycle of namespaces."""

    def test_create_if_absent(self, registry):
        """The same name yields the same instance."""
        assert registry.namespace("app") is registry.namespace("app")
        assert "app" in registry
        assert "other" not in registry

    @pytest.mark.parametrize("name,expected", [
        (None, ROOT),
        ("", ROOT),
        ("  ", ROOT),
        ("a::b", "a:b"),
        (["a", "b", "c"], "a:b:c"),
        (("a", "b"), "a:b"),
    ])
    def test_qualified_names(self, registry, name, expected):
        """Strings, sequences and blanks are canonicalized."""
        assert registry.namespace(name).name == expected

    def test_module_and_class_names(self, registry):
        """Modules and classes are named after their dotted path."""
        assert registry.namespace(pytest).name == "pytest"
        assert registry.namespace(NamespaceRegistry).name == "artifacts:namespace:NamespaceRegistry"

    def test_root_has_no_parent(self, registry):
        """Root refuses a parent."""
        assert registry.root.parent is None
        with pytest.raises(NamespaceError):
            registry.root.parent = "app"

    def test_derived_parent(self, registry):
        """The parent is the name without its last segment, then root."""
        leaf = registry.namespace("a:b:c")
        assert leaf.parent is registry.namespace("a:b")
        assert leaf.parent.parent is registry.namespace("a")
        assert registry.namespace("a").parent is registry.root

    def test_explicit_parent(self, registry):
        """An assigned parent name resolves through the registry."""
        child = registry.namespace("child")
        child.parent = "elsewhere"
        assert child.parent is registry.namespace("elsewhere")
        other = registry.namespace("other")
        child.parent = other
        assert child.parent is other

    def test_clear_drops_instances(self, registry):
        """clear() forgets every namespace."""
        first = registry.namespace("app")
        registry.clear()
        assert "app" not in registry
        assert registry.namespace("app") is not first

    def test_iteration(self, registry):
        """Iterating yields every created namespace."""
        registry.namespace("a")
        registry.namespace("b")
        assert {ns.name for ns in registry} == {"a", "b"}

    def test_load_profiles(self, registry):
        """A mapping of namespaces to selections populates the registry."""
        registry.load({
            None: {"lang": "commons-lang:commons-lang:jar:2.6"},
            "app": {"junit": "junit:junit:jar:4.13.2"},
            "~": {"io": "commons-io:commons-io:jar:2.11.0"},
        })
        assert registry.root["lang"].version == "2.6"
        assert registry.root["io"].version == "2.11.0"
        assert registry.namespace("app")["junit"].version == "4.13.2"
        assert registry.namespace("app")["lang"].version == "2.6"

    def test_load_ignores_non_mappings(self, registry):
        """Anything but a mapping is ignored."""
        registry.load(None)
        registry.load(["a"])
        assert list(registry) == []


class TestDefaultRegistry:
    """Process-wide registry lifecycle."""

    def test_reset_all(self):
        """reset_all() discards the shared registry."""
        reset_all()
        shared = default_registry()
        assert default_registry() is shared
        shared.namespace("app")
        reset_all()
        assert default_registry() is not shared
        assert "app" not in default_registry()
        reset_all()


class TestNeed:
    """Declaring requirements."""

    def test_alias_symmetry(self, registry):
        """A named need is reachable by name and by unversioned identity."""
        ns = registry.namespace("app")
        ns.need({"thing": "g:a:jar:1.0"})
        by_name, by_identity = ns["thing"], ns["g:a:jar"]
        assert by_name.same_artifact(by_identity)
        assert (by_name.group, by_name.id, by_name.type) == ("g", "a", "jar")
        assert by_name.version == "1.0"

    def test_unnamed_need(self, registry):
        """A bare spec is keyed by its identity only."""
        ns = registry.namespace("app")
        ns.need("g:a:jar:>=1.0")
        assert ns.requirement("g:a:jar").text == ">=1.0"
        assert ns["g:a:jar"].version == "1.0"
        assert ns.keys() == ["g:a:jar"]

    def test_need_rechecks_existing_selection(self, registry):
        """A new requirement must accept the current selection."""
        ns = registry.namespace("app")
        ns.use({"x": "g:a:jar:0.9"})
        with pytest.raises(UnsatisfiedRequirementError):
            ns.need({"x": "g:a:jar:>=1.0"})

    def test_arrow_shorthand_with_name(self, registry):
        """name -> coord:preferred -> requirement declares a preferred version."""
        ns = registry.namespace("app")
        ns.need("lib -> org.x:lib:jar:2.3 -> >=2.0")
        requirement = ns.requirement("lib")
        assert requirement.text == ">=2.0"
        assert requirement.preferred
        assert ns["lib"].to_spec() == "org.x:lib:jar:2.3"

    def test_arrow_shorthand_without_name(self, registry):
        """coord:preferred -> requirement keys by identity."""
        ns = registry.namespace("app")
        ns.need("org.x:lib:jar:2.3 -> ~>2.0")
        assert ns["org.x:lib:jar"].version == "2.3"

    def test_arrow_in_mapping(self, registry):
        """A named mapping may carry the arrow form as its value."""
        ns = registry.namespace("app")
        ns.need({"lib": "org.x:lib:jar:2.3 -> ~>2.0"})
        assert ns["lib"].version == "2.3"
        assert ns.requirement("lib").text == "~>2.0"

    def test_preferred_must_satisfy_requirement(self, registry):
        """A preferred version outside the requirement is rejected."""
        with pytest.raises(UnsatisfiedRequirementError):
            registry.namespace("app").need("lib -> org.x:lib:jar:1.0 -> >=2.0")

    def test_lists_are_flattened(self, registry):
        """Nested lists of specs are all declared."""
        ns = registry.namespace("app")
        ns.need(["g:a:jar:1.0", ["g:b:jar:2.0"]])
        assert ns["g:a:jar"].version == "1.0"
        assert ns["g:b:jar"].version == "2.0"

    def test_grouped_needs_register_members(self, registry):
        """A list under one name declares each member by identity."""
        ns = registry.namespace("app")
        ns.need({"group": ["g:a:jar:1.0", "g:b:jar:2.0"]})
        assert ns.requirement("g:a:jar") is not None
        assert ns.requirement("g:b:jar") is not None
        assert ns.requirement("group") is None

    def test_realias_replaces_old_pair(self, registry):
        """Declaring the name again points it at the new identity only."""
        ns = registry.namespace("app")
        ns.need({"lib": "g:a:jar:1.0"})
        ns.need({"lib": "g:b:jar:2.0"})
        assert ns["lib"].id == "b"
        assert ns["g:a:jar"].version == "1.0"
        assert ns.requirement("g:a:jar").coordinate.id == "a"


class TestUse:
    """Selecting concrete artifacts."""

    def test_inheritance_invariant(self, registry):
        """A child selection must satisfy the parent's requirement."""
        parent = registry.namespace("parent")
        child = registry.namespace("parent:child")
        parent.need({"x": "g:a:jar:>=1.0"})
        with pytest.raises(UnsatisfiedRequirementError):
            child.use({"x": "0.9"})
        child.use({"x": "1.5"})
        assert child["x"].version == "1.5"
        assert child["x"].to_spec() == "g:a:jar:1.5"

    def test_end_to_end_three_levels(self, registry):
        """A grandchild cannot escape a requirement declared two levels up."""
        p = registry.namespace("p")
        c = registry.namespace("p:c")
        g = registry.namespace("p:c:g")
        p.need({"lib": "org.x:lib:jar:~>2.0"})
        c.use({"lib": "2.3"})
        assert c["lib"].to_spec() == "org.x:lib:jar:2.3"
        with pytest.raises(UnsatisfiedRequirementError):
            g.use({"lib": "3.0"})
        assert g["lib"].to_spec() == "org.x:lib:jar:2.3"

    def test_requirement_found_by_identity(self, registry):
        """An unnamed ancestor requirement still guards a named selection."""
        registry.root.need("org.x:lib:jar:>=1.0")
        child = registry.namespace("app")
        with pytest.raises(UnsatisfiedRequirementError):
            child.use({"mylib": "org.x:lib:jar:0.5"})

    def test_attribute_mismatch(self, registry):
        """A selection for a required name must be the same artifact."""
        registry.root.need({"lib": "org.x:lib:jar:>=1.0"})
        with pytest.raises(AttributeMismatchError):
            registry.namespace("app").use({"lib": "org.y:lib:jar:1.5"})

    def test_bare_spec(self, registry):
        """An unnamed coordinate is stored under its identity."""
        ns = registry.namespace("app")
        ns.use("g:a:jar:1.0")
        assert ns["g:a:jar"].version == "1.0"

    def test_mapping_spec_and_setitem(self, registry):
        """Attribute mappings and item assignment are accepted."""
        ns = registry.namespace("app")
        ns.use({"lib": {"group": "g", "id": "a", "version": "1.0"}})
        assert ns["lib"].to_spec() == "g:a:jar:1.0"
        ns["other"] = "g:b:jar:2.0"
        assert ns["other"].version == "2.0"
        assert ns["g:b:jar"].version == "2.0"

    def test_reference_by_name_is_copied(self, registry):
        """Using another name takes its current value, not a live link."""
        ns = registry.namespace("app")
        ns.use({"a": "g:a:jar:1.0"})
        ns.use({"b": "a"})
        ns.use({"a": "g:a:jar:2.0"})
        assert ns["b"].version == "1.0"
        assert ns["a"].version == "2.0"

    def test_unknown_name(self, registry):
        """Referencing an unknown name raises NameError."""
        with pytest.raises(NameError):
            registry.namespace("app").use({"b": "nothing"})

    def test_entry_from_other_namespace(self, registry):
        """Later changes in the source namespace do not leak."""
        source = registry.namespace("source")
        target = registry.namespace("target")
        source.use({"lib": "g:a:jar:1.0"})
        target.use({"lib": source["lib"]})
        source.use({"lib": "g:a:jar:2.0"})
        assert target["lib"].version == "1.0"

    def test_inherited_selection(self, registry):
        """Children see the parent's selection."""
        registry.root.need({"lib": "org.x:lib:jar:~>2.0"})
        registry.root.use({"lib": "2.3"})
        assert registry.namespace("app")["lib"].to_spec() == "org.x:lib:jar:2.3"

    def test_inherited_selection_failing_nearer_requirement(self, registry):
        """A child's own requirement hides an incompatible inherited selection."""
        registry.root.use({"lib": "org.x:lib:jar:1.5"})
        child = registry.namespace("app")
        child.need({"lib": "org.x:lib:jar:>=2.0"})
        assert child["lib"].version == "2.0"
        assert registry.root["lib"].version == "1.5"

    def test_leftover_requirement_without_search(self, registry):
        """A requirement used as a selection falls back to its default."""
        ns = registry.namespace("app")
        ns.use({"lib": "org.x:lib:jar:>=1.0 <2"})
        assert ns["lib"].version == "1.0"

    def test_unselected_requirement_without_default(self, registry):
        """A requirement with no default resolves to an unversioned coordinate."""
        ns = registry.namespace("app")
        ns.need({"lib": "org.x:lib:jar:>1.0"})
        assert ns["lib"].version is None


class TestDefault:
    """Fallback selections that do not clobber explicit choices."""

    def test_sets_when_unselected(self, registry):
        """With no selection the default is applied."""
        registry.root.need({"lib": "org.x:lib:jar:~>2.0"})
        child = registry.namespace("app")
        child.default({"lib": "2.1"})
        assert child["lib"].version == "2.1"

    def test_keeps_satisfying_selection(self, registry):
        """An existing selection that meets the requirement is kept."""
        registry.root.need({"lib": "org.x:lib:jar:~>2.0"})
        child = registry.namespace("app")
        child.use({"lib": "2.3"})
        child.default({"lib": "2.5"})
        assert child["lib"].version == "2.3"

    def test_keeps_unconstrained_selection(self, registry):
        """Without a requirement any existing selection is kept."""
        ns = registry.namespace("app")
        ns.use({"x": "g:a:jar:1.0"})
        ns.default({"x": "g:a:jar:2.0"})
        assert ns["x"].version == "1.0"

    def test_keeps_bare_version_selection(self, registry):
        """A bare version chosen for an undescribed name is not replaced."""
        ns = registry.namespace("app")
        ns.use({"foo": "1.0"})
        ns.default({"foo": "2.0"})
        assert ns["foo"] == "1.0"
        child = registry.namespace("app:web")
        child.default({"foo": "3.0"})
        assert child["foo"] == "1.0"

    def test_default_is_guarded(self, registry):
        """Defaults still have to satisfy inherited requirements."""
        registry.root.need({"lib": "org.x:lib:jar:~>2.0"})
        with pytest.raises(UnsatisfiedRequirementError):
            registry.namespace("app").default({"lib": "3.0"})


class TestInspection:
    """Lookup helpers and enumeration."""

    def test_only(self, registry):
        """only() returns one coordinate, a list, or every requirement."""
        ns = registry.namespace("app")
        ns.need({"a": "g:a:jar:1.0"}, {"b": "g:b:jar:2.0"})
        assert ns.only("a").version == "1.0"
        assert [c.version for c in ns.only("a", "b")] == ["1.0", "2.0"]
        assert sorted(c.id for c in ns.only()) == ["a", "b"]

    def test_get_default(self, registry):
        """get() returns the default for unknown names."""
        ns = registry.namespace("app")
        assert ns.get("missing") is None
        assert ns.get("missing", "fallback") == "fallback"
        assert ns["missing"] is None

    def test_bare_version_without_requirement(self, registry):
        """Lookups return the bare version until a requirement supplies the coordinate."""
        ns = registry.namespace("app")
        ns.use({"foo": "1.0"})
        assert ns.is_selected("foo")
        assert ns["foo"] == "1.0"
        assert ns.get("foo") == "1.0"
        assert ns.only("foo") == "1.0"
        assert ns.spec("foo") is None
        ns.need({"foo": "org.x:foo:jar:>=1.0"})
        assert ns["foo"].to_spec() == "org.x:foo:jar:1.0"

    def test_has_selected_satisfied(self, registry):
        """Presence and satisfaction predicates."""
        registry.root.need({"lib": "org.x:lib:jar:~>2.0"})
        child = registry.namespace("app")
        assert child.has("lib")
        assert "lib" in child
        assert not child.is_selected("lib")
        assert child.satisfied("lib")
        assert child.satisfied_by("lib", "2.9")
        assert not child.satisfied_by("lib", "3.0")
        assert not child.satisfied_by("unknown", "1.0")
        assert not child.has("unknown")
        child.use({"lib": "2.2"})
        assert child.is_selected("lib")
        assert registry.namespace("app:sub").is_selected("lib")

    def test_satisfied_without_requirement(self, registry):
        """A selection with no requirement is not 'satisfied'."""
        ns = registry.namespace("app")
        ns.use({"x": "g:a:jar:1.0"})
        assert not ns.satisfied("x")

    def test_delete(self, registry):
        """delete() removes the name, its alias and its requirement."""
        ns = registry.namespace("app")
        ns.need({"lib": "org.x:lib:jar:~>2.0"})
        ns.use({"lib": "2.3"})
        ns.delete("lib")
        assert ns["lib"] is None
        assert ns.requirement("org.x:lib:jar") is None
        assert ns.keys() == []

    def test_keys(self, registry):
        """Selections come first, then required names."""
        ns = registry.namespace("app")
        ns.need({"lib": "org.x:lib:jar:~>2.0"})
        ns.use({"x": "g:x:jar:1"})
        assert ns.keys() == ["x", "lib"]

    def test_to_a_deduplicates(self, registry):
        """The same artifact under two keys is listed once."""
        ns = registry.namespace("app")
        ns.use({"a": "g:a:jar:1.0"})
        ns.use("g:a:jar:1.0")
        assert [c.to_spec() for c in ns.to_a()] == ["g:a:jar:1.0"]
        assert [c.to_spec() for c in ns] == ["g:a:jar:1.0"]
        assert ns.values() == ns.to_a()

    def test_to_a_include_parents(self, registry):
        """Walking upward keeps the nearest entry per identity."""
        registry.root.use({"x": "g:x:jar:1.0"})
        child = registry.namespace("app")
        child.use({"y": "g:y:jar:2.0"})
        child.use({"x": "g:x:jar:1.1"})
        assert {c.to_spec() for c in child.to_a()} == {"g:x:jar:1.1", "g:y:jar:2.0"}
        registry.namespace("other").use({"z": "g:z:jar:3.0"})
        specs = {c.to_spec() for c in registry.namespace("other").to_a(include_parents=True)}
        assert specs == {"g:z:jar:3.0", "g:x:jar:1.0"}

    def test_clear_keeps_identity(self, registry):
        """clear() empties the maps but keeps name and parent."""
        ns = registry.namespace("a:b")
        ns.use({"x": "g:x:jar:1.0"})
        ns.clear()
        assert ns["x"] is None
        assert ns.name == "a:b"
        assert ns.parent is registry.namespace("a")


class TestSubNamespaces:
    """Nested namespaces and flattened access."""

    def test_create_and_reopen(self, registry):
        """ns() creates once and reopens afterwards."""
        app = registry.namespace("app")
        tools = app.ns("tools", {"junit": "junit:junit:jar:4.13"})
        assert app.ns("tools") is tools
        assert app["tools"] is tools
        assert tools.parent is app
        assert tools.name == "app:tools"

    def test_flattened_access(self, registry):
        """foo_bar reaches ns('foo')['bar']."""
        app = registry.namespace("app")
        app.ns("tools", {"junit": "junit:junit:jar:4.13"})
        assert app.get("tools_junit").version == "4.13"
        assert app.has("tools_junit")

    def test_reopen_non_namespace(self, registry):
        """A name holding a selection cannot become a sub-namespace."""
        app = registry.namespace("app")
        app.use({"x": "g:x:jar:1"})
        with pytest.raises(TypeError):
            app.ns("x")

    def test_sub_namespace_inherits_requirements(self, registry):
        """Requirements of the enclosing namespace guard the nested one."""
        app = registry.namespace("app")
        app.need({"junit": "junit:junit:jar:>=4"})
        with pytest.raises(UnsatisfiedRequirementError):
            app.ns("tools", {"junit": "3.8"})

    def test_sub_namespace_excluded_from_to_a(self, registry):
        """Only artifacts are enumerated."""
        app = registry.namespace("app")
        app.ns("tools", {"junit": "junit:junit:jar:4.13"})
        app.use({"x": "g:x:jar:1"})
        assert [c.to_spec() for c in app.to_a()] == ["g:x:jar:1"]


class TestAccessor:
    """Explicit attribute accessors."""

    def test_properties(self, registry):
        """Names become properties with setters and has_ predicates."""
        ns = registry.namespace("app")
        ns.need({"lib": "org.x:lib:jar:~>2.0"})
        acc = ns.accessor("lib", "other")
        assert acc.lib.version == "2.0"
        assert acc.has_lib()
        assert not acc.has_other()
        acc.lib = "2.4"
        assert ns["lib"].version == "2.4"
        assert acc.other is None

    def test_invalid_name(self, registry):
        """Only identifiers can become attributes."""
        with pytest.raises(ValueError):
            registry.namespace("app").accessor("not-valid")


class TestSearchIntegration:
    """Namespaces resolving requirements through a version search."""

    def test_unselected_requirement_is_searched(self, searching_registry):
        """The best satisfying runtime version is selected and cached."""
        searching_registry.root.need({"lib": "org.x:lib:jar:~>2.0"})
        child = searching_registry.namespace("app")
        assert child["lib"].version == "2.4"
        assert child.is_selected("lib")

    def test_leftover_requirement_is_searched(self, searching_registry):
        """A requirement used as a selection resolves on lookup."""
        ns = searching_registry.namespace("app")
        ns.use({"lib": "org.x:lib:jar:>=3"})
        assert ns["lib"].version == "3.1"

    def test_preferred_version_skips_search(self, searching_registry):
        """A declared preferred version is used as is."""
        ns = searching_registry.namespace("app")
        ns.need("lib -> org.x:lib:jar:2.0 -> ~>2.0")
        assert ns["lib"].version == "2.0"

    def test_search_result_is_guarded(self, searching_registry):
        """A searched version must satisfy ancestor requirements too."""
        searching_registry.root.need({"lib": "org.x:lib:jar:<3"})
        ns = searching_registry.namespace("app")
        ns.use({"lib": "org.x:lib:jar:>=3"})
        with pytest.raises(UnsatisfiedRequirementError):
            ns.spec("lib")

    def test_unresolvable(self, searching_registry):
        """No candidate and no default raises ResolutionError."""
        ns = searching_registry.namespace("app")
        ns.need({"lib": "org.x:lib:jar:>9"})
        with pytest.raises(ResolutionError):
            ns.spec("lib")

    def test_exact_requirement(self, searching_registry):
        """Exact pins resolve without consulting probes."""
        ns = searching_registry.namespace("app")
        ns.need({"thing": "g:a:jar:1.0"})
        assert ns["g:a:jar"] == ArtifactCoordinate.parse("g:a:jar:1.0")
