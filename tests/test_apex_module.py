"""
Tests for the APEX module capability — collection, freezing, and splitting.
"""

import threading

import pytest

from apexgraph.core.apex_module import ApexModuleBase, PhaseOrderError
from apexgraph.core.models import ApexDecl, ApexInfo, ApiLevel, ModuleDecl


def _info(name: str, min_sdk: str = "29", **kwargs) -> ApexInfo:
    return ApexInfo(apex_variation_name=name, min_sdk_version=min_sdk, in_apexes=[name], **kwargs)


# ── Collection ───────────────────────────────────────────────────────


class TestBuildForApex:
    def test_records_requirement(self):
        mod = ApexModuleBase("libfoo")
        mod.build_for_apex(_info("com.foo"))
        assert [i.apex_variation_name for i in mod.apex_variations()] == ["com.foo"]

    def test_repeated_name_is_ignored(self):
        mod = ApexModuleBase("libfoo")
        mod.build_for_apex(_info("com.foo", "29"))
        mod.build_for_apex(_info("com.foo", "30"))

        variations = mod.apex_variations()
        assert len(variations) == 1
        assert variations[0].min_sdk_version == "29"

    def test_concurrent_collection(self):
        mod = ApexModuleBase("libfoo")

        def add(prefix: int) -> None:
            for i in range(50):
                mod.build_for_apex(_info(f"com.t{prefix}.a{i}"))
                mod.build_for_apex(_info("com.shared"))

        threads = [threading.Thread(target=add, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        names = [i.apex_variation_name for i in mod.apex_variations()]
        assert len(names) == 8 * 50 + 1
        assert len(set(names)) == len(names)

    def test_apex_variations_returns_copy(self):
        mod = ApexModuleBase("libfoo")
        mod.build_for_apex(_info("com.foo"))
        mod.apex_variations().clear()
        assert len(mod.apex_variations()) == 1


class TestShouldSupportSdkVersion:
    def test_unspecified(self):
        mod = ApexModuleBase("libfoo")
        assert mod.should_support_sdk_version(ApiLevel.final(29)) == "min_sdk_version is not specified"

    def test_newer(self):
        mod = ApexModuleBase("libfoo", min_sdk_version="30")
        assert mod.should_support_sdk_version(ApiLevel.final(29)) == "newer SDK(30)"

    def test_supported(self):
        assert ApexModuleBase("libfoo", min_sdk_version="29").should_support_sdk_version(ApiLevel.final(30)) is None
        assert ApexModuleBase("libfoo", min_sdk_version="Q").should_support_sdk_version(ApiLevel.final(29)) is None

    def test_unparsable_own_level(self):
        mod = ApexModuleBase("libfoo", min_sdk_version="bogus")
        reason = mod.should_support_sdk_version(ApiLevel.final(29))
        assert reason is not None
        assert "bogus" in reason


class TestDeclaredState:
    def test_available_for(self):
        mod = ApexModuleBase("libfoo", apex_available=["com.foo"])
        assert mod.available_for("com.foo")
        assert not mod.available_for("com.bar")

    def test_defaults_before_mutation(self):
        mod = ApexModuleBase("libfoo")
        assert mod.is_for_platform()
        assert mod.apex_variation_name() == ""
        assert mod.in_apexes() == []
        assert not mod.updatable()
        assert not mod.not_available_for_platform()

    def test_same_apex_filter(self, graph_factory):
        graph = graph_factory(
            [
                ModuleDecl(name="libfoo", deps=["libbar"], external_deps=["libext"]),
                ModuleDecl(name="libbar"),
                ModuleDecl(name="libext"),
                ModuleDecl(name="libstub", stubs=True),
            ]
        )
        apex = graph.node("libfoo").apex_module()
        assert apex.dep_is_in_same_apex(graph.node("libbar"))
        assert not apex.dep_is_in_same_apex(graph.node("libext"))
        assert not apex.dep_is_in_same_apex(graph.node("libstub"))

    def test_replicate_is_independent(self):
        mod = ApexModuleBase("libfoo", apex_available=["com.foo"])
        mod.build_for_apex(_info("com.foo"))
        clone = mod.replicate()

        clone.set_apex_info(_info("com.foo"))
        clone.set_not_available_for_platform()

        assert mod.is_for_platform()
        assert not mod.not_available_for_platform()
        assert clone.apex_variation_name() == "com.foo"
        assert clone.apex_available() == ["com.foo"]


# ── Mutation ─────────────────────────────────────────────────────────


def _single_bundle_graph(graph_factory, **mod_kwargs):
    mod_kwargs.setdefault("apex_available", ["com.foo"])
    return graph_factory(
        [ModuleDecl(name="libfoo", **mod_kwargs)],
        [ApexDecl(name="com.foo", min_sdk_version="29", contents=["libfoo"])],
    )


def _mutate(graph, name: str = "libfoo", *infos: ApexInfo):
    node = graph.node(name)
    apex = node.apex_module()
    for info in infos:
        apex.build_for_apex(info)
    ctx = graph.context(node)
    apex.update_unique_apex_variations_for_deps(ctx)
    return apex, apex.create_apex_variations(ctx)


class TestCreateApexVariations:
    def test_no_requirements_no_split(self, graph_factory):
        graph = _single_bundle_graph(graph_factory)
        _, modules = _mutate(graph)

        assert modules == []
        assert graph.variants("libfoo") == [""]

    def test_split_and_alias(self, graph_factory):
        graph = _single_bundle_graph(graph_factory)
        _, modules = _mutate(graph, "libfoo", _info("com.foo"))

        assert [m.variation for m in modules] == ["", "apex29"]
        assert graph.variants("libfoo") == ["", "apex29"]
        assert graph.aliases("libfoo") == {"com.foo": "apex29"}
        assert graph.node("libfoo", "com.foo").variation == "apex29"

        replica = graph.node("libfoo", "apex29").apex_module()
        assert replica.apex_variation_name() == "apex29"
        assert replica.in_apexes() == ["com.foo"]
        assert not replica.is_for_platform()

    def test_default_variation_is_platform(self, graph_factory):
        graph = _single_bundle_graph(graph_factory)
        _mutate(graph, "libfoo", _info("com.foo"))

        assert graph.default_variation("libfoo") == ""
        assert graph.node("libfoo", "unknown-label").variation == ""

    def test_merge_groups_equal_requirements(self, graph_factory):
        graph = _single_bundle_graph(graph_factory, apex_available=["//apex_available:anyapex"])
        _mutate(graph, "libfoo", _info("com.b"), _info("com.a"), _info("com.c", "30"))

        assert graph.variants("libfoo") == ["", "apex29", "apex30"]
        assert graph.aliases("libfoo") == {"com.a": "apex29", "com.b": "apex29", "com.c": "apex30"}
        assert graph.node("libfoo", "apex29").apex_module().in_apexes() == ["com.a", "com.b"]

    def test_unique_variations_skip_merge(self, graph_factory):
        graph = _single_bundle_graph(
            graph_factory,
            apex_available=["//apex_available:anyapex"],
            unique_apex_variations=True,
        )
        _mutate(graph, "libfoo", _info("com.b"), _info("com.a"))

        assert graph.variants("libfoo") == ["", "com.a", "com.b"]
        assert graph.aliases("libfoo") == {}

    def test_platform_uninstallable_when_not_available(self, graph_factory):
        graph = _single_bundle_graph(graph_factory)
        _mutate(graph, "libfoo", _info("com.foo"))

        assert not graph.node("libfoo", "").installable
        assert graph.node("libfoo", "apex29").installable

    def test_platform_installable_when_available(self, graph_factory):
        graph = _single_bundle_graph(
            graph_factory, apex_available=["com.foo", "//apex_available:platform"]
        )
        _mutate(graph, "libfoo", _info("com.foo"))
        assert graph.node("libfoo", "").installable

    def test_platform_installable_on_host(self, graph_factory):
        graph = graph_factory(
            [ModuleDecl(name="libfoo", apex_available=["com.foo"])],
            [ApexDecl(name="com.foo", contents=["libfoo"])],
            host=True,
        )
        _mutate(graph, "libfoo", _info("com.foo"))
        assert graph.node("libfoo", "").installable

    def test_freezes_collection(self, graph_factory):
        graph = _single_bundle_graph(graph_factory)
        apex, _ = _mutate(graph, "libfoo", _info("com.foo"))

        with pytest.raises(PhaseOrderError, match="after variant mutation"):
            apex.build_for_apex(_info("com.late"))
        with pytest.raises(PhaseOrderError):
            graph.node("libfoo", "apex29").apex_module().build_for_apex(_info("com.late"))

    def test_freezes_even_without_requirements(self, graph_factory):
        graph = _single_bundle_graph(graph_factory)
        apex, _ = _mutate(graph)
        with pytest.raises(PhaseOrderError):
            apex.build_for_apex(_info("com.late"))


class TestApexAvailableProperty:
    def test_unknown_name_reported(self, graph_factory):
        graph = _single_bundle_graph(graph_factory, apex_available=["com.foo", "com.missing"])
        _mutate(graph, "libfoo", _info("com.foo"))

        errors = graph.errors.for_module("libfoo")
        assert len(errors) == 1
        assert errors[0].property == "apex_available"
        assert errors[0].message == '"com.missing" is not a valid module name'

    def test_sentinels_are_not_names(self, graph_factory):
        graph = _single_bundle_graph(
            graph_factory,
            apex_available=[
                "//apex_available:platform",
                "//apex_available:anyapex",
                "com.android.gki.*",
            ],
        )
        _mutate(graph, "libfoo", _info("com.foo"))
        assert graph.errors.errors == []

    def test_allow_missing_dependencies(self, graph_factory):
        graph = graph_factory(
            [ModuleDecl(name="libfoo", apex_available=["com.missing"])],
            [ApexDecl(name="com.foo", contents=["libfoo"])],
            allow_missing_dependencies=True,
        )
        _mutate(graph, "libfoo", _info("com.foo"))
        assert graph.errors.errors == []

    def test_not_checked_without_requirements(self, graph_factory):
        graph = _single_bundle_graph(graph_factory, apex_available=["com.missing"])
        _mutate(graph)
        assert graph.errors.errors == []


class TestUniqueForDeps:
    def _graph(self, graph_factory, unique: bool):
        return graph_factory(
            [
                ModuleDecl(name="libA", deps=["libB"], apex_available=["//apex_available:anyapex"]),
                ModuleDecl(
                    name="libB",
                    apex_available=["//apex_available:anyapex"],
                    unique_apex_variations=unique,
                ),
            ],
            [ApexDecl(name="com.x", contents=["libA"]), ApexDecl(name="com.y", contents=["libA"])],
        )

    def test_inherited_from_unique_dep_in_same_apex(self, graph_factory):
        graph = self._graph(graph_factory, unique=True)
        graph.node("libB").apex_module().build_for_apex(_info("com.x"))
        apex, _ = _mutate(graph, "libA", _info("com.x"), _info("com.y"))
        assert apex.unique_apex_variations_for_deps()

    def test_not_inherited_without_shared_apex(self, graph_factory):
        graph = self._graph(graph_factory, unique=True)
        graph.node("libB").apex_module().build_for_apex(_info("com.z"))
        apex, _ = _mutate(graph, "libA", _info("com.x"), _info("com.y"))
        assert not apex.unique_apex_variations_for_deps()

    def test_not_inherited_from_plain_dep(self, graph_factory):
        graph = self._graph(graph_factory, unique=False)
        graph.node("libB").apex_module().build_for_apex(_info("com.x"))
        apex, _ = _mutate(graph, "libA", _info("com.x"), _info("com.y"))
        assert not apex.unique_apex_variations_for_deps()
