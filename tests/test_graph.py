"""Tests for dependency graph construction.

This module verifies:
- Dependency keys resolve by attribute, name@version, name-version and name
- Unresolved keys become external edges
- Cycles, self-loops and repeated edges are preserved
- One-hop queries return edges in the documented order
- Graph construction rejects unidentified and duplicate packages
"""

import logging

import pytest

from pkgschema.package import DependencyKind, DependencyRef, Package
from pkgvault.graph import build_graph, build_resolution_index, resolution_keys
from tests.conftest import identifier_of, make_package


def _identified(*packages):
    return [p.model_copy(update={"identifier": f"id-{p.attribute or p.name}-{p.version}"}) for p in packages]


class TestResolutionKeys:
    """Tests for resolution key generation and priority."""

    def test_keys_in_priority_order(self) -> None:
        package = make_package("openssl", "3.0", attribute="openssl_3")
        assert resolution_keys(package) == ["openssl_3", "openssl@3.0", "openssl-3.0", "openssl"]

    def test_versionless_package(self) -> None:
        assert resolution_keys(make_package("hello", "")) == ["hello"]

    def test_bare_name_resolves_to_smallest_identifier(self) -> None:
        packages = [
            make_package("python", "3.12", identifier="b-python"),
            make_package("python", "3.11", identifier="a-python"),
        ]
        index = build_resolution_index(packages)
        assert index["python"] == "a-python"
        assert index["python@3.12"] == "b-python"

    def test_attribute_shadows_bare_name(self) -> None:
        """An attribute path wins over another package's bare name."""
        packages = [
            make_package("git", "2.0", identifier="a-git"),
            make_package("git-full", "2.0", identifier="z-git-full", attribute="git"),
        ]
        assert build_resolution_index(packages)["git"] == "z-git-full"


class TestBuildGraph:
    """Tests for build_graph()."""

    def test_sample_graph_edges(self, sample_graph) -> None:
        curl = identifier_of(sample_graph, "curl")
        openssl = identifier_of(sample_graph, "openssl")
        zlib = identifier_of(sample_graph, "zlib")

        targets = [edge.target for edge in sample_graph.dependencies_of(curl)]
        assert targets == [openssl, zlib]

    def test_external_dependency(self, sample_graph) -> None:
        git = identifier_of(sample_graph, "git")
        external = [edge for edge in sample_graph.dependencies_of(git) if edge.is_external]
        assert [edge.key for edge in external] == ["perl-helper"]
        assert [edge.key for edge in sample_graph.external_edges()] == ["perl-helper"]

    def test_cycle_is_preserved(self, sample_graph) -> None:
        ping = identifier_of(sample_graph, "ping")
        pong = identifier_of(sample_graph, "pong")
        assert [edge.target for edge in sample_graph.dependencies_of(ping)] == [pong]
        assert [edge.target for edge in sample_graph.dependencies_of(pong)] == [ping]
        assert [edge.source for edge in sample_graph.dependents_of(ping)] == [pong]

    def test_dependents_sorted_by_source(self, sample_graph) -> None:
        openssl = identifier_of(sample_graph, "openssl")
        sources = [edge.source for edge in sample_graph.dependents_of(openssl)]
        assert sources == sorted([identifier_of(sample_graph, "curl"), identifier_of(sample_graph, "git")])

    def test_self_loop_and_repeated_edges(self) -> None:
        package = make_package("loop", "1", identifier="loop-1", deps=("loop", "loop"))
        graph = build_graph([package])
        assert [edge.target for edge in graph.dependencies_of("loop-1")] == ["loop-1", "loop-1"]
        assert len(graph.dependents_of("loop-1")) == 2

    def test_dependency_kind_carried_onto_edge(self) -> None:
        a = Package(
            name="a",
            identifier="a",
            dependency_refs=(DependencyRef(key="b", kind=DependencyKind.BUILD),),
        )
        graph = build_graph([a, make_package("b", identifier="b")])
        assert graph.dependencies_of("a")[0].kind is DependencyKind.BUILD

    def test_edges_resolve_by_name_at_version(self) -> None:
        packages = _identified(
            make_package("lib", "1"),
            make_package("lib", "2"),
            make_package("app", "1", deps=("lib@2",)),
        )
        graph = build_graph(packages)
        assert graph.dependencies_of("id-app-1")[0].target == "id-lib-2"

    def test_nodes_in_identifier_order(self, sample_graph) -> None:
        assert sample_graph.identifiers() == sorted(sample_graph.identifiers())
        assert len(sample_graph) == 6
        assert all(identifier in sample_graph for identifier in sample_graph.identifiers())
        assert "missing" not in sample_graph
        assert sample_graph.get("missing") is None

    def test_unknown_identifier_query_raises(self, sample_graph) -> None:
        with pytest.raises(KeyError):
            sample_graph.dependencies_of("missing")

    def test_requires_identifiers(self) -> None:
        with pytest.raises(ValueError, match="no identifier"):
            build_graph([make_package("a")])

    def test_rejects_duplicate_identifiers(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            build_graph([make_package("a", identifier="x"), make_package("b", identifier="x")])

    def test_diagnostics_logs_unresolved(self, caplog) -> None:
        package = make_package("a", identifier="a", deps=("nowhere",))
        with caplog.at_level(logging.INFO, logger="pkgvault.graph"):
            build_graph([package], diagnostics=True)
        assert "nowhere" in caplog.text

    def test_no_diagnostics_by_default(self, caplog) -> None:
        package = make_package("a", identifier="a", deps=("nowhere",))
        with caplog.at_level(logging.INFO, logger="pkgvault.graph"):
            build_graph([package])
        assert "nowhere" not in caplog.text
