"""Dependency graph construction and read-only queries.

`build_graph` links identified packages into a `PackageGraph`, a general
directed multigraph stored as adjacency lists:

- Every edge's source is a node of the graph.
- A dependency key that resolves to a known package becomes an edge to that
  package's identifier; any other key becomes an *external* edge.
- Cycles, self-loops and repeated edges are legal and preserved as-is.

The graph is fully built before the render phase starts and never mutated
afterwards, so render workers read it concurrently without locks. Consumers
only need one-hop lookups (`dependencies_of`, `dependents_of`); nothing here
traverses the graph recursively.
"""

import logging
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from pkgschema.edge import DependencyEdge
from pkgschema.package import Package

logger = logging.getLogger(__name__)


def resolution_keys(package: Package) -> list[str]:
    """Keys a dependency reference may use to name `package`, highest priority first."""
    keys: list[str] = []
    if package.attribute:
        keys.append(package.attribute)
    if package.version:
        keys.append(f"{package.name}@{package.version}")
        keys.append(f"{package.name}-{package.version}")
    keys.append(package.name)
    return keys


def build_resolution_index(packages: Iterable[Package]) -> dict[str, str]:
    """Map every resolution key to an identifier.

    Keys are claimed in priority tiers (all attribute paths first, then
    ``name@version``, ``name-version`` and finally bare names), so a more
    specific key is never shadowed by a looser one. Within a tier the
    package with the smallest identifier wins.
    """
    ordered = sorted(packages, key=lambda p: p.identifier or "")
    index: dict[str, str] = {}
    tiers: list[list[tuple[str, str]]] = [[], [], [], []]
    for package in ordered:
        if package.attribute:
            tiers[0].append((package.attribute, package.identifier))
        if package.version:
            tiers[1].append((f"{package.name}@{package.version}", package.identifier))
            tiers[2].append((f"{package.name}-{package.version}", package.identifier))
        tiers[3].append((package.name, package.identifier))
    for tier in tiers:
        for key, identifier in tier:
            index.setdefault(key, identifier)
    return index


class PackageGraph:
    """Immutable package graph shared by all render workers.

    Construct through `build_graph`. Nodes are kept in identifier order, and
    outgoing edges in the order of each package's `dependency_refs`.
    """

    def __init__(self, nodes: Mapping[str, Package], edges: tuple[DependencyEdge, ...]):
        self._nodes: Mapping[str, Package] = MappingProxyType(dict(sorted(nodes.items())))
        self._edges = edges
        outgoing: dict[str, list[DependencyEdge]] = {identifier: [] for identifier in self._nodes}
        incoming: dict[str, list[DependencyEdge]] = {identifier: [] for identifier in self._nodes}
        for edge in edges:
            if edge.source not in outgoing:
                raise ValueError(f"Edge source {edge.source!r} is not a node of the graph")
            outgoing[edge.source].append(edge)
            if edge.target is not None:
                if edge.target not in incoming:
                    raise ValueError(f"Edge target {edge.target!r} is not a node of the graph")
                incoming[edge.target].append(edge)
        self._outgoing: Mapping[str, tuple[DependencyEdge, ...]] = MappingProxyType(
            {k: tuple(v) for k, v in outgoing.items()}
        )
        self._incoming: Mapping[str, tuple[DependencyEdge, ...]] = MappingProxyType(
            {k: tuple(sorted(v, key=lambda e: (e.source, e.kind.value, e.key))) for k, v in incoming.items()}
        )

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._nodes

    def __iter__(self) -> Iterator[Package]:
        return iter(self._nodes.values())

    def get(self, identifier: str) -> Package | None:
        return self._nodes.get(identifier)

    def packages(self) -> list[Package]:
        """All packages in identifier order."""
        return list(self._nodes.values())

    def identifiers(self) -> list[str]:
        return list(self._nodes)

    @property
    def edges(self) -> tuple[DependencyEdge, ...]:
        return self._edges

    def dependencies_of(self, identifier: str) -> tuple[DependencyEdge, ...]:
        """Outgoing edges of a package, in source order. Unknown identifiers raise KeyError."""
        return self._outgoing[identifier]

    def dependents_of(self, identifier: str) -> tuple[DependencyEdge, ...]:
        """Resolved edges pointing at a package, ordered by depending identifier."""
        return self._incoming[identifier]

    def external_edges(self) -> list[DependencyEdge]:
        return [edge for edge in self._edges if edge.is_external]


def build_graph(packages: Iterable[Package], diagnostics: bool = False) -> PackageGraph:
    """Link identified packages into a `PackageGraph`.

    Args:
        packages: Packages carrying unique identifiers.
        diagnostics: If True, log every dependency key that does not resolve.

    Returns:
        The finished, read-only graph.

    Raises:
        ValueError: If a package has no identifier or two packages share one.
    """
    nodes: dict[str, Package] = {}
    for package in packages:
        if package.identifier is None:
            raise ValueError(f"Package {package.full_name!r} has no identifier; allocate identifiers first")
        if package.identifier in nodes:
            raise ValueError(f"Duplicate identifier {package.identifier!r}")
        nodes[package.identifier] = package

    index = build_resolution_index(nodes.values())
    edges: list[DependencyEdge] = []
    unresolved = 0
    for identifier in sorted(nodes):
        for ref in nodes[identifier].dependency_refs:
            target = index.get(ref.key)
            if target is None:
                unresolved += 1
                if diagnostics:
                    logger.info("Unresolved dependency %r of %s kept as external", ref.key, identifier)
            edges.append(DependencyEdge(source=identifier, target=target, key=ref.key, kind=ref.kind))

    logger.debug("Built graph: %d packages, %d edges, %d external", len(nodes), len(edges), unresolved)
    return PackageGraph(nodes, tuple(edges))
