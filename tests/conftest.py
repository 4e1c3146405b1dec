"""Test fixtures and helpers for the vault pipeline.

This module provides:
- Factory functions for raw records (flat and nix-style) and packages
- A small sample record set with a dependency cycle, an external dependency
  and shared maintainers
- Failing renderer/sink doubles for failure-isolation tests
- Pytest fixtures for built graphs and in-memory sinks
"""

from typing import Any

import pytest

from pkgschema.document import RenderedDocument
from pkgschema.package import DependencyKind, DependencyRef, Package, SourcePosition
from pkgschema.sink import DocumentSinkInterface
from pkgvault.graph import PackageGraph, build_graph
from pkgvault.identifiers import allocate_identifiers
from pkgvault.normalize import normalize_records
from pkgvault.pipeline.render import MarkdownPackageRenderer
from pkgvault.storage.memory import InMemoryDocumentSink

# --- Factories ---


def make_raw_record(name: str, version: str = "1.0", **fields: Any) -> dict[str, Any]:
    """Build a flat raw record; extra keyword arguments become record fields."""
    record: dict[str, Any] = {"name": name, "version": version}
    record.update(fields)
    return record


def make_nix_record(
    pname: str,
    version: str = "1.0",
    *,
    license: Any = None,
    maintainers: list[Any] | None = None,
    position: str | None = None,
    build_inputs: list[str] | None = None,
) -> dict[str, Any]:
    """Build a record shaped like nix-env JSON output (fields under meta)."""
    meta: dict[str, Any] = {"description": f"The {pname} package"}
    if license is not None:
        meta["license"] = license
    if maintainers is not None:
        meta["maintainers"] = maintainers
    if position is not None:
        meta["position"] = position
    record: dict[str, Any] = {
        "name": f"{pname}-{version}",
        "pname": pname,
        "version": version,
        "outputs": {"out": f"/nix/store/{'0' * 32}-{pname}-{version}"},
        "drvPath": f"/nix/store/{'1' * 32}-{pname}-{version}.drv",
        "meta": meta,
    }
    if build_inputs is not None:
        record["buildInputs"] = build_inputs
    return record


def make_package(
    name: str,
    version: str = "1.0",
    *,
    identifier: str | None = None,
    deps: tuple[str, ...] = (),
    maintainers: tuple[str, ...] = (),
    license: tuple[str, ...] = (),
    outputs: tuple[str, ...] = ("out",),
    position: SourcePosition | None = None,
    **fields: Any,
) -> Package:
    """Build a Package directly, bypassing normalization."""
    return Package(
        name=name,
        version=version,
        identifier=identifier,
        dependency_refs=tuple(DependencyRef(key=d, kind=DependencyKind.GENERIC) for d in deps),
        maintainers=maintainers,
        license=license,
        outputs=outputs,
        source_position=position,
        **fields,
    )


def graph_from_records(records: Any) -> PackageGraph:
    """Normalize, identify and link a record set."""
    normalized = normalize_records(records)
    return build_graph(allocate_identifiers(normalized.packages))


def identifier_of(graph: PackageGraph, name: str) -> str:
    matches = [p.identifier for p in graph.packages() if p.name == name]
    assert len(matches) == 1, f"expected exactly one package named {name!r}, found {matches}"
    return matches[0]


SAMPLE_RECORDS: list[dict[str, Any]] = [
    make_raw_record("openssl", "3.0.13", license="Apache-2.0", maintainers=["alice"], outputs=["out", "dev", "man"]),
    make_raw_record("curl", "8.6.0", license="curl", maintainers=["alice", "bob"], deps=["openssl", "zlib"]),
    make_raw_record("zlib", "1.3.1", license="Zlib", maintainers=["bob"], outputs=["out", "dev"]),
    make_raw_record("git", "2.44.0", license="GPL-2.0-only", maintainers=["carol"], deps=["curl", "openssl", "perl-helper"]),
    make_raw_record("ping", "1", deps=["pong"]),
    make_raw_record("pong", "1", deps=["ping"]),
]


# --- Test doubles ---


class FailingRenderer(MarkdownPackageRenderer):
    """Renderer that raises for the named packages and renders the rest normally."""

    def __init__(self, fail_names: set[str]):
        super().__init__()
        self.fail_names = fail_names

    def render(self, package: Package, graph: PackageGraph) -> RenderedDocument:
        if package.name in self.fail_names:
            raise UnicodeError(f"corrupt description in {package.name}")
        return super().render(package, graph)


class FailingSink(InMemoryDocumentSink):
    """In-memory sink whose writes fail with OSError for the named identifiers."""

    def __init__(self, fail_identifiers: set[str]):
        super().__init__()
        self.fail_identifiers = fail_identifiers

    def write(self, document: RenderedDocument) -> None:
        if document.identifier in self.fail_identifiers:
            raise OSError(28, "No space left on device")
        super().write(document)


class ReadOnlySink(DocumentSinkInterface):
    """Sink that refuses every write."""

    def write(self, document: RenderedDocument) -> None:
        raise PermissionError(13, "Permission denied", document.path)

    def write_text(self, path: str, text: str) -> None:
        raise PermissionError(13, "Permission denied", path)


# --- Fixtures ---


@pytest.fixture
def sample_records() -> list[dict[str, Any]]:
    """Provide a fresh copy of the sample record set."""
    return [dict(record) for record in SAMPLE_RECORDS]


@pytest.fixture
def sample_graph(sample_records) -> PackageGraph:
    """Provide the graph built from the sample records."""
    return graph_from_records(sample_records)


@pytest.fixture
def memory_sink() -> InMemoryDocumentSink:
    """Provide a fresh in-memory sink."""
    return InMemoryDocumentSink()
