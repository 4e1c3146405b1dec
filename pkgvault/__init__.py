"""
Package Vault - Cross-linked notes from a package-set evaluation.

Turns the package records of one evaluation (name, version, licenses,
maintainers, outputs, dependencies) into an Obsidian vault: one Markdown note
per package with wikilinks to its dependencies, plus aggregate statistics.

Pipeline stages:

    records -> normalize -> allocate identifiers -> build graph
            -> {render in parallel, aggregate statistics} -> assemble vault

    from pkgvault import VaultOrchestrator, VaultConfig
    from pkgvault.sources import JsonRecordSource
    from pkgvault.storage import FilesystemDocumentSink

    result = VaultOrchestrator(
        source=JsonRecordSource("packages-raw.json"),
        sink=FilesystemDocumentSink(Path("nixpkgs-vault")),
        config=VaultConfig(threads=8),
    ).run()
"""

__version__ = "0.1.0"

from pkgvault.config import VaultConfig, load_config
from pkgvault.errors import (
    ConfigError,
    FailureRecord,
    FatalIngestionError,
    MalformedRecord,
    RenderFailure,
    SinkWriteFailure,
    VaultError,
)
from pkgvault.graph import PackageGraph, build_graph
from pkgvault.identifiers import allocate_identifiers, select_packages
from pkgvault.normalize import normalize_record, normalize_records
from pkgvault.orchestrator import RunResult, VaultOrchestrator
from pkgvault.statistics import StatisticsTally, aggregate_statistics

__all__ = [
    "ConfigError",
    "FailureRecord",
    "FatalIngestionError",
    "MalformedRecord",
    "PackageGraph",
    "RenderFailure",
    "RunResult",
    "SinkWriteFailure",
    "StatisticsTally",
    "VaultConfig",
    "VaultError",
    "VaultOrchestrator",
    "aggregate_statistics",
    "allocate_identifiers",
    "build_graph",
    "load_config",
    "normalize_record",
    "normalize_records",
    "select_packages",
]
