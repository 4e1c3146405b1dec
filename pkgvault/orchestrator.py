"""Top-level driver of one vault run.

The run has a strict barrier between its sequential and parallel halves:

    1. load raw records from the source
    2. normalize them (malformed records are skipped and recorded)
    3. allocate identifiers over the whole normalized set
    4. keep the first `limit` packages in identifier order
    5. build the package graph over the kept packages

Only once the graph is complete does the parallel half start:

    6. render every package over the worker pool, tallying statistics
    7. write packages.json, statistics and maintainer notes

Identifiers are allocated before the limit is applied, so a limited run
produces exactly the first N identifiers of the unlimited run. Dependencies
on packages outside the kept set become external edges.
"""

from pydantic import BaseModel, Field

from pkgschema.sink import DocumentSinkInterface
from pkgschema.statistics import Statistics
from pkgvault.config import VaultConfig
from pkgvault.errors import FailureRecord, FatalIngestionError
from pkgvault.graph import PackageGraph, build_graph
from pkgvault.identifiers import allocate_identifiers, select_packages
from pkgvault.logging import get_logger
from pkgvault.normalize import normalize_records
from pkgvault.pipeline.interfaces import DocumentRendererInterface, RecordSourceInterface
from pkgvault.pipeline.parallel import ParallelRenderPipeline
from pkgvault.pipeline.render import MarkdownPackageRenderer, RenderContext
from pkgvault.vault import VaultAssembler

logger = get_logger(__name__)


class RunResult(BaseModel, frozen=True):
    """Summary of one completed run."""

    records: int = Field(description="Raw records read from the source.")
    normalized: int = Field(description="Records that normalized into packages.")
    selected: int = Field(description="Packages kept after the limit.")
    written: int = Field(description="Package documents written.")
    external_edges: int = Field(default=0, description="Dependency edges that did not resolve.")
    workers: int = Field(description="Render worker threads used.")
    statistics: Statistics
    failures: tuple[FailureRecord, ...] = Field(default=())

    def failure_count(self, stage: str) -> int:
        return sum(1 for f in self.failures if f.stage == stage)

    def summary(self) -> str:
        return (
            f"{self.written}/{self.selected} documents written from {self.records} records "
            f"({self.failure_count('normalize')} malformed, {self.failure_count('render')} render failures, "
            f"{self.failure_count('write')} write failures, {self.external_edges} external dependencies)"
        )


class VaultOrchestrator:
    """Run the full pipeline from a record source into a document sink.

    Example:
        ```python
        orchestrator = VaultOrchestrator(
            source=JsonRecordSource("packages-raw.json"),
            sink=FilesystemDocumentSink(Path("nixpkgs-vault")),
            config=VaultConfig(threads=8),
        )
        result = orchestrator.run()
        ```
    """

    def __init__(
        self,
        source: RecordSourceInterface,
        sink: DocumentSinkInterface,
        config: VaultConfig | None = None,
        renderer: DocumentRendererInterface | None = None,
        show_progress: bool = False,
    ):
        self.source = source
        self.sink = sink
        self.config = config or VaultConfig()
        self.renderer = renderer or MarkdownPackageRenderer(
            RenderContext(repository_url=self.config.repository_url, revision=self.config.revision)
        )
        self.show_progress = show_progress

    def build(self) -> tuple[PackageGraph, int, tuple[FailureRecord, ...]]:
        """Run the sequential half: load, normalize, identify, select, link.

        Returns:
            The finished graph, the raw record count and the normalization
            failures.

        Raises:
            FatalIngestionError: If the source fails or no record normalizes.
        """
        records = self.source.load()
        normalized = normalize_records(records)
        for failure in normalized.failures:
            logger.warning("Skipping malformed record %s", failure.message)
        if not normalized.packages:
            raise FatalIngestionError(f"None of the {len(records)} records could be normalized")

        identified = allocate_identifiers(normalized.packages, max_length=self.config.max_identifier_length)
        selected = select_packages(identified, self.config.limit)
        if self.config.limit:
            logger.info("Limited to %d of %d packages", len(selected), len(identified))
        graph = build_graph(selected, diagnostics=self.config.diagnostics)
        return graph, len(records), normalized.failures

    def run(self) -> RunResult:
        graph, record_count, normalize_failures = self.build()

        pipeline = ParallelRenderPipeline(
            self.renderer,
            self.sink,
            workers=self.config.threads,
            progress_interval=self.config.progress_interval if self.show_progress else None,
        )
        report = pipeline.run(graph)
        assembly_failures = VaultAssembler(self.sink).assemble(graph, report.statistics)

        result = RunResult(
            records=record_count,
            normalized=record_count - len(normalize_failures),
            selected=len(graph),
            written=report.written,
            external_edges=len(graph.external_edges()),
            workers=report.workers,
            statistics=report.statistics,
            failures=normalize_failures + report.failures + tuple(assembly_failures),
        )
        logger.info("Run complete: %s", result.summary())
        logger.debug(result)
        return result
