"""Parallel rendering of package notes over a bounded thread pool.

The package list is split into contiguous partitions which are submitted to a
`ThreadPoolExecutor`. Every partition task

- renders each of its packages against the shared, read-only graph,
- hands the document to the sink,
- tallies statistics for its packages into a private `StatisticsTally`.

The driver thread merges the partial tallies as partitions complete. Since
the merge is commutative and each task touches only its own packages, the
written files and the statistics do not depend on scheduling order.

A failure while rendering or writing one package is recorded and the batch
carries on; only an unexpected error outside the per-package guards aborts
the run.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Sequence

from pydantic import BaseModel, Field

from pkgschema.package import Package
from pkgschema.sink import DocumentSinkInterface
from pkgschema.statistics import Statistics
from pkgvault.errors import FailureRecord, RenderFailure, SinkWriteFailure
from pkgvault.graph import PackageGraph
from pkgvault.pipeline.interfaces import DocumentRendererInterface
from pkgvault.progress import ProgressTracker
from pkgvault.statistics import StatisticsTally, partition

logger = logging.getLogger(__name__)

PARTITIONS_PER_WORKER = 4


def resolve_workers(workers: int) -> int:
    """Worker count to use; 0 selects the number of available CPUs."""
    if workers < 0:
        raise ValueError(f"workers must be >= 0, got {workers}")
    if workers == 0:
        return os.cpu_count() or 1
    return workers


class PartitionResult(BaseModel, frozen=True):
    """What one partition task reports back to the driver."""

    processed: int = 0
    written: int = 0
    failures: tuple[FailureRecord, ...] = Field(default=())
    tally: StatisticsTally = Field(default_factory=StatisticsTally)


class RenderReport(BaseModel, frozen=True):
    """Outcome of one render run."""

    workers: int = Field(description="Worker threads used.")
    processed: int = Field(default=0, description="Packages attempted.")
    written: int = Field(default=0, description="Documents written to the sink.")
    failures: tuple[FailureRecord, ...] = Field(default=(), description="Render and write failures, by identifier.")
    statistics: Statistics = Field(default_factory=Statistics)

    @property
    def render_failures(self) -> int:
        return sum(1 for f in self.failures if f.stage == "render")

    @property
    def write_failures(self) -> int:
        return sum(1 for f in self.failures if f.stage == "write")


class ParallelRenderPipeline:
    """Render every package of a graph with a bounded pool of worker threads.

    Example:
        ```python
        pipeline = ParallelRenderPipeline(MarkdownPackageRenderer(), FilesystemDocumentSink(outdir), workers=8)
        report = pipeline.run(graph)
        ```
    """

    def __init__(
        self,
        renderer: DocumentRendererInterface,
        sink: DocumentSinkInterface,
        workers: int = 0,
        progress_interval: float | None = None,
    ):
        self.renderer = renderer
        self.sink = sink
        self.workers = resolve_workers(workers)
        self.progress_interval = progress_interval

    def render_partition(self, packages: Sequence[Package], graph: PackageGraph) -> PartitionResult:
        """Render, write and tally one partition. Runs on a worker thread."""
        failures: list[FailureRecord] = []
        written = 0
        for package in packages:
            identifier = package.identifier or package.full_name
            try:
                document = self.renderer.render(package, graph)
            except Exception as e:  # a renderer error is confined to its package
                failure = RenderFailure(identifier, f"{type(e).__name__}: {e}")
                logger.warning("Render failed for %s: %s", identifier, failure.message)
                failures.append(FailureRecord.from_render(failure))
                continue
            try:
                self.sink.write(document)
            except OSError as e:
                failure = SinkWriteFailure(identifier, document.path, str(e))
                logger.warning("Write failed for %s: %s", identifier, failure.message)
                failures.append(FailureRecord.from_write(failure))
                continue
            written += 1
        return PartitionResult(
            processed=len(packages),
            written=written,
            failures=tuple(failures),
            tally=StatisticsTally.tally(packages),
        )

    def run(self, graph: PackageGraph, packages: Sequence[Package] | None = None) -> RenderReport:
        """Render `packages` (default: the whole graph, identifier order).

        Args:
            graph: The finished, read-only package graph.
            packages: Optional subset to render; every entry must be a node
                of `graph`.

        Returns:
            A report with counts, failures and the merged statistics.
        """
        items = list(graph.packages() if packages is None else packages)
        for package in items:
            if package.identifier not in graph:
                raise ValueError(f"Package {package.full_name!r} is not a node of the graph")

        partitions = partition(items, self.workers * PARTITIONS_PER_WORKER)
        tracker = (
            ProgressTracker(total=len(items), report_interval=self.progress_interval)
            if self.progress_interval is not None
            else None
        )
        logger.info("Rendering %d packages with %d workers (%d partitions)", len(items), self.workers, len(partitions))

        total = StatisticsTally()
        processed = 0
        written = 0
        failures: list[FailureRecord] = []
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="render") as executor:
            futures = [executor.submit(self.render_partition, chunk, graph) for chunk in partitions]
            for future in as_completed(futures):
                result = future.result()
                total = total.merge(result.tally)
                processed += result.processed
                written += result.written
                failures.extend(result.failures)
                if tracker is not None:
                    tracker.increment(result.processed)

        if tracker is not None:
            tracker.report()
        failures.sort(key=lambda f: (f.subject, f.stage, f.message))
        return RenderReport(
            workers=self.workers,
            processed=processed,
            written=written,
            failures=tuple(failures),
            statistics=total.finalize(),
        )
