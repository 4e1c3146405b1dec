"""Rendering pipeline components.

This package provides the pluggable interfaces and the parallel render
machinery:

- **RecordSourceInterface** / **DocumentRendererInterface**: extension points
- **MarkdownPackageRenderer**: Obsidian-flavoured Markdown notes
- **ParallelRenderPipeline**: bounded thread pool with per-partition
  statistics tallies
"""

from pkgvault.pipeline.interfaces import DocumentRendererInterface, RecordSourceInterface
from pkgvault.pipeline.parallel import ParallelRenderPipeline, RenderReport, resolve_workers
from pkgvault.pipeline.render import MarkdownPackageRenderer, RenderContext

__all__ = [
    "DocumentRendererInterface",
    "MarkdownPackageRenderer",
    "ParallelRenderPipeline",
    "RecordSourceInterface",
    "RenderContext",
    "RenderReport",
    "resolve_workers",
]
