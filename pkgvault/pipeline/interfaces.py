"""Pipeline interface definitions for record ingestion and document rendering.

The pipeline components are pluggable:

- **RecordSourceInterface** supplies the raw package records of one
  evaluation (a JSON dump, a subprocess, a test fixture, ...)
- **DocumentRendererInterface** turns one package plus read-only graph
  lookups into a `RenderedDocument`

Typical flow:
    1. RecordSourceInterface.load() yields the raw record set
    2. The normalizer, identifier allocator and graph builder produce a graph
    3. DocumentRendererInterface.render() runs once per package, in parallel
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from pkgschema.document import RenderedDocument
from pkgschema.package import Package

if TYPE_CHECKING:
    from pkgvault.graph import PackageGraph


class RecordSourceInterface(ABC):
    """Supply the raw records of one package-set evaluation."""

    @abstractmethod
    def load(self) -> Sequence[Any] | Mapping[str, Any]:
        """Return the raw records.

        Returns:
            Either a list of records or a mapping from attribute path to
            record.

        Raises:
            FatalIngestionError: If the source is unavailable or cannot be
                parsed as a whole.
        """


class DocumentRendererInterface(ABC):
    """Render one package into a note.

    Implementations are called concurrently from several worker threads with
    the same graph. They must not keep mutable state between calls.
    """

    @abstractmethod
    def render(self, package: Package, graph: "PackageGraph") -> RenderedDocument:
        """Render a package.

        Args:
            package: The package to render; always a node of `graph`.
            graph: The finished, read-only package graph, used for one-hop
                lookups of dependency targets.

        Returns:
            The rendered document.
        """
