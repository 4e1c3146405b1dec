"""Output sink interface for rendered documents.

The sink is where the render pipeline hands finished notes. It decouples the
pipeline from the destination, enabling:

- **Filesystem sinks** that write the Obsidian vault
- **In-memory sinks** for testing and development

Thread safety: `write()` is called concurrently from render workers, each call
with a distinct document path. Implementations must tolerate concurrent
writes to distinct paths.
"""

from abc import ABC, abstractmethod

from pkgschema.document import RenderedDocument


class DocumentSinkInterface(ABC):
    """Abstract destination for rendered documents."""

    @abstractmethod
    def write(self, document: RenderedDocument) -> None:
        """Persist one document at `document.path`.

        Args:
            document: The rendered note to store.

        Raises:
            OSError: If the document cannot be written. The pipeline records
                the failure for this package and continues with the rest.
        """

    @abstractmethod
    def write_text(self, path: str, text: str) -> None:
        """Persist an auxiliary text file (index notes, JSON dumps).

        Args:
            path: Vault-relative POSIX path.
            text: Full file content.

        Raises:
            OSError: If the file cannot be written.
        """
