"""In-memory document sink for testing and development.

Keeps every written file in a dictionary keyed by vault-relative path. Useful
for unit tests and for inspecting a render run without touching the
filesystem.

**Not recommended for full runs**: a complete package set produces tens of
thousands of notes, all of which would stay in RAM.
"""

import threading

from pkgschema.document import RenderedDocument
from pkgschema.sink import DocumentSinkInterface


class InMemoryDocumentSink(DocumentSinkInterface):
    """Dictionary-backed sink.

    Thread safety: writes go through a lock, so render workers can share one
    instance.

    Example:
        ```python
        sink = InMemoryDocumentSink()
        ParallelRenderPipeline(MarkdownPackageRenderer(), sink).run(graph)
        body = sink.files["packages/<identifier>.md"]
        ```
    """

    def __init__(self) -> None:
        self._files: dict[str, str] = {}
        self._lock = threading.Lock()

    def write(self, document: RenderedDocument) -> None:
        self.write_text(document.path, document.body)

    def write_text(self, path: str, text: str) -> None:
        with self._lock:
            self._files[path] = text

    @property
    def files(self) -> dict[str, str]:
        """Snapshot of everything written so far."""
        with self._lock:
            return dict(self._files)

    def documents(self, prefix: str = "packages/") -> dict[str, str]:
        """Written files under `prefix`, keyed by path."""
        return {path: text for path, text in self.files.items() if path.startswith(prefix)}
