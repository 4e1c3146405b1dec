"""Document sink implementations (filesystem vault and in-memory)."""

from pkgvault.storage.filesystem import FilesystemDocumentSink
from pkgvault.storage.memory import InMemoryDocumentSink

__all__ = [
    "FilesystemDocumentSink",
    "InMemoryDocumentSink",
]
