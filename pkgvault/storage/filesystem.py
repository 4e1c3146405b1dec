"""Filesystem document sink writing the vault directory."""

from pathlib import Path, PurePosixPath

from pkgschema.document import RenderedDocument
from pkgschema.sink import DocumentSinkInterface


class FilesystemDocumentSink(DocumentSinkInterface):
    """Write documents below a root directory.

    Each call writes one distinct file and shares no state with other calls,
    so concurrent writes from render workers need no locking. Files are
    written as UTF-8 with ``\\n`` line endings on every platform, keeping the
    vault byte-identical across runs and hosts.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Path escapes the vault: {path!r}")
        return self.root.joinpath(*relative.parts)

    def write(self, document: RenderedDocument) -> None:
        self.write_text(document.path, document.body)

    def write_text(self, path: str, text: str) -> None:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
