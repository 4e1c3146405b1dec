"""Exception types and failure records for the vault pipeline.

Only `FatalIngestionError` aborts a run. The per-package errors
(`MalformedRecord`, `RenderFailure`, `SinkWriteFailure`) are caught where they
occur, turned into `FailureRecord` entries and summarized at the end.
"""

from typing import Literal

from pydantic import BaseModel, Field

FailureStage = Literal["normalize", "render", "write"]


class VaultError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(VaultError):
    """Raised when the configuration file cannot be read or is invalid."""


class FatalIngestionError(VaultError):
    """The record source is unavailable or unparsable as a whole."""


class MalformedRecord(VaultError):
    """A single raw record failed normalization.

    Attributes:
        field: Name of the field that failed validation.
        record_name: The record's raw name (or attribute path), if any.
        position: The record's raw source position, if any.
    """

    def __init__(self, message: str, *, field: str, record_name: str | None = None, position: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.record_name = record_name
        self.position = position

    def __str__(self) -> str:
        subject = self.record_name or "<unnamed record>"
        where = f" at {self.position}" if self.position else ""
        return f"{subject}{where}: field {self.field!r}: {self.message}"


class RenderFailure(VaultError):
    """A package could not be rendered into a document body."""

    def __init__(self, identifier: str, message: str):
        super().__init__(f"{identifier}: {message}")
        self.identifier = identifier
        self.message = message


class SinkWriteFailure(VaultError):
    """A rendered document could not be written to the sink."""

    def __init__(self, identifier: str, path: str, message: str):
        super().__init__(f"{identifier}: cannot write {path}: {message}")
        self.identifier = identifier
        self.path = path
        self.message = message


class FailureRecord(BaseModel, frozen=True):
    """One per-package failure, kept for the run summary."""

    stage: FailureStage = Field(description="Pipeline stage where the failure happened.")
    subject: str = Field(description="Record name/attribute or package identifier.")
    message: str = Field(description="Human-readable failure description.")
    field: str | None = Field(default=None, description="Failing field, for malformed records.")

    @classmethod
    def from_malformed(cls, error: MalformedRecord) -> "FailureRecord":
        return cls(
            stage="normalize",
            subject=error.record_name or "<unnamed record>",
            message=str(error),
            field=error.field,
        )

    @classmethod
    def from_render(cls, error: RenderFailure) -> "FailureRecord":
        return cls(stage="render", subject=error.identifier, message=error.message)

    @classmethod
    def from_write(cls, error: SinkWriteFailure) -> "FailureRecord":
        return cls(stage="write", subject=error.identifier, message=str(error))
