"""Rendered note representation.

A `RenderedDocument` is the transient output of rendering one package: the
Markdown body plus the vault-relative path it should be written to. It is
produced and consumed once and carries no shared state.
"""

from pydantic import BaseModel, Field, field_validator


class RenderedDocument(BaseModel, frozen=True):
    """Markdown note for one package."""

    identifier: str = Field(description="Identifier of the rendered package.")
    path: str = Field(description="Vault-relative POSIX path, e.g. packages/<identifier>.md.")
    body: str = Field(description="Full note text, frontmatter included.")

    @field_validator("path")
    @classmethod
    def path_must_be_relative(cls, value: str) -> str:
        if not value or value.startswith("/") or ".." in value.split("/"):
            raise ValueError(f"document path must be a relative path inside the vault: {value!r}")
        return value
