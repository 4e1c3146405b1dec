"""Package model for the vault pipeline.

This module defines the canonical, validated representation of one package
record:

- **Package**: A normalized package (graph node)
- **SourcePosition**: Where the package is defined in the repository tree
- **DependencyRef**: A raw, unresolved dependency key with its kind
- **DependencyKind**: Enum distinguishing build/runtime/propagated inputs

**Package Lifecycle:**

1. **Normalization**: A raw record is validated and converted into a
   `Package` with `identifier=None`.

2. **Identification**: The identifier allocator derives a copy carrying a
   stable, collision-free `identifier`.

3. **Linking**: The graph builder resolves each `DependencyRef` against the
   identified packages, producing edges.

Packages are immutable (frozen Pydantic models) so they can be shared by
every render worker without synchronization.
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class DependencyKind(str, Enum):
    """How a dependency is consumed by the package that declares it."""

    BUILD = "build"
    """Needed only while building (buildInputs, nativeBuildInputs)."""

    RUNTIME = "runtime"
    """Needed when the built package runs."""

    PROPAGATED = "propagated"
    """Propagated to everything that depends on this package."""

    GENERIC = "generic"
    """The source did not say which kind of input this is."""


class SourcePosition(BaseModel, frozen=True):
    """File and line where a package is defined, relative to the repository root."""

    path: str = Field(description="Repository-relative path of the defining file.")
    line: int | None = Field(default=None, ge=1, description="1-based line number, if known.")

    def __str__(self) -> str:
        if self.line is None:
            return self.path
        return f"{self.path}:{self.line}"


class DependencyRef(BaseModel, frozen=True):
    """A dependency key exactly as the source gave it, before resolution."""

    key: str = Field(description="Raw dependency key (name, name@version, attribute path, ...).")
    kind: DependencyKind = Field(default=DependencyKind.GENERIC, description="Kind of input.")

    @field_validator("key")
    @classmethod
    def key_must_be_nonempty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("dependency key must be a non-empty string")
        return value


class Package(BaseModel):
    """Canonical package entity (a node of the package graph).

    Created once by the normalizer from one raw record and never mutated.
    The identifier allocator produces the identified copy through
    `package.model_copy(update={"identifier": ...})`.

    Key fields:
        - `name`: Package name, required and non-empty
        - `version`: Version string, empty when unknown
        - `identifier`: Stable file identifier, None until allocated
        - `maintainers`: Handles in source order
        - `dependency_refs`: Unresolved dependency keys in source order
    """

    model_config = {"frozen": True}

    name: str = Field(description="Package name (pname for nix records).")
    version: str = Field(default="", description="Version string, empty when unknown.")
    identifier: str | None = Field(default=None, description="Unique, filesystem-safe identifier.")
    attribute: str = Field(default="", description="Attribute path the record was keyed by.")
    license: tuple[str, ...] = Field(default=(), description="Distinct license tokens, sorted.")
    maintainers: tuple[str, ...] = Field(default=(), description="Maintainer handles in source order.")
    short_description: str = Field(default="", description="One-line description.")
    long_description: str = Field(default="", description="Long description.")
    homepage: str = Field(default="", description="Upstream homepage URL.")
    platforms: tuple[str, ...] = Field(default=(), description="Supported platforms, sorted.")
    outputs: tuple[str, ...] = Field(default=(), description="Named build outputs, sorted.")
    derivation_path: str = Field(default="", description="Store path of the derivation.")
    source_position: SourcePosition | None = Field(default=None, description="Where the package is defined.")
    dependency_refs: tuple[DependencyRef, ...] = Field(default=(), description="Raw dependency keys in source order.")

    @field_validator("name")
    @classmethod
    def name_must_be_nonempty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must be a non-empty string")
        return value

    @property
    def full_name(self) -> str:
        """`name-version`, or just `name` when the version is unknown."""
        if self.version:
            return f"{self.name}-{self.version}"
        return self.name

    @property
    def display_name(self) -> str:
        if self.version:
            return f"{self.name} {self.version}"
        return self.name
