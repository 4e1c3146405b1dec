"""Dependency edges of the package graph.

An edge is a back-reference from one package to another by identifier; it
never owns the target. A dependency key that does not resolve to any package
in the processed set is kept as an *external* edge (``target is None``) so it
can still be rendered, as plain text rather than a link.
"""

from pydantic import BaseModel, Field

from pkgschema.package import DependencyKind


class DependencyEdge(BaseModel, frozen=True):
    """A resolved (or external) dependency of one package.

    Self-loops (``source == target``) and repeated edges between the same
    pair are legal and preserved.
    """

    source: str = Field(description="Identifier of the depending package.")
    target: str | None = Field(default=None, description="Identifier of the dependency, None if external.")
    key: str = Field(description="Raw dependency key as given by the source.")
    kind: DependencyKind = Field(default=DependencyKind.GENERIC, description="Kind of input.")

    @property
    def is_external(self) -> bool:
        return self.target is None
