"""
Package Vault Schema - Base Models and Interfaces

This package contains only Pydantic models and ABC interfaces with no
functional code. It defines:

- Package, source position and dependency reference models
- Dependency edge model
- Rendered document model
- Statistics model
- Document sink interface

These are used by pkgvault (the pipeline) and by anything that consumes its
output.
"""

from pkgschema.document import RenderedDocument
from pkgschema.edge import DependencyEdge
from pkgschema.package import DependencyKind, DependencyRef, Package, SourcePosition
from pkgschema.sink import DocumentSinkInterface
from pkgschema.statistics import Statistics, StatisticsCategory

__all__ = [
    "DependencyEdge",
    "DependencyKind",
    "DependencyRef",
    "DocumentSinkInterface",
    "Package",
    "RenderedDocument",
    "SourcePosition",
    "Statistics",
    "StatisticsCategory",
]

__version__ = "0.1.0"
