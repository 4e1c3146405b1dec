"""Markdown rendering of package notes.

Each note is an Obsidian-flavoured Markdown file: YAML frontmatter (read by
Obsidian as note properties) followed by one section per package aspect.
Every section is always present; an empty one holds a placeholder so notes
have a uniform shape.

Cross-links use wikilink syntax ``[[<identifier>|<name>]]``. Only resolved
edges become links; external edges are rendered as inline code, so a note
never contains a dangling link.
"""

import hashlib
import re

import yaml
from pydantic import BaseModel, Field

from pkgschema.document import RenderedDocument
from pkgschema.edge import DependencyEdge
from pkgschema.package import Package
from pkgvault.graph import PackageGraph
from pkgvault.identifiers import sanitize
from pkgvault.pipeline.interfaces import DocumentRendererInterface

PACKAGES_DIR = "packages"
MAINTAINERS_DIR = "maintainers"
EMPTY_SECTION = "_None_"

_TAG_UNSAFE = re.compile(r"[^a-z0-9_/-]+")
_LINK_UNSAFE = re.compile(r"[\[\]|#^]")


def document_path(identifier: str) -> str:
    return f"{PACKAGES_DIR}/{identifier}.md"


def maintainer_note_name(handle: str) -> str:
    """File stem of a maintainer's index note.

    Handles with no safe characters at all get a stem derived from their hash.
    """
    stem = sanitize(handle, 64, fallback="")
    if not stem:
        stem = "maintainer-" + hashlib.sha256(handle.encode("utf-8")).hexdigest()[:8]
    return stem


def code_span(text: str) -> str:
    """Inline code span whose fence is longer than any backtick run in `text`."""
    longest = max((len(run) for run in re.findall(r"`+", text)), default=0)
    fence = "`" * (longest + 1)
    if longest:
        text = f" {text} "
    return f"{fence}{text}{fence}"


def tag(prefix: str, token: str) -> str:
    """Nested Obsidian tag such as ``license/gpl-3-0-or-later``."""
    body = _TAG_UNSAFE.sub("-", token.lower()).strip("-/") or "unknown"
    return f"{prefix}/{body}"


def package_tags(package: Package) -> list[str]:
    tags = [tag("license", token) for token in package.license]
    tags += [tag("maintainer", handle) for handle in package.maintainers]
    tags += [tag("output", output) for output in package.outputs]
    return list(dict.fromkeys(tags))


def wikilink(target: str, label: str) -> str:
    label = _LINK_UNSAFE.sub("", label).strip() or target
    return f"[[{target}|{label}]]"


class RenderContext(BaseModel, frozen=True):
    """Run-wide settings the renderer needs; shared read-only by all workers."""

    repository_url: str | None = Field(default=None, description="Browsable repository URL, no .git suffix.")
    revision: str = Field(default="", description="Revision source links point at.")

    def source_url(self, path: str, line: int | None) -> str | None:
        if not self.repository_url or not self.revision:
            return None
        url = f"{self.repository_url}/blob/{self.revision}/{path.lstrip('/')}"
        return f"{url}#L{line}" if line is not None else url


class MarkdownPackageRenderer(DocumentRendererInterface):
    """Render packages as Markdown notes with YAML frontmatter."""

    def __init__(self, context: RenderContext | None = None):
        self.context = context or RenderContext()

    def render(self, package: Package, graph: PackageGraph) -> RenderedDocument:
        if package.identifier is None:
            raise ValueError(f"Package {package.full_name!r} has no identifier")
        dependencies = graph.dependencies_of(package.identifier)
        dependents = graph.dependents_of(package.identifier)
        parts = [
            self.frontmatter(package),
            f"# {package.display_name}\n",
        ]
        if package.short_description:
            parts.append(f"> {package.short_description}\n")
        parts += [
            self._section("Description", [package.long_description] if package.long_description else []),
            self._section("Availability", self._availability(package), bullets=True),
            self._section("License", [f"{token} #{tag('license', token)}" for token in package.license], bullets=True),
            self._section(
                "Maintainers",
                [wikilink(f"{MAINTAINERS_DIR}/{maintainer_note_name(h)}", h) for h in package.maintainers],
                bullets=True,
            ),
            self._section("Build", self._build(package), bullets=True),
            self._section("Dependencies", [self._dependency_line(edge, graph) for edge in dependencies], bullets=True),
            self._section("Dependents", [self._dependent_line(edge, graph) for edge in dependents], bullets=True),
            self._section("Tags", [" ".join(f"#{t}" for t in package_tags(package))] if package_tags(package) else []),
        ]
        return RenderedDocument(
            identifier=package.identifier,
            path=document_path(package.identifier),
            body="\n".join(parts),
        )

    def frontmatter(self, package: Package) -> str:
        data = {
            "name": package.name,
            "version": package.version,
            "identifier": package.identifier,
            "attribute": package.attribute,
            "license": list(package.license),
            "maintainers": list(package.maintainers),
            "outputs": list(package.outputs),
            "platforms": list(package.platforms),
            "derivation": package.derivation_path,
            "position": str(package.source_position) if package.source_position else "",
            "tags": package_tags(package),
        }
        dumped = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
        return f"---\n{dumped}---\n"

    @staticmethod
    def _section(title: str, lines: list[str], bullets: bool = False) -> str:
        if not lines:
            return f"## {title}\n\n{EMPTY_SECTION}\n"
        if bullets:
            lines = [f"- {line}" for line in lines]
        return f"## {title}\n\n" + "\n".join(lines) + "\n"

    @staticmethod
    def _availability(package: Package) -> list[str]:
        lines = []
        if package.outputs:
            lines.append("Outputs: " + ", ".join(f"`{o}`" for o in package.outputs))
        if package.platforms:
            lines.append("Platforms: " + ", ".join(package.platforms))
        if package.homepage:
            lines.append(f"Homepage: <{package.homepage}>")
        return lines

    def _build(self, package: Package) -> list[str]:
        lines = []
        if package.attribute:
            lines.append(f"Attribute: {code_span(package.attribute)}")
        if package.derivation_path:
            lines.append(f"Derivation: `{package.derivation_path}`")
        position = package.source_position
        if position is not None:
            url = self.context.source_url(position.path, position.line)
            lines.append(f"Source: [{position}]({url})" if url else f"Source: `{position}`")
        return lines

    @staticmethod
    def _dependency_line(edge: DependencyEdge, graph: PackageGraph) -> str:
        target = graph.get(edge.target) if edge.target is not None else None
        if target is None:
            return f"{code_span(edge.key)} ({edge.kind.value}, external)"
        return f"{wikilink(edge.target, target.display_name)} ({edge.kind.value})"

    @staticmethod
    def _dependent_line(edge: DependencyEdge, graph: PackageGraph) -> str:
        source = graph.get(edge.source)
        label = source.display_name if source is not None else edge.source
        return f"{wikilink(edge.source, label)} ({edge.kind.value})"
