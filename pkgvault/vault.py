"""Vault assembly: the run-level files written next to the package notes.

The package notes themselves are written by the render pipeline. This module
writes everything derived from the graph as a whole:

- ``packages.json``: every package with all fields, identifier order
- ``statistics.json``: the `Statistics` model
- ``Statistics.md``: ranked tables for browsing
- ``maintainers/<handle>.md``: one index note per maintainer, so the
  maintainer links in package notes resolve

The static template (``README.md``, ``.obsidian/``) is not produced here.
"""

import json
from typing import Any

import yaml

from pkgschema.sink import DocumentSinkInterface
from pkgschema.statistics import Statistics, StatisticsCategory
from pkgvault.errors import FailureRecord
from pkgvault.graph import PackageGraph
from pkgvault.logging import get_logger
from pkgvault.pipeline.render import MAINTAINERS_DIR, maintainer_note_name, tag, wikilink

logger = get_logger(__name__)

PACKAGES_DUMP = "packages.json"
STATISTICS_JSON = "statistics.json"
STATISTICS_NOTE = "Statistics.md"
TOP_N = 50


def _dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def packages_dump(graph: PackageGraph) -> str:
    """Serialize every package of the graph, identifier order, all fields."""
    return _dump_json([package.model_dump(mode="json") for package in graph.packages()])


def statistics_note(statistics: Statistics, top: int = TOP_N) -> str:
    lines = [
        "---",
        "tags:",
        "  - statistics",
        "---",
        "# Statistics",
        "",
        f"- Packages: {statistics.total_packages}",
        f"- Maintainers: {statistics.total_maintainers}",
        f"- Licenses: {statistics.total_licenses}",
        f"- Output kinds: {statistics.total_outputs}",
        f"- Package/maintainer pairs: {statistics.maintainer_pairs}",
        "",
    ]
    sections: list[tuple[str, StatisticsCategory]] = [
        ("Maintainers", "maintainer"),
        ("Licenses", "license"),
        ("Outputs", "output"),
    ]
    for title, category in sections:
        lines += [f"## {title}", "", "| Rank | Name | Packages |", "| ---: | --- | ---: |"]
        for rank, (token, count) in enumerate(statistics.ranked(category, limit=top), start=1):
            if category == "maintainer":
                label = wikilink(f"{MAINTAINERS_DIR}/{maintainer_note_name(token)}", token)
            else:
                label = f"#{tag(category, token)}"
            lines.append(f"| {rank} | {label} | {count} |")
        lines.append("")
    return "\n".join(lines)


def maintainer_notes(graph: PackageGraph) -> dict[str, str]:
    """Build one note per maintainer, keyed by vault-relative path.

    Handles that sanitize to the same file name share one note.
    """
    members: dict[str, dict[str, list[tuple[str, str]]]] = {}
    for package in graph.packages():
        for handle in package.maintainers:
            note = members.setdefault(maintainer_note_name(handle), {})
            note.setdefault(handle, []).append((package.identifier, package.display_name))

    notes: dict[str, str] = {}
    for name in sorted(members):
        handles = sorted(members[name])
        packages = sorted({entry for handle in handles for entry in members[name][handle]})
        front = yaml.safe_dump(
            {"handles": handles, "packages": len(packages), "tags": [tag("maintainer", h) for h in handles]},
            sort_keys=False,
            allow_unicode=True,
        )
        body = [f"---\n{front}---", f"# {', '.join(handles)}", ""]
        body += [f"- {wikilink(identifier, label)}" for identifier, label in packages]
        notes[f"{MAINTAINERS_DIR}/{name}.md"] = "\n".join(body) + "\n"
    return notes


class VaultAssembler:
    """Write the run-level vault files through a sink."""

    def __init__(self, sink: DocumentSinkInterface):
        self.sink = sink

    def _write(self, path: str, text: str, failures: list[FailureRecord]) -> None:
        try:
            self.sink.write_text(path, text)
        except OSError as e:
            logger.warning("Write failed for %s: %s", path, e)
            failures.append(FailureRecord(stage="write", subject=path, message=str(e)))

    def assemble(self, graph: PackageGraph, statistics: Statistics) -> list[FailureRecord]:
        """Write the dump, the statistics files and the maintainer notes.

        Returns:
            One failure record per file that could not be written.
        """
        failures: list[FailureRecord] = []
        self._write(PACKAGES_DUMP, packages_dump(graph), failures)
        self._write(STATISTICS_JSON, _dump_json(statistics.model_dump(mode="json")), failures)
        self._write(STATISTICS_NOTE, statistics_note(statistics), failures)
        for path, text in maintainer_notes(graph).items():
            self._write(path, text, failures)
        return failures
