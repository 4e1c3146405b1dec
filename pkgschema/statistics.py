"""Aggregate statistics over the package graph."""

from typing import Literal

from pydantic import BaseModel, Field

StatisticsCategory = Literal["maintainer", "license", "output"]


class Statistics(BaseModel, frozen=True):
    """Global counts computed once from the finished graph.

    The per-token mappings are ordered lexicographically by token so that the
    serialized form is stable. `first_seen` maps each category to the smallest
    package identifier carrying each token; it breaks ranking ties.
    """

    total_packages: int = Field(default=0, ge=0)
    total_maintainers: int = Field(default=0, ge=0, description="Distinct maintainer handles.")
    total_licenses: int = Field(default=0, ge=0, description="Distinct license tokens.")
    total_outputs: int = Field(default=0, ge=0, description="Distinct output kinds.")
    maintainer_pairs: int = Field(default=0, ge=0, description="Number of (package, maintainer) pairs.")
    per_maintainer: dict[str, int] = Field(default_factory=dict)
    per_license: dict[str, int] = Field(default_factory=dict)
    per_output: dict[str, int] = Field(default_factory=dict)
    first_seen: dict[str, dict[str, str]] = Field(default_factory=dict)

    def counts(self, category: StatisticsCategory) -> dict[str, int]:
        if category == "maintainer":
            return self.per_maintainer
        if category == "license":
            return self.per_license
        if category == "output":
            return self.per_output
        raise ValueError(f"Unknown statistics category {category!r}")

    def ranked(self, category: StatisticsCategory, limit: int | None = None) -> list[tuple[str, int]]:
        """Return (token, count) pairs, most frequent first.

        Ties are ordered by token, then by the token's first-seen package
        identifier.
        """
        seen = self.first_seen.get(category, {})
        items = sorted(
            self.counts(category).items(),
            key=lambda item: (-item[1], item[0], seen.get(item[0], "")),
        )
        if limit is not None:
            items = items[:limit]
        return items
