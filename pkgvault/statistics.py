"""Statistics aggregation as an order-independent reduction.

Each worker tallies its own slice of packages into a `StatisticsTally`;
tallies combine with `merge`, which is commutative and associative, so the
final `Statistics` is identical for any partitioning and any completion order.
No counter is ever shared between threads.
"""

from collections import Counter
from typing import Iterable

from pydantic import BaseModel, Field

from pkgschema.package import Package
from pkgschema.statistics import Statistics

_CATEGORIES = ("maintainer", "license", "output")


def _merge_counts(a: dict[str, int], b: dict[str, int]) -> dict[str, int]:
    merged = Counter(a)
    merged.update(b)
    return dict(merged)


def _merge_first_seen(a: dict[str, str], b: dict[str, str]) -> dict[str, str]:
    merged = dict(a)
    for token, identifier in b.items():
        if token not in merged or identifier < merged[token]:
            merged[token] = identifier
    return merged


class StatisticsTally(BaseModel, frozen=True):
    """Partial counts over some subset of packages."""

    packages: int = 0
    maintainer_pairs: int = 0
    maintainers: dict[str, int] = Field(default_factory=dict)
    licenses: dict[str, int] = Field(default_factory=dict)
    outputs: dict[str, int] = Field(default_factory=dict)
    first_seen: dict[str, dict[str, str]] = Field(default_factory=dict)

    @classmethod
    def tally(cls, packages: Iterable[Package]) -> "StatisticsTally":
        """Count one slice of packages.

        Each distinct token is counted once per package, so a package listing
        the same license twice still contributes one to that license.
        """
        count = 0
        pairs = 0
        counters = {category: Counter() for category in _CATEGORIES}
        first_seen: dict[str, dict[str, str]] = {category: {} for category in _CATEGORIES}
        for package in packages:
            count += 1
            pairs += len(package.maintainers)
            identifier = package.identifier or ""
            tokens = {
                "maintainer": set(package.maintainers),
                "license": set(package.license),
                "output": set(package.outputs),
            }
            for category, values in tokens.items():
                counters[category].update(values)
                seen = first_seen[category]
                for token in values:
                    if token not in seen or identifier < seen[token]:
                        seen[token] = identifier
        return cls(
            packages=count,
            maintainer_pairs=pairs,
            maintainers=dict(counters["maintainer"]),
            licenses=dict(counters["license"]),
            outputs=dict(counters["output"]),
            first_seen=first_seen,
        )

    def merge(self, other: "StatisticsTally") -> "StatisticsTally":
        """Combine two tallies into a new one."""
        return StatisticsTally(
            packages=self.packages + other.packages,
            maintainer_pairs=self.maintainer_pairs + other.maintainer_pairs,
            maintainers=_merge_counts(self.maintainers, other.maintainers),
            licenses=_merge_counts(self.licenses, other.licenses),
            outputs=_merge_counts(self.outputs, other.outputs),
            first_seen={
                category: _merge_first_seen(self.first_seen.get(category, {}), other.first_seen.get(category, {}))
                for category in _CATEGORIES
            },
        )

    def finalize(self) -> Statistics:
        """Freeze the tally into `Statistics`, ordering every mapping by token."""
        return Statistics(
            total_packages=self.packages,
            total_maintainers=len(self.maintainers),
            total_licenses=len(self.licenses),
            total_outputs=len(self.outputs),
            maintainer_pairs=self.maintainer_pairs,
            per_maintainer=dict(sorted(self.maintainers.items())),
            per_license=dict(sorted(self.licenses.items())),
            per_output=dict(sorted(self.outputs.items())),
            first_seen={
                category: dict(sorted(self.first_seen.get(category, {}).items())) for category in _CATEGORIES
            },
        )


def merge_tallies(tallies: Iterable[StatisticsTally]) -> StatisticsTally:
    result = StatisticsTally()
    for tally in tallies:
        result = result.merge(tally)
    return result


def partition(items: list, parts: int) -> list[list]:
    """Split `items` into at most `parts` contiguous, non-empty slices of near-equal size."""
    if parts < 1:
        raise ValueError(f"parts must be >= 1, got {parts}")
    parts = min(parts, len(items)) or 1
    size, extra = divmod(len(items), parts)
    slices: list[list] = []
    start = 0
    for i in range(parts):
        end = start + size + (1 if i < extra else 0)
        slices.append(items[start:end])
        start = end
    return [s for s in slices if s]


def aggregate_statistics(packages: Iterable[Package], partitions: int = 1) -> Statistics:
    """Compute global statistics over a node set.

    Args:
        packages: The graph's packages (a `PackageGraph` iterates its nodes).
        partitions: Number of partial tallies to reduce; the result does not
            depend on it.
    """
    items = list(packages)
    return merge_tallies(StatisticsTally.tally(chunk) for chunk in partition(items, partitions)).finalize()
