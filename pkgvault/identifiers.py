"""Stable, filesystem-safe, collision-free package identifiers.

An identifier is the file stem of a package's note, so it must be

- **stable**: the same input set yields byte-identical identifiers on every
  run, independent of input order, so vault diffs stay small;
- **safe**: only lowercase ``[a-z0-9._+-]``, bounded length;
- **unique**: no two packages in a run share one.

The candidate is a short content hash of (name, version, source position)
followed by a sanitized ``name-version``. Packages that still share a
candidate (identical name, version and position with differing metadata, or a
hash collision) are ordered by a total order and disambiguated with a numeric
suffix.
"""

import hashlib
import logging
import re
from typing import Iterable

from pkgschema.package import Package
from pkgvault.config import DEFAULT_MAX_IDENTIFIER_LENGTH

logger = logging.getLogger(__name__)

MAX_IDENTIFIER_LENGTH = DEFAULT_MAX_IDENTIFIER_LENGTH
HASH_LENGTH = 8

_UNSAFE = re.compile(r"[^a-z0-9._+-]+")
_DASHES = re.compile(r"-{2,}")


def sanitize(text: str, max_length: int, fallback: str = "package") -> str:
    """Lowercase `text`, replace unsafe characters with ``-`` and truncate.

    Runs of dashes collapse to one and leading/trailing dashes and dots are
    removed, so the result never starts with ``.`` (hidden files) and never
    contains path separators. Returns `fallback` if nothing survives.
    """
    cleaned = _DASHES.sub("-", _UNSAFE.sub("-", text.lower()))
    cleaned = cleaned[:max_length].strip("-.")
    return cleaned or fallback


def content_hash(package: Package) -> str:
    """Short hex digest of the package's name, version and source position."""
    position = str(package.source_position) if package.source_position is not None else ""
    digest = hashlib.sha256("\0".join((package.name, package.version, position)).encode("utf-8"))
    return digest.hexdigest()[:HASH_LENGTH]


def candidate_identifier(package: Package, max_length: int = MAX_IDENTIFIER_LENGTH) -> str:
    """Identifier a package gets when nothing collides with it."""
    prefix = content_hash(package)
    # room for "-" plus a collision suffix such as "-12"
    room = max_length - len(prefix) - 1 - 4
    return f"{prefix}-{sanitize(package.full_name, room)}"


def suffixed_identifier(candidate: str, suffix: int, max_length: int = MAX_IDENTIFIER_LENGTH) -> str:
    """``<candidate>-<suffix>``, shortening the name part when the suffix would overflow `max_length`.

    The hash prefix is never shortened.
    """
    tail = f"-{suffix}"
    overflow = len(candidate) + len(tail) - max_length
    if overflow > 0:
        floor = HASH_LENGTH + 2
        candidate = candidate[: max(floor, len(candidate) - overflow)].rstrip("-.")
    return f"{candidate}{tail}"


def collision_order_key(package: Package) -> tuple[str, str, str, str]:
    """Total order over packages: name, version, source position, then all remaining fields."""
    position = str(package.source_position) if package.source_position is not None else ""
    return (
        package.name,
        package.version,
        position,
        package.model_dump_json(exclude={"identifier"}),
    )


def allocate_identifiers(packages: Iterable[Package], max_length: int = MAX_IDENTIFIER_LENGTH) -> list[Package]:
    """Assign every package a unique identifier.

    Args:
        packages: Normalized packages; any existing identifier is replaced.
        max_length: Upper bound on identifier length.

    Returns:
        Identified copies of the packages, sorted by identifier.
    """
    if max_length < HASH_LENGTH + 16:
        raise ValueError(f"max_length must be at least {HASH_LENGTH + 16}, got {max_length}")

    groups: dict[str, list[Package]] = {}
    for package in packages:
        groups.setdefault(candidate_identifier(package, max_length), []).append(package)

    taken: set[str] = set(groups)
    identified: list[Package] = []
    for candidate in sorted(groups):
        members = sorted(groups[candidate], key=collision_order_key)
        identified.append(members[0].model_copy(update={"identifier": candidate}))
        suffix = 1
        for package in members[1:]:
            suffix += 1
            identifier = suffixed_identifier(candidate, suffix, max_length)
            while identifier in taken:
                suffix += 1
                identifier = suffixed_identifier(candidate, suffix, max_length)
            taken.add(identifier)
            logger.debug("Identifier collision on %s: %s assigned %s", candidate, package.full_name, identifier)
            identified.append(package.model_copy(update={"identifier": identifier}))

    identified.sort(key=lambda p: p.identifier)
    return identified


def select_packages(packages: Iterable[Package], limit: int = 0) -> list[Package]:
    """Deterministic first-N subset in identifier order; `limit` 0 keeps all."""
    if limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")
    ordered = sorted(packages, key=lambda p: p.identifier or "")
    return ordered[:limit] if limit else ordered
