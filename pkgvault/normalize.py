"""Record normalization: raw evaluation records to validated `Package` models.

Raw records come from a package-set evaluation and are loosely typed: the
same information may sit at the top level or under ``meta``, licenses may be
strings, mappings or lists, maintainers may be handles or mappings, and
outputs may be a list or a mapping of store paths. This module is the only
place that looks at untyped data. Everything downstream sees `Package`.

All functions here are pure and safe to call concurrently.
"""

import re
from typing import Any, Iterable, Mapping, Sequence

from pydantic import BaseModel, Field, ValidationError

from pkgschema.package import DependencyKind, DependencyRef, Package, SourcePosition
from pkgvault.errors import FailureRecord, MalformedRecord

DEFAULT_OUTPUTS: tuple[str, ...] = ("out",)

# Raw dependency fields, in the order their entries are appended to
# Package.dependency_refs.
DEPENDENCY_FIELDS: tuple[tuple[str, DependencyKind], ...] = (
    ("deps", DependencyKind.GENERIC),
    ("dependencies", DependencyKind.GENERIC),
    ("buildInputs", DependencyKind.BUILD),
    ("nativeBuildInputs", DependencyKind.BUILD),
    ("propagatedBuildInputs", DependencyKind.PROPAGATED),
    ("propagatedNativeBuildInputs", DependencyKind.PROPAGATED),
    ("runtimeInputs", DependencyKind.RUNTIME),
    ("runtimeDependencies", DependencyKind.RUNTIME),
)

_STORE_PREFIX = re.compile(r"^/nix/store/[0-9a-z]{32}-[^/]*/")

_LICENSE_KEYS = ("spdxId", "shortName", "fullName")
_MAINTAINER_KEYS = ("github", "githubId", "name", "email")


class NormalizationResult(BaseModel, frozen=True):
    """Packages that passed validation plus one failure per rejected record."""

    packages: tuple[Package, ...] = Field(default=())
    failures: tuple[FailureRecord, ...] = Field(default=())


def _dedupe_preserve_order(items: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for x in items:
        x = x.strip()
        if x and x not in seen:
            seen.add(x)
            out.append(x)
    return tuple(out)


def _lookup(raw: Mapping[str, Any], meta: Mapping[str, Any], key: str) -> Any:
    """Top-level value for `key`, falling back to the ``meta`` mapping."""
    value = raw.get(key)
    if value is None:
        value = meta.get(key)
    return value


class _RecordReader:
    """Field accessors for one raw record that raise `MalformedRecord` on bad types."""

    def __init__(self, raw: Mapping[str, Any], attribute: str):
        self.raw = raw
        meta = raw.get("meta")
        self.meta: Mapping[str, Any] = meta if isinstance(meta, Mapping) else {}
        self.attribute = attribute
        raw_name = raw.get("name")
        self.record_name = raw_name if isinstance(raw_name, str) and raw_name.strip() else (attribute or None)
        raw_position = _lookup(raw, self.meta, "position")
        self.raw_position = raw_position if isinstance(raw_position, str) else None

    def fail(self, field: str, message: str) -> MalformedRecord:
        return MalformedRecord(message, field=field, record_name=self.record_name, position=self.raw_position)

    def get(self, key: str) -> Any:
        return _lookup(self.raw, self.meta, key)

    def text(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            return ""
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise self.fail(key, f"expected a string, got {type(value).__name__}")
        return str(value).strip()

    def string_list(self, key: str) -> list[str]:
        value = self.get(key)
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if not isinstance(value, Sequence):
            raise self.fail(key, f"expected a list of strings, got {type(value).__name__}")
        items: list[str] = []
        for item in value:
            if not isinstance(item, str):
                raise self.fail(key, f"expected a list of strings, found {type(item).__name__}")
            items.append(item)
        return items

    def name_and_version(self) -> tuple[str, str]:
        version = self.text("version")
        pname = self.get("pname")
        if pname is not None:
            if not isinstance(pname, str) or not pname.strip():
                raise self.fail("name", "pname must be a non-empty string")
            return pname.strip(), version
        name = self.raw.get("name")
        if name is None:
            raise self.fail("name", "required field is missing")
        if not isinstance(name, str) or not name.strip():
            raise self.fail("name", "must be a non-empty string")
        name = name.strip()
        # nix records without pname carry the full "name-version"
        if version and name.endswith(f"-{version}") and len(name) > len(version) + 1:
            name = name[: -(len(version) + 1)]
        return name, version

    def licenses(self) -> tuple[str, ...]:
        value = self.get("license")
        tokens: list[str] = []
        for entry in value if isinstance(value, list) else [value]:
            if entry is None:
                continue
            if isinstance(entry, str):
                tokens.append(entry)
            elif isinstance(entry, Mapping):
                token = next((entry[k] for k in _LICENSE_KEYS if isinstance(entry.get(k), str) and entry[k].strip()), None)
                if token is None:
                    raise self.fail("license", "license mapping has no spdxId, shortName or fullName")
                tokens.append(token)
            else:
                raise self.fail("license", f"unsupported license entry of type {type(entry).__name__}")
        return tuple(sorted(set(_dedupe_preserve_order(tokens))))

    def maintainers(self) -> tuple[str, ...]:
        value = self.get("maintainers")
        if value is None:
            return ()
        if isinstance(value, (str, Mapping)):
            value = [value]
        if not isinstance(value, Sequence):
            raise self.fail("maintainers", f"expected a list, got {type(value).__name__}")
        handles: list[str] = []
        for entry in value:
            if isinstance(entry, str):
                handles.append(entry)
            elif isinstance(entry, Mapping):
                handle = next(
                    (str(entry[k]) for k in _MAINTAINER_KEYS if isinstance(entry.get(k), (str, int)) and str(entry[k]).strip()),
                    None,
                )
                if handle is None:
                    raise self.fail("maintainers", "maintainer mapping has no github, githubId, name or email")
                handles.append(handle)
            else:
                raise self.fail("maintainers", f"unsupported maintainer entry of type {type(entry).__name__}")
        return _dedupe_preserve_order(handles)

    def outputs(self) -> tuple[str, ...]:
        value = self.get("outputs")
        names: list[str] = []
        if isinstance(value, Mapping):
            names.extend(str(k) for k in value)
        elif value is not None:
            names.extend(self.string_list("outputs"))
        names.extend(self.string_list("outputsToInstall"))
        outputs = _dedupe_preserve_order(names)
        return tuple(sorted(outputs)) if outputs else DEFAULT_OUTPUTS

    def platforms(self) -> tuple[str, ...]:
        value = self.get("platforms")
        if value is None:
            return ()
        if not isinstance(value, Sequence) or isinstance(value, str):
            raise self.fail("platforms", f"expected a list, got {type(value).__name__}")
        # platform patterns (mappings) have no stable textual form
        return tuple(sorted(set(_dedupe_preserve_order(p for p in value if isinstance(p, str)))))

    def homepage(self) -> str:
        value = self.get("homepage")
        if isinstance(value, list):
            value = next((v for v in value if isinstance(v, str)), None)
        if value is None:
            return ""
        if not isinstance(value, str):
            raise self.fail("homepage", f"expected a string, got {type(value).__name__}")
        return value.strip()

    def source_position(self) -> SourcePosition | None:
        value = self.get("position")
        if value is None:
            return None
        if not isinstance(value, str):
            raise self.fail("position", f"expected 'path:line', got {type(value).__name__}")
        return parse_source_position(value)

    def dependency_refs(self) -> tuple[DependencyRef, ...]:
        refs: list[DependencyRef] = []
        for key, kind in DEPENDENCY_FIELDS:
            for dep in self.string_list(key):
                dep = dep.strip()
                if dep:
                    refs.append(DependencyRef(key=dep, kind=kind))
        return tuple(refs)


def parse_source_position(value: str) -> SourcePosition | None:
    """Parse ``"<path>:<line>"`` into a repository-relative `SourcePosition`.

    A leading ``/nix/store/<hash>-<name>/`` prefix is removed. A suffix that
    is not a positive line number is kept as part of the path.
    """
    value = value.strip()
    if not value:
        return None
    path, line = value, None
    head, sep, tail = value.rpartition(":")
    if sep and head and tail.isdigit() and int(tail) >= 1:
        path, line = head, int(tail)
    path = _STORE_PREFIX.sub("", path)
    return SourcePosition(path=path, line=line)


def normalize_record(raw: Any, attribute: str = "") -> Package:
    """Validate one raw record and convert it into a `Package`.

    Args:
        raw: The record as decoded from the evaluation output.
        attribute: Attribute path the record was keyed by, if any.

    Returns:
        The normalized package, with `identifier` still unset.

    Raises:
        MalformedRecord: If the record is not a mapping or a field fails
            validation. The error names the failing field.
    """
    if not isinstance(raw, Mapping):
        raise MalformedRecord(
            f"expected a mapping, got {type(raw).__name__}",
            field="<record>",
            record_name=attribute or None,
        )
    reader = _RecordReader(raw, attribute)
    name, version = reader.name_and_version()
    fields = dict(
        name=name,
        version=version,
        attribute=attribute or reader.text("attribute") or reader.text("attrPath"),
        license=reader.licenses(),
        maintainers=reader.maintainers(),
        short_description=reader.text("description"),
        long_description=reader.text("longDescription"),
        homepage=reader.homepage(),
        platforms=reader.platforms(),
        outputs=reader.outputs(),
        derivation_path=reader.text("drvPath"),
        source_position=reader.source_position(),
        dependency_refs=reader.dependency_refs(),
    )
    try:
        return Package(**fields)
    except ValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else "<record>"
        raise reader.fail(field, first.get("msg", "invalid value")) from e


def normalize_records(records: Sequence[Any] | Mapping[str, Any]) -> NormalizationResult:
    """Normalize a whole record set, skipping malformed records.

    Args:
        records: Either a list of records, or a mapping from attribute path
            to record (as ``nix-env -qa --json`` emits). Mappings are
            processed in sorted key order.

    Returns:
        The valid packages in input order and one `FailureRecord` per
        rejected record.
    """
    if isinstance(records, Mapping):
        items: list[tuple[str, Any]] = [(str(k), records[k]) for k in sorted(records, key=str)]
    else:
        items = [("", record) for record in records]

    packages: list[Package] = []
    failures: list[FailureRecord] = []
    for attribute, raw in items:
        try:
            packages.append(normalize_record(raw, attribute=attribute))
        except MalformedRecord as e:
            failures.append(FailureRecord.from_malformed(e))
    return NormalizationResult(packages=tuple(packages), failures=tuple(failures))
