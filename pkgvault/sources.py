"""Record sources: where the raw package records come from.

Producing the records (evaluating the package set) is outside this project;
these sources only read an evaluation result that already exists, such as the
JSON written by ``nix-env -qa --json --meta --drv-path``.
"""

import json
import sys
from pathlib import Path
from typing import Any, Mapping, Sequence

from pkgvault.errors import FatalIngestionError
from pkgvault.pipeline.interfaces import RecordSourceInterface


def check_record_set(data: Any, origin: str) -> Sequence[Any] | Mapping[str, Any]:
    """Ensure decoded data is a non-empty list or attribute mapping of records."""
    if isinstance(data, (str, bytes)) or not isinstance(data, (Sequence, Mapping)):
        raise FatalIngestionError(f"{origin}: expected a JSON array or object of records, got {type(data).__name__}")
    if not data:
        raise FatalIngestionError(f"{origin}: the record set is empty")
    return data


class JsonRecordSource(RecordSourceInterface):
    """Read records from a JSON file, or from stdin when the path is ``-``."""

    def __init__(self, path: Path | str):
        self.path = path

    @property
    def origin(self) -> str:
        return "<stdin>" if str(self.path) == "-" else str(self.path)

    def load(self) -> Sequence[Any] | Mapping[str, Any]:
        try:
            if str(self.path) == "-":
                data = json.load(sys.stdin)
            else:
                with open(self.path, encoding="utf-8") as f:
                    data = json.load(f)
        except FileNotFoundError as e:
            raise FatalIngestionError(f"Record source does not exist: {self.origin}") from e
        except OSError as e:
            raise FatalIngestionError(f"Cannot read record source {self.origin}: {e}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise FatalIngestionError(f"Record source {self.origin} is not valid JSON: {e}") from e
        return check_record_set(data, self.origin)


class InMemoryRecordSource(RecordSourceInterface):
    """Serve records that are already in memory (tests, embedding callers)."""

    def __init__(self, records: Sequence[Any] | Mapping[str, Any]):
        self.records = records

    def load(self) -> Sequence[Any] | Mapping[str, Any]:
        return check_record_set(self.records, "<memory>")
