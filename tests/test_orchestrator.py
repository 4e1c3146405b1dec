"""End-to-end tests for VaultOrchestrator.

This module verifies:
- A two-package run links a to b and leaves b's dependency section empty
- A dependency outside the input set renders as a plain label without errors
- Malformed records are skipped and reported, and an all-malformed input is fatal
- Re-running over the same input produces identical files
- A limited run produces exactly the first N identifiers of an unlimited run
- Dependencies on packages cut by the limit become external
"""

import json
import logging

import pytest

from pkgvault.config import VaultConfig
from pkgvault.errors import FatalIngestionError
from pkgvault.orchestrator import VaultOrchestrator
from pkgvault.sources import InMemoryRecordSource
from pkgvault.storage.filesystem import FilesystemDocumentSink
from pkgvault.storage.memory import InMemoryDocumentSink
from tests.conftest import SAMPLE_RECORDS, FailingRenderer, make_raw_record


def _run(records, config: VaultConfig | None = None, sink=None, **kwargs):
    sink = sink if sink is not None else InMemoryDocumentSink()
    result = VaultOrchestrator(InMemoryRecordSource(records), sink, config=config, **kwargs).run()
    return result, sink


def _note_for(sink: InMemoryDocumentSink, name: str) -> tuple[str, str]:
    dump = json.loads(sink.files["packages.json"])
    identifier = next(p["identifier"] for p in dump if p["name"] == name)
    return identifier, sink.files[f"packages/{identifier}.md"]


class TestMinimalRuns:
    """Small runs with hand-checked output."""

    def test_two_packages_link(self) -> None:
        records = [
            {"name": "a", "version": "1", "deps": ["b"]},
            {"name": "b", "version": "1", "deps": []},
        ]
        result, sink = _run(records, VaultConfig(threads=2))

        assert len(sink.documents()) == 2
        b_id, b_note = _note_for(sink, "b")
        _, a_note = _note_for(sink, "a")
        assert f"[[{b_id}|b 1]]" in a_note
        assert "## Dependencies\n\n_None_\n" in b_note
        assert result.statistics.total_packages == 2
        assert result.statistics.total_maintainers == 0
        assert result.failures == ()

    def test_missing_dependency_is_external(self) -> None:
        result, sink = _run([{"name": "a", "version": "1", "deps": ["missing"]}])

        _, note = _note_for(sink, "a")
        assert "- `missing` (generic, external)" in note
        assert "[[missing" not in note
        assert result.external_edges == 1
        assert result.written == 1
        assert result.failures == ()

    def test_run_level_files(self, sample_records) -> None:
        _, sink = _run(sample_records)
        files = sink.files
        assert {"packages.json", "statistics.json", "Statistics.md"} <= set(files)
        assert {"maintainers/alice.md", "maintainers/bob.md", "maintainers/carol.md"} <= set(files)
        assert json.loads(files["statistics.json"])["total_packages"] == 6


class TestFailures:
    """Failure handling across the pipeline."""

    def test_malformed_record_is_skipped(self) -> None:
        records = [make_raw_record("good"), {"version": "1"}, 42]
        result, sink = _run(records)

        assert result.records == 3
        assert result.normalized == 1
        assert result.failure_count("normalize") == 2
        assert len(sink.documents()) == 1
        assert "2 malformed" in result.summary()

    def test_malformed_record_is_logged(self, caplog) -> None:
        with caplog.at_level(logging.DEBUG, logger="pkgvault.orchestrator"):
            result, _ = _run([make_raw_record("good"), {"version": "1"}])
        assert "Skipping malformed record" in caplog.text
        assert "Run complete" in caplog.text
        assert f'"written": {result.written}' in caplog.text

    def test_all_malformed_is_fatal(self) -> None:
        with pytest.raises(FatalIngestionError):
            _run([{"version": "1"}, "junk"])

    def test_empty_input_is_fatal(self) -> None:
        with pytest.raises(FatalIngestionError):
            _run([])

    def test_render_failure_does_not_stop_the_run(self, sample_records) -> None:
        sink = InMemoryDocumentSink()
        result = VaultOrchestrator(
            InMemoryRecordSource(sample_records), sink, renderer=FailingRenderer({"zlib"})
        ).run()

        assert result.written == 5
        assert result.failure_count("render") == 1
        assert result.statistics.total_packages == 6


class TestDeterminism:
    """Repeatability of runs."""

    def test_rerun_is_byte_identical(self, tmp_path, sample_records) -> None:
        first = tmp_path / "one"
        second = tmp_path / "two"
        _run(sample_records, VaultConfig(threads=1), sink=FilesystemDocumentSink(first))
        _run(list(reversed(sample_records)), VaultConfig(threads=4), sink=FilesystemDocumentSink(second))

        files_one = sorted(p.relative_to(first) for p in first.rglob("*") if p.is_file())
        files_two = sorted(p.relative_to(second) for p in second.rglob("*") if p.is_file())
        assert files_one == files_two
        for relative in files_one:
            assert (first / relative).read_bytes() == (second / relative).read_bytes()

    @pytest.mark.parametrize("limit", [1, 3, 5])
    def test_limit_keeps_first_identifiers(self, sample_records, limit) -> None:
        _, full = _run(sample_records)
        result, limited = _run(sample_records, VaultConfig(limit=limit))

        expected = sorted(full.documents())[:limit]
        assert sorted(limited.documents()) == expected
        assert result.selected == limit

    def test_limit_turns_cut_dependencies_external(self) -> None:
        records = [make_raw_record(f"p{i}", deps=[f"p{(i + 1) % 4}"]) for i in range(4)]
        result, _ = _run(records, VaultConfig(limit=2))
        assert result.selected == 2
        assert result.external_edges >= 1

    def test_statistics_independent_of_threads(self) -> None:
        baseline, _ = _run(SAMPLE_RECORDS, VaultConfig(threads=1))
        for threads in (2, 5):
            result, _ = _run(SAMPLE_RECORDS, VaultConfig(threads=threads))
            assert result.statistics == baseline.statistics
