"""
Tests for persistence — fingerprint file and generation ledger.
"""

import json
import logging
from pathlib import Path

import pytest

from genguard.core.persistence.fingerprint import (
    fingerprint_mtime,
    read_fingerprint,
    remove_fingerprint,
    write_fingerprint,
)
from genguard.core.persistence.ledger import RunLedger, RunRecord


class TestFingerprint:
    def test_save_and_load(self, tmp_path: Path):
        path = tmp_path / ".orogen" / "orogen-stamp"
        args = ["--corba", "--parallel-build=2", "camera.orogen"]
        write_fingerprint(args, path)
        assert read_fingerprint(path) == args

    def test_one_argument_per_line(self, tmp_path: Path):
        path = tmp_path / "stamp"
        write_fingerprint(["--corba", "camera.orogen"], path)
        assert path.read_text(encoding="utf-8") == "--corba\ncamera.orogen"

    def test_missing_returns_none(self, tmp_path: Path):
        assert read_fingerprint(tmp_path / "nope") is None

    def test_empty_file_is_empty_vector(self, tmp_path: Path):
        path = tmp_path / "stamp"
        path.write_text("")
        assert read_fingerprint(path) == []

    def test_overwrite(self, tmp_path: Path):
        path = tmp_path / "stamp"
        write_fingerprint(["a"], path)
        write_fingerprint(["b", "c"], path)
        assert read_fingerprint(path) == ["b", "c"]

    def test_no_temp_files_left(self, tmp_path: Path):
        path = tmp_path / "stamp"
        write_fingerprint(["a"], path)
        assert list(tmp_path.glob(".fingerprint_*.tmp")) == []

    def test_remove(self, tmp_path: Path):
        path = tmp_path / "stamp"
        write_fingerprint(["a"], path)
        assert remove_fingerprint(path) is True
        assert not path.exists()
        assert remove_fingerprint(path) is False

    def test_mtime(self, tmp_path: Path):
        path = tmp_path / "stamp"
        assert fingerprint_mtime(path) is None
        write_fingerprint(["a"], path)
        assert fingerprint_mtime(path) == path.stat().st_mtime


@pytest.fixture
def ledger(tmp_path: Path) -> RunLedger:
    return RunLedger(tmp_path / "ledger.ndjson")


class TestRunLedger:
    def test_append_and_read(self, ledger: RunLedger):
        ledger.append(RunRecord(run_id="gen-001", status="ok", generated=["camera"]))

        records = list(ledger.records())
        assert len(records) == 1
        assert records[0].run_id == "gen-001"
        assert records[0].generated == ["camera"]

    def test_no_file_no_records(self, ledger: RunLedger):
        assert list(ledger.records()) == []
        assert not ledger.path.exists()

    def test_project_location(self, tmp_path: Path):
        assert RunLedger.for_project(tmp_path).path == tmp_path / ".genguard" / "ledger.ndjson"

    def test_recent(self, ledger: RunLedger):
        for i in range(5):
            ledger.append(RunRecord(run_id=f"gen-{i}"))
        assert [r.run_id for r in ledger.recent(2)] == ["gen-3", "gen-4"]
        assert ledger.recent(0) == []

    def test_unreadable_line_skipped(self, ledger: RunLedger, caplog):
        ledger.append(RunRecord(run_id="good"))
        with ledger.path.open("a") as f:
            f.write("not json\n")
        ledger.append(RunRecord(run_id="also-good"))

        with caplog.at_level(logging.WARNING):
            assert [r.run_id for r in ledger.records()] == ["good", "also-good"]
        assert "ledger.ndjson:2" in caplog.text

    def test_one_json_object_per_line(self, ledger: RunLedger):
        ledger.append(RunRecord(run_id="x", duration_ms=12))
        ledger.append(RunRecord(run_id="y"))
        lines = ledger.path.read_text().splitlines()
        assert [json.loads(line)["run_id"] for line in lines] == ["x", "y"]
        assert json.loads(lines[0])["duration_ms"] == 12

    def test_recent_for_node(self, ledger: RunLedger):
        ledger.append(RunRecord(run_id="r1", nodes=["camera", "imu"]))
        ledger.append(RunRecord(run_id="r2", nodes=["imu"]))
        ledger.append(RunRecord(run_id="r3", nodes=["camera"]))
        assert [r.run_id for r in ledger.recent(10, node="camera")] == ["r1", "r3"]

    def test_last_generated(self, ledger: RunLedger):
        ledger.append(RunRecord(run_id="first", nodes=["camera"], generated=["camera"]))
        ledger.append(RunRecord(run_id="second", nodes=["camera"], generated=["camera"]))
        ledger.append(RunRecord(run_id="noop", nodes=["camera"]))
        assert ledger.last_generated("camera").run_id == "second"
        assert ledger.last_generated("imu") is None
