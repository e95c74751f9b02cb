"""
Tests for the staleness engine — the four regeneration signals.
"""

from pathlib import Path

from genguard.core.engine.staleness import StalenessVerdict, needs_regeneration
from genguard.core.persistence.fingerprint import write_fingerprint

from tests.conftest import PAST, FakeOutputCheck, set_mtime

ARGS = ["--corba", "--transports=corba,typelib", "camera.orogen"]


def _fingerprint(tmp_path: Path, args=ARGS) -> Path:
    path = tmp_path / ".orogen" / "orogen-stamp"
    write_fingerprint(list(args), path)
    return path


class TestVerdict:
    def test_truthiness(self):
        assert StalenessVerdict(stale=True, reason="forced")
        assert not StalenessVerdict.fresh()
        assert StalenessVerdict.fresh().reason == "up_to_date"


class TestNeedsRegeneration:
    def test_force_policy_wins_over_matching_fingerprint(self, tmp_path: Path):
        path = _fingerprint(tmp_path)
        check = FakeOutputCheck()
        verdict = needs_regeneration(path, ARGS, check, always_regenerate=True)
        assert verdict.stale
        assert verdict.reason == "forced"
        assert check.calls == 0  # short-circuited

    def test_missing_fingerprint(self, tmp_path: Path):
        verdict = needs_regeneration(tmp_path / "nope", ARGS, FakeOutputCheck())
        assert verdict.reason == "no_fingerprint"

    def test_arguments_changed(self, tmp_path: Path):
        path = _fingerprint(tmp_path)
        verdict = needs_regeneration(path, ["--corba", "camera.orogen"], FakeOutputCheck())
        assert verdict.reason == "arguments_changed"

    def test_order_matters(self, tmp_path: Path):
        path = _fingerprint(tmp_path)
        reordered = [ARGS[1], ARGS[0], ARGS[2]]
        assert needs_regeneration(path, reordered, FakeOutputCheck()).stale

    def test_unreadable_fingerprint_is_stale(self, tmp_path: Path):
        path = tmp_path / ".orogen" / "orogen-stamp"
        path.parent.mkdir()
        path.write_bytes(b"\xff\xfe\xfa")
        assert needs_regeneration(path, ARGS, FakeOutputCheck()).reason == "no_fingerprint"

    def test_output_outdated(self, tmp_path: Path):
        path = _fingerprint(tmp_path)
        verdict = needs_regeneration(path, ARGS, FakeOutputCheck(current=False))
        assert verdict.reason == "output_outdated"

    def test_tool_newer_than_fingerprint(self, tmp_path: Path):
        path = _fingerprint(tmp_path)
        set_mtime(path, PAST)
        verdict = needs_regeneration(path, ARGS, FakeOutputCheck(), tool_timestamp=lambda: PAST + 10)
        assert verdict.reason == "tool_updated"

    def test_tool_older_than_fingerprint(self, tmp_path: Path):
        path = _fingerprint(tmp_path)
        verdict = needs_regeneration(path, ARGS, FakeOutputCheck(), tool_timestamp=lambda: PAST)
        assert not verdict.stale

    def test_unknown_tool_timestamp(self, tmp_path: Path):
        path = _fingerprint(tmp_path)
        assert not needs_regeneration(path, ARGS, FakeOutputCheck(), tool_timestamp=lambda: 0.0)

    def test_idempotent_when_nothing_changed(self, tmp_path: Path):
        path = _fingerprint(tmp_path)
        check = FakeOutputCheck()
        first = needs_regeneration(path, ARGS, check, tool_timestamp=lambda: PAST)
        second = needs_regeneration(path, ARGS, check, tool_timestamp=lambda: PAST)
        assert not first and not second
        assert check.calls == 2
