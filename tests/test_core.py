"""Tests for core foundation functions."""

import hashlib
import json
import time

import pytest

from config.features import is_feature_enabled
from recorder.core import (
    dual_hash,
    emit_receipt,
    emit_stoprule,
    load_receipts,
    get_receipt_count,
    short_hash,
    split_dual_hash,
    StopRule
)


class TestDualHash:
    """Tests for dual_hash function."""

    def test_returns_dual_format(self):
        """Hash must be in SHA256:BLAKE3 format."""
        result = dual_hash(b"test")
        parts = result.split(":")
        assert len(parts) == 2
        assert len(parts[0]) == 64  # SHA256 hex length
        assert len(parts[1]) == 64  # BLAKE3 hex length

    def test_sha256_half_is_sha256(self):
        assert dual_hash(b"abc").split(":")[0] == hashlib.sha256(b"abc").hexdigest()

    def test_string_and_bytes_agree(self):
        """Strings are hashed as UTF-8."""
        assert dual_hash("hello world") == dual_hash(b"hello world")

    def test_deterministic(self):
        assert dual_hash(b"deterministic test") == dual_hash(b"deterministic test")

    def test_different_inputs_different_hashes(self):
        assert dual_hash(b"input one") != dual_hash(b"input two")

    def test_empty_input(self):
        assert ":" in dual_hash(b"")

    def test_latency_slo(self):
        """Hash computation should be under 10ms."""
        start = time.perf_counter()
        for _ in range(100):
            dual_hash(b"performance test data")
        elapsed_ms = (time.perf_counter() - start) * 1000 / 100

        assert elapsed_ms < 10, f"Hash latency {elapsed_ms}ms exceeds 10ms SLO"


class TestHashDisplay:
    """Tests for dual hash display helpers."""

    def test_split(self):
        value = dual_hash(b"x")
        sha, blake = split_dual_hash(value)
        assert f"{sha}:{blake}" == value

    def test_short_hash_truncates_both_halves(self):
        value = dual_hash(b"x")
        sha, blake = split_dual_hash(value)
        assert short_hash(value) == f"{sha[:16]}:{blake[:16]}"
        assert short_hash(value, 8) == f"{sha[:8]}:{blake[:8]}"


class TestEmitReceipt:
    """Tests for emit_receipt function."""

    def test_contains_required_fields(self):
        receipt = emit_receipt("test", {"data": "value"}, silent=True, to_file=False)

        assert receipt["receipt_type"] == "test"
        assert "ts" in receipt
        assert "tenant_id" in receipt
        assert ":" in receipt["payload_hash"]
        assert receipt["data"] == "value"

    def test_payload_hash_covers_record(self):
        receipt = emit_receipt("test", {"data": "value"}, silent=True, to_file=False)
        body = {k: v for k, v in receipt.items() if k != "payload_hash"}
        assert receipt["payload_hash"] == dual_hash(json.dumps(body, sort_keys=True))

    def test_sequence_increments(self):
        first = emit_receipt("test", {}, silent=True, to_file=False)
        second = emit_receipt("test", {}, silent=True, to_file=False)
        assert second["sequence"] == first["sequence"] + 1
        assert get_receipt_count() == 2

    def test_tenant_override(self):
        receipt = emit_receipt("test", {}, tenant_id="custom", silent=True, to_file=False)
        assert receipt["tenant_id"] == "custom"

    def test_prints_unless_silent(self, capsys):
        emit_receipt("loud", {"x": 1}, to_file=False)
        emit_receipt("quiet", {"x": 2}, silent=True, to_file=False)
        out = capsys.readouterr().out
        assert '"receipt_type": "loud"' in out
        assert "quiet" not in out

    def test_written_to_file(self):
        emit_receipt("persisted", {"n": 1}, silent=True)
        emit_receipt("persisted", {"n": 2}, silent=True)

        records = load_receipts()
        assert [r["n"] for r in records] == [1, 2]

    def test_file_output_can_be_disabled(self, monkeypatch):
        monkeypatch.setenv("DECISION_RECORDER_FEATURE_TELEMETRY_FILE_ENABLED", "0")
        emit_receipt("dropped", {}, silent=True)
        assert load_receipts() == []


class TestStopRule:
    """Tests for StopRule and emit_stoprule."""

    def test_carries_metric_and_action(self):
        error = StopRule("bad input", metric="receipt_contract", action="reject")
        assert str(error) == "bad input"
        assert error.metric == "receipt_contract"
        assert error.action == "reject"

    def test_default_action_is_halt(self):
        assert StopRule("x").action == "halt"

    def test_emit_stoprule_writes_anomaly(self):
        receipt = emit_stoprule(ValueError("boom"), "timeline_tick", action="skip_tick")

        assert receipt["receipt_type"] == "anomaly"
        assert receipt["action"] == "skip_tick"
        assert receipt["error"] == "boom"
        assert load_receipts()[-1]["metric"] == "timeline_tick"

    def test_raises_normally(self):
        with pytest.raises(StopRule):
            raise StopRule("stop")


class TestFeatureFlags:
    """Tests for feature flag lookup."""

    def test_module_defaults(self, monkeypatch):
        monkeypatch.delenv("DECISION_RECORDER_FEATURE_TELEMETRY_FILE_ENABLED", raising=False)
        monkeypatch.delenv("DECISION_RECORDER_FEATURE_AUTO_VERIFY_ON_SEAL", raising=False)
        assert is_feature_enabled("FEATURE_TELEMETRY_FILE_ENABLED")
        assert not is_feature_enabled("FEATURE_AUTO_VERIFY_ON_SEAL")

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DECISION_RECORDER_FEATURE_AUTO_VERIFY_ON_SEAL", "yes")
        assert is_feature_enabled("FEATURE_AUTO_VERIFY_ON_SEAL")

    def test_unknown_flag_is_off(self):
        assert not is_feature_enabled("FEATURE_DOES_NOT_EXIST")
