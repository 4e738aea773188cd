# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for PipelineTimer stage accounting."""

from __future__ import annotations

from pagesnap.pipeline_timer import PipelineTimer


class TestPipelineTimer:
    def test_stage_tracking(self):
        timer = PipelineTimer()
        timer.stage("capture")
        timer.stage("decode")
        timer.stage("synthesis")
        timer.finalize()

        stages = timer.elapsed_per_stage()
        assert list(stages.keys()) == ["capture", "decode", "synthesis"]
        assert all(isinstance(v, float) for v in stages.values())

    def test_current_stage(self):
        timer = PipelineTimer()
        assert timer.current_stage is None

        timer.stage("capture")
        assert timer.current_stage == "capture"

        timer.finalize()
        assert timer.current_stage is None

    def test_timeout_report_structure(self):
        timer = PipelineTimer()
        timer.stage("capture")
        timer.stage("listeners")

        report = timer.timeout_report()
        assert report["error"] == "timeout"
        assert report["timed_out_at"] == "listeners"
        assert [s["stage"] for s in report["completed_stages"]] == ["capture"]
        assert isinstance(report["total_ms"], float)
        assert "listener" in report["hint"]

    def test_timeout_report_no_stages(self):
        report = PipelineTimer().timeout_report()
        assert report["timed_out_at"] == "unknown"
        assert report["completed_stages"] == []

    def test_hint_for_known_stages(self):
        assert "loading" in PipelineTimer.hint_for_stage("capture")
        assert "frames" in PipelineTimer.hint_for_stage("synthesis")

    def test_hint_for_unknown_stage(self):
        assert "custom_stage" in PipelineTimer.hint_for_stage("custom_stage")

    def test_elapsed_includes_current_stage(self):
        timer = PipelineTimer()
        timer.stage("running")
        stages = timer.elapsed_per_stage()
        assert stages["running"] >= 0

    def test_finalize_idempotent(self):
        timer = PipelineTimer()
        timer.stage("a")
        timer.finalize()
        timer.finalize()
        assert len(timer.elapsed_per_stage()) == 1

    def test_total_ms_non_negative(self):
        timer = PipelineTimer()
        timer.stage("a")
        timer.finalize()
        assert timer.total_ms() >= 0

    def test_durations_from_clock(self):
        ticks = iter([0, 1_000_000, 4_000_000, 4_500_000, 5_000_000])
        timer = PipelineTimer(clock=lambda: next(ticks))
        timer.stage("capture")
        timer.stage("decode")
        timer.finalize()
        assert timer.elapsed_per_stage() == {"capture": 3.0, "decode": 0.5}
        assert timer.total_ms() == 5.0

    def test_repeated_stage_keeps_latest(self):
        ticks = iter([0, 0, 2_000_000, 2_000_000, 2_500_000])
        timer = PipelineTimer(clock=lambda: next(ticks))
        timer.stage("capture")
        timer.stage("capture")
        timer.finalize()
        assert timer.elapsed_per_stage() == {"capture": 0.5}
