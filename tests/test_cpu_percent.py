"""Tests for linkboard.engine.cpu_percent."""

from __future__ import annotations

import random

import pytest

from linkboard.engine.cpu_percent import (
    CpuPercentEstimator,
    ProcessCpuTracker,
    clamp_percent,
    process_cpu_percent,
)


# ── system-wide estimator ─────────────────────────────


class TestCpuPercentEstimator:
    def test_first_sample_is_zero_and_seeds_state(self):
        est = CpuPercentEstimator()
        assert est.update(1000.0, 800.0) == 0.0
        assert est.update(1010.0, 805.0) == pytest.approx(50.0)

    def test_busy_percent_from_deltas(self):
        est = CpuPercentEstimator()
        est.update(100.0, 50.0)
        # 10s elapsed across cores, 2.5s idle -> 75% busy
        assert est.update(110.0, 52.5) == pytest.approx(75.0)

    def test_non_positive_total_delta_yields_zero(self):
        est = CpuPercentEstimator()
        est.update(100.0, 50.0)
        assert est.update(100.0, 50.0) == 0.0
        assert est.update(90.0, 40.0) == 0.0

    def test_idle_larger_than_total_clamps_to_zero(self):
        est = CpuPercentEstimator()
        est.update(100.0, 50.0)
        assert est.update(101.0, 60.0) == 0.0

    def test_negative_idle_delta_clamps_to_hundred(self):
        est = CpuPercentEstimator()
        est.update(100.0, 50.0)
        assert est.update(110.0, 40.0) == 100.0

    def test_random_counter_walk_stays_in_range(self):
        rng = random.Random(7)
        est = CpuPercentEstimator()
        total, idle = 0.0, 0.0
        est.update(total, idle)
        for _ in range(500):
            step = rng.uniform(0.01, 10.0)
            total += step
            idle += rng.uniform(0.0, step)
            assert 0.0 <= est.update(total, idle) <= 100.0


# ── per-process variant ───────────────────────────────


def test_clamp_percent():
    assert clamp_percent(-3) == 0.0
    assert clamp_percent(42.5) == 42.5
    assert clamp_percent(250) == 100.0


def test_process_cpu_percent_normalised_by_cores():
    # 2 cpu-seconds over 1s on 4 cores -> half the machine
    assert process_cpu_percent(2.0, 1.0, 4) == pytest.approx(50.0)


def test_process_cpu_percent_guards():
    assert process_cpu_percent(1.0, 0.0, 4) == 0.0
    assert process_cpu_percent(-1.0, 1.0, 4) == 0.0
    assert process_cpu_percent(1.0, 1.0, 0) == 100.0


class TestProcessCpuTracker:
    def test_first_round_reports_nothing(self):
        tracker = ProcessCpuTracker()
        assert tracker.update(10.0, {1: 5.0, 2: 1.0}, 2) == {}

    def test_only_known_pids_are_reported(self):
        tracker = ProcessCpuTracker()
        tracker.update(10.0, {1: 5.0}, 2)
        result = tracker.update(12.0, {1: 6.0, 2: 100.0}, 2)
        assert set(result) == {1}
        assert result[1] == pytest.approx(25.0)

    def test_vanished_pids_are_forgotten(self):
        tracker = ProcessCpuTracker()
        tracker.update(10.0, {1: 5.0}, 1)
        tracker.update(11.0, {2: 1.0}, 1)
        result = tracker.update(12.0, {1: 5.5, 2: 1.5}, 1)
        assert set(result) == {2}
