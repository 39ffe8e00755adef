"""Tests for form quality scoring."""

import pytest

import pose_fixtures  # noqa: F401  (puts the project root on sys.path)

from src.realtime.scoring import score_corrections
from src.realtime.state import Correction, Severity


def _correction(severity: Severity, ts: float = 0.0) -> Correction:
    return Correction(
        body_part="arms", current_angle_deg=140.0, target_angle_deg=180.0,
        severity=severity, message="Straighten your arms", confidence=0.9, timestamp=ts,
    )


class TestScoreCorrections:

    def test_no_corrections(self):
        assert score_corrections([]) == 100.0

    @pytest.mark.parametrize("severity,expected", [
        (Severity.MINOR, 90.0),
        (Severity.MAJOR, 70.0),
        (Severity.CRITICAL, 50.0),
    ])
    def test_single_severity(self, severity, expected):
        assert score_corrections([_correction(severity)]) == pytest.approx(expected)

    def test_mixed_average(self):
        corrections = [_correction(Severity.MINOR), _correction(Severity.CRITICAL)]
        assert score_corrections(corrections) == pytest.approx(70.0)

    def test_only_last_ten_count(self):
        corrections = [_correction(Severity.CRITICAL)] * 5 + [_correction(Severity.MINOR)] * 10
        assert score_corrections(corrections) == pytest.approx(90.0)

    def test_always_in_range(self):
        heavy = {"minor": 2.0, "major": 2.0, "critical": 2.0}
        assert score_corrections([_correction(Severity.MINOR)], penalties=heavy) == 0.0
