"""
Tests for weighted RANSAC angle estimation.
"""

import math

import numpy as np
import pytest

from levelshot.processing.geometry import (
    ClassifiedLine, LineOrientation, LineSegment, PositionRole,
    RansacAngleEstimator, RansacResult, combine_resolutions
)


def vertical_line(tilt_deg, weight=10000.0, x=400.0):
    """Classified vertical line with the given tilt and explicit weight."""
    run = math.tan(math.radians(tilt_deg)) * 400.0
    segment = LineSegment(x, 100.0, x + run, 500.0)
    return ClassifiedLine(segment, LineOrientation.VERTICAL, PositionRole.STRUCTURAL, weight)


class TestRansacAngleEstimator:
    """Test dominant angle estimation."""

    def test_empty_input(self):
        """No lines gives the all-zero estimate."""
        assert RansacAngleEstimator(rng=1).estimate_angle([]) == RansacResult()

    def test_single_line(self):
        """A lone line is its own estimate with full confidence."""
        result = RansacAngleEstimator(rng=1).estimate_angle([vertical_line(4.0)])
        assert result.angle == pytest.approx(4.0)
        assert result.confidence == 1.0
        assert result.inlier_count == 1
        assert result.angle_std_dev == 0.0

    def test_dominant_group_beats_outliers(self):
        """Short outliers carry little weight and are excluded."""
        lines = [vertical_line(a) for a in (2.8, 3.0, 3.1, 3.2, 2.9)]
        lines += [vertical_line(-8.0, weight=100.0), vertical_line(9.0, weight=100.0)]

        result = RansacAngleEstimator(iterations=500, rng=42).estimate_angle(lines)

        assert result.angle == pytest.approx(3.0, abs=0.2)
        assert result.inlier_count == 5
        assert result.confidence == pytest.approx(50000.0 / 50200.0)
        assert result.angle_std_dev < 0.5

    def test_weighted_mean_and_spread(self):
        """Two equal-weight inliers refine to their mean and half their gap."""
        lines = [vertical_line(1.0), vertical_line(2.0)]
        result = RansacAngleEstimator(rng=3).estimate_angle(lines)
        assert result.angle == pytest.approx(1.5)
        assert result.angle_std_dev == pytest.approx(0.5)
        assert result.confidence == pytest.approx(1.0)

    def test_confidence_bounded(self):
        """Widely spread lines leave one inlier and confidence within [0, 1]."""
        lines = [vertical_line(a) for a in (-6.0, 0.0, 6.0)]
        result = RansacAngleEstimator(rng=5).estimate_angle(lines)
        assert 0.0 <= result.confidence <= 1.0
        assert result.inlier_count == 1

    def test_seed_reproducible(self):
        """An int seed and an equivalent Generator sample the same hypotheses."""
        lines = [vertical_line(a, weight=w) for a, w in
                 ((1.0, 500.0), (2.5, 900.0), (4.5, 700.0), (5.0, 400.0), (-3.0, 300.0))]
        first = RansacAngleEstimator(iterations=20, rng=11).estimate_angle(lines)
        second = RansacAngleEstimator(iterations=20, rng=np.random.default_rng(11)).estimate_angle(lines)
        assert first == second


def estimate(angle, confidence, inliers=5, std=0.2):
    return RansacResult(angle=angle, confidence=confidence, inlier_count=inliers, angle_std_dev=std)


class TestCombineResolutions:
    """Test reconciliation of full-size and half-size estimates."""

    def test_close_agreement_boosts(self):
        """Within 0.5 deg the full-size angle wins and gains 0.10."""
        combined = combine_resolutions(estimate(3.0, 0.7), estimate(3.3, 0.6, inliers=4))
        assert combined.angle == 3.0
        assert combined.confidence == pytest.approx(0.8)
        assert combined.inlier_count == 5

    def test_agreement_boost_capped(self):
        """The agreement boost stops at 0.95."""
        combined = combine_resolutions(estimate(3.0, 0.9), estimate(3.1, 0.9))
        assert combined.confidence == pytest.approx(0.95)

    def test_moderate_agreement_blends(self):
        """Between 0.5 and 1.5 deg the angles blend by confidence."""
        combined = combine_resolutions(estimate(2.0, 0.6), estimate(3.0, 0.4))
        assert combined.angle == pytest.approx(2.4)
        assert combined.confidence == pytest.approx(0.5)

    def test_disagreement_keeps_confident_pass(self):
        """Beyond 1.5 deg the more confident pass survives at 70%, capped at 0.60."""
        combined = combine_resolutions(estimate(2.0, 0.5), estimate(6.0, 0.95, inliers=3))
        assert combined.angle == 6.0
        assert combined.inlier_count == 3
        assert combined.confidence == pytest.approx(0.60)

        combined = combine_resolutions(estimate(2.0, 0.5), estimate(6.0, 0.4))
        assert combined.angle == 2.0
        assert combined.confidence == pytest.approx(0.35)

    def test_missing_half_pass_penalised(self):
        """A half-size pass with no lines costs the full estimate 15%."""
        combined = combine_resolutions(estimate(2.0, 0.8), RansacResult())
        assert combined.angle == 2.0
        assert combined.confidence == pytest.approx(0.68)

    def test_missing_full_pass(self):
        """Only the half-size pass found lines."""
        half = estimate(1.0, 0.7)
        assert combine_resolutions(RansacResult(), half) == half
        assert combine_resolutions(RansacResult(), RansacResult()) == RansacResult()
