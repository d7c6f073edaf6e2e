"""
Tests for line detection, segment models, intersection and classification.
"""

import cv2
import numpy as np
import pytest

from levelshot.processing.geometry import (
    ClassifiedLine, LineClassifier, LineDetector, LineOrientation, LineSegment,
    PositionRole, line_intersection
)
from levelshot.processing.geometry.line_classifier import split_by_orientation


class TestLineSegment:
    """Test derived segment geometry."""

    def test_vertical_segment(self):
        """Length, angle and midpoint of a plumb segment."""
        segment = LineSegment(100, 0, 100, 200)
        assert segment.length == pytest.approx(200.0)
        assert segment.angle_from_vertical == pytest.approx(0.0)
        assert segment.midpoint == (100.0, 100.0)

    def test_angle_independent_of_endpoint_order(self):
        """Swapping endpoints must not change either angle."""
        a = LineSegment(0, 0, 10, 10)
        b = LineSegment(10, 10, 0, 0)
        assert a.angle_from_vertical == pytest.approx(45.0)
        assert b.angle_from_vertical == pytest.approx(45.0)
        assert a.angle_from_horizontal == pytest.approx(b.angle_from_horizontal)

    def test_leaning_left_is_negative(self):
        """Leaning left going down gives a negative angle."""
        segment = LineSegment(10, 0, 0, 10)
        assert segment.angle_from_vertical == pytest.approx(-45.0)

    def test_horizontal_angle_range(self):
        """Horizontal angle ignores direction and reaches 90 for verticals."""
        assert LineSegment(0, 0, 10, 0).angle_from_horizontal == pytest.approx(0.0)
        assert LineSegment(10, 0, 0, 0).angle_from_horizontal == pytest.approx(0.0)
        assert LineSegment(0, 0, 0, 10).angle_from_horizontal == pytest.approx(90.0)


class TestLineIntersection:
    """Test infinite-line intersection."""

    def test_crossing_diagonals(self):
        """Diagonals of a square meet at its centre."""
        point = line_intersection(LineSegment(0, 0, 100, 100), LineSegment(0, 100, 100, 0))
        assert point == pytest.approx((50.0, 50.0))

    def test_intersection_beyond_segments(self):
        """Segments are extended, so non-overlapping segments still meet."""
        point = line_intersection(LineSegment(0, 0, 10, 0), LineSegment(50, 10, 50, 20))
        assert point == pytest.approx((50.0, 0.0))

    def test_parallel_lines(self):
        """Parallel lines have no intersection."""
        assert line_intersection(LineSegment(0, 0, 0, 100), LineSegment(10, 0, 10, 100)) is None


class TestLineClassifier:
    """Test orientation, role and weight assignment."""

    @pytest.fixture
    def classifier(self):
        return LineClassifier()

    def test_structural_vertical(self, classifier):
        """A long central vertical is structural with full length-squared weight."""
        lines = classifier.classify([LineSegment(400, 100, 400, 500)], (800, 600))
        assert len(lines) == 1
        line = lines[0]
        assert line.orientation == LineOrientation.VERTICAL
        assert line.position_role == PositionRole.STRUCTURAL
        assert line.weight == pytest.approx(400.0 ** 2)

    def test_border_line_weight_halved(self, classifier):
        """Midpoint inside the 10% edge margin makes a border line."""
        lines = classifier.classify([LineSegment(20, 100, 20, 500)], (800, 600))
        assert lines[0].position_role == PositionRole.BORDER
        assert lines[0].weight == pytest.approx(400.0 ** 2 * 0.5)

    def test_short_central_line_is_interior(self, classifier):
        """A short central line is interior at 0.75 weight."""
        lines = classifier.classify([LineSegment(400, 250, 400, 350)], (800, 600))
        assert lines[0].position_role == PositionRole.INTERIOR
        assert lines[0].weight == pytest.approx(100.0 ** 2 * 0.75)

    def test_diagonal_dropped(self, classifier):
        """A 45 deg line is neither vertical nor horizontal."""
        assert classifier.classify([LineSegment(200, 100, 500, 400)], (800, 600)) == []

    def test_horizontal_tilt_sign(self, classifier):
        """A horizontal line dropping to the right reports a negative tilt."""
        lines = classifier.classify([LineSegment(200, 300, 600, 310)], (800, 600))
        assert lines[0].orientation == LineOrientation.HORIZONTAL
        assert lines[0].position_role == PositionRole.STRUCTURAL
        assert lines[0].tilt < 0

    def test_split_by_orientation(self, classifier):
        """Lines split into vertical and horizontal groups."""
        lines = classifier.classify([
            LineSegment(400, 100, 400, 500),
            LineSegment(200, 300, 600, 300),
            LineSegment(350, 100, 360, 500),
        ], (800, 600))
        vertical, horizontal = split_by_orientation(lines)
        assert len(vertical) == 2
        assert len(horizontal) == 1
        assert all(isinstance(line, ClassifiedLine) for line in vertical + horizontal)


def draw_plumb_lines(width=800, height=600):
    """Grey frame with an edge line at x=40, a long central line and a short one."""
    gray = np.full((height, width), 200, dtype=np.uint8)
    cv2.line(gray, (40, 50), (40, 550), 30, 3)
    cv2.line(gray, (400, 50), (400, 550), 30, 3)
    cv2.line(gray, (480, 280), (480, 320), 30, 3)
    return gray


class TestLineDetector:
    """Test the centre-band and minimum-length filters."""

    def test_keeps_long_central_line_only(self):
        """Edge and short lines are dropped; the central line survives."""
        segments = LineDetector().detect_lines(draw_plumb_lines())

        assert segments
        mids = [segment.midpoint[0] for segment in segments]
        assert all(200 <= x <= 600 for x in mids)
        assert any(abs(x - 400) < 5 for x in mids)
        assert not any(abs(x - 480) < 5 for x in mids)
        assert all(segment.length >= 600 * 0.20 for segment in segments)

    def test_full_band_keeps_edge_line(self):
        """Widening the band to the whole frame admits the edge line."""
        segments = LineDetector(center_band_ratio=1.0).detect_lines(draw_plumb_lines())
        assert any(abs(segment.midpoint[0] - 40) < 5 for segment in segments)

    def test_hough_path_applies_same_filters(self):
        """The Hough path drops the same edge and short lines as LSD."""
        segments = LineDetector(use_lsd=False).detect_lines(draw_plumb_lines())

        assert segments
        assert all(200 <= segment.midpoint[0] <= 600 for segment in segments)
        assert all(segment.length >= 120 for segment in segments)

    def test_blank_image(self):
        """A featureless image yields no segments."""
        assert LineDetector().detect_lines(np.full((300, 400), 128, dtype=np.uint8)) == []
