"""
Orientation and role classification of detected line segments
"""

from typing import Dict, List, Optional, Tuple
import logging

from .models import ClassifiedLine, LineOrientation, LineSegment, PositionRole

logger = logging.getLogger(__name__)

DEFAULT_ROLE_FACTORS = {
    PositionRole.STRUCTURAL: 1.0,
    PositionRole.INTERIOR: 0.75,
    PositionRole.BORDER: 0.5,
}


class LineClassifier:
    """
    Tag segments as vertical or horizontal and weight them

    Weight is length squared scaled by a role factor, so a single long wall
    edge outweighs many short noisy segments.
    """

    def __init__(self,
                 vertical_tolerance: float = 10.0,
                 horizontal_tolerance: float = 10.0,
                 border_margin_ratio: float = 0.1,
                 structural_length_ratio: float = 0.4,
                 role_factors: Optional[Dict[PositionRole, float]] = None):
        """
        Initialize line classifier

        Args:
            vertical_tolerance: Max degrees from vertical for a vertical line
            horizontal_tolerance: Max degrees from horizontal for a horizontal line
            border_margin_ratio: Midpoints closer than this fraction to an edge are border lines
            structural_length_ratio: Length (fraction of the spanned dimension) for structural lines
            role_factors: Weight multiplier per position role
        """
        self.vertical_tolerance = vertical_tolerance
        self.horizontal_tolerance = horizontal_tolerance
        self.border_margin_ratio = border_margin_ratio
        self.structural_length_ratio = structural_length_ratio
        self.role_factors = role_factors or dict(DEFAULT_ROLE_FACTORS)

    def classify(self, segments: List[LineSegment],
                 image_size: Tuple[int, int]) -> List[ClassifiedLine]:
        """
        Classify segments; those fitting neither orientation are dropped

        Args:
            segments: Detected segments
            image_size: (width, height) of the detection image

        Returns:
            List of ClassifiedLine
        """
        width, height = image_size
        classified = []

        for segment in segments:
            orientation = self._orientation(segment)
            if orientation is None:
                continue

            role = self._position_role(segment, orientation, width, height)
            weight = segment.length ** 2 * self.role_factors.get(role, 1.0)
            classified.append(ClassifiedLine(segment, orientation, role, weight))

        n_vertical = sum(1 for line in classified if line.orientation == LineOrientation.VERTICAL)
        logger.debug(f"Classified {len(classified)}/{len(segments)} segments: "
                     f"{n_vertical} vertical, {len(classified) - n_vertical} horizontal")
        return classified

    def _orientation(self, segment: LineSegment) -> Optional[LineOrientation]:
        if abs(segment.angle_from_vertical) <= self.vertical_tolerance:
            return LineOrientation.VERTICAL
        if abs(segment.angle_from_horizontal) <= self.horizontal_tolerance:
            return LineOrientation.HORIZONTAL
        return None

    def _position_role(self, segment: LineSegment, orientation: LineOrientation,
                       width: int, height: int) -> PositionRole:
        mid_x, mid_y = segment.midpoint
        edge_dx = min(mid_x, width - mid_x)
        edge_dy = min(mid_y, height - mid_y)
        if (edge_dx < width * self.border_margin_ratio or
                edge_dy < height * self.border_margin_ratio):
            return PositionRole.BORDER

        span = height if orientation == LineOrientation.VERTICAL else width
        if segment.length >= span * self.structural_length_ratio:
            return PositionRole.STRUCTURAL
        return PositionRole.INTERIOR


def split_by_orientation(lines: List[ClassifiedLine]) -> Tuple[List[ClassifiedLine], List[ClassifiedLine]]:
    """Split classified lines into (vertical, horizontal) groups"""
    vertical = [line for line in lines if line.orientation == LineOrientation.VERTICAL]
    horizontal = [line for line in lines if line.orientation == LineOrientation.HORIZONTAL]
    return vertical, horizontal
