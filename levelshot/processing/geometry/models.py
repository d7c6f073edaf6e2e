"""
Data models for line-based perspective analysis.
"""

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class LineOrientation(Enum):
    """Orientation group of a classified line."""
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


class PositionRole(Enum):
    """Spatial role of a line within the frame."""
    BORDER = "border"            # Hugs an image edge, usually frame/furniture clutter
    STRUCTURAL = "structural"    # Long and central: wall edges, door frames
    INTERIOR = "interior"        # Everything else


class VanishingPointType(Enum):
    """Which family of parallel lines a vanishing point belongs to."""
    VERTICAL = "vertical"
    HORIZONTAL_LEFT = "horizontal_left"
    HORIZONTAL_RIGHT = "horizontal_right"


class QualityDecision(Enum):
    """Outcome of the quality gate."""
    NO_CORRECTION = "no_correction"
    ALREADY_STRAIGHT = "already_straight"
    NEEDS_MANUAL_REVIEW = "needs_manual_review"
    ACCEPTED = "accepted"


@dataclass(frozen=True)
class LineSegment:
    """
    A detected line segment in processed-image pixel space.

    Direction is always taken from the lower-y endpoint to the higher-y
    endpoint, so the derived angles do not depend on endpoint order.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    def _direction(self) -> Tuple[float, float]:
        dx = self.x2 - self.x1
        dy = self.y2 - self.y1
        if dy < 0:
            return -dx, -dy
        return dx, dy

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)

    @property
    def angle_from_vertical(self) -> float:
        """Signed angle from vertical in degrees, positive when leaning right going down."""
        dx, dy = self._direction()
        return math.degrees(math.atan2(dx, dy))

    @property
    def angle_from_horizontal(self) -> float:
        """Signed angle from horizontal in degrees, in (-90, 90]."""
        dx = self.x2 - self.x1
        dy = self.y2 - self.y1
        if dx < 0 or (dx == 0 and dy < 0):
            dx, dy = -dx, -dy
        return math.degrees(math.atan2(dy, dx))

    @property
    def midpoint(self) -> Tuple[float, float]:
        return (self.x1 + self.x2) / 2.0, (self.y1 + self.y2) / 2.0


@dataclass(frozen=True)
class ClassifiedLine:
    """A line segment tagged with orientation, role and weight."""
    segment: LineSegment
    orientation: LineOrientation
    position_role: PositionRole
    weight: float

    @property
    def tilt(self) -> float:
        """
        Camera roll implied by this line, in degrees.

        Vertical lines report their angle from vertical directly. Horizontal
        lines are negated so that both groups agree on the sign of a roll.
        """
        if self.orientation == LineOrientation.VERTICAL:
            return self.segment.angle_from_vertical
        return -self.segment.angle_from_horizontal

    @property
    def length(self) -> float:
        return self.segment.length


@dataclass(frozen=True)
class RansacResult:
    """Dominant angle estimate for one orientation group (degrees)."""
    angle: float = 0.0
    confidence: float = 0.0
    inlier_count: int = 0
    angle_std_dev: float = 0.0


@dataclass(frozen=True)
class VPEstimate:
    """A vanishing point triangulated from pairwise line intersections."""
    x: float
    y: float
    tilt_angle: float
    confidence: float
    supporting_pairs: int


@dataclass(frozen=True)
class VanishingPoint:
    """Vanishing point recorded on an analysis result."""
    x: float
    y: float
    confidence: float
    vp_type: VanishingPointType


@dataclass
class PerspectiveAnalysis:
    """Authoritative per-image decision record."""
    suggested_rotation: float = 0.0
    confidence: float = 0.0
    needs_correction: bool = False
    lines_detected: int = 0
    decision: QualityDecision = QualityDecision.NO_CORRECTION
    reason: str = ""
    vanishing_points: List[VanishingPoint] = field(default_factory=list)
    horizontal_estimate: Optional[RansacResult] = None

    def to_dict(self) -> dict:
        return {
            'suggested_rotation': self.suggested_rotation,
            'confidence': self.confidence,
            'needs_correction': self.needs_correction,
            'lines_detected': self.lines_detected,
            'decision': self.decision.value,
            'reason': self.reason,
            'vanishing_points': [
                {'x': vp.x, 'y': vp.y, 'confidence': vp.confidence, 'type': vp.vp_type.value}
                for vp in self.vanishing_points
            ],
            'horizontal_estimate': (asdict(self.horizontal_estimate)
                                    if self.horizontal_estimate is not None else None),
        }
