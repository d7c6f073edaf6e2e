"""
Accept/reject decision for a perspective estimate
"""

import math
from typing import Optional, Tuple
import logging

from .models import (
    PerspectiveAnalysis, QualityDecision, RansacResult,
    VanishingPoint, VanishingPointType
)

logger = logging.getLogger(__name__)


class QualityGate:
    """
    Decide whether a validated tilt estimate should be applied.

    Checks run in a fixed order and the first failing check decides the
    outcome. Ambiguous detections are rejected rather than guessed.
    """

    def __init__(self,
                 min_inlier_count: int = 3,
                 confidence_threshold: float = 0.5,
                 max_angle_std_dev: float = 2.5,
                 min_rotation: float = 0.3,
                 max_rotation: float = 15.0):
        """
        Initialize quality gate

        Args:
            min_inlier_count: Minimum RANSAC inliers required
            confidence_threshold: Minimum validated confidence
            max_angle_std_dev: Maximum inlier angle spread (degrees)
            min_rotation: Rotations smaller than this count as already straight (degrees)
            max_rotation: Rotations larger than this need manual review (degrees)
        """
        self.min_inlier_count = min_inlier_count
        self.confidence_threshold = confidence_threshold
        self.max_angle_std_dev = max_angle_std_dev
        self.min_rotation = min_rotation
        self.max_rotation = max_rotation

    def evaluate(self,
                 vertical_line_count: int,
                 ransac: RansacResult,
                 angle: float,
                 confidence: float,
                 image_size: Tuple[int, int],
                 horizontal_estimate: Optional[RansacResult] = None) -> PerspectiveAnalysis:
        """
        Run the decision checks

        Args:
            vertical_line_count: Number of lines classified as vertical
            ransac: Raw vertical-group RANSAC result
            angle: Validated tilt in degrees
            confidence: Validated confidence
            image_size: (width, height) of the detection image
            horizontal_estimate: Horizontal-group RANSAC result, reported only

        Returns:
            PerspectiveAnalysis; suggested_rotation is 0 unless accepted
        """
        rotation = -angle

        if vertical_line_count == 0:
            return self._reject("no vertical lines detected", horizontal_estimate)

        if ransac.inlier_count < self.min_inlier_count:
            return self._reject(f"only {ransac.inlier_count} inliers "
                                f"(need {self.min_inlier_count})", horizontal_estimate)

        if confidence < self.confidence_threshold:
            return self._reject(f"confidence {confidence:.2f} below "
                                f"{self.confidence_threshold:.2f}", horizontal_estimate)

        if ransac.angle_std_dev > self.max_angle_std_dev:
            return self._reject(f"angle spread {ransac.angle_std_dev:.2f} deg exceeds "
                                f"{self.max_angle_std_dev:.2f} deg", horizontal_estimate)

        if abs(rotation) < self.min_rotation:
            logger.debug(f"Rotation {rotation:.2f} deg below {self.min_rotation} deg, already straight")
            return PerspectiveAnalysis(
                confidence=confidence,
                lines_detected=ransac.inlier_count,
                decision=QualityDecision.ALREADY_STRAIGHT,
                reason=f"rotation {rotation:.2f} deg below {self.min_rotation} deg",
                horizontal_estimate=horizontal_estimate
            )

        if abs(rotation) > self.max_rotation:
            logger.info(f"Rotation {rotation:.2f} deg exceeds {self.max_rotation} deg, needs manual review")
            return PerspectiveAnalysis(
                decision=QualityDecision.NEEDS_MANUAL_REVIEW,
                reason=f"rotation {rotation:.2f} deg exceeds {self.max_rotation} deg",
                horizontal_estimate=horizontal_estimate
            )

        width, height = image_size
        vanishing_point = VanishingPoint(
            x=width / 2.0 - math.tan(math.radians(angle)) * height * 10.0,
            y=-height * 10.0,
            confidence=confidence,
            vp_type=VanishingPointType.VERTICAL
        )

        logger.debug(f"Accepted rotation {rotation:.2f} deg (confidence={confidence:.2f}, "
                     f"inliers={ransac.inlier_count}, std={ransac.angle_std_dev:.2f})")

        return PerspectiveAnalysis(
            suggested_rotation=rotation,
            confidence=confidence,
            needs_correction=True,
            lines_detected=ransac.inlier_count,
            decision=QualityDecision.ACCEPTED,
            reason="accepted",
            vanishing_points=[vanishing_point],
            horizontal_estimate=horizontal_estimate
        )

    @staticmethod
    def _reject(reason: str, horizontal_estimate: Optional[RansacResult]) -> PerspectiveAnalysis:
        logger.debug(f"No correction: {reason}")
        return PerspectiveAnalysis(
            decision=QualityDecision.NO_CORRECTION,
            reason=reason,
            horizontal_estimate=horizontal_estimate
        )
