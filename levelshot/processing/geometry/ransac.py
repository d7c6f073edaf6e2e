"""
Weighted RANSAC estimation of the dominant line angle
"""

from dataclasses import replace

import numpy as np
from typing import List, Optional, Union
import logging

from .models import ClassifiedLine, RansacResult

logger = logging.getLogger(__name__)


class RansacAngleEstimator:
    """
    Find the dominant tilt of a group of lines.

    Each iteration takes one line's tilt as the hypothesis and sums the
    weight of every line within the inlier threshold. The best hypothesis
    is refined to the weighted mean of its inliers.
    """

    def __init__(self,
                 iterations: int = 500,
                 inlier_threshold: float = 2.0,
                 rng: Optional[Union[np.random.Generator, int]] = None):
        """
        Initialize estimator

        Args:
            iterations: Number of hypotheses sampled
            inlier_threshold: Max angular distance (degrees) for an inlier
            rng: numpy Generator or integer seed; None draws fresh entropy
        """
        self.iterations = iterations
        self.inlier_threshold = inlier_threshold
        if isinstance(rng, np.random.Generator):
            self.rng = rng
        else:
            self.rng = np.random.default_rng(rng)

    def estimate_angle(self, lines: List[ClassifiedLine]) -> RansacResult:
        """
        Estimate the dominant tilt

        Args:
            lines: Lines of a single orientation group

        Returns:
            RansacResult with angle and spread in degrees
        """
        if not lines:
            return RansacResult()

        angles = np.array([line.tilt for line in lines], dtype=np.float64)
        weights = np.array([line.weight for line in lines], dtype=np.float64)

        if len(lines) == 1:
            return RansacResult(angle=float(angles[0]), confidence=1.0,
                                inlier_count=1, angle_std_dev=0.0)

        total_weight = weights.sum()
        if total_weight <= 0:
            return RansacResult()

        hypotheses = angles[self.rng.integers(0, len(angles), size=self.iterations)]
        inlier_masks = np.abs(angles[None, :] - hypotheses[:, None]) < self.inlier_threshold
        supports = inlier_masks @ weights

        # argmax keeps the first hypothesis reaching the maximum support
        best = int(np.argmax(supports))
        best_support = supports[best]
        inliers = inlier_masks[best]

        inlier_angles = angles[inliers]
        inlier_weights = weights[inliers]
        inlier_total = inlier_weights.sum()
        refined = float(np.sum(inlier_angles * inlier_weights) / inlier_total)

        std_dev = 0.0
        if len(inlier_angles) > 1:
            variance = np.sum(inlier_weights * (inlier_angles - refined) ** 2) / inlier_total
            std_dev = float(np.sqrt(variance))

        confidence = float(np.clip(best_support / total_weight, 0.0, 1.0))

        logger.debug(f"RANSAC: angle={refined:.2f} conf={confidence:.2f} "
                     f"inliers={int(inliers.sum())}/{len(lines)} std={std_dev:.2f}")

        return RansacResult(
            angle=refined,
            confidence=confidence,
            inlier_count=int(inliers.sum()),
            angle_std_dev=std_dev
        )


def combine_resolutions(full: RansacResult, half: RansacResult) -> RansacResult:
    """
    Reconcile vertical estimates from the full-size and half-size passes

    Close agreement (< 0.5 deg) keeps the full-size angle and adds 0.10
    confidence, capped at 0.95. Moderate agreement (< 1.5 deg) blends the
    angles by confidence and averages confidence, capped at 0.85. Otherwise
    the more confident pass wins at 70% of its confidence, capped at 0.60.
    The full-size inlier count and spread are kept whenever it contributes.

    Args:
        full: Estimate from the full preprocessed image
        half: Estimate from the half-size image

    Returns:
        Combined RansacResult
    """
    if full.confidence < 0.01 and half.confidence < 0.01:
        return RansacResult()
    if full.confidence < 0.01:
        return half
    if half.confidence < 0.01:
        return replace(full, confidence=full.confidence * 0.85)

    diff = abs(full.angle - half.angle)
    if diff < 0.5:
        return replace(full, confidence=min(full.confidence + 0.10, 0.95))

    if diff < 1.5:
        total = full.confidence + half.confidence
        angle = (full.angle * full.confidence + half.angle * half.confidence) / total
        return replace(full, angle=angle,
                       confidence=min((full.confidence + half.confidence) / 2.0, 0.85))

    logger.debug(f"Multi-resolution disagreement: {full.angle:.2f} vs {half.angle:.2f}")
    winner = full if full.confidence >= half.confidence else half
    return replace(winner, confidence=min(winner.confidence * 0.70, 0.60))
