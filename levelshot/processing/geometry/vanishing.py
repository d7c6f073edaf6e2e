"""
Vanishing point triangulation and cross-validation of RANSAC tilt estimates

Vertical lines of a tilted camera converge on a vanishing point far above or
below the frame; its horizontal offset from the image centre implies a tilt
that is independent of the per-line angles. The horizontal line group gives
a second, weaker cue from vanishing points left or right of the frame.
"""

import math
import numpy as np
from typing import List, Optional, Tuple
import logging

from .models import ClassifiedLine, LineSegment, RansacResult, VPEstimate

logger = logging.getLogger(__name__)

MEAN_SHIFT_MAX_ITERATIONS = 20


def line_intersection(a: LineSegment, b: LineSegment) -> Optional[Tuple[float, float]]:
    """
    Intersect two segments treated as infinite lines

    Returns:
        (x, y) of the intersection, or None for parallel lines
    """
    dx1 = a.x2 - a.x1
    dy1 = a.y2 - a.y1
    dx2 = b.x2 - b.x1
    dy2 = b.y2 - b.y1

    cross = dx1 * dy2 - dy1 * dx2
    if abs(cross) < 1e-10:
        return None

    t = ((b.x1 - a.x1) * dy2 - (b.y1 - a.y1) * dx2) / cross
    return a.x1 + t * dx1, a.y1 + t * dy1


def pairwise_intersections(lines: List[ClassifiedLine],
                           max_distance: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    All pairwise intersections within max_distance of the origin

    Returns:
        Tuple of (points Nx2, weights N); pair weight is the geometric mean
        of the two line weights, scaled down by 1000
    """
    points = []
    weights = []
    for i in range(len(lines)):
        for j in range(i + 1, len(lines)):
            point = line_intersection(lines[i].segment, lines[j].segment)
            if point is None:
                continue
            x, y = point
            if abs(x) < max_distance and abs(y) < max_distance:
                points.append((x, y))
                weights.append(math.sqrt(lines[i].weight * lines[j].weight) / 1000.0)

    if not points:
        return np.empty((0, 2)), np.empty(0)
    return np.array(points, dtype=np.float64), np.array(weights, dtype=np.float64)


def mean_shift_cluster(points: np.ndarray, weights: np.ndarray,
                       bandwidth: float) -> Tuple[float, float, float]:
    """
    Weighted mean-shift with a Gaussian kernel, started at the weighted centroid

    Args:
        points: Nx2 array of intersection coordinates
        weights: N array of intersection weights
        bandwidth: Kernel bandwidth in pixels

    Returns:
        Tuple of (x, y, weight) where weight sums the points within two
        bandwidths of the converged centre
    """
    if len(points) == 0 or weights.sum() <= 0:
        return 0.0, 0.0, 0.0

    center = (points * weights[:, None]).sum(axis=0) / weights.sum()

    for _ in range(MEAN_SHIFT_MAX_ITERATIONS):
        dist_sq = np.sum((points - center) ** 2, axis=1)
        kernel = weights * np.exp(-dist_sq / (2.0 * bandwidth * bandwidth))
        kernel_sum = kernel.sum()
        if kernel_sum <= 0:
            break

        previous = center
        center = (points * kernel[:, None]).sum(axis=0) / kernel_sum
        if np.linalg.norm(center - previous) < bandwidth * 0.01:
            break

    dist = np.sqrt(np.sum((points - center) ** 2, axis=1))
    cluster_weight = float(weights[dist < bandwidth * 2.0].sum())
    return float(center[0]), float(center[1]), cluster_weight


def cluster_spread(points: np.ndarray, weights: np.ndarray, cx: float, cy: float) -> float:
    """Weighted RMS distance of all points from (cx, cy)"""
    total = weights.sum()
    if len(points) == 0 or total == 0:
        return 0.0
    dist_sq = (points[:, 0] - cx) ** 2 + (points[:, 1] - cy) ** 2
    return float(np.sqrt(np.sum(dist_sq * weights) / total))


def estimate_vertical_vp(vertical_lines: List[ClassifiedLine],
                         image_size: Tuple[int, int]) -> Optional[VPEstimate]:
    """
    Triangulate the vertical vanishing point

    Args:
        vertical_lines: Lines classified as vertical
        image_size: (width, height) of the detection image

    Returns:
        VPEstimate, or None without enough consistent intersections
    """
    if len(vertical_lines) < 2:
        return None

    width, height = image_size
    max_distance = height * 20.0

    points, weights = pairwise_intersections(vertical_lines, max_distance)
    if len(points) == 0:
        return None

    ys = points[:, 1]
    above = (ys < 0) & (ys > -max_distance)
    below = (ys > height) & (ys < height + max_distance)
    valid = above | below
    points, weights = points[valid], weights[valid]
    if len(points) == 0:
        return None

    x, y, cluster_weight = mean_shift_cluster(points, weights, width * 0.1)
    if cluster_weight < 1.0:
        return None

    tilt = math.degrees(math.atan((x - width / 2.0) / abs(y)))
    # Above the frame the VP sits opposite the downward line direction
    if y < 0:
        tilt = -tilt

    supporting_pairs = int(min(cluster_weight / 10.0, 20.0))
    spread = cluster_spread(points, weights, x, y)
    spread_factor = max(0.0, 1.0 - spread / (width * 0.2))
    confidence = float(np.clip(min(supporting_pairs / 10.0, 1.0) * spread_factor * 0.7, 0.0, 0.6))

    return VPEstimate(x=x, y=y, tilt_angle=tilt, confidence=confidence,
                      supporting_pairs=supporting_pairs)


def estimate_horizontal_vp(horizontal_lines: List[ClassifiedLine],
                           image_size: Tuple[int, int]) -> Optional[VPEstimate]:
    """
    Triangulate a horizontal vanishing point left or right of the frame

    Args:
        horizontal_lines: Lines classified as horizontal
        image_size: (width, height) of the detection image

    Returns:
        VPEstimate, or None without enough consistent intersections
    """
    if len(horizontal_lines) < 2:
        return None

    width, height = image_size
    center_y = height / 2.0
    max_distance = width * 20.0

    points, weights = pairwise_intersections(horizontal_lines, max_distance)
    if len(points) == 0:
        return None

    xs, ys = points[:, 0], points[:, 1]
    left = (xs < 0) & (xs > -max_distance)
    right = (xs > width) & (xs < width + max_distance)
    near_center = np.abs(ys - center_y) < height
    valid = (left | right) & near_center
    points, weights = points[valid], weights[valid]
    if len(points) == 0:
        return None

    x, y, cluster_weight = mean_shift_cluster(points, weights, height * 0.1)
    if cluster_weight < 1.0:
        return None

    tilt = math.degrees(math.atan((y - center_y) / abs(x)))
    if x > width:
        tilt = -tilt

    supporting_pairs = int(min(cluster_weight / 10.0, 20.0))
    spread = cluster_spread(points, weights, x, y)
    spread_factor = max(0.0, 1.0 - spread / (height * 0.2))
    confidence = float(np.clip(min(supporting_pairs / 10.0, 1.0) * spread_factor * 0.6, 0.0, 0.5))

    return VPEstimate(x=x, y=y, tilt_angle=tilt, confidence=confidence,
                      supporting_pairs=supporting_pairs)


class VanishingPointValidator:
    """Reconcile a RANSAC tilt with vanishing point evidence"""

    def __init__(self,
                 vertical_agreement: float = 1.5,
                 horizontal_agreement: float = 2.0,
                 mutual_agreement: float = 1.5,
                 vertical_boost: float = 0.15,
                 horizontal_boost: float = 0.08,
                 mutual_boost: float = 0.10,
                 blend_ratio: float = 0.3,
                 blend_confidence_ratio: float = 0.8,
                 blend_penalty: float = 0.85,
                 vertical_penalty: float = 0.9,
                 horizontal_penalty: float = 0.95,
                 max_confidence: float = 0.90):
        """
        Initialize validator

        Args:
            vertical_agreement: Degrees within which the vertical VP agrees with RANSAC
            horizontal_agreement: Degrees within which the horizontal VP agrees
            mutual_agreement: Degrees within which both VPs agree with each other
            vertical_boost: Confidence gain per unit of vertical VP confidence on agreement
            horizontal_boost: Confidence gain per unit of horizontal VP confidence on agreement
            mutual_boost: Flat gain when both VPs agree
            blend_ratio: Share of the VP tilt mixed into the angle on confident disagreement
            blend_confidence_ratio: VP must exceed this share of RANSAC confidence to blend
            blend_penalty: Confidence multiplier after blending
            vertical_penalty: Confidence multiplier on weak vertical disagreement
            horizontal_penalty: Confidence multiplier on horizontal disagreement
            max_confidence: Upper clamp for the returned confidence
        """
        self.vertical_agreement = vertical_agreement
        self.horizontal_agreement = horizontal_agreement
        self.mutual_agreement = mutual_agreement
        self.vertical_boost = vertical_boost
        self.horizontal_boost = horizontal_boost
        self.mutual_boost = mutual_boost
        self.blend_ratio = blend_ratio
        self.blend_confidence_ratio = blend_confidence_ratio
        self.blend_penalty = blend_penalty
        self.vertical_penalty = vertical_penalty
        self.horizontal_penalty = horizontal_penalty
        self.max_confidence = max_confidence

    def validate(self, ransac: RansacResult,
                 vertical_lines: List[ClassifiedLine],
                 horizontal_lines: List[ClassifiedLine],
                 image_size: Tuple[int, int]) -> Tuple[float, float]:
        """
        Cross-check a RANSAC result against vanishing points

        Args:
            ransac: Vertical-group RANSAC result
            vertical_lines: Lines classified as vertical
            horizontal_lines: Lines classified as horizontal
            image_size: (width, height) of the detection image

        Returns:
            Tuple of (adjusted angle in degrees, adjusted confidence)
        """
        vertical_vp = estimate_vertical_vp(vertical_lines, image_size)
        horizontal_vp = estimate_horizontal_vp(horizontal_lines, image_size)

        angle = ransac.angle
        confidence = ransac.confidence

        if vertical_vp is not None:
            if abs(vertical_vp.tilt_angle - angle) < self.vertical_agreement:
                confidence += self.vertical_boost * vertical_vp.confidence
                logger.debug(f"Vertical VP agrees ({vertical_vp.tilt_angle:.2f} deg)")
            elif vertical_vp.confidence > self.blend_confidence_ratio * ransac.confidence:
                angle = (1.0 - self.blend_ratio) * angle + self.blend_ratio * vertical_vp.tilt_angle
                confidence *= self.blend_penalty
                logger.debug(f"Vertical VP disagrees ({vertical_vp.tilt_angle:.2f} deg), blended to {angle:.2f}")
            else:
                confidence *= self.vertical_penalty

        if horizontal_vp is not None:
            if abs(horizontal_vp.tilt_angle - angle) < self.horizontal_agreement:
                confidence += self.horizontal_boost * horizontal_vp.confidence
            else:
                confidence *= self.horizontal_penalty

        if (vertical_vp is not None and horizontal_vp is not None and
                abs(vertical_vp.tilt_angle - horizontal_vp.tilt_angle) < self.mutual_agreement):
            confidence += self.mutual_boost

        confidence = float(np.clip(confidence, 0.0, self.max_confidence))
        return angle, confidence
