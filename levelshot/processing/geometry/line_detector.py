"""
Line segment detection for perspective analysis
"""

import numpy as np
import cv2
from typing import List, Optional
import logging

from .models import LineSegment

logger = logging.getLogger(__name__)


class LineDetector:
    """Detect long straight segments in the central band of an image"""

    def __init__(self,
                 center_band_ratio: float = 0.5,
                 min_length_ratio: float = 0.20,
                 use_lsd: bool = True,
                 edge_threshold_low: int = 50,
                 edge_threshold_high: int = 150,
                 hough_threshold: int = 50,
                 max_line_gap: int = 10):
        """
        Initialize line detector

        Args:
            center_band_ratio: Fraction of image width (centred) in which segments are kept
            min_length_ratio: Minimum segment length as a fraction of image height
            use_lsd: Use OpenCV's Line Segment Detector; Hough is used otherwise
            edge_threshold_low: Lower Canny threshold for the Hough path
            edge_threshold_high: Upper Canny threshold for the Hough path
            hough_threshold: Minimum votes for probabilistic Hough lines
            max_line_gap: Maximum gap bridged by the Hough path
        """
        self.center_band_ratio = center_band_ratio
        self.min_length_ratio = min_length_ratio
        self.use_lsd = use_lsd
        self.edge_threshold_low = edge_threshold_low
        self.edge_threshold_high = edge_threshold_high
        self.hough_threshold = hough_threshold
        self.max_line_gap = max_line_gap

    def detect_lines(self, gray: np.ndarray) -> List[LineSegment]:
        """
        Detect line segments and keep the long, central ones

        Args:
            gray: Preprocessed uint8 grayscale image

        Returns:
            List of LineSegment in the coordinate space of gray
        """
        h, w = gray.shape[:2]
        min_length = h * self.min_length_ratio
        margin = w * (1.0 - self.center_band_ratio) / 2.0
        left_bound, right_bound = margin, w - margin

        raw = self._detect_raw(gray, min_length)

        segments = []
        for x1, y1, x2, y2 in raw:
            segment = LineSegment(float(x1), float(y1), float(x2), float(y2))
            mid_x, _ = segment.midpoint
            if mid_x < left_bound or mid_x > right_bound:
                continue
            if segment.length < min_length:
                continue
            segments.append(segment)

        logger.debug(f"Detected {len(raw)} raw segments, kept {len(segments)} "
                     f"(band {left_bound:.0f}-{right_bound:.0f}px, min length {min_length:.0f}px)")
        return segments

    def _detect_raw(self, gray: np.ndarray, min_length: float) -> np.ndarray:
        lsd = self._get_lsd() if self.use_lsd else None
        if lsd is not None:
            lines = lsd.detect(gray)[0]
        else:
            edges = cv2.Canny(gray, self.edge_threshold_low, self.edge_threshold_high)
            lines = cv2.HoughLinesP(
                edges,
                1,
                np.pi / 180,
                threshold=self.hough_threshold,
                minLineLength=int(min_length),
                maxLineGap=self.max_line_gap
            )

        if lines is None or len(lines) == 0:
            return np.empty((0, 4), dtype=np.float32)
        return lines.reshape(-1, 4)

    def _get_lsd(self) -> Optional[object]:
        # A fresh detector per call; instances are not shared between worker threads
        try:
            return cv2.createLineSegmentDetector(cv2.LSD_REFINE_STD)
        except (cv2.error, AttributeError) as e:
            logger.warning(f"LSD unavailable in this OpenCV build, using Hough lines: {e}")
            self.use_lsd = False
            return None
