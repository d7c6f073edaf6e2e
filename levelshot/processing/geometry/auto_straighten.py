"""
Automatic image straightening based on detected structural lines
"""

import cv2
import numpy as np
from typing import Dict, Optional, Tuple
import logging

from ..backend import PixelBackend
from ..preprocessing import Preprocessor
from .line_classifier import LineClassifier, split_by_orientation
from .line_detector import LineDetector
from .models import PerspectiveAnalysis
from .quality_gate import QualityGate
from .ransac import RansacAngleEstimator, combine_resolutions
from .rectification import GeometryError, Rectifier
from .vanishing import VanishingPointValidator

logger = logging.getLogger(__name__)


class AutoStraightener:
    """
    Detect camera roll from vertical architecture and correct it

    Wires preprocessing, line detection, classification, RANSAC, vanishing
    point validation and the quality gate into a single analysis call.
    """

    def __init__(self,
                 preprocessor: Optional[Preprocessor] = None,
                 detector: Optional[LineDetector] = None,
                 classifier: Optional[LineClassifier] = None,
                 validator: Optional[VanishingPointValidator] = None,
                 quality_gate: Optional[QualityGate] = None,
                 rectifier: Optional[Rectifier] = None,
                 ransac_iterations: int = 500,
                 ransac_inlier_threshold: float = 2.0,
                 random_seed: Optional[int] = None,
                 multi_resolution: bool = False):
        """
        Initialize auto straightener

        Args:
            preprocessor: Image normaliser; defaults use the shared pixel backend
            detector: Line segment detector
            classifier: Line classifier
            validator: Vanishing point validator
            quality_gate: Decision gate
            rectifier: Rotation and crop stage
            ransac_iterations: RANSAC hypotheses per orientation group
            ransac_inlier_threshold: RANSAC inlier band in degrees
            random_seed: Seed for RANSAC sampling; None for non-deterministic runs
            multi_resolution: Cross-check the vertical estimate against a half-size pass
        """
        self.preprocessor = preprocessor or Preprocessor()
        self.detector = detector or LineDetector()
        self.classifier = classifier or LineClassifier()
        self.validator = validator or VanishingPointValidator()
        self.quality_gate = quality_gate or QualityGate()
        self.rectifier = rectifier or Rectifier()
        self.ransac_iterations = ransac_iterations
        self.ransac_inlier_threshold = ransac_inlier_threshold
        self.random_seed = random_seed
        self.multi_resolution = multi_resolution

    @classmethod
    def from_config(cls, config: Dict, backend: Optional[PixelBackend] = None) -> 'AutoStraightener':
        """
        Build a straightener from the 'perspective' and 'preprocessing' config sections

        Args:
            config: Configuration dictionary
            backend: Pixel backend override

        Returns:
            Configured AutoStraightener
        """
        settings = config.get('perspective', {})
        preview_max_size = config.get('batch', {}).get('preview_max_size', 800)

        return cls(
            preprocessor=Preprocessor.from_config(config, backend=backend),
            detector=LineDetector(
                center_band_ratio=settings.get('center_band_ratio', 0.5),
                min_length_ratio=settings.get('min_line_length_ratio', 0.20),
                use_lsd=settings.get('use_lsd', True),
            ),
            classifier=LineClassifier(
                vertical_tolerance=settings.get('vertical_tolerance_deg', 10.0),
                horizontal_tolerance=settings.get('horizontal_tolerance_deg', 10.0),
            ),
            quality_gate=QualityGate(
                min_inlier_count=settings.get('min_inlier_count', 3),
                confidence_threshold=settings.get('confidence_threshold', 0.5),
                max_angle_std_dev=settings.get('max_angle_stddev_deg', 2.5),
                min_rotation=settings.get('min_rotation_deg', 0.3),
                max_rotation=settings.get('max_rotation_deg', 15.0),
            ),
            rectifier=Rectifier(
                min_area_ratio=settings.get('min_crop_area_ratio', 0.70),
                preview_max_size=preview_max_size,
            ),
            ransac_iterations=settings.get('ransac_iterations', 500),
            ransac_inlier_threshold=settings.get('ransac_inlier_threshold_deg', 2.0),
            random_seed=settings.get('random_seed'),
            multi_resolution=settings.get('multi_resolution', False),
        )

    def analyze_image(self, image: np.ndarray,
                      focal_length_mm: Optional[float] = None) -> PerspectiveAnalysis:
        """
        Analyze image and decide whether and how far to rotate it

        Args:
            image: Decoded uint8 image (RGB or RGBA)
            focal_length_mm: Lens focal length from EXIF, if known

        Returns:
            PerspectiveAnalysis decision record
        """
        gray = self.preprocessor.preprocess(image, focal_length_mm)
        h, w = gray.shape[:2]

        segments = self.detector.detect_lines(gray)
        lines = self.classifier.classify(segments, (w, h))
        vertical, horizontal = split_by_orientation(lines)

        estimator = RansacAngleEstimator(
            iterations=self.ransac_iterations,
            inlier_threshold=self.ransac_inlier_threshold,
            rng=self.random_seed
        )
        vertical_result = estimator.estimate_angle(vertical)
        horizontal_result = estimator.estimate_angle(horizontal) if horizontal else None

        if self.multi_resolution:
            half_result = self._estimate_half_size(gray, estimator)
            logger.debug(f"Multi-resolution: full={vertical_result.angle:.2f}/{vertical_result.confidence:.2f} "
                         f"half={half_result.angle:.2f}/{half_result.confidence:.2f}")
            vertical_result = combine_resolutions(vertical_result, half_result)

        if horizontal_result is not None:
            logger.debug(f"Horizontal RANSAC: angle={horizontal_result.angle:.2f} "
                         f"conf={horizontal_result.confidence:.2f} "
                         f"inliers={horizontal_result.inlier_count}/{len(horizontal)}")

        if vertical:
            angle, confidence = self.validator.validate(vertical_result, vertical, horizontal, (w, h))
        else:
            angle, confidence = 0.0, 0.0

        analysis = self.quality_gate.evaluate(
            len(vertical), vertical_result, angle, confidence, (w, h),
            horizontal_estimate=horizontal_result
        )

        logger.debug(f"Analysis: {len(segments)} segments, {len(vertical)} vertical, "
                     f"{len(horizontal)} horizontal -> {analysis.decision.value} "
                     f"rotation={analysis.suggested_rotation:.2f} conf={analysis.confidence:.2f}")
        return analysis

    def _estimate_half_size(self, gray: np.ndarray,
                            estimator: RansacAngleEstimator):
        """Vertical-group RANSAC on a half-size copy of the preprocessed image"""
        h, w = gray.shape[:2]
        half = cv2.resize(gray, (max(w // 2, 1), max(h // 2, 1)), interpolation=cv2.INTER_AREA)
        segments = self.detector.detect_lines(half)
        vertical, _ = split_by_orientation(self.classifier.classify(segments, (half.shape[1], half.shape[0])))
        return estimator.estimate_angle(vertical)

    def apply_straightening(self, image: np.ndarray,
                            analysis: PerspectiveAnalysis) -> Tuple[np.ndarray, PerspectiveAnalysis]:
        """
        Apply the rotation an analysis calls for

        A transform that cannot be inverted downgrades the analysis to no
        correction and returns the original image.

        Args:
            image: Full-resolution uint8 image
            analysis: Result of analyze_image

        Returns:
            Tuple of (corrected or original image, effective analysis)
        """
        try:
            return self.rectifier.rectify(image, analysis), analysis
        except GeometryError as e:
            logger.warning(f"Correction abandoned: {e}")
            return image, PerspectiveAnalysis(reason=str(e),
                                              horizontal_estimate=analysis.horizontal_estimate)
