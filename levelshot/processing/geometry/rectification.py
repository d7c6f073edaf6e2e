"""
Rotation and auto-crop of tilted images
"""

import numpy as np
import cv2
from typing import Optional, Tuple
import logging

from ..preprocessing import resize_to_fit
from .models import PerspectiveAnalysis

logger = logging.getLogger(__name__)


class GeometryError(ValueError):
    """Raised when a transform cannot be inverted"""


def rotation_matrix(angle_radians: float, cx: float, cy: float) -> np.ndarray:
    """
    3x3 homogeneous rotation about (cx, cy)

    Args:
        angle_radians: Rotation angle
        cx: Centre x
        cy: Centre y

    Returns:
        T(cx, cy) * R * T(-cx, -cy) as a float64 array
    """
    cos_a = np.cos(angle_radians)
    sin_a = np.sin(angle_radians)
    return np.array([
        [cos_a, -sin_a, cx * (1.0 - cos_a) + cy * sin_a],
        [sin_a, cos_a, cy * (1.0 - cos_a) - cx * sin_a],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


def invert_transform(matrix: np.ndarray) -> np.ndarray:
    """Invert a 3x3 transform, raising GeometryError when singular"""
    try:
        inverse = np.linalg.inv(matrix)
    except np.linalg.LinAlgError as e:
        raise GeometryError(f"Failed to invert transform: {e}")
    if not np.all(np.isfinite(inverse)):
        raise GeometryError("Transform inverse is not finite")
    return inverse


def to_rgba(image: np.ndarray) -> np.ndarray:
    """Convert gray, RGB or RGBA uint8 to an owned RGBA buffer"""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_RGB2RGBA)
    return image.copy()


class Rectifier:
    """Apply an accepted rotation and trim the empty corners it leaves"""

    def __init__(self,
                 alpha_threshold: int = 200,
                 black_threshold: int = 5,
                 crop_margin: int = 2,
                 min_area_ratio: float = 0.70,
                 preview_max_size: int = 800):
        """
        Initialize rectifier

        Args:
            alpha_threshold: Pixels must be more opaque than this to count as content
            black_threshold: Some channel must exceed this to count as content
            crop_margin: Pixels added around the content bounding box
            min_area_ratio: Crops smaller than this share of the original area are abandoned
            preview_max_size: Longest edge of generated previews
        """
        self.alpha_threshold = alpha_threshold
        self.black_threshold = black_threshold
        self.crop_margin = crop_margin
        self.min_area_ratio = min_area_ratio
        self.preview_max_size = preview_max_size

    def rectify(self, image: np.ndarray, analysis: PerspectiveAnalysis) -> np.ndarray:
        """
        Produce the corrected image for an analysis

        Args:
            image: Full-resolution uint8 image (RGB or RGBA)
            analysis: Decision record for the image

        Returns:
            Rotated and cropped RGBA image, or the input unchanged when no
            correction is needed

        Raises:
            GeometryError: If the rotation cannot be inverted
        """
        if not analysis.needs_correction:
            return image

        rotated = self.rotate(image, analysis.suggested_rotation)
        h, w = image.shape[:2]
        cropped, bounds = self.auto_crop(rotated, (w, h))
        logger.debug(f"Rotated {analysis.suggested_rotation:.2f} deg, crop bounds {bounds}")
        return cropped

    def rotate(self, image: np.ndarray, rotation_degrees: float) -> np.ndarray:
        """
        Rotate about the image centre by backward-mapping every output pixel

        The exposed corners are fully transparent.
        """
        rgba = to_rgba(image)
        h, w = rgba.shape[:2]

        matrix = rotation_matrix(np.radians(-rotation_degrees), w / 2.0, h / 2.0)
        inverse = invert_transform(matrix)

        return cv2.warpAffine(
            rgba,
            inverse[:2],
            (w, h),
            flags=cv2.INTER_LINEAR | cv2.WARP_INVERSE_MAP,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(0, 0, 0, 0)
        )

    def auto_crop(self, rgba: np.ndarray,
                  original_size: Tuple[int, int]) -> Tuple[np.ndarray, Optional[Tuple[int, int, int, int]]]:
        """
        Crop to the bounding box of opaque, non-black content

        Args:
            rgba: Warped RGBA image
            original_size: (width, height) of the image before warping

        Returns:
            Tuple of (image, (x, y, w, h) crop bounds or None when not cropped)
        """
        h, w = rgba.shape[:2]
        content = ((rgba[:, :, 3] > self.alpha_threshold) &
                   (rgba[:, :, :3].max(axis=2) > self.black_threshold))

        rows = np.flatnonzero(content.any(axis=1))
        cols = np.flatnonzero(content.any(axis=0))
        if len(rows) == 0:
            return rgba, None

        min_x, max_x = int(cols[0]), int(cols[-1])
        min_y, max_y = int(rows[0]), int(rows[-1])
        if min_x >= max_x or min_y >= max_y:
            return rgba, None

        min_x = max(0, min_x - self.crop_margin)
        min_y = max(0, min_y - self.crop_margin)
        max_x = min(w - 1, max_x + self.crop_margin)
        max_y = min(h - 1, max_y + self.crop_margin)

        new_w = max_x - min_x + 1
        new_h = max_y - min_y + 1
        orig_w, orig_h = original_size

        if new_w * new_h < orig_w * orig_h * self.min_area_ratio:
            logger.warning(f"Crop would keep only {new_w * new_h * 100 // (orig_w * orig_h)}% "
                           f"of the image, skipping crop")
            return rgba, None

        return rgba[min_y:max_y + 1, min_x:max_x + 1].copy(), (min_x, min_y, new_w, new_h)

    def preview(self, image: np.ndarray) -> np.ndarray:
        """Scaled copy for display; the input is not modified"""
        return resize_to_fit(image, self.preview_max_size)

