"""
Image preprocessing for line detection

Normalises a decoded photo into a fixed-scale, denoised, contrast-equalised
grayscale buffer so that downstream pixel thresholds mean the same thing for
every input.
"""

import logging
from typing import Dict, Optional

import cv2
import numpy as np

from .backend import PixelBackend, get_backend

logger = logging.getLogger(__name__)

# Barrel distortion coefficient by focal length band (35mm-equivalent mm)
LENS_K1_BANDS = (
    (14.0, -0.15),
    (18.0, -0.10),
    (24.0, -0.05),
)

# Coefficients smaller than this leave the image untouched
MIN_K1 = 1e-4


def lens_coefficient(focal_length_mm: Optional[float]) -> float:
    """
    Choose a radial distortion coefficient for a focal length

    Args:
        focal_length_mm: Lens focal length, or None when unknown

    Returns:
        k1 coefficient (0.0 when no correction applies)
    """
    if focal_length_mm is None or focal_length_mm <= 0:
        return 0.0
    for max_focal, k1 in LENS_K1_BANDS:
        if focal_length_mm <= max_focal:
            return k1
    return 0.0


def resize_to_fit(image: np.ndarray, max_size: int) -> np.ndarray:
    """
    Downscale so the longest edge equals max_size, preserving aspect ratio

    Images already within max_size are returned unchanged.
    """
    h, w = image.shape[:2]
    longest = max(w, h)
    if longest <= max_size:
        return image

    scale = max_size / float(longest)
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert an RGB, RGBA or already-gray uint8 image to single channel"""
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


class Preprocessor:
    """
    Produces the normalised grayscale buffer consumed by the line detector
    """

    def __init__(self,
                 target_size: int = 800,
                 bilateral_diameter: int = 11,
                 bilateral_sigma_color: float = 25.0,
                 bilateral_sigma_space: float = 5.0,
                 clahe_clip_limit: float = 2.0,
                 clahe_tile_grid: int = 8,
                 lens_correction: bool = True,
                 backend: Optional[PixelBackend] = None):
        """
        Initialize preprocessor

        Args:
            target_size: Longest edge after downscaling
            bilateral_diameter: Pixel neighbourhood diameter for the bilateral filter
            bilateral_sigma_color: Bilateral range sigma
            bilateral_sigma_space: Bilateral spatial sigma
            clahe_clip_limit: CLAHE contrast clip limit
            clahe_tile_grid: CLAHE tiles per side
            lens_correction: Apply focal-length based undistortion
            backend: Pixel backend; defaults to the process-wide backend
        """
        self.target_size = target_size
        self.bilateral_diameter = bilateral_diameter
        self.bilateral_sigma_color = bilateral_sigma_color
        self.bilateral_sigma_space = bilateral_sigma_space
        self.clahe_clip_limit = clahe_clip_limit
        self.clahe_tile_grid = clahe_tile_grid
        self.lens_correction = lens_correction
        self._backend = backend

    @classmethod
    def from_config(cls, config: Dict, backend: Optional[PixelBackend] = None) -> 'Preprocessor':
        """Build a preprocessor from the 'preprocessing' config section"""
        settings = config.get('preprocessing', {})
        bilateral = settings.get('bilateral', {})
        clahe = settings.get('clahe', {})
        return cls(
            target_size=settings.get('target_size', 800),
            bilateral_diameter=bilateral.get('diameter', 11),
            bilateral_sigma_color=bilateral.get('sigma_color', 25.0),
            bilateral_sigma_space=bilateral.get('sigma_space', 5.0),
            clahe_clip_limit=clahe.get('clip_limit', 2.0),
            clahe_tile_grid=clahe.get('tile_grid', 8),
            lens_correction=settings.get('lens_correction', True),
            backend=backend if backend is not None else get_backend(config),
        )

    @property
    def backend(self) -> PixelBackend:
        if self._backend is None:
            self._backend = get_backend()
        return self._backend

    def preprocess(self, image: np.ndarray,
                   focal_length_mm: Optional[float] = None) -> np.ndarray:
        """
        Run the full preprocessing chain

        Args:
            image: Decoded uint8 image (RGB, RGBA or gray)
            focal_length_mm: Lens focal length from EXIF, if known

        Returns:
            uint8 grayscale buffer with longest edge <= target_size
        """
        if self.lens_correction:
            image = self.correct_lens(image, focal_length_mm)

        image = resize_to_fit(image, self.target_size)
        gray = to_grayscale(image)

        try:
            gray = self.backend.bilateral_filter(
                gray, self.bilateral_diameter,
                self.bilateral_sigma_color, self.bilateral_sigma_space
            )
        except Exception as e:
            logger.warning(f"Bilateral filter failed, continuing unsmoothed: {e}")

        try:
            gray = self.backend.clahe(gray, self.clahe_clip_limit, self.clahe_tile_grid)
        except Exception as e:
            logger.warning(f"CLAHE failed, continuing without equalisation: {e}")

        return gray

    def correct_lens(self, image: np.ndarray,
                     focal_length_mm: Optional[float]) -> np.ndarray:
        """
        Undo barrel distortion for wide lenses

        Returns the input unchanged when the focal length is unknown, the
        lens is not wide enough, or the warp fails.
        """
        k1 = lens_coefficient(focal_length_mm)
        if abs(k1) < MIN_K1:
            return image

        try:
            corrected = self.backend.undistort(image, k1)
            logger.debug(f"Applied lens correction k1={k1} for {focal_length_mm}mm")
            return corrected
        except Exception as e:
            logger.warning(f"Lens correction failed, skipping: {e}")
            return image
