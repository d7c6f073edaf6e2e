"""
Image processing modules for Levelshot

Includes the GPU/CPU pixel backend, preprocessing for line detection and
geometry correction.
"""

from .backend import PixelBackend, CpuBackend, GpuBackend, FallbackBackend, get_backend
from .preprocessing import Preprocessor, lens_coefficient, resize_to_fit

__all__ = [
    "PixelBackend",
    "CpuBackend",
    "GpuBackend",
    "FallbackBackend",
    "get_backend",
    "Preprocessor",
    "lens_coefficient",
    "resize_to_fit",
]
