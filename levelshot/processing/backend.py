"""
Pixel-processing backends for image preprocessing

Provides a CUDA-accelerated backend (via OpenCV's cv2.cuda module) and a CPU
backend implementing the same filter contract. The backend is selected once
per process; GPU failures fall back to the CPU for the failing call only.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Opaque black for pixels sampled outside the source during undistortion
UNDISTORT_BORDER_VALUE = (0, 0, 0, 255)


def build_undistort_maps(width: int, height: int, k1: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build backward sampling maps for radial (barrel) undistortion.

    Each destination pixel is normalised by the half-diagonal, scaled by
    (1 + k1 * r^2) and mapped back into the source.

    Args:
        width: Image width in pixels
        height: Image height in pixels
        k1: Radial distortion coefficient (negative for barrel)

    Returns:
        Tuple of (map_x, map_y) float32 arrays suitable for cv2.remap
    """
    cx = width / 2.0
    cy = height / 2.0
    max_r = np.sqrt(cx * cx + cy * cy)

    xs = (np.arange(width, dtype=np.float64) - cx) / max_r
    ys = (np.arange(height, dtype=np.float64) - cy) / max_r
    dx, dy = np.meshgrid(xs, ys)

    factor = 1.0 + k1 * (dx * dx + dy * dy)
    map_x = (cx + dx * max_r * factor).astype(np.float32)
    map_y = (cy + dy * max_r * factor).astype(np.float32)
    return map_x, map_y


class PixelBackend(ABC):
    """Filter primitives operating on uint8 pixel buffers"""

    name = "base"

    @abstractmethod
    def bilateral_filter(self, gray: np.ndarray, diameter: int,
                         sigma_color: float, sigma_space: float) -> np.ndarray:
        """Edge-preserving smoothing of a single-channel image"""

    @abstractmethod
    def clahe(self, gray: np.ndarray, clip_limit: float, tile_grid: int) -> np.ndarray:
        """Tile-based adaptive histogram equalisation"""

    @abstractmethod
    def undistort(self, image: np.ndarray, k1: float) -> np.ndarray:
        """Radial lens undistortion with bilinear sampling"""


class CpuBackend(PixelBackend):
    """
    OpenCV CPU implementation.

    OpenCV parallelises these filters internally, so no locking is needed
    when several images are processed at once.
    """

    name = "cpu"

    def bilateral_filter(self, gray: np.ndarray, diameter: int,
                         sigma_color: float, sigma_space: float) -> np.ndarray:
        return cv2.bilateralFilter(gray, diameter, sigma_color, sigma_space)

    def clahe(self, gray: np.ndarray, clip_limit: float, tile_grid: int) -> np.ndarray:
        clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=(tile_grid, tile_grid))
        return clahe.apply(gray)

    def undistort(self, image: np.ndarray, k1: float) -> np.ndarray:
        h, w = image.shape[:2]
        map_x, map_y = build_undistort_maps(w, h, k1)
        return cv2.remap(
            image, map_x, map_y,
            interpolation=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=UNDISTORT_BORDER_VALUE
        )


class GpuBackend(PixelBackend):
    """
    CUDA implementation using cv2.cuda.

    The device is a single shared resource, so every call holds a lock for
    the duration of upload, filter and download.
    """

    name = "gpu"

    def __init__(self, device_id: int = 0):
        """
        Initialize the CUDA backend

        Args:
            device_id: CUDA device index to bind
        """
        self.device_id = device_id
        self._lock = threading.Lock()
        cv2.cuda.setDevice(device_id)

    @staticmethod
    def _upload(array: np.ndarray):
        gpu_mat = cv2.cuda_GpuMat()
        gpu_mat.upload(np.ascontiguousarray(array))
        return gpu_mat

    def bilateral_filter(self, gray: np.ndarray, diameter: int,
                         sigma_color: float, sigma_space: float) -> np.ndarray:
        with self._lock:
            gpu_result = cv2.cuda.bilateralFilter(
                self._upload(gray), diameter, sigma_color, sigma_space
            )
            return gpu_result.download()

    def clahe(self, gray: np.ndarray, clip_limit: float, tile_grid: int) -> np.ndarray:
        with self._lock:
            clahe = cv2.cuda.createCLAHE(clipLimit=clip_limit,
                                         tileGridSize=(tile_grid, tile_grid))
            gpu_result = clahe.apply(self._upload(gray), cv2.cuda_Stream.Null())
            return gpu_result.download()

    def undistort(self, image: np.ndarray, k1: float) -> np.ndarray:
        h, w = image.shape[:2]
        map_x, map_y = build_undistort_maps(w, h, k1)
        with self._lock:
            gpu_result = cv2.cuda.remap(
                self._upload(image), self._upload(map_x), self._upload(map_y),
                interpolation=cv2.INTER_LINEAR,
                borderMode=cv2.BORDER_CONSTANT,
                borderValue=UNDISTORT_BORDER_VALUE
            )
            return gpu_result.download()


class FallbackBackend(PixelBackend):
    """
    Strategy wrapper that tries a primary backend and retries on a fallback.

    A failure only affects the call that raised it; the next call tries the
    primary again.
    """

    def __init__(self, primary: PixelBackend, fallback: PixelBackend):
        """
        Initialize fallback strategy

        Args:
            primary: Preferred backend (normally the GPU)
            fallback: Backend used when the primary raises
        """
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"
        self.fallback_counts: Dict[str, int] = {}
        self._counts_lock = threading.Lock()

    def _call(self, operation: str, *args):
        try:
            return getattr(self.primary, operation)(*args)
        except Exception as e:
            logger.warning(f"{self.primary.name} {operation} failed ({e}), using {self.fallback.name}")
            with self._counts_lock:
                self.fallback_counts[operation] = self.fallback_counts.get(operation, 0) + 1
            return getattr(self.fallback, operation)(*args)

    def bilateral_filter(self, gray: np.ndarray, diameter: int,
                         sigma_color: float, sigma_space: float) -> np.ndarray:
        return self._call('bilateral_filter', gray, diameter, sigma_color, sigma_space)

    def clahe(self, gray: np.ndarray, clip_limit: float, tile_grid: int) -> np.ndarray:
        return self._call('clahe', gray, clip_limit, tile_grid)

    def undistort(self, image: np.ndarray, k1: float) -> np.ndarray:
        return self._call('undistort', image, k1)


def cuda_available() -> bool:
    """Check whether OpenCV was built with CUDA and a device is present"""
    try:
        return cv2.cuda.getCudaEnabledDeviceCount() > 0
    except Exception:
        return False


def create_backend(prefer_gpu: bool = True, device_id: int = 0) -> PixelBackend:
    """
    Build a backend according to preference and hardware

    Args:
        prefer_gpu: Try the CUDA backend first
        device_id: CUDA device index

    Returns:
        A FallbackBackend wrapping the GPU when usable, otherwise the CPU backend
    """
    if prefer_gpu and cuda_available():
        try:
            backend = FallbackBackend(GpuBackend(device_id), CpuBackend())
            logger.info(f"Using CUDA pixel backend on device {device_id}")
            return backend
        except Exception as e:
            logger.warning(f"CUDA backend initialisation failed: {e}")

    logger.info("Using CPU pixel backend")
    return CpuBackend()


_backend: Optional[PixelBackend] = None
_backend_lock = threading.Lock()


def get_backend(config: Optional[Dict] = None) -> PixelBackend:
    """
    Get the process-wide pixel backend, creating it on first use

    Args:
        config: Configuration dictionary; only consulted on first call

    Returns:
        The shared PixelBackend
    """
    global _backend
    with _backend_lock:
        if _backend is None:
            backend_config = (config or {}).get('backend', {})
            _backend = create_backend(
                prefer_gpu=backend_config.get('prefer_gpu', True),
                device_id=backend_config.get('gpu_device', 0)
            )
        return _backend


def reset_backend() -> None:
    """Forget the process-wide backend so the next call re-selects"""
    global _backend
    with _backend_lock:
        _backend = None
