"""
Tests for preprocessing and the pixel backends.
"""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from levelshot.processing.backend import (
    CpuBackend, FallbackBackend, PixelBackend, build_undistort_maps,
    create_backend, get_backend
)
from levelshot.processing.preprocessing import (
    Preprocessor, lens_coefficient, resize_to_fit, to_grayscale
)


class FailingBackend(PixelBackend):
    """Backend whose every operation raises, like a GPU that went away."""

    name = "failing"

    def bilateral_filter(self, gray, diameter, sigma_color, sigma_space):
        raise RuntimeError("device lost")

    def clahe(self, gray, clip_limit, tile_grid):
        raise RuntimeError("device lost")

    def undistort(self, image, k1):
        raise RuntimeError("device lost")


class TestResize:
    """Test aspect-preserving downscaling."""

    def test_downscale_longest_edge(self):
        """Landscape images shrink to 800px wide."""
        image = np.zeros((1200, 1600, 3), dtype=np.uint8)
        assert resize_to_fit(image, 800).shape == (600, 800, 3)

    def test_portrait(self):
        """Portrait images shrink to 800px tall."""
        image = np.zeros((1600, 1200), dtype=np.uint8)
        assert resize_to_fit(image, 800).shape == (800, 600)

    def test_small_image_unchanged(self):
        """Images already within the limit are returned as-is."""
        image = np.zeros((300, 400, 3), dtype=np.uint8)
        assert resize_to_fit(image, 800) is image


class TestLensCoefficient:
    """Test focal length bands."""

    @pytest.mark.parametrize("focal_length,expected", [
        (None, 0.0),
        (0.0, 0.0),
        (12.0, -0.15),
        (14.0, -0.15),
        (16.0, -0.10),
        (18.0, -0.10),
        (20.0, -0.05),
        (24.0, -0.05),
        (35.0, 0.0),
    ])
    def test_bands(self, focal_length, expected):
        """Focal length maps onto the k1 lens bands."""
        assert lens_coefficient(focal_length) == expected

    def test_zero_k1_maps_are_identity(self):
        """Zero distortion gives identity remap grids."""
        map_x, map_y = build_undistort_maps(40, 30, 0.0)
        assert map_x.shape == (30, 40)
        assert np.allclose(map_x[5], np.arange(40), atol=1e-3)
        assert np.allclose(map_y[:, 7], np.arange(30), atol=1e-3)


class TestPreprocessor:
    """Test the full preprocessing chain."""

    def test_output_is_scaled_gray(self):
        """Output is single-channel uint8 at the target size."""
        image = np.random.default_rng(0).integers(0, 255, (1200, 1600, 3), dtype=np.uint8)
        gray = Preprocessor(backend=CpuBackend()).preprocess(image)
        assert gray.shape == (600, 800)
        assert gray.dtype == np.uint8

    def test_rgba_input(self):
        """Alpha is dropped before grayscale conversion."""
        image = np.full((100, 120, 4), 90, dtype=np.uint8)
        assert to_grayscale(image).shape == (100, 120)
        assert Preprocessor(backend=CpuBackend()).preprocess(image).shape == (100, 120)

    def test_lens_correction_keeps_size(self):
        """Barrel correction preserves the image size."""
        image = np.full((300, 400, 3), 120, dtype=np.uint8)
        corrected = Preprocessor(backend=CpuBackend()).correct_lens(image, 16.0)
        assert corrected.shape == image.shape

    def test_lens_correction_skipped_for_long_lens(self):
        """A 50mm lens needs no undistortion."""
        image = np.full((30, 40, 3), 120, dtype=np.uint8)
        assert Preprocessor(backend=CpuBackend()).correct_lens(image, 50.0) is image

    def test_filter_failures_are_skipped(self):
        """A failing stage is logged and skipped, not raised."""
        image = np.full((100, 100, 3), 60, dtype=np.uint8)
        preprocessor = Preprocessor(backend=FailingBackend())
        gray = preprocessor.preprocess(image, focal_length_mm=16.0)
        assert gray.shape == (100, 100)
        assert np.all(gray == 60)


class TestBackends:
    """Test backend selection and per-call fallback."""

    def test_fallback_on_primary_failure(self):
        """Each failing GPU call falls back to CPU and is counted."""
        backend = FallbackBackend(FailingBackend(), CpuBackend())
        gray = np.full((64, 64), 100, dtype=np.uint8)

        result = backend.clahe(gray, 2.0, 8)
        backend.clahe(gray, 2.0, 8)

        assert result.shape == gray.shape
        assert backend.fallback_counts == {'clahe': 2}
        assert backend.name == "failing+cpu"

    def test_fallback_counts_survive_threads(self):
        """Concurrent fallbacks from worker threads are all counted."""
        backend = FallbackBackend(FailingBackend(), CpuBackend())
        gray = np.full((16, 16), 100, dtype=np.uint8)

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(lambda _: backend.clahe(gray, 2.0, 4), range(200)))

        assert backend.fallback_counts == {'clahe': 200}

    def test_cpu_when_gpu_not_preferred(self):
        """prefer_gpu=False picks the CPU backend."""
        assert isinstance(create_backend(prefer_gpu=False), CpuBackend)

    def test_shared_backend_selected_once(self):
        """The shared backend is chosen once and reused."""
        config = {'backend': {'prefer_gpu': False}}
        first = get_backend(config)
        assert get_backend() is first
        assert isinstance(first, CpuBackend)
