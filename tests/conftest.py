"""
Shared fixtures for Levelshot tests.
"""

import math

import cv2
import numpy as np
import pytest
from PIL import Image

from levelshot.config import get_default_config, update_config_value
from levelshot.processing.backend import reset_backend


def draw_tilted_lines(width=1200, height=900, tilt_deg=8.0, count=5, thickness=3):
    """Light image with dark straight lines leaning tilt_deg from vertical.

    Lines span 10%-90% of the height and are spread across 30%-70% of the
    width, so all of them land inside the detector's central band.
    """
    image = np.full((height, width, 3), 200, dtype=np.uint8)
    top, bottom = 0.1 * height, 0.9 * height
    half_run = math.tan(math.radians(tilt_deg)) * (bottom - top) / 2.0

    for i in range(count):
        xc = width * (0.3 + 0.4 * i / max(count - 1, 1))
        p1 = (int(round(xc - half_run)), int(round(top)))
        p2 = (int(round(xc + half_run)), int(round(bottom)))
        cv2.line(image, p1, p2, (30, 30, 30), thickness, cv2.LINE_AA)
    return image


@pytest.fixture
def test_config(tmp_path):
    """Default config with staging under tmp_path and no progress bars."""
    config = get_default_config()
    update_config_value(config, 'staging.root', str(tmp_path / "staging"))
    update_config_value(config, 'batch.show_progress', False)
    update_config_value(config, 'batch.max_workers', 2)
    update_config_value(config, 'backend.prefer_gpu', False)
    update_config_value(config, 'perspective.random_seed', 7)
    return config


@pytest.fixture
def image_dir(tmp_path):
    """Folder with one tilted photo and one featureless photo."""
    folder = tmp_path / "INTERNET"
    folder.mkdir()
    Image.fromarray(draw_tilted_lines()).save(folder / "living_room.png")
    Image.fromarray(np.full((300, 400, 3), 128, dtype=np.uint8)).save(folder / "blank_wall.png")
    return folder


@pytest.fixture(autouse=True)
def fresh_backend():
    """Each test selects its own pixel backend."""
    reset_backend()
    yield
    reset_backend()
