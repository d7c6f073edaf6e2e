"""
Image decoding, encoding and metadata for Levelshot
Handles raster formats through Pillow and produces base64 JPEG previews
"""

import base64
import io
import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('jpg', 'jpeg', 'png', 'bmp', 'gif', 'webp')

# EXIF tag ids
EXIF_IFD_POINTER = 0x8769
FOCAL_LENGTH_TAG = 0x920A

# Formats that keep an alpha channel when saved
ALPHA_SUFFIXES = {'.png', '.webp'}


def is_supported_image(path: Path, extensions=IMAGE_EXTENSIONS) -> bool:
    """Check a file's extension against the supported list (case-insensitive)"""
    return path.suffix.lower().lstrip('.') in {ext.lower().lstrip('.') for ext in extensions}


def load_image(image_path: Union[str, Path]) -> np.ndarray:
    """
    Decode an image to a uint8 array

    Args:
        image_path: Path to image file

    Returns:
        HxWx4 RGBA array when the source has transparency, otherwise HxWx3 RGB

    Raises:
        OSError: If the file cannot be opened or decoded
    """
    with Image.open(image_path) as img:
        has_alpha = img.mode in ('RGBA', 'LA') or (img.mode == 'P' and 'transparency' in img.info)
        converted = img.convert('RGBA' if has_alpha else 'RGB')
        return np.array(converted)


def read_focal_length(image_path: Union[str, Path]) -> Optional[float]:
    """
    Read the lens focal length from EXIF

    Args:
        image_path: Path to image file

    Returns:
        Focal length in mm, or None when absent or unreadable
    """
    try:
        with Image.open(image_path) as img:
            exif = img.getexif()
            if not exif:
                return None

            value = exif.get_ifd(EXIF_IFD_POINTER).get(FOCAL_LENGTH_TAG)
            if value is None:
                value = exif.get(FOCAL_LENGTH_TAG)
            if value is None:
                return None

            if isinstance(value, tuple):
                focal_length = value[0] / value[1] if value[1] else 0.0
            else:
                focal_length = float(value)
            return focal_length if focal_length > 0 else None
    except Exception as e:
        logger.debug(f"Could not read EXIF from {image_path}: {e}")
        return None


def save_image(image: np.ndarray, output_path: Union[str, Path], quality: int = 95) -> None:
    """
    Encode an image, choosing the format from the file extension

    Alpha is dropped for formats that cannot hold it.

    Args:
        image: uint8 RGB or RGBA array
        output_path: Destination path
        quality: JPEG/WebP quality
    """
    output_path = Path(output_path)
    pil_image = Image.fromarray(image)
    if pil_image.mode == 'RGBA' and output_path.suffix.lower() not in ALPHA_SUFFIXES:
        pil_image = pil_image.convert('RGB')

    save_kwargs = {}
    if output_path.suffix.lower() in ('.jpg', '.jpeg', '.webp'):
        save_kwargs['quality'] = quality
    pil_image.save(output_path, **save_kwargs)


def encode_base64_jpeg(image: np.ndarray, quality: int = 85) -> str:
    """
    Encode an image as a base64 JPEG string

    Args:
        image: uint8 RGB, RGBA or gray array
        quality: JPEG quality

    Returns:
        Base64 text (no data-URI prefix)
    """
    pil_image = Image.fromarray(image)
    if pil_image.mode != 'RGB':
        pil_image = pil_image.convert('RGB')

    buffer = io.BytesIO()
    pil_image.save(buffer, format='JPEG', quality=quality)
    return base64.b64encode(buffer.getvalue()).decode('utf-8')
