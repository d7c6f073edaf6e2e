"""
Input/output for Levelshot: image codec, folder listing and staging
"""

from .images import (
    IMAGE_EXTENSIONS,
    load_image,
    save_image,
    read_focal_length,
    encode_base64_jpeg,
)
from .filesystem import FileManager
from .staging import StagingArea

__all__ = [
    "IMAGE_EXTENSIONS",
    "load_image",
    "save_image",
    "read_focal_length",
    "encode_base64_jpeg",
    "FileManager",
    "StagingArea",
]
