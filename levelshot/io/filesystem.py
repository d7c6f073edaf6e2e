"""
File system operations for Levelshot
Handles finding images in a property folder and promoting staged corrections
"""

import shutil
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import logging

from .images import IMAGE_EXTENSIONS, is_supported_image

logger = logging.getLogger(__name__)


class FileManager:
    """Manages file operations for the straightening workflow"""

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize FileManager with configuration

        Args:
            config: Configuration dictionary; uses the 'batch.image_extensions' list
        """
        config = config or {}
        self.image_extensions = config.get('batch', {}).get('image_extensions', list(IMAGE_EXTENSIONS))

    def find_images(self, input_path: Union[str, Path]) -> List[Path]:
        """
        Find supported images directly inside a directory

        Args:
            input_path: Directory to list

        Returns:
            Image paths sorted by filename

        Raises:
            FileNotFoundError: If the directory does not exist
        """
        input_path = Path(input_path)
        if not input_path.is_dir():
            raise FileNotFoundError(f"Image directory not found: {input_path}")

        images = [
            path for path in input_path.iterdir()
            if path.is_file() and is_supported_image(path, self.image_extensions)
        ]
        images = sorted(images, key=lambda p: p.name)
        logger.info(f"Found {len(images)} images in {input_path}")
        return images

    def promote(self, staged: Path, original: Path) -> Tuple[bool, Optional[str]]:
        """
        Copy a staged file over its original, then delete the staged copy

        Args:
            staged: Corrected file in the staging area
            original: File to overwrite

        Returns:
            Tuple of (success, error_message)
        """
        staged = Path(staged)
        original = Path(original)

        if not staged.exists():
            error_msg = f"Temp file not found: {staged}"
            logger.error(error_msg)
            return False, error_msg

        try:
            shutil.copy2(str(staged), str(original))
            logger.debug(f"Copied {staged} to {original}")
        except Exception as e:
            error_msg = f"Failed to save {original}: {e}"
            logger.error(error_msg)
            return False, error_msg

        try:
            staged.unlink()
        except OSError as e:
            logger.warning(f"Could not remove staged file {staged}: {e}")

        return True, None
