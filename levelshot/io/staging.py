"""
Per-property staging area for corrected images

Corrected copies live under <root>/<property_id>/ until they are promoted
over the originals or discarded.
"""

import json
import shutil
from pathlib import Path
from typing import Dict, List, Union
import logging

logger = logging.getLogger(__name__)

STAGED_PREFIX = "corrected_"
MANIFEST_NAME = "manifest.json"


class StagingArea:
    """Scoped temporary storage keyed by property id"""

    def __init__(self, root: Union[str, Path]):
        """
        Initialize staging area

        Args:
            root: Directory holding one subdirectory per property
        """
        self.root = Path(root).expanduser()

    def path_for(self, property_id: Union[int, str]) -> Path:
        """Directory for a property (not created)"""
        return self.root / str(property_id)

    def staged_path(self, property_id: Union[int, str], original: Path) -> Path:
        """Where the corrected copy of an original is staged"""
        return self.path_for(property_id) / f"{STAGED_PREFIX}{Path(original).name}"

    def prepare(self, property_id: Union[int, str]) -> Path:
        """
        Create a fresh, empty staging directory for a property

        Any files left from a previous batch are removed first.

        Returns:
            Path of the staging directory
        """
        property_dir = self.path_for(property_id)
        if property_dir.exists():
            shutil.rmtree(property_dir)
            logger.debug(f"Cleared stale staging directory {property_dir}")
        property_dir.mkdir(parents=True, exist_ok=True)
        return property_dir

    def clear(self, property_id: Union[int, str]) -> None:
        """Remove a property's staging directory; no-op when absent"""
        property_dir = self.path_for(property_id)
        if property_dir.exists():
            shutil.rmtree(property_dir)
            logger.info(f"Cleaned up staging for property {property_id}")

    def clear_all(self) -> None:
        """Remove the whole staging tree; no-op when absent"""
        if self.root.exists():
            shutil.rmtree(self.root)
            logger.info(f"Cleaned up staging root {self.root}")

    def write_manifest(self, property_id: Union[int, str], entries: List[Dict]) -> Path:
        """
        Record the batch results next to the staged files

        Args:
            property_id: Property the batch belongs to
            entries: JSON-serialisable result records

        Returns:
            Path of the manifest file
        """
        manifest_path = self.path_for(property_id) / MANIFEST_NAME
        manifest_path.parent.mkdir(parents=True, exist_ok=True)
        with open(manifest_path, 'w') as f:
            json.dump(entries, f, indent=2)
        return manifest_path

    def read_manifest(self, property_id: Union[int, str]) -> List[Dict]:
        """
        Load the batch results recorded for a property

        Raises:
            FileNotFoundError: If no batch is staged for the property
        """
        manifest_path = self.path_for(property_id) / MANIFEST_NAME
        if not manifest_path.exists():
            raise FileNotFoundError(f"No staged batch for property {property_id}")
        with open(manifest_path, 'r') as f:
            return json.load(f)
