"""
Batch straightening of a property's photos

Analyzes every image in a folder, stages corrected copies per property and
promotes accepted corrections over the originals.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional, Union

from tqdm import tqdm

from levelshot.config import get_config_value, get_default_config
from levelshot.core.models import AcceptedCorrection, CorrectionResult, PerspectiveCommandResult
from levelshot.io.filesystem import FileManager
from levelshot.io.images import encode_base64_jpeg, load_image, read_focal_length, save_image
from levelshot.io.staging import StagingArea
from levelshot.processing.geometry import AutoStraightener
from levelshot.processing.preprocessing import resize_to_fit
from levelshot.utils.logging import BatchStats, StructuredLogger

logger = logging.getLogger(__name__)


class PerspectiveCorrector:
    """
    Runs the straightening pipeline over folders of images.

    Images are independent, so they are processed on a small thread pool;
    the only shared state is the pixel backend and the staging directory.
    """

    def __init__(self,
                 config: Optional[Dict] = None,
                 staging: Optional[StagingArea] = None,
                 straightener: Optional[AutoStraightener] = None,
                 file_manager: Optional[FileManager] = None):
        """
        Initialize corrector

        Args:
            config: Configuration dictionary; defaults when None
            staging: Staging area; built from 'staging.root' when None
            straightener: Analysis pipeline; built from config when None
            file_manager: File operations helper
        """
        self.config = config or get_default_config()
        self.staging = staging or StagingArea(
            get_config_value(self.config, 'staging.root', '~/.levelshot/perspective_temp')
        )
        self.straightener = straightener or AutoStraightener.from_config(self.config)
        self.file_manager = file_manager or FileManager(self.config)

        self.max_workers = get_config_value(self.config, 'batch.max_workers', 4)
        self.preview_max_size = get_config_value(self.config, 'batch.preview_max_size', 800)
        self.preview_quality = get_config_value(self.config, 'batch.preview_quality', 85)
        self.output_quality = get_config_value(self.config, 'batch.output_quality', 95)
        self.include_previews = get_config_value(self.config, 'batch.include_previews', True)
        self.show_progress = get_config_value(self.config, 'batch.show_progress', True)

        self.slog = StructuredLogger(__name__)
        self.last_stats: Optional[BatchStats] = None

    def analyze_and_correct(self, images_dir: Union[str, Path],
                            property_id: Union[int, str]) -> List[CorrectionResult]:
        """
        Analyze all images in a folder and stage corrected copies

        Args:
            images_dir: Folder holding the property's images
            property_id: Key for the staging area

        Returns:
            One CorrectionResult per image, in filename order

        Raises:
            FileNotFoundError: If images_dir does not exist
        """
        images = self.file_manager.find_images(images_dir)
        self.staging.prepare(property_id)

        stats = BatchStats()
        stats.set_total(len(images))
        self.last_stats = stats
        slog = self.slog.bind(property_id=property_id)

        logger.info(f"Processing {len(images)} images from {images_dir} "
                    f"({self.max_workers} threads)")

        results: Dict[int, CorrectionResult] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self.process_image, path, property_id): idx
                for idx, path in enumerate(images)
            }

            for future in tqdm(as_completed(futures), total=len(futures),
                               desc="Straightening", disable=not self.show_progress):
                idx = futures[future]
                path = images[idx]
                try:
                    result, elapsed = future.result()
                except Exception as e:
                    slog.error("Failed to process image", filename=path.name, error=str(e))
                    result, elapsed = self._failed_result(path, str(e)), None

                if result.error:
                    stats.add_error(str(path), result.error)
                else:
                    stats.add_result(result.decision, elapsed)
                    slog.info("Processed image", filename=path.name,
                              decision=result.decision,
                              rotation=round(result.rotation_applied, 2),
                              confidence=round(result.confidence, 2))
                results[idx] = result

        ordered = [results[idx] for idx in range(len(images))]
        self.staging.write_manifest(property_id, [
            {k: v for k, v in result.to_dict().items() if k != 'corrected_preview_base64'}
            for result in ordered
        ])

        logger.info(f"Finished processing, {stats.corrected_files}/{len(images)} need correction")
        return ordered

    def process_image(self, image_path: Path, property_id: Union[int, str]):
        """
        Analyze and, when warranted, correct one image

        Args:
            image_path: Image to process
            property_id: Staging area that receives the corrected copy

        Returns:
            Tuple of (CorrectionResult, processing time in seconds)
        """
        start = time.time()
        image_path = Path(image_path)

        try:
            image = load_image(image_path)
        except Exception as e:
            logger.error(f"Failed to open image {image_path}: {e}")
            return self._failed_result(image_path, f"Failed to open image: {e}"), None

        focal_length = read_focal_length(image_path)
        analysis = self.straightener.analyze_image(image, focal_length)
        corrected, analysis = self.straightener.apply_straightening(image, analysis)

        staged_path = ""
        if analysis.needs_correction:
            target = self.staging.staged_path(property_id, image_path)
            save_image(corrected, target, quality=self.output_quality)
            staged_path = str(target)

        preview = None
        if self.include_previews:
            preview = encode_base64_jpeg(self.straightener.rectifier.preview(corrected),
                                         quality=self.preview_quality)

        result = CorrectionResult(
            original_filename=image_path.name,
            original_path=str(image_path),
            corrected_temp_path=staged_path,
            confidence=analysis.confidence,
            rotation_applied=analysis.suggested_rotation,
            needs_correction=analysis.needs_correction,
            corrected_preview_base64=preview,
            decision=analysis.decision.value
        )
        if analysis.horizontal_estimate is not None:
            result.horizontal_angle = analysis.horizontal_estimate.angle
            result.horizontal_confidence = analysis.horizontal_estimate.confidence
        return result, time.time() - start

    @staticmethod
    def _failed_result(image_path: Path, error: str) -> CorrectionResult:
        return CorrectionResult(
            original_filename=image_path.name,
            original_path=str(image_path),
            error=error
        )

    def accept_corrections(self, corrections: List[AcceptedCorrection],
                           property_id: Optional[Union[int, str]] = None) -> PerspectiveCommandResult:
        """
        Promote staged corrections over their originals

        Each pair is handled independently; the staging area is cleared
        afterwards whatever the outcome.

        Args:
            corrections: Pairs of (original, staged) paths
            property_id: Staging to clear afterwards; all staging when None

        Returns:
            PerspectiveCommandResult with success count and per-file errors
        """
        success_count = 0
        errors = []

        for correction in corrections:
            success, error = self.file_manager.promote(
                Path(correction.corrected_temp_path), Path(correction.original_path)
            )
            if success:
                success_count += 1
            else:
                errors.append(error)

        self.cleanup_staging(property_id)

        if not errors:
            return PerspectiveCommandResult.ok(
                f"Successfully applied {success_count} corrections", success_count
            )

        return PerspectiveCommandResult(
            success=success_count > 0,
            error="; ".join(errors),
            message=f"Applied {success_count} corrections with {len(errors)} errors",
            success_count=success_count,
            errors=errors
        )

    def cleanup_staging(self, property_id: Optional[Union[int, str]] = None) -> None:
        """Discard staged files for one property, or for all when None"""
        if property_id is None:
            self.staging.clear_all()
        else:
            self.staging.clear(property_id)

    def original_preview(self, image_path: Union[str, Path]) -> str:
        """
        Base64 JPEG of an original image for before/after comparison

        Raises:
            FileNotFoundError: If the image does not exist
        """
        image_path = Path(image_path)
        if not image_path.exists():
            raise FileNotFoundError(f"Image not found: {image_path}")

        image = load_image(image_path)
        return encode_base64_jpeg(resize_to_fit(image, self.preview_max_size),
                                  quality=self.preview_quality)
