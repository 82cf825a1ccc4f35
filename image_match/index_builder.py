"""
Batch feature extraction for an image directory.

Decodes every image in a directory, extracts its feature vector with
the chosen method, and appends it to a feature CSV. Images that fail to
decode, are too small, or (for the face method) contain no face are
logged and skipped; they never abort the batch.
"""

import os
import logging
from typing import Optional, Sequence

from .detection import Detector
from .errors import DecodeError, InvalidInput, NoFaceDetected
from .feature_store import append_features
from .histograms import HIST_BINS
from .methods import Method, extract_features, get_method
from .preprocessing import list_images, load_image

logger = logging.getLogger(__name__)


def build_features(image_dir: str,
                   method,
                   output_path: str,
                   bins: int = HIST_BINS,
                   detector: Optional[Detector] = None,
                   extensions: Optional[Sequence[str]] = None) -> dict:
    """
    Extract features for every image in a directory.

    The output file is truncated and tagged with the method on the first
    successful write; later records are appended.

    Args:
        image_dir: Directory containing database images.
        method: Extraction method name.
        output_path: Feature CSV to write.
        bins: Histogram bin count.
        detector: Face detector for the face method.
        extensions: Image extensions to include.

    Returns:
        Dict with 'success', 'found', 'processed', 'skipped', 'no_face',
        'errors' counts and 'output_path'.

    Raises:
        UnknownMethod: If the method name is not recognized.
        FileNotFoundError: If image_dir does not exist.
    """
    method = get_method(method)
    paths = list_images(image_dir, extensions)
    logger.info(f"Found {len(paths)} images in {image_dir}")

    out_dir = os.path.dirname(output_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    tag_bins = None if method is Method.BASELINE else bins
    processed = 0
    skipped = 0
    no_face = 0
    errors = 0
    reset = True

    for i, path in enumerate(paths):
        try:
            image = load_image(path)
            features = extract_features(image, method, bins=bins, detector=detector)
        except NoFaceDetected:
            logger.info(f"No face in {path}, skipping")
            no_face += 1
            continue
        except DecodeError as e:
            logger.warning(f"Could not read: {e}")
            errors += 1
            continue
        except InvalidInput as e:
            logger.warning(f"Feature extraction failed for {path}: {e}")
            skipped += 1
            continue

        append_features(output_path, path, features, reset=reset,
                        method=method.value, bins=tag_bins)
        reset = False
        processed += 1

        if (i + 1) % 500 == 0:
            logger.info(f"Processed {i + 1}/{len(paths)} images")

    logger.info(
        f"Features built: {processed} images, {skipped} skipped, "
        f"{no_face} without faces, {errors} unreadable"
    )

    if not processed:
        return {"success": False, "error": "No valid images processed",
                "found": len(paths), "processed": 0, "skipped": skipped,
                "no_face": no_face, "errors": errors, "output_path": output_path}

    return {
        "success": True,
        "found": len(paths),
        "processed": processed,
        "skipped": skipped,
        "no_face": no_face,
        "errors": errors,
        "output_path": output_path,
    }
