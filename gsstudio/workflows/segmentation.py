"""
Batch segmentation: mask every saved target on one extracted frame.
"""

from pathlib import Path
from typing import Dict, Optional

from gsstudio.errors import ValidationError
from gsstudio.io.images import load_frame, mask_path, save_mask
from gsstudio.models.base import SegmentationBackend
from gsstudio.project.state import Project
from gsstudio.utils.cancellation import CancellationToken
from gsstudio.utils.coords import Prompt, mask_to_original
from gsstudio.utils.logger import get_logger

logger = get_logger(__name__)


def segment_frame(project: Project, engine: SegmentationBackend, frame_idx: int,
                  cancel_token: Optional[CancellationToken] = None) -> Dict[str, Path]:
    """
    Encode one frame and write a mask PNG for each target that has a point.

    The frame is encoded once and every target's point is decoded against
    the same embedding. Masks are mapped back to frame pixels before saving.

    Args:
        project: Extracted project with targets
        engine: Loaded segmentation backend
        frame_idx: 1-based frame index

    Returns:
        Mapping of target id to written mask path
    """
    frame_count = project.state.extracted_frame_count
    if not 1 <= frame_idx <= frame_count:
        raise ValidationError(f"Frame {frame_idx} outside 1..{frame_count}")

    targets = [t for t in project.config.targets if t.points]
    if not targets:
        logger.warning("No targets with points; nothing to segment")
        return {}

    image = load_frame(project.frame_path(frame_idx))
    height, width = image.shape[:2]
    encoded = engine.encode_image(image, cancel_token=cancel_token)

    written = {}
    for target in targets:
        prompt = Prompt.from_source_click(target.points[0], (width, height))
        masks = engine.predict(encoded, prompt.points, prompt.labels, cancel_token=cancel_token)
        mask = mask_to_original(masks[0], encoded.original_size)
        written[target.id] = save_mask(mask, mask_path(project.masks_dir, frame_idx, target.id))
        logger.info(f"Target '{target.id}': {int(mask.sum())} px -> {written[target.id]}")

    return written
