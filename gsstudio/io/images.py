"""
Reading extracted frames and writing mask images.
"""

from pathlib import Path
from typing import Union

import cv2
import numpy as np

from gsstudio import config

PathLike = Union[str, Path]


def load_frame(path: PathLike) -> np.ndarray:
    """
    Load an extracted frame as an (H, W, 3) uint8 RGB array.

    Raises:
        FileNotFoundError: if the file does not exist or cannot be decoded
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Frame not found: {path}")

    frame_bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if frame_bgr is None:
        raise FileNotFoundError(f"Could not decode frame: {path}")
    # OpenCV reads as BGR, convert to RGB
    return cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)


def mask_path(masks_dir: PathLike, frame_idx: int, target_id: str) -> Path:
    """``<masks_dir>/frame_0001_<target_id>.png``"""
    frame_stem = Path(config.FRAME_NAME_TEMPLATE.format(frame_idx)).stem
    return Path(masks_dir) / f"{frame_stem}_{target_id}{config.FRAME_EXTENSION}"


def save_mask(mask: np.ndarray, path: PathLike) -> Path:
    """Write a boolean mask as a single-channel PNG (object=255, background=0)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), np.asarray(mask, dtype=bool).astype(np.uint8) * 255):
        raise OSError(f"Failed to write mask: {path}")
    return path
