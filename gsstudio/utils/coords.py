"""
Coordinate transforms between the displayed image, source-video pixels and
the fixed network input space.

Three spaces are involved:
    display  - screen position inside the rectangle the frame is drawn in
    source   - integer pixel of the extracted frame, (0, 0) top-left
    network  - the MODEL_INPUT_SIZE x MODEL_INPUT_SIZE square the encoder sees

Resolutions are given as (width, height). An unknown dimension (0 or None)
falls back to a scale of 1 instead of dividing by zero.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from gsstudio import config
from gsstudio.errors import ValidationError

FOREGROUND = 1.0
BACKGROUND = 0.0


@dataclass
class DisplayRect:
    """Screen rectangle the frame is rendered into, origin at top-left."""
    x: float
    y: float
    width: float
    height: float

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.x + self.width and self.y <= py <= self.y + self.height


def _dims(resolution: Optional[Tuple[int, int]]) -> Tuple[float, float]:
    if resolution is None:
        return 1.0, 1.0
    width, height = resolution
    return (float(width) if width else 1.0, float(height) if height else 1.0)


def _axis_scale(input_size: int, dim: Optional[int]) -> float:
    return input_size / dim if dim else 1.0


def display_to_source(pos: Tuple[float, float], rect: DisplayRect,
                      resolution: Optional[Tuple[int, int]]) -> Tuple[int, int]:
    """
    Map a click inside ``rect`` to a source pixel, truncating toward zero.

    Args:
        pos: (x, y) screen position
        rect: Rectangle the frame is drawn in
        resolution: Source (width, height)
    """
    if rect.width <= 0 or rect.height <= 0:
        raise ValidationError(f"Display rectangle has no area: {rect}")
    width, height = _dims(resolution)
    x_pct = (pos[0] - rect.x) / rect.width
    y_pct = (pos[1] - rect.y) / rect.height
    x, y = int(x_pct * width), int(y_pct * height)

    # A click on the right or bottom edge lands on the last pixel
    known_width, known_height = resolution or (0, 0)
    if known_width:
        x = min(x, int(known_width) - 1)
    if known_height:
        y = min(y, int(known_height) - 1)
    return x, y


def source_to_display(point: Tuple[float, float], rect: DisplayRect,
                      resolution: Optional[Tuple[int, int]]) -> Tuple[float, float]:
    """Inverse of ``display_to_source``, used to draw markers over the frame."""
    width, height = _dims(resolution)
    return (rect.x + point[0] / width * rect.width,
            rect.y + point[1] / height * rect.height)


def source_to_network(point: Tuple[float, float], resolution: Optional[Tuple[int, int]],
                      input_size: int = config.MODEL_INPUT_SIZE) -> Tuple[float, float]:
    """Scale a source pixel into network input space."""
    width, height = resolution or (0, 0)
    return point[0] * _axis_scale(input_size, width), point[1] * _axis_scale(input_size, height)


def network_to_source(point: Tuple[float, float], resolution: Optional[Tuple[int, int]],
                      input_size: int = config.MODEL_INPUT_SIZE) -> Tuple[float, float]:
    """Scale a network-space point back to source pixels."""
    width, height = resolution or (0, 0)
    sx = 1.0 / _axis_scale(input_size, width)
    sy = 1.0 / _axis_scale(input_size, height)
    return point[0] * sx, point[1] * sy


def validate_prompt(points: Sequence[Tuple[float, float]],
                    labels: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Check that points and labels pair up and convert them to float32 arrays.

    Returns:
        (points of shape (N, 2), labels of shape (N,))

    Raises:
        ValidationError: on empty input, count mismatch, bad shape or a label
            other than 0 (background) or 1 (foreground)
    """
    pts = np.asarray(points, dtype=np.float32)
    lbl = np.asarray(labels, dtype=np.float32)
    if len(pts) == 0:
        raise ValidationError("Prompt needs at least one point")
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValidationError(f"Points must be (N, 2), got {pts.shape}")
    if lbl.ndim != 1 or len(lbl) != len(pts):
        raise ValidationError(f"Got {len(pts)} points but {lbl.size} labels")
    if not np.all((lbl == FOREGROUND) | (lbl == BACKGROUND)):
        raise ValidationError(f"Labels must be 0 or 1, got {lbl.tolist()}")
    return pts, lbl


@dataclass
class Prompt:
    """Labelled points in network input space."""
    points: np.ndarray
    labels: np.ndarray

    def __post_init__(self):
        self.points, self.labels = validate_prompt(self.points, self.labels)

    @classmethod
    def from_source_click(cls, point: Tuple[int, int],
                          resolution: Optional[Tuple[int, int]]) -> 'Prompt':
        """Single foreground point from a source pixel of a (width, height) frame."""
        return cls(points=[source_to_network(point, resolution)], labels=[FOREGROUND])

    def __len__(self) -> int:
        return len(self.labels)


def mask_to_original(mask: np.ndarray, original_size: Tuple[int, int],
                     threshold: float = config.MASK_THRESHOLD) -> np.ndarray:
    """
    Map a decoder mask from network input space back onto the source image.

    The engine returns masks at network resolution; this step is required
    before overlaying or saving, otherwise masks are misaligned with the
    operator's frame.

    Args:
        mask: (H, W) logits, or (B, C, H, W) in which case [0, 0] is used
        original_size: (height, width) of the source image
        threshold: Logit threshold for foreground

    Returns:
        Boolean (height, width) mask
    """
    mask = np.asarray(mask, dtype=np.float32)
    if mask.ndim == 4:
        mask = mask[0, 0]
    if mask.ndim != 2:
        raise ValidationError(f"Mask must be 2-D or 4-D, got shape {mask.shape}")

    height, width = original_size
    if height and width and mask.shape != (height, width):
        mask = cv2.resize(mask, (int(width), int(height)), interpolation=cv2.INTER_LINEAR)
    return mask > threshold
