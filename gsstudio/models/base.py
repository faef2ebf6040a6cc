"""
Capability interface for point-prompted segmentation backends.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from gsstudio.utils.cancellation import CancellationToken


class SegmentationBackend(ABC):
    """
    Abstract base class for encoder/decoder segmentation engines.

    A backend owns its inference sessions exclusively. ``encode`` is run once
    per image; ``predict`` is run for every prompt against that image.
    """

    @abstractmethod
    def preprocess(self, image: np.ndarray) -> Tuple[np.ndarray, Tuple[int, int]]:
        """
        Convert an (H, W, 3) RGB image to the network input tensor.

        Returns:
            (tensor, original_size) where original_size is (height, width)
        """
        pass

    @abstractmethod
    def encode(self, tensor: np.ndarray, original_size: Tuple[int, int],
               cancel_token: Optional[CancellationToken] = None) -> Any:
        """Run the encoder once and return a reusable embedding bundle."""
        pass

    @abstractmethod
    def predict(self, encoded: Any, points: Sequence[Tuple[float, float]],
                labels: Sequence[float],
                cancel_token: Optional[CancellationToken] = None) -> List[np.ndarray]:
        """
        Decode masks for labelled points given in network input space.

        Returns:
            List of (batch, channel, height, width) mask arrays in network
            input resolution
        """
        pass

    def encode_image(self, image: np.ndarray,
                     cancel_token: Optional[CancellationToken] = None) -> Any:
        """Preprocess and encode in one call."""
        tensor, original_size = self.preprocess(image)
        return self.encode(tensor, original_size, cancel_token=cancel_token)
