"""Models package for segmentation backends."""

from gsstudio.models.base import SegmentationBackend
from gsstudio.models.sam2 import EncodedImage, Sam2Engine, create_session

__all__ = ['SegmentationBackend', 'EncodedImage', 'Sam2Engine', 'create_session']
