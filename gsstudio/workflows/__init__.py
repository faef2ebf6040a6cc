"""Workflows package for the preparation pipeline and segmentation front ends."""

from gsstudio.workflows.pipeline import ProjectPipeline
from gsstudio.workflows.segmentation import segment_frame

__all__ = ['ProjectPipeline', 'segment_frame']
