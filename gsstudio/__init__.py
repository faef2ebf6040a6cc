"""
gsstudio: dataset preparation for 3D Gaussian Splatting

Extracts frames from a video into a resumable project and lets an operator
mark objects of interest, turning each click into a SAM2 mask.
"""

__version__ = "0.1.0"

from gsstudio.errors import (
    GSStudioError,
    ConfigurationError,
    ExternalToolError,
    ExternalToolTimeout,
    ModelLoadError,
    InferenceError,
    ValidationError,
    OperationCancelled,
)
from gsstudio.project.state import Project, PipelineStage, TargetType
from gsstudio.workflows.pipeline import ProjectPipeline

__all__ = [
    "GSStudioError",
    "ConfigurationError",
    "ExternalToolError",
    "ExternalToolTimeout",
    "ModelLoadError",
    "InferenceError",
    "ValidationError",
    "OperationCancelled",
    "Project",
    "PipelineStage",
    "TargetType",
    "ProjectPipeline",
]
