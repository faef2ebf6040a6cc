"""Project package: configuration, progress state and persistence."""

from gsstudio.project.state import (
    ExtractionSettings,
    MaskTarget,
    PipelineStage,
    Project,
    ProjectConfig,
    ProjectState,
    TargetType,
)

__all__ = ['ExtractionSettings', 'MaskTarget', 'PipelineStage', 'Project', 'ProjectConfig',
           'ProjectState', 'TargetType']
