"""
Project record: configuration, progress flags and persistence.

A project is the unit of persistence. It is mutated in place by metadata
probing, extraction completion and target updates, and written to disk
only when ``Project.save`` is called.
"""

import math
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from gsstudio import config
from gsstudio.errors import ConfigurationError, ValidationError
from gsstudio.utils.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


def _section(value: Any, name: str) -> Dict[str, Any]:
    """Return a record section as a mapping; a missing section is empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


class TargetType(Enum):
    """Kind of object a mask target marks."""
    PHOTOGRAPHER = "photographer"
    VEHICLE = "vehicle"
    PEDESTRIAN = "pedestrian"


class PipelineStage(Enum):
    """Progress of a project through probe → extract."""
    UNINITIALIZED = "uninitialized"  # fps or resolution still unknown
    METADATA_PENDING = "metadata_pending"  # metadata resolved, frames not extracted
    EXTRACTED = "extracted"  # frames on disk and counted


@dataclass
class ExtractionSettings:
    """Target frame rate and (width, height); ``None`` until resolved."""
    fps: Optional[float] = None
    resolution: Optional[Tuple[int, int]] = None

    def __post_init__(self):
        if self.fps is not None:
            self.fps = float(self.fps)
            if not math.isfinite(self.fps) or self.fps <= 0:
                raise ValidationError(f"fps must be positive, got {self.fps}")
        if self.resolution is not None:
            width, height = self.resolution
            self.resolution = (int(width), int(height))
            if self.resolution[0] <= 0 or self.resolution[1] <= 0:
                raise ValidationError(f"resolution must be positive, got {self.resolution}")

    def needs_probe(self) -> bool:
        return self.fps is None or self.resolution is None

    def fill_missing(self, other: 'ExtractionSettings') -> List[str]:
        """
        Copy the fields of ``other`` into the fields of this object that are unset.

        Values already set are never overwritten. ``other`` was validated
        when it was constructed.

        Returns:
            Names of the fields that were filled
        """
        filled = []
        if self.resolution is None and other.resolution is not None:
            self.resolution = other.resolution
            filled.append("resolution")
        if self.fps is None and other.fps is not None:
            self.fps = other.fps
            filled.append("fps")
        return filled

    def merge_missing(self, width: int, height: int, fps: float) -> List[str]:
        """
        Fill only the unset fields from probed metadata.

        Operator-specified values are never overwritten.

        Raises:
            ValidationError: if the probed values are not positive

        Returns:
            Names of the fields that were filled
        """
        return self.fill_missing(ExtractionSettings(fps=fps, resolution=(width, height)))

    def resolved(self) -> Tuple[float, Tuple[int, int]]:
        """Return (fps, (width, height)) with defaults for unset fields."""
        fps = self.fps if self.fps is not None else config.DEFAULT_FPS
        resolution = self.resolution if self.resolution is not None else config.DEFAULT_RESOLUTION
        return fps, resolution

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fps': self.fps,
            'resolution': list(self.resolution) if self.resolution is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExtractionSettings':
        resolution = data.get('resolution')
        if resolution is not None and len(resolution) != 2:
            raise ConfigurationError(f"resolution must be [width, height], got {resolution!r}")
        return cls(fps=data.get('fps'),
                   resolution=tuple(resolution) if resolution is not None else None)


@dataclass
class MaskTarget:
    """An operator-marked object, identified by a stable id."""
    id: str
    target_type: TargetType = TargetType.PHOTOGRAPHER
    auto_track: bool = True  # intent flag only, no tracker consumes it yet
    points: List[Tuple[int, int]] = field(default_factory=list)  # source-video pixels

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'target_type': self.target_type.value,
            'auto_track': self.auto_track,
            'points': [[x, y] for x, y in self.points],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MaskTarget':
        try:
            target_type = TargetType(data['target_type'])
        except ValueError:
            raise ConfigurationError(f"Unknown target type: {data['target_type']!r}")
        return cls(
            id=str(data['id']),
            target_type=target_type,
            auto_track=bool(data.get('auto_track', True)),
            points=[(int(x), int(y)) for x, y in data.get('points', [])],
        )


@dataclass
class ProjectConfig:
    """Identity, input/output locations, extraction settings and targets."""
    project_name: str
    video_path: Path
    output_dir: Path
    extraction: ExtractionSettings = field(default_factory=ExtractionSettings)
    targets: List[MaskTarget] = field(default_factory=list)

    def __post_init__(self):
        self.video_path = Path(self.video_path)
        self.output_dir = Path(self.output_dir)

    def __setattr__(self, name, value):
        if name == 'project_name' and 'project_name' in self.__dict__:
            raise AttributeError("project_name cannot be changed once set")
        super().__setattr__(name, value)

    def get_target(self, target_id: str) -> Optional[MaskTarget]:
        for target in self.targets:
            if target.id == target_id:
                return target
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'project_name': self.project_name,
            'video_path': str(self.video_path),
            'output_dir': str(self.output_dir),
            'extraction': self.extraction.to_dict(),
            'targets': [t.to_dict() for t in self.targets],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        data = _section(data, 'config')
        raw_targets = data.get('targets') or []
        if not isinstance(raw_targets, list):
            raise ConfigurationError(f"'targets' must be a list, got {type(raw_targets).__name__}")
        targets = [MaskTarget.from_dict(_section(t, 'targets[]')) for t in raw_targets]
        seen = set()
        for target in targets:
            if target.id in seen:
                raise ConfigurationError(f"Duplicate target id: {target.id!r}")
            seen.add(target.id)

        return cls(
            project_name=str(data['project_name']),
            video_path=Path(data['video_path']),
            output_dir=Path(data['output_dir']),
            extraction=ExtractionSettings.from_dict(_section(data.get('extraction'), 'extraction')),
            targets=targets,
        )


@dataclass
class ProjectState:
    """Progress flags. A positive frame count implies extraction completed."""
    is_extraction_completed: bool = False
    extracted_frame_count: int = 0

    def mark_extracted(self, frame_count: int):
        """Record a finished extraction; at least one frame must exist."""
        if frame_count <= 0:
            raise ValidationError(f"Cannot mark extraction complete with {frame_count} frames")
        self.extracted_frame_count = int(frame_count)
        self.is_extraction_completed = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_extraction_completed': self.is_extraction_completed,
            'extracted_frame_count': self.extracted_frame_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectState':
        state = cls(
            is_extraction_completed=bool(data.get('is_extraction_completed', False)),
            extracted_frame_count=int(data.get('extracted_frame_count', 0)),
        )
        if state.extracted_frame_count < 0:
            raise ConfigurationError("extracted_frame_count must be non-negative")
        if state.extracted_frame_count > 0 and not state.is_extraction_completed:
            raise ConfigurationError("Frame count recorded for an incomplete extraction")
        return state


@dataclass
class Project:
    """
    Owns one ProjectConfig and one ProjectState.

    Mutations only change the in-memory value; ``save`` is the durability
    boundary and may be called any number of times.
    """
    config: ProjectConfig
    state: ProjectState = field(default_factory=ProjectState)

    @classmethod
    def new(cls, name: str, video_path: PathLike,
            workspace_root: PathLike = config.WORKSPACES_DIR) -> 'Project':
        """Create a fresh, unsaved project under ``<workspace_root>/<name>``."""
        return cls(config=ProjectConfig(
            project_name=name,
            video_path=Path(video_path),
            output_dir=Path(workspace_root) / name,
        ))

    @classmethod
    def open(cls, name: str, video_path: PathLike,
             workspace_root: PathLike = config.WORKSPACES_DIR) -> 'Project':
        """Load the persisted record for ``name`` if one exists, else create one."""
        record = Path(workspace_root) / name / config.PROJECT_FILENAME
        if record.exists():
            logger.info(f"Loading existing project from {record}")
            return cls.load(record)
        logger.info(f"Creating new project '{name}'")
        return cls.new(name, video_path, workspace_root)

    @property
    def record_path(self) -> Path:
        return self.config.output_dir / config.PROJECT_FILENAME

    @property
    def frames_dir(self) -> Path:
        return self.config.output_dir / config.FRAMES_DIRNAME

    @property
    def masks_dir(self) -> Path:
        return self.config.output_dir / config.MASKS_DIRNAME

    def frame_path(self, index: int) -> Path:
        """Path of the 1-based frame ``index``."""
        if index < 1:
            raise ValidationError(f"Frame indices start at 1, got {index}")
        return self.frames_dir / config.FRAME_NAME_TEMPLATE.format(index)

    @property
    def stage(self) -> PipelineStage:
        if self.state.is_extraction_completed:
            return PipelineStage.EXTRACTED
        if self.config.extraction.needs_probe():
            return PipelineStage.UNINITIALIZED
        return PipelineStage.METADATA_PENDING

    def update_target_point(self, target_id: str, x: int, y: int) -> MaskTarget:
        """
        Set the single point of a target, creating the target if needed.

        An existing target keeps its type and flags and has its point list
        replaced (last write wins). A new target defaults to a photographer
        with auto-tracking enabled. Nothing is persisted.

        Args:
            target_id: Operator-chosen stable id
            x, y: Source-video pixel coordinates

        Returns:
            The updated or created MaskTarget
        """
        if x < 0 or y < 0:
            raise ValidationError(f"Pixel coordinates must be non-negative, got ({x}, {y})")
        point = (int(x), int(y))

        target = self.config.get_target(target_id)
        if target is not None:
            target.points = [point]
        else:
            target = MaskTarget(id=target_id, points=[point])
            self.config.targets.append(target)
        return target

    def to_dict(self) -> Dict[str, Any]:
        return {
            'config': self.config.to_dict(),
            'state': self.state.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Project':
        if not isinstance(data, dict) or 'config' not in data:
            raise ConfigurationError("Project record has no 'config' section")
        try:
            project_config = ProjectConfig.from_dict(data['config'])
            state = ProjectState.from_dict(_section(data.get('state'), 'state'))
        except ConfigurationError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"Malformed project record: {e}")
        return cls(config=project_config, state=state)

    def save(self) -> Path:
        """
        Write the record to ``<output_dir>/project.yaml``.

        The file is replaced atomically, so an interrupted save leaves the
        previous record intact.

        Returns:
            Path of the written record
        """
        path = self.record_path
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_text(yaml.safe_dump(self.to_dict(), sort_keys=False,
                                           default_flow_style=None))
        os.replace(tmp_path, path)
        logger.info(f"Project saved to {path}")
        return path

    @classmethod
    def load(cls, path: PathLike) -> 'Project':
        """
        Load a project record written by ``save``.

        Raises:
            ConfigurationError: if the file is missing or malformed
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError("Project record not found", path=path)
        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", path=path)

        try:
            return cls.from_dict(data)
        except ConfigurationError as e:
            raise ConfigurationError(e.message, path=path)
