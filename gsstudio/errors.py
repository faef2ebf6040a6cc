"""
Exception hierarchy shared by the pipeline, the video tools and the engine.
"""

from pathlib import Path
from typing import Optional, Union


class GSStudioError(Exception):
    """Base class for all errors surfaced to the presentation layer."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None,
                 stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None
        self.stage = stage

    def __str__(self) -> str:
        parts = []
        if self.stage:
            parts.append(f"[{self.stage}]")
        parts.append(self.message)
        if self.path is not None:
            parts.append(f"({self.path})")
        return " ".join(parts)


class ConfigurationError(GSStudioError):
    """Project record is missing or malformed."""


class ExternalToolError(GSStudioError):
    """ffprobe/ffmpeg could not be run, exited non-zero, or printed garbage."""

    def __init__(self, message: str, tool: str, stderr: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.tool = tool
        self.stderr = stderr


class ExternalToolTimeout(ExternalToolError):
    """External tool did not finish within its timeout."""


class ModelLoadError(GSStudioError):
    """Network file missing or incompatible with the runtime."""


class InferenceError(GSStudioError):
    """Network ran but its outputs do not match the expected contract."""


class ValidationError(GSStudioError, ValueError):
    """Caller supplied inconsistent or out-of-range input."""


class OperationCancelled(GSStudioError):
    """A cancellation token was triggered before the operation started."""
