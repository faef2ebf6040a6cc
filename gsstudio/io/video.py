"""
Video probing and frame extraction through the ffprobe/ffmpeg executables.
"""

import json
import math
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from gsstudio import config
from gsstudio.errors import ExternalToolError, ExternalToolTimeout, ValidationError
from gsstudio.utils.cancellation import CancellationToken, check_cancelled
from gsstudio.utils.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


@dataclass
class VideoMetadata:
    """Geometry and frame rate of the first video stream."""
    width: int
    height: int
    fps: float


def run_tool(cmd: List[str], timeout: Optional[float], stage: str,
             cancel_token: Optional[CancellationToken] = None) -> str:
    """
    Run an external tool to completion and return its stdout.

    Args:
        cmd: Command line, ``cmd[0]`` is the executable name
        timeout: Seconds before the process is killed, ``None`` waits forever
        stage: Pipeline stage reported in errors ('probe', 'extract')
        cancel_token: Checked once before the process is spawned

    Raises:
        ExternalToolTimeout: if the process exceeded ``timeout``
        ExternalToolError: if the executable is missing or exited non-zero
    """
    tool = cmd[0]
    check_cancelled(cancel_token, stage)
    logger.debug(f"Running: {' '.join(cmd)}")

    try:
        result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                                stdin=subprocess.DEVNULL, text=True, timeout=timeout)
    except FileNotFoundError:
        raise ExternalToolError(f"Failed to execute {tool}. Is it installed and in your PATH?",
                                tool=tool, stage=stage)
    except subprocess.TimeoutExpired:
        raise ExternalToolTimeout(f"{tool} timed out after {timeout}s", tool=tool, stage=stage)

    if result.returncode != 0:
        stderr = result.stderr.strip()
        raise ExternalToolError(f"{tool} exited with status {result.returncode}: {stderr}",
                                tool=tool, stderr=stderr, stage=stage)
    return result.stdout


def parse_fps(fps_str: str) -> float:
    """
    Parse an ffprobe frame rate such as ``30000/1001`` or ``25``.

    Raises:
        ExternalToolError: for malformed rationals, a non-positive denominator
            or a result that is not finite
    """
    text = str(fps_str).strip()
    parts = text.split('/')
    fps = None
    try:
        if len(parts) == 2:
            num, den = float(parts[0]), float(parts[1])
            if den <= 0:
                raise ExternalToolError(f"Frame rate has non-positive denominator: {text!r}",
                                        tool="ffprobe", stage="probe")
            fps = num / den
        elif len(parts) == 1:
            fps = float(text)
    except ValueError:
        pass
    if fps is None or not math.isfinite(fps):
        raise ExternalToolError(f"Failed to parse frame rate: {text!r}", tool="ffprobe",
                                stage="probe")
    return fps


def probe_video(path: PathLike, timeout: Optional[float] = config.PROBE_TIMEOUT_S,
                cancel_token: Optional[CancellationToken] = None) -> VideoMetadata:
    """
    Read width, height and average frame rate of the first video stream.

    Raises:
        ExternalToolError: if ffprobe fails or its output lacks a field
    """
    cmd = [
        "ffprobe",
        "-v", "error",
        "-select_streams", "v:0",
        "-show_entries", "stream=width,height,avg_frame_rate",
        "-of", "json",
        str(path),
    ]
    output = run_tool(cmd, timeout, "probe", cancel_token)

    try:
        streams = json.loads(output).get('streams') or []
    except (json.JSONDecodeError, AttributeError):
        raise ExternalToolError("ffprobe printed invalid JSON", tool="ffprobe",
                                path=path, stage="probe")
    if not streams:
        raise ExternalToolError("No video stream found", tool="ffprobe", path=path, stage="probe")

    stream = streams[0]
    width, height = stream.get('width'), stream.get('height')
    fps_str = stream.get('avg_frame_rate')
    if not isinstance(width, int) or not isinstance(height, int):
        raise ExternalToolError("Width/height not found", tool="ffprobe", path=path, stage="probe")
    if fps_str is None:
        raise ExternalToolError("FPS not found", tool="ffprobe", path=path, stage="probe")

    fps = parse_fps(fps_str)
    if not math.isfinite(fps) or fps <= 0:
        raise ExternalToolError(f"Non-positive frame rate: {fps_str!r}", tool="ffprobe",
                                path=path, stage="probe")

    metadata = VideoMetadata(width=width, height=height, fps=fps)
    logger.info(f"Probed {path}: {metadata.width}x{metadata.height} @ {metadata.fps:.3f} fps")
    return metadata


def extract_frames(input_path: PathLike, output_dir: PathLike, fps: float,
                   resolution: Tuple[int, int],
                   timeout: Optional[float] = config.EXTRACT_TIMEOUT_S,
                   cancel_token: Optional[CancellationToken] = None):
    """
    Write ``frame_0001.png``, ``frame_0002.png``, ... into ``output_dir``.

    Args:
        input_path: Source video
        output_dir: Created if absent
        fps: Target frame rate
        resolution: Target (width, height)

    Raises:
        ExternalToolError: if ffmpeg cannot run or exits non-zero
    """
    if not math.isfinite(fps) or fps <= 0:
        raise ValidationError(f"fps must be positive, got {fps}")
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    width, height = resolution
    cmd = [
        "ffmpeg",
        "-hide_banner",
        "-y",
        "-i", str(input_path),
        "-vf", f"fps={fps},scale={width}:{height}",
        "-vsync", "vfr",
        "-q:v", "2",
        str(output_dir / config.FRAME_PATTERN),
    ]
    logger.info(f"Extracting frames from {input_path} at {fps} fps, {width}x{height}")
    run_tool(cmd, timeout, "extract", cancel_token)


def count_frames(directory: PathLike, extension: str = config.FRAME_EXTENSION) -> int:
    """Count files with ``extension`` in ``directory``; 0 if it does not exist."""
    directory = Path(directory)
    if not directory.exists():
        return 0
    return sum(1 for p in directory.iterdir() if p.is_file() and p.suffix.lower() == extension)


def clear_frames(directory: PathLike, extension: str = config.FRAME_EXTENSION) -> int:
    """
    Delete frame images left in ``directory`` by an earlier, unfinished run.

    Only files named like extractor output are removed.

    Returns:
        Number of files deleted
    """
    directory = Path(directory)
    if not directory.exists():
        return 0
    removed = 0
    for path in directory.glob("frame_*"):
        if path.is_file() and path.suffix.lower() == extension:
            path.unlink()
            removed += 1
    return removed
