"""
Staged, resumable preparation of a project: probe → extract.

Workflow:
1. Fill unset fps/resolution from the probed video (failure is non-fatal)
2. Extract frames unless the project already records a completed extraction
3. Count the frames, mark the project extracted and save it
"""

from typing import Callable, Optional

from gsstudio import config
from gsstudio.errors import ExternalToolError, ValidationError
from gsstudio.io.video import (VideoMetadata, clear_frames, count_frames, extract_frames,
                               probe_video)
from gsstudio.project.state import PipelineStage, Project
from gsstudio.utils.cancellation import CancellationToken, check_cancelled
from gsstudio.utils.logger import get_logger

logger = get_logger(__name__)


class ProjectPipeline:
    """
    Decides which stage must run next and runs it.

    The probe, extractor and frame counter are injected so alternative
    tools (or test doubles) can be substituted.
    """

    def __init__(self,
                 probe: Callable[..., VideoMetadata] = probe_video,
                 extractor: Callable[..., None] = extract_frames,
                 frame_counter: Callable[..., int] = count_frames,
                 probe_timeout: Optional[float] = config.PROBE_TIMEOUT_S,
                 extract_timeout: Optional[float] = config.EXTRACT_TIMEOUT_S):
        self.probe = probe
        self.extractor = extractor
        self.frame_counter = frame_counter
        self.probe_timeout = probe_timeout
        self.extract_timeout = extract_timeout

    def resolve_metadata(self, project: Project,
                         cancel_token: Optional[CancellationToken] = None) -> bool:
        """
        Fill unset fps/resolution from the video; never overwrite set values.

        Probe failures are logged and leave the fields unset, so extraction
        falls back to defaults. Nothing is persisted.

        Returns:
            True if any field was filled
        """
        settings = project.config.extraction
        if not settings.needs_probe():
            return False

        try:
            metadata = self.probe(project.config.video_path, timeout=self.probe_timeout,
                                  cancel_token=cancel_token)
        except ExternalToolError as e:
            logger.warning(f"Probe failed, defaults will be used: {e}")
            return False

        try:
            filled = settings.merge_missing(metadata.width, metadata.height, metadata.fps)
        except ValidationError as e:
            logger.warning(f"Ignoring unusable video metadata: {e}")
            return False
        if filled:
            logger.info(f"Filled {', '.join(filled)} from video metadata")
        return bool(filled)

    def ensure_extracted(self, project: Project,
                         cancel_token: Optional[CancellationToken] = None) -> int:
        """
        Extract frames once.

        A project already marked extracted is skipped without invoking the
        extractor or recounting. On success the project is marked extracted
        and saved; on failure its state is left untouched.

        Returns:
            Number of extracted frames

        Raises:
            ExternalToolError: if extraction fails or produces no frames
        """
        if project.state.is_extraction_completed:
            logger.info("Extraction already completed. Skipping.")
            return project.state.extracted_frame_count

        check_cancelled(cancel_token, "extract")
        fps, resolution = project.config.extraction.resolved()
        frames_dir = project.frames_dir

        # Frames from an interrupted run may use other settings; count only this run's output
        stale = clear_frames(frames_dir)
        if stale:
            logger.warning(f"Removed {stale} frames left by an earlier unfinished extraction")

        self.extractor(project.config.video_path, frames_dir, fps, resolution,
                       timeout=self.extract_timeout, cancel_token=cancel_token)

        frame_count = self.frame_counter(frames_dir)
        if frame_count <= 0:
            raise ExternalToolError("Extraction finished but wrote no frames",
                                    tool="ffmpeg", path=frames_dir, stage="extract")

        project.state.mark_extracted(frame_count)
        project.save()
        logger.info(f"Extraction finished. Found {frame_count} frames.")
        return frame_count

    def run(self, project: Project,
            cancel_token: Optional[CancellationToken] = None) -> PipelineStage:
        """Run every outstanding stage and return the stage reached."""
        if project.stage == PipelineStage.UNINITIALIZED:
            self.resolve_metadata(project, cancel_token)
        self.ensure_extracted(project, cancel_token)
        return project.stage
