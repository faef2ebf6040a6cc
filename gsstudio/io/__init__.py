"""I/O package for video tools, frames and mask export."""

from gsstudio.io.video import (VideoMetadata, probe_video, extract_frames, count_frames, parse_fps,
                               clear_frames)
from gsstudio.io.images import load_frame, save_mask, mask_path

__all__ = ['VideoMetadata', 'probe_video', 'extract_frames', 'count_frames', 'parse_fps', 'clear_frames',
           'load_frame', 'save_mask', 'mask_path']
