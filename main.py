#!/usr/bin/env python3
"""
Unified CLI entry point for gsstudio.

Usage:
    python main.py extract <project_name> <video_file> [--fps FPS] [--width W --height H]
    python main.py status <project_name>
    python main.py pick <project_name> [--model-dir DIR] [--target-id ID]
    python main.py segment <project_name> --frame N --model-dir DIR
"""

import argparse
import sys
from pathlib import Path


def _load_project(args):
    from gsstudio import config
    from gsstudio.project import Project

    return Project.load(Path(args.workspace) / args.project / config.PROJECT_FILENAME)


def cmd_extract(args):
    """Create or resume a project and extract its frames."""
    from gsstudio.errors import ValidationError
    from gsstudio.project import ExtractionSettings, Project
    from gsstudio.workflows import ProjectPipeline

    if (args.width is None) != (args.height is None):
        raise ValidationError("--width and --height must be given together")
    requested = ExtractionSettings(
        fps=args.fps,
        resolution=(args.width, args.height) if args.width is not None else None,
    )

    project = Project.open(args.project, args.video, workspace_root=args.workspace)
    print(f"Project: {project.config.project_name} ({project.stage.value})")

    # Operator-specified values take precedence over probed metadata
    project.config.extraction.fill_missing(requested)

    pipeline = ProjectPipeline(probe_timeout=args.probe_timeout,
                               extract_timeout=args.extract_timeout)
    stage = pipeline.run(project)

    fps, (width, height) = project.config.extraction.resolved()
    print(f"\n✓ Stage: {stage.value}")
    print(f"  Frames: {project.state.extracted_frame_count} @ {fps:.3f} fps, {width}x{height}")
    print(f"  Output: {project.frames_dir}")
    print("\nNext steps:")
    print(f"  python main.py pick {args.project} --model-dir <models>")


def cmd_status(args):
    """Print the persisted state of a project."""
    project = _load_project(args)
    settings = project.config.extraction

    print(f"Project: {project.config.project_name}")
    print(f"  Video: {project.config.video_path}")
    print(f"  Output: {project.config.output_dir}")
    print(f"  Stage: {project.stage.value}")
    print(f"  FPS: {settings.fps if settings.fps is not None else 'unset'}")
    print(f"  Resolution: {'x'.join(map(str, settings.resolution)) if settings.resolution else 'unset'}")
    print(f"  Extracted frames: {project.state.extracted_frame_count}")
    print(f"  Targets: {len(project.config.targets)}")
    for target in project.config.targets:
        print(f"    {target.id} ({target.target_type.value}, auto_track={target.auto_track}): "
              f"{target.points}")


def cmd_pick(args):
    """Open the interactive picker on an extracted project."""
    from gsstudio.errors import ConfigurationError, ValidationError
    from gsstudio.models import Sam2Engine
    from gsstudio.workflows.picker import FramePicker

    project = _load_project(args)
    frame_count = project.state.extracted_frame_count
    if frame_count < 1:
        raise ConfigurationError("Project has no extracted frames; run 'extract' first",
                                 path=project.record_path)
    if not 1 <= args.frame <= frame_count:
        raise ValidationError(f"Frame {args.frame} outside 1..{frame_count}")

    engine = Sam2Engine.from_model_dir(args.model_dir, args.model_name) if args.model_dir else None
    picker = FramePicker(project, engine=engine, target_id=args.target_id)
    picker.current_frame_idx = args.frame
    picker.run_interactive()


def cmd_segment(args):
    """Write masks for every saved target on one frame."""
    from gsstudio.models import Sam2Engine
    from gsstudio.workflows import segment_frame

    project = _load_project(args)
    engine = Sam2Engine.from_model_dir(args.model_dir, args.model_name)
    written = segment_frame(project, engine, args.frame)

    if not written:
        print("No targets with points. Use 'pick' to mark one first.")
    for target_id, path in written.items():
        print(f"✓ {target_id}: {path}")


def main():
    from gsstudio import config
    from gsstudio.errors import GSStudioError
    from gsstudio.utils.logger import set_level

    parser = argparse.ArgumentParser(
        description="gsstudio - 3DGS dataset preparation and point-prompted masking",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--workspace', default=config.WORKSPACES_DIR,
        help=f'Workspace root directory (default: {config.WORKSPACES_DIR})')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Extract command
    parser_extract = subparsers.add_parser('extract',
        help='Probe the video and extract frames (skipped if already done)')
    parser_extract.add_argument('project', help='Project name')
    parser_extract.add_argument('video', help='Path to video file')
    parser_extract.add_argument('--fps', type=float, default=None,
        help='Target frame rate (default: probed, else 30)')
    parser_extract.add_argument('--width', type=int, default=None, help='Target width')
    parser_extract.add_argument('--height', type=int, default=None, help='Target height')
    parser_extract.add_argument('--probe-timeout', type=float, default=config.PROBE_TIMEOUT_S,
        help=f'ffprobe timeout in seconds (default: {config.PROBE_TIMEOUT_S})')
    parser_extract.add_argument('--extract-timeout', type=float, default=config.EXTRACT_TIMEOUT_S,
        help=f'ffmpeg timeout in seconds (default: {config.EXTRACT_TIMEOUT_S})')
    parser_extract.set_defaults(func=cmd_extract)

    # Status command
    parser_status = subparsers.add_parser('status', help='Show project state')
    parser_status.add_argument('project', help='Project name')
    parser_status.set_defaults(func=cmd_status)

    # Pick command
    parser_pick = subparsers.add_parser('pick',
        help='Click the object of interest on extracted frames')
    parser_pick.add_argument('project', help='Project name')
    parser_pick.add_argument('--model-dir', default=None,
        help='Directory with SAM2 ONNX files (enables mask preview)')
    parser_pick.add_argument('--model-name', default=config.MODEL_NAME,
        help=f'Model file prefix (default: {config.MODEL_NAME})')
    parser_pick.add_argument('--target-id', default=config.DEFAULT_TARGET_ID,
        help=f'Target to save the point to (default: {config.DEFAULT_TARGET_ID})')
    parser_pick.add_argument('--frame', type=int, default=1, help='Initial frame (default: 1)')
    parser_pick.set_defaults(func=cmd_pick)

    # Segment command
    parser_segment = subparsers.add_parser('segment',
        help='Write masks for all saved targets on one frame')
    parser_segment.add_argument('project', help='Project name')
    parser_segment.add_argument('--frame', type=int, required=True, help='1-based frame index')
    parser_segment.add_argument('--model-dir', required=True,
        help='Directory with SAM2 ONNX files')
    parser_segment.add_argument('--model-name', default=config.MODEL_NAME,
        help=f'Model file prefix (default: {config.MODEL_NAME})')
    parser_segment.set_defaults(func=cmd_segment)

    # Parse arguments
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.verbose:
        set_level("DEBUG")

    # Execute command
    try:
        args.func(args)
    except GSStudioError as e:
        print(f"\n✗ {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
