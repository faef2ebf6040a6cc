"""Tests for the command-line front end."""

import sys

import pytest

import gsstudio.workflows
import main
from conftest import write_frames
from gsstudio.io.video import VideoMetadata, count_frames
from gsstudio.project.state import PipelineStage, Project
from gsstudio.workflows.pipeline import ProjectPipeline


def run_cli(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["gsstudio", *argv])
    main.main()


@pytest.fixture
def fake_tools(monkeypatch):
    calls = []

    def probe(path, timeout=None, cancel_token=None):
        return VideoMetadata(width=1280, height=720, fps=25.0)

    def extractor(input_path, output_dir, fps, resolution, timeout=None, cancel_token=None):
        calls.append((fps, resolution, timeout))
        write_frames(output_dir, 2, width=16, height=8)

    def make_pipeline(probe_timeout=None, extract_timeout=None):
        return ProjectPipeline(probe=probe, extractor=extractor, frame_counter=count_frames,
                               probe_timeout=probe_timeout, extract_timeout=extract_timeout)

    monkeypatch.setattr(gsstudio.workflows, "ProjectPipeline", make_pipeline)
    return calls


def test_extract_then_status(monkeypatch, tmp_path, fake_tools, capsys):
    workspace = tmp_path / "workspaces"
    run_cli(monkeypatch, "--workspace", str(workspace), "extract", "demo", "clip.mp4",
            "--fps", "2", "--extract-timeout", "90")

    assert fake_tools == [(2.0, (1280, 720), 90.0)]
    project = Project.load(workspace / "demo" / "project.yaml")
    assert project.stage == PipelineStage.EXTRACTED
    assert project.state.extracted_frame_count == 2
    assert "Stage: extracted" in capsys.readouterr().out

    run_cli(monkeypatch, "--workspace", str(workspace), "status", "demo")
    out = capsys.readouterr().out
    assert "Extracted frames: 2" in out
    assert "Resolution: 1280x720" in out


def test_rerun_does_not_extract_again(monkeypatch, tmp_path, fake_tools):
    workspace = tmp_path / "workspaces"
    for _ in range(2):
        run_cli(monkeypatch, "--workspace", str(workspace), "extract", "demo", "clip.mp4")
    assert len(fake_tools) == 1


@pytest.mark.parametrize("flags", [
    ["--fps", "0"],
    ["--fps", "nan"],
    ["--width", "0", "--height", "720"],
    ["--width", "1280"],
])
def test_extract_rejects_unusable_settings(monkeypatch, tmp_path, fake_tools, capsys, flags):
    workspace = tmp_path / "workspaces"
    with pytest.raises(SystemExit) as exc:
        run_cli(monkeypatch, "--workspace", str(workspace), "extract", "demo", "clip.mp4", *flags)

    assert exc.value.code == 1
    assert "✗" in capsys.readouterr().err
    assert fake_tools == []
    assert not (workspace / "demo" / "project.yaml").exists()


def test_operator_settings_fill_only_unset_fields(monkeypatch, tmp_path, fake_tools):
    workspace = tmp_path / "workspaces"
    run_cli(monkeypatch, "--workspace", str(workspace), "extract", "demo", "clip.mp4",
            "--width", "640", "--height", "360")

    project = Project.load(workspace / "demo" / "project.yaml")
    assert project.config.extraction.resolution == (640, 360)
    assert project.config.extraction.fps == 25.0


@pytest.mark.parametrize("frame", ["0", "4"])
def test_pick_rejects_frame_outside_extraction(monkeypatch, extracted_project, workspace,
                                               capsys, frame):
    with pytest.raises(SystemExit) as exc:
        run_cli(monkeypatch, "--workspace", str(workspace), "pick", "shibuya_run",
                "--frame", frame)

    assert exc.value.code == 1
    assert "outside 1..3" in capsys.readouterr().err


def test_missing_project_exits_with_error(monkeypatch, tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        run_cli(monkeypatch, "--workspace", str(tmp_path), "status", "ghost")

    assert exc.value.code == 1
    assert "✗" in capsys.readouterr().err


def test_no_command_prints_help(monkeypatch):
    with pytest.raises(SystemExit) as exc:
        run_cli(monkeypatch)
    assert exc.value.code == 1
