"""
Pytest configuration and shared fixtures for gsstudio tests.
"""

import os
from pathlib import Path
from types import SimpleNamespace

import matplotlib
matplotlib.use("Agg")

import cv2
import numpy as np
import pytest

from gsstudio import config
from gsstudio.models.sam2 import Sam2Engine
from gsstudio.project.state import Project


class FakeSession:
    """Stands in for an onnxruntime.InferenceSession."""

    def __init__(self, outputs, input_names=()):
        # name -> array, or callable(feeds) -> array
        self.outputs = outputs
        self.input_names = list(input_names)
        self.calls = []

    def get_outputs(self):
        return [SimpleNamespace(name=name) for name in self.outputs]

    def get_inputs(self):
        return [SimpleNamespace(name=name) for name in self.input_names]

    def run(self, output_names, feeds):
        self.calls.append(feeds)
        return [value(feeds) if callable(value) else value for value in self.outputs.values()]


def square_mask_around_prompt(feeds, size=config.MODEL_INPUT_SIZE, half=64):
    """Decoder stand-in: positive logits in a square around the first point."""
    x, y = feeds["point_coords"][0, 0]
    masks = np.full((1, 3, size, size), -10.0, dtype=np.float32)
    x0, y0 = max(0, int(x) - half), max(0, int(y) - half)
    masks[:, :, y0:int(y) + half, x0:int(x) + half] = 10.0
    return masks


def make_encoder_outputs():
    return {
        "image_embed": np.zeros((1, 256, 64, 64), dtype=np.float32),
        "high_res_feats_0": np.zeros((1, 32, 256, 256), dtype=np.float32),
        "high_res_feats_1": np.zeros((1, 64, 128, 128), dtype=np.float32),
    }


@pytest.fixture
def encoder_session():
    return FakeSession(make_encoder_outputs(), input_names=["image"])


@pytest.fixture
def decoder_session():
    return FakeSession(
        {"iou_predictions": np.zeros((1, 3), dtype=np.float32), "masks": square_mask_around_prompt},
        input_names=["image_embed", "high_res_feats_0", "high_res_feats_1", "point_coords",
                     "point_labels", "mask_input", "has_mask_input"],
    )


@pytest.fixture
def fake_engine(encoder_session, decoder_session):
    return Sam2Engine(encoder_session, decoder_session)


@pytest.fixture
def workspace(tmp_path):
    return tmp_path / "workspaces"


@pytest.fixture
def project(workspace):
    return Project.new("shibuya_run", "input/sample.mp4", workspace_root=workspace)


def write_frames(frames_dir, count, width=160, height=120):
    """Write ``count`` synthetic PNG frames named like ffmpeg output."""
    frames_dir = Path(frames_dir)
    frames_dir.mkdir(parents=True, exist_ok=True)
    for idx in range(1, count + 1):
        frame = np.zeros((height, width, 3), dtype=np.uint8)
        frame[:, :, 2] = 255  # red in BGR
        frame[height // 4: 3 * height // 4, width // 4: 3 * width // 4] = (0, 255, 0)
        cv2.imwrite(str(frames_dir / config.FRAME_NAME_TEMPLATE.format(idx)), frame)


@pytest.fixture
def extracted_project(project):
    """Project with three 160x120 frames on disk and extraction recorded."""
    write_frames(project.frames_dir, 3)
    project.config.extraction.fps = 30.0
    project.config.extraction.resolution = (160, 120)
    project.state.mark_extracted(3)
    project.save()
    return project


@pytest.fixture(scope="session")
def model_dir():
    """Directory holding real SAM2 ONNX exports; tests using it skip when absent."""
    path = Path(os.environ.get("GSSTUDIO_MODEL_DIR",
                               Path(__file__).parent.parent / "assets" / "models" / "sam2"))
    encoder = path / f"{config.MODEL_NAME}{config.ENCODER_SUFFIX}"
    decoder = path / f"{config.MODEL_NAME}{config.DECODER_SUFFIX}"
    if not encoder.exists() or not decoder.exists():
        pytest.skip(f"SAM2 ONNX models not found in {path}")
    return path


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "model: needs real SAM2 ONNX model files")
