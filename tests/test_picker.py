"""Tests for the frame picker state and click mapping (Agg backend)."""

from types import SimpleNamespace

import matplotlib.pyplot as plt
import pytest

from gsstudio.io.images import mask_path
from gsstudio.project.state import Project
from gsstudio.workflows.picker import FramePicker


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


def test_select_without_engine_records_pixel(extracted_project):
    picker = FramePicker(extracted_project)
    picker.set_frame(1)

    assert picker.select_pixel(12, 34) is None
    assert picker.pixel_coord == (12, 34)
    assert picker.mask is None


def test_resolution_falls_back_to_frame_size(extracted_project):
    extracted_project.config.extraction.resolution = None
    picker = FramePicker(extracted_project)
    assert picker.resolution is None

    picker.set_frame(1)
    assert picker.resolution == (160, 120)


def test_frame_encoded_once_until_frame_changes(extracted_project, fake_engine, encoder_session,
                                                decoder_session):
    picker = FramePicker(extracted_project, engine=fake_engine)
    picker.set_frame(1)

    mask = picker.select_pixel(80, 60)
    picker.select_pixel(30, 30)
    assert mask.shape == (120, 160)
    assert mask[60, 80]
    assert len(encoder_session.calls) == 1
    assert len(decoder_session.calls) == 2

    picker.set_frame(2)
    assert picker.mask is None
    picker.select_pixel(80, 60)
    assert len(encoder_session.calls) == 2


def test_save_selection(extracted_project, fake_engine, capsys):
    picker = FramePicker(extracted_project, engine=fake_engine, target_id="photographer_01")
    picker.set_frame(3)
    picker.select_pixel(80, 60)

    target = picker.save_selection()

    assert target.points == [(80, 60)]
    reloaded = Project.load(extracted_project.record_path)
    assert reloaded.config.get_target("photographer_01").points == [(80, 60)]
    assert mask_path(extracted_project.masks_dir, 3, "photographer_01").exists()
    assert "Successfully saved: photographer_01 at (80, 60)" in capsys.readouterr().out


def test_save_without_selection_is_a_noop(extracted_project):
    picker = FramePicker(extracted_project)
    assert picker.save_selection() is None
    assert extracted_project.config.targets == []


def test_click_at_axes_center_maps_to_frame_center(extracted_project):
    picker = FramePicker(extracted_project)
    picker.set_frame(1)
    picker._setup_ui()
    picker.fig.canvas.draw()

    bbox = picker.ax_main.get_window_extent()
    event = SimpleNamespace(inaxes=picker.ax_main, x=(bbox.x0 + bbox.x1) / 2,
                            y=(bbox.y0 + bbox.y1) / 2)
    picker._on_click(event)

    x, y = picker.pixel_coord
    assert abs(x - 80) <= 1
    assert abs(y - 60) <= 1


def test_click_outside_axes_is_ignored(extracted_project):
    picker = FramePicker(extracted_project)
    picker.set_frame(1)
    picker._setup_ui()

    picker._on_click(SimpleNamespace(inaxes=None, x=1.0, y=1.0))
    assert picker.pixel_coord is None
