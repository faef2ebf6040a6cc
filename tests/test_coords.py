"""Tests for display/source/network coordinate transforms and prompts."""

import numpy as np
import pytest

from gsstudio.errors import ValidationError
from gsstudio.utils.coords import (
    DisplayRect,
    Prompt,
    display_to_source,
    mask_to_original,
    network_to_source,
    source_to_display,
    source_to_network,
    validate_prompt,
)

RECT = DisplayRect(x=100.0, y=50.0, width=400.0, height=300.0)


class TestDisplayToSource:

    def test_center_click(self):
        assert display_to_source((300.0, 200.0), RECT, (1920, 1080)) == (960, 540)

    def test_top_left_corner(self):
        assert display_to_source((100.0, 50.0), RECT, (1920, 1080)) == (0, 0)

    def test_truncates(self):
        # 0.199... of 10 px truncates to 1
        assert display_to_source((100.0 + 0.1999 * 400, 50.0), RECT, (10, 10)) == (1, 0)

    def test_bottom_right_edge_maps_to_last_pixel(self):
        assert RECT.contains(500.0, 350.0)
        assert display_to_source((500.0, 350.0), RECT, (1920, 1080)) == (1919, 1079)
        assert display_to_source((500.0, 200.0), RECT, (1920, 1080)) == (1919, 540)

    @pytest.mark.parametrize("resolution", [None, (0, 0)])
    def test_unknown_resolution_uses_unit_scale(self, resolution):
        assert display_to_source((300.0, 200.0), RECT, resolution) == (0, 0)
        assert display_to_source((500.0, 350.0), RECT, resolution) == (1, 1)

    def test_zero_area_rect(self):
        with pytest.raises(ValidationError):
            display_to_source((0, 0), DisplayRect(0, 0, 0, 10), (1920, 1080))

    def test_display_round_trip(self):
        for point in [(0, 0), (959, 539), (1919, 1079), (17, 1003)]:
            pos = source_to_display(point, RECT, (1920, 1080))
            x, y = display_to_source(pos, RECT, (1920, 1080))
            assert abs(x - point[0]) <= 1 and abs(y - point[1]) <= 1


class TestNetworkSpace:

    def test_scales_to_input_size(self):
        assert source_to_network((960, 540), (1920, 1080)) == pytest.approx((512.0, 512.0))
        assert source_to_network((50, 25), (100, 100)) == pytest.approx((512.0, 256.0))

    @pytest.mark.parametrize("resolution", [(1920, 1080), (3840, 2160), (100, 100), (1080, 1920),
                                            (1023, 777)])
    def test_round_trip_within_one_pixel(self, resolution):
        width, height = resolution
        for point in [(0, 0), (width - 1, height - 1), (width // 3, height // 7), (1, height // 2)]:
            back = network_to_source(source_to_network(point, resolution), resolution)
            assert abs(int(back[0]) - point[0]) <= 1
            assert abs(int(back[1]) - point[1]) <= 1

    @pytest.mark.parametrize("resolution", [None, (0, 0)])
    def test_unknown_resolution_is_identity(self, resolution):
        assert source_to_network((12.0, 34.0), resolution) == (12.0, 34.0)
        assert network_to_source((12.0, 34.0), resolution) == (12.0, 34.0)

    def test_partially_unknown_resolution(self):
        assert network_to_source((512.0, 512.0), (0, 720)) == pytest.approx((512.0, 360.0))


class TestPrompt:

    def test_single_foreground_click(self):
        prompt = Prompt.from_source_click((960, 540), (1920, 1080))

        assert prompt.points.shape == (1, 2)
        assert prompt.points.dtype == np.float32
        np.testing.assert_allclose(prompt.points, [[512.0, 512.0]])
        np.testing.assert_array_equal(prompt.labels, [1.0])
        assert len(prompt) == 1

    def test_mixed_labels(self):
        pts, lbl = validate_prompt([(1, 2), (3, 4)], [1, 0])
        assert pts.shape == (2, 2)
        assert lbl.tolist() == [1.0, 0.0]

    @pytest.mark.parametrize("points, labels", [
        ([], []),
        ([(1, 2)], []),
        ([(1, 2)], [1, 0]),
        ([(1, 2, 3)], [1]),
        ([(1, 2)], [2]),
    ])
    def test_invalid(self, points, labels):
        with pytest.raises(ValidationError):
            Prompt(points=points, labels=labels)


class TestMaskToOriginal:

    def test_resizes_batch_mask(self):
        logits = np.full((1, 3, 1024, 1024), -5.0, dtype=np.float32)
        logits[0, 0, :512, :512] = 5.0

        mask = mask_to_original(logits, (100, 200))

        assert mask.shape == (100, 200)
        assert mask.dtype == bool
        assert mask[10, 10]
        assert not mask[90, 190]
        assert mask[:50, :100].all()

    def test_same_size_is_thresholded_only(self):
        logits = np.array([[-1.0, 0.5], [0.0, 2.0]], dtype=np.float32)
        np.testing.assert_array_equal(mask_to_original(logits, (2, 2)),
                                      [[False, True], [False, True]])

    def test_rejects_other_ranks(self):
        with pytest.raises(ValidationError):
            mask_to_original(np.zeros((1, 4, 4)), (4, 4))
