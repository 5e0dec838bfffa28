import cv2
import numpy as np
import pytest

from soilhue.chart import (
    COLOR_CHECKER_PATCHES,
    PATCH_COUNT,
    patch_at,
    patch_names,
    reference_colors,
    render_chart,
    save_chart,
)
from soilhue.locator import Rect, locate_patch


def test_chart_has_24_patches_in_grid_order():
    assert PATCH_COUNT == 24
    assert len(COLOR_CHECKER_PATCHES) == 24

    for index, patch in enumerate(COLOR_CHECKER_PATCHES):
        assert patch.position == index
        assert patch.position == patch.row * 6 + patch.column
        assert all(0.0 <= v <= 1.0 for v in patch.reference_rgb)

    assert len(set(patch_names())) == 24


def test_patch_lookup():
    assert patch_at(0).name == "Dark Skin"
    assert patch_at(18).reference_rgb == (0.950, 0.950, 0.950)
    assert patch_at(23).reference_rgb == (0.104, 0.104, 0.104)

    with pytest.raises(ValueError):
        patch_at(24)
    with pytest.raises(ValueError):
        patch_at(-1)


def test_reference_colors_keep_chart_order():
    references = reference_colors()
    assert list(references) == patch_names()
    assert references["Foliage"] == (0.337, 0.422, 0.286)


def test_locate_patch_square_cells():
    assert locate_patch(600, 400, 0) == Rect(20.0, 20.0, 60.0, 60.0)
    # Row 1, column 1
    assert locate_patch(600, 400, 7) == Rect(120.0, 120.0, 60.0, 60.0)


def test_locate_patch_uses_smaller_cell_side_for_margin():
    # Cells are 200 x 100, margin is 20% of 100
    region = locate_patch(1200, 400, 5)
    assert region == Rect(1020.0, 20.0, 160.0, 60.0)


def test_locate_patch_stays_inside_image():
    for margin in (0.0, 0.2, 0.49):
        for position in range(PATCH_COUNT):
            region = locate_patch(641, 479, position, margin)
            assert region.x >= 0 and region.y >= 0
            assert region.width > 0 and region.height > 0
            assert region.x + region.width <= 641
            assert region.y + region.height <= 479


def test_locate_patch_rejects_bad_input():
    with pytest.raises(ValueError):
        locate_patch(600, 400, 24)
    with pytest.raises(ValueError):
        locate_patch(600, 400, 0, margin_fraction=0.5)


def test_render_chart_places_patches_on_grid():
    image = render_chart(600, 400)
    assert image.shape == (400, 600, 3)
    assert image.dtype == np.uint8

    for patch in COLOR_CHECKER_PATCHES:
        cx = patch.column * 100 + 50
        cy = patch.row * 100 + 50
        b, g, r = image[cy, cx]
        expected = [int(round(v * 255)) for v in patch.reference_rgb]
        assert [int(r), int(g), int(b)] == expected

    # Cell borders are black
    assert tuple(image[0, 0]) == (0, 0, 0)


def test_save_chart_writes_readable_png(tmp_path):
    path = str(tmp_path / "chart.png")
    save_chart(path, 300, 200, border=1)

    loaded = cv2.imread(path)
    assert loaded is not None
    assert loaded.shape == (200, 300, 3)
