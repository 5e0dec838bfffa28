import os
import sys

import numpy as np
import pytest

# Add src to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from soilhue.chart import COLOR_CHECKER_PATCHES, CHART_COLUMNS, CHART_ROWS


def make_chart(width=600, height=400, gains=(1.0, 1.0, 1.0), positions=None):
    """
    Builds a float BGR chart image whose patches hold ``reference * gain``
    (gains given in R, G, B order). Patches not listed in ``positions`` stay black.
    """
    image = np.zeros((height, width, 3), dtype=np.float64)
    cell_w = width // CHART_COLUMNS
    cell_h = height // CHART_ROWS

    for patch in COLOR_CHECKER_PATCHES:
        if positions is not None and patch.position not in positions:
            continue
        r, g, b = (ref * gain for ref, gain in zip(patch.reference_rgb, gains))
        row, col = patch.row, patch.column
        image[row * cell_h:(row + 1) * cell_h, col * cell_w:(col + 1) * cell_w] = (b, g, r)

    return image


def make_solid(rgb, width=120, height=80):
    """Float BGR image filled with one RGB color."""
    image = np.zeros((height, width, 3), dtype=np.float64)
    image[:, :] = (rgb[2], rgb[1], rgb[0])
    return image


@pytest.fixture
def chart_factory():
    return make_chart


@pytest.fixture
def solid_factory():
    return make_solid
