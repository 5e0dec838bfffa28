"""
Reference color chart
=====================

The calibration card is a 24-patch ColorChecker layout: 4 rows x 6 columns,
``position = row * 6 + col``. Reference values are standardized sRGB
triples in [0, 1].
"""

import cv2
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Tuple

CHART_ROWS = 4
CHART_COLUMNS = 6
PATCH_COUNT = CHART_ROWS * CHART_COLUMNS


@dataclass(frozen=True)
class ColorPatch:
    """A single swatch of the reference chart"""
    name: str
    position: int
    reference_rgb: Tuple[float, float, float]

    @property
    def row(self) -> int:
        return self.position // CHART_COLUMNS

    @property
    def column(self) -> int:
        return self.position % CHART_COLUMNS


COLOR_CHECKER_PATCHES: Tuple[ColorPatch, ...] = (
    # Natural colors
    ColorPatch("Dark Skin", 0, (0.400, 0.350, 0.336)),
    ColorPatch("Light Skin", 1, (0.713, 0.586, 0.524)),
    ColorPatch("Blue Sky", 2, (0.247, 0.251, 0.378)),
    ColorPatch("Foliage", 3, (0.337, 0.422, 0.286)),
    ColorPatch("Blue Flower", 4, (0.265, 0.240, 0.329)),
    ColorPatch("Bluish Green", 5, (0.261, 0.343, 0.359)),
    # Miscellaneous colors
    ColorPatch("Orange", 6, (0.638, 0.445, 0.164)),
    ColorPatch("Purplish Blue", 7, (0.242, 0.238, 0.475)),
    ColorPatch("Moderate Red", 8, (0.449, 0.127, 0.127)),
    ColorPatch("Purple", 9, (0.288, 0.187, 0.292)),
    ColorPatch("Yellow Green", 10, (0.491, 0.484, 0.169)),
    ColorPatch("Orange Yellow", 11, (0.656, 0.484, 0.156)),
    # Primary and secondary colors
    ColorPatch("Blue", 12, (0.153, 0.198, 0.558)),
    ColorPatch("Green", 13, (0.283, 0.484, 0.247)),
    ColorPatch("Red", 14, (0.558, 0.158, 0.147)),
    ColorPatch("Yellow", 15, (0.890, 0.798, 0.196)),
    ColorPatch("Magenta", 16, (0.558, 0.188, 0.372)),
    ColorPatch("Cyan", 17, (0.168, 0.302, 0.484)),
    # Gray scale
    ColorPatch("White", 18, (0.950, 0.950, 0.950)),
    ColorPatch("Neutral 8", 19, (0.773, 0.773, 0.773)),
    ColorPatch("Neutral 6.5", 20, (0.604, 0.604, 0.604)),
    ColorPatch("Neutral 5", 21, (0.422, 0.422, 0.422)),
    ColorPatch("Neutral 3.5", 22, (0.249, 0.249, 0.249)),
    ColorPatch("Black", 23, (0.104, 0.104, 0.104)),
)


def patch_at(position: int) -> ColorPatch:
    """Returns the patch at a grid position (0..23)."""
    if not 0 <= position < PATCH_COUNT:
        raise ValueError(f"Patch position must be in 0..{PATCH_COUNT - 1}, got {position}")
    return COLOR_CHECKER_PATCHES[position]


def reference_colors() -> Dict[str, Tuple[float, float, float]]:
    """Maps patch names to their reference RGB values, in chart order."""
    return {patch.name: patch.reference_rgb for patch in COLOR_CHECKER_PATCHES}


def patch_names() -> List[str]:
    return [patch.name for patch in COLOR_CHECKER_PATCHES]


def render_chart(width: int = 600, height: int = 400, border: int = 1) -> np.ndarray:
    """
    Draws the reference chart as a BGR image.

    Cells fill the image edge to edge so that the patch locator finds each
    swatch at its grid position. A thin black border separates the cells;
    it stays outside the sampled area as long as the locator margin is
    wider than the border.

    Args:
        width: Image width in pixels
        height: Image height in pixels
        border: Border thickness in pixels (0 disables it)

    Returns:
        uint8 BGR image
    """
    if width < CHART_COLUMNS or height < CHART_ROWS:
        raise ValueError("Chart image is too small")

    image = np.zeros((height, width, 3), dtype=np.uint8)
    patch_w = width / CHART_COLUMNS
    patch_h = height / CHART_ROWS

    for patch in COLOR_CHECKER_PATCHES:
        x0 = int(round(patch.column * patch_w))
        y0 = int(round(patch.row * patch_h))
        x1 = int(round((patch.column + 1) * patch_w)) - 1
        y1 = int(round((patch.row + 1) * patch_h)) - 1

        r, g, b = patch.reference_rgb
        color = (int(round(b * 255)), int(round(g * 255)), int(round(r * 255)))
        cv2.rectangle(image, (x0, y0), (x1, y1), color, -1)

        if border > 0:
            cv2.rectangle(image, (x0, y0), (x1, y1), (0, 0, 0), border)

    return image


def save_chart(path: str, width: int = 1800, height: int = 1200, border: int = 2) -> str:
    """Renders the chart and writes it to disk (format from the file extension)."""
    image = render_chart(width, height, border)
    try:
        written = cv2.imwrite(path, image)
    except cv2.error as e:
        raise IOError(f"Could not write chart image to {path}: {e}") from e
    if not written:
        raise IOError(f"Could not write chart image to {path}")
    return path
