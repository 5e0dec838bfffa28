from dataclasses import dataclass
from typing import Tuple

from .chart import CHART_COLUMNS, CHART_ROWS, PATCH_COUNT


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle (origin at the top-left corner)"""
    x: float
    y: float
    width: float
    height: float

    def to_pixel_bounds(self, image_width: int, image_height: int) -> Tuple[int, int, int, int]:
        """
        Truncates the rectangle to integer pixel bounds clamped to the image.

        Returns:
            (start_x, start_y, end_x, end_y), end exclusive
        """
        start_x = max(0, min(int(self.x), image_width))
        start_y = max(0, min(int(self.y), image_height))
        end_x = max(0, min(int(self.x + self.width), image_width))
        end_y = max(0, min(int(self.y + self.height), image_height))
        return start_x, start_y, end_x, end_y

    def scaled(self, sx: float, sy: float) -> "Rect":
        """Scales a normalized rectangle to pixel units."""
        return Rect(self.x * sx, self.y * sy, self.width * sx, self.height * sy)


def locate_patch(width: float, height: float, position: int, margin_fraction: float = 0.2) -> Rect:
    """
    Maps a chart grid position to the pixel region sampled for that patch.

    The chart is assumed to fill the image as a 4x6 grid. A margin of
    ``min(patch_w, patch_h) * margin_fraction`` is cut on every side so that
    borders and slight misalignment stay out of the sample.
    """
    if not 0 <= position < PATCH_COUNT:
        raise ValueError(f"Patch position must be in 0..{PATCH_COUNT - 1}, got {position}")
    if not 0 <= margin_fraction < 0.5:
        raise ValueError("margin_fraction must be in [0, 0.5)")

    patch_w = width / CHART_COLUMNS
    patch_h = height / CHART_ROWS
    row = position // CHART_COLUMNS
    col = position % CHART_COLUMNS

    margin = min(patch_w, patch_h) * margin_fraction

    return Rect(
        x=col * patch_w + margin,
        y=row * patch_h + margin,
        width=patch_w - 2 * margin,
        height=patch_h - 2 * margin,
    )
