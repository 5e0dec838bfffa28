import numpy as np
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from .config import merge_config
from .errors import ImageDecodeError
from .locator import Rect
from .processing import to_rgb_float

Point = Tuple[float, float]


@dataclass(frozen=True)
class SampledColor:
    """Average color of an image region, channels in [0, 1]"""
    r: float
    g: float
    b: float

    def __iter__(self):
        return iter((self.r, self.g, self.b))

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.r, self.g, self.b)


BLACK = SampledColor(0.0, 0.0, 0.0)


def _as_color(mean: np.ndarray) -> SampledColor:
    r, g, b = np.clip(mean, 0.0, 1.0)
    return SampledColor(float(r), float(g), float(b))


def _readable_rgb(image: Optional[np.ndarray]) -> Optional[np.ndarray]:
    if image is None or image.size == 0:
        return None
    try:
        return to_rgb_float(image)
    except ImageDecodeError as e:
        print(f"Warning: image cannot be read for sampling ({e})")
        return None


def mean_color(image: np.ndarray, rect: Optional[Rect] = None) -> SampledColor:
    """
    Unfiltered arithmetic mean of every pixel inside a pixel-unit rectangle.

    Used for calibration patches, where clipped pixels must stay in the
    average so that the validity bands can reject the whole patch.
    """
    rgb = _readable_rgb(image)
    if rgb is None:
        return BLACK
    return rgb_mean(rgb, rect)


def rgb_mean(rgb: np.ndarray, rect: Optional[Rect] = None) -> SampledColor:
    """Mean of an already normalized RGB array, optionally restricted to a pixel rectangle."""
    height, width = rgb.shape[:2]
    if rect is None:
        region = rgb
    else:
        x0, y0, x1, y1 = rect.to_pixel_bounds(width, height)
        region = rgb[y0:y1, x0:x1]

    if region.size == 0:
        return BLACK
    return _as_color(region.reshape(-1, 3).mean(axis=0))


def points_in_polygon(xs: np.ndarray, ys: np.ndarray, polygon: Sequence[Point]) -> np.ndarray:
    """
    Vectorized ray casting: a point is inside when a ray towards +x crosses
    the polygon boundary an odd number of times.

    Boundary parity is half-open: an edge counts as crossed only where its
    y-span satisfies ``(yi > y) != (yj > y)`` and the point lies strictly to
    the left of the crossing. For an axis-aligned square this places points
    on the minimum-x and minimum-y sides inside and points on the maximum-x
    and maximum-y sides outside.
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    inside = np.zeros(np.broadcast(xs, ys).shape, dtype=bool)

    vertices = [(float(x), float(y)) for x, y in polygon]
    if not vertices:
        return inside

    j = len(vertices) - 1
    with np.errstate(divide="ignore", invalid="ignore"):
        for i in range(len(vertices)):
            xi, yi = vertices[i]
            xj, yj = vertices[j]
            spans = (yi > ys) != (yj > ys)
            # Horizontal edges never span, so their division result is masked out
            crossing_x = (xj - xi) * (ys - yi) / (yj - yi) + xi
            inside ^= spans & (xs < crossing_x)
            j = i

    return inside


def point_in_polygon(x: float, y: float, polygon: Sequence[Point]) -> bool:
    return bool(points_in_polygon(np.array(x), np.array(y), polygon))


def sample_color(
    image: np.ndarray,
    region: Optional[Rect] = None,
    polygon: Optional[Sequence[Point]] = None,
    config: Optional[Dict] = None,
) -> SampledColor:
    """
    Filtered mean color of a live sample selection.

    Args:
        image: Decoded image (OpenCV layout)
        region: Rectangle in normalized [0, 1] image coordinates (optional)
        polygon: Vertices in normalized [0, 1] image coordinates (optional)
        config: Pipeline configuration (near_black, near_white, min_region_size)

    Returns:
        Mean RGB of the eligible pixels. Near-black and near-white pixels are
        dropped as background or clipping. A region smaller than
        ``min_region_size`` pixels, or a selection with no eligible pixel,
        falls back once to the unfiltered mean of the whole image.
    """
    config = merge_config(config)
    rgb = _readable_rgb(image)
    if rgb is None:
        return BLACK

    height, width = rgb.shape[:2]
    x0, y0, x1, y1 = 0, 0, width, height

    if region is not None:
        x0, y0, x1, y1 = region.scaled(width, height).to_pixel_bounds(width, height)
        min_size = config["min_region_size"]
        if x1 - x0 < min_size or y1 - y0 < min_size:
            print(f"Region {x1 - x0}x{y1 - y0}px is too small, sampling the whole image")
            return rgb_mean(rgb)

    pixels = rgb[y0:y1, x0:x1]
    eligible = np.ones(pixels.shape[:2], dtype=bool)

    if polygon is not None and len(polygon) > 0:
        xs = np.arange(x0, x1, dtype=np.float64) / width
        ys = np.arange(y0, y1, dtype=np.float64) / height
        grid_x, grid_y = np.meshgrid(xs, ys)
        eligible &= points_in_polygon(grid_x, grid_y, polygon)

    near_black = np.all(pixels < config["near_black"], axis=2)
    near_white = np.all(pixels > config["near_white"], axis=2)
    eligible &= ~(near_black | near_white)

    if not np.any(eligible):
        print("No eligible pixels in selection, sampling the whole image")
        return rgb_mean(rgb)

    return _as_color(pixels[eligible].mean(axis=0))
