"""
Munsell soil color catalog
==========================

Common soil colors with the Munsell notation, the soil classification the
color usually indicates and an sRGB approximation used for matching.
Order matters: the classifier resolves distance ties by catalog order.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class MunsellColor:
    """A reference soil color"""
    notation: str
    common_name: str
    soil_classification: str
    soil_description: str
    reference_rgb: Tuple[float, float, float]


_ORGANIC = "Organic soil (Histosols)"
_ORGANIC_MINERAL = "Organic-mineral soil (Mollisols)"
_MINERAL = "Mineral soil (Inceptisols)"
_IRON_OXIDE = "Iron oxide soil (Oxisols)"
_CLAY = "Clay soil (Vertisols)"
_REDUCED = "Reduced soil (Gleyed)"
_CARBONATE = "Carbonate soil (Aridisols)"

MUNSELL_CATALOG: Tuple[MunsellColor, ...] = (
    # Dark soils (organic matter)
    MunsellColor(
        "10YR 2/1", "Black", _ORGANIC,
        "High organic matter content, typical of A horizons or peat soils.",
        (0.10, 0.10, 0.10),
    ),
    MunsellColor(
        "10YR 3/1", "Very Dark Gray", _ORGANIC,
        "High organic matter content, typical of A horizons.",
        (0.20, 0.20, 0.20),
    ),
    # Brown soils (organic matter and minerals)
    MunsellColor(
        "10YR 3/2", "Very Dark Brown", _ORGANIC_MINERAL,
        "Moderate to high organic matter content, typical of A horizons.",
        (0.25, 0.20, 0.15),
    ),
    MunsellColor(
        "10YR 4/2", "Dark Brown", _ORGANIC_MINERAL,
        "Moderate organic matter content, typical of A horizons.",
        (0.35, 0.30, 0.25),
    ),
    MunsellColor(
        "10YR 4/3", "Brown", _ORGANIC_MINERAL,
        "Moderate organic matter content, typical of A horizons.",
        (0.40, 0.35, 0.30),
    ),
    # Light brown soils (minerals with some organic matter)
    MunsellColor(
        "10YR 5/3", "Light Brown", _MINERAL,
        "Low organic matter content, typical of B or C horizons.",
        (0.50, 0.45, 0.40),
    ),
    MunsellColor(
        "10YR 5/4", "Yellowish Brown", _MINERAL,
        "Low organic matter content, typical of B or C horizons.",
        (0.55, 0.50, 0.45),
    ),
    # Reddish soils (iron oxides)
    MunsellColor(
        "5YR 4/6", "Reddish Brown", _IRON_OXIDE,
        "High iron oxide content, typical of tropical or strongly weathered soils.",
        (0.60, 0.30, 0.20),
    ),
    MunsellColor(
        "5YR 5/6", "Yellowish Red", _IRON_OXIDE,
        "High iron oxide content, typical of tropical or strongly weathered soils.",
        (0.70, 0.40, 0.30),
    ),
    # Yellowish soils (clay minerals)
    MunsellColor(
        "2.5Y 6/4", "Light Yellowish Brown", _CLAY,
        "High clay mineral content, typical of alluvial or floodplain soils.",
        (0.70, 0.65, 0.50),
    ),
    MunsellColor(
        "2.5Y 7/4", "Pale Yellow", _CLAY,
        "High clay mineral content, typical of alluvial or floodplain soils.",
        (0.80, 0.75, 0.60),
    ),
    # Gray soils (reduction)
    MunsellColor(
        "5Y 5/1", "Gray", _REDUCED,
        "Signs of reduction, typical of poorly drained or hydromorphic soils.",
        (0.50, 0.50, 0.50),
    ),
    MunsellColor(
        "5Y 6/1", "Light Gray", _REDUCED,
        "Signs of reduction, typical of poorly drained or hydromorphic soils.",
        (0.60, 0.60, 0.60),
    ),
    # White soils (carbonates)
    MunsellColor(
        "10YR 8/1", "White", _CARBONATE,
        "High carbonate content, typical of calcareous soils or salt accumulation.",
        (0.90, 0.90, 0.90),
    ),
    MunsellColor(
        "10YR 7/1", "Light Gray", _CARBONATE,
        "Carbonate content, typical of calcareous soils or salt accumulation.",
        (0.80, 0.80, 0.80),
    ),
)
