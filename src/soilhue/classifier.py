import numpy as np
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from .munsell import MUNSELL_CATALOG, MunsellColor


@dataclass(frozen=True)
class SoilClassification:
    munsell_notation: str
    soil_classification: str
    soil_description: str

    def to_dict(self) -> Dict:
        return {
            "munsellNotation": self.munsell_notation,
            "soilClassification": self.soil_classification,
            "soilDescription": self.soil_description,
        }


class MunsellClassifier:
    """
    Nearest-neighbor matching of a corrected RGB color against the Munsell catalog.
    """

    def __init__(self, catalog: Optional[Sequence[MunsellColor]] = None):
        self.catalog = tuple(MUNSELL_CATALOG if catalog is None else catalog)
        if not self.catalog:
            raise ValueError("Munsell catalog is empty")
        self._reference = np.array([entry.reference_rgb for entry in self.catalog], dtype=np.float64)

    def distances(self, r: float, g: float, b: float) -> np.ndarray:
        """Euclidean RGB distance from the color to every catalog entry."""
        target = np.array([r, g, b], dtype=np.float64)
        return np.linalg.norm(self._reference - target, axis=1)

    def find_closest(self, r: float, g: float, b: float) -> MunsellColor:
        # argmin returns the first minimum, so ties go to the earlier catalog entry
        return self.catalog[int(np.argmin(self.distances(r, g, b)))]

    def classify(self, r: float, g: float, b: float) -> SoilClassification:
        entry = self.find_closest(r, g, b)
        return SoilClassification(
            munsell_notation=entry.notation,
            soil_classification=entry.soil_classification,
            soil_description=entry.soil_description,
        )
