from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

from .calibration import CalibrationEngine, CalibrationRun, CalibrationSnapshot
from .classifier import MunsellClassifier, SoilClassification
from .errors import CalibrationRequiredError
from .locator import Rect
from .processing import ImageInput, ensure_image
from .sampling import Point, SampledColor, sample_color


@dataclass(frozen=True)
class AnalysisResult:
    """Classification of a soil sample with the colors and calibration behind it"""
    classification: SoilClassification
    measured: SampledColor
    corrected: SampledColor
    calibration: CalibrationSnapshot

    def to_dict(self) -> Dict:
        result = self.classification.to_dict()
        result.update({
            "measuredRGB": {"red": self.measured.r, "green": self.measured.g, "blue": self.measured.b},
            "correctedRGB": {"red": self.corrected.r, "green": self.corrected.g, "blue": self.corrected.b},
            "calibrationInfo": self.calibration.to_dict(),
        })
        return result


class ColorAnalysisService:
    """
    Runs the sample pipeline: sample the selection, correct it with the
    current calibration snapshot and classify it.

    Pixel scans can be dispatched to a single background worker with the
    ``submit_*`` methods, so scans never overlap on the same engine.
    """

    def __init__(
        self,
        engine: Optional[CalibrationEngine] = None,
        classifier: Optional[MunsellClassifier] = None,
    ):
        self.engine = engine or CalibrationEngine()
        self.classifier = classifier or MunsellClassifier()
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def config(self) -> Dict:
        return self.engine.config

    def analyze_image(
        self,
        image: ImageInput,
        region: Optional[Rect] = None,
        polygon: Optional[Sequence[Point]] = None,
    ) -> AnalysisResult:
        """
        Classifies the soil color inside a selection.

        Args:
            image: Decoded array, encoded bytes or path of the sample photo
            region: Rectangle in normalized [0, 1] coordinates (optional)
            polygon: Vertices in normalized [0, 1] coordinates (optional)

        Raises:
            CalibrationRequiredError: strict mode without a committed calibration
            ImageDecodeError: the image cannot be decoded
        """
        # One snapshot for the whole call, even if a calibration commits meanwhile
        snapshot = self.engine.snapshot()
        strict = self.engine.strict
        if strict and not snapshot.is_calibrated:
            raise CalibrationRequiredError()

        pixels = ensure_image(image)

        print("Step 1/3: Sampling selected region...")
        measured = sample_color(pixels, region=region, polygon=polygon, config=self.config)

        print("Step 2/3: Applying calibration...")
        corrected = snapshot.apply(measured.r, measured.g, measured.b, strict=strict)

        print("Step 3/3: Matching Munsell color...")
        classification = self.classifier.classify(corrected.r, corrected.g, corrected.b)

        return AnalysisResult(
            classification=classification,
            measured=measured,
            corrected=corrected,
            calibration=snapshot,
        )

    def calibrate(self, image: ImageInput) -> CalibrationRun:
        self.engine.start_calibration()
        return self.engine.process_calibration_image(image)

    # =========================================================================
    # BACKGROUND WORKER
    # =========================================================================

    def _worker(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="soilhue-scan")
        return self._executor

    @staticmethod
    def _with_callback(future: Future, callback: Optional[Callable[[Future], None]]) -> Future:
        if callback is not None:
            future.add_done_callback(callback)
        return future

    def submit_calibration(
        self, image: ImageInput, callback: Optional[Callable[[Future], None]] = None
    ) -> Future:
        """Runs ``calibrate`` on the background worker."""
        return self._with_callback(self._worker().submit(self.calibrate, image), callback)

    def submit_analysis(
        self,
        image: ImageInput,
        region: Optional[Rect] = None,
        polygon: Optional[Sequence[Point]] = None,
        callback: Optional[Callable[[Future], None]] = None,
    ) -> Future:
        """Runs ``analyze_image`` on the background worker."""
        future = self._worker().submit(self.analyze_image, image, region, polygon)
        return self._with_callback(future, callback)

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
