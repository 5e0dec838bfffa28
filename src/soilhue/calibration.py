"""
Camera calibration against the reference chart
==============================================

The engine takes a photo of the 24-patch chart, measures every patch and
derives one multiplicative correction factor per RGB channel:

1. Decode the image
2. Locate and measure each patch (unfiltered mean)
3. Keep patches whose measurement and factor are inside the validity bands
4. Average the per-patch factors and commit them

State and factors are published together as an immutable
``CalibrationSnapshot``. Readers grab the snapshot once per call, so a
classification never mixes factors from two calibrations. A failed attempt
never replaces committed factors.
"""

import math
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from .chart import COLOR_CHECKER_PATCHES, PATCH_COUNT, reference_colors
from .config import merge_config
from .errors import (
    CalibrationRequiredError,
    ImageDecodeError,
    InsufficientPatchesError,
    PersistenceError,
    SoilHueError,
)
from .locator import locate_patch
from .processing import ImageInput, apply_correction, ensure_image, to_rgb_float
from .sampling import SampledColor, rgb_mean
from .storage import CalibrationStore, KeyValueStore, MemoryStore

IMAGE_PROCESSING_ERROR = "image processing"
INSUFFICIENT_PATCHES_ERROR = "insufficient patches"
PERSISTENCE_ERROR = "persistence"


class CalibrationStatus(Enum):
    NOT_CALIBRATED = "not_calibrated"
    CALIBRATING = "calibrating"
    CALIBRATED = "calibrated"
    ERROR = "error"


@dataclass(frozen=True)
class CalibrationState:
    """Tagged calibration state; ``reason`` is set only for ERROR"""
    status: CalibrationStatus
    reason: Optional[str] = None

    @classmethod
    def not_calibrated(cls) -> "CalibrationState":
        return cls(CalibrationStatus.NOT_CALIBRATED)

    @classmethod
    def calibrating(cls) -> "CalibrationState":
        return cls(CalibrationStatus.CALIBRATING)

    @classmethod
    def calibrated(cls) -> "CalibrationState":
        return cls(CalibrationStatus.CALIBRATED)

    @classmethod
    def error(cls, reason: str) -> "CalibrationState":
        return cls(CalibrationStatus.ERROR, reason)

    @property
    def is_calibrated(self) -> bool:
        return self.status is CalibrationStatus.CALIBRATED

    def __str__(self) -> str:
        if self.status is CalibrationStatus.ERROR:
            return f"error({self.reason})"
        return self.status.value


@dataclass(frozen=True)
class CorrectionFactors:
    """Per-channel multiplicative gains"""
    r: float
    g: float
    b: float

    @classmethod
    def identity(cls) -> "CorrectionFactors":
        return cls(1.0, 1.0, 1.0)

    def __iter__(self):
        return iter((self.r, self.g, self.b))

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.r, self.g, self.b)


def apply_factors(r: float, g: float, b: float, factors: CorrectionFactors) -> SampledColor:
    """Multiplies each channel by its factor and clamps the result to [0, 1]."""
    return SampledColor(
        min(1.0, max(0.0, r * factors.r)),
        min(1.0, max(0.0, g * factors.g)),
        min(1.0, max(0.0, b * factors.b)),
    )


@dataclass(frozen=True)
class CalibrationSnapshot:
    """State, factors and commit time, always replaced as a whole"""
    state: CalibrationState
    factors: CorrectionFactors
    calibrated_at: Optional[datetime] = None

    @classmethod
    def initial(cls) -> "CalibrationSnapshot":
        return cls(CalibrationState.not_calibrated(), CorrectionFactors.identity())

    @property
    def is_calibrated(self) -> bool:
        return self.state.is_calibrated

    def apply(self, r: float, g: float, b: float, strict: bool) -> SampledColor:
        """
        Corrects a color with this snapshot's factors.

        When the snapshot is not calibrated, lenient mode returns the input
        unchanged and strict mode raises ``CalibrationRequiredError``.
        """
        if not self.is_calibrated:
            if strict:
                raise CalibrationRequiredError()
            return SampledColor(r, g, b)
        return apply_factors(r, g, b, self.factors)

    def to_dict(self) -> Dict:
        return {
            "wasCalibrated": self.is_calibrated,
            "state": str(self.state),
            "correctionFactors": {"red": self.factors.r, "green": self.factors.g, "blue": self.factors.b},
            "lastCalibrationDate": self.calibrated_at.isoformat() if self.calibrated_at else None,
        }


@dataclass
class CalibrationRun:
    """Outcome of one calibration attempt"""
    state: CalibrationState
    valid_count: int = 0
    required_count: int = 0
    measurements: Dict[str, SampledColor] = field(default_factory=dict)
    patch_factors: Dict[str, Tuple[float, float, float]] = field(default_factory=dict)
    factors: Optional[CorrectionFactors] = None

    @property
    def succeeded(self) -> bool:
        return self.state.is_calibrated

    def raise_for_state(self):
        """Converts a failed attempt into the matching exception."""
        if self.succeeded:
            return
        if self.state.reason == IMAGE_PROCESSING_ERROR:
            raise ImageDecodeError("Calibration image could not be processed")
        if self.state.reason == INSUFFICIENT_PATCHES_ERROR:
            raise InsufficientPatchesError(self.valid_count, self.required_count)
        raise SoilHueError(f"Calibration failed: {self.state}")


def measure_chart(image: np.ndarray, config: Optional[Dict] = None) -> Dict[str, SampledColor]:
    """
    Measures the unfiltered mean color of every chart patch.

    Returns:
        Patch name -> measured color, in chart order
    """
    return measure_rgb(to_rgb_float(image), merge_config(config))


def measure_rgb(rgb: np.ndarray, config: Dict) -> Dict[str, SampledColor]:
    """Same as measure_chart for an already normalized RGB array."""
    height, width = rgb.shape[:2]

    measurements = {}
    for patch in COLOR_CHECKER_PATCHES:
        region = locate_patch(width, height, patch.position, config["margin_fraction"])
        measurements[patch.name] = rgb_mean(rgb, region)
    return measurements


def _inside(values, low: float, high: float) -> bool:
    return all(low < v < high for v in values)


def patch_factor(measured, reference, config: Optional[Dict] = None) -> Optional[Tuple[float, float, float]]:
    """
    Per-channel ``reference / measured`` for one patch, or None when the patch
    is rejected.

    A patch counts only if every measured channel lies strictly inside the
    measurement band (clipped blacks and whites fail) and every factor lies
    strictly inside the factor band (unstable estimates fail).
    """
    config = merge_config(config)
    if not _inside(measured, config["measurement_min"], config["measurement_max"]):
        return None

    factor = tuple(float(ref) / float(value) for ref, value in zip(reference, measured))
    if not _inside(factor, config["factor_min"], config["factor_max"]):
        return None
    return factor


class CalibrationEngine:
    """
    Owns the calibration state and correction factors.

    Only this class mutates them. Persistence goes through the injected
    key-value store; a previously saved calibration is restored on creation.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        config: Optional[Dict] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            store: Key-value collaborator (in-memory store when omitted)
            config: Pipeline configuration overrides
            clock: Returns the commit timestamp (UTC now by default)
        """
        self.config = merge_config(config)
        self.store = CalibrationStore(store if store is not None else MemoryStore())
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.last_run: Optional[CalibrationRun] = None

        self._snapshot = CalibrationSnapshot.initial()
        self._commit_lock = threading.Lock()
        self._scan_lock = threading.Lock()

        self.load()

    # =========================================================================
    # STATE
    # =========================================================================

    def snapshot(self) -> CalibrationSnapshot:
        return self._snapshot

    @property
    def state(self) -> CalibrationState:
        return self._snapshot.state

    @property
    def factors(self) -> CorrectionFactors:
        return self._snapshot.factors

    @property
    def is_calibrated(self) -> bool:
        return self._snapshot.is_calibrated

    @property
    def strict(self) -> bool:
        return bool(self.config["strict_calibration"])

    def _publish(
        self,
        state: CalibrationState,
        factors: Optional[CorrectionFactors] = None,
        calibrated_at: Optional[datetime] = None,
        keep_previous: bool = True,
    ) -> CalibrationSnapshot:
        with self._commit_lock:
            previous = self._snapshot
            if factors is None and keep_previous:
                factors = previous.factors
                calibrated_at = previous.calibrated_at
            self._snapshot = CalibrationSnapshot(
                state, factors or CorrectionFactors.identity(), calibrated_at
            )
            return self._snapshot

    def load(self) -> CalibrationSnapshot:
        """
        Restores the persisted calibration, if any.

        Raises:
            PersistenceError: the record is unreadable or its factors are outside the factor band
        """
        record = self.store.load()
        if record is None:
            print("No saved calibration found")
            return self._publish(CalibrationState.not_calibrated(), keep_previous=False)

        (r, g, b), calibrated_at = record
        if not _inside((r, g, b), self.config["factor_min"], self.config["factor_max"]):
            raise PersistenceError(
                f"Stored calibration record is corrupt: factors ({r}, {g}, {b}) are outside the valid band"
            )
        factors = CorrectionFactors(r, g, b)
        print(f"Loaded calibration: R={r:.3f}, G={g:.3f}, B={b:.3f}")
        return self._publish(CalibrationState.calibrated(), factors, calibrated_at)

    def start_calibration(self) -> CalibrationState:
        """
        Enters the CALIBRATING state. Starting over a committed calibration
        keeps its factors until a new attempt succeeds.
        """
        with self._scan_lock:
            return self._publish(CalibrationState.calibrating()).state

    def reset(self) -> CalibrationState:
        """Forgets the calibration: identity factors, cleared record, NOT_CALIBRATED."""
        with self._scan_lock:
            self.store.clear()
            self.last_run = None
            return self._publish(
                CalibrationState.not_calibrated(), CorrectionFactors.identity(), None
            ).state

    # =========================================================================
    # CALIBRATION
    # =========================================================================

    def process_calibration_image(self, image: ImageInput) -> CalibrationRun:
        """
        Derives and commits correction factors from a photo of the chart.

        Failures are reported through the returned run and the engine state
        (``error("image processing")`` or ``error("insufficient patches")``);
        committed factors are left untouched. Only persistence failures raise.

        Args:
            image: Decoded array, encoded bytes or path of the chart photo

        Returns:
            CalibrationRun with measurements and per-patch factors
        """
        with self._scan_lock:
            if self.state.status is not CalibrationStatus.CALIBRATING:
                self._publish(CalibrationState.calibrating())

            run = self._measure_and_commit(image)
            self.last_run = run
            return run

    def _measure_and_commit(self, image: ImageInput) -> CalibrationRun:
        config = self.config

        print("Step 1/3: Decoding calibration image...")
        try:
            pixels = ensure_image(image)
            rgb = to_rgb_float(pixels)
        except ImageDecodeError as e:
            print(f"  Error: {e}")
            state = self._publish(CalibrationState.error(IMAGE_PROCESSING_ERROR)).state
            return CalibrationRun(state=state)

        print(f"Step 2/3: Measuring {PATCH_COUNT} patches on a {rgb.shape[1]}x{rgb.shape[0]} image...")
        measurements = measure_rgb(rgb, config)
        references = reference_colors()
        patch_factors = {}

        for name, measured in measurements.items():
            factor = patch_factor(measured, references[name], config)
            if factor is None:
                print(f"  {name}: measured {_fmt(measured)} rejected")
                continue
            patch_factors[name] = factor

        valid_count = len(patch_factors)
        required = math.ceil(config["min_valid_patch_fraction"] * PATCH_COUNT)
        print(f"  Valid patches: {valid_count}/{PATCH_COUNT} (need {required})")

        if valid_count < required:
            state = self._publish(CalibrationState.error(INSUFFICIENT_PATCHES_ERROR)).state
            return CalibrationRun(
                state=state,
                valid_count=valid_count,
                required_count=required,
                measurements=measurements,
                patch_factors=patch_factors,
            )

        mean = np.mean(np.array(list(patch_factors.values())), axis=0)
        factors = CorrectionFactors(float(mean[0]), float(mean[1]), float(mean[2]))

        print(f"Step 3/3: Saving correction factors {_fmt(factors)}...")
        calibrated_at = self.clock()
        try:
            self.store.save(factors.as_tuple(), calibrated_at)
        except SoilHueError:
            self._publish(CalibrationState.error(PERSISTENCE_ERROR))
            raise

        state = self._publish(CalibrationState.calibrated(), factors, calibrated_at).state
        return CalibrationRun(
            state=state,
            valid_count=valid_count,
            required_count=required,
            measurements=measurements,
            patch_factors=patch_factors,
            factors=factors,
        )

    # =========================================================================
    # CORRECTION
    # =========================================================================

    def apply_calibration(self, r: float, g: float, b: float) -> SampledColor:
        """
        Corrects a color with the committed factors, clamped to [0, 1].

        Raises:
            CalibrationRequiredError: in strict mode when not calibrated
        """
        return self._snapshot.apply(r, g, b, self.strict)

    def apply_calibration_to_image(self, image: np.ndarray) -> np.ndarray:
        """Applies the committed factors to every pixel of a BGR image."""
        snapshot = self._snapshot
        if not snapshot.is_calibrated:
            if self.strict:
                raise CalibrationRequiredError()
            return image.copy()
        return apply_correction(image, snapshot.factors)


def _fmt(values) -> str:
    return "(" + ", ".join(f"{v:.3f}" for v in values) + ")"
