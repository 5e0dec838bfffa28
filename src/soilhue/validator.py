import platform
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .calibration import measure_chart
from .chart import reference_colors
from .config import merge_config
from .processing import ensure_image


class CalibrationQuality(Enum):
    """Quality levels of a calibration"""
    OPTIMAL = "optimal"
    ACCEPTABLE = "acceptable"
    POOR = "poor"


@dataclass(frozen=True)
class DeviceInfo:
    """Coarse description of the capture device"""
    model: str
    system_version: str
    camera_info: Optional[str] = None

    @classmethod
    def current(cls) -> "DeviceInfo":
        return cls(
            model=f"{platform.system()} {platform.machine()}".strip(),
            system_version=platform.release(),
        )

    def to_dict(self) -> Dict:
        return {"model": self.model, "systemVersion": self.system_version, "cameraInfo": self.camera_info}


@dataclass
class ValidationResult:
    quality: CalibrationQuality
    average_error: float
    max_error: float
    problematic_patch_names: List[str] = field(default_factory=list)
    device: Optional[DeviceInfo] = None

    @property
    def is_valid(self) -> bool:
        return self.quality is not CalibrationQuality.POOR

    def describe(self) -> str:
        problems = ", ".join(self.problematic_patch_names) or "none"
        lines = [
            "Calibration validation:",
            f"- Quality: {self.quality.value}",
            f"- Average error: {self.average_error * 100:.2f}%",
            f"- Max error: {self.max_error * 100:.2f}%",
            f"- Problematic patches: {problems}",
        ]
        if self.device is not None:
            lines.append(f"- Device: {self.device.model} {self.device.system_version}")
        return "\n".join(lines)

    def to_dict(self) -> Dict:
        return {
            "isValid": self.is_valid,
            "quality": self.quality.value,
            "averageError": round(self.average_error, 4),
            "maxError": round(self.max_error, 4),
            "problematicColors": list(self.problematic_patch_names),
            "deviceInfo": self.device.to_dict() if self.device else None,
        }


class CalibrationValidator:
    """
    Scores a calibration by comparing measured colors with the chart references.
    """

    def __init__(self, config: Optional[Dict] = None, device_provider: Callable[[], DeviceInfo] = None):
        self.config = merge_config(config)
        self.device_provider = device_provider or DeviceInfo.current

    def validate(
        self,
        measured: Mapping[str, Sequence[float]],
        reference: Mapping[str, Sequence[float]],
    ) -> ValidationResult:
        """
        Compares every patch present in both maps.

        Per patch the error is the largest absolute channel difference; a
        patch above the acceptable threshold is problematic. The average
        error is the mean over patches of the mean channel difference.

        Raises:
            ValueError: if the maps share no patch name
        """
        optimal = self.config["optimal_threshold"]
        acceptable = self.config["acceptable_threshold"]

        max_error = 0.0
        total_error = 0.0
        count = 0
        problematic = []

        for name, ref in reference.items():
            if name not in measured:
                continue
            channel_errors = [abs(float(m) - float(r)) for m, r in zip(measured[name], ref)]
            color_error = max(channel_errors)

            if color_error > acceptable:
                problematic.append(name)

            max_error = max(max_error, color_error)
            total_error += sum(channel_errors) / 3.0
            count += 1

        if count == 0:
            raise ValueError("No patch is present in both the measured and the reference colors")

        if max_error <= optimal:
            quality = CalibrationQuality.OPTIMAL
        elif max_error <= acceptable and len(problematic) <= self.config["max_problematic_patches"]:
            quality = CalibrationQuality.ACCEPTABLE
        else:
            quality = CalibrationQuality.POOR

        return ValidationResult(
            quality=quality,
            average_error=total_error / count,
            max_error=max_error,
            problematic_patch_names=problematic,
            device=self.device_provider(),
        )

    def validate_chart(self, image, engine) -> ValidationResult:
        """
        Measures a chart photo, corrects it with the engine's committed
        factors and validates it against the chart references.
        """
        snapshot = engine.snapshot()
        measured = {
            name: snapshot.apply(*color, strict=engine.strict)
            for name, color in measure_chart(ensure_image(image), engine.config).items()
        }
        return self.validate(measured, reference_colors())

    def is_compatible(self, saved_device: DeviceInfo) -> bool:
        """Only the device model is compared."""
        return self.device_provider().model == saved_device.model
