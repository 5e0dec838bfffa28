class SoilHueError(Exception):
    """Base class for errors raised by the colorimetry core."""


class ImageDecodeError(SoilHueError, ValueError):
    """The input buffer could not be decoded into a usable image."""


class InsufficientPatchesError(SoilHueError):
    """Too few chart patches passed the validity bands."""

    def __init__(self, valid_count: int, required: int):
        self.valid_count = valid_count
        self.required = required
        super().__init__(
            f"Only {valid_count} valid patches found, at least {required} are required. "
            "Retake the chart photo with even, indirect lighting."
        )


class CalibrationRequiredError(SoilHueError, RuntimeError):
    """Strict mode refused to correct a color without a committed calibration."""

    def __init__(self, message: str = None):
        super().__init__(
            message
            or "The camera is not calibrated. Run a calibration with the reference chart before analyzing samples."
        )


class PersistenceError(SoilHueError, IOError):
    """The key-value store could not be read or written."""
