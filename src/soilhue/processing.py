import os
import cv2
import numpy as np
from typing import Union

from .errors import ImageDecodeError

ImageInput = Union[np.ndarray, bytes, bytearray, str, os.PathLike]


def load_image(path: str) -> np.ndarray:
    """
    Loads an image from the specified path (BGR, as returned by OpenCV).
    """
    if not os.path.exists(path):
        raise ImageDecodeError(f"Image not found at {path}")

    # Use numpy to read the file into a buffer, then decode it
    # This handles paths with non-ASCII characters on Windows
    stream = np.fromfile(path, dtype=np.uint8)
    return decode_image(stream)


def decode_image(data) -> np.ndarray:
    """
    Decodes an encoded image buffer (JPEG, PNG, ...) keeping an alpha channel if present.
    """
    buffer = np.frombuffer(bytes(data), dtype=np.uint8) if not isinstance(data, np.ndarray) else data
    if buffer.size == 0:
        raise ImageDecodeError("Empty image buffer")

    image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ImageDecodeError("Could not decode image buffer")
    return image


def ensure_image(image: ImageInput) -> np.ndarray:
    """
    Accepts a decoded array, an encoded buffer or a file path and returns a pixel array.
    """
    if isinstance(image, np.ndarray):
        if image.size == 0 or image.ndim not in (2, 3):
            raise ImageDecodeError(f"Unusable image array with shape {image.shape}")
        return image
    if isinstance(image, (bytes, bytearray)):
        return decode_image(image)
    if isinstance(image, (str, os.PathLike)):
        return load_image(os.fspath(image))
    raise ImageDecodeError(f"Unsupported image input: {type(image).__name__}")


def to_rgb_float(image: np.ndarray) -> np.ndarray:
    """
    Converts an OpenCV image (gray, BGR or BGRA; 8-bit, 16-bit or float) to
    an HxWx3 float64 RGB array in [0, 1].
    """
    if image.dtype == np.uint8:
        scaled = image.astype(np.float64) / 255.0
    elif image.dtype == np.uint16:
        scaled = image.astype(np.float64) / 65535.0
    elif np.issubdtype(image.dtype, np.floating):
        if not np.all(np.isfinite(image)):
            raise ImageDecodeError("Image contains NaN or infinite pixel values")
        scaled = np.clip(image.astype(np.float64), 0.0, 1.0)
    else:
        raise ImageDecodeError(f"Unsupported pixel type {image.dtype}")

    if scaled.ndim == 2:
        return np.repeat(scaled[:, :, None], 3, axis=2)

    channels = scaled.shape[2]
    if channels == 1:
        return np.repeat(scaled, 3, axis=2)
    if channels == 3:
        return scaled[:, :, ::-1]
    if channels == 4:
        # BGRA -> RGB, alpha is ignored
        return scaled[:, :, 2::-1]
    raise ImageDecodeError(f"Unsupported channel count {channels}")


def apply_correction(image: np.ndarray, factors) -> np.ndarray:
    """
    Multiplies each channel of a BGR image by its correction factor.

    Args:
        image: BGR or BGRA image (uint8 or float)
        factors: object with r, g, b attributes

    Returns:
        Corrected image with the same dtype; values are clipped to the valid range
    """
    gains = np.array([factors.b, factors.g, factors.r], dtype=np.float64)
    corrected = image.astype(np.float64)

    if corrected.ndim == 2:
        raise ValueError("Per-channel correction needs a color image")

    corrected[:, :, :3] *= gains

    if image.dtype == np.uint8:
        return np.clip(np.rint(corrected), 0, 255).astype(np.uint8)
    if image.dtype == np.uint16:
        return np.clip(np.rint(corrected), 0, 65535).astype(np.uint16)
    return np.clip(corrected, 0.0, 1.0).astype(image.dtype)
