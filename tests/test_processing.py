import cv2
import numpy as np
import pytest

from soilhue.calibration import CorrectionFactors
from soilhue.errors import ImageDecodeError
from soilhue.processing import apply_correction, decode_image, ensure_image, load_image, to_rgb_float


def encoded_png(image):
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


def test_decode_png_bytes():
    image = np.zeros((10, 12, 3), dtype=np.uint8)
    image[:, :] = (10, 20, 30)

    decoded = decode_image(encoded_png(image))
    assert decoded.shape == (10, 12, 3)
    assert tuple(decoded[0, 0]) == (10, 20, 30)


def test_decode_keeps_alpha_channel():
    image = np.zeros((4, 4, 4), dtype=np.uint8)
    assert decode_image(encoded_png(image)).shape == (4, 4, 4)


def test_decode_rejects_garbage():
    with pytest.raises(ImageDecodeError):
        decode_image(b"")
    with pytest.raises(ImageDecodeError):
        decode_image(b"not an image at all")


def test_load_image(tmp_path):
    path = tmp_path / "sample.png"
    path.write_bytes(encoded_png(np.full((5, 5, 3), 200, dtype=np.uint8)))

    assert load_image(str(path)).shape == (5, 5, 3)
    assert ensure_image(path).shape == (5, 5, 3)

    with pytest.raises(ImageDecodeError):
        load_image(str(tmp_path / "missing.png"))


def test_ensure_image_rejects_unusable_input():
    with pytest.raises(ImageDecodeError):
        ensure_image(np.zeros((0, 0, 3), dtype=np.uint8))
    with pytest.raises(ImageDecodeError):
        ensure_image(12345)


def test_to_rgb_float_scales_each_depth():
    image8 = np.zeros((2, 2, 3), dtype=np.uint8)
    image8[:, :] = (0, 128, 255)
    assert to_rgb_float(image8)[0, 0].tolist() == pytest.approx([1.0, 128 / 255, 0.0])

    image16 = np.zeros((2, 2, 3), dtype=np.uint16)
    image16[:, :] = (65535, 0, 0)
    assert to_rgb_float(image16)[0, 0].tolist() == pytest.approx([0.0, 0.0, 1.0])

    image_float = np.full((2, 2, 3), 1.5)
    assert to_rgb_float(image_float).max() == 1.0


def test_to_rgb_float_rejects_unknown_types():
    with pytest.raises(ImageDecodeError):
        to_rgb_float(np.zeros((2, 2, 3), dtype=np.int32))
    with pytest.raises(ImageDecodeError):
        to_rgb_float(np.zeros((2, 2, 2), dtype=np.uint8))


def test_apply_correction_uint8_clips():
    image = np.zeros((2, 2, 3), dtype=np.uint8)
    image[:, :] = (100, 100, 200)  # BGR

    corrected = apply_correction(image, CorrectionFactors(1.5, 1.0, 0.5))
    assert corrected.dtype == np.uint8
    assert tuple(corrected[0, 0]) == (50, 100, 255)


def test_apply_correction_float_keeps_alpha():
    image = np.full((2, 2, 4), 0.5, dtype=np.float32)
    corrected = apply_correction(image, CorrectionFactors(2.0, 1.0, 0.5))

    assert corrected.dtype == np.float32
    assert corrected[0, 0].tolist() == pytest.approx([0.25, 0.5, 1.0, 0.5])


def test_apply_correction_needs_color():
    with pytest.raises(ValueError):
        apply_correction(np.zeros((2, 2), dtype=np.uint8), CorrectionFactors.identity())


def test_to_rgb_float_rejects_non_finite_values():
    image = np.full((2, 2, 3), 0.5)
    image[1, 1, 0] = np.inf
    with pytest.raises(ImageDecodeError):
        to_rgb_float(image)

    image[1, 1, 0] = np.nan
    with pytest.raises(ImageDecodeError):
        to_rgb_float(image)
