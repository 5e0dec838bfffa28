import pytest

from soilhue.calibration import CalibrationEngine
from soilhue.chart import reference_colors
from soilhue.errors import CalibrationRequiredError
from soilhue.storage import MemoryStore
from soilhue.validator import CalibrationQuality, CalibrationValidator, DeviceInfo

DEVICE = DeviceInfo(model="Pixel 7", system_version="14", camera_info="main")


def make_validator(**config):
    return CalibrationValidator(config=config or None, device_provider=lambda: DEVICE)


def shifted(name, channel, delta):
    measured = {key: list(value) for key, value in reference_colors().items()}
    measured[name][channel] += delta
    return measured


def test_perfect_measurement_is_optimal():
    result = make_validator().validate(reference_colors(), reference_colors())

    assert result.quality is CalibrationQuality.OPTIMAL
    assert result.is_valid
    assert result.average_error == 0.0
    assert result.max_error == 0.0
    assert result.problematic_patch_names == []
    assert result.device == DEVICE


def test_moderate_error_is_acceptable():
    result = make_validator().validate(shifted("Orange", 0, 0.2), reference_colors())

    assert result.quality is CalibrationQuality.ACCEPTABLE
    assert result.max_error == pytest.approx(0.2)
    assert result.average_error == pytest.approx(0.2 / 3 / 24)
    assert result.problematic_patch_names == []


def test_large_error_is_poor_and_problematic():
    result = make_validator().validate(shifted("Orange", 2, 0.3), reference_colors())

    assert result.quality is CalibrationQuality.POOR
    assert not result.is_valid
    assert result.problematic_patch_names == ["Orange"]


def test_thresholds_come_from_config():
    validator = make_validator(optimal_threshold=0.25, acceptable_threshold=0.4)
    result = validator.validate(shifted("Cyan", 1, 0.2), reference_colors())
    assert result.quality is CalibrationQuality.OPTIMAL


def test_average_uses_patches_present_in_both_maps():
    references = reference_colors()
    measured = {"Red": (0.658, 0.158, 0.147), "Unknown": (0.0, 0.0, 0.0)}

    result = make_validator().validate(measured, references)

    assert result.max_error == pytest.approx(0.1)
    assert result.average_error == pytest.approx(0.1 / 3)


def test_no_shared_patch_is_rejected():
    with pytest.raises(ValueError):
        make_validator().validate({"Unknown": (0.1, 0.1, 0.1)}, reference_colors())


def test_result_serialization():
    result = make_validator().validate(shifted("Orange", 2, 0.3), reference_colors())
    data = result.to_dict()

    assert data["isValid"] is False
    assert data["quality"] == "poor"
    assert data["problematicColors"] == ["Orange"]
    assert data["deviceInfo"]["model"] == "Pixel 7"

    text = result.describe()
    assert "Quality: poor" in text
    assert "Orange" in text


def test_validate_chart_after_calibration(chart_factory):
    engine = CalibrationEngine(store=MemoryStore())
    cast_chart = chart_factory(gains=(0.8, 1.0, 1.2))
    engine.process_calibration_image(cast_chart)

    result = make_validator().validate_chart(cast_chart, engine)

    # Only the clipped white patch keeps a residual error
    assert result.quality is CalibrationQuality.OPTIMAL
    assert result.max_error == pytest.approx(0.95 - 1.0 / 1.2, abs=1e-6)


def test_validate_chart_requires_calibration_in_strict_mode(chart_factory):
    engine = CalibrationEngine(store=MemoryStore())
    with pytest.raises(CalibrationRequiredError):
        make_validator().validate_chart(chart_factory(), engine)


def test_validate_chart_lenient_uses_raw_colors(chart_factory):
    engine = CalibrationEngine(store=MemoryStore(), config={"strict_calibration": False})
    result = make_validator().validate_chart(chart_factory(gains=(0.9, 0.9, 0.9)), engine)

    # White drops by 0.095, the largest absolute shift on the chart
    assert result.max_error == pytest.approx(0.095)
    assert result.quality is CalibrationQuality.OPTIMAL


def test_device_compatibility_compares_model_only():
    validator = make_validator()
    assert validator.is_compatible(DeviceInfo("Pixel 7", "13"))
    assert not validator.is_compatible(DeviceInfo("Pixel 8", "14"))


def test_current_device_is_described():
    device = DeviceInfo.current()
    assert device.model
    assert isinstance(device.system_version, str)
