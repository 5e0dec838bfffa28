"""
Tunable parameters of the colorimetry pipeline.

Every component accepts an optional ``config`` dict and falls back to
``default_config()``. The numeric bands are empirical guards against
saturated or unstable measurements, not physical constants.
"""
from typing import Dict, Optional


def default_config() -> Dict:
    """Returns the default pipeline configuration"""
    return {
        # Patch locator
        "margin_fraction": 0.2,

        # Calibration: a patch is usable only if every channel is inside both bands
        "measurement_min": 0.05,
        "measurement_max": 0.95,
        "factor_min": 0.1,
        "factor_max": 10.0,
        "min_valid_patch_fraction": 0.25,

        # Validator
        "optimal_threshold": 0.15,
        "acceptable_threshold": 0.25,
        "max_problematic_patches": 8,

        # Sampler
        "near_black": 0.1,
        "near_white": 0.9,
        "min_region_size": 10,

        # Raise CalibrationRequiredError instead of passing colors through uncorrected
        "strict_calibration": True,
    }


def merge_config(overrides: Optional[Dict] = None) -> Dict:
    """
    Merges user overrides on top of the defaults.

    Raises:
        KeyError: if an override names an unknown parameter
    """
    config = default_config()
    if not overrides:
        return config

    unknown = set(overrides) - set(config)
    if unknown:
        raise KeyError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    config.update(overrides)

    if not 0 <= config["margin_fraction"] < 0.5:
        raise ValueError("margin_fraction must be in [0, 0.5)")
    if not config["measurement_min"] < config["measurement_max"]:
        raise ValueError("measurement_min must be lower than measurement_max")
    if not 0 < config["factor_min"] < config["factor_max"]:
        raise ValueError("factor band must be positive and ordered")

    return config
