"""
Run parameters for the simulator, eavesdropping and analysis views, with the
boundary checks applied before any run starts.
"""
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .run_stats import TARGET_KEY_BITS


PHOTON_COUNT_CHOICES: Tuple[int, ...] = (128, 256, 512, 720, 1024)
ANALYSIS_PHOTON_COUNT_CHOICES: Tuple[int, ...] = (128, 256, 512, 1024)

# ms between photons
SPEED_INTERVALS_MS = {
    "slow":   100,
    "medium": 20,
    "fast":   5,
}
EAVESDROPPING_INTERVAL_MS = 300

SAMPLE_SIZE_RANGE = (8, 128)
THRESHOLD_RANGE = (0.0, 100.0)
DEFAULT_THRESHOLD_PERCENT = 11.0
DEFAULT_SAMPLE_SIZE = 32


class ConfigurationError(ValueError):
    """A run parameter is malformed or out of range."""


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a whole number, got {value!r}")
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    if not as_float.is_integer():
        raise ConfigurationError(f"{name} must be a whole number, got {value!r}")
    return int(as_float)


def _as_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    if result != result:  # NaN
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    return result


def validate_photon_count(value: Any, choices: Tuple[int, ...] = PHOTON_COUNT_CHOICES) -> int:
    count = _as_int("photon_count", value)
    if count not in choices:
        raise ConfigurationError(
            f"photon_count must be one of {', '.join(map(str, choices))}; got {count}"
        )
    return count


def validate_speed(value: Any) -> str:
    speed = str(value).strip().lower()
    if speed not in SPEED_INTERVALS_MS:
        raise ConfigurationError(
            f"speed must be one of {', '.join(SPEED_INTERVALS_MS)}; got {value!r}"
        )
    return speed


def validate_sample_size(value: Any) -> int:
    size = _as_int("sample_size", value)
    low, high = SAMPLE_SIZE_RANGE
    if not low <= size <= high:
        raise ConfigurationError(f"sample_size must be between {low} and {high}; got {size}")
    return size


def validate_threshold(value: Any) -> float:
    threshold = _as_float("threshold_percent", value)
    low, high = THRESHOLD_RANGE
    if not low <= threshold <= high:
        raise ConfigurationError(
            f"threshold_percent must be between {low:g} and {high:g}; got {threshold:g}"
        )
    return threshold


@dataclass
class SimulatorSettings:
    """Parameters of an interactive run (simulator or eavesdropping view)."""
    photon_count: int = 1024
    speed: str = "fast"
    eavesdropper_present: bool = False
    # None: run the whole photon budget regardless of key length
    target_key_bits: Optional[int] = TARGET_KEY_BITS

    def validated(self) -> "SimulatorSettings":
        target = self.target_key_bits
        if target is not None:
            target = _as_int("target_key_bits", target)
            if target <= 0:
                raise ConfigurationError(f"target_key_bits must be positive; got {target}")
        return SimulatorSettings(
            photon_count=validate_photon_count(self.photon_count),
            speed=validate_speed(self.speed),
            eavesdropper_present=bool(self.eavesdropper_present),
            target_key_bits=target,
        )

    @property
    def interval_ms(self) -> int:
        return SPEED_INTERVALS_MS[self.speed]


@dataclass
class AnalysisSettings:
    """Parameters of the two-scenario detection analysis."""
    photon_count: int = 256
    sample_size: int = DEFAULT_SAMPLE_SIZE
    threshold_percent: float = DEFAULT_THRESHOLD_PERCENT
    estimate_from_sample: bool = False

    def validated(self) -> "AnalysisSettings":
        return AnalysisSettings(
            photon_count=validate_photon_count(self.photon_count, ANALYSIS_PHOTON_COUNT_CHOICES),
            sample_size=validate_sample_size(self.sample_size),
            threshold_percent=validate_threshold(self.threshold_percent),
            estimate_from_sample=bool(self.estimate_from_sample),
        )
