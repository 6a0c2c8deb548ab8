"""
models.py — Pydantic schemas for request/response validation.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from simulation.settings import (
    ANALYSIS_PHOTON_COUNT_CHOICES,
    PHOTON_COUNT_CHOICES,
    SAMPLE_SIZE_RANGE,
    THRESHOLD_RANGE,
    AnalysisSettings,
    SimulatorSettings,
    validate_photon_count,
    validate_speed,
)

from .config import (
    ANALYSIS_PHOTON_COUNT,
    KEY_BITS,
    QBER_ABORT_THRESHOLD,
    SAMPLE_SIZE,
    SIMULATOR_PHOTON_COUNT,
)


# ── Views ────────────────────────────────────────────────────────────── #

class View(str, Enum):
    SIMULATOR = "simulator"
    EAVESDROPPING = "eavesdropping"


class Speed(str, Enum):
    SLOW = "slow"
    MEDIUM = "medium"
    FAST = "fast"


# ── Simulator / eavesdropping views ──────────────────────────────────── #

class SimulatorConfig(BaseModel):
    photon_count: int = SIMULATOR_PHOTON_COUNT
    speed: Speed = Speed.FAST
    eavesdropper_present: bool = False

    @field_validator("photon_count")
    @classmethod
    def _photon_count_in_menu(cls, v: int) -> int:
        return validate_photon_count(v)

    def to_settings(self, view: View) -> SimulatorSettings:
        # Only the simulator view stops early at a full key
        return SimulatorSettings(
            photon_count=self.photon_count,
            speed=self.speed.value,
            eavesdropper_present=self.eavesdropper_present,
            target_key_bits=KEY_BITS if view is View.SIMULATOR else None,
        )


class SpeedRequest(BaseModel):
    speed: Speed

    @field_validator("speed", mode="before")
    @classmethod
    def _known_speed(cls, v: Any) -> str:
        return validate_speed(v)


class PhotonFrameModel(BaseModel):
    quantum_state: str
    sender_basis: str
    receiver_basis: str
    polarization: float
    colour: str
    symbol: str


class PhotonModel(BaseModel):
    index: int
    sender_bit: int
    sender_basis: str
    receiver_basis: str
    receiver_bit: int
    eavesdropper_present: bool
    eavesdropper_basis: Optional[str] = None
    eavesdropper_measurement: Optional[int] = None
    disturbed: bool = False
    bases_match: bool
    bits_match: bool
    key_bit: Optional[int] = None


class RunStatisticsModel(BaseModel):
    total_photons: int = 0
    same_basis_cases: int = 0
    matching_bits: int = 0
    final_key_bits: int = 0
    disturbed_photons: int = 0
    errors: int = 0
    error_rate: float = 0.0


class StepResponse(BaseModel):
    view: View
    complete: bool
    photon: Optional[PhotonModel] = None
    frame: Optional[PhotonFrameModel] = None
    statistics: RunStatisticsModel
    summary: Optional[Dict[str, Any]] = None


class ViewSettingsModel(BaseModel):
    photon_count: int
    speed: str
    eavesdropper_present: bool
    target_key_bits: Optional[int] = None


class ViewState(BaseModel):
    view: View
    settings: ViewSettingsModel
    running: bool
    complete: bool
    steps_done: int
    statistics: RunStatisticsModel
    key: str = ""
    current_state: Optional[Tuple[str, str, str]] = None
    recent_photons: List[PhotonModel] = []


class SharedKeyResponse(BaseModel):
    key: str = ""
    key_length: int = 0
    complete: bool = False
    published_at: Optional[str] = None
    statistics: Optional[RunStatisticsModel] = None


# ── Analysis view ────────────────────────────────────────────────────── #

class AnalysisConfig(BaseModel):
    photon_count: int = ANALYSIS_PHOTON_COUNT
    sample_size: int = Field(SAMPLE_SIZE, ge=SAMPLE_SIZE_RANGE[0], le=SAMPLE_SIZE_RANGE[1])
    threshold_percent: float = Field(QBER_ABORT_THRESHOLD,
                                     ge=THRESHOLD_RANGE[0], le=THRESHOLD_RANGE[1])
    estimate_from_sample: bool = False

    @field_validator("photon_count")
    @classmethod
    def _photon_count_in_menu(cls, v: int) -> int:
        return validate_photon_count(v, ANALYSIS_PHOTON_COUNT_CHOICES)

    def to_settings(self) -> AnalysisSettings:
        return AnalysisSettings(
            photon_count=self.photon_count,
            sample_size=self.sample_size,
            threshold_percent=self.threshold_percent,
            estimate_from_sample=self.estimate_from_sample,
        )


class DetectionResultModel(BaseModel):
    scenario: str
    eve_present: bool
    photons_transmitted: int
    same_basis_cases: int
    errors: int
    error_rate: float
    disturbed_count: int
    disturbance_rate: float
    sample_size: int
    bits_compared: int
    sample_errors: int
    sample_error_rate: float
    decided_on_sample: bool
    remaining_key_bits: int
    threshold_percent: float
    verdict: str


class AnalysisReport(BaseModel):
    results: List[DetectionResultModel]
    eavesdropping_detected: bool
    error_rate_gap: float


# ── Encryption view ──────────────────────────────────────────────────── #

class CiphertextFormat(str, Enum):
    HEX = "hex"
    BASE64 = "base64"


class EncryptRequest(BaseModel):
    message: str = ""
    key: str = ""
    format: CiphertextFormat = CiphertextFormat.HEX


class EncryptResponse(BaseModel):
    success: bool
    status: str
    ciphertext: str = ""
    format: CiphertextFormat = CiphertextFormat.HEX
    error: str = ""


class DecryptRequest(BaseModel):
    ciphertext: str = ""
    key: str = ""
    format: CiphertextFormat = CiphertextFormat.HEX
    encryption_key: Optional[str] = None


class DecryptResponse(BaseModel):
    success: bool
    status: str
    plaintext: str = ""
    error: str = ""


# ── Configuration surface ────────────────────────────────────────────── #

class ConfigResponse(BaseModel):
    photon_count_choices: List[int] = list(PHOTON_COUNT_CHOICES)
    analysis_photon_count_choices: List[int] = list(ANALYSIS_PHOTON_COUNT_CHOICES)
    speeds: Dict[str, int]
    sample_size_range: Tuple[int, int] = SAMPLE_SIZE_RANGE
    threshold_range: Tuple[float, float] = THRESHOLD_RANGE
    default_sample_size: int = SAMPLE_SIZE
    default_threshold_percent: float = QBER_ABORT_THRESHOLD
    key_bits: int = KEY_BITS
