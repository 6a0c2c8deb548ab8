"""
Eavesdropping detection analysis.

Runs the protocol twice, once on a clean channel and once with Eve performing
an intercept-resend attack on every photon, then compares the error rate of
the same-basis comparisons against a threshold.

Expected behaviour as photon_count grows:
  No Eve   -> error rate ~0 %
  With Eve -> error rate ~25 % (Eve picks the wrong basis half the time, and
              Bob then matches Alice only half the time: 1/2 x 1/2)
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from .photon import PhotonEvent, generate_photon_event
from .random_source import RandomSource, default_source
from .settings import DEFAULT_SAMPLE_SIZE, DEFAULT_THRESHOLD_PERCENT

logger = logging.getLogger(__name__)


class Verdict(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


def classify(error_rate: float, threshold_percent: float) -> Verdict:
    """A key is rejected only when its error rate is strictly above the threshold."""
    return Verdict.REJECTED if error_rate > threshold_percent else Verdict.ACCEPTED


def _percent(part: int, whole: int) -> float:
    return 100.0 * part / whole if whole else 0.0


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of one analysed scenario."""
    eve_present: bool
    photons_transmitted: int
    same_basis_cases: int
    errors: int
    disturbed_count: int
    threshold_percent: float
    sample_size: int = DEFAULT_SAMPLE_SIZE
    bits_compared: int = 0
    sample_errors: int = 0
    decided_on_sample: bool = False

    @property
    def scenario(self) -> str:
        return "With Eve" if self.eve_present else "Without Eve"

    @property
    def error_rate(self) -> float:
        return _percent(self.errors, self.same_basis_cases)

    @property
    def disturbance_rate(self) -> float:
        return _percent(self.disturbed_count, self.photons_transmitted)

    @property
    def sample_error_rate(self) -> float:
        return _percent(self.sample_errors, self.bits_compared)

    @property
    def decision_rate(self) -> float:
        return self.sample_error_rate if self.decided_on_sample else self.error_rate

    @property
    def verdict(self) -> Verdict:
        return classify(self.decision_rate, self.threshold_percent)

    @property
    def rejected(self) -> bool:
        return self.verdict is Verdict.REJECTED

    @property
    def remaining_key_bits(self) -> int:
        """Sifted bits left once the compared sample is published and discarded."""
        return self.same_basis_cases - self.bits_compared

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario,
            "eve_present": self.eve_present,
            "photons_transmitted": self.photons_transmitted,
            "same_basis_cases": self.same_basis_cases,
            "errors": self.errors,
            "error_rate": self.error_rate,
            "disturbed_count": self.disturbed_count,
            "disturbance_rate": self.disturbance_rate,
            "sample_size": self.sample_size,
            "bits_compared": self.bits_compared,
            "sample_errors": self.sample_errors,
            "sample_error_rate": self.sample_error_rate,
            "decided_on_sample": self.decided_on_sample,
            "remaining_key_bits": self.remaining_key_bits,
            "threshold_percent": self.threshold_percent,
            "verdict": self.verdict.value,
        }


@dataclass(frozen=True)
class DetectionReport:
    """Both scenarios of one analysis, compared side by side."""
    baseline: DetectionResult
    eavesdropped: DetectionResult

    @property
    def results(self) -> List[DetectionResult]:
        return [self.baseline, self.eavesdropped]

    @property
    def eavesdropping_detected(self) -> bool:
        return self.eavesdropped.rejected

    @property
    def error_rate_gap(self) -> float:
        return self.eavesdropped.error_rate - self.baseline.error_rate

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "eavesdropping_detected": self.eavesdropping_detected,
            "error_rate_gap": self.error_rate_gap,
        }


def analyse_events(
    events: List[PhotonEvent],
    eve_present: bool,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    threshold_percent: float = DEFAULT_THRESHOLD_PERCENT,
    estimate_from_sample: bool = False,
    source: Optional[RandomSource] = None,
) -> DetectionResult:
    """Builds a DetectionResult from an already generated list of events."""
    source = source or default_source()

    same_basis = [e for e in events if e.bases_match]
    errors = sum(1 for e in same_basis if e.is_error)
    disturbed = sum(1 for e in events if e.disturbed)

    # Alice and Bob publicly compare a random subset of their sifted bits
    sample = source.choose_sample(same_basis, sample_size)
    sample_errors = sum(1 for e in sample if e.is_error)

    return DetectionResult(
        eve_present=eve_present,
        photons_transmitted=len(events),
        same_basis_cases=len(same_basis),
        errors=errors,
        disturbed_count=disturbed,
        threshold_percent=threshold_percent,
        sample_size=sample_size,
        bits_compared=len(sample),
        sample_errors=sample_errors,
        decided_on_sample=estimate_from_sample,
    )


def analyse_scenario(
    photon_count: int,
    eve_present: bool,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    threshold_percent: float = DEFAULT_THRESHOLD_PERCENT,
    estimate_from_sample: bool = False,
    source: Optional[RandomSource] = None,
) -> DetectionResult:
    """Simulates *photon_count* photons in one scenario and analyses them."""
    source = source or default_source()
    events = [
        generate_photon_event(i + 1, eavesdropper_present=eve_present, source=source)
        for i in range(photon_count)
    ]
    return analyse_events(
        events,
        eve_present=eve_present,
        sample_size=sample_size,
        threshold_percent=threshold_percent,
        estimate_from_sample=estimate_from_sample,
        source=source,
    )


def run_detection_analysis(
    photon_count: int,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    threshold_percent: float = DEFAULT_THRESHOLD_PERCENT,
    estimate_from_sample: bool = False,
    source: Optional[RandomSource] = None,
) -> DetectionReport:
    """Analyses the clean and the eavesdropped scenario, in that order."""
    kwargs = dict(
        sample_size=sample_size,
        threshold_percent=threshold_percent,
        estimate_from_sample=estimate_from_sample,
        source=source,
    )
    report = DetectionReport(
        baseline=analyse_scenario(photon_count, eve_present=False, **kwargs),
        eavesdropped=analyse_scenario(photon_count, eve_present=True, **kwargs),
    )
    logger.info(
        "Detection analysis over %d photons: %.1f%% without Eve, %.1f%% with Eve "
        "(threshold %.1f%%, eavesdropping %s)",
        photon_count,
        report.baseline.error_rate,
        report.eavesdropped.error_rate,
        threshold_percent,
        "detected" if report.eavesdropping_detected else "not detected",
    )
    return report
