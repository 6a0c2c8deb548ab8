"""
Running statistics and key extraction over an ordered list of PhotonEvents.
"""
from dataclasses import dataclass, replace
from functools import reduce
from typing import Any, Dict, Iterable

from .photon import PhotonEvent


TARGET_KEY_BITS = 256


@dataclass(frozen=True)
class RunStatistics:
    """Aggregate counters for one run.  Everything here is a fold over events."""
    total_photons: int = 0
    same_basis_cases: int = 0
    matching_bits: int = 0
    final_key_bits: int = 0
    disturbed_photons: int = 0

    @property
    def errors(self) -> int:
        return self.same_basis_cases - self.matching_bits

    @property
    def error_rate(self) -> float:
        """Percentage of same-basis comparisons that disagree."""
        if self.same_basis_cases == 0:
            return 0.0
        return 100.0 * self.errors / self.same_basis_cases

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_photons": self.total_photons,
            "same_basis_cases": self.same_basis_cases,
            "matching_bits": self.matching_bits,
            "final_key_bits": self.final_key_bits,
            "disturbed_photons": self.disturbed_photons,
            "errors": self.errors,
            "error_rate": self.error_rate,
        }


def accumulate(stats: RunStatistics, event: PhotonEvent) -> RunStatistics:
    """One fold step: returns new statistics with *event* counted."""
    return replace(
        stats,
        total_photons=stats.total_photons + 1,
        same_basis_cases=stats.same_basis_cases + (1 if event.bases_match else 0),
        matching_bits=stats.matching_bits + (1 if event.bits_match else 0),
        final_key_bits=stats.final_key_bits + (1 if event.key_bit is not None else 0),
        disturbed_photons=stats.disturbed_photons + (1 if event.disturbed else 0),
    )


def replay(events: Iterable[PhotonEvent]) -> RunStatistics:
    """Folds *events* from the empty state."""
    return reduce(accumulate, events, RunStatistics())


def extract_key(events: Iterable[PhotonEvent], target_bits: int = TARGET_KEY_BITS) -> str:
    """
    Concatenates the defined key bits of *events* in transmission order and
    truncates to *target_bits*.  A shorter result means the run did not
    produce enough sifted bits.
    """
    bits = ''.join(str(e.key_bit) for e in events if e.key_bit is not None)
    return bits[:target_bits]


def is_complete_key(key: str, target_bits: int = TARGET_KEY_BITS) -> bool:
    return len(key) == target_bits and set(key) <= {'0', '1'}
