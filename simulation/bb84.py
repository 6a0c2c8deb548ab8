"""
BB84Run: one interactive BB84 session, advanced one photon at a time.

The run has no notion of time.  Whoever drives it (the asyncio controller, a
test, a full-speed loop) calls ``advance()`` once per photon; every call
either returns the next PhotonEvent or a RunComplete marker.

Termination policy: the run completes once the sifted key reaches
``target_key_bits`` or once ``max_photons`` photons were sent, whichever
comes first.  With ``target_key_bits=None`` only the photon budget applies.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from .photon import PhotonEvent, generate_photon_event
from .random_source import RandomSource
from .run_stats import TARGET_KEY_BITS, RunStatistics, accumulate, extract_key

logger = logging.getLogger(__name__)

TARGET_REACHED = "target_reached"
BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass(frozen=True)
class RunComplete:
    """Returned by ``advance()`` once the run cannot produce more photons."""
    reason: str
    statistics: RunStatistics
    key: str
    target_key_bits: Optional[int]

    @property
    def key_complete(self) -> bool:
        if self.target_key_bits is None:
            return False
        return len(self.key) == self.target_key_bits

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reason": self.reason,
            "statistics": self.statistics.to_dict(),
            "key": self.key,
            "key_length": len(self.key),
            "key_complete": self.key_complete,
        }


class BB84Run:
    """Owns the event list and running statistics of a single session."""

    def __init__(
        self,
        max_photons: int = 1024,
        target_key_bits: Optional[int] = TARGET_KEY_BITS,
        eavesdropper_present: bool = False,
        source: Optional[RandomSource] = None,
    ):
        self.max_photons = max_photons
        self.target_key_bits = target_key_bits
        self.eavesdropper_present = eavesdropper_present
        self._source = source

        self._events: List[PhotonEvent] = []
        self._stats = RunStatistics()

    # ------------------------------------------------------------------ #
    #  Step mode                                                           #
    # ------------------------------------------------------------------ #
    def advance(self) -> Union[PhotonEvent, RunComplete]:
        """Generates the next photon, or reports completion."""
        reason = self.completion_reason
        if reason is not None:
            return self._complete(reason)

        event = generate_photon_event(
            index=len(self._events) + 1,
            eavesdropper_present=self.eavesdropper_present,
            source=self._source,
        )
        self._events.append(event)
        self._stats = accumulate(self._stats, event)
        return event

    def run_to_completion(self) -> RunComplete:
        """Advances until the run completes and returns the completion marker."""
        while True:
            outcome = self.advance()
            if isinstance(outcome, RunComplete):
                return outcome

    def reset(self) -> None:
        """Discards every event and statistic."""
        self._events = []
        self._stats = RunStatistics()

    # ------------------------------------------------------------------ #
    #  Properties                                                          #
    # ------------------------------------------------------------------ #
    @property
    def completion_reason(self) -> Optional[str]:
        if (self.target_key_bits is not None
                and self._stats.final_key_bits >= self.target_key_bits):
            return TARGET_REACHED
        if self._stats.total_photons >= self.max_photons:
            return BUDGET_EXHAUSTED
        return None

    @property
    def is_complete(self) -> bool:
        return self.completion_reason is not None

    @property
    def events(self) -> Tuple[PhotonEvent, ...]:
        return tuple(self._events)

    @property
    def last_event(self) -> Optional[PhotonEvent]:
        return self._events[-1] if self._events else None

    @property
    def statistics(self) -> RunStatistics:
        return self._stats

    @property
    def steps_done(self) -> int:
        return len(self._events)

    @property
    def shared_key(self) -> str:
        if self.target_key_bits is None:
            return extract_key(self._events, len(self._events))
        return extract_key(self._events, self.target_key_bits)

    # ------------------------------------------------------------------ #
    #  Internal                                                            #
    # ------------------------------------------------------------------ #
    def _complete(self, reason: str) -> RunComplete:
        key = self.shared_key
        if reason == BUDGET_EXHAUSTED and self.target_key_bits is not None:
            logger.debug(
                "Photon budget of %d exhausted with %d/%d key bits",
                self.max_photons, len(key), self.target_key_bits,
            )
        return RunComplete(
            reason=reason,
            statistics=self._stats,
            key=key,
            target_key_bits=self.target_key_bits,
        )
