"""
SimulationController
====================
Sits between the simulation engine and the browser.

It owns:
  - A BB84Run instance
  - An asyncio task that drives the paced step loop
  - Listener lists the backend connects to (WebSocket broadcast, app state)

The browser controls *what* parameters to use; the controller drives *when*
each photon is processed and emits updates the animation and charts respond
to.  Pausing only ever happens between two photons.
"""
import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from simulation.bb84 import BB84Run, RunComplete
from simulation.photon import PhotonEvent, PhotonFrame
from simulation.random_source import RandomSource
from simulation.run_stats import RunStatistics
from simulation.settings import SPEED_INTERVALS_MS, SimulatorSettings, validate_speed

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Union[None, Awaitable[None]]]


# ------------------------------------------------------------------ #
#  Data objects handed to listeners                                    #
# ------------------------------------------------------------------ #
@dataclass
class PhotonUpdate:
    """Snapshot of a single processed photon, emitted after each step."""
    view: str
    event: PhotonEvent
    frame: PhotonFrame
    statistics: RunStatistics
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "view": self.view,
            "photon": self.event.to_dict(),
            "frame": {
                "quantum_state": self.frame.quantum_state,
                "sender_basis": self.frame.sender_basis,
                "receiver_basis": self.frame.receiver_basis,
                "polarization": self.frame.polarization,
                "colour": self.frame.colour,
                "symbol": self.frame.symbol,
            },
            "statistics": self.statistics.to_dict(),
            "progress": {"done": self.event.index, "total": self.total},
        }


@dataclass
class RunSummary:
    """Emitted once when the run finishes."""
    view: str
    eavesdropper_present: bool
    reason: str
    statistics: RunStatistics
    key: str
    key_complete: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "view": self.view,
            "eavesdropper_present": self.eavesdropper_present,
            "reason": self.reason,
            "statistics": self.statistics.to_dict(),
            "key": self.key,
            "key_length": len(self.key),
            "key_complete": self.key_complete,
        }


# ------------------------------------------------------------------ #
#  Controller                                                          #
# ------------------------------------------------------------------ #
class SimulationController:

    def __init__(
        self,
        view: str = "simulator",
        settings: Optional[SimulatorSettings] = None,
        interval_ms: Optional[int] = None,
        source: Optional[RandomSource] = None,
    ):
        self.view = view
        self.settings = (settings or SimulatorSettings()).validated()
        self._interval_override = interval_ms
        self._source = source

        self._run = self._new_run()
        self._summary: Optional[RunSummary] = None
        self._running = False
        self._task: Optional[asyncio.Task] = None

        self._photon_listeners: List[Listener] = []
        self._complete_listeners: List[Listener] = []
        self._log_listeners: List[Listener] = []

    # ------------------------------------------------------------------ #
    #  Listeners                                                           #
    # ------------------------------------------------------------------ #
    def on_photon(self, listener: Listener) -> None:
        self._photon_listeners.append(listener)

    def on_complete(self, listener: Listener) -> None:
        self._complete_listeners.append(listener)

    def on_log(self, listener: Listener) -> None:
        self._log_listeners.append(listener)

    # ------------------------------------------------------------------ #
    #  Public API                                                          #
    # ------------------------------------------------------------------ #
    async def configure(self, settings: SimulatorSettings) -> None:
        """Validates *settings* and replaces the current run with an empty one.

        Pacing follows the configured speed from here on, replacing any
        interval given at construction.
        """
        validated = settings.validated()
        self._running = False
        self.settings = validated
        self._interval_override = None
        self._run = self._new_run()
        self._summary = None
        await self._log(
            f"Configured: {validated.photon_count} photons, speed={validated.speed}, "
            f"Eve={'ON' if validated.eavesdropper_present else 'OFF'}"
        )

    async def start(self) -> None:
        """Start a fresh run and the paced step loop."""
        if self._running:
            return
        self._run = self._new_run()
        self._summary = None
        self._running = True
        await self._log(
            f"Run started: up to {self.settings.photon_count} photons, "
            f"Eve={'ON' if self.settings.eavesdropper_present else 'OFF'}"
        )
        self._ensure_task()

    async def pause(self) -> None:
        if not self._running:
            return
        self._running = False
        await self._log(f"Paused after photon {self._run.steps_done}.")

    async def resume(self) -> None:
        if self._running:
            return
        if self._run.is_complete:
            await self._log("Run already complete; reset or start a new run.")
            return
        self._running = True
        await self._log("Resumed.")
        self._ensure_task()

    async def step_once(self) -> Union[PhotonUpdate, RunSummary]:
        """Process exactly one photon (for step-through mode)."""
        self._running = False
        return await self._tick()

    async def complete(self) -> RunSummary:
        """Processes the remaining photons with no pacing."""
        self._running = False
        while True:
            outcome = await self._tick(quiet=True)
            if isinstance(outcome, RunSummary):
                return outcome

    async def reset(self) -> None:
        self._running = False
        self._run = self._new_run()
        self._summary = None
        await self._log("Reset.")

    def set_speed(self, speed: str) -> None:
        self.settings.speed = validate_speed(speed)
        self._interval_override = None

    async def wait(self) -> None:
        """Waits until the step loop stops (run paused or finished)."""
        if self._task is not None:
            await self._task

    # ------------------------------------------------------------------ #
    #  Properties                                                          #
    # ------------------------------------------------------------------ #
    @property
    def interval_ms(self) -> int:
        if self._interval_override is not None:
            return self._interval_override
        return SPEED_INTERVALS_MS[self.settings.speed]

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def run(self) -> BB84Run:
        return self._run

    @property
    def summary(self) -> Optional[RunSummary]:
        return self._summary

    def state(self, recent: int = 20) -> Dict[str, Any]:
        events = self._run.events
        last = self._run.last_event
        return {
            "view": self.view,
            "settings": {
                "photon_count": self.settings.photon_count,
                "speed": self.settings.speed,
                "eavesdropper_present": self.settings.eavesdropper_present,
                "target_key_bits": self.settings.target_key_bits,
            },
            "running": self._running,
            "complete": self._run.is_complete,
            "steps_done": self._run.steps_done,
            "statistics": self._run.statistics.to_dict(),
            "key": self._run.shared_key,
            "current_state": last.frame().as_tuple() if last else None,
            "recent_photons": [e.to_dict() for e in events[-recent:]] if recent > 0 else [],
        }

    # ------------------------------------------------------------------ #
    #  Internal loop                                                       #
    # ------------------------------------------------------------------ #
    def _new_run(self) -> BB84Run:
        return BB84Run(
            max_photons=self.settings.photon_count,
            target_key_bits=self.settings.target_key_bits,
            eavesdropper_present=self.settings.eavesdropper_present,
            source=self._source,
        )

    def _ensure_task(self) -> None:
        # A task still sleeping from before a pause is reused; it re-reads
        # the run and the running flag at every photon boundary.
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._loop())

    async def _loop(self) -> None:
        while self._running:
            outcome = await self._tick()
            if isinstance(outcome, RunSummary):
                break
            await asyncio.sleep(self.interval_ms / 1000)

    async def _tick(self, quiet: bool = False) -> Union[PhotonUpdate, RunSummary]:
        outcome = self._run.advance()

        if isinstance(outcome, RunComplete):
            self._running = False
            return await self._finish(outcome)

        update = PhotonUpdate(
            view=self.view,
            event=outcome,
            frame=outcome.frame(),
            statistics=self._run.statistics,
            total=self._run.max_photons,
        )
        if not quiet:
            await self._emit(self._photon_listeners, update)
        return update

    async def _finish(self, outcome: RunComplete) -> RunSummary:
        if self._summary is not None:
            return self._summary

        summary = RunSummary(
            view=self.view,
            eavesdropper_present=self._run.eavesdropper_present,
            reason=outcome.reason,
            statistics=outcome.statistics,
            key=outcome.key,
            key_complete=outcome.key_complete,
        )
        self._summary = summary
        await self._emit(self._complete_listeners, summary)

        stats = outcome.statistics
        if self._run.eavesdropper_present:
            status = f"{stats.disturbed_photons} photon(s) disturbed by Eve."
        elif outcome.key_complete:
            status = "Shared key established."
        else:
            status = "Photon budget exhausted before the key was complete."
        await self._log(
            f"Run complete. {stats.total_photons} photons, error rate={stats.error_rate:.1f}%. "
            f"Key: {len(outcome.key)} bits. {status}"
        )
        return summary

    async def _emit(self, listeners: List[Listener], payload: Any) -> None:
        for listener in listeners:
            result = listener(payload)
            if inspect.isawaitable(result):
                await result

    async def _log(self, message: str) -> None:
        logger.info("[%s] %s", self.view, message)
        await self._emit(self._log_listeners, message)
