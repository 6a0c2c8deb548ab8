"""
app_state.py — State shared between the simulator, encryption and analysis views.

The simulator view is the only writer of the shared key.  The encryption view
reads it; the analysis view keeps its own last report here.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from controller.simulation_controller import RunSummary
from simulation.detection import DetectionReport

logger = logging.getLogger(__name__)


class AppState:

    def __init__(self):
        self._shared_key: str = ""
        self._summary: Optional[RunSummary] = None
        self._published_at: Optional[str] = None
        self._analysis: Optional[DetectionReport] = None

    # ── Writer: simulator view ───────────────────────────────────────── #

    def publish_run(self, summary: RunSummary) -> None:
        self._shared_key = summary.key
        self._summary = summary
        self._published_at = datetime.now(timezone.utc).isoformat()
        logger.info("Shared key published: %d bits (complete=%s)",
                    len(summary.key), summary.key_complete)

    def clear(self) -> None:
        self._shared_key = ""
        self._summary = None
        self._published_at = None
        self._analysis = None

    # ── Readers ──────────────────────────────────────────────────────── #

    @property
    def shared_key(self) -> str:
        return self._shared_key

    @property
    def simulation_summary(self) -> Optional[RunSummary]:
        return self._summary

    def key_info(self) -> Dict[str, Any]:
        return {
            "key": self._shared_key,
            "key_length": len(self._shared_key),
            "complete": bool(self._summary and self._summary.key_complete),
            "published_at": self._published_at,
            "statistics": self._summary.statistics.to_dict() if self._summary else None,
        }

    # ── Analysis view ────────────────────────────────────────────────── #

    def store_analysis(self, report: DetectionReport) -> None:
        self._analysis = report

    @property
    def last_analysis(self) -> Optional[DetectionReport]:
        return self._analysis
