from .random_source import RandomSource, RECTILINEAR, DIAGONAL, BASES
from .photon import PhotonEvent, PhotonFrame, generate_photon_event, quantum_state_label
from .run_stats import (
    RunStatistics,
    TARGET_KEY_BITS,
    accumulate,
    replay,
    extract_key,
    is_complete_key,
)
from .bb84 import BB84Run, RunComplete, TARGET_REACHED, BUDGET_EXHAUSTED
from .detection import (
    DetectionResult,
    DetectionReport,
    Verdict,
    classify,
    analyse_events,
    analyse_scenario,
    run_detection_analysis,
)
from .settings import (
    ConfigurationError,
    SimulatorSettings,
    AnalysisSettings,
    PHOTON_COUNT_CHOICES,
    ANALYSIS_PHOTON_COUNT_CHOICES,
    SPEED_INTERVALS_MS,
)
