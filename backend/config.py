"""
config.py — Application configuration.
"""
import os

from simulation.run_stats import TARGET_KEY_BITS
from simulation.settings import DEFAULT_SAMPLE_SIZE, DEFAULT_THRESHOLD_PERCENT

# Server
HOST = os.environ.get("QKD_HOST", "127.0.0.1")
PORT = int(os.environ.get("QKD_PORT", "8000"))
LOG_LEVEL = os.environ.get("QKD_LOG_LEVEL", "INFO").upper()

# QKD defaults
KEY_BITS = TARGET_KEY_BITS
QBER_ABORT_THRESHOLD = float(os.environ.get("QKD_THRESHOLD_PERCENT", DEFAULT_THRESHOLD_PERCENT))
SAMPLE_SIZE = int(os.environ.get("QKD_SAMPLE_SIZE", DEFAULT_SAMPLE_SIZE))
SIMULATOR_PHOTON_COUNT = 1024
EAVESDROPPING_PHOTON_COUNT = 128
ANALYSIS_PHOTON_COUNT = 256
RECENT_PHOTONS = 20

# CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "QKD_CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173",
    ).split(",")
    if origin.strip()
]
