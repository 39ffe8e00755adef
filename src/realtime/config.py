"""
Configuration constants for the real-time form analysis engine.

Centralizes thresholds, window sizes and severity tables, and loads
overrides from environment variables (``.env`` at the project root).
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_PATH = PROJECT_ROOT / ".env"
load_dotenv(_ENV_PATH)

CONFIG_DIR = PROJECT_ROOT / "config"
EXERCISE_PROFILES_PATH = CONFIG_DIR / "exercise_profiles.yaml"

# ---------------------------------------------------------------------------
# Landmark taxonomy
# ---------------------------------------------------------------------------
NUM_LANDMARKS: int = 33          # MediaPipe Pose body points
VALUES_PER_LANDMARK: int = 4     # x, y, z, visibility

# ---------------------------------------------------------------------------
# Frame gating
# ---------------------------------------------------------------------------
MAX_HISTORY: int = int(os.environ.get("FORM_ENGINE_MAX_HISTORY", "60"))  # ~2 s at 30 fps
CONFIDENCE_THRESHOLD: float = float(
    os.environ.get("FORM_ENGINE_CONFIDENCE_THRESHOLD", "0.7")
)
VISIBILITY_THRESHOLD: float = float(
    os.environ.get("FORM_ENGINE_VISIBILITY_THRESHOLD", "0.5")
)
CORRECTION_COOLDOWN_MS: float = float(
    os.environ.get("FORM_ENGINE_CORRECTION_COOLDOWN_MS", "2000")
)

# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------
MOTION_WINDOW: int = 10              # frames used for motion magnitude
CORRECTION_HISTORY_LIMIT: int = 10   # corrections retained per session
RECENT_CORRECTIONS: int = 5          # corrections exposed in snapshots
QUALITY_WINDOW: int = 10             # corrections used for form quality
FEEDBACK_QUEUE_LIMIT: int = int(os.environ.get("FORM_ENGINE_FEEDBACK_QUEUE_LIMIT", "100"))

# ---------------------------------------------------------------------------
# Phase ladder (upper bounds on motion magnitude, checked in order)
# ---------------------------------------------------------------------------
PHASE_THRESHOLDS: dict[str, float] = {
    "rest": 0.1,
    "setup": 0.3,
    "execution": 0.7,
}

# ---------------------------------------------------------------------------
# Severity
# ---------------------------------------------------------------------------
# Upper bound of each band as a multiple of the profile tolerance.
SEVERITY_BANDS: dict[str, float] = {
    "minor": 1.5,
    "major": 2.5,
}

SEVERITY_PENALTIES: dict[str, float] = {
    "minor": 0.1,
    "major": 0.3,
    "critical": 0.5,
}


class EngineSettings(BaseModel):
    """Tunable engine parameters, defaulting to the module constants."""
    num_landmarks: int = Field(default=NUM_LANDMARKS, gt=2)
    max_history: int = Field(default=MAX_HISTORY, ge=2)
    confidence_threshold: float = Field(default=CONFIDENCE_THRESHOLD, ge=0.0, le=1.0)
    visibility_threshold: float = Field(default=VISIBILITY_THRESHOLD, ge=0.0, le=1.0)
    correction_cooldown_ms: float = Field(default=CORRECTION_COOLDOWN_MS, ge=0.0)
    motion_window: int = Field(default=MOTION_WINDOW, ge=2)
    correction_history_limit: int = Field(default=CORRECTION_HISTORY_LIMIT, ge=1)
    recent_corrections: int = Field(default=RECENT_CORRECTIONS, ge=0)
    quality_window: int = Field(default=QUALITY_WINDOW, ge=1)
    feedback_queue_limit: int = Field(default=FEEDBACK_QUEUE_LIMIT, ge=1)
    phase_thresholds: dict[str, float] = Field(
        default_factory=lambda: dict(PHASE_THRESHOLDS)
    )
    severity_bands: dict[str, float] = Field(
        default_factory=lambda: dict(SEVERITY_BANDS)
    )
    severity_penalties: dict[str, float] = Field(
        default_factory=lambda: dict(SEVERITY_PENALTIES)
    )
