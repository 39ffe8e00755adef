"""
Data models for the real-time form analysis engine.

Pydantic models for the values that flow through the per-frame pipeline:
landmark frames in, corrections / rep state / feedback events out.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .config import NUM_LANDMARKS


# ============================================================================
# Enumerations
# ============================================================================

class Severity(str, Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Ordering used to pick the most important correction."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.MINOR: 1, Severity.MAJOR: 2, Severity.CRITICAL: 3}


class Phase(str, Enum):
    SETUP = "setup"
    EXECUTION = "execution"
    RETURN = "return"
    REST = "rest"


class RepPattern(str, Enum):
    UP_DOWN = "up-down"
    IN_OUT = "in-out"
    ROTATION = "rotation"
    HOLD = "hold"


class FeedbackKind(str, Enum):
    CORRECTION = "correction"
    COUNT = "count"
    MOTIVATION = "motivation"
    INSTRUCTION = "instruction"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ============================================================================
# Input Models
# ============================================================================

class Landmark(BaseModel):
    """One estimated body keypoint in normalized image space."""
    x: float
    y: float
    z: float = 0.0
    visibility: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class Frame(BaseModel):
    """A timestamped snapshot of all body landmarks."""
    landmarks: list[Landmark]
    timestamp: Optional[float] = Field(
        default=None, description="Monotonic milliseconds; stamped at ingest if missing"
    )
    confidence: float = Field(
        default=0.0, ge=0.0, le=1.0,
        description="Mean landmark visibility, computed at ingest",
    )


class ExerciseProfile(BaseModel):
    """Static definition of one exercise's form targets."""
    exercise_id: str
    name: str
    target_muscle_groups: list[str] = Field(
        description="Muscle groups evaluated each frame, in priority order"
    )
    key_landmark_indices: dict[str, list[int]]
    target_angle_deg: dict[str, float]
    tolerance_deg: float = Field(gt=0.0)
    rep_pattern: RepPattern
    phase_landmark_ranges: dict[Phase, list[int]] = Field(default_factory=dict)
    target_reps: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _check_groups(self) -> "ExerciseProfile":
        for group in self.target_muscle_groups:
            if group not in self.key_landmark_indices:
                raise ValueError(f"No landmark indices for muscle group '{group}'")
            if group not in self.target_angle_deg:
                raise ValueError(f"No target angle for muscle group '{group}'")
        for group, indices in self.key_landmark_indices.items():
            bad = [i for i in indices if not 0 <= i < NUM_LANDMARKS]
            if bad:
                raise ValueError(
                    f"Landmark indices {bad} for '{group}' outside 0-{NUM_LANDMARKS - 1}"
                )
        if len(set(self.target_muscle_groups)) != len(self.target_muscle_groups):
            raise ValueError("target_muscle_groups must be unique")
        return self


# ============================================================================
# Output Models
# ============================================================================

class Correction(BaseModel):
    """A single form correction emitted for one muscle group."""
    model_config = ConfigDict(frozen=True)

    body_part: str
    current_angle_deg: float
    target_angle_deg: float
    severity: Severity
    message: str
    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: float


class RepState(BaseModel):
    """Repetition progress for the active session."""
    model_config = ConfigDict(frozen=True)

    count: int = Field(default=0, ge=0)
    target_count: Optional[int] = None
    phase: Phase = Phase.SETUP
    form_quality: float = Field(default=100.0, ge=0.0, le=100.0)
    last_transition_timestamp: Optional[float] = None


class FeedbackEvent(BaseModel):
    """A message handed to the downstream voice / UI sink."""
    kind: FeedbackKind
    text: str
    priority: Priority
    timestamp: Optional[float] = None


class InvalidFrame(BaseModel):
    """Why a frame was rejected at ingest."""
    reason: str
    landmark_count: int
    expected_count: int


class FrameResult(BaseModel):
    """Outcome of ``FormEngine.process_frame``."""
    accepted: bool
    error: Optional[InvalidFrame] = None


class SessionSnapshot(BaseModel):
    """Polled view of the session for UI / voice consumers."""
    model_config = ConfigDict(frozen=True)

    exercise_id: Optional[str] = None
    active: bool = False
    corrections: list[Correction] = Field(default_factory=list)
    rep_state: RepState = Field(default_factory=RepState)
    form_quality: float = Field(default=100.0, ge=0.0, le=100.0)
