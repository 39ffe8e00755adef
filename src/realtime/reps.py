"""
Stage 3 — Phase Detection & Repetition Counting.

Phase detection is a motion-magnitude heuristic: the mean frame-to-frame
landmark displacement over the recent history is mapped onto a fixed ladder
(rest < setup < execution < return). The ladder is the same for every
exercise; a profile's ``phase_landmark_ranges`` are not consulted.

A repetition is counted on each setup → execution transition; a
return → rest transition triggers a motivational cue.
"""

import logging
from typing import Optional

import numpy as np

from src.exercises.phrases import (
    MOTIVATIONAL_PHRASES,
    PhraseSelector,
    RotatingPhraseSelector,
    format_set_complete,
)

from .config import MOTION_WINDOW, PHASE_THRESHOLDS
from .ingest import FrameHistory
from .state import FeedbackEvent, FeedbackKind, Phase, Priority, RepState

logger = logging.getLogger(__name__)


def motion_magnitude(history: FrameHistory, window: int = MOTION_WINDOW) -> float:
    """Average per-step landmark displacement over the last *window* frames.

    For each pair of consecutive frames the Euclidean x, y displacements of
    all corresponding landmarks are summed; the result is the mean of those
    sums. Fewer than two frames → 0.
    """
    xy = history.xy_window(window)
    if xy.shape[0] < 2 or xy.shape[1] == 0:
        return 0.0
    steps = np.linalg.norm(np.diff(xy, axis=0), axis=2)  # (k-1, L)
    return float(steps.sum(axis=1).mean())


def phase_for_motion(motion: float, thresholds: Optional[dict[str, float]] = None) -> Phase:
    """Map a motion magnitude onto the phase ladder."""
    thresholds = thresholds or PHASE_THRESHOLDS
    if motion < thresholds["rest"]:
        return Phase.REST
    if motion < thresholds["setup"]:
        return Phase.SETUP
    if motion < thresholds["execution"]:
        return Phase.EXECUTION
    return Phase.RETURN


class RepCounter:
    """Tracks the current phase and repetition count for one session."""

    def __init__(self, selector: Optional[PhraseSelector] = None,
                 target_count: Optional[int] = None):
        self.selector = selector or RotatingPhraseSelector()
        self.state = RepState(target_count=target_count)
        self._set_announced = False

    @property
    def count(self) -> int:
        return self.state.count

    @property
    def phase(self) -> Phase:
        return self.state.phase

    def reset(self, target_count: Optional[int] = None) -> None:
        """Back to the initial state: no reps, setup phase, full quality."""
        self.state = RepState(target_count=target_count)
        self._set_announced = False

    def reset_count(self) -> None:
        """Zero the count without touching the phase."""
        self.state = self.state.model_copy(update={"count": 0})
        self._set_announced = False

    def update(self, phase: Phase, now: float, form_quality: Optional[float] = None) -> list[FeedbackEvent]:
        """Apply the newly detected *phase*; return the feedback it triggers."""
        previous = self.state.phase
        if phase == previous:
            return []

        events: list[FeedbackEvent] = []
        update = {"phase": phase, "last_transition_timestamp": now}

        if previous == Phase.SETUP and phase == Phase.EXECUTION:
            count = self.state.count + 1
            update["count"] = count
            if form_quality is not None:
                update["form_quality"] = form_quality
            events.append(FeedbackEvent(
                kind=FeedbackKind.COUNT, text=str(count),
                priority=Priority.MEDIUM, timestamp=now,
            ))
            logger.debug("Rep %d started @ %.0f ms", count, now)

            target = self.state.target_count
            if target is not None and count >= target and not self._set_announced:
                self._set_announced = True
                events.append(FeedbackEvent(
                    kind=FeedbackKind.INSTRUCTION, text=format_set_complete(count),
                    priority=Priority.MEDIUM, timestamp=now,
                ))
        elif previous == Phase.RETURN and phase == Phase.REST:
            events.append(FeedbackEvent(
                kind=FeedbackKind.MOTIVATION,
                text=self.selector.select("motivation", MOTIVATIONAL_PHRASES),
                priority=Priority.LOW, timestamp=now,
            ))

        self.state = self.state.model_copy(update=update)
        return events
