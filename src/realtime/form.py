"""
Stage 2 — Form Evaluation.

Compares each target muscle group's joint angle against the active
profile's target, classifies the deviation by severity, and emits at most
one correction per cooldown window (the most severe one on that frame).
"""

import logging
from collections import deque
from typing import Optional

from src.exercises.phrases import PhraseSelector, RotatingPhraseSelector, correction_phrases_for

from .angles import muscle_group_angle
from .config import SEVERITY_BANDS, EngineSettings
from .state import Correction, ExerciseProfile, Frame, Severity

logger = logging.getLogger(__name__)


def classify_severity(
    deviation: float,
    tolerance: float,
    bands: Optional[dict[str, float]] = None,
) -> Optional[Severity]:
    """Map an angle deviation to a severity; None when within tolerance."""
    bands = bands or SEVERITY_BANDS
    if deviation <= tolerance:
        return None
    if deviation <= tolerance * bands["minor"]:
        return Severity.MINOR
    if deviation <= tolerance * bands["major"]:
        return Severity.MAJOR
    return Severity.CRITICAL


class FormEvaluator:
    """Per-session form checker with cooldown and bounded history."""

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        selector: Optional[PhraseSelector] = None,
    ):
        self.settings = settings or EngineSettings()
        self.selector = selector or RotatingPhraseSelector()
        self.last_correction_time: Optional[float] = None
        self._history: deque[Correction] = deque(maxlen=self.settings.correction_history_limit)

    @property
    def history(self) -> list[Correction]:
        return list(self._history)

    def recent(self, n: Optional[int] = None) -> list[Correction]:
        """Last *n* corrections (default: the snapshot size), oldest first."""
        n = self.settings.recent_corrections if n is None else n
        if n <= 0:
            return []
        return list(self._history)[-n:]

    def reset(self) -> None:
        self._history.clear()
        self.last_correction_time = None

    def in_cooldown(self, now: float) -> bool:
        if self.last_correction_time is None:
            return False
        return now - self.last_correction_time < self.settings.correction_cooldown_ms

    def candidates(self, profile: ExerciseProfile, frame: Frame) -> list[tuple[str, float, Severity]]:
        """(muscle_group, angle, severity) for each group outside tolerance."""
        found = []
        for group in profile.target_muscle_groups:
            angle = muscle_group_angle(
                frame.landmarks,
                profile.key_landmark_indices[group],
                self.settings.visibility_threshold,
            )
            if angle is None:
                logger.debug("Skipping '%s': not enough visible landmarks", group)
                continue
            deviation = abs(angle - profile.target_angle_deg[group])
            severity = classify_severity(deviation, profile.tolerance_deg, self.settings.severity_bands)
            if severity is not None:
                found.append((group, angle, severity))
        return found

    def propose(self, profile: ExerciseProfile, frame: Frame, now: float) -> Optional[Correction]:
        """Build the correction *frame* warrants without recording it.

        Frames below the confidence threshold and frames inside the cooldown
        window never produce a correction.
        """
        if frame.confidence < self.settings.confidence_threshold:
            logger.debug("Frame confidence %.2f below threshold; form not evaluated", frame.confidence)
            return None
        if self.in_cooldown(now):
            return None

        found = self.candidates(profile, frame)
        if not found:
            return None

        # max() keeps the first of equal ranks, i.e. profile group order.
        group, angle, severity = max(found, key=lambda c: c[2].rank)
        return Correction(
            body_part=group,
            current_angle_deg=angle,
            target_angle_deg=profile.target_angle_deg[group],
            severity=severity,
            message=self.selector.select(group, correction_phrases_for(group)),
            confidence=frame.confidence,
            timestamp=now,
        )

    def commit(self, correction: Correction) -> None:
        """Record *correction* in the history and start its cooldown window."""
        self._history.append(correction)
        self.last_correction_time = correction.timestamp
        logger.debug(
            "Correction: %s %.1f° (target %.1f°) %s",
            correction.body_part, correction.current_angle_deg,
            correction.target_angle_deg, correction.severity.value,
        )

    def evaluate(self, profile: ExerciseProfile, frame: Frame, now: float) -> Optional[Correction]:
        """Return the correction to emit for *frame*, if any, and record it."""
        correction = self.propose(profile, frame, now)
        if correction is not None:
            self.commit(correction)
        return correction
