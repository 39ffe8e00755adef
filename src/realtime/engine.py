"""
Real-time form analysis engine.

Owns one exercise session and runs every incoming landmark frame through
the pipeline:

    Stage 1: Landmark ingest (validation, confidence, history)
    Stage 2: Form evaluation (angles → severity → rate-limited correction)
    Stage 3: Phase detection & rep counting
    Stage 4: Form quality scoring + snapshot publication

Corrections, rep counts and motivational cues are pushed to the
``FeedbackDispatcher``. The engine is single-producer: frames must arrive
serially from one thread. ``get_current_data`` may be polled from another
thread; it returns the last published snapshot without taking any lock.
"""

import logging
import threading
import time
from typing import Callable, Optional, Union

from src.exercises.phrases import PhraseSelector, RotatingPhraseSelector, format_start_instruction
from src.exercises.profiles import DEFAULT_REGISTRY, ExerciseProfileRegistry

from .config import EngineSettings
from .feedback import FeedbackDispatcher, FeedbackSink
from .form import FormEvaluator
from .ingest import FrameHistory, InvalidFrameError, LandmarkIngest
from .reps import RepCounter, motion_magnitude, phase_for_motion
from .scoring import score_corrections
from .state import (
    Correction,
    ExerciseProfile,
    FeedbackEvent,
    FeedbackKind,
    Frame,
    FrameResult,
    Priority,
    SessionSnapshot,
    Severity,
)

logger = logging.getLogger(__name__)

SEVERITY_PRIORITY: dict[Severity, Priority] = {
    Severity.MINOR: Priority.LOW,
    Severity.MAJOR: Priority.MEDIUM,
    Severity.CRITICAL: Priority.HIGH,
}


def monotonic_ms() -> float:
    """Default engine clock: monotonic time in milliseconds."""
    return time.monotonic() * 1000.0


class FormEngine:
    """One exercise-analysis session.

    Args:
        settings: Thresholds and window sizes (defaults from ``config``).
        clock: Zero-argument callable returning monotonic milliseconds.
        selector: Phrase selection strategy for corrections and motivation.
        sink: Downstream feedback consumer; events stay queued when None.
        registry: Where exercise IDs passed to ``start_exercise`` are resolved.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Callable[[], float]] = None,
        selector: Optional[PhraseSelector] = None,
        sink: Optional[FeedbackSink] = None,
        registry: Optional[ExerciseProfileRegistry] = None,
    ):
        self.settings = settings or EngineSettings()
        self.clock = clock or monotonic_ms
        self.selector = selector or RotatingPhraseSelector()
        self.registry = registry if registry is not None else DEFAULT_REGISTRY

        self._ingest = LandmarkIngest(self.clock, self.settings.max_history, self.settings.num_landmarks)
        self._form = FormEvaluator(self.settings, self.selector)
        self._reps = RepCounter(self.selector)
        self.dispatcher = FeedbackDispatcher(sink, self.settings.feedback_queue_limit)

        self._profile: Optional[ExerciseProfile] = None
        self._active = threading.Event()
        self._busy = threading.Lock()
        self._snapshot = SessionSnapshot()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def history(self) -> FrameHistory:
        return self._ingest.history

    @property
    def profile(self) -> Optional[ExerciseProfile]:
        return self._profile

    @property
    def active(self) -> bool:
        return self._active.is_set()

    @property
    def corrections(self) -> list[Correction]:
        """Retained correction history (most recent last)."""
        return self._form.history

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_exercise(
        self,
        profile: Union[ExerciseProfile, str],
        target_reps: Optional[int] = None,
    ) -> None:
        """Bind *profile* (or an exercise ID) and reset the session state."""
        if isinstance(profile, str):
            profile = self.registry.get(profile)

        self._profile = profile
        self._form.reset()
        self.selector.reset()
        self._reps.reset(target_count=target_reps or profile.target_reps)
        self._active.set()

        self._emit(FeedbackEvent(
            kind=FeedbackKind.INSTRUCTION,
            text=format_start_instruction(profile.name),
            priority=Priority.MEDIUM,
            timestamp=self.clock(),
        ))
        self._publish()
        logger.info("Started exercise: %s (%s)", profile.name, profile.exercise_id)

    def stop_exercise(self) -> None:
        """End the session. Safe to call repeatedly."""
        if not self._active.is_set() and self._profile is None:
            return
        self._active.clear()
        name = self._profile.name if self._profile else None
        self._profile = None
        self._publish()
        logger.info("Exercise stopped: %s", name)

    def reset_rep_count(self) -> None:
        """Zero the repetition count; profile and phase are kept."""
        self._reps.reset_count()
        self._publish()

    # ------------------------------------------------------------------
    # Per-frame pipeline
    # ------------------------------------------------------------------

    def process_frame(self, frame: Frame) -> FrameResult:
        """Run one frame through the pipeline.

        Malformed frames are reported through the returned ``FrameResult``;
        every other degraded condition (low confidence, hidden landmarks,
        no active exercise) is absorbed.

        Raises:
            RuntimeError: If called while another frame is being processed.
        """
        if not self._busy.acquire(blocking=False):
            raise RuntimeError("process_frame is not reentrant; deliver frames serially")
        try:
            return self._process(frame)
        finally:
            self._busy.release()

    def _process(self, frame: Frame) -> FrameResult:
        try:
            stored = self._ingest.ingest(frame)
        except InvalidFrameError as exc:
            logger.warning("Rejected frame: %s", exc)
            return FrameResult(accepted=False, error=exc.to_model())

        profile = self._profile
        if profile is None or not self._active.is_set():
            return FrameResult(accepted=True)

        now = self.clock()

        # Stage 2: form
        correction = self._form.propose(profile, stored, now)
        if correction is not None and self._active.is_set():
            self._form.commit(correction)
            self._emit(FeedbackEvent(
                kind=FeedbackKind.CORRECTION,
                text=correction.message,
                priority=SEVERITY_PRIORITY[correction.severity],
                timestamp=now,
            ))

        # Stage 3: phase & reps
        motion = motion_magnitude(self.history, self.settings.motion_window)
        phase = phase_for_motion(motion, self.settings.phase_thresholds)
        quality = self._quality()
        if self._active.is_set():
            for event in self._reps.update(phase, now, quality):
                self._emit(event)

        # Stage 4: publish
        self._publish()
        return FrameResult(accepted=True)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def get_current_data(self) -> SessionSnapshot:
        """Latest published session snapshot (never blocks the producer)."""
        return self._snapshot

    def _quality(self) -> float:
        return score_corrections(
            self._form.history,
            self.settings.quality_window,
            self.settings.severity_penalties,
        )

    def _publish(self) -> None:
        profile = self._profile
        self._snapshot = SessionSnapshot(
            exercise_id=profile.exercise_id if profile else None,
            active=self._active.is_set(),
            corrections=self._form.recent(),
            rep_state=self._reps.state,
            form_quality=self._quality(),
        )

    def _emit(self, event: FeedbackEvent) -> None:
        if not self._active.is_set():
            logger.debug("Session inactive; suppressed %s event", event.kind.value)
            return
        self.dispatcher.push(event)
