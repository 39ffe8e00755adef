"""End-to-end tests for the FormEngine session facade.

Covers:
  - Scenario A: one clean motion cycle counts exactly one rep
  - Scenario B: on-target angles never produce corrections
  - Scenario C: critical deviation → one correction, then cooldown
  - Scenario D: low confidence suppresses corrections
  - Scenario E: malformed frame rejected without side effects
  - Lifecycle (start / stop / reset) and snapshot behaviour
"""

import pytest
from pydantic import ValidationError

from pose_fixtures import FakeClock, make_frame, make_short_frame

from src.exercises.profiles import get_profile
from src.realtime.engine import FormEngine
from src.realtime.state import FeedbackKind, Phase, Priority, Severity

FRAME_MS = 1000.0 / 30.0


def _engine(clock=None, **kwargs):
    events = []
    engine = FormEngine(clock=clock or FakeClock(), sink=events.append, **kwargs)
    return engine, events


def _of_kind(events, kind):
    return [e for e in events if e.kind == kind]


def _feed(engine, clock, frames):
    for frame in frames:
        clock.advance(FRAME_MS)
        result = engine.process_frame(frame)
        assert result.accepted


def _motion_cycle(step_total: float = 0.95, rest_before: int = 12,
                  moving: int = 9, rest_after: int = 10, start_offset: float = 0.0):
    """Static → steadily moving → static frames.

    Each moving step shifts all 33 landmarks by ``step_total / 33`` in x, so
    the windowed motion magnitude ramps up to ~0.95 and back down to 0.
    """
    dx = step_total / 33.0
    offset = start_offset
    frames = [make_frame(dx=offset) for _ in range(rest_before)]
    for _ in range(moving):
        offset += dx
        frames.append(make_frame(dx=offset))
    frames += [make_frame(dx=offset) for _ in range(rest_after)]
    return frames


# ============================================================================
# Scenarios
# ============================================================================

class TestScenarios:

    def test_a_clean_rep_cycle(self):
        clock = FakeClock()
        engine, events = _engine(clock)
        engine.start_exercise("arm-circles")
        _feed(engine, clock, _motion_cycle())
        assert engine.get_current_data().rep_state.count == 1
        counts = _of_kind(events, FeedbackKind.COUNT)
        assert [e.text for e in counts] == ["1"]
        assert engine.get_current_data().rep_state.phase == Phase.REST

    def test_a_two_cycles_two_reps(self):
        clock = FakeClock()
        engine, events = _engine(clock)
        engine.start_exercise("arm-circles")
        first = _motion_cycle()
        second = _motion_cycle(rest_before=0, start_offset=9 * 0.95 / 33.0)
        _feed(engine, clock, first + second)
        assert len(_of_kind(events, FeedbackKind.COUNT)) == 2
        assert engine.get_current_data().rep_state.count == 2

    def test_b_angle_at_target(self):
        clock = FakeClock()
        engine, events = _engine(clock)
        engine.start_exercise("arm-circles")
        for _ in range(200):
            clock.advance(250.0)
            engine.process_frame(make_frame(arms_angle=180.0, visibility=0.9))
        assert _of_kind(events, FeedbackKind.CORRECTION) == []
        assert engine.corrections == []
        assert engine.get_current_data().form_quality == 100.0

    def test_c_critical_deviation_then_cooldown(self):
        clock = FakeClock(start=10_000.0)
        engine, events = _engine(clock)
        engine.start_exercise("arm-circles")
        frame = make_frame(arms_angle=140.0, visibility=0.9)

        engine.process_frame(frame)
        assert len(engine.corrections) == 1
        first = engine.corrections[0]
        assert first.severity == Severity.CRITICAL
        assert first.body_part == "arms"

        for _ in range(1999):
            clock.advance(1.0)
            engine.process_frame(frame)
        assert len(engine.corrections) == 1

        clock.advance(1.0)  # exactly 2000 ms after the first
        engine.process_frame(frame)
        assert len(engine.corrections) == 2

        correction_events = _of_kind(events, FeedbackKind.CORRECTION)
        assert len(correction_events) == 2
        assert correction_events[0].priority == Priority.HIGH
        assert correction_events[0].text == first.message

    def test_d_low_confidence_suppresses(self):
        clock = FakeClock()
        engine, events = _engine(clock)
        engine.start_exercise("arm-circles")
        for _ in range(100):
            clock.advance(500.0)
            engine.process_frame(make_frame(arms_angle=140.0, visibility=0.5))
        assert engine.corrections == []
        assert _of_kind(events, FeedbackKind.CORRECTION) == []
        assert len(engine.history) == 60

    def test_e_invalid_frame(self):
        clock = FakeClock()
        engine, events = _engine(clock)
        engine.start_exercise("arm-circles")
        _feed(engine, clock, [make_frame() for _ in range(3)])
        before = engine.get_current_data()
        history_before = [f.timestamp for f in engine.history]
        n_events = len(events)

        result = engine.process_frame(make_short_frame(20))

        assert not result.accepted
        assert result.error.landmark_count == 20
        assert result.error.expected_count == 33
        assert [f.timestamp for f in engine.history] == history_before
        assert engine.get_current_data() == before
        assert len(events) == n_events


# ============================================================================
# Properties
# ============================================================================

class TestProperties:

    def test_corrections_spaced_by_cooldown(self):
        clock = FakeClock()
        engine, _ = _engine(clock)
        engine.start_exercise("arm-circles")
        for i in range(600):
            clock.advance(37.0)
            engine.process_frame(make_frame(arms_angle=140.0 if i % 3 else 160.0))
        stamps = [c.timestamp for c in engine.corrections]
        assert len(stamps) >= 2
        assert all(b - a >= 2000.0 for a, b in zip(stamps, stamps[1:]))

    def test_history_bounded_and_confidence_in_range(self):
        clock = FakeClock()
        engine, _ = _engine(clock)
        engine.start_exercise("seated-twist")
        for i in range(150):
            clock.advance(FRAME_MS)
            engine.process_frame(make_frame(visibility=(i % 11) / 10.0))
            assert len(engine.history) <= 60
            assert 0.0 <= engine.history.latest().confidence <= 1.0

    def test_quality_in_range(self):
        clock = FakeClock()
        engine, _ = _engine(clock)
        assert engine.get_current_data().form_quality == 100.0
        engine.start_exercise("arm-circles")
        for _ in range(30):
            clock.advance(2500.0)
            engine.process_frame(make_frame(arms_angle=140.0))
            quality = engine.get_current_data().form_quality
            assert 0.0 <= quality <= 100.0
        assert quality == pytest.approx(50.0)


# ============================================================================
# Lifecycle
# ============================================================================

class TestLifecycle:

    def test_start_queues_instruction(self):
        engine, events = _engine()
        engine.start_exercise(get_profile("arm-circles"))
        assert events[0].kind == FeedbackKind.INSTRUCTION
        assert "Arm Circles" in events[0].text
        snapshot = engine.get_current_data()
        assert snapshot.active
        assert snapshot.exercise_id == "arm-circles"
        assert snapshot.rep_state.count == 0
        assert snapshot.rep_state.phase == Phase.SETUP

    def test_unknown_exercise_raises(self):
        engine, _ = _engine()
        with pytest.raises(ValueError):
            engine.start_exercise("burpees")

    def test_no_profile_is_inert(self):
        clock = FakeClock()
        engine, events = _engine(clock)
        frames = _motion_cycle()
        _feed(engine, clock, frames)
        assert events == []
        assert engine.get_current_data().rep_state.count == 0
        assert len(engine.history) == len(frames)

    def test_stop_halts_feedback(self):
        clock = FakeClock()
        engine, events = _engine(clock)
        engine.start_exercise("arm-circles")
        engine.stop_exercise()
        engine.stop_exercise()  # idempotent
        n_events = len(events)
        _feed(engine, clock, _motion_cycle())
        engine.process_frame(make_frame(arms_angle=140.0))
        assert len(events) == n_events
        assert engine.corrections == []
        snapshot = engine.get_current_data()
        assert not snapshot.active
        assert snapshot.exercise_id is None

    def test_reset_rep_count(self):
        clock = FakeClock()
        engine, _ = _engine(clock)
        engine.start_exercise("arm-circles")
        _feed(engine, clock, _motion_cycle())
        phase = engine.get_current_data().rep_state.phase
        engine.reset_rep_count()
        snapshot = engine.get_current_data()
        assert snapshot.rep_state.count == 0
        assert snapshot.rep_state.phase == phase
        assert engine.profile.exercise_id == "arm-circles"

    def test_restart_resets_session(self):
        clock = FakeClock()
        engine, _ = _engine(clock)
        engine.start_exercise("arm-circles")
        engine.process_frame(make_frame(arms_angle=140.0))
        _feed(engine, clock, _motion_cycle())
        assert engine.corrections
        engine.start_exercise("arm-circles")
        snapshot = engine.get_current_data()
        assert snapshot.rep_state.count == 0
        assert snapshot.corrections == []
        assert snapshot.form_quality == 100.0
        # cooldown cleared too
        engine.process_frame(make_frame(arms_angle=140.0))
        assert len(engine.corrections) == 1

    def test_target_reps_announcement(self):
        clock = FakeClock()
        engine, events = _engine(clock)
        engine.start_exercise("arm-circles", target_reps=1)
        _feed(engine, clock, _motion_cycle())
        instructions = _of_kind(events, FeedbackKind.INSTRUCTION)
        assert len(instructions) == 2
        assert "Set complete" in instructions[1].text

    def test_snapshot_is_frozen(self):
        engine, _ = _engine()
        snapshot = engine.get_current_data()
        with pytest.raises(Exception):
            snapshot.active = True

    def test_stop_during_frame_records_nothing(self):
        class StoppingClock(FakeClock):
            engine = None

            def __call__(self):
                if self.engine is not None:
                    self.engine.stop_exercise()
                return self.now

        clock = StoppingClock(start=1000.0)
        engine, events = _engine(clock)
        engine.start_exercise("arm-circles")
        n_events = len(events)

        clock.engine = engine
        result = engine.process_frame(make_frame(arms_angle=140.0, timestamp=1000.0))

        assert result.accepted
        assert not engine.active
        assert engine.corrections == []
        assert engine.get_current_data().corrections == []
        assert len(events) == n_events

    def test_snapshot_rep_state_is_read_only(self):
        clock = FakeClock()
        engine, _ = _engine(clock)
        engine.start_exercise("arm-circles")
        snapshot = engine.get_current_data()
        with pytest.raises(ValidationError):
            snapshot.rep_state.count = 99
        _feed(engine, clock, [make_frame()])
        assert engine.get_current_data().rep_state.count == 0

    def test_snapshot_exposes_last_five(self):
        clock = FakeClock()
        engine, _ = _engine(clock)
        engine.start_exercise("arm-circles")
        for _ in range(12):
            clock.advance(2000.0)
            engine.process_frame(make_frame(arms_angle=140.0))
        assert len(engine.corrections) == 10
        assert len(engine.get_current_data().corrections) == 5

    def test_reentrant_call_rejected(self):
        engine, _ = _engine()
        engine._busy.acquire()
        try:
            with pytest.raises(RuntimeError, match="not reentrant"):
                engine.process_frame(make_frame())
        finally:
            engine._busy.release()
