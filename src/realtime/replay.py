"""
Replay a recorded landmark sequence through the form engine.

Accepts ``.npy`` / ``.npz`` arrays or JSON files shaped frames × 33 × 4
(x, y, z, visibility), the layout the mobile client streams, and
prints every feedback event plus the final session snapshot.

Run:
    cd <project_root>
    python -m src.realtime.replay recording.npy --exercise arm-circles --fps 30
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import numpy as np

from src.exercises.profiles import load_profiles_from_yaml

from .config import NUM_LANDMARKS, VALUES_PER_LANDMARK
from .engine import FormEngine
from .ingest import frame_from_array
from .state import FeedbackEvent

logger = logging.getLogger(__name__)


def load_recording(path: Path) -> np.ndarray:
    """Load a pose recording as a float array of shape (N, L, 4)."""
    suffix = path.suffix.lower()
    if suffix == ".npy":
        arr = np.load(path)
    elif suffix == ".npz":
        with np.load(path) as data:
            key = "pose_sequence" if "pose_sequence" in data.files else data.files[0]
            arr = data[key]
    elif suffix == ".json":
        with open(path, "r") as f:
            payload = json.load(f)
        if isinstance(payload, dict):
            payload = payload["pose_sequence"]
        arr = np.asarray(payload, dtype=np.float64)
    else:
        raise ValueError(f"Unsupported recording format: '{suffix}'")

    arr = np.asarray(arr, dtype=np.float64)
    if arr.ndim != 3 or arr.shape[2] != VALUES_PER_LANDMARK:
        raise ValueError(
            f"Recording must be frames × landmarks × {VALUES_PER_LANDMARK}, got shape {arr.shape}."
        )
    return arr


class _FrameClock:
    """Clock advanced by the replay loop (recorded time, not wall time)."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def replay(
    recording: np.ndarray,
    exercise_id: str,
    fps: float = 30.0,
    target_reps: Optional[int] = None,
) -> tuple[list[FeedbackEvent], FormEngine]:
    """Feed *recording* to a fresh engine at a fixed frame interval."""
    clock = _FrameClock()
    events: list[FeedbackEvent] = []
    engine = FormEngine(clock=clock, sink=events.append)
    engine.start_exercise(exercise_id, target_reps=target_reps)

    step_ms = 1000.0 / fps
    rejected = 0
    for i, values in enumerate(recording):
        clock.now = i * step_ms
        result = engine.process_frame(frame_from_array(values, timestamp=clock.now))
        if not result.accepted:
            rejected += 1
    if rejected:
        logger.warning("%d / %d frames rejected", rejected, len(recording))

    engine.stop_exercise()
    return events, engine


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        description="Replay a recorded pose sequence through the form engine.",
    )
    ap.add_argument("recording", type=Path, help=f"Pose file (.npy, .npz, .json), frames × {NUM_LANDMARKS} × 4")
    ap.add_argument("--exercise", required=True, help="Exercise ID, e.g. arm-circles")
    ap.add_argument("--fps", type=float, default=30.0, help="Recording frame rate")
    ap.add_argument("--target-reps", type=int, default=None)
    ap.add_argument("--profiles", type=Path, default=None, help="Extra exercise profiles (YAML)")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s | %(name)s | %(message)s",
    )

    if args.profiles is not None:
        load_profiles_from_yaml(args.profiles)

    try:
        recording = load_recording(args.recording)
    except (OSError, ValueError) as exc:
        logger.error("Could not load %s: %s", args.recording, exc)
        return 1

    try:
        events, engine = replay(recording, args.exercise, args.fps, args.target_reps)
    except ValueError as exc:
        logger.error("%s", exc)
        return 1

    for event in events:
        print(f"[{event.timestamp:>8.0f} ms] {event.kind.value:<11} {event.priority.value:<6} {event.text}")

    snapshot = engine.get_current_data()
    print(
        f"\nReps: {snapshot.rep_state.count}  "
        f"Form quality: {snapshot.form_quality:.1f}  "
        f"Corrections: {len(engine.corrections)}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
