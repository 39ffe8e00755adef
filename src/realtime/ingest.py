"""
Stage 1 — Landmark Ingest.

Validates incoming landmark frames, computes their aggregate confidence and
keeps a bounded history of recent frames for motion analysis.

Pipeline:
    1. Validate landmark count (33 per frame)
    2. Compute mean visibility → frame confidence
    3. Stamp missing timestamps with the engine clock
    4. Append to the ring buffer, evicting the oldest frame on overflow
"""

import logging
from typing import Callable, Iterator, Optional, Sequence

import numpy as np

from .config import MAX_HISTORY, NUM_LANDMARKS, VALUES_PER_LANDMARK
from .state import Frame, InvalidFrame, Landmark

logger = logging.getLogger(__name__)


class InvalidFrameError(ValueError):
    """Raised when a frame does not match the landmark taxonomy."""

    def __init__(self, landmark_count: int, expected_count: int):
        self.landmark_count = landmark_count
        self.expected_count = expected_count
        super().__init__(
            f"Expected {expected_count} landmarks per frame, got {landmark_count}."
        )

    def to_model(self) -> InvalidFrame:
        return InvalidFrame(
            reason=str(self),
            landmark_count=self.landmark_count,
            expected_count=self.expected_count,
        )


# ---------------------------------------------------------------------------
# Ring buffer
# ---------------------------------------------------------------------------

class FrameHistory:
    """Fixed-capacity ring buffer of frames (oldest evicted first).

    Frames live in a preallocated slot list; ``_head`` points at the oldest
    entry and ``_size`` tracks how many slots are filled.
    """

    def __init__(self, capacity: int = MAX_HISTORY):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = int(capacity)
        self._slots: list[Optional[Frame]] = [None] * self.capacity
        self._head = 0
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[Frame]:
        for offset in range(self._size):
            yield self._slots[(self._head + offset) % self.capacity]

    def append(self, frame: Frame) -> Optional[Frame]:
        """Store *frame*; return the evicted frame when the buffer was full."""
        evicted = None
        if self._size < self.capacity:
            self._slots[(self._head + self._size) % self.capacity] = frame
            self._size += 1
        else:
            evicted = self._slots[self._head]
            self._slots[self._head] = frame
            self._head = (self._head + 1) % self.capacity
        return evicted

    def latest(self) -> Optional[Frame]:
        if self._size == 0:
            return None
        return self._slots[(self._head + self._size - 1) % self.capacity]

    def recent(self, n: int) -> list[Frame]:
        """Return up to *n* most recent frames, oldest first."""
        n = max(0, min(int(n), self._size))
        start = self._head + self._size - n
        return [self._slots[(start + i) % self.capacity] for i in range(n)]

    def xy_window(self, n: int) -> np.ndarray:
        """Stack x, y of the *n* most recent frames → shape (k, L, 2).

        Frames with differing landmark counts are truncated to the smallest.
        """
        frames = self.recent(n)
        if not frames:
            return np.zeros((0, 0, 2), dtype=np.float64)
        n_lm = min(len(f.landmarks) for f in frames)
        out = np.empty((len(frames), n_lm, 2), dtype=np.float64)
        for i, frame in enumerate(frames):
            out[i] = [(lm.x, lm.y) for lm in frame.landmarks[:n_lm]]
        return out

    def clear(self) -> None:
        self._slots = [None] * self.capacity
        self._head = 0
        self._size = 0


# ---------------------------------------------------------------------------
# Ingest
# ---------------------------------------------------------------------------

def compute_confidence(landmarks: Sequence[Landmark]) -> float:
    """Mean visibility across landmarks, treating missing visibility as 0."""
    if not landmarks:
        return 0.0
    vis = np.array(
        [lm.visibility if lm.visibility is not None else 0.0 for lm in landmarks],
        dtype=np.float64,
    )
    return float(np.clip(vis.mean(), 0.0, 1.0))


def frame_from_array(
    values,
    timestamp: Optional[float] = None,
) -> Frame:
    """Build a Frame from a ``(L, 4)`` array / nested list of x, y, z, visibility.

    A 3-column array is accepted too, in which case visibility is left unset.

    Raises:
        ValueError: If the array is not 2-dimensional with 3 or 4 columns.
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] not in (3, VALUES_PER_LANDMARK):
        raise ValueError(
            f"Frame array must have shape (landmarks × 3|4), got {arr.shape}."
        )
    landmarks = [
        Landmark(
            x=row[0],
            y=row[1],
            z=row[2],
            visibility=float(np.clip(row[3], 0.0, 1.0)) if arr.shape[1] == 4 else None,
        )
        for row in arr
    ]
    return Frame(landmarks=landmarks, timestamp=timestamp)


class LandmarkIngest:
    """Validate frames and feed the history ring buffer."""

    def __init__(
        self,
        clock: Callable[[], float],
        capacity: int = MAX_HISTORY,
        num_landmarks: int = NUM_LANDMARKS,
    ):
        self.clock = clock
        self.num_landmarks = int(num_landmarks)
        self.history = FrameHistory(capacity)

    def ingest(self, frame: Frame) -> Frame:
        """Validate *frame* and append it to history.

        Returns:
            The stored frame with ``confidence`` (and, if missing,
            ``timestamp``) filled in.

        Raises:
            InvalidFrameError: If the landmark count does not match. History
                is left untouched.
        """
        count = len(frame.landmarks)
        if count != self.num_landmarks:
            raise InvalidFrameError(count, self.num_landmarks)

        update = {"confidence": compute_confidence(frame.landmarks)}
        if frame.timestamp is None:
            update["timestamp"] = self.clock()
        stored = frame.model_copy(update=update)

        evicted = self.history.append(stored)
        if evicted is not None:
            logger.debug("History full (%d); evicted frame @ %s", self.history.capacity, evicted.timestamp)
        return stored

    def reset(self) -> None:
        self.history.clear()
