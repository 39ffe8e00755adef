"""
Form quality scoring.

Turns the severities of recent corrections into a 0-100 quality score:
each correction contributes a penalty and the score is 100 × (1 - mean penalty).
"""

from typing import Optional, Sequence

import numpy as np

from .config import QUALITY_WINDOW, SEVERITY_PENALTIES
from .state import Correction


def score_corrections(
    corrections: Sequence[Correction],
    window: int = QUALITY_WINDOW,
    penalties: Optional[dict[str, float]] = None,
) -> float:
    """Quality score over the last *window* corrections (100 when none)."""
    if not corrections or window <= 0:
        return 100.0
    penalties = penalties or SEVERITY_PENALTIES
    recent = list(corrections)[-window:]
    mean_penalty = float(np.mean([penalties.get(c.severity.value, 0.0) for c in recent]))
    return float(np.clip(100.0 * (1.0 - mean_penalty), 0.0, 100.0))
