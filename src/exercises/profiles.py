"""
Exercise profile registry for the real-time form engine.

Maps exercise IDs to ``ExerciseProfile`` definitions: the muscle groups
evaluated each frame, the landmarks that define each group's angle, target
angles, tolerance, rep pattern and phase ranges. The built-in catalog can be
extended from a YAML file (``config/exercise_profiles.yaml``).
"""

import logging
from pathlib import Path
from typing import Optional, Union

import yaml

from src.realtime.angles import MUSCLE_GROUP_LANDMARKS
from src.realtime.config import EXERCISE_PROFILES_PATH
from src.realtime.state import ExerciseProfile, Phase, RepPattern

logger = logging.getLogger(__name__)


def _landmarks_for(groups: list[str]) -> dict[str, list[int]]:
    return {g: list(MUSCLE_GROUP_LANDMARKS[g]) for g in groups if g in MUSCLE_GROUP_LANDMARKS}


# Built-in catalog, keyed by exercise ID
BUILTIN_PROFILES: dict[str, ExerciseProfile] = {
    "chair-yoga-stretch": ExerciseProfile(
        exercise_id="chair-yoga-stretch",
        name="Chair Yoga Stretch",
        target_muscle_groups=["shoulders", "arms", "core"],
        key_landmark_indices=_landmarks_for(["shoulders", "arms", "core"]),
        target_angle_deg={"shoulders": 90.0, "arms": 180.0, "core": 90.0},
        tolerance_deg=15.0,
        rep_pattern=RepPattern.UP_DOWN,
        phase_landmark_ranges={
            Phase.SETUP: [0, 1, 2],
            Phase.EXECUTION: [3, 4, 5],
            Phase.RETURN: [6, 7, 8],
            Phase.REST: [9, 10],
        },
    ),
    "seated-twist": ExerciseProfile(
        exercise_id="seated-twist",
        name="Seated Twist",
        target_muscle_groups=["core", "back"],
        key_landmark_indices=_landmarks_for(["core", "back"]),
        target_angle_deg={"core": 45.0, "back": 90.0},
        tolerance_deg=20.0,
        rep_pattern=RepPattern.ROTATION,
        phase_landmark_ranges={
            Phase.SETUP: [0, 1],
            Phase.EXECUTION: [2, 3, 4],
            Phase.RETURN: [5, 6],
            Phase.REST: [7, 8],
        },
    ),
    "arm-circles": ExerciseProfile(
        exercise_id="arm-circles",
        name="Arm Circles",
        target_muscle_groups=["shoulders", "arms"],
        key_landmark_indices=_landmarks_for(["shoulders", "arms"]),
        target_angle_deg={"shoulders": 90.0, "arms": 180.0},
        tolerance_deg=10.0,
        rep_pattern=RepPattern.ROTATION,
        phase_landmark_ranges={
            Phase.SETUP: [0],
            Phase.EXECUTION: [1, 2, 3, 4],
            Phase.RETURN: [5],
            Phase.REST: [6],
        },
    ),
}


class ExerciseProfileRegistry:
    """Lookup table of exercise profiles.

    Profiles are returned as copies so callers cannot alter the catalog.
    """

    def __init__(self, profiles: Optional[dict[str, ExerciseProfile]] = None):
        self._profiles: dict[str, ExerciseProfile] = {}
        for profile in (profiles or {}).values():
            self.register(profile)

    def __contains__(self, exercise_id: str) -> bool:
        return exercise_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)

    def register(self, profile: ExerciseProfile, replace: bool = False) -> None:
        """Add *profile* to the registry.

        Raises:
            ValueError: If the ID is already registered and ``replace`` is False.
        """
        if profile.exercise_id in self._profiles and not replace:
            raise ValueError(f"Exercise '{profile.exercise_id}' already registered")
        self._profiles[profile.exercise_id] = profile.model_copy(deep=True)

    def get(self, exercise_id: Optional[str] = None,
            exercise_name: Optional[str] = None) -> ExerciseProfile:
        """
        Get a profile by ID or display name.

        Args:
            exercise_id: Exercise ID (e.g. "arm-circles")
            exercise_name: Display name (case-insensitive, partial match allowed)

        Returns:
            A copy of the stored ExerciseProfile

        Raises:
            ValueError: If the exercise is not found
        """
        if exercise_id is not None:
            if exercise_id in self._profiles:
                return self._profiles[exercise_id].model_copy(deep=True)
            raise ValueError(
                f"Exercise ID '{exercise_id}' not found. Valid IDs: {sorted(self._profiles)}"
            )

        if exercise_name is not None:
            name_lower = exercise_name.lower()
            by_name = {p.name.lower(): p for p in self._profiles.values()}
            if name_lower in by_name:
                return by_name[name_lower].model_copy(deep=True)
            for stored_name, profile in by_name.items():
                if name_lower in stored_name or stored_name in name_lower:
                    return profile.model_copy(deep=True)
            raise ValueError(f"Exercise '{exercise_name}' not found")

        raise ValueError("Must provide either exercise_id or exercise_name")

    def list_exercises(self) -> list[tuple[str, str]]:
        """(exercise_id, name) pairs in registration order."""
        return [(p.exercise_id, p.name) for p in self._profiles.values()]

    def load_yaml(self, path: Union[str, Path], replace: bool = False) -> list[str]:
        """Register every profile defined under ``exercises:`` in a YAML file.

        Muscle groups without explicit ``key_landmark_indices`` use the
        default landmark map.

        Returns:
            IDs of the profiles that were registered.
        """
        path = Path(path)
        with open(path, "r") as f:
            cfg = yaml.safe_load(f) or {}

        loaded = []
        for exercise_id, raw in (cfg.get("exercises") or {}).items():
            data = dict(raw)
            data.setdefault("exercise_id", exercise_id)
            groups = data.get("target_muscle_groups", [])
            indices = _landmarks_for(groups)
            indices.update(data.get("key_landmark_indices") or {})
            data["key_landmark_indices"] = indices
            self.register(ExerciseProfile.model_validate(data), replace=replace)
            loaded.append(exercise_id)

        logger.info("Loaded %d exercise profile(s) from %s", len(loaded), path)
        return loaded


DEFAULT_REGISTRY = ExerciseProfileRegistry(BUILTIN_PROFILES)


def get_profile(exercise_id: Optional[str] = None,
                exercise_name: Optional[str] = None) -> ExerciseProfile:
    """Look up a profile in the default registry."""
    return DEFAULT_REGISTRY.get(exercise_id, exercise_name)


def list_profiles() -> list[tuple[str, str]]:
    """Get list of all registered exercise IDs and names."""
    return DEFAULT_REGISTRY.list_exercises()


def load_profiles_from_yaml(path: Union[str, Path] = EXERCISE_PROFILES_PATH,
                            registry: Optional[ExerciseProfileRegistry] = None) -> list[str]:
    """Extend *registry* (default: the module registry) from a YAML file."""
    registry = registry if registry is not None else DEFAULT_REGISTRY
    return registry.load_yaml(path)
