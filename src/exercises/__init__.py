"""
Exercise catalog for the real-time form engine.

This module contains the exercise profiles (targets, tolerances, landmark
groups) and the phrase sets used to voice corrections and motivation.
"""

from .profiles import (
    BUILTIN_PROFILES,
    DEFAULT_REGISTRY,
    ExerciseProfileRegistry,
    get_profile,
    list_profiles,
    load_profiles_from_yaml,
)
from .phrases import (
    CORRECTION_PHRASES,
    MOTIVATIONAL_PHRASES,
    PhraseSelector,
    RotatingPhraseSelector,
    SeededPhraseSelector,
)

__all__ = [
    "BUILTIN_PROFILES",
    "DEFAULT_REGISTRY",
    "ExerciseProfileRegistry",
    "get_profile",
    "list_profiles",
    "load_profiles_from_yaml",
    "CORRECTION_PHRASES",
    "MOTIVATIONAL_PHRASES",
    "PhraseSelector",
    "RotatingPhraseSelector",
    "SeededPhraseSelector",
]
