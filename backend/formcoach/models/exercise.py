"""Exercise identifiers, form ratings and session lifecycle states."""

import re
from enum import Enum
from typing import Union


class InvalidExerciseError(ValueError):
    """Raised when an exercise identifier is not one of the supported exercises."""


class ExerciseId(str, Enum):
    """Supported exercises. Values are stable API identifiers."""
    SQUAT = "squat"
    PUSH_UP = "push_up"
    LUNGE = "lunge"
    PLANK = "plank"
    GLUTE_BRIDGE = "glute_bridge"
    CALF_RAISE = "calf_raise"
    WALL_SIT = "wall_sit"
    SHOULDER_PRESS = "shoulder_press"
    TRICEP_DIP = "tricep_dip"
    BICYCLE_CRUNCH = "bicycle_crunch"
    SUPERMAN = "superman"
    MOUNTAIN_CLIMBER = "mountain_climber"
    JUMPING_JACK = "jumping_jack"
    BURPEE = "burpee"
    HIGH_KNEES = "high_knees"
    BOX_JUMP = "box_jump"
    KETTLEBELL_SWING = "kettlebell_swing"
    RUSSIAN_TWIST = "russian_twist"
    STEP_UP = "step_up"

    @property
    def display_name(self) -> str:
        """Human-readable name, as used in feedback summaries."""
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: Union["ExerciseId", str]) -> "ExerciseId":
        """
        Resolve an exercise from its enum value or display name.

        Matching ignores case, spaces, hyphens and underscores, so
        "Push-up", "push up" and "push_up" all resolve to PUSH_UP.

        Raises:
            InvalidExerciseError: if the value matches no exercise
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidExerciseError(f"Exercise must be a string, got {type(value).__name__}")

        key = _normalize(value)
        exercise = _LOOKUP.get(key)
        if exercise is None:
            raise InvalidExerciseError(f"Unknown exercise: {value!r}")
        return exercise


_DISPLAY_NAMES = {
    ExerciseId.SQUAT: "Squat",
    ExerciseId.PUSH_UP: "Push-up",
    ExerciseId.LUNGE: "Lunge",
    ExerciseId.PLANK: "Plank",
    ExerciseId.GLUTE_BRIDGE: "Glute Bridge",
    ExerciseId.CALF_RAISE: "Calf Raise",
    ExerciseId.WALL_SIT: "Wall Sit",
    ExerciseId.SHOULDER_PRESS: "Shoulder Press",
    ExerciseId.TRICEP_DIP: "Tricep Dip",
    ExerciseId.BICYCLE_CRUNCH: "Bicycle Crunch",
    ExerciseId.SUPERMAN: "Superman",
    ExerciseId.MOUNTAIN_CLIMBER: "Mountain Climber",
    ExerciseId.JUMPING_JACK: "Jumping Jack",
    ExerciseId.BURPEE: "Burpee",
    ExerciseId.HIGH_KNEES: "High Knees",
    ExerciseId.BOX_JUMP: "Box Jump",
    ExerciseId.KETTLEBELL_SWING: "Kettlebell Swing",
    ExerciseId.RUSSIAN_TWIST: "Russian Twist",
    ExerciseId.STEP_UP: "Step-up",
}


def _normalize(name: str) -> str:
    return re.sub(r"[\s_\-]+", "", name.strip().lower())


_LOOKUP = {}
for _exercise in ExerciseId:
    _LOOKUP[_normalize(_exercise.value)] = _exercise
    _LOOKUP[_normalize(_exercise.display_name)] = _exercise


class FormRating(str, Enum):
    """Per-frame form classification."""
    GOOD = "good"
    IMPROVE = "improve"
    POOR = "poor"
    UNDETECTED = "undetected"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def is_scored(self) -> bool:
        """Undetected frames never count towards session statistics."""
        return self is not FormRating.UNDETECTED


class SessionState(str, Enum):
    """
    Lifecycle of an analysis session.

    IDLE -> ANALYZING on start(); ANALYZING -> STOPPED on stop();
    STOPPED -> ANALYZING on the next start() with a fresh tally.
    """
    IDLE = "idle"
    ANALYZING = "analyzing"
    STOPPED = "stopped"
