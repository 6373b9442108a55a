"""Domain enumerations shared by the analysis core and the API."""

from formcoach.models.exercise import (
    ExerciseId,
    FormRating,
    InvalidExerciseError,
    SessionState,
)

__all__ = [
    "ExerciseId",
    "FormRating",
    "InvalidExerciseError",
    "SessionState",
]
