"""Exercise catalogue endpoints."""

from typing import List

from fastapi import APIRouter, HTTPException, status

from formcoach.cv.exercise_rules import EXERCISE_RULES, ExerciseRule
from formcoach.models.exercise import ExerciseId, InvalidExerciseError
from formcoach.schemas.session import ExerciseResponse

router = APIRouter()


def _exercise_response(rule: ExerciseRule) -> ExerciseResponse:
    return ExerciseResponse(
        id=rule.exercise.value,
        name=rule.exercise.display_name,
        joints=[j.value for j in rule.check.required_joints],
        suggestion=rule.suggestion
    )


@router.get("", response_model=List[ExerciseResponse])
async def list_exercises():
    """List supported exercises in display order."""
    return [_exercise_response(EXERCISE_RULES[e]) for e in ExerciseId]


@router.get("/{exercise}", response_model=ExerciseResponse)
async def get_exercise(exercise: str):
    """Get one exercise by identifier or display name."""
    try:
        exercise_id = ExerciseId.parse(exercise)
    except InvalidExerciseError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    return _exercise_response(EXERCISE_RULES[exercise_id])
