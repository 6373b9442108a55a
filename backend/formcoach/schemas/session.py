"""Session schemas."""

from typing import Optional, List, Dict

from pydantic import BaseModel, Field, field_validator

from formcoach.cv.pose import JointName
from formcoach.models.exercise import ExerciseId, InvalidExerciseError


def _validate_exercise(v: str) -> str:
    try:
        return ExerciseId.parse(v).value
    except InvalidExerciseError:
        valid = [e.display_name for e in ExerciseId]
        raise ValueError(f"exercise must be one of: {valid}") from None


class SessionCreate(BaseModel):
    """Schema for starting (or restarting) a session."""
    exercise: str = Field(..., description="Exercise name or identifier, e.g. 'Squat' or 'push_up'")

    @field_validator("exercise")
    @classmethod
    def validate_exercise(cls, v: str) -> str:
        return _validate_exercise(v)


class JointSampleIn(BaseModel):
    """One joint reported by the detector (normalized, bottom-left origin)."""
    x: float = Field(..., ge=0.0, le=1.0)
    y: float = Field(..., ge=0.0, le=1.0)
    confidence: float = Field(..., ge=0.0, le=1.0)


class FrameSubmit(BaseModel):
    """Schema for one detector frame."""
    timestamp: float = Field(..., allow_inf_nan=False, description="Capture time in seconds")
    joints: Dict[str, JointSampleIn]

    @field_validator("joints")
    @classmethod
    def validate_joints(cls, v: Dict[str, JointSampleIn]) -> Dict[str, JointSampleIn]:
        valid = {j.value for j in JointName}
        unknown = sorted(set(v) - valid)
        if unknown:
            raise ValueError(f"unknown joints: {unknown}")
        return v


class ClassificationResponse(BaseModel):
    """Per-frame classification."""
    rating: str  # "good", "improve", "poor", "undetected"
    message: str
    feedback: str
    metrics: Dict[str, float] = Field(default_factory=dict)
    missing_joints: List[str] = Field(default_factory=list)


class FrameResponse(BaseModel):
    """Result of submitting a frame. Dropped frames have no classification."""
    accepted: bool
    classification: Optional[ClassificationResponse] = None


class TallyResponse(BaseModel):
    good: int
    improve: int
    poor: int
    total: int


class SessionResponse(BaseModel):
    """Schema for session status."""
    id: str
    state: str  # "idle", "analyzing", "stopped"
    exercise: Optional[str] = None
    exercise_name: Optional[str] = None
    tally: TallyResponse
    last_accepted: Optional[float] = None


class SummaryResponse(BaseModel):
    """
    End-of-session summary.

    has_data is False when no frame was scored; percentages are then
    omitted rather than reported as 0%.
    """
    exercise: Optional[str] = None
    has_data: bool
    text: str
    good_percent: Optional[int] = None
    improve_percent: Optional[int] = None
    poor_percent: Optional[int] = None
    suggestion: Optional[str] = None
    tally: TallyResponse


class ExerciseResponse(BaseModel):
    """Supported exercise and the joints its rule measures."""
    id: str
    name: str
    joints: List[str]
    suggestion: str
