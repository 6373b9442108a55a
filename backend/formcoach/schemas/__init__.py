"""Pydantic schemas for API request/response models."""

from formcoach.schemas.session import (
    SessionCreate,
    JointSampleIn,
    FrameSubmit,
    ClassificationResponse,
    FrameResponse,
    TallyResponse,
    SessionResponse,
    SummaryResponse,
    ExerciseResponse,
)

__all__ = [
    "SessionCreate",
    "JointSampleIn",
    "FrameSubmit",
    "ClassificationResponse",
    "FrameResponse",
    "TallyResponse",
    "SessionResponse",
    "SummaryResponse",
    "ExerciseResponse",
]
