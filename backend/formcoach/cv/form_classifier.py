"""
Per-frame form classification.

Applies the selected exercise's rule to one pose observation and returns
Good / Improve / Poor, or Undetected when a required joint is missing or
not confident enough. Undetected is an expected outcome (occlusion, poor
framing), not an error.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from formcoach.config import get_settings
from formcoach.cv.exercise_rules import EXERCISE_RULES
from formcoach.cv.pose import JointName, PoseObservation
from formcoach.models.exercise import ExerciseId, FormRating

logger = logging.getLogger(__name__)

UNDETECTED_MESSAGE = "cannot detect pose for this exercise"


@dataclass(frozen=True)
class FrameClassification:
    """
    Result of classifying a single frame.

    Contains the rating and message, plus the measured values
    for explainability.
    """
    exercise: ExerciseId
    rating: FormRating
    message: str
    metrics: Dict[str, float] = field(default_factory=dict)
    missing_joints: List[JointName] = field(default_factory=list)

    @property
    def is_detected(self) -> bool:
        return self.rating is not FormRating.UNDETECTED

    @property
    def feedback(self) -> str:
        """Spoken/displayed feedback line, e.g. "Good: Good squat depth"."""
        if not self.is_detected:
            return self.message
        return f"{self.rating.label}: {self.message}"


class FormClassifier:
    """
    Rule-based form classifier.

    Stateless apart from the confidence threshold: the same exercise and
    observation always produce the same classification.
    """

    def __init__(self, min_joint_confidence: Optional[float] = None):
        settings = get_settings()
        self.min_joint_confidence = (
            settings.min_joint_confidence if min_joint_confidence is None else min_joint_confidence
        )

    def classify(
        self,
        exercise: Union[ExerciseId, str],
        observation: PoseObservation,
    ) -> FrameClassification:
        """
        Classify one observation against the exercise's rule.

        Args:
            exercise: Selected exercise
            observation: Joints for a single detector frame

        Returns:
            FrameClassification; rating is UNDETECTED when required joints
            are missing, at or below the confidence threshold, or form a
            degenerate geometry
        """
        exercise = ExerciseId.parse(exercise)
        rule = EXERCISE_RULES[exercise]
        check = rule.check

        missing = [
            joint for joint in check.required_joints
            if observation.confident_joint(joint, self.min_joint_confidence) is None
        ]
        if missing:
            logger.debug(
                f"{exercise.value}: undetected, missing joints "
                f"{', '.join(j.value for j in missing)}"
            )
            return self._undetected(exercise, missing)

        metrics = check.measure(observation)
        if metrics is None:
            logger.debug(f"{exercise.value}: undetected, degenerate joint geometry")
            return self._undetected(exercise, [])

        rating = check.rate(metrics)
        return FrameClassification(
            exercise=exercise,
            rating=rating,
            message=check.messages.for_rating(rating),
            metrics=metrics,
        )

    @staticmethod
    def _undetected(exercise: ExerciseId, missing: List[JointName]) -> FrameClassification:
        return FrameClassification(
            exercise=exercise,
            rating=FormRating.UNDETECTED,
            message=UNDETECTED_MESSAGE,
            missing_joints=missing,
        )
