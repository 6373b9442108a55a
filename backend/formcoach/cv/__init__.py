"""
Form analysis core for live exercise feedback.

PIPELINE COMPONENTS:
1. Pose: JointSample / PoseObservation frames pushed in by an external detector
2. Geometry: joint angle and vertical-distance helpers
3. ExerciseRules: declarative per-exercise form checks and suggestions
4. FormClassifier: Good / Improve / Poor / Undetected per frame
5. SessionAggregator: rate-limited tally with an end-of-session summary

Usage:
    from formcoach.cv import SessionAggregator, PoseObservation

    session = SessionAggregator()
    session.start("Squat")
    for observation in frames:
        session.submit(observation)
    session.stop()
    print(session.summary().text)
"""

from formcoach.cv.pose import JointName, JointSample, PoseObservation, MediaPipeLandmark
from formcoach.cv.geometry import angle_between, normalized_vertical_distance
from formcoach.cv.exercise_rules import (
    AngleCheck,
    AngleRange,
    CompoundAngleCheck,
    ExerciseRule,
    EXERCISE_RULES,
    FormCheck,
    FormMessages,
    JointAngle,
    VerticalDistanceCheck,
    get_rule,
)
from formcoach.cv.form_classifier import FormClassifier, FrameClassification, UNDETECTED_MESSAGE
from formcoach.cv.session_aggregator import (
    FrameEvent,
    NO_DATA_MESSAGE,
    SessionAggregator,
    SessionSummary,
    SessionTally,
)

__all__ = [
    # Pose input
    "JointName",
    "JointSample",
    "PoseObservation",
    "MediaPipeLandmark",

    # Geometry
    "angle_between",
    "normalized_vertical_distance",

    # Rule table
    "AngleCheck",
    "AngleRange",
    "CompoundAngleCheck",
    "ExerciseRule",
    "EXERCISE_RULES",
    "FormCheck",
    "FormMessages",
    "JointAngle",
    "VerticalDistanceCheck",
    "get_rule",

    # Classification
    "FormClassifier",
    "FrameClassification",
    "UNDETECTED_MESSAGE",

    # Session
    "FrameEvent",
    "NO_DATA_MESSAGE",
    "SessionAggregator",
    "SessionSummary",
    "SessionTally",
]
