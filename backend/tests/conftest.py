"""Shared builders for pose observations."""

import math
from typing import Dict, Tuple

import pytest

from formcoach.cv.exercise_rules import JointAngle
from formcoach.cv.pose import JointName, JointSample, PoseObservation


def joints_for_angle(
    angle: JointAngle,
    degrees: float,
    vertex: Tuple[float, float] = (0.5, 0.5),
    length: float = 0.2,
    confidence: float = 0.9,
) -> Dict[JointName, JointSample]:
    """
    Place the three joints of `angle` so the angle at the vertex is `degrees`.

    point_a sits straight up from the vertex; point_b is rotated clockwise
    from it by `degrees`.
    """
    vx, vy = vertex
    rad = math.radians(degrees)
    return {
        angle.point_a: JointSample(angle.point_a, vx, vy + length, confidence),
        angle.vertex: JointSample(angle.vertex, vx, vy, confidence),
        angle.point_b: JointSample(
            angle.point_b,
            vx + length * math.sin(rad),
            vy + length * math.cos(rad),
            confidence,
        ),
    }


def make_observation(*joint_maps: Dict[JointName, JointSample], timestamp: float = 0.0) -> PoseObservation:
    joints: Dict[JointName, JointSample] = {}
    for joint_map in joint_maps:
        joints.update(joint_map)
    return PoseObservation(timestamp=timestamp, joints=joints)


def with_confidence(
    observation: PoseObservation,
    joint: JointName,
    confidence: float,
) -> PoseObservation:
    joints = dict(observation.joints)
    sample = joints[joint]
    joints[joint] = JointSample(sample.joint, sample.x, sample.y, confidence)
    return PoseObservation(timestamp=observation.timestamp, joints=joints)


def without_joint(observation: PoseObservation, joint: JointName) -> PoseObservation:
    joints = {k: v for k, v in observation.joints.items() if k != joint}
    return PoseObservation(timestamp=observation.timestamp, joints=joints)


def calf_raise_observation(knee_y: float, ankle_y: float, confidence: float = 0.9) -> PoseObservation:
    return make_observation({
        JointName.RIGHT_KNEE: JointSample(JointName.RIGHT_KNEE, 0.5, knee_y, confidence),
        JointName.RIGHT_ANKLE: JointSample(JointName.RIGHT_ANKLE, 0.5, ankle_y, confidence),
    })


@pytest.fixture
def squat_frames():
    """Knee-angle observations for each squat tier."""
    from formcoach.cv.exercise_rules import KNEE

    def build(degrees: float, timestamp: float = 0.0) -> PoseObservation:
        return make_observation(joints_for_angle(KNEE, degrees), timestamp=timestamp)

    return {
        "good": lambda t=0.0: build(45.0, t),
        "improve": lambda t=0.0: build(100.0, t),
        "poor": lambda t=0.0: build(150.0, t),
    }
