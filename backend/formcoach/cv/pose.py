"""
Pose observations consumed by the form analysis core.

A PoseObservation is one detector frame: a mapping from joint name to a
JointSample (normalized position + confidence), all sharing one timestamp.
Coordinates are normalized to [0, 1] with the origin at the bottom-left of
the image, so y increases upwards. Detectors that report top-left origin
coordinates (MediaPipe) are converted by `PoseObservation.from_mediapipe`.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Mapping, Optional, Sequence

import numpy as np


class JointName(str, Enum):
    """Joints the form rules can reference."""
    NOSE = "nose"
    NECK = "neck"
    ROOT = "root"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"


class MediaPipeLandmark(IntEnum):
    """MediaPipe Pose landmark indices for the joints we track."""
    NOSE = 0
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28


_MEDIAPIPE_JOINTS = {
    JointName.NOSE: MediaPipeLandmark.NOSE,
    JointName.LEFT_SHOULDER: MediaPipeLandmark.LEFT_SHOULDER,
    JointName.RIGHT_SHOULDER: MediaPipeLandmark.RIGHT_SHOULDER,
    JointName.LEFT_ELBOW: MediaPipeLandmark.LEFT_ELBOW,
    JointName.RIGHT_ELBOW: MediaPipeLandmark.RIGHT_ELBOW,
    JointName.LEFT_WRIST: MediaPipeLandmark.LEFT_WRIST,
    JointName.RIGHT_WRIST: MediaPipeLandmark.RIGHT_WRIST,
    JointName.LEFT_HIP: MediaPipeLandmark.LEFT_HIP,
    JointName.RIGHT_HIP: MediaPipeLandmark.RIGHT_HIP,
    JointName.LEFT_KNEE: MediaPipeLandmark.LEFT_KNEE,
    JointName.RIGHT_KNEE: MediaPipeLandmark.RIGHT_KNEE,
    JointName.LEFT_ANKLE: MediaPipeLandmark.LEFT_ANKLE,
    JointName.RIGHT_ANKLE: MediaPipeLandmark.RIGHT_ANKLE,
}


@dataclass(frozen=True)
class JointSample:
    """Single joint with normalized 2D position and detector confidence."""
    joint: JointName
    x: float  # Normalized x coordinate (0-1)
    y: float  # Normalized y coordinate (0-1), origin bottom-left
    confidence: float  # Detector confidence (0-1)

    def __post_init__(self):
        for name in ("x", "y", "confidence"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{self.joint.value}.{name} must be within [0, 1], got {value}")

    def is_confident(self, threshold: float) -> bool:
        """Joints at or below the threshold are treated as absent."""
        return self.confidence > threshold

    def to_array(self) -> np.ndarray:
        """Convert to numpy array [x, y]."""
        return np.array([self.x, self.y], dtype=float)


@dataclass(frozen=True)
class PoseObservation:
    """All joints reported by the detector for a single frame."""
    timestamp: float
    joints: Mapping[JointName, JointSample] = field(default_factory=dict)

    def get(self, joint: JointName) -> Optional[JointSample]:
        return self.joints.get(joint)

    def confident_joint(self, joint: JointName, threshold: float) -> Optional[JointSample]:
        """Return the joint only if it is present and above the confidence threshold."""
        sample = self.joints.get(joint)
        if sample is None or not sample.is_confident(threshold):
            return None
        return sample

    @classmethod
    def from_dict(cls, joints: Mapping[str, Mapping[str, Any]], timestamp: float) -> "PoseObservation":
        """
        Build an observation from a plain mapping.

        Args:
            joints: {"right_knee": {"x": 0.5, "y": 0.4, "confidence": 0.9}, ...}
            timestamp: Capture time in seconds

        Raises:
            ValueError: on unknown joint names, missing coordinates or values
                outside [0, 1]
        """
        samples: Dict[JointName, JointSample] = {}
        for name, values in joints.items():
            try:
                joint = JointName(name)
            except ValueError:
                raise ValueError(f"Unknown joint: {name!r}") from None
            samples[joint] = JointSample(
                joint=joint,
                x=float(values["x"]),
                y=float(values["y"]),
                confidence=float(values.get("confidence", 0.0)),
            )
        return cls(timestamp=float(timestamp), joints=samples)

    @classmethod
    def from_mediapipe(
        cls,
        landmarks: Sequence[Sequence[float]],
        timestamp: float,
    ) -> "PoseObservation":
        """
        Convert MediaPipe Pose landmarks into an observation.

        Args:
            landmarks: 33 (x, y, visibility) triples indexed by MediaPipeLandmark,
                in MediaPipe's top-left origin normalized space
            timestamp: Capture time in seconds

        The y axis is flipped to bottom-left origin. `neck` and `root` are
        synthesized from the shoulder and hip midpoints, carrying the lower
        confidence of the two source joints.
        """
        samples: Dict[JointName, JointSample] = {}
        for joint, index in _MEDIAPIPE_JOINTS.items():
            if index >= len(landmarks):
                continue
            # Landmarks outside the frame are clamped to its edge
            x, y, visibility = np.clip(np.asarray(landmarks[index][:3], dtype=float), 0.0, 1.0)
            samples[joint] = JointSample(
                joint=joint,
                x=float(x),
                y=1.0 - float(y),
                confidence=float(visibility),
            )

        for joint, left, right in (
            (JointName.NECK, JointName.LEFT_SHOULDER, JointName.RIGHT_SHOULDER),
            (JointName.ROOT, JointName.LEFT_HIP, JointName.RIGHT_HIP),
        ):
            a, b = samples.get(left), samples.get(right)
            if a is None or b is None:
                continue
            samples[joint] = JointSample(
                joint=joint,
                x=(a.x + b.x) / 2,
                y=(a.y + b.y) / 2,
                confidence=min(a.confidence, b.confidence),
            )

        return cls(timestamp=float(timestamp), joints=samples)
