"""
Exercise form rules.

Every supported exercise maps to exactly one FormCheck plus an improvement
suggestion used in the session summary. Three kinds of check exist:

- AngleCheck: one joint angle scored against a Good and an Improve range.
- CompoundAngleCheck: two joint angles, each tier requiring ALL of its
  bounds to hold (Bicycle Crunch, Jumping Jack).
- VerticalDistanceCheck: knee/ankle vertical separation heuristic (Calf Raise).

Ranges are half-open [low, high). Tiers are evaluated Good, then Improve;
anything else is Poor. Ranges need not be contiguous: a value outside both
ranges is Poor.
"""

import operator
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from formcoach.cv.geometry import angle_between, normalized_vertical_distance
from formcoach.cv.pose import JointName, PoseObservation
from formcoach.models.exercise import ExerciseId, FormRating


@dataclass(frozen=True)
class AngleRange:
    """Half-open numeric range [low, high)."""
    low: float
    high: float

    def contains(self, value: float) -> bool:
        return self.low <= value < self.high


@dataclass(frozen=True)
class JointAngle:
    """An angle measured at `vertex` between `point_a` and `point_b`."""
    name: str
    point_a: JointName
    vertex: JointName
    point_b: JointName

    @property
    def joints(self) -> Tuple[JointName, JointName, JointName]:
        return (self.point_a, self.vertex, self.point_b)

    def measure(self, observation: PoseObservation) -> Optional[float]:
        a = observation.get(self.point_a)
        v = observation.get(self.vertex)
        b = observation.get(self.point_b)
        if a is None or v is None or b is None:
            return None
        return angle_between(v.to_array(), a.to_array(), b.to_array())


@dataclass(frozen=True)
class FormMessages:
    good: str
    improve: str
    poor: str

    def for_rating(self, rating: FormRating) -> str:
        if rating is FormRating.GOOD:
            return self.good
        if rating is FormRating.IMPROVE:
            return self.improve
        return self.poor


class FormCheck:
    """Base class for per-frame form checks."""

    name: str
    messages: FormMessages

    @property
    def required_joints(self) -> Tuple[JointName, ...]:
        raise NotImplementedError

    def measure(self, observation: PoseObservation) -> Optional[Dict[str, float]]:
        """
        Compute the metrics this check scores.

        Returns None when the geometry is degenerate. Joint presence and
        confidence are verified by the caller before this is invoked.
        """
        raise NotImplementedError

    def rate(self, metrics: Dict[str, float]) -> FormRating:
        raise NotImplementedError


@dataclass(frozen=True)
class AngleCheck(FormCheck):
    """Score a single joint angle against Good and Improve ranges."""
    name: str
    angle: JointAngle
    good: AngleRange
    improve: AngleRange
    messages: FormMessages

    @property
    def required_joints(self) -> Tuple[JointName, ...]:
        return self.angle.joints

    def measure(self, observation: PoseObservation) -> Optional[Dict[str, float]]:
        value = self.angle.measure(observation)
        if value is None:
            return None
        return {self.angle.name: value}

    def rate(self, metrics: Dict[str, float]) -> FormRating:
        value = metrics[self.angle.name]
        if self.good.contains(value):
            return FormRating.GOOD
        if self.improve.contains(value):
            return FormRating.IMPROVE
        return FormRating.POOR


# Bound = (comparison, threshold) applied as comparison(measured, threshold)
Bound = Tuple[Callable[[float, float], bool], float]


@dataclass(frozen=True)
class CompoundAngleCheck(FormCheck):
    """Score two angles; a tier applies only when every one of its bounds holds."""
    name: str
    angles: Tuple[JointAngle, ...]
    good: Dict[str, Bound]
    improve: Dict[str, Bound]
    messages: FormMessages

    @property
    def required_joints(self) -> Tuple[JointName, ...]:
        joints = []
        for angle in self.angles:
            for joint in angle.joints:
                if joint not in joints:
                    joints.append(joint)
        return tuple(joints)

    def measure(self, observation: PoseObservation) -> Optional[Dict[str, float]]:
        metrics = {}
        for angle in self.angles:
            value = angle.measure(observation)
            if value is None:
                return None
            metrics[angle.name] = value
        return metrics

    def rate(self, metrics: Dict[str, float]) -> FormRating:
        if self._holds(self.good, metrics):
            return FormRating.GOOD
        if self._holds(self.improve, metrics):
            return FormRating.IMPROVE
        return FormRating.POOR

    @staticmethod
    def _holds(bounds: Dict[str, Bound], metrics: Dict[str, float]) -> bool:
        return all(compare(metrics[name], threshold) for name, (compare, threshold) in bounds.items())


@dataclass(frozen=True)
class VerticalDistanceCheck(FormCheck):
    """Score the normalized knee-to-ankle vertical separation; smaller is better."""
    name: str
    upper: JointName
    lower: JointName
    good_below: float
    improve_below: float
    messages: FormMessages
    metric_name: str = "normalized_vertical_distance"

    @property
    def required_joints(self) -> Tuple[JointName, ...]:
        return (self.upper, self.lower)

    def measure(self, observation: PoseObservation) -> Optional[Dict[str, float]]:
        upper = observation.get(self.upper)
        lower = observation.get(self.lower)
        if upper is None or lower is None:
            return None
        value = normalized_vertical_distance(upper.y, lower.y)
        if value is None:
            return None
        return {self.metric_name: value}

    def rate(self, metrics: Dict[str, float]) -> FormRating:
        value = metrics[self.metric_name]
        if value < self.good_below:
            return FormRating.GOOD
        if value < self.improve_below:
            return FormRating.IMPROVE
        return FormRating.POOR


@dataclass(frozen=True)
class ExerciseRule:
    """The form check for one exercise plus its summary suggestion."""
    exercise: ExerciseId
    check: FormCheck
    suggestion: str


# Shared angle definitions (right side of the body)
KNEE = JointAngle("knee_angle", JointName.RIGHT_HIP, JointName.RIGHT_KNEE, JointName.RIGHT_ANKLE)
ELBOW = JointAngle("elbow_angle", JointName.RIGHT_SHOULDER, JointName.RIGHT_ELBOW, JointName.RIGHT_WRIST)
BODY_LINE = JointAngle("body_angle", JointName.RIGHT_SHOULDER, JointName.RIGHT_HIP, JointName.RIGHT_ANKLE)
HIP = JointAngle("hip_angle", JointName.RIGHT_SHOULDER, JointName.RIGHT_HIP, JointName.RIGHT_KNEE)
SPINE = JointAngle("spine_angle", JointName.RIGHT_SHOULDER, JointName.ROOT, JointName.RIGHT_HIP)

DEEP_BEND = (AngleRange(0, 90), AngleRange(90, 120))
STRAIGHT_LINE = (AngleRange(160, 180), AngleRange(140, 160))
TIGHT_BEND = (AngleRange(0, 60), AngleRange(60, 90))


def _angle_rule(
    exercise: ExerciseId,
    angle: JointAngle,
    ranges: Tuple[AngleRange, AngleRange],
    good: str,
    improve: str,
    poor: str,
    suggestion: str,
) -> ExerciseRule:
    good_range, improve_range = ranges
    return ExerciseRule(
        exercise=exercise,
        check=AngleCheck(
            name=f"{exercise.value}_{angle.name}",
            angle=angle,
            good=good_range,
            improve=improve_range,
            messages=FormMessages(good, improve, poor),
        ),
        suggestion=suggestion,
    )


EXERCISE_RULES: Dict[ExerciseId, ExerciseRule] = {
    rule.exercise: rule
    for rule in [
        _angle_rule(
            ExerciseId.SQUAT, KNEE, DEEP_BEND,
            "Good squat depth", "Go lower", "Bend knees more",
            "Work on lowering your hips more and keeping your back straight.",
        ),
        _angle_rule(
            ExerciseId.PUSH_UP, ELBOW, DEEP_BEND,
            "Full range", "Lower chest more", "Not low enough",
            "Try to lower your chest closer to the ground and keep your body straight.",
        ),
        _angle_rule(
            ExerciseId.LUNGE, KNEE, (AngleRange(80, 100), AngleRange(100, 120)),
            "Front knee bent properly", "Bend front knee more", "Adjust stance and knee bend",
            "Focus on keeping your front knee at a 90-degree angle.",
        ),
        _angle_rule(
            ExerciseId.PLANK, BODY_LINE, (AngleRange(160, 180), AngleRange(150, 160)),
            "Body well-aligned", "Straighten body more", "Align body, keep straight",
            "Keep your body in a straight line from head to heels.",
        ),
        _angle_rule(
            ExerciseId.GLUTE_BRIDGE, HIP, STRAIGHT_LINE,
            "Hips raised high", "Raise hips higher", "Lift hips much higher",
            "Lift your hips higher and squeeze your glutes at the top.",
        ),
        ExerciseRule(
            exercise=ExerciseId.CALF_RAISE,
            check=VerticalDistanceCheck(
                name="calf_raise_heel_height",
                upper=JointName.RIGHT_KNEE,
                lower=JointName.RIGHT_ANKLE,
                good_below=0.1,
                improve_below=0.15,
                messages=FormMessages(
                    "Heels raised high",
                    "Raise your heels higher",
                    "Lift your heels much higher",
                ),
            ),
            suggestion="Rise up onto your toes as high as possible.",
        ),
        _angle_rule(
            ExerciseId.WALL_SIT, KNEE, (AngleRange(85, 95), AngleRange(80, 85)),
            "Knees at 90 degrees", "Adjust to 90 degree knee bend",
            "Significantly off from 90 degree knee bend",
            "Keep thighs parallel to the ground and back against the wall.",
        ),
        _angle_rule(
            ExerciseId.SHOULDER_PRESS, ELBOW, STRAIGHT_LINE,
            "Arms extended", "Extend arms more", "Push weights higher",
            "Fully extend your arms overhead.",
        ),
        _angle_rule(
            ExerciseId.TRICEP_DIP, ELBOW, DEEP_BEND,
            "Arms bent sufficiently", "Lower body more", "Bend elbows more",
            "Lower until your upper arms are parallel to the ground.",
        ),
        ExerciseRule(
            exercise=ExerciseId.BICYCLE_CRUNCH,
            check=CompoundAngleCheck(
                name="bicycle_crunch_knee_elbow",
                angles=(KNEE, ELBOW),
                good={KNEE.name: (operator.lt, 45), ELBOW.name: (operator.lt, 90)},
                improve={KNEE.name: (operator.lt, 60), ELBOW.name: (operator.lt, 110)},
                messages=FormMessages(
                    "Knee close to chest and elbow twisted",
                    "Bring knee closer to chest and twist more",
                    "Bring your knee much closer and twist further",
                ),
            ),
            suggestion="Rotate your torso more and bring elbow to opposite knee.",
        ),
        _angle_rule(
            ExerciseId.SUPERMAN, BODY_LINE, STRAIGHT_LINE,
            "Body well-extended", "Lift limbs higher", "Lift arms and legs much higher",
            "Lift your arms and legs higher off the ground.",
        ),
        _angle_rule(
            ExerciseId.MOUNTAIN_CLIMBER, KNEE, DEEP_BEND,
            "Knee close to chest", "Bring knee closer to chest", "Bring knee much closer to chest",
            "Bring knees closer to your chest.",
        ),
        ExerciseRule(
            exercise=ExerciseId.JUMPING_JACK,
            check=CompoundAngleCheck(
                name="jumping_jack_arm_leg",
                angles=(ELBOW, KNEE),
                good={ELBOW.name: (operator.gt, 150), KNEE.name: (operator.gt, 30)},
                improve={ELBOW.name: (operator.gt, 120), KNEE.name: (operator.gt, 20)},
                messages=FormMessages(
                    "Arms and legs extended",
                    "Extend arms and legs more",
                    "Jump higher and extend arms fully",
                ),
            ),
            suggestion="Fully extend your arms and legs with each jump.",
        ),
        _angle_rule(
            ExerciseId.BURPEE, HIP, TIGHT_BEND,
            "Low squat position", "Lower your squat", "Squat lower and jump higher",
            "Lower chest to the ground and jump higher at the end.",
        ),
        _angle_rule(
            ExerciseId.HIGH_KNEES, KNEE, DEEP_BEND,
            "Knee raised high", "Raise knee higher", "Lift knee much higher",
            "Lift knees higher and increase your pace.",
        ),
        _angle_rule(
            ExerciseId.BOX_JUMP, KNEE, DEEP_BEND,
            "Deep squat before jump", "Lower squat before jumping",
            "Squat lower for more explosive jump",
            "Land softly with knees slightly bent.",
        ),
        _angle_rule(
            ExerciseId.KETTLEBELL_SWING, HIP, STRAIGHT_LINE,
            "Hips fully extended at the top", "Extend hips more at the top",
            "Focus on hip hinge and full extension",
            "Drive movement from hips and keep arms straight.",
        ),
        _angle_rule(
            ExerciseId.RUSSIAN_TWIST, SPINE, TIGHT_BEND,
            "Torso rotated sufficiently", "Rotate torso more", "Increase range of motion",
            "Rotate torso further and lift feet off the ground.",
        ),
        _angle_rule(
            ExerciseId.STEP_UP, KNEE, DEEP_BEND,
            "Leg lifted high enough", "Lift leg higher",
            "Step onto higher platform or lift leg higher",
            "Step fully onto the platform and straighten your leg at the top.",
        ),
    ]
}


def get_rule(exercise: ExerciseId) -> ExerciseRule:
    """Look up the rule for an exercise."""
    return EXERCISE_RULES[ExerciseId.parse(exercise)]
