"""
Session aggregation for live form feedback.

Pose detectors run far faster than posture meaningfully changes, so the
aggregator scores at most one frame per sampling interval (1 second by
default). Accepted frames are classified and tallied; undetected frames are
excluded from the statistics. When the session ends, the tally is turned
into a percentage summary with the exercise's improvement suggestion.

Lifecycle:
    IDLE --start()--> ANALYZING --stop()--> STOPPED --start()--> ANALYZING

Frames submitted outside ANALYZING are dropped. submit() is not safe to call
concurrently for the same session; hosts receiving frames on a background
thread must serialize calls.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Union

from formcoach.config import get_settings
from formcoach.cv.exercise_rules import EXERCISE_RULES
from formcoach.cv.form_classifier import FormClassifier, FrameClassification
from formcoach.cv.pose import PoseObservation
from formcoach.models.exercise import ExerciseId, FormRating, SessionState

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "Not enough data to generate feedback yet."


@dataclass
class SessionTally:
    """Running Good / Improve / Poor counts for one session."""
    good: int = 0
    improve: int = 0
    poor: int = 0

    @property
    def total(self) -> int:
        return self.good + self.improve + self.poor

    def record(self, rating: FormRating) -> None:
        if not rating.is_scored:
            return
        # Field names match the scored rating values
        setattr(self, rating.value, getattr(self, rating.value) + 1)

    def snapshot(self) -> "SessionTally":
        return replace(self)


@dataclass(frozen=True)
class FrameEvent:
    """Delivered to subscribers for every accepted frame, including undetected ones."""
    timestamp: float
    classification: FrameClassification
    tally: SessionTally


@dataclass(frozen=True)
class SessionSummary:
    """End-of-session feedback. `has_data` is False when nothing was tallied."""
    exercise: Optional[ExerciseId]
    has_data: bool
    text: str
    good: int = 0
    improve: int = 0
    poor: int = 0
    good_percent: int = 0
    improve_percent: int = 0
    poor_percent: int = 0
    suggestion: str = ""

    @property
    def total(self) -> int:
        return self.good + self.improve + self.poor


FrameListener = Callable[[FrameEvent], None]


def _percent(count: int, total: int) -> int:
    # Round half to even, matching printf("%.0f")
    return int(round(count / total * 100))


class SessionAggregator:
    """
    Rate-limited state machine that tallies per-frame classifications.

    One instance per active session. The host drives it with start(),
    submit(), stop() and summary(); live classifications are pushed to
    listeners registered with subscribe().
    """

    def __init__(
        self,
        classifier: Optional[FormClassifier] = None,
        sampling_interval_seconds: Optional[float] = None,
    ):
        settings = get_settings()
        self.classifier = classifier or FormClassifier()
        self.sampling_interval_seconds = (
            settings.sampling_interval_seconds
            if sampling_interval_seconds is None
            else sampling_interval_seconds
        )

        self.state = SessionState.IDLE
        self.exercise: Optional[ExerciseId] = None
        self.tally = SessionTally()
        self.last_accepted: Optional[float] = None

        self._listeners: List[FrameListener] = []

    def subscribe(self, listener: FrameListener) -> Callable[[], None]:
        """Register a listener for accepted frames. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start(self, exercise: Union[ExerciseId, str]) -> None:
        """
        Begin a new analysis session with a fresh tally.

        Raises:
            InvalidExerciseError: if the exercise is not supported; the
                current state and tally are left untouched
        """
        exercise = ExerciseId.parse(exercise)

        previous = self.state
        self.exercise = exercise
        self.tally = SessionTally()
        self.last_accepted = None
        self.state = SessionState.ANALYZING

        logger.info(f"Analysis started for {exercise.display_name} (was {previous.value})")

    def submit(
        self,
        observation: PoseObservation,
        now: Optional[float] = None,
    ) -> Optional[FrameClassification]:
        """
        Offer one detector frame to the session.

        Args:
            observation: Joints for the frame
            now: Frame time in seconds; defaults to the observation timestamp

        Returns:
            The classification if the frame was accepted, None if it was
            dropped (session not analyzing, non-finite time, or inside the
            sampling interval)
        """
        if self.state is not SessionState.ANALYZING:
            return None

        now = observation.timestamp if now is None else now
        if not math.isfinite(now):
            logger.debug(f"Dropping frame with non-finite timestamp {now}")
            return None
        if self.last_accepted is not None and now - self.last_accepted < self.sampling_interval_seconds:
            return None

        self.last_accepted = now
        classification = self.classifier.classify(self.exercise, observation)
        self.tally.record(classification.rating)

        logger.debug(f"Frame at {now:.2f}s: {classification.feedback}")

        self._publish(FrameEvent(
            timestamp=now,
            classification=classification,
            tally=self.tally.snapshot(),
        ))
        return classification

    def stop(self) -> None:
        """Freeze the tally. Idempotent."""
        if self.state is SessionState.STOPPED:
            return
        if self.state is SessionState.IDLE:
            logger.debug("stop() called before any session was started")
            return
        self.state = SessionState.STOPPED
        logger.info(
            f"Analysis stopped for {self.exercise.display_name}: "
            f"{self.tally.total} frames scored"
        )

    def summary(self) -> SessionSummary:
        """
        Summarize the tally as percentages plus the exercise suggestion.

        Valid in any state. With no tallied frames the result has
        has_data=False and a "not enough data" text instead of 0% figures.
        """
        tally = self.tally
        if self.exercise is None or tally.total == 0:
            return SessionSummary(exercise=self.exercise, has_data=False, text=NO_DATA_MESSAGE)

        total = tally.total
        good_percent = _percent(tally.good, total)
        improve_percent = _percent(tally.improve, total)
        poor_percent = _percent(tally.poor, total)
        suggestion = EXERCISE_RULES[self.exercise].suggestion

        text = (
            f"{self.exercise.display_name} analysis: "
            f"{good_percent}% good form, "
            f"{improve_percent}% needs improvement, "
            f"{poor_percent}% poor form. "
            f"{suggestion}"
        )

        return SessionSummary(
            exercise=self.exercise,
            has_data=True,
            text=text,
            good=tally.good,
            improve=tally.improve,
            poor=tally.poor,
            good_percent=good_percent,
            improve_percent=improve_percent,
            poor_percent=poor_percent,
            suggestion=suggestion,
        )

    def _publish(self, event: FrameEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Frame listener failed")
