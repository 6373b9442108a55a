"""Tests for the rate-limited session aggregator."""

import logging
import math

import pytest

from formcoach.cv.form_classifier import FormClassifier
from formcoach.cv.session_aggregator import (
    NO_DATA_MESSAGE,
    FrameEvent,
    SessionAggregator,
    SessionTally,
)
from formcoach.cv.pose import JointName
from formcoach.models.exercise import ExerciseId, FormRating, InvalidExerciseError, SessionState

from conftest import make_observation, without_joint


@pytest.fixture
def aggregator():
    return SessionAggregator(
        classifier=FormClassifier(min_joint_confidence=0.1),
        sampling_interval_seconds=1.0,
    )


def _feed(aggregator, frames, start=0.0):
    """Submit frames one second apart so every one is accepted."""
    for i, frame in enumerate(frames):
        assert aggregator.submit(frame(start + i)) is not None


# ============================================================================
# Test: SessionTally
# ============================================================================

class TestSessionTally:

    def test_record_counts_scored_ratings(self):
        tally = SessionTally()
        for rating in (FormRating.GOOD, FormRating.GOOD, FormRating.IMPROVE, FormRating.POOR):
            tally.record(rating)
        assert (tally.good, tally.improve, tally.poor, tally.total) == (2, 1, 1, 4)

    def test_undetected_is_ignored(self):
        tally = SessionTally()
        tally.record(FormRating.UNDETECTED)
        assert tally.total == 0

    def test_snapshot_is_independent(self):
        tally = SessionTally(good=1)
        snapshot = tally.snapshot()
        tally.record(FormRating.GOOD)
        assert snapshot.good == 1
        assert tally.good == 2


# ============================================================================
# Test: Lifecycle
# ============================================================================

class TestLifecycle:

    def test_initial_state(self, aggregator):
        assert aggregator.state is SessionState.IDLE
        assert aggregator.exercise is None
        assert aggregator.tally.total == 0

    def test_submit_before_start_is_dropped(self, aggregator, squat_frames):
        assert aggregator.submit(squat_frames["good"](0.0)) is None
        assert aggregator.tally.total == 0

    def test_start_accepts_display_name(self, aggregator):
        aggregator.start("Push-up")
        assert aggregator.state is SessionState.ANALYZING
        assert aggregator.exercise is ExerciseId.PUSH_UP

    def test_invalid_start_leaves_state_untouched(self, aggregator):
        with pytest.raises(InvalidExerciseError):
            aggregator.start("Deadlift")
        assert aggregator.state is SessionState.IDLE
        assert aggregator.exercise is None
        assert aggregator.tally.total == 0

    def test_invalid_start_keeps_running_session(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        _feed(aggregator, [squat_frames["good"]] * 3)

        with pytest.raises(InvalidExerciseError):
            aggregator.start("Deadlift")

        assert aggregator.state is SessionState.ANALYZING
        assert aggregator.exercise is ExerciseId.SQUAT
        assert aggregator.tally.good == 3

    def test_stop_freezes_tally(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        _feed(aggregator, [squat_frames["good"]] * 2)
        aggregator.stop()

        assert aggregator.state is SessionState.STOPPED
        assert aggregator.submit(squat_frames["poor"](10.0)) is None
        assert aggregator.tally.total == 2

    def test_stop_is_idempotent(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        _feed(aggregator, [squat_frames["good"]])
        aggregator.stop()
        aggregator.stop()
        assert aggregator.state is SessionState.STOPPED
        assert aggregator.tally.good == 1

    def test_stop_without_start_is_noop(self, aggregator):
        aggregator.stop()
        assert aggregator.state is SessionState.IDLE

    def test_restart_resets_tally(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        _feed(aggregator, [squat_frames["good"]] * 4)
        aggregator.stop()

        aggregator.start(ExerciseId.PLANK)
        assert aggregator.state is SessionState.ANALYZING
        assert aggregator.exercise is ExerciseId.PLANK
        assert aggregator.tally.total == 0
        assert aggregator.last_accepted is None

    def test_restart_accepts_first_frame_immediately(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        assert aggregator.submit(squat_frames["good"](5.0)) is not None
        aggregator.stop()

        aggregator.start(ExerciseId.SQUAT)
        assert aggregator.submit(squat_frames["good"](5.2)) is not None


# ============================================================================
# Test: Sampling
# ============================================================================

class TestSampling:

    def test_first_frame_is_accepted(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        result = aggregator.submit(squat_frames["good"](123.4))
        assert result is not None
        assert result.rating is FormRating.GOOD
        assert aggregator.last_accepted == 123.4

    def test_frames_inside_interval_are_dropped(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        assert aggregator.submit(squat_frames["good"](0.0)) is not None
        assert aggregator.submit(squat_frames["poor"](0.5)) is None
        assert aggregator.submit(squat_frames["poor"](0.99)) is None
        assert aggregator.submit(squat_frames["poor"](1.0)) is not None
        assert (aggregator.tally.good, aggregator.tally.poor) == (1, 1)

    def test_burst_accepts_one_frame_per_second(self, aggregator, squat_frames):
        # 50 frames at 10 fps span 4.9 seconds
        aggregator.start(ExerciseId.SQUAT)
        accepted = [
            aggregator.submit(squat_frames["good"](i / 10))
            for i in range(50)
        ]
        assert sum(1 for r in accepted if r is not None) == 5
        assert aggregator.tally.good == 5

    def test_explicit_clock_overrides_timestamp(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        frame = squat_frames["good"](0.0)
        assert aggregator.submit(frame, now=100.0) is not None
        assert aggregator.submit(frame, now=100.5) is None
        assert aggregator.submit(frame, now=101.0) is not None

    def test_custom_interval(self, squat_frames):
        aggregator = SessionAggregator(
            classifier=FormClassifier(min_joint_confidence=0.1),
            sampling_interval_seconds=0.25,
        )
        aggregator.start(ExerciseId.SQUAT)
        accepted = [aggregator.submit(squat_frames["good"](i / 10)) for i in range(10)]
        assert sum(1 for r in accepted if r is not None) == 4

    def test_undetected_frames_consume_the_interval(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        occluded = without_joint(squat_frames["good"](0.0), JointName.RIGHT_KNEE)

        result = aggregator.submit(occluded)
        assert result.rating is FormRating.UNDETECTED
        assert aggregator.tally.total == 0
        assert aggregator.submit(squat_frames["good"](0.5)) is None

    @pytest.mark.parametrize("bad_time", [math.nan, math.inf, -math.inf])
    def test_non_finite_time_is_dropped(self, aggregator, squat_frames, bad_time):
        aggregator.start(ExerciseId.SQUAT)
        assert aggregator.submit(squat_frames["good"](0.0), now=bad_time) is None
        assert aggregator.last_accepted is None

        accepted = [aggregator.submit(squat_frames["good"](i / 10)) for i in range(10)]
        assert sum(1 for r in accepted if r is not None) == 1
        assert aggregator.tally.good == 1

    def test_non_finite_time_keeps_the_gate(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        assert aggregator.submit(squat_frames["good"](0.0)) is not None
        assert aggregator.submit(squat_frames["good"](float("nan"))) is None
        assert aggregator.submit(squat_frames["good"](0.5)) is None
        assert aggregator.last_accepted == 0.0


# ============================================================================
# Test: Summary
# ============================================================================

class TestSummary:

    def test_percentages_and_suggestion(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        frames = (
            [squat_frames["good"]] * 7
            + [squat_frames["improve"]] * 2
            + [squat_frames["poor"]]
        )
        _feed(aggregator, frames)
        aggregator.stop()

        summary = aggregator.summary()
        assert summary.has_data
        assert (summary.good, summary.improve, summary.poor) == (7, 2, 1)
        assert (summary.good_percent, summary.improve_percent, summary.poor_percent) == (70, 20, 10)
        assert summary.text == (
            "Squat analysis: 70% good form, 20% needs improvement, 10% poor form. "
            "Work on lowering your hips more and keeping your back straight."
        )

    def test_undetected_frames_are_excluded(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        _feed(aggregator, [squat_frames["good"]] * 3)
        for t in (3.0, 4.0):
            occluded = without_joint(squat_frames["poor"](t), JointName.RIGHT_ANKLE)
            assert aggregator.submit(occluded).rating is FormRating.UNDETECTED
        _feed(aggregator, [squat_frames["poor"]], start=5.0)

        summary = aggregator.summary()
        assert summary.total == 4
        assert (summary.good_percent, summary.poor_percent) == (75, 25)

    def test_thirds_round_to_nearest(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        _feed(aggregator, [squat_frames["good"], squat_frames["improve"], squat_frames["poor"]])

        summary = aggregator.summary()
        assert (summary.good_percent, summary.improve_percent, summary.poor_percent) == (33, 33, 33)

    def test_no_data_before_start(self, aggregator):
        summary = aggregator.summary()
        assert not summary.has_data
        assert summary.exercise is None
        assert summary.text == NO_DATA_MESSAGE

    def test_no_data_when_only_undetected(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        aggregator.submit(without_joint(squat_frames["good"](0.0), JointName.RIGHT_HIP))
        aggregator.stop()

        summary = aggregator.summary()
        assert not summary.has_data
        assert summary.exercise is ExerciseId.SQUAT
        assert summary.text == NO_DATA_MESSAGE
        assert "0%" not in summary.text

    def test_summary_while_analyzing(self, aggregator, squat_frames):
        aggregator.start(ExerciseId.SQUAT)
        _feed(aggregator, [squat_frames["improve"]])
        summary = aggregator.summary()
        assert summary.has_data
        assert summary.improve_percent == 100
        assert aggregator.state is SessionState.ANALYZING

    def test_no_data_when_nothing_visible(self, aggregator):
        aggregator.start(ExerciseId.PLANK)
        aggregator.submit(make_observation(timestamp=0.0))
        assert not aggregator.summary().has_data


# ============================================================================
# Test: Subscribers
# ============================================================================

class TestSubscribers:

    def test_listener_receives_accepted_frames(self, aggregator, squat_frames):
        events = []
        aggregator.subscribe(events.append)
        aggregator.start(ExerciseId.SQUAT)

        aggregator.submit(squat_frames["good"](0.0))
        aggregator.submit(squat_frames["poor"](0.5))  # dropped
        aggregator.submit(squat_frames["improve"](1.0))

        assert len(events) == 2
        assert all(isinstance(e, FrameEvent) for e in events)
        assert [e.classification.rating for e in events] == [FormRating.GOOD, FormRating.IMPROVE]
        assert events[1].timestamp == 1.0

    def test_event_tally_is_a_snapshot(self, aggregator, squat_frames):
        events = []
        aggregator.subscribe(events.append)
        aggregator.start(ExerciseId.SQUAT)
        _feed(aggregator, [squat_frames["good"]] * 3)

        assert [e.tally.good for e in events] == [1, 2, 3]

    def test_undetected_frames_are_published(self, aggregator, squat_frames):
        events = []
        aggregator.subscribe(events.append)
        aggregator.start(ExerciseId.SQUAT)
        aggregator.submit(without_joint(squat_frames["good"](0.0), JointName.RIGHT_KNEE))

        assert len(events) == 1
        assert events[0].classification.feedback == "cannot detect pose for this exercise"
        assert events[0].tally.total == 0

    def test_unsubscribe(self, aggregator, squat_frames):
        events = []
        unsubscribe = aggregator.subscribe(events.append)
        aggregator.start(ExerciseId.SQUAT)
        aggregator.submit(squat_frames["good"](0.0))
        unsubscribe()
        aggregator.submit(squat_frames["good"](1.0))
        unsubscribe()

        assert len(events) == 1

    def test_failing_listener_is_logged(self, aggregator, squat_frames, caplog):
        events = []

        def broken(event):
            raise RuntimeError("display went away")

        aggregator.subscribe(broken)
        aggregator.subscribe(events.append)
        aggregator.start(ExerciseId.SQUAT)

        with caplog.at_level(logging.ERROR, logger="formcoach.cv.session_aggregator"):
            result = aggregator.submit(squat_frames["good"](0.0))

        assert result is not None
        assert len(events) == 1
        assert aggregator.tally.good == 1
        assert "Frame listener failed" in caplog.text
