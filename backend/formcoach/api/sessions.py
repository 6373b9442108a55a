"""Analysis session API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from formcoach.cv.form_classifier import FrameClassification
from formcoach.cv.pose import PoseObservation
from formcoach.cv.session_aggregator import SessionAggregator, SessionTally
from formcoach.schemas.session import (
    ClassificationResponse,
    FrameResponse,
    FrameSubmit,
    SessionCreate,
    SessionResponse,
    SummaryResponse,
    TallyResponse,
)
from formcoach.sessions import SessionLimitError, SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


def get_registry(request: Request) -> SessionRegistry:
    """Return the session registry attached in lifespan."""
    return request.app.state.sessions


def _get_session(registry: SessionRegistry, session_id: str) -> SessionAggregator:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )
    return session


def _tally_response(tally: SessionTally) -> TallyResponse:
    return TallyResponse(
        good=tally.good,
        improve=tally.improve,
        poor=tally.poor,
        total=tally.total
    )


def _session_response(session_id: str, session: SessionAggregator) -> SessionResponse:
    return SessionResponse(
        id=session_id,
        state=session.state.value,
        exercise=session.exercise.value if session.exercise else None,
        exercise_name=session.exercise.display_name if session.exercise else None,
        tally=_tally_response(session.tally),
        last_accepted=session.last_accepted
    )


def _classification_response(result: FrameClassification) -> ClassificationResponse:
    return ClassificationResponse(
        rating=result.rating.value,
        message=result.message,
        feedback=result.feedback,
        metrics=result.metrics,
        missing_joints=[j.value for j in result.missing_joints]
    )


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: SessionCreate,
    registry: SessionRegistry = Depends(get_registry)
):
    """Create a session and start analyzing the given exercise."""
    try:
        session_id, session = registry.create()
    except SessionLimitError as e:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=str(e)
        )

    session.start(payload.exercise)
    return _session_response(session_id, session)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry)
):
    """Get session state and running tally."""
    session = _get_session(registry, session_id)
    return _session_response(session_id, session)


@router.post("/{session_id}/start", response_model=SessionResponse)
async def restart_session(
    session_id: str,
    payload: SessionCreate,
    registry: SessionRegistry = Depends(get_registry)
):
    """Start a fresh analysis (new tally) on an existing session."""
    session = _get_session(registry, session_id)
    session.start(payload.exercise)
    return _session_response(session_id, session)


@router.post("/{session_id}/frames", response_model=FrameResponse)
async def submit_frame(
    session_id: str,
    frame: FrameSubmit,
    registry: SessionRegistry = Depends(get_registry)
):
    """
    Submit one detector frame.

    Frames arriving inside the sampling interval, or while the session
    is not analyzing, are dropped and reported with accepted=false.
    """
    session = _get_session(registry, session_id)

    observation = PoseObservation.from_dict(
        {name: joint.model_dump() for name, joint in frame.joints.items()},
        timestamp=frame.timestamp
    )

    result = session.submit(observation)
    if result is None:
        return FrameResponse(accepted=False)

    return FrameResponse(
        accepted=True,
        classification=_classification_response(result)
    )


@router.post("/{session_id}/stop", response_model=SessionResponse)
async def stop_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry)
):
    """Stop analysis and freeze the tally."""
    session = _get_session(registry, session_id)
    session.stop()
    return _session_response(session_id, session)


@router.get("/{session_id}/summary", response_model=SummaryResponse)
async def get_summary(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry)
):
    """Get the feedback summary for the session."""
    session = _get_session(registry, session_id)
    summary = session.summary()

    if not summary.has_data:
        return SummaryResponse(
            exercise=summary.exercise.value if summary.exercise else None,
            has_data=False,
            text=summary.text,
            tally=_tally_response(session.tally)
        )

    return SummaryResponse(
        exercise=summary.exercise.value,
        has_data=True,
        text=summary.text,
        good_percent=summary.good_percent,
        improve_percent=summary.improve_percent,
        poor_percent=summary.poor_percent,
        suggestion=summary.suggestion,
        tally=_tally_response(session.tally)
    )


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry)
):
    """Discard a session."""
    if not registry.remove(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )
