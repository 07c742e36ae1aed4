"""Training session API endpoints."""

import asyncio
import logging
from functools import lru_cache
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from strike_coach.database import get_db
from strike_coach.engine.errors import SessionClosed, SessionNotFound
from strike_coach.engine.session_aggregator import StrikeSession
from strike_coach.engine.session_pipeline import SessionPipeline, SessionRegistry
from strike_coach.engine.strikes import Side, StrikeType
from strike_coach.models.training_session import TrainingSession
from strike_coach.models.strike_attempt import StrikeAttempt
from strike_coach.schemas.session import (
    FrameIn,
    FrameResultResponse,
    RecordStrikeRequest,
    RecordStrikeResponse,
    SessionHistoryItem,
    SessionStartRequest,
    SessionStartResponse,
    SessionStatsResponse,
    TechniqueProgressItem,
)

logger = logging.getLogger(__name__)

router = APIRouter()

TECHNIQUE_PROGRESS_LIMIT = 10


@lru_cache()
def get_registry() -> SessionRegistry:
    """Process-wide registry of live sessions."""
    return SessionRegistry()


def _get_pipeline(registry: SessionRegistry, session_id: str) -> SessionPipeline:
    try:
        return registry.get(session_id)
    except SessionNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )


def _session_closed(e: SessionClosed) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=str(e)
    )


def _parse_technique(technique: str):
    """Split a technique key such as ``left_front_kick`` into (side, type)."""
    side, _, strike_type = technique.partition("_")
    try:
        return Side(side), StrikeType(strike_type)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown technique: {technique}"
        )


def _to_record(session: StrikeSession) -> TrainingSession:
    record = TrainingSession(
        id=session.session_id,
        user_id=session.user_id,
        session_date=session.date,
        duration_ms=session.duration,
        total_strikes=session.total_strikes,
        completed_combos=session.completed_combos,
        average_score=session.average_score,
        max_combo_streak=session.max_combo_streak,
    )
    record.technique_breakdown = {
        key: stats.to_dict() for key, stats in session.technique_breakdown.items()
    }
    record.strikes = [
        StrikeAttempt.from_scored(scored, sequence)
        for sequence, scored in enumerate(session.strikes, 1)
    ]
    return record


@router.post("/start", response_model=SessionStartResponse, status_code=status.HTTP_201_CREATED)
async def start_session(
    request: SessionStartRequest,
    registry: SessionRegistry = Depends(get_registry)
):
    """Start a live training session."""
    pipeline = registry.start(request.user_id)
    return SessionStartResponse(
        session_id=pipeline.session_id,
        user_id=pipeline.session.user_id,
        start_time=pipeline.session.start_time
    )


@router.post("/{session_id}/frames", response_model=FrameResultResponse)
def push_frame(
    session_id: str,
    frame: FrameIn,
    registry: SessionRegistry = Depends(get_registry)
):
    """
    Run one frame of landmarks through the session's pipeline.

    Frames of one session are processed one at a time and in timestamp
    order; a frame that cannot be processed is reported as dropped.
    """
    pipeline = _get_pipeline(registry, session_id)
    try:
        result = pipeline.process_frame(frame.to_frame(), elapsed_ms=frame.elapsed_ms)
    except SessionClosed as e:
        raise _session_closed(e)

    if result is None:
        return FrameResultResponse.dropped_frame(frame.timestamp)
    return FrameResultResponse.from_result(result)


@router.post("/{session_id}/strike", response_model=RecordStrikeResponse)
def record_strike(
    session_id: str,
    request: RecordStrikeRequest,
    registry: SessionRegistry = Depends(get_registry)
):
    """
    Score and record a strike detected by the client.

    A strike inside the cooldown window of the session's previous strike is
    reported as dropped and not recorded.
    """
    pipeline = _get_pipeline(registry, session_id)
    combo_stats = request.session_stats.to_combo_stats() if request.session_stats else None
    try:
        recorded = pipeline.record_strike(request.strike.to_event(), combo_stats, now=request.timestamp)
    except SessionClosed as e:
        raise _session_closed(e)

    if recorded is None:
        return RecordStrikeResponse(dropped=True)
    return RecordStrikeResponse.from_recorded(recorded)


@router.post("/{session_id}/end", response_model=SessionStatsResponse)
async def end_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
    db: AsyncSession = Depends(get_db)
):
    """
    End a session and persist it.

    The session leaves the registry only once it has been written, so a
    failed write can be retried.
    """
    try:
        session = await asyncio.to_thread(registry.finish, session_id)
    except SessionNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except SessionClosed as e:
        raise _session_closed(e)

    db.add(_to_record(session))
    await db.commit()
    registry.remove(session_id)
    logger.info(f"Persisted session {session.session_id} ({len(session.strikes)} strikes)")

    return SessionStatsResponse.from_stats(session.session_id, session.stats(), session.duration)


@router.get("/history/{user_id}", response_model=List[SessionHistoryItem])
async def get_session_history(
    user_id: str,
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """Most recent sessions of a user, without their strikes."""
    result = await db.execute(
        select(TrainingSession)
        .where(TrainingSession.user_id == user_id)
        .order_by(desc(TrainingSession.session_date))
        .limit(limit)
    )
    sessions = result.scalars().all()
    return [SessionHistoryItem.model_validate(s) for s in sessions]


@router.get("/technique/{user_id}/{technique}", response_model=List[TechniqueProgressItem])
async def get_technique_progress(
    user_id: str,
    technique: str,
    db: AsyncSession = Depends(get_db)
):
    """Per-session results of one technique (e.g. ``left_jab``), newest first."""
    side, strike_type = _parse_technique(technique)

    sessions_with_technique = (
        select(StrikeAttempt.session_id)
        .where(
            StrikeAttempt.side == side.value,
            StrikeAttempt.strike_type == strike_type.value
        )
    )
    result = await db.execute(
        select(TrainingSession)
        .where(
            TrainingSession.user_id == user_id,
            TrainingSession.id.in_(sessions_with_technique)
        )
        .order_by(desc(TrainingSession.session_date))
        .limit(TECHNIQUE_PROGRESS_LIMIT)
    )
    sessions = result.scalars().all()

    progress = []
    for s in sessions:
        stats = s.technique_breakdown.get(technique)
        if stats is None:
            continue
        progress.append(TechniqueProgressItem(
            session_id=s.id,
            session_date=s.session_date,
            count=stats["count"],
            average_score=stats["average_score"],
            best_score=stats["best_score"]
        ))
    return progress


@router.get("/{session_id}/stats", response_model=SessionStatsResponse)
async def get_session_stats(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry)
):
    """Current statistics of a live session."""
    pipeline = _get_pipeline(registry, session_id)
    return SessionStatsResponse.from_stats(pipeline.session_id, pipeline.stats())
