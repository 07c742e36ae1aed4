"""Training session schemas."""

from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, Field

from strike_coach.engine.pose import Frame, Keypoint
from strike_coach.engine.reference_matcher import TechniqueMatch
from strike_coach.engine.session_aggregator import ComboStats, SessionStats
from strike_coach.engine.session_pipeline import FrameResult, RecordedStrike
from strike_coach.engine.strikes import Side, StrikeEvent, StrikeForm, StrikeType
from strike_coach.engine.technique_scorer import StrikeFeedback


class KeypointIn(BaseModel):
    """Single landmark as reported by the pose model."""
    name: str
    x: float
    y: float
    z: Optional[float] = None
    confidence: float = Field(..., ge=0.0, le=1.0)


class FrameIn(BaseModel):
    """One frame of landmarks pushed by the client."""
    timestamp: float = Field(..., description="Capture time in milliseconds")
    keypoints: List[KeypointIn]
    elapsed_ms: Optional[float] = Field(
        None, description="Time since the previous frame; defaults to the timestamp delta"
    )

    def to_frame(self) -> Frame:
        return Frame(
            timestamp=self.timestamp,
            keypoints=[
                Keypoint(name=kp.name, x=kp.x, y=kp.y, confidence=kp.confidence, z=kp.z)
                for kp in self.keypoints
            ],
        )


class SessionStartRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class SessionStartResponse(BaseModel):
    session_id: str
    user_id: str
    start_time: float


class StrikeFormSchema(BaseModel):
    hip_rotation: float
    shoulder_alignment: float
    guard_position: float = Field(..., ge=0.0, le=1.0)
    knee_angle: Optional[float] = None
    hip_angle: Optional[float] = None


class StrikeSchema(BaseModel):
    """A strike event, either detected by the engine or by the client."""
    type: StrikeType
    side: Side
    speed: float
    accuracy: float = Field(..., ge=0.0, le=1.0)
    power: float
    form: StrikeFormSchema

    def to_event(self) -> StrikeEvent:
        return StrikeEvent(
            type=self.type,
            side=self.side,
            speed=self.speed,
            accuracy=self.accuracy,
            power=self.power,
            form=StrikeForm(**self.form.model_dump()),
        )

    @classmethod
    def from_event(cls, strike: StrikeEvent) -> "StrikeSchema":
        return cls.model_validate(strike.to_dict())


class ComboStatsSchema(BaseModel):
    """Combo counters kept by the client's combo policy."""
    total_strikes: int = Field(0, ge=0)
    completed_combos: int = Field(0, ge=0)
    max_combo_streak: int = Field(0, ge=0)

    def to_combo_stats(self) -> ComboStats:
        return ComboStats(**self.model_dump())


class MovementStateResponse(BaseModel):
    velocity: float
    direction: List[float]
    smoothed_velocity: float
    smoothed_direction: List[float]
    last_update: float
    confidence: float


class StanceResponse(BaseModel):
    accuracy: float
    feedback: str
    improvements: List[str]


class TechniqueMatchResponse(BaseModel):
    is_correct: bool
    score: float
    improvements: List[str]
    overall_feedback: str

    @classmethod
    def from_match(cls, match: Optional[TechniqueMatch]) -> Optional["TechniqueMatchResponse"]:
        if match is None:
            return None
        return cls(
            is_correct=match.is_correct,
            score=match.score,
            improvements=match.improvements,
            overall_feedback=match.overall_feedback,
        )


class StrikeFeedbackResponse(BaseModel):
    """Deduction-based feedback on a single strike."""
    score: int
    power: float
    speed: float
    accuracy: float
    form_score: int
    feedback: str
    improvements: List[str]

    @classmethod
    def from_feedback(cls, feedback: Optional[StrikeFeedback]) -> Optional["StrikeFeedbackResponse"]:
        if feedback is None:
            return None
        return cls(
            score=feedback.score,
            power=feedback.power,
            speed=feedback.speed,
            accuracy=feedback.accuracy,
            form_score=feedback.form_score,
            feedback=feedback.feedback,
            improvements=feedback.improvements,
        )


class FrameResultResponse(BaseModel):
    """
    Outcome of one pushed frame.

    ``dropped`` is set when the frame was discarded because another frame of
    the same session was being processed, or because it arrived out of order.
    """
    dropped: bool = False
    timestamp: float
    movements: Dict[str, MovementStateResponse] = {}
    stance: Optional[StanceResponse] = None
    strike: Optional[StrikeSchema] = None
    score: Optional[int] = None
    technique_match: Optional[TechniqueMatchResponse] = None
    feedback: Optional[StrikeFeedbackResponse] = None
    coaching: List[str] = []
    confidence_threshold: float = 0.0

    @classmethod
    def dropped_frame(cls, timestamp: float) -> "FrameResultResponse":
        return cls(dropped=True, timestamp=timestamp)

    @classmethod
    def from_result(cls, result: FrameResult) -> "FrameResultResponse":
        return cls(
            timestamp=result.timestamp,
            movements={
                name: MovementStateResponse(
                    velocity=state.velocity,
                    direction=list(state.direction),
                    smoothed_velocity=state.smoothed_velocity,
                    smoothed_direction=list(state.smoothed_direction),
                    last_update=state.last_update,
                    confidence=state.confidence,
                )
                for name, state in result.movements.items()
            },
            stance=StanceResponse(
                accuracy=result.stance.accuracy,
                feedback=result.stance.feedback,
                improvements=result.stance.improvements,
            ) if result.stance else None,
            strike=StrikeSchema.from_event(result.strike) if result.strike else None,
            score=result.score,
            technique_match=TechniqueMatchResponse.from_match(result.technique_match),
            feedback=StrikeFeedbackResponse.from_feedback(result.feedback),
            coaching=result.coaching,
            confidence_threshold=result.confidence_threshold,
        )


class RecordStrikeRequest(BaseModel):
    strike: StrikeSchema
    session_stats: Optional[ComboStatsSchema] = None
    timestamp: Optional[float] = Field(
        None, description="Strike time in milliseconds on the frame clock; defaults to now"
    )


class RecordStrikeResponse(BaseModel):
    """
    Outcome of a client-detected strike.

    ``dropped`` is set when the strike fell inside the cooldown window of the
    session's previous strike; nothing was recorded then.
    """
    dropped: bool = False
    score: Optional[int] = None
    technique_match: Optional[TechniqueMatchResponse] = None
    feedback: Optional[StrikeFeedbackResponse] = None
    coaching: List[str] = []

    @classmethod
    def from_recorded(cls, recorded: RecordedStrike) -> "RecordStrikeResponse":
        return cls(
            score=recorded.score,
            technique_match=TechniqueMatchResponse.from_match(recorded.technique_match),
            feedback=StrikeFeedbackResponse.from_feedback(recorded.feedback),
            coaching=recorded.coaching,
        )


class TechniqueStatsResponse(BaseModel):
    count: int
    average_score: float
    best_score: int


class SessionStatsResponse(BaseModel):
    """Live or final statistics of a session."""
    session_id: str
    total_strikes: int
    completed_combos: int
    average_score: float
    max_combo_streak: int
    technique_breakdown: Dict[str, TechniqueStatsResponse]
    duration: Optional[float] = None  # Milliseconds, set once the session ended

    @classmethod
    def from_stats(
        cls,
        session_id: str,
        stats: SessionStats,
        duration: Optional[float] = None,
    ) -> "SessionStatsResponse":
        return cls(session_id=session_id, duration=duration, **stats.to_dict())


class SessionHistoryItem(BaseModel):
    """Persisted session without its strikes."""
    id: str
    user_id: str
    session_date: datetime
    duration_ms: float
    total_strikes: int
    completed_combos: int
    average_score: float
    max_combo_streak: int
    technique_breakdown: Dict[str, TechniqueStatsResponse]

    class Config:
        from_attributes = True


class TechniqueProgressItem(BaseModel):
    """One session's result for a single technique."""
    session_id: str
    session_date: datetime
    count: int
    average_score: float
    best_score: int
