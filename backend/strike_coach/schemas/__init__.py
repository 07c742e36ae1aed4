"""Pydantic schemas for API request/response models."""

from strike_coach.schemas.session import (
    KeypointIn,
    FrameIn,
    SessionStartRequest,
    SessionStartResponse,
    StrikeFormSchema,
    StrikeSchema,
    ComboStatsSchema,
    RecordStrikeRequest,
    RecordStrikeResponse,
    MovementStateResponse,
    StanceResponse,
    TechniqueMatchResponse,
    StrikeFeedbackResponse,
    FrameResultResponse,
    TechniqueStatsResponse,
    SessionStatsResponse,
    SessionHistoryItem,
    TechniqueProgressItem,
)
from strike_coach.schemas.technique import (
    FormCheckResponse,
    TechniqueReferenceResponse,
)

__all__ = [
    "KeypointIn",
    "FrameIn",
    "SessionStartRequest",
    "SessionStartResponse",
    "StrikeFormSchema",
    "StrikeSchema",
    "ComboStatsSchema",
    "RecordStrikeRequest",
    "RecordStrikeResponse",
    "MovementStateResponse",
    "StanceResponse",
    "TechniqueMatchResponse",
    "StrikeFeedbackResponse",
    "FrameResultResponse",
    "TechniqueStatsResponse",
    "SessionStatsResponse",
    "SessionHistoryItem",
    "TechniqueProgressItem",
    "FormCheckResponse",
    "TechniqueReferenceResponse",
]
