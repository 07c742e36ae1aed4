"""Database models."""

from strike_coach.models.base import Base
from strike_coach.models.training_session import TrainingSession
from strike_coach.models.strike_attempt import StrikeAttempt

__all__ = [
    "Base",
    "TrainingSession",
    "StrikeAttempt",
]
