"""Training session model."""

import uuid
import json
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import String, Integer, Float, DateTime, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from strike_coach.models.base import Base, TimestampMixin


class TrainingSession(Base, TimestampMixin):
    """
    A finished training session.

    Rows are written once, when the live session ends; the live statistics
    are owned by the engine's SessionAggregator until then.
    """

    __tablename__ = "training_sessions"
    __table_args__ = (
        Index("ix_training_sessions_user_date", "user_id", "session_date"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    session_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False
    )
    duration_ms: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    # Caller-supplied combo counters
    total_strikes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_combos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_combo_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    average_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    # Technique breakdown (stored as JSON string for SQLite compatibility)
    _technique_breakdown: Mapped[Optional[str]] = mapped_column(
        "technique_breakdown", Text, nullable=True
    )

    @property
    def technique_breakdown(self) -> Dict[str, dict]:
        if self._technique_breakdown:
            return json.loads(self._technique_breakdown)
        return {}

    @technique_breakdown.setter
    def technique_breakdown(self, value: Optional[Dict[str, dict]]):
        if value is not None:
            self._technique_breakdown = json.dumps(value)
        else:
            self._technique_breakdown = None

    # Relationships
    strikes: Mapped[List["StrikeAttempt"]] = relationship(
        "StrikeAttempt",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="StrikeAttempt.sequence"
    )

    def __repr__(self) -> str:
        return (
            f"<TrainingSession(id={self.id}, user={self.user_id}, "
            f"strikes={self.total_strikes}, avg={self.average_score:.1f})>"
        )
