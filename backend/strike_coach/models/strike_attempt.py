"""Recorded strike model."""

import uuid
import json
from typing import Optional
from sqlalchemy import String, Integer, Float, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from strike_coach.models.base import Base, TimestampMixin
from strike_coach.engine.strikes import ScoredStrike


class StrikeAttempt(Base, TimestampMixin):
    """One scored strike of a training session, in session order."""

    __tablename__ = "strike_attempts"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("training_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    strike_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    side: Mapped[str] = mapped_column(String(10), nullable=False)
    speed: Mapped[float] = mapped_column(Float, nullable=False)
    accuracy: Mapped[float] = mapped_column(Float, nullable=False)
    power: Mapped[float] = mapped_column(Float, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)

    # Form measurements (stored as JSON string)
    _form: Mapped[Optional[str]] = mapped_column("form", Text, nullable=True)

    @property
    def form(self) -> dict:
        if self._form:
            return json.loads(self._form)
        return {}

    @form.setter
    def form(self, value: Optional[dict]):
        if value is not None:
            self._form = json.dumps(value)
        else:
            self._form = None

    # Relationship
    session: Mapped["TrainingSession"] = relationship("TrainingSession", back_populates="strikes")

    @property
    def technique_key(self) -> str:
        return f"{self.side}_{self.strike_type}"

    @classmethod
    def from_scored(cls, scored: ScoredStrike, sequence: int) -> "StrikeAttempt":
        data = scored.strike.to_dict()
        attempt = cls(
            sequence=sequence,
            strike_type=data["type"],
            side=data["side"],
            speed=data["speed"],
            accuracy=data["accuracy"],
            power=data["power"],
            score=scored.score,
        )
        attempt.form = data["form"]
        return attempt

    def __repr__(self) -> str:
        return f"<StrikeAttempt(id={self.id}, technique={self.technique_key}, score={self.score})>"
