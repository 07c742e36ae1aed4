"""
Running per-session and per-technique statistics.

INVARIANTS:
- average_score is the exact arithmetic mean of every recorded score
- technique_breakdown averages are exact running means:
      new_avg = (old_avg * old_count + score) / (old_count + 1)
- A session accepts strikes only while active; end() stamps the duration
  and freezes it.

Combo counters (total_strikes, completed_combos, max_combo_streak) come from
the caller's combo policy and are copied verbatim when supplied.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from strike_coach.engine.errors import SessionClosed
from strike_coach.engine.strikes import ScoredStrike, StrikeEvent

logger = logging.getLogger(__name__)


def now_ms() -> float:
    return time.time() * 1000.0


@dataclass(frozen=True)
class TechniqueStats:
    """Aggregate of one technique (e.g. ``left_jab``) within a session."""
    count: int = 0
    average_score: float = 0.0
    best_score: int = 0

    def add(self, score: int) -> "TechniqueStats":
        count = self.count + 1
        return TechniqueStats(
            count=count,
            average_score=(self.average_score * self.count + score) / count,
            best_score=max(self.best_score, score),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "average_score": self.average_score,
            "best_score": self.best_score,
        }


@dataclass(frozen=True)
class ComboStats:
    """Counters maintained by the caller's combo/streak policy."""
    total_strikes: int = 0
    completed_combos: int = 0
    max_combo_streak: int = 0


@dataclass
class SessionStats:
    """Statistics snapshot returned to callers."""
    total_strikes: int
    completed_combos: int
    average_score: float
    max_combo_streak: int
    technique_breakdown: Dict[str, TechniqueStats] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_strikes": self.total_strikes,
            "completed_combos": self.completed_combos,
            "average_score": self.average_score,
            "max_combo_streak": self.max_combo_streak,
            "technique_breakdown": {
                key: stats.to_dict() for key, stats in self.technique_breakdown.items()
            },
        }


@dataclass
class StrikeSession:
    """One training session of one user."""
    user_id: str
    start_time: float  # Epoch milliseconds
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    duration: float = 0.0  # Milliseconds, stamped at end
    total_strikes: int = 0
    completed_combos: int = 0
    average_score: float = 0.0
    max_combo_streak: int = 0
    strikes: List[ScoredStrike] = field(default_factory=list)
    technique_breakdown: Dict[str, TechniqueStats] = field(default_factory=dict)
    ended: bool = False

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.start_time / 1000.0, tz=timezone.utc)

    @property
    def is_active(self) -> bool:
        return not self.ended

    def stats(self) -> SessionStats:
        return SessionStats(
            total_strikes=self.total_strikes,
            completed_combos=self.completed_combos,
            average_score=self.average_score,
            max_combo_streak=self.max_combo_streak,
            technique_breakdown=dict(self.technique_breakdown),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Persisted/transported session shape."""
        data = self.stats().to_dict()
        data.update({
            "user_id": self.user_id,
            "date": self.date.isoformat(),
            "duration": self.duration,
            "strikes": [scored.to_dict() for scored in self.strikes],
        })
        return data


class SessionAggregator:
    """Folds scored strikes into a single StrikeSession."""

    def __init__(
        self,
        user_id: str,
        start_time: Optional[float] = None,
        session_id: Optional[str] = None,
    ):
        self.session = StrikeSession(
            user_id=user_id,
            start_time=now_ms() if start_time is None else start_time,
        )
        if session_id is not None:
            self.session.session_id = session_id

    @property
    def is_active(self) -> bool:
        return self.session.is_active

    def _ensure_active(self):
        if not self.session.is_active:
            raise SessionClosed(self.session.session_id)

    def record_strike(
        self,
        strike: StrikeEvent,
        score: int,
        combo_stats: Optional[ComboStats] = None,
    ) -> StrikeSession:
        """
        Append a scored strike and update the running statistics.

        Without ``combo_stats`` total_strikes follows the number of recorded
        strikes and the combo counters are left unchanged.
        """
        self._ensure_active()
        session = self.session

        session.strikes.append(ScoredStrike(strike=strike, score=score))
        session.average_score = sum(s.score for s in session.strikes) / len(session.strikes)

        key = strike.technique_key
        session.technique_breakdown[key] = session.technique_breakdown.get(
            key, TechniqueStats()
        ).add(score)

        if combo_stats is not None:
            session.total_strikes = combo_stats.total_strikes
            session.completed_combos = combo_stats.completed_combos
            session.max_combo_streak = combo_stats.max_combo_streak
        else:
            session.total_strikes = len(session.strikes)

        logger.debug(
            f"Session {session.session_id}: {key} scored {score}, "
            f"average now {session.average_score:.1f}"
        )
        return session

    def end(self, now: Optional[float] = None) -> SessionStats:
        """Stamp the duration and close the session."""
        self._ensure_active()
        if now is None:
            now = now_ms()
        self.session.duration = now - self.session.start_time
        self.session.ended = True
        logger.info(
            f"Session {self.session.session_id} ended after {self.session.duration:.0f}ms "
            f"with {len(self.session.strikes)} strikes"
        )
        return self.stats()

    def stats(self) -> SessionStats:
        return self.session.stats()
