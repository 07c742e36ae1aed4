"""
Per-session frame processing pipeline.

PIPELINE STAGES (one synchronous pass per frame):
1. Motion tracking (EMA velocity/direction per landmark)
2. Stance analysis (posture, stance width, guard)
3. Strike classification (cooldown-gated rule list)
4. Scoring + reference matching (only when a strike was detected)
5. Session aggregation

Strikes detected by the client go through the same cooldown as strikes
detected here, on the frame clock of the session.

Each SessionPipeline owns all mutable state of one session, so sessions
never share smoothing history or cooldown timers. Frames for one session
must be processed strictly in order: a frame that arrives while another
pass is running, or whose timestamp is older than the last processed frame,
is dropped.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from strike_coach.config import Settings, get_settings
from strike_coach.engine.errors import SessionClosed, SessionNotFound
from strike_coach.engine.motion_tracker import MotionTracker, MovementState
from strike_coach.engine.pose import Frame
from strike_coach.engine.reference_matcher import (
    TechniqueMatch, match_technique, power_feedback, speed_feedback,
)
from strike_coach.engine.session_aggregator import (
    ComboStats, SessionAggregator, SessionStats, StrikeSession, now_ms,
)
from strike_coach.engine.stance_analyzer import StanceAnalyzer, StanceFeedback
from strike_coach.engine.strike_classifier import StrikeClassifier
from strike_coach.engine.strikes import StrikeEvent
from strike_coach.engine.technique_scorer import StrikeFeedback, analyze_strike, score_strike

logger = logging.getLogger(__name__)


@dataclass
class RecordedStrike:
    """A strike accepted into the session, with its score and coaching."""
    strike: StrikeEvent
    score: int
    technique_match: Optional[TechniqueMatch]
    feedback: StrikeFeedback
    coaching: List[str] = field(default_factory=list)


def assess_strike(strike: StrikeEvent) -> RecordedStrike:
    coaching = [
        cue for cue in (speed_feedback(strike.speed, strike.type), power_feedback(strike.power))
        if cue
    ]
    return RecordedStrike(
        strike=strike,
        score=score_strike(strike),
        technique_match=match_technique(strike),
        feedback=analyze_strike(strike),
        coaching=coaching,
    )


@dataclass
class FrameResult:
    """Outcome of processing one frame."""
    timestamp: float
    movements: Dict[str, MovementState] = field(default_factory=dict)
    stance: Optional[StanceFeedback] = None
    strike: Optional[StrikeEvent] = None
    score: Optional[int] = None
    technique_match: Optional[TechniqueMatch] = None
    feedback: Optional[StrikeFeedback] = None
    coaching: List[str] = field(default_factory=list)
    confidence_threshold: float = 0.0

    @property
    def has_strike(self) -> bool:
        return self.strike is not None


class SessionPipeline:
    """
    Tracker, classifier, stance analyzer and aggregator of one session.

    Usage:
        pipeline = SessionPipeline(user_id="u1")
        for frame in frames:
            result = pipeline.process_frame(frame)
            if result and result.has_strike:
                print(result.strike.technique_key, result.score)
        stats = pipeline.end()
    """

    def __init__(
        self,
        user_id: str,
        start_time: Optional[float] = None,
        session_id: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.aggregator = SessionAggregator(user_id, start_time=start_time, session_id=session_id)
        self.tracker = MotionTracker(
            smoothing_factor=self.settings.smoothing_factor,
            confidence_floor=self.settings.tracking_confidence_floor,
            history_size=self.settings.history_size,
            velocity_scale=self.settings.velocity_scale,
            mirror_x=self.settings.mirror_x,
        )
        self.classifier = StrikeClassifier(settings=self.settings)
        self.stance_analyzer = StanceAnalyzer()

        self._lock = threading.Lock()
        self._last_timestamp: Optional[float] = None
        # Wall clock minus frame clock at the last processed frame
        self._clock_offset = 0.0
        self.frames_processed = 0
        self.strikes_rejected = 0
        self.frames_dropped = 0

    @property
    def session(self) -> StrikeSession:
        return self.aggregator.session

    @property
    def session_id(self) -> str:
        return self.aggregator.session.session_id

    def process_frame(self, frame: Frame, elapsed_ms: Optional[float] = None) -> Optional[FrameResult]:
        """
        Run one frame through the pipeline.

        Returns:
            FrameResult, or None when the frame was dropped
        """
        if not self._lock.acquire(blocking=False):
            self.frames_dropped += 1
            logger.debug(f"Session {self.session_id}: frame {frame.timestamp:.0f}ms dropped, pass in flight")
            return None

        try:
            if not self.aggregator.is_active:
                raise SessionClosed(self.session_id)

            if self._last_timestamp is not None and frame.timestamp < self._last_timestamp:
                self.frames_dropped += 1
                logger.debug(
                    f"Session {self.session_id}: out-of-order frame {frame.timestamp:.0f}ms "
                    f"< {self._last_timestamp:.0f}ms dropped"
                )
                return None

            result = self._run(frame, elapsed_ms)
            self._last_timestamp = frame.timestamp
            self._clock_offset = now_ms() - frame.timestamp
            self.frames_processed += 1
            return result
        finally:
            self._lock.release()

    def _run(self, frame: Frame, elapsed_ms: Optional[float]) -> FrameResult:
        movements = self.tracker.update(frame, elapsed_ms=elapsed_ms)
        result = FrameResult(
            timestamp=frame.timestamp,
            movements=movements,
            stance=self.stance_analyzer.analyze(frame),
            confidence_threshold=self.tracker.dynamic_confidence_threshold(
                self.settings.dynamic_confidence_base
            ),
        )

        strike = self.classifier.classify(frame, movements)
        if strike is None:
            return result

        recorded = assess_strike(strike)
        result.strike = strike
        result.score = recorded.score
        result.technique_match = recorded.technique_match
        result.feedback = recorded.feedback
        result.coaching = recorded.coaching
        self.aggregator.record_strike(strike, recorded.score)
        return result

    def session_clock(self) -> float:
        """Current time on the frame clock, estimated from the wall clock."""
        return now_ms() - self._clock_offset

    def record_strike(
        self,
        strike: StrikeEvent,
        combo_stats: Optional[ComboStats] = None,
        now: Optional[float] = None,
    ) -> Optional[RecordedStrike]:
        """
        Score and record a strike detected by the caller.

        Args:
            strike: Strike event detected by the caller
            combo_stats: Combo counters kept by the caller, if any
            now: Strike time on the frame clock; defaults to ``session_clock()``

        Returns:
            RecordedStrike, or None when the strike fell inside the cooldown
            window of the previous strike and was rejected
        """
        with self._lock:
            if not self.aggregator.is_active:
                raise SessionClosed(self.session_id)

            if now is None:
                now = self.session_clock()
            if self.classifier.in_cooldown(now):
                self.strikes_rejected += 1
                logger.debug(
                    f"Session {self.session_id}: {strike.technique_key} at {now:.0f}ms "
                    f"rejected, cooldown"
                )
                return None

            self.classifier.last_emission_timestamp = now
            recorded = assess_strike(strike)
            self.aggregator.record_strike(strike, recorded.score, combo_stats)
            return recorded

    def stats(self) -> SessionStats:
        return self.aggregator.stats()

    def end(self, now: Optional[float] = None) -> SessionStats:
        with self._lock:
            return self.aggregator.end(now)


class SessionRegistry:
    """
    Thread-safe map of live sessions.

    Sessions are independent; the registry lock only guards the id map.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._sessions: Dict[str, SessionPipeline] = {}
        self._lock = threading.Lock()

    def start(self, user_id: str, now: Optional[float] = None) -> SessionPipeline:
        pipeline = SessionPipeline(
            user_id,
            start_time=now_ms() if now is None else now,
            settings=self.settings,
        )
        with self._lock:
            self._sessions[pipeline.session_id] = pipeline
        logger.info(f"Started session {pipeline.session_id} for user {user_id}")
        return pipeline

    def get(self, session_id: str) -> SessionPipeline:
        with self._lock:
            pipeline = self._sessions.get(session_id)
        if pipeline is None:
            raise SessionNotFound(session_id)
        return pipeline

    def finish(self, session_id: str, now: Optional[float] = None) -> StrikeSession:
        """
        Finalize a session but keep it registered.

        A session that is already finalized is returned as is, so a caller
        whose persistence step failed can finish it again and retry.
        """
        pipeline = self.get(session_id)
        if pipeline.session.is_active:
            pipeline.end(now)
        return pipeline.session

    def remove(self, session_id: str):
        with self._lock:
            self._sessions.pop(session_id, None)

    def end(self, session_id: str, now: Optional[float] = None) -> StrikeSession:
        """Finalize a session and remove it from the registry."""
        session = self.finish(session_id, now)
        self.remove(session_id)
        return session

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
