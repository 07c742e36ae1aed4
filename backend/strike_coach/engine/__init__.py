"""
Strike engine: landmark frames in, scored strike events and session stats out.

PIPELINE COMPONENTS:
1. MotionTracker: Per-landmark EMA velocity/direction with mirror convention
2. StanceAnalyzer: Posture, stance width and guard feedback
3. StrikeClassifier: Cooldown-gated, ordered StrikeRule list (jab, cross, roundhouse)
4. score_strike / analyze_strike: Weighted 30/40/30 strike score and feedback
5. match_technique: Checklist comparison against TechniqueReference profiles
6. SessionAggregator: Exact running means per session and per technique
7. SessionPipeline / SessionRegistry: Per-session ownership of all of the above

Usage:
    from strike_coach.engine import SessionRegistry, Frame, Keypoint

    registry = SessionRegistry()
    pipeline = registry.start("user-1")
    result = pipeline.process_frame(Frame(timestamp=0.0, keypoints=[...]))
    if result and result.has_strike:
        print(result.strike.technique_key, result.score)
    session = registry.end(pipeline.session_id)
"""

from strike_coach.engine.errors import StrikeCoachError, SessionNotFound, SessionClosed
from strike_coach.engine.pose import Keypoint, Frame, Landmark, joint_angle
from strike_coach.engine.motion_tracker import MotionTracker, MovementState, ZERO_STATE
from strike_coach.engine.strikes import (
    StrikeType, Side, StrikeForm, StrikeEvent, ScoredStrike,
)
from strike_coach.engine.strike_classifier import (
    StrikeClassifier,
    StrikeContext,
    StrikeRule,
    JabRule,
    CrossRule,
    RoundhouseRule,
    default_rules,
)
from strike_coach.engine.technique_scorer import score_strike, analyze_strike, StrikeFeedback
from strike_coach.engine.reference_matcher import (
    FormCheck,
    TechniqueReference,
    TechniqueMatch,
    TECHNIQUE_REFERENCES,
    get_reference,
    match_technique,
    speed_feedback,
    power_feedback,
)
from strike_coach.engine.session_aggregator import (
    SessionAggregator, StrikeSession, SessionStats, TechniqueStats, ComboStats,
)
from strike_coach.engine.stance_analyzer import StanceAnalyzer, StanceFeedback
from strike_coach.engine.session_pipeline import (
    SessionPipeline, SessionRegistry, FrameResult, RecordedStrike, assess_strike,
)

__all__ = [
    # Errors
    "StrikeCoachError",
    "SessionNotFound",
    "SessionClosed",

    # Pose input
    "Keypoint",
    "Frame",
    "Landmark",
    "joint_angle",

    # Motion tracking
    "MotionTracker",
    "MovementState",
    "ZERO_STATE",

    # Strike events
    "StrikeType",
    "Side",
    "StrikeForm",
    "StrikeEvent",
    "ScoredStrike",

    # Classification
    "StrikeClassifier",
    "StrikeContext",
    "StrikeRule",
    "JabRule",
    "CrossRule",
    "RoundhouseRule",
    "default_rules",

    # Scoring
    "score_strike",
    "analyze_strike",
    "StrikeFeedback",

    # Reference matching
    "FormCheck",
    "TechniqueReference",
    "TechniqueMatch",
    "TECHNIQUE_REFERENCES",
    "get_reference",
    "match_technique",
    "speed_feedback",
    "power_feedback",

    # Aggregation
    "SessionAggregator",
    "StrikeSession",
    "SessionStats",
    "TechniqueStats",
    "ComboStats",

    # Stance
    "StanceAnalyzer",
    "StanceFeedback",

    # Per-session pipeline
    "SessionPipeline",
    "SessionRegistry",
    "FrameResult",
    "RecordedStrike",
    "assess_strike",
]
