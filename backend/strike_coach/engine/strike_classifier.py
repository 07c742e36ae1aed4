"""
Cooldown-gated strike recognition from keypoints + motion state.

This module turns one frame into at most one StrikeEvent.

DETECTION ORDER (first match wins):
1. JAB: lead (left) arm, extended and moving horizontally forward
2. CROSS: rear (right) arm, extended, with hip twist
3. ROUNDHOUSE (left, then right): chambered knee, opened hip, ankle above hip

Each technique is a StrikeRule with an independent ``matches`` predicate and
``build`` step, evaluated in declared precedence. The classifier owns the
only mutable state: the timestamp of the last emitted strike, which enforces
a global cooldown so a single punch spanning several frames is counted once.

Angles come from ``joint_angle`` and are intentionally not folded into
[0, 180]; thresholds are compared against the raw value.
"""

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional
import logging

from strike_coach.config import Settings, get_settings
from strike_coach.engine.motion_tracker import MovementState, ZERO_STATE
from strike_coach.engine.pose import Frame, Keypoint, Landmark, joint_angle
from strike_coach.engine.strikes import Side, StrikeEvent, StrikeForm, StrikeType

logger = logging.getLogger(__name__)


@dataclass
class StrikeContext:
    """Everything a rule may look at for one frame."""
    frame: Frame
    movements: Mapping[str, MovementState]
    settings: Settings

    def visible(self, name: str, threshold: float) -> Optional[Keypoint]:
        return self.frame.get_visible(name, threshold)

    def movement(self, name: str) -> MovementState:
        return self.movements.get(name, ZERO_STATE)

    def core_ready(self) -> bool:
        """Both shoulders and both hips are confidently detected."""
        threshold = self.settings.core_confidence_threshold
        return all(self.visible(name, threshold) is not None for name in Landmark.CORE)

    def _angle(self, first: str, vertex: str, last: str) -> float:
        p1, p2, p3 = self.frame.get(first), self.frame.get(vertex), self.frame.get(last)
        if p1 is None or p2 is None or p3 is None:
            return 0.0
        return joint_angle(p1, p2, p3)

    @property
    def hip_rotation(self) -> float:
        return self._angle(Landmark.LEFT_HIP, Landmark.RIGHT_HIP, Landmark.RIGHT_SHOULDER)

    @property
    def shoulder_alignment(self) -> float:
        return self._angle(Landmark.LEFT_SHOULDER, Landmark.RIGHT_SHOULDER, Landmark.RIGHT_HIP)

    @property
    def guard_score(self) -> float:
        """Weaker of the two wrist confidences."""
        return min(
            self.frame.confidence(Landmark.LEFT_WRIST),
            self.frame.confidence(Landmark.RIGHT_WRIST),
        )


class StrikeRule:
    """Base class for a single technique detector."""

    name: str = "base_rule"

    # Direction gates on the unit displacement vector
    HORIZONTAL_DIRECTION = 0.8
    MAX_VERTICAL_DIRECTION = 0.3

    def matches(self, ctx: StrikeContext) -> bool:
        """Whether the frame shows this technique."""
        raise NotImplementedError

    def build(self, ctx: StrikeContext) -> StrikeEvent:
        """Measure the strike. Only valid after ``matches`` returned True."""
        raise NotImplementedError

    def evaluate(self, ctx: StrikeContext) -> Optional[StrikeEvent]:
        if not self.matches(ctx):
            return None
        return self.build(ctx)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.name})>"


class _PunchRule(StrikeRule):
    """Shared geometry for straight punches."""

    side: Side = Side.LEFT

    def _arm(self, ctx: StrikeContext):
        threshold = ctx.settings.arm_confidence_threshold
        wrist = ctx.visible(Landmark.for_side(self.side.value, "wrist"), threshold)
        elbow = ctx.visible(Landmark.for_side(self.side.value, "elbow"), threshold)
        shoulder = ctx.frame.get(Landmark.for_side(self.side.value, "shoulder"))
        if wrist is None or elbow is None or shoulder is None:
            return None
        return wrist, elbow, shoulder

    def _extension_angle(self, ctx: StrikeContext) -> Optional[float]:
        arm = self._arm(ctx)
        if arm is None:
            return None
        return joint_angle(*arm)

    def _arm_gates(self, ctx: StrikeContext, velocity_threshold: float) -> bool:
        """Extension, speed, height and guard gates common to jab and cross."""
        arm = self._arm(ctx)
        if arm is None:
            return False
        wrist, _, shoulder = arm
        motion = ctx.movement(wrist.name)
        s = ctx.settings
        return (
            self._extension_angle(ctx) > s.min_extension_angle
            and motion.smoothed_velocity > velocity_threshold
            and self._direction_ok(motion)
            and abs(motion.direction[1]) < self.MAX_VERTICAL_DIRECTION
            and wrist.y < shoulder.y
            and ctx.guard_score > s.min_guard_score
        )

    def _direction_ok(self, motion: MovementState) -> bool:
        raise NotImplementedError

    def _form(self, ctx: StrikeContext) -> StrikeForm:
        return StrikeForm(
            hip_rotation=ctx.hip_rotation,
            shoulder_alignment=ctx.shoulder_alignment,
            guard_position=ctx.guard_score,
        )


class JabRule(_PunchRule):
    """Lead-hand straight punch."""

    name = "jab"
    side = Side.LEFT

    def _direction_ok(self, motion: MovementState) -> bool:
        return motion.direction[0] < -self.HORIZONTAL_DIRECTION

    def matches(self, ctx: StrikeContext) -> bool:
        return self._arm_gates(ctx, ctx.settings.jab_velocity_threshold)

    def build(self, ctx: StrikeContext) -> StrikeEvent:
        wrist, _, _ = self._arm(ctx)
        extension = self._extension_angle(ctx)
        speed = ctx.movement(wrist.name).smoothed_velocity / 100
        return StrikeEvent(
            type=StrikeType.JAB,
            side=self.side,
            speed=speed,
            accuracy=wrist.confidence,
            power=speed * (extension / 180),
            form=self._form(ctx),
        )


class CrossRule(_PunchRule):
    """Rear-hand straight punch driven by hip rotation."""

    name = "cross"
    side = Side.RIGHT

    def _direction_ok(self, motion: MovementState) -> bool:
        return motion.direction[0] > self.HORIZONTAL_DIRECTION

    def matches(self, ctx: StrikeContext) -> bool:
        if not self._arm_gates(ctx, ctx.settings.cross_velocity_threshold):
            return False
        # Hip twist is the same landmark triple as hip rotation
        return ctx.hip_rotation > ctx.settings.min_hip_twist

    def build(self, ctx: StrikeContext) -> StrikeEvent:
        wrist, _, _ = self._arm(ctx)
        extension = self._extension_angle(ctx)
        hip_twist = ctx.hip_rotation
        speed = ctx.movement(wrist.name).smoothed_velocity / 100
        return StrikeEvent(
            type=StrikeType.CROSS,
            side=self.side,
            speed=speed,
            accuracy=wrist.confidence,
            power=speed * (hip_twist / 90) * (extension / 180),
            form=self._form(ctx),
        )


class RoundhouseRule(StrikeRule):
    """
    Circular kick from a chambered knee.

    The knee angle gate is the discriminator against a static stance: a
    straight standing leg reads ~180 degrees, a chambered one well below 140.
    """

    def __init__(self, side: Side):
        self.side = side
        self.name = f"roundhouse_{side.value}"

    def _leg(self, ctx: StrikeContext):
        threshold = ctx.settings.leg_confidence_threshold
        ankle = ctx.visible(Landmark.for_side(self.side.value, "ankle"), threshold)
        knee = ctx.visible(Landmark.for_side(self.side.value, "knee"), threshold)
        hip = ctx.visible(Landmark.for_side(self.side.value, "hip"), threshold)
        opposite_hip = ctx.frame.get(Landmark.for_side(self.side.opposite.value, "hip"))
        if ankle is None or knee is None or hip is None or opposite_hip is None:
            return None
        return ankle, knee, hip, opposite_hip

    def angles(self, ctx: StrikeContext):
        """(knee_angle, hip_angle) or None when the leg is not visible."""
        leg = self._leg(ctx)
        if leg is None:
            return None
        ankle, knee, hip, opposite_hip = leg
        return joint_angle(ankle, knee, hip), joint_angle(knee, hip, opposite_hip)

    def matches(self, ctx: StrikeContext) -> bool:
        leg = self._leg(ctx)
        if leg is None:
            return False
        ankle, _, hip, _ = leg
        knee_angle, hip_angle = self.angles(ctx)
        motion = ctx.movement(ankle.name)
        s = ctx.settings
        return (
            ankle.y < hip.y
            and knee_angle < s.max_roundhouse_knee_angle
            and hip_angle > s.min_roundhouse_hip_angle
            and motion.smoothed_velocity > s.roundhouse_velocity_threshold
            and abs(motion.direction[0]) > self.HORIZONTAL_DIRECTION
            and ctx.guard_score > s.min_guard_score
        )

    def build(self, ctx: StrikeContext) -> StrikeEvent:
        ankle, knee, _, _ = self._leg(ctx)
        knee_angle, hip_angle = self.angles(ctx)
        speed = ctx.movement(ankle.name).smoothed_velocity / 100
        return StrikeEvent(
            type=StrikeType.ROUNDHOUSE,
            side=self.side,
            speed=speed,
            accuracy=min(ankle.confidence, knee.confidence),
            power=speed * (hip_angle / 90),
            form=StrikeForm(
                hip_rotation=ctx.hip_rotation,
                shoulder_alignment=ctx.shoulder_alignment,
                guard_position=ctx.guard_score,
                knee_angle=knee_angle,
                hip_angle=hip_angle,
            ),
        )


def default_rules() -> List[StrikeRule]:
    """Detection precedence used by every session."""
    return [
        JabRule(),
        CrossRule(),
        RoundhouseRule(Side.LEFT),
        RoundhouseRule(Side.RIGHT),
    ]


class StrikeClassifier:
    """
    Session-scoped strike classifier.

    Usage:
        classifier = StrikeClassifier()
        for frame in frames:
            movements = tracker.update(frame)
            strike = classifier.classify(frame, movements)
    """

    def __init__(
        self,
        rules: Optional[Iterable[StrikeRule]] = None,
        cooldown_ms: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.rules: List[StrikeRule] = list(rules) if rules is not None else default_rules()
        self.cooldown_ms = self.settings.strike_cooldown_ms if cooldown_ms is None else cooldown_ms
        self.last_emission_timestamp: Optional[float] = None

    def in_cooldown(self, now: float) -> bool:
        if self.last_emission_timestamp is None:
            return False
        return now - self.last_emission_timestamp < self.cooldown_ms

    def classify(
        self,
        frame: Frame,
        movements: Mapping[str, MovementState],
        now: Optional[float] = None,
    ) -> Optional[StrikeEvent]:
        """
        Classify one frame.

        Args:
            frame: Current keypoints
            movements: MotionTracker output for the same frame
            now: Clock in ms; defaults to the frame timestamp

        Returns:
            The detected StrikeEvent, or None
        """
        if now is None:
            now = frame.timestamp

        if self.in_cooldown(now):
            return None

        ctx = StrikeContext(frame=frame, movements=movements, settings=self.settings)
        if not ctx.core_ready():
            logger.debug(f"Insufficient pose quality at {frame.timestamp:.0f}ms, skipping classification")
            return None

        for rule in self.rules:
            strike = rule.evaluate(ctx)
            if strike is not None:
                self.last_emission_timestamp = now
                logger.info(
                    f"Strike detected: {strike.technique_key} "
                    f"(speed={strike.speed:.2f}, power={strike.power:.2f})"
                )
                return strike

        return None

    def reset(self):
        self.last_emission_timestamp = None
