"""
Per-landmark velocity and direction estimation with exponential smoothing.

Each training session owns one MotionTracker. The tracker keeps the previous
frame, the last MovementState of every landmark it has seen and a short
rolling history used for adaptive confidence thresholds.

SMOOTHING:
    smoothed = 0.7 * previous_smoothed + 0.3 * sample

applied to both the speed and the direction vector. A landmark's first
sighting produces a zero-velocity baseline, so a fast limb needs at least
one more frame before its smoothed velocity rises.

MIRROR CONVENTION:
Browser webcams deliver a mirrored image. With ``mirror_x`` enabled the
horizontal displacement is negated, so a landmark moving towards larger
image x reports direction.x < 0.
"""

import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional, Tuple

import numpy as np
import logging

from strike_coach.config import get_settings
from strike_coach.engine.pose import Frame

logger = logging.getLogger(__name__)

Vector = Tuple[float, float]
ZERO_VECTOR: Vector = (0.0, 0.0)


@dataclass(frozen=True)
class MovementState:
    """Kinematic state of one landmark after the latest frame."""
    velocity: float = 0.0  # Instantaneous speed, units per second
    direction: Vector = ZERO_VECTOR  # Unit displacement vector
    smoothed_velocity: float = 0.0
    smoothed_direction: Vector = ZERO_VECTOR
    last_update: float = 0.0  # Timestamp (ms) of the last frame the landmark was seen
    confidence: float = 0.0

    @property
    def is_moving(self) -> bool:
        return self.smoothed_velocity > 0.0


ZERO_STATE = MovementState()


class MotionTracker:
    """
    Session-scoped landmark motion tracker.

    Features:
    - Mirror-aware displacement between consecutive frames
    - Divide-by-zero safe velocity (elapsed <= 0 gives velocity 0)
    - EMA smoothing of velocity and direction
    - Bounded per-landmark history for dynamic confidence thresholds
    """

    RECENT_SAMPLES = 10  # History samples per landmark used by the dynamic threshold
    DYNAMIC_THRESHOLD_RATIO = 0.7

    def __init__(
        self,
        smoothing_factor: Optional[float] = None,
        confidence_floor: Optional[float] = None,
        history_size: Optional[int] = None,
        velocity_scale: Optional[float] = None,
        mirror_x: Optional[bool] = None,
    ):
        """
        Initialize tracker.

        Args:
            smoothing_factor: Weight of the previous smoothed value (0.7)
            confidence_floor: Landmarks at or below this confidence are not tracked
            history_size: Max samples kept per landmark
            velocity_scale: Multiplier applied to displacement before dividing by time
            mirror_x: Negate horizontal displacement for mirrored capture
        """
        settings = get_settings()
        self.smoothing_factor = (
            settings.smoothing_factor if smoothing_factor is None else smoothing_factor
        )
        self.confidence_floor = (
            settings.tracking_confidence_floor if confidence_floor is None else confidence_floor
        )
        self.history_size = settings.history_size if history_size is None else history_size
        self.velocity_scale = settings.velocity_scale if velocity_scale is None else velocity_scale
        self.mirror_x = settings.mirror_x if mirror_x is None else mirror_x

        self.states: Dict[str, MovementState] = {}
        # Per-landmark history: name -> deque of (timestamp, confidence, smoothed_velocity)
        self.history: Dict[str, Deque[Tuple[float, float, float]]] = {}
        self.previous_frame: Optional[Frame] = None

    def update(
        self,
        frame: Frame,
        previous: Optional[Frame] = None,
        elapsed_ms: Optional[float] = None,
    ) -> Dict[str, MovementState]:
        """
        Fold one frame into the tracked movement states.

        Args:
            frame: Current frame
            previous: Previous frame; defaults to the last frame given to update()
            elapsed_ms: Time since the previous frame; defaults to the timestamp delta

        Returns:
            Mapping of landmark name to MovementState for every landmark seen so far
        """
        if previous is None:
            previous = self.previous_frame
        if elapsed_ms is None:
            elapsed_ms = frame.timestamp - previous.timestamp if previous is not None else 0.0
        elapsed_s = elapsed_ms / 1000.0
        if previous is not None and elapsed_s <= 0:
            logger.debug(f"Non-positive frame interval ({elapsed_ms:.1f}ms), velocities forced to 0")

        names = [kp.name for kp in frame.keypoints]
        names.extend(name for name in self.states if name not in frame)

        for name in names:
            current = frame.get_visible(name, self.confidence_floor)
            state = self.states.get(name)

            if state is None:
                if current is None:
                    continue
                # First sighting: zero-velocity baseline
                self.states[name] = MovementState(
                    last_update=frame.timestamp,
                    confidence=current.confidence,
                )
                self._record(name, frame.timestamp, current.confidence, 0.0)
                continue

            prev_kp = (
                previous.get_visible(name, self.confidence_floor)
                if previous is not None else None
            )
            if current is not None and prev_kp is not None:
                velocity, direction = self._sample(
                    current.x - prev_kp.x, current.y - prev_kp.y, elapsed_s
                )
            else:
                velocity, direction = 0.0, ZERO_VECTOR

            a = self.smoothing_factor
            smoothed_velocity = state.smoothed_velocity * a + velocity * (1 - a)
            smoothed_direction = (
                state.smoothed_direction[0] * a + direction[0] * (1 - a),
                state.smoothed_direction[1] * a + direction[1] * (1 - a),
            )

            if current is not None:
                last_update = frame.timestamp
                confidence = current.confidence
                self._record(name, frame.timestamp, confidence, smoothed_velocity)
            else:
                last_update = state.last_update
                confidence = frame.confidence(name)

            self.states[name] = MovementState(
                velocity=velocity,
                direction=direction,
                smoothed_velocity=smoothed_velocity,
                smoothed_direction=smoothed_direction,
                last_update=last_update,
                confidence=confidence,
            )

        self.previous_frame = frame
        return dict(self.states)

    def _sample(self, dx: float, dy: float, elapsed_s: float) -> Tuple[float, Vector]:
        """Instantaneous velocity and unit direction from one displacement."""
        if self.mirror_x:
            dx = -dx
        distance = math.hypot(dx, dy)
        if distance > 0:
            direction = (dx / distance, dy / distance)
        else:
            direction = ZERO_VECTOR
        if elapsed_s <= 0:
            return 0.0, direction
        return distance * self.velocity_scale / elapsed_s, direction

    def _record(self, name: str, timestamp: float, confidence: float, velocity: float):
        if name not in self.history:
            self.history[name] = deque(maxlen=self.history_size)
        self.history[name].append((timestamp, confidence, velocity))

    def get(self, name: str) -> MovementState:
        """MovementState for a landmark; a zero state when it was never seen."""
        return self.states.get(name, ZERO_STATE)

    def dynamic_confidence_threshold(self, base_threshold: Optional[float] = None) -> float:
        """
        Confidence threshold adapted to recent tracking quality.

        70% of the mean confidence over the last samples of every landmark,
        never lower than ``base_threshold``.
        """
        if base_threshold is None:
            base_threshold = get_settings().dynamic_confidence_base

        recent = [
            sample[1]
            for samples in self.history.values()
            for sample in list(samples)[-self.RECENT_SAMPLES:]
        ]
        if not recent:
            return base_threshold

        return max(base_threshold, float(np.mean(recent)) * self.DYNAMIC_THRESHOLD_RATIO)

    def reset(self):
        """Drop all tracked state."""
        self.states.clear()
        self.history.clear()
        self.previous_frame = None
