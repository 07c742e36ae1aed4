"""
Per-frame stance, guard and posture feedback.

Posture is judged over a short history so a single noisy frame does not
trigger a correction: the cue fires once 8 of the last 10 frames lean more
than 15 degrees, and the history is cleared afterwards.
"""

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional

import numpy as np
import logging

from strike_coach.engine.pose import Frame, Landmark

logger = logging.getLogger(__name__)


@dataclass
class StanceFeedback:
    """Stance assessment of one frame."""
    accuracy: float  # 0-100
    feedback: str
    improvements: List[str] = field(default_factory=list)


class StanceAnalyzer:
    """Session-scoped stance checker."""

    CONFIDENCE_THRESHOLD = 0.5

    HISTORY_SIZE = 10
    POSTURE_THRESHOLD = 15.0  # Degrees of torso lean
    BAD_POSTURE_FRAMES = 8

    MIN_STANCE_RATIO = 0.8  # Ankle width / hip width
    MAX_STANCE_RATIO = 1.5
    MAX_GUARD_DISTANCE = 0.3  # Wrist-to-nose gap relative to nose-to-hip height

    IMPROVEMENT_PENALTY = 5

    def __init__(self):
        self.posture_history: Deque[float] = deque(maxlen=self.HISTORY_SIZE)

    def _visible(self, frame: Frame, name: str):
        return frame.get_visible(name, self.CONFIDENCE_THRESHOLD)

    def torso_lean(self, frame: Frame) -> Optional[float]:
        """Angle of the hip-to-shoulder midline away from vertical, in degrees."""
        points = [
            self._visible(frame, name) for name in (
                Landmark.LEFT_SHOULDER, Landmark.RIGHT_SHOULDER,
                Landmark.LEFT_HIP, Landmark.RIGHT_HIP,
            )
        ]
        if any(p is None for p in points):
            return None
        ls, rs, lh, rh = points
        dx = (ls.x + rs.x) / 2 - (lh.x + rh.x) / 2
        dy = (ls.y + rs.y) / 2 - (lh.y + rh.y) / 2
        # Upright torso: shoulders straight above hips (dy < 0, dx == 0)
        return abs(math.degrees(math.atan2(dx, -dy)))

    def analyze(self, frame: Frame) -> StanceFeedback:
        improvements = []

        lean = self.torso_lean(frame)
        if lean is not None:
            self.posture_history.append(lean)
            bad_frames = sum(1 for angle in self.posture_history if angle > self.POSTURE_THRESHOLD)
            if bad_frames >= self.BAD_POSTURE_FRAMES:
                improvements.append("Keep your back straight")
                logger.debug(f"Posture cue: {bad_frames} leaning frames, last lean {lean:.1f}deg")
                self.posture_history.clear()

        left_ankle = self._visible(frame, Landmark.LEFT_ANKLE)
        right_ankle = self._visible(frame, Landmark.RIGHT_ANKLE)
        left_hip = self._visible(frame, Landmark.LEFT_HIP)
        right_hip = self._visible(frame, Landmark.RIGHT_HIP)
        if left_ankle and right_ankle and left_hip and right_hip:
            hip_width = abs(left_hip.x - right_hip.x)
            if hip_width > 0:
                stance_ratio = abs(left_ankle.x - right_ankle.x) / hip_width
                if stance_ratio < self.MIN_STANCE_RATIO:
                    improvements.append("Widen your stance for better stability")
                elif stance_ratio > self.MAX_STANCE_RATIO:
                    improvements.append("Narrow your stance slightly for better mobility")

        left_wrist = self._visible(frame, Landmark.LEFT_WRIST)
        right_wrist = self._visible(frame, Landmark.RIGHT_WRIST)
        nose = self._visible(frame, Landmark.NOSE)
        if left_wrist and right_wrist and nose and left_hip:
            torso_height = abs(nose.y - left_hip.y)
            if torso_height > 0:
                guard_height = min(left_wrist.y, right_wrist.y)
                if abs(guard_height - nose.y) / torso_height > self.MAX_GUARD_DISTANCE:
                    improvements.append("Keep your guard up to protect your face")

        visible = [
            kp.confidence for kp in frame.keypoints
            if kp.confidence > self.CONFIDENCE_THRESHOLD
        ]
        avg_confidence = float(np.mean(visible)) if visible else 0.0
        accuracy = avg_confidence * 100 - len(improvements) * self.IMPROVEMENT_PENALTY
        accuracy = max(0.0, min(100.0, accuracy))

        return StanceFeedback(
            accuracy=accuracy,
            feedback=self._feedback(accuracy),
            improvements=improvements,
        )

    @staticmethod
    def _feedback(accuracy: float) -> str:
        if accuracy >= 90:
            return "Excellent form!"
        elif accuracy >= 70:
            return "Good stance, keep it up!"
        elif accuracy >= 50:
            return "Maintain your form and follow the feedback."
        return "Focus on the basics and follow the improvement suggestions."

    def reset(self):
        self.posture_history.clear()
