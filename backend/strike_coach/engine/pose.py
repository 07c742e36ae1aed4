"""
Pose data structures consumed from the external pose-estimation model.

Landmarks are addressed by name (BlazePose / MoveNet naming, e.g.
"left_wrist"). Coordinates are in whatever unit the capture device reports
(pixels for the browser client); y grows downwards, so "above" means a
smaller y.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np


class Landmark:
    """Landmark names used by the strike engine."""
    NOSE = "nose"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"

    # Torso landmarks that must be reliable before any strike is classified
    CORE = (LEFT_SHOULDER, RIGHT_SHOULDER, LEFT_HIP, RIGHT_HIP)

    @classmethod
    def for_side(cls, side: str, joint: str) -> str:
        """Build a landmark name such as ``left_wrist`` from side + joint."""
        return f"{side}_{joint}"


@dataclass
class Keypoint:
    """Single named landmark with position and confidence."""
    name: str
    x: float
    y: float
    confidence: float
    z: Optional[float] = None

    def is_visible(self, threshold: float) -> bool:
        return self.confidence > threshold


@dataclass
class Frame:
    """One timestamped set of keypoints (timestamp in milliseconds)."""
    timestamp: float
    keypoints: List[Keypoint] = field(default_factory=list)

    def __post_init__(self):
        self._by_name: Dict[str, Keypoint] = {kp.name: kp for kp in self.keypoints}

    def get(self, name: str) -> Optional[Keypoint]:
        return self._by_name.get(name)

    def get_visible(self, name: str, threshold: float) -> Optional[Keypoint]:
        """Return the keypoint only when its confidence exceeds ``threshold``."""
        kp = self._by_name.get(name)
        if kp is None or not kp.is_visible(threshold):
            return None
        return kp

    def confidence(self, name: str) -> float:
        """Confidence of a landmark, 0.0 when it is missing."""
        kp = self._by_name.get(name)
        return kp.confidence if kp is not None else 0.0

    def __contains__(self, name: str) -> bool:
        return name in self._by_name


def joint_angle(p1: Keypoint, p2: Keypoint, p3: Keypoint) -> float:
    """
    Angle at ``p2`` formed by p1-p2-p3, in degrees.

    Computed as the absolute difference of the two segment headings. The
    result is NOT folded into [0, 180]: configurations where the headings
    straddle the atan2 branch cut report reflex values up to 360.
    """
    heading_3 = np.arctan2(p3.y - p2.y, p3.x - p2.x)
    heading_1 = np.arctan2(p1.y - p2.y, p1.x - p2.x)
    return float(abs(np.degrees(heading_3 - heading_1)))
