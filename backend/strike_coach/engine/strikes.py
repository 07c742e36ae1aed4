"""Strike event value types."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional


class StrikeType(Enum):
    """Recognized martial-arts techniques."""
    JAB = "jab"
    CROSS = "cross"
    HOOK = "hook"
    UPPERCUT = "uppercut"
    ROUNDHOUSE = "roundhouse"
    FRONT_KICK = "front_kick"
    SIDE_KICK = "side_kick"

    @property
    def is_kick(self) -> bool:
        return self in (StrikeType.ROUNDHOUSE, StrikeType.FRONT_KICK, StrikeType.SIDE_KICK)


class Side(Enum):
    """Body side that delivered the strike."""
    LEFT = "left"
    RIGHT = "right"

    @property
    def opposite(self) -> "Side":
        return Side.RIGHT if self is Side.LEFT else Side.LEFT


@dataclass(frozen=True)
class StrikeForm:
    """Biomechanical form measurements taken at detection time (degrees / 0-1)."""
    hip_rotation: float
    shoulder_alignment: float
    guard_position: float
    knee_angle: Optional[float] = None
    hip_angle: Optional[float] = None


@dataclass(frozen=True)
class StrikeEvent:
    """
    A classified discrete strike.

    speed is the smoothed limb velocity / 100, accuracy the landmark
    confidence of the striking limb, power a speed-and-form product that is
    not bounded to [0, 1].
    """
    type: StrikeType
    side: Side
    speed: float
    accuracy: float
    power: float
    form: StrikeForm

    @property
    def technique_key(self) -> str:
        """Breakdown key, e.g. ``left_jab``."""
        return f"{self.side.value}_{self.type.value}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "side": self.side.value,
            "speed": self.speed,
            "accuracy": self.accuracy,
            "power": self.power,
            "form": asdict(self.form),
        }


@dataclass(frozen=True)
class ScoredStrike:
    """A StrikeEvent together with the score it was recorded with."""
    strike: StrikeEvent
    score: int

    def to_dict(self) -> Dict[str, Any]:
        data = self.strike.to_dict()
        data["score"] = self.score
        return data
