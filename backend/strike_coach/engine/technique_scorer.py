"""
Weighted quality score for a classified strike.

    score = speed (30%) + power (40%) + form (30%)

The power term is NOT clamped: power is a speed-and-form product and fast
strikes push it above 1.0, which in turn pushes the score past 100. This is
kept as-is.
"""

import math
from dataclasses import dataclass, field
from typing import List

from strike_coach.engine.strikes import StrikeEvent

SPEED_WEIGHT = 30
POWER_WEIGHT = 40
FORM_WEIGHT = 30

REFERENCE_MAX_SPEED = 10.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def form_components(strike: StrikeEvent) -> List[float]:
    """Normalized form terms averaged into the form score."""
    components = [
        strike.form.hip_rotation / 90,
        strike.form.shoulder_alignment / 180,
        strike.form.guard_position,
        strike.accuracy,
    ]
    if strike.type.is_kick:
        components.append((strike.form.knee_angle or 0) / 90)
        components.append((strike.form.hip_angle or 0) / 90)
    return components


def score_strike(strike: StrikeEvent) -> int:
    """Score a strike. Pure and deterministic."""
    speed_term = min(strike.speed / REFERENCE_MAX_SPEED, 1) * SPEED_WEIGHT
    power_term = strike.power * POWER_WEIGHT
    components = form_components(strike)
    form_term = (sum(components) / len(components)) * FORM_WEIGHT
    return round_half_up(speed_term + power_term + form_term)


@dataclass
class StrikeFeedback:
    """Coaching breakdown of a single strike."""
    score: int
    power: float  # Percent
    speed: float  # Percent of reference max speed
    accuracy: float  # Percent
    form_score: int
    feedback: str
    improvements: List[str] = field(default_factory=list)


# (predicate, penalty, message) applied in order
_FORM_PENALTIES = [
    (lambda s: s.form.hip_rotation < 30, 15, "Rotate your hips more for better power generation"),
    (lambda s: s.form.shoulder_alignment < 160, 10, "Keep your shoulders aligned during the strike"),
    (lambda s: s.form.guard_position < 0.7, 15, "Maintain your guard while striking"),
]

_KICK_PENALTIES = [
    (lambda s: bool(s.form.knee_angle) and s.form.knee_angle < 45, 10,
     "Chamber your knee more before kicking"),
    (lambda s: bool(s.form.hip_angle) and s.form.hip_angle < 60, 10,
     "Open your hip more for better kick height"),
]

_FEEDBACK_BANDS = [
    (90, "Excellent technique! Perfect balance of speed, power, and form."),
    (80, "Very good strike! Minor adjustments needed for perfection."),
    (70, "Good strike with room for improvement."),
    (60, "Decent technique, but needs work on fundamentals."),
]
_FEEDBACK_FLOOR = "Focus on proper form before increasing speed and power."


def analyze_strike(strike: StrikeEvent) -> StrikeFeedback:
    """
    Deduction-based feedback for a strike.

    Form starts at 100 and loses points for each failed form cue; the
    overall score blends normalized speed, power and this form score with
    the same 30/40/30 weights as ``score_strike``.
    """
    penalties = list(_FORM_PENALTIES)
    if strike.type.is_kick:
        penalties.extend(_KICK_PENALTIES)

    improvements = []
    form_score = 100
    for failed, penalty, message in penalties:
        if failed(strike):
            improvements.append(message)
            form_score -= penalty

    normalized_speed = min(strike.speed / REFERENCE_MAX_SPEED, 1) * 100
    normalized_power = strike.power * 100
    normalized_accuracy = strike.accuracy * 100

    score = round_half_up(
        normalized_speed * SPEED_WEIGHT / 100
        + normalized_power * POWER_WEIGHT / 100
        + form_score * FORM_WEIGHT / 100
    )

    feedback = _FEEDBACK_FLOOR
    for threshold, message in _FEEDBACK_BANDS:
        if score >= threshold:
            feedback = message
            break

    return StrikeFeedback(
        score=score,
        power=normalized_power,
        speed=normalized_speed,
        accuracy=normalized_accuracy,
        form_score=form_score,
        feedback=feedback,
        improvements=improvements,
    )
