"""
Checklist comparison of a strike against canonical technique profiles.

Each TechniqueReference is static configuration: the side the technique is
thrown with, expected parameters, and an ordered list of named FormChecks
with remediation text. Matching is generic: run every check in declaration
order, score the pass ratio, and collect feedback for the failures.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from strike_coach.config import get_settings
from strike_coach.engine.strikes import Side, StrikeEvent, StrikeType

CheckParams = Dict[str, Optional[float]]

FALLBACK_IMPROVEMENT = "Unrecognized technique or incorrect side"
FALLBACK_FEEDBACK = "Please practice the basic techniques as demonstrated"


@dataclass(frozen=True)
class FormCheck:
    """A named boolean predicate over strike parameters."""
    name: str
    check: Callable[[CheckParams], bool]
    feedback: str

    def passes(self, params: CheckParams) -> bool:
        return bool(self.check(params))


@dataclass(frozen=True)
class TechniqueReference:
    """Canonical profile of one technique."""
    type: StrikeType
    side: Side
    expected_parameters: Dict[str, float]
    form_checks: List[FormCheck]

    @property
    def minimum_speed(self) -> float:
        return self.expected_parameters["minimum_speed"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "side": self.side.value,
            "expected_parameters": dict(self.expected_parameters),
            "form_checks": [
                {"name": check.name, "feedback": check.feedback}
                for check in self.form_checks
            ],
        }


@dataclass
class TechniqueMatch:
    """Result of matching a strike against its reference."""
    is_correct: bool
    score: float
    improvements: List[str] = field(default_factory=list)
    overall_feedback: str = ""


def _at_least(key: str, bound: float) -> Callable[[CheckParams], bool]:
    def check(params: CheckParams) -> bool:
        value = params.get(key)
        return value is not None and value >= bound
    return check


def _at_most(key: str, bound: float) -> Callable[[CheckParams], bool]:
    def check(params: CheckParams) -> bool:
        value = params.get(key)
        return value is not None and value <= bound
    return check


def _within(key: str, target: float, tolerance: float) -> Callable[[CheckParams], bool]:
    def check(params: CheckParams) -> bool:
        value = params.get(key)
        return value is not None and abs(value - target) <= tolerance
    return check


TECHNIQUE_REFERENCES: Dict[StrikeType, TechniqueReference] = {
    StrikeType.JAB: TechniqueReference(
        type=StrikeType.JAB,
        side=Side.LEFT,
        expected_parameters={
            "extension_angle": 170,  # Almost fully extended
            "hip_rotation": 0,  # Minimal hip rotation
            "shoulder_alignment": 180,  # Shoulders square
            "guard_position": 0.8,
            "minimum_speed": 5,
        },
        form_checks=[
            FormCheck("arm_extension", _at_least("extension_angle", 170),
                      "Extend your arm fully for a proper jab"),
            FormCheck("shoulder_alignment", _within("shoulder_alignment", 180, 15),
                      "Keep your shoulders square when jabbing"),
            FormCheck("guard_position", _at_least("guard_position", 0.8),
                      "Maintain your guard hand position while jabbing"),
            FormCheck("speed", _at_least("speed", 5),
                      "Increase your jab speed for better effectiveness"),
        ],
    ),
    StrikeType.CROSS: TechniqueReference(
        type=StrikeType.CROSS,
        side=Side.RIGHT,
        expected_parameters={
            "extension_angle": 170,
            "hip_rotation": 45,  # Significant hip rotation
            "shoulder_alignment": 135,  # Shoulders rotated
            "guard_position": 0.8,
            "minimum_speed": 6,
        },
        form_checks=[
            FormCheck("arm_extension", _at_least("extension_angle", 170),
                      "Extend your arm fully for maximum reach"),
            FormCheck("hip_rotation", _at_least("hip_rotation", 45),
                      "Rotate your hips more to generate power"),
            FormCheck("shoulder_alignment", _at_most("shoulder_alignment", 150),
                      "Rotate your shoulders more with the cross"),
            FormCheck("guard_position", _at_least("guard_position", 0.8),
                      "Keep your guard up while throwing the cross"),
            FormCheck("speed", _at_least("speed", 6),
                      "Increase your cross speed for more power"),
        ],
    ),
    StrikeType.ROUNDHOUSE: TechniqueReference(
        type=StrikeType.ROUNDHOUSE,
        side=Side.RIGHT,
        expected_parameters={
            "knee_angle": 45,  # Knee chambered
            "hip_angle": 90,  # Hip fully opened
            "hip_rotation": 90,
            "shoulder_alignment": 135,
            "guard_position": 0.7,
            "minimum_speed": 7,
        },
        form_checks=[
            FormCheck("knee_chambering", _at_most("knee_angle", 60),
                      "Chamber your knee more before kicking"),
            FormCheck("hip_opening", _at_least("hip_angle", 80),
                      "Open your hip more for better kick height"),
            FormCheck("hip_rotation", _at_least("hip_rotation", 80),
                      "Rotate your hips fully through the kick"),
            FormCheck("guard_position", _at_least("guard_position", 0.7),
                      "Keep your guard up during the kick"),
            FormCheck("speed", _at_least("speed", 7),
                      "Increase your kicking speed for more power"),
        ],
    ),
}


def get_reference(technique: StrikeType) -> Optional[TechniqueReference]:
    return TECHNIQUE_REFERENCES.get(technique)


def check_params(strike: StrikeEvent) -> CheckParams:
    """
    Flatten a strike into checklist parameters.

    StrikeEvent carries no separate extension angle, so the arm extension
    check reads the shoulder alignment angle.
    """
    is_kick = strike.type.is_kick
    return {
        "extension_angle": strike.form.shoulder_alignment,
        "hip_rotation": strike.form.hip_rotation,
        "shoulder_alignment": strike.form.shoulder_alignment,
        "guard_position": strike.form.guard_position,
        "speed": strike.speed,
        "power": strike.power,
        "knee_angle": strike.form.knee_angle if is_kick else None,
        "hip_angle": strike.form.hip_angle if is_kick else None,
    }


def overall_feedback(score: float) -> str:
    if score >= 90:
        return "Excellent form! Keep practicing to maintain this level."
    elif score >= 70:
        return "Good technique, but there's room for improvement."
    elif score >= 50:
        return "Basic form achieved. Focus on the suggested improvements."
    return "Review the basic technique. Pay attention to the fundamentals."


def match_technique(
    strike: StrikeEvent,
    references: Optional[Dict[StrikeType, TechniqueReference]] = None,
    pass_score: Optional[float] = None,
) -> TechniqueMatch:
    """
    Compare a strike with its reference checklist.

    Unknown techniques and strikes thrown with the other side get a
    zero-score result instead of an error.
    """
    if references is None:
        references = TECHNIQUE_REFERENCES
    if pass_score is None:
        pass_score = get_settings().reference_pass_score

    reference = references.get(strike.type)
    if reference is None or reference.side != strike.side:
        return TechniqueMatch(
            is_correct=False,
            score=0,
            improvements=[FALLBACK_IMPROVEMENT],
            overall_feedback=FALLBACK_FEEDBACK,
        )

    params = check_params(strike)
    improvements = []
    passed = 0
    for form_check in reference.form_checks:
        if form_check.passes(params):
            passed += 1
        else:
            improvements.append(form_check.feedback)

    score = passed / len(reference.form_checks) * 100
    return TechniqueMatch(
        is_correct=score >= pass_score,
        score=score,
        improvements=improvements,
        overall_feedback=overall_feedback(score),
    )


def speed_feedback(speed: float, technique: StrikeType) -> str:
    """Speed cue relative to the technique's minimum speed."""
    reference = get_reference(technique)
    if reference is None:
        return ""

    minimum = reference.minimum_speed
    if speed >= minimum * 1.2:
        return "Excellent speed!"
    elif speed >= minimum:
        return "Good speed, maintain this pace."
    elif speed >= minimum * 0.8:
        return "Increase your speed slightly."
    return "Focus on generating more speed."


def power_feedback(power: float) -> str:
    if power >= 0.9:
        return "Powerful technique!"
    elif power >= 0.7:
        return "Good power generation."
    elif power >= 0.5:
        return "Focus on hip rotation and body mechanics for more power."
    return "Work on proper form to generate more power."
