import pytest

from strike_coach.engine.errors import SessionClosed, StrikeCoachError
from strike_coach.engine.session_aggregator import ComboStats, SessionAggregator
from strike_coach.engine.strikes import Side, StrikeEvent, StrikeForm, StrikeType


def _strike(type=StrikeType.JAB, side=Side.LEFT):
    return StrikeEvent(
        type=type,
        side=side,
        speed=5.0,
        accuracy=0.9,
        power=0.5,
        form=StrikeForm(hip_rotation=45.0, shoulder_alignment=170.0, guard_position=0.8),
    )


def test_technique_breakdown_for_repeated_jabs():
    aggregator = SessionAggregator("user-1", start_time=0.0)
    for score in [80, 90, 70]:
        aggregator.record_strike(_strike(), score)

    stats = aggregator.stats()
    left_jab = stats.technique_breakdown["left_jab"]
    assert left_jab.count == 3
    assert left_jab.average_score == 80.0
    assert left_jab.best_score == 90
    assert stats.total_strikes == 3
    assert stats.average_score == 80.0


def test_average_is_exact_mean_across_techniques():
    aggregator = SessionAggregator("user-1", start_time=0.0)
    aggregator.record_strike(_strike(), 71)
    aggregator.record_strike(_strike(StrikeType.CROSS, Side.RIGHT), 64)
    aggregator.record_strike(_strike(), 99)

    stats = aggregator.stats()
    assert stats.average_score == pytest.approx((71 + 64 + 99) / 3)
    assert set(stats.technique_breakdown) == {"left_jab", "right_cross"}
    assert stats.technique_breakdown["right_cross"].count == 1
    assert stats.technique_breakdown["left_jab"].average_score == pytest.approx(85.0)


def test_combo_counters_copied_from_caller():
    aggregator = SessionAggregator("user-1", start_time=0.0)
    aggregator.record_strike(_strike(), 80, ComboStats(total_strikes=12, completed_combos=3, max_combo_streak=5))

    stats = aggregator.stats()
    assert stats.total_strikes == 12
    assert stats.completed_combos == 3
    assert stats.max_combo_streak == 5


def test_end_stamps_duration():
    aggregator = SessionAggregator("user-1", start_time=1_000.0)
    aggregator.record_strike(_strike(), 75)

    stats = aggregator.end(now=4_000.0)

    assert aggregator.session.duration == 3_000.0
    assert aggregator.session.ended
    assert not aggregator.is_active
    assert stats.average_score == 75.0


def test_ended_session_rejects_mutation():
    aggregator = SessionAggregator("user-1", start_time=0.0, session_id="s-1")
    aggregator.end(now=10.0)

    with pytest.raises(SessionClosed) as exc_info:
        aggregator.record_strike(_strike(), 80)
    assert exc_info.value.session_id == "s-1"
    assert isinstance(exc_info.value, StrikeCoachError)

    with pytest.raises(SessionClosed):
        aggregator.end(now=20.0)
    assert aggregator.session.duration == 10.0
    assert aggregator.session.strikes == []


def test_session_to_dict_shape():
    aggregator = SessionAggregator("user-1", start_time=0.0)
    aggregator.record_strike(_strike(), 80)
    aggregator.end(now=500.0)

    data = aggregator.session.to_dict()

    assert data["user_id"] == "user-1"
    assert data["date"] == "1970-01-01T00:00:00+00:00"
    assert data["duration"] == 500.0
    assert data["technique_breakdown"] == {
        "left_jab": {"count": 1, "average_score": 80.0, "best_score": 80}
    }
    assert data["strikes"][0]["type"] == "jab"
    assert data["strikes"][0]["side"] == "left"
    assert data["strikes"][0]["score"] == 80
    assert data["strikes"][0]["form"]["knee_angle"] is None
