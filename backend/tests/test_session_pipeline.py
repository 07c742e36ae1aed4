import pytest

from strike_coach.engine.errors import SessionClosed, SessionNotFound
from strike_coach.engine.session_aggregator import ComboStats
from strike_coach.engine.session_pipeline import SessionPipeline, SessionRegistry
from strike_coach.engine.strikes import Side, StrikeEvent, StrikeForm, StrikeType
from strike_coach.engine.reference_matcher import power_feedback, speed_feedback
from strike_coach.engine.technique_scorer import analyze_strike, score_strike

from poses import jab_frames, make_frame


def _jab_with_power(power):
    # Zero speed and zero form terms: the score is 40 * power
    return StrikeEvent(
        type=StrikeType.JAB,
        side=Side.LEFT,
        speed=0.0,
        accuracy=0.0,
        power=power,
        form=StrikeForm(hip_rotation=0.0, shoulder_alignment=0.0, guard_position=0.0),
    )


def test_end_to_end_session_statistics(settings):
    pipeline = SessionPipeline("user-1", start_time=10_000.0, settings=settings)

    scores = [
        pipeline.record_strike(_jab_with_power(p), now=t).score
        for p, t in zip((1.5, 1.75, 2.0), (10_000.0, 10_600.0, 11_200.0))
    ]
    assert scores == [60, 70, 80]

    stats = pipeline.end(now=15_000.0)

    assert stats.average_score == 70.0
    left_jab = stats.technique_breakdown["left_jab"]
    assert (left_jab.count, left_jab.average_score, left_jab.best_score) == (3, 70.0, 80)
    assert pipeline.session.duration == 5_000.0
    assert pipeline.session.duration > 0


def test_jab_frames_produce_scored_strike(settings):
    pipeline = SessionPipeline("user-1", start_time=0.0, settings=settings)
    first, second = jab_frames()

    result = pipeline.process_frame(first)
    assert result is not None
    assert not result.has_strike
    assert result.stance is not None
    assert result.confidence_threshold >= settings.dynamic_confidence_base

    result = pipeline.process_frame(second)
    assert result.has_strike
    assert result.strike.technique_key == "left_jab"
    assert result.score == score_strike(result.strike)
    assert result.technique_match is not None
    assert result.feedback == analyze_strike(result.strike)
    assert result.coaching == [
        speed_feedback(result.strike.speed, result.strike.type),
        power_feedback(result.strike.power),
    ]
    assert result.movements["left_wrist"].smoothed_velocity > settings.jab_velocity_threshold

    stats = pipeline.stats()
    assert stats.total_strikes == 1
    assert stats.average_score == result.score
    assert pipeline.frames_processed == 2


def test_strike_counted_once_within_cooldown(settings):
    pipeline = SessionPipeline("user-1", start_time=0.0, settings=settings)
    first, second = jab_frames()
    pipeline.process_frame(first)
    pipeline.process_frame(second)

    # The arm keeps travelling during the same punch
    wrist_x, wrist_y = second.get("left_wrist").x, second.get("left_wrist").y
    third = make_frame(66.0, left_elbow=(400, 190), left_wrist=(wrist_x + 20, wrist_y))
    result = pipeline.process_frame(third)

    assert not result.has_strike
    assert pipeline.stats().total_strikes == 1


def test_client_strike_rejected_within_cooldown_of_detected_strike(settings):
    pipeline = SessionPipeline("user-1", start_time=0.0, settings=settings)
    first, second = jab_frames()
    pipeline.process_frame(first)
    assert pipeline.process_frame(second).has_strike

    assert pipeline.record_strike(_jab_with_power(1.0), now=second.timestamp + 100) is None
    # Without a timestamp the strike lands on the frame clock, right after the jab
    assert pipeline.record_strike(_jab_with_power(1.0)) is None
    assert pipeline.strikes_rejected == 2
    assert pipeline.stats().total_strikes == 1

    recorded = pipeline.record_strike(_jab_with_power(1.0), now=second.timestamp + settings.strike_cooldown_ms)
    assert recorded is not None
    assert pipeline.stats().total_strikes == 2


def test_detected_strike_rejected_within_cooldown_of_client_strike(settings):
    pipeline = SessionPipeline("user-1", start_time=0.0, settings=settings)
    assert pipeline.record_strike(_jab_with_power(1.0), now=0.0) is not None

    first, second = jab_frames()
    pipeline.process_frame(first)
    result = pipeline.process_frame(second)

    assert not result.has_strike
    assert pipeline.stats().total_strikes == 1


def test_client_strikes_share_one_cooldown(settings):
    pipeline = SessionPipeline("user-1", start_time=0.0, settings=settings)

    accepted = [
        pipeline.record_strike(_jab_with_power(1.0), now=t) is not None
        for t in (0.0, 33.0, 66.0, 499.0, 500.0)
    ]

    assert accepted == [True, False, False, False, True]
    assert pipeline.stats().total_strikes == 2


def test_client_strike_carries_feedback(settings):
    pipeline = SessionPipeline("user-1", start_time=0.0, settings=settings)
    strike = _jab_with_power(1.5)

    recorded = pipeline.record_strike(strike, now=0.0)

    assert recorded.score == 60
    assert recorded.feedback == analyze_strike(strike)
    assert len(recorded.feedback.improvements) == 3
    assert recorded.coaching == ["Focus on generating more speed.", "Powerful technique!"]
    assert recorded.technique_match is not None


def test_out_of_order_frame_is_dropped(settings):
    pipeline = SessionPipeline("user-1", start_time=0.0, settings=settings)
    assert pipeline.process_frame(make_frame(100.0)) is not None

    assert pipeline.process_frame(make_frame(50.0)) is None
    assert pipeline.frames_dropped == 1
    assert pipeline.frames_processed == 1

    # Equal timestamps are not out of order
    assert pipeline.process_frame(make_frame(100.0)) is not None


def test_frame_dropped_while_pass_in_flight(settings):
    pipeline = SessionPipeline("user-1", start_time=0.0, settings=settings)

    pipeline._lock.acquire()
    try:
        assert pipeline.process_frame(make_frame(0.0)) is None
    finally:
        pipeline._lock.release()

    assert pipeline.frames_dropped == 1
    assert pipeline.process_frame(make_frame(33.0)) is not None


def test_ended_pipeline_rejects_frames_and_strikes(settings):
    pipeline = SessionPipeline("user-1", start_time=0.0, settings=settings)
    pipeline.end(now=1_000.0)

    with pytest.raises(SessionClosed):
        pipeline.process_frame(make_frame(0.0))
    with pytest.raises(SessionClosed):
        pipeline.record_strike(_jab_with_power(1.0))


def test_record_strike_with_combo_stats(settings):
    pipeline = SessionPipeline("user-1", start_time=0.0, settings=settings)
    pipeline.record_strike(_jab_with_power(1.0), ComboStats(total_strikes=4, completed_combos=1, max_combo_streak=4))

    stats = pipeline.stats()
    assert stats.total_strikes == 4
    assert stats.completed_combos == 1
    assert stats.max_combo_streak == 4


def test_sessions_do_not_share_state(settings):
    registry = SessionRegistry(settings=settings)
    a = registry.start("user-a", now=0.0)
    b = registry.start("user-b", now=0.0)
    first, second = jab_frames()

    a.process_frame(first)
    a.process_frame(second)
    # Session b has never seen the first frame, so the wrist has no velocity yet
    result = b.process_frame(second)

    assert a.stats().total_strikes == 1
    assert not result.has_strike
    assert b.stats().total_strikes == 0


def test_registry_lifecycle(settings):
    registry = SessionRegistry(settings=settings)
    pipeline = registry.start("user-1", now=1_000.0)

    assert pipeline.session_id in registry
    assert len(registry) == 1
    assert registry.get(pipeline.session_id) is pipeline

    session = registry.end(pipeline.session_id, now=3_500.0)

    assert session.duration == 2_500.0
    assert session.ended
    assert pipeline.session_id not in registry
    with pytest.raises(SessionNotFound):
        registry.get(pipeline.session_id)


def test_registry_finish_keeps_session_until_removed(settings):
    registry = SessionRegistry(settings=settings)
    pipeline = registry.start("user-1", now=0.0)

    session = registry.finish(pipeline.session_id, now=2_000.0)
    assert session.ended
    assert pipeline.session_id in registry

    # Finishing again returns the same finalized session
    assert registry.finish(pipeline.session_id, now=9_000.0) is session
    assert session.duration == 2_000.0

    registry.remove(pipeline.session_id)
    assert pipeline.session_id not in registry


def test_registry_unknown_session():
    registry = SessionRegistry()

    with pytest.raises(SessionNotFound) as exc_info:
        registry.end("missing")
    assert exc_info.value.session_id == "missing"
    assert str(exc_info.value) == "Session not found: missing"
