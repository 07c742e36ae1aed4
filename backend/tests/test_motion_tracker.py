import pytest

from strike_coach.engine.motion_tracker import MotionTracker, ZERO_STATE

from poses import make_frame


def _tracker(**kwargs):
    params = dict(
        smoothing_factor=0.7,
        confidence_floor=0.5,
        history_size=30,
        velocity_scale=1.0,
        mirror_x=True,
    )
    params.update(kwargs)
    return MotionTracker(**params)


def test_first_sighting_is_zero_baseline():
    tracker = _tracker()
    states = tracker.update(make_frame(0.0))

    wrist = states["left_wrist"]
    assert wrist.velocity == 0.0
    assert wrist.smoothed_velocity == 0.0
    assert wrist.direction == (0.0, 0.0)
    assert wrist.last_update == 0.0
    assert wrist.confidence == pytest.approx(0.9)


def test_velocity_and_ema_from_consecutive_frames():
    tracker = _tracker()
    tracker.update(make_frame(0.0, left_wrist=(370, 140)))
    states = tracker.update(make_frame(100.0, left_wrist=(380, 140)))

    wrist = states["left_wrist"]
    # 10 px in 0.1 s
    assert wrist.velocity == pytest.approx(100.0)
    assert wrist.smoothed_velocity == pytest.approx(30.0)

    states = tracker.update(make_frame(200.0, left_wrist=(390, 140)))
    assert states["left_wrist"].smoothed_velocity == pytest.approx(30.0 * 0.7 + 100.0 * 0.3)


def test_mirror_convention_negates_horizontal_direction():
    mirrored = _tracker(mirror_x=True)
    mirrored.update(make_frame(0.0, left_wrist=(370, 140)))
    state = mirrored.update(make_frame(33.0, left_wrist=(390, 140)))["left_wrist"]
    assert state.direction == pytest.approx((-1.0, 0.0))

    plain = _tracker(mirror_x=False)
    plain.update(make_frame(0.0, left_wrist=(370, 140)))
    state = plain.update(make_frame(33.0, left_wrist=(390, 140)))["left_wrist"]
    assert state.direction == pytest.approx((1.0, 0.0))


@pytest.mark.parametrize("elapsed_ms", [0.0, -10.0])
def test_non_positive_elapsed_gives_zero_velocity(elapsed_ms):
    tracker = _tracker()
    tracker.update(make_frame(0.0, left_wrist=(370, 140)))
    states = tracker.update(make_frame(0.0, left_wrist=(400, 140)), elapsed_ms=elapsed_ms)

    assert states["left_wrist"].velocity == 0.0
    assert states["left_wrist"].smoothed_velocity == 0.0


def test_same_timestamp_frames_give_zero_velocity():
    tracker = _tracker()
    tracker.update(make_frame(50.0, left_wrist=(370, 140)))
    states = tracker.update(make_frame(50.0, left_wrist=(420, 140)))

    assert states["left_wrist"].velocity == 0.0


def test_explicit_previous_frame_and_elapsed():
    tracker = _tracker()
    tracker.update(make_frame(0.0))
    previous = make_frame(0.0, left_wrist=(300, 140))

    states = tracker.update(make_frame(10.0, left_wrist=(310, 140)), previous=previous, elapsed_ms=50.0)

    # 10 px in 50 ms regardless of the timestamps
    assert states["left_wrist"].velocity == pytest.approx(200.0)


def test_velocity_scale_multiplies_displacement():
    tracker = _tracker(velocity_scale=100.0)
    tracker.update(make_frame(0.0, left_wrist=(0.50, 0.30)))
    states = tracker.update(make_frame(100.0, left_wrist=(0.51, 0.30)))

    assert states["left_wrist"].velocity == pytest.approx(10.0)


def test_low_confidence_landmark_is_not_tracked():
    tracker = _tracker()
    states = tracker.update(make_frame(0.0, left_wrist=(370, 140, 0.4)))

    assert "left_wrist" not in states
    assert tracker.get("left_wrist") is ZERO_STATE


def test_lost_landmark_contributes_zero_sample():
    tracker = _tracker()
    tracker.update(make_frame(0.0, left_wrist=(370, 140)))
    tracker.update(make_frame(100.0, left_wrist=(380, 140)))
    states = tracker.update(make_frame(200.0, drop=("left_wrist",)))

    wrist = states["left_wrist"]
    assert wrist.velocity == 0.0
    assert wrist.smoothed_velocity == pytest.approx(30.0 * 0.7)
    assert wrist.last_update == 100.0
    assert wrist.confidence == 0.0


def test_unknown_landmark_returns_zero_state():
    tracker = _tracker()
    state = tracker.get("left_big_toe")

    assert state.velocity == 0.0
    assert state.smoothed_direction == (0.0, 0.0)
    assert not state.is_moving


def test_history_is_bounded():
    tracker = _tracker(history_size=30)
    for i in range(40):
        tracker.update(make_frame(i * 33.0))

    assert len(tracker.history["left_wrist"]) == 30


def test_dynamic_confidence_threshold():
    tracker = _tracker()
    assert tracker.dynamic_confidence_threshold(0.3) == 0.3

    tracker.update(make_frame(0.0, confidence=0.9))
    assert tracker.dynamic_confidence_threshold(0.3) == pytest.approx(0.63)

    low = _tracker()
    low.update(make_frame(0.0, confidence=0.55))
    assert low.dynamic_confidence_threshold(0.3) == pytest.approx(0.385)
    assert low.dynamic_confidence_threshold(0.5) == 0.5


def test_reset_clears_state():
    tracker = _tracker()
    tracker.update(make_frame(0.0))
    tracker.reset()

    assert tracker.states == {}
    assert tracker.history == {}
    assert tracker.previous_frame is None
