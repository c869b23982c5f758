import pytest
from aim_trainer.classifier import HitClassifier
from aim_trainer.config import MovementPattern, ScoringConfig, scenario_config
from aim_trainer.input_tracker import PointerEvent
from aim_trainer.session_log import SessionLog
from aim_trainer.targets import Target

AREA = (800, 600)


@pytest.fixture
def classifier():
    return HitClassifier(ScoringConfig())


def test_hit_at_center_scores_base_plus_time_bonus(classifier):
    log = SessionLog()
    t = Target(100, 100, 40, MovementPattern.STATIC, spawned_at_ms=0.0)
    res = classifier.resolve(PointerEvent(120, 120), [t], log, scenario_config("classic-static"), AREA, 750.0)
    assert res.hit is t
    assert res.counted is True
    # 10 base + 0 combo + 25 time bonus (half the window left)
    assert res.score_awarded == 35
    assert log.hits == 1 and log.misses == 0
    assert log.score == 35
    assert log.hit_latencies_ms == [750.0]
    assert log.combo_current == 1


def test_miss_records_offset_and_resets_combo(classifier):
    log = SessionLog(combo_current=4, combo_max=4)
    t = Target(400, 100, 40)
    res = classifier.resolve(PointerEvent(470, 130), [t], log, scenario_config("classic-static"), AREA, 0.0)
    assert res.hit is None
    assert res.miss_vector == (50.0, 10.0)
    assert log.misses == 1
    assert log.miss_offsets == [(50.0, 10.0)]
    # target centre (420, 120) relative to (400, 300)
    assert log.miss_bearings == [(20.0, -180.0)]
    assert log.combo_current == 0
    assert log.combo_max == 4


def test_nearest_target_decides(classifier):
    log = SessionLog()
    far = Target(600, 400, 40)
    near = Target(100, 100, 40)
    res = classifier.resolve(PointerEvent(170, 120), [far, near], log, scenario_config("grid-flick"), AREA, 0.0)
    assert res.hit is None
    assert res.miss_vector == (50.0, 0.0)


def test_click_outside_area_is_not_counted(classifier):
    log = SessionLog()
    t = Target(100, 100, 40)
    res = classifier.resolve(PointerEvent(-5, 120), [t], log, scenario_config("classic-static"), AREA, 0.0)
    assert res.counted is False
    assert log.resolved_events == 0


def test_click_without_targets_is_not_counted(classifier):
    log = SessionLog()
    res = classifier.resolve(PointerEvent(100, 100), [], log, scenario_config("classic-static"), AREA, 0.0)
    assert res.counted is False
    assert log.misses == 0


def test_combo_bonus_grows_and_caps(classifier):
    assert classifier.combo_bonus(0) == 0
    assert classifier.combo_bonus(3) == 6
    assert classifier.combo_bonus(50) == 20


def test_time_bonus_is_floored_at_zero(classifier):
    assert classifier.time_bonus(0) == 50
    assert classifier.time_bonus(1500) == 0
    assert classifier.time_bonus(10_000) == 0


def test_combo_invariants_over_sequence(classifier):
    log = SessionLog()
    cfg = scenario_config("classic-moving")
    t = Target(100, 100, 40, MovementPattern.LINEAR)
    pattern = [True, True, True, False, True, True, False, False, True]
    for i, hit in enumerate(pattern):
        pos = (120, 120) if hit else (300, 300)
        classifier.resolve(PointerEvent(*pos), [t], log, cfg, AREA, 10_000.0)
        assert log.combo_max >= log.combo_current
        assert log.resolved_events == i + 1
    assert log.combo_max == 3
    assert log.combo_current == 1
    # 20 base each, combo bonus 0,2,4 then 0,2 then 0
    assert log.score == 20 * 6 + (0 + 2 + 4) + (0 + 2) + 0


def test_base_score_follows_movement_pattern(classifier):
    log = SessionLog()
    t = Target(100, 100, 40)
    res = classifier.resolve(PointerEvent(120, 120), [t], log, scenario_config("strafe-duel"), AREA, 5000.0)
    assert res.score_awarded == 30


def test_track_records_sample_and_returns_precision(classifier):
    log = SessionLog()
    assert classifier.track((103, 104), (100, 100), log, 80.0) == pytest.approx(90.0)
    assert classifier.track((200, 100), (100, 100), log, 160.0) == 0.0
    assert [s.error_distance for s in log.tracking_samples] == [pytest.approx(5.0), pytest.approx(100.0)]
    assert log.tracking_samples[1].timestamp_ms == 160.0


def test_frozen_log_ignores_new_events(classifier):
    log = SessionLog().freeze()
    t = Target(100, 100, 40)
    classifier.resolve(PointerEvent(120, 120), [t], log, scenario_config("classic-static"), AREA, 0.0)
    assert log.hits == 0
    assert log.score == 0
