import random

import pytest
from aim_trainer.config import SessionConfig, SpawnPolicy, scenario_config
from aim_trainer.game_engine import AimTrainerEngine, Phase, SessionEvent, SessionState, transition
from aim_trainer.input_tracker import PointerEvent, PointerKind


def click(engine, pos, kind=PointerKind.DOWN):
    return engine.handle_pointer(PointerEvent(pos[0], pos[1], kind))


# -- pure transitions ---------------------------------------------------------

def test_transition_table():
    cfg = scenario_config("classic-static", duration_seconds=10)
    s = SessionState(config=cfg)

    s = transition(s, SessionEvent.START)
    assert (s.phase, s.countdown_remaining) == (Phase.COUNTDOWN, 3)
    s = transition(s, SessionEvent.COUNTDOWN_TICK)
    s = transition(s, SessionEvent.COUNTDOWN_TICK)
    assert s.countdown_remaining == 1
    s = transition(s, SessionEvent.COUNTDOWN_TICK)
    assert (s.phase, s.time_remaining, s.epoch) == (Phase.RUNNING, 10, 1)

    s = transition(s, SessionEvent.CLOCK_TICK)
    assert s.time_remaining == 9
    for _ in range(9):
        s = transition(s, SessionEvent.CLOCK_TICK)
    assert (s.phase, s.time_remaining) == (Phase.FINISHED, 0)

    s = transition(s, SessionEvent.REPLAY)
    assert (s.phase, s.time_remaining, s.epoch) == (Phase.RUNNING, 10, 2)

    other = scenario_config("strafe-duel")
    s = transition(s, SessionEvent.CHANGE_SCENARIO, other)
    assert (s.phase, s.config) == (Phase.CONFIG, other)


def test_transition_ignores_invalid_moves():
    s = SessionState(config=scenario_config("classic-static"))
    for event in (SessionEvent.COUNTDOWN_TICK, SessionEvent.CLOCK_TICK, SessionEvent.REPLAY):
        assert transition(s, event) is s

    no_config = SessionState()
    assert transition(no_config, SessionEvent.START) is no_config
    invalid = SessionState(config=SessionConfig(duration_seconds=0))
    assert transition(invalid, SessionEvent.START) is invalid


def test_reset_from_every_phase_keeps_config():
    cfg = scenario_config("grid-flick")
    for phase in Phase:
        s = SessionState(phase=phase, config=cfg, countdown_remaining=2, time_remaining=7)
        r = transition(s, SessionEvent.RESET)
        assert (r.phase, r.config, r.time_remaining) == (Phase.CONFIG, cfg, 0)


def test_state_to_dict():
    data = SessionState(config=scenario_config("classic-moving")).to_dict()
    assert data["phase"] == "config"
    assert data["config"]["movement_pattern"] == "linear"


# -- engine lifecycle ---------------------------------------------------------

def test_countdown_then_running(make_engine):
    e = make_engine(duration_seconds=15)
    assert e.start() is True
    assert e.phase == Phase.COUNTDOWN
    e.tick(1000)
    assert e.state.countdown_remaining == 2
    e.tick(2000)
    assert e.phase == Phase.RUNNING
    assert e.state.time_remaining == 15
    assert e.frame_loop_active
    assert len(e.targets) == 1


def test_second_start_is_ignored(running_engine):
    e = running_engine()
    epoch = e.state.epoch
    assert e.start() is False
    assert e.state.epoch == epoch


def test_start_without_config_is_rejected():
    e = AimTrainerEngine((800, 600))
    assert e.start() is False
    assert e.phase == Phase.CONFIG


def test_session_finishes_after_duration(running_engine):
    e = running_engine(duration_seconds=5)
    finished = []
    e.register_finished_callback(finished.append)
    e.tick(4000)
    assert e.phase == Phase.RUNNING
    assert e.state.time_remaining == 1
    e.tick(1000)
    assert e.phase == Phase.FINISHED
    assert finished == [e.result]
    assert e.log.frozen
    # nothing keeps running after the session ends
    assert e.scheduler.active_count == 0
    assert not e.frame_loop_active
    assert e.targets == []
    e.tick(10_000)
    assert e.phase == Phase.FINISHED
    assert len(finished) == 1


def test_reset_stops_everything(running_engine):
    e = running_engine()
    cfg = e.config
    e.reset()
    assert e.phase == Phase.CONFIG
    assert e.config == cfg
    assert e.scheduler.active_count == 0
    assert e.targets == []
    assert e.result is None
    e.tick(60_000)
    assert e.phase == Phase.CONFIG


def test_reset_during_countdown(make_engine):
    e = make_engine()
    e.start()
    e.tick(1500)
    e.reset()
    assert e.phase == Phase.CONFIG
    assert e.scheduler.active_count == 0
    e.tick(5000)
    assert e.phase == Phase.CONFIG


def test_replay_starts_fresh_run(running_engine):
    e = running_engine(duration_seconds=5)
    t = e.targets[0]
    click(e, t.center)
    assert e.log.hits == 1
    e.tick(5000)
    assert e.phase == Phase.FINISHED
    first_epoch = e.state.epoch

    assert e.replay() is True
    assert e.phase == Phase.RUNNING
    assert e.state.epoch == first_epoch + 1
    assert e.state.time_remaining == 5
    assert e.log.hits == 0 and e.log.score == 0
    assert e.result is None
    assert len(e.targets) == 1


def test_change_scenario_while_running_returns_to_config(running_engine):
    e = running_engine()
    new = scenario_config("strafe-duel")
    assert e.change_scenario(new) is True
    assert e.phase == Phase.CONFIG
    assert e.config == new
    assert e.scheduler.active_count == 0


def test_change_scenario_rejected_during_countdown(make_engine):
    e = make_engine()
    e.start()
    assert e.configure(scenario_config("grid-flick")) is False
    assert e.phase == Phase.COUNTDOWN
    assert e.config.scenario == "classic-static"


def test_configure_sanitizes(make_engine):
    e = make_engine()
    e.configure(SessionConfig(duration_seconds=1, target_diameter=1000))
    assert e.config.duration_seconds == 5
    assert e.config.target_diameter == 200.0


# -- classic mode -------------------------------------------------------------

def test_replace_on_hit_keeps_one_target(running_engine):
    e = running_engine()
    for _ in range(10):
        assert len(e.targets) == 1
        res = click(e, e.targets[0].center)
        assert res.hit is not None
        e.tick(16)
    assert e.log.hits == 10
    assert e.log.combo_max == 10
    assert e.snapshot().score == e.log.score > 0


def test_miss_resets_combo(running_engine):
    e = running_engine()
    click(e, e.targets[0].center)
    click(e, e.targets[0].center)
    t = e.targets[0]
    x = t.center[0] + t.radius + 5 if t.center[0] < 400 else t.center[0] - t.radius - 5
    res = click(e, (x, t.center[1]))
    assert res.hit is None and res.counted
    snap = e.snapshot()
    assert (snap.hits, snap.misses, snap.combo, snap.combo_max) == (2, 1, 0, 2)
    # the missed target stays
    assert e.targets == [t]


def test_fixed_grid_refills_on_clock_and_when_cleared(running_engine):
    e = running_engine("grid-flick")
    assert len(e.targets) == 3
    click(e, e.targets[0].center)
    assert len(e.targets) == 2
    e.tick(1000)
    assert len(e.targets) == 3

    for _ in range(3):
        click(e, e.targets[0].center)
    assert len(e.targets) == 3
    assert e.log.hits == 4


def test_layout_not_ready_retries_on_next_tick(make_engine):
    e = make_engine(play_area=(0, 0))
    e.start()
    e.tick(3000)
    assert e.phase == Phase.RUNNING
    assert e.targets == []
    e.tick(16)
    assert e.targets == []
    e.set_play_area(800, 600)
    e.tick(16)
    assert len(e.targets) == 1


def test_hits_plus_misses_equals_counted_clicks(running_engine):
    e = running_engine("grid-flick")
    rng = random.Random(3)
    counted = 0
    for _ in range(300):
        if rng.random() < 0.5 and e.targets:
            pos = rng.choice(e.targets).center
        else:
            pos = (rng.uniform(-50, 850), rng.uniform(-50, 650))
        res = click(e, pos)
        if res is not None and res.counted:
            counted += 1
        assert e.log.combo_max >= e.log.combo_current
        e.tick(rng.uniform(5, 40))
    assert e.log.hits + e.log.misses == counted


def test_moving_targets_stay_in_bounds(running_engine):
    e = running_engine("strafe-duel", duration_seconds=120)
    for _ in range(600):
        e.tick(33)
        for t in e.targets:
            assert 0 <= t.x <= 800 - t.diameter
            assert 0 <= t.y <= 600 - t.diameter


def test_pointer_ignored_outside_running(make_engine):
    e = make_engine()
    assert click(e, (100, 100)) is None
    e.start()
    assert click(e, (100, 100)) is None
    assert e.log.resolved_events == 0


# -- recoil mode --------------------------------------------------------------

def test_recoil_constant_error_gives_constant_precision(running_engine):
    e = running_engine("recoil-rifle")
    assert e.targets == []
    anchor = e.recoil_target_position()
    assert anchor == (400.0, 300.0)

    click(e, anchor)
    assert e.snapshot().tracking is True
    for _ in range(30):
        x, y = e.recoil_target_position()
        click(e, (x + 3.0, y + 4.0), PointerKind.MOVE)
        e.tick(80)

    errors = [s.error_distance for s in e.log.tracking_samples]
    assert len(errors) == 30
    assert errors == pytest.approx([5.0] * 30)
    assert e.snapshot().tracking is False
    assert e.snapshot().recoil_control_pct == pytest.approx(90.0)

    e.tick(30_000)
    assert e.phase == Phase.FINISHED
    assert e.result.recoil_control_pct == pytest.approx(90.0)
    assert e.result.time_on_target_pct == pytest.approx(100.0)
    assert e.result.hits == 0 and e.result.misses == 0


def test_recoil_press_off_anchor_does_not_spray(running_engine):
    e = running_engine("recoil-smg")
    click(e, (10, 10))
    e.tick(400)
    assert e.snapshot().tracking is False
    assert len(e.log.tracking_samples) == 0


def test_recoil_release_stops_spray(running_engine):
    e = running_engine("recoil-lmg")
    click(e, e.recoil_target_position())
    e.tick(240)
    assert len(e.log.tracking_samples) == 3
    click(e, (400, 300), PointerKind.UP)
    e.tick(800)
    assert len(e.log.tracking_samples) == 3
    assert e.snapshot().tracking is False


def test_stale_trajectory_callback_is_noop(running_engine):
    e = running_engine("recoil-rifle", duration_seconds=5)
    old = e.trajectory
    e.tick(5000)
    assert e.phase == Phase.FINISHED
    e.replay()
    e.input.tracking = True
    old.on_tick(0, (0.0, 0.0))
    assert len(e.log.tracking_samples) == 0


# -- observers ----------------------------------------------------------------

def test_phase_callbacks_see_every_transition(make_engine):
    e = make_engine(duration_seconds=5)
    seen = []
    e.register_phase_callback(lambda old, new: seen.append((old, new.phase)))
    e.start()
    e.tick(3000)
    e.tick(5000)
    assert seen == [
        (Phase.CONFIG, Phase.COUNTDOWN),
        (Phase.COUNTDOWN, Phase.RUNNING),
        (Phase.RUNNING, Phase.FINISHED),
    ]


def test_failing_observer_does_not_break_engine(running_engine):
    e = running_engine()

    def broken(snapshot):
        raise RuntimeError("observer bug")

    snaps = []
    e.register_tick_callback(broken)
    e.register_tick_callback(snaps.append)
    e.tick(16)
    assert len(snaps) == 1
    assert snaps[0].phase == Phase.RUNNING
    e.unregister_tick_callback(snaps.append)
    e.tick(16)
    assert len(snaps) == 1


def test_replacement_target_never_overlaps_survivors(running_engine):
    e = running_engine("grid-flick", spawn_policy=SpawnPolicy.REPLACE_ON_HIT, target_diameter=50)
    for _ in range(100):
        assert len(e.targets) == 3
        res = click(e, e.targets[0].center)
        assert res.hit is not None
        for i, a in enumerate(e.targets):
            for b in e.targets[i + 1:]:
                assert not a.overlaps(b)


def test_hit_latency_uses_event_timestamp(running_engine):
    e = running_engine()
    spawned = e.targets[0].spawned_at_ms
    e.handle_pointer(PointerEvent(*e.targets[0].center, PointerKind.DOWN, spawned + 437.0))
    # falls back to the engine clock when the event carries no time
    click(e, e.targets[0].center)
    assert e.log.hit_latencies_ms == [437.0, 0.0]


def test_recoil_ticks_in_one_frame_get_their_own_times(running_engine):
    e = running_engine("recoil-rifle")
    start = e.now_ms
    click(e, e.recoil_target_position())
    e.tick(240)
    assert [s.timestamp_ms for s in e.log.tracking_samples] == [start + 80, start + 160, start + 240]
