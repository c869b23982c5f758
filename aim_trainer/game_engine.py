import logging
import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from aim_trainer.classifier import HitClassifier, Resolution
from aim_trainer.config import ScoringConfig, SessionConfig, SpawnPolicy
from aim_trainer.input_tracker import InputTracker, PointerEvent, PointerKind
from aim_trainer.physics import PhysicsIntegrator, RecoilTrajectory
from aim_trainer.recoil_patterns import get_pattern
from aim_trainer.scheduler import TimerScheduler
from aim_trainer.session_log import SessionLog
from aim_trainer.stats import ResultSummary, summarize
from aim_trainer.targets import Target, TargetSpawner


class Phase(Enum):
    CONFIG = "config"
    COUNTDOWN = "countdown"
    RUNNING = "running"
    FINISHED = "finished"


class SessionEvent(Enum):
    START = "start"
    COUNTDOWN_TICK = "countdown-tick"
    CLOCK_TICK = "clock-tick"
    CHANGE_SCENARIO = "change-scenario"
    REPLAY = "replay"
    RESET = "reset"


@dataclass(frozen=True)
class SessionState:
    phase: Phase = Phase.CONFIG
    config: Optional[SessionConfig] = None
    countdown_remaining: int = 0
    time_remaining: int = 0
    # bumped on every entry into RUNNING
    epoch: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "config": self.config.to_dict() if self.config else None,
            "countdown_remaining": self.countdown_remaining,
            "time_remaining": self.time_remaining,
            "epoch": self.epoch,
        }


def _run(state: SessionState) -> SessionState:
    return replace(state, phase=Phase.RUNNING, countdown_remaining=0,
                   time_remaining=state.config.duration_seconds, epoch=state.epoch + 1)


def transition(
    state: SessionState,
    event: SessionEvent,
    config: Optional[SessionConfig] = None,
    countdown_ticks: int = 3,
) -> SessionState:
    """Pure state transition. Unknown or invalid moves return ``state`` itself."""
    if event == SessionEvent.RESET:
        return SessionState(Phase.CONFIG, state.config, 0, 0, state.epoch)

    phase = state.phase
    if phase == Phase.CONFIG:
        if event == SessionEvent.START:
            if state.config is None or not state.config.is_valid():
                return state
            if countdown_ticks <= 0:
                return _run(state)
            return replace(state, phase=Phase.COUNTDOWN, countdown_remaining=countdown_ticks)
        if event == SessionEvent.CHANGE_SCENARIO and config is not None:
            return replace(state, config=config)

    elif phase == Phase.COUNTDOWN:
        if event == SessionEvent.COUNTDOWN_TICK:
            remaining = state.countdown_remaining - 1
            if remaining <= 0:
                return _run(state)
            return replace(state, countdown_remaining=remaining)

    elif phase == Phase.RUNNING:
        if event == SessionEvent.CLOCK_TICK:
            remaining = max(0, state.time_remaining - 1)
            if remaining == 0:
                return replace(state, phase=Phase.FINISHED, time_remaining=0)
            return replace(state, time_remaining=remaining)
        if event == SessionEvent.CHANGE_SCENARIO and config is not None:
            return SessionState(Phase.CONFIG, config, 0, 0, state.epoch)

    elif phase == Phase.FINISHED:
        if event == SessionEvent.REPLAY:
            return _run(state)
        if event == SessionEvent.CHANGE_SCENARIO and config is not None:
            return SessionState(Phase.CONFIG, config, 0, 0, state.epoch)

    return state


@dataclass(frozen=True)
class LiveSnapshot:
    phase: Phase
    score: int
    time_remaining: int
    countdown_remaining: int
    combo: int
    combo_max: int
    hits: int
    misses: int
    targets: Tuple[Dict[str, Any], ...]
    recoil_target: Optional[Tuple[float, float]]
    tracking: bool
    recoil_control_pct: float


class AimTrainerEngine:
    def __init__(
        self,
        play_area: Tuple[float, float] = (0, 0),
        config: Optional[SessionConfig] = None,
        scoring: Optional[ScoringConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.logger = logging.getLogger("AimTrainerEngine")
        self.scoring = scoring or ScoringConfig()
        self.rng = rng or random.Random()
        self.play_area = (float(play_area[0]), float(play_area[1]))

        self.scheduler = TimerScheduler()
        self.spawner = TargetSpawner(self.scoring, self.rng)
        self.physics = PhysicsIntegrator(self.scoring, self.rng)
        self.classifier = HitClassifier(self.scoring)
        self.input = InputTracker()

        self._state = SessionState(config=config.sanitized() if config else None)
        self.log = SessionLog()
        self.result: Optional[ResultSummary] = None
        self.targets: List[Target] = []
        self.recoil_anchor: Optional[Target] = None
        self.trajectory: Optional[RecoilTrajectory] = None
        self._frame_token: Optional[int] = None
        self._precision_sum = 0.0
        self._spray_started_ms = 0.0

        self.tick_callbacks: List[Callable[[LiveSnapshot], None]] = []
        self.phase_callbacks: List[Callable[[Phase, SessionState], None]] = []
        self.finished_callbacks: List[Callable[[ResultSummary], None]] = []

    # -- state ---------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def config(self) -> Optional[SessionConfig]:
        return self._state.config

    @property
    def now_ms(self) -> float:
        return self.scheduler.now_ms

    @property
    def active_targets(self) -> List[Target]:
        return list(self.targets)

    @property
    def frame_loop_active(self) -> bool:
        return self._frame_token is not None and self._frame_token == self._state.epoch

    def _dispatch(self, event: SessionEvent, config: Optional[SessionConfig] = None) -> bool:
        old = self._state
        new = transition(old, event, config, self.scoring.countdown_ticks)
        if new is old:
            self.logger.debug("Event %s ignored in phase %s", event.value, old.phase.value)
            return False
        self._state = new
        if new.phase != old.phase or new.epoch != old.epoch:
            self._leave(old.phase)
            self._enter(new.phase, old.phase)
            self.logger.info("Phase %s -> %s", old.phase.value, new.phase.value)
            self._notify(self.phase_callbacks, old.phase, new)
        return True

    def _leave(self, phase: Phase) -> None:
        if phase in (Phase.COUNTDOWN, Phase.RUNNING):
            self._stop_loops()

    def _enter(self, phase: Phase, previous: Phase) -> None:
        if phase == Phase.COUNTDOWN:
            self.scheduler.set_interval(
                self.scoring.clock_interval_ms,
                lambda: self._dispatch(SessionEvent.COUNTDOWN_TICK),
                "countdown",
            )
        elif phase == Phase.RUNNING:
            self._begin_run()
        elif phase == Phase.FINISHED:
            self._finish()
        elif phase == Phase.CONFIG:
            self.log = SessionLog()
            self.result = None

    def _stop_loops(self) -> None:
        self.scheduler.cancel_all()
        self._frame_token = None
        if self.trajectory is not None:
            self.trajectory.stop()
        self.targets = []
        self.recoil_anchor = None
        self.input.reset()

    def _begin_run(self) -> None:
        config = self._state.config
        self.log = SessionLog()
        self.result = None
        self._precision_sum = 0.0
        self._spray_started_ms = self.now_ms
        self.input.tracking = False
        epoch = self._state.epoch
        self._frame_token = epoch

        self.trajectory = None
        pattern = get_pattern(config.recoil_pattern_id)
        if pattern is not None:
            def on_trajectory_tick(index: int, position: Tuple[float, float]) -> None:
                # stale sprays from an earlier run never touch the new log
                if self._frame_token != epoch or not self.input.tracking:
                    return
                # ticks crossed inside one frame keep their own times
                sample_ms = self._spray_started_ms + (index + 1) * pattern.tick_ms
                self._precision_sum += self.classifier.track(
                    self.input.position, position, self.log, sample_ms)

            self.trajectory = RecoilTrajectory(pattern, on_trajectory_tick)

        self.scheduler.set_interval(self.scoring.clock_interval_ms, self._on_clock_tick, "match-clock")
        self._ensure_targets()
        self.logger.info("Session started: %s", config.to_dict())

    def _on_clock_tick(self) -> None:
        if not self._dispatch(SessionEvent.CLOCK_TICK):
            return
        config = self._state.config
        if (self._state.phase == Phase.RUNNING and not config.is_recoil
                and config.spawn_policy == SpawnPolicy.FIXED_GRID):
            self._fill_targets()

    def _finish(self) -> None:
        config = self._state.config
        self.log.freeze()
        self.result = summarize(
            self.log,
            self.scoring,
            target_diameter=config.target_diameter if config else None,
            sensitivity=config.sensitivity if config else None,
        )
        self.logger.info("Session finished: accuracy %.1f%%, %s hits, %s misses",
                         self.result.accuracy_pct, self.result.hits, self.result.misses)
        self._notify(self.finished_callbacks, self.result)

    # -- spawning ------------------------------------------------------------

    def _fill_targets(self) -> List[Target]:
        spawned = self.spawner.spawn(self._state.config, self.play_area, self.targets, self.now_ms)
        self.targets.extend(spawned)
        return spawned

    def _ensure_targets(self) -> None:
        config = self._state.config
        if config.is_recoil:
            if self.recoil_anchor is None:
                self.recoil_anchor = self.spawner.spawn_recoil_anchor(config, self.play_area, self.now_ms)
            return
        # replace-on-hit keeps at least one target alive; fixed-grid refills
        # a fully cleared batch straight away
        if not self.targets:
            self._fill_targets()

    # -- public actions ------------------------------------------------------

    def set_play_area(self, width: float, height: float) -> None:
        self.play_area = (max(0.0, float(width)), max(0.0, float(height)))
        if self.recoil_anchor is not None and self.trajectory is not None and not self.trajectory.active:
            self.recoil_anchor = self.spawner.spawn_recoil_anchor(
                self._state.config, self.play_area, self.now_ms)

    def configure(self, config: SessionConfig) -> bool:
        config = config.sanitized()
        if self.phase == Phase.COUNTDOWN:
            self.logger.warning("Cannot change scenario during countdown, reset first")
            return False
        return self._dispatch(SessionEvent.CHANGE_SCENARIO, config)

    def change_scenario(self, config: SessionConfig) -> bool:
        return self.configure(config)

    def start(self) -> bool:
        if self.phase != Phase.CONFIG:
            self.logger.warning("Start ignored: session already in phase %s", self.phase.value)
            return False
        if self.config is None or not self.config.is_valid():
            self.logger.warning("Start rejected: no valid scenario selected")
            return False
        return self._dispatch(SessionEvent.START)

    def replay(self) -> bool:
        return self._dispatch(SessionEvent.REPLAY)

    def reset(self) -> None:
        if self.phase == Phase.CONFIG:
            self._stop_loops()
            self.log = SessionLog()
            self.result = None
            return
        self._dispatch(SessionEvent.RESET)

    def tick(self, elapsed_ms: float) -> None:
        if elapsed_ms <= 0:
            return
        epoch = self._state.epoch
        self.scheduler.advance(elapsed_ms)
        # a run that started or ended inside this step does not integrate it
        if self.frame_loop_active and self._state.epoch == epoch:
            self.physics.step_targets(self.targets, elapsed_ms, self.play_area)
            if self.trajectory is not None:
                self.trajectory.advance(elapsed_ms)
            self._ensure_targets()
        if self.tick_callbacks:
            self._notify(self.tick_callbacks, self.snapshot())

    def handle_pointer(self, event: PointerEvent) -> Optional[Resolution]:
        self.input.update(event, self.play_area)
        if self.phase != Phase.RUNNING or not self.frame_loop_active:
            return None

        if self._state.config.is_recoil:
            self._handle_recoil_pointer(event)
            return None

        if event.kind != PointerKind.DOWN:
            return None
        resolution = self.classifier.resolve(
            event, self.targets, self.log, self._state.config, self.play_area, self._event_time(event))
        if resolution.hit is not None:
            self.targets = [t for t in self.targets if t is not resolution.hit]
            if self._state.config.spawn_policy == SpawnPolicy.REPLACE_ON_HIT or not self.targets:
                self._fill_targets()
        return resolution

    def _event_time(self, event: PointerEvent) -> float:
        if event.timestamp_ms is None:
            return self.now_ms
        return float(event.timestamp_ms)

    def _handle_recoil_pointer(self, event: PointerEvent) -> None:
        trajectory = self.trajectory
        if trajectory is None:
            return
        if event.kind == PointerKind.DOWN:
            anchor = self.recoil_anchor
            if anchor is not None and anchor.check_collision(event.pos):
                trajectory.start(anchor.center)
                self._spray_started_ms = self._event_time(event)
            else:
                # press away from the anchor does not start a spray
                self.input.tracking = False
        elif event.kind == PointerKind.UP or not self.input.tracking:
            trajectory.stop()

    # -- live data -----------------------------------------------------------

    def recoil_target_position(self) -> Optional[Tuple[float, float]]:
        if self.trajectory is not None and self.trajectory.active:
            return self.trajectory.position
        if self.recoil_anchor is not None:
            return self.recoil_anchor.center
        return None

    def snapshot(self) -> LiveSnapshot:
        samples = len(self.log.tracking_samples)
        return LiveSnapshot(
            phase=self.phase,
            score=self.log.score,
            time_remaining=self._state.time_remaining,
            countdown_remaining=self._state.countdown_remaining,
            combo=self.log.combo_current,
            combo_max=self.log.combo_max,
            hits=self.log.hits,
            misses=self.log.misses,
            targets=tuple(t.to_dict() for t in self.targets),
            recoil_target=self.recoil_target_position(),
            tracking=bool(self.trajectory is not None and self.trajectory.active),
            recoil_control_pct=self._precision_sum / samples if samples else 0.0,
        )

    # -- observers -----------------------------------------------------------

    def register_tick_callback(self, callback: Callable[[LiveSnapshot], None]) -> None:
        if callback not in self.tick_callbacks:
            self.tick_callbacks.append(callback)

    def unregister_tick_callback(self, callback: Callable[[LiveSnapshot], None]) -> None:
        if callback in self.tick_callbacks:
            self.tick_callbacks.remove(callback)

    def register_phase_callback(self, callback: Callable[[Phase, SessionState], None]) -> None:
        if callback not in self.phase_callbacks:
            self.phase_callbacks.append(callback)

    def unregister_phase_callback(self, callback: Callable[[Phase, SessionState], None]) -> None:
        if callback in self.phase_callbacks:
            self.phase_callbacks.remove(callback)

    def register_finished_callback(self, callback: Callable[[ResultSummary], None]) -> None:
        if callback not in self.finished_callbacks:
            self.finished_callbacks.append(callback)

    def unregister_finished_callback(self, callback: Callable[[ResultSummary], None]) -> None:
        if callback in self.finished_callbacks:
            self.finished_callbacks.remove(callback)

    def _notify(self, callbacks: List[Callable], *args) -> None:
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception as e:
                self.logger.error("Callback notification failed: %s", e)
