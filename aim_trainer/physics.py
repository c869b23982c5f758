"""
Frame-rate independent motion for targets and recoil trajectories.
"""
import logging
import random
from typing import Callable, Iterable, Optional, Tuple

from aim_trainer.config import ScoringConfig
from aim_trainer.recoil_patterns import RecoilPattern
from aim_trainer.targets import Target


class PhysicsIntegrator:
    def __init__(self, scoring: Optional[ScoringConfig] = None, rng: Optional[random.Random] = None):
        self.scoring = scoring or ScoringConfig()
        self.rng = rng or random.Random()
        self.logger = logging.getLogger("PhysicsIntegrator")

    def step_target(self, target: Target, elapsed_ms: float, play_area: Tuple[float, float]) -> None:
        if elapsed_ms <= 0:
            return
        w, h = play_area
        max_x = max(0.0, w - target.diameter)
        max_y = max(0.0, h - target.diameter)

        if target.strafe_due_ms is not None:
            target.strafe_due_ms -= elapsed_ms
            if target.strafe_due_ms <= 0:
                target.vx = -target.vx
                target.strafe_due_ms = self.rng.uniform(
                    self.scoring.strafe_min_ms, self.scoring.strafe_max_ms)

        scale = elapsed_ms / self.scoring.reference_frame_ms
        target.x += target.vx * scale
        target.y += target.vy * scale

        # Bounce on edges: only flip a component heading into the wall
        if target.x <= 0.0:
            target.x = 0.0
            if target.vx < 0:
                target.vx = -target.vx
        elif target.x >= max_x:
            target.x = max_x
            if target.vx > 0:
                target.vx = -target.vx
        if target.y <= 0.0:
            target.y = 0.0
            if target.vy < 0:
                target.vy = -target.vy
        elif target.y >= max_y:
            target.y = max_y
            if target.vy > 0:
                target.vy = -target.vy

    def step_targets(self, targets: Iterable[Target], elapsed_ms: float,
                     play_area: Tuple[float, float]) -> None:
        for t in targets:
            self.step_target(t, elapsed_ms, play_area)


class RecoilTrajectory:
    """Walks a recoil offset table at the pattern's own tick rate.

    ``on_tick(index, position)`` fires once per table entry, before the
    index moves on, so a spray over an N-point table produces N ticks.
    """

    def __init__(self, pattern: RecoilPattern,
                 on_tick: Optional[Callable[[int, Tuple[float, float]], None]] = None):
        self.pattern = pattern
        self.on_tick = on_tick
        self.origin: Tuple[float, float] = (0.0, 0.0)
        self.index = 0
        self.accumulator_ms = 0.0
        self.active = False
        self.logger = logging.getLogger("RecoilTrajectory")

    @property
    def exhausted(self) -> bool:
        return self.index >= len(self.pattern)

    @property
    def position(self) -> Optional[Tuple[float, float]]:
        if self.exhausted:
            return None
        dx, dy = self.pattern.offsets[self.index]
        return (self.origin[0] + float(dx), self.origin[1] + float(dy))

    def start(self, origin: Tuple[float, float]) -> None:
        self.origin = (float(origin[0]), float(origin[1]))
        self.index = 0
        self.accumulator_ms = 0.0
        self.active = True
        self.logger.debug("Spray started at %s with pattern %s", self.origin, self.pattern.name)

    def stop(self) -> None:
        if self.active:
            self.logger.debug("Spray stopped at index %s/%s", self.index, len(self.pattern))
        self.active = False
        self.accumulator_ms = 0.0

    def advance(self, elapsed_ms: float) -> int:
        if not self.active or elapsed_ms <= 0:
            return 0
        self.accumulator_ms += elapsed_ms
        ticks = 0
        while self.active and self.accumulator_ms >= self.pattern.tick_ms and not self.exhausted:
            self.accumulator_ms -= self.pattern.tick_ms
            if self.on_tick is not None:
                self.on_tick(self.index, self.position)
            self.index += 1
            ticks += 1
        if self.exhausted and self.active:
            self.logger.debug("Pattern %s exhausted", self.pattern.name)
            self.stop()
        return ticks
