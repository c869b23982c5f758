import itertools
import logging
import math
import random
from typing import Dict, List, Optional, Sequence, Tuple

from aim_trainer.config import MovementPattern, ScoringConfig, SessionConfig

_ids = itertools.count(1)


class Target:
    """A clickable disc. ``x``/``y`` is the top-left corner of its bounding box."""

    def __init__(
        self,
        x: float,
        y: float,
        diameter: float,
        pattern: MovementPattern = MovementPattern.STATIC,
        vx: float = 0.0,
        vy: float = 0.0,
        spawned_at_ms: float = 0.0,
        points: int = 10,
        strafe_due_ms: Optional[float] = None,
    ):
        self.id = next(_ids)
        self.x = float(x)
        self.y = float(y)
        self.diameter = float(diameter)
        self.pattern = pattern
        self.vx = float(vx)
        self.vy = float(vy)
        self.spawned_at_ms = float(spawned_at_ms)
        self.points = points
        self.strafe_due_ms = strafe_due_ms

    @property
    def radius(self) -> float:
        return self.diameter / 2.0

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.radius, self.y + self.radius)

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @property
    def velocity(self) -> Tuple[float, float]:
        return (self.vx, self.vy)

    @property
    def is_moving(self) -> bool:
        return self.vx != 0.0 or self.vy != 0.0

    def distance_to(self, pos: Tuple[float, float]) -> float:
        cx, cy = self.center
        return math.hypot(float(pos[0]) - cx, float(pos[1]) - cy)

    def check_collision(self, pos: Tuple[float, float]) -> bool:
        return self.distance_to(pos) <= self.radius

    def overlaps(self, other: "Target") -> bool:
        return self.distance_to(other.center) < self.radius + other.radius

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "diameter": self.diameter,
            "vx": self.vx,
            "vy": self.vy,
            "pattern": self.pattern.value,
        }

    def __repr__(self) -> str:
        return (f"Target(id={self.id}, x={self.x:.1f}, y={self.y:.1f}, "
                f"d={self.diameter:.0f}, v=({self.vx:.2f}, {self.vy:.2f}))")


class TargetSpawner:
    def __init__(self, scoring: Optional[ScoringConfig] = None, rng: Optional[random.Random] = None):
        self.scoring = scoring or ScoringConfig()
        self.rng = rng or random.Random()
        self.logger = logging.getLogger("TargetSpawner")

    def next_strafe_delay(self) -> float:
        return self.rng.uniform(self.scoring.strafe_min_ms, self.scoring.strafe_max_ms)

    def _velocity(self, config: SessionConfig) -> Tuple[float, float]:
        if not config.is_moving:
            return 0.0, 0.0
        ang = self.rng.uniform(0.0, 2.0 * math.pi)
        return math.cos(ang) * config.target_speed, math.sin(ang) * config.target_speed

    def _candidate(self, config: SessionConfig, play_area: Tuple[float, float], now_ms: float) -> Target:
        w, h = play_area
        d = config.target_diameter
        vx, vy = self._velocity(config)
        strafe_due = None
        if config.movement_pattern == MovementPattern.STRAFING and config.is_moving:
            strafe_due = self.next_strafe_delay()
        return Target(
            self.rng.uniform(0.0, max(0.0, w - d)),
            self.rng.uniform(0.0, max(0.0, h - d)),
            d,
            pattern=config.movement_pattern,
            vx=vx,
            vy=vy,
            spawned_at_ms=now_ms,
            points=self.scoring.base_score(config.movement_pattern),
            strafe_due_ms=strafe_due,
        )

    def spawn(
        self,
        config: SessionConfig,
        play_area: Tuple[float, float],
        exclude: Sequence[Target] = (),
        now_ms: float = 0.0,
    ) -> List[Target]:
        """Fill the play area up to ``max_concurrent_targets``.

        Returns an empty list while the play area has no size yet.
        """
        w, h = play_area
        if w <= 0 or h <= 0:
            self.logger.debug("Play area not laid out (%sx%s), skipping spawn", w, h)
            return []

        count = config.max_concurrent_targets - len(exclude)
        placed: List[Target] = []
        for _ in range(max(0, count)):
            occupied = list(exclude) + placed
            candidate = self._candidate(config, play_area, now_ms)
            for _attempt in range(self.scoring.spawn_attempts):
                if not any(candidate.overlaps(o) for o in occupied):
                    break
                candidate = self._candidate(config, play_area, now_ms)
            else:
                self.logger.debug("No free spot after %s attempts, accepting overlap",
                                  self.scoring.spawn_attempts)
            placed.append(candidate)

        if placed:
            self.logger.debug("Spawned %s target(s): %s", len(placed), placed)
        return placed

    def spawn_recoil_anchor(
        self,
        config: SessionConfig,
        play_area: Tuple[float, float],
        now_ms: float = 0.0,
    ) -> Optional[Target]:
        w, h = play_area
        if w <= 0 or h <= 0:
            return None
        d = config.target_diameter
        return Target(
            max(0.0, (w - d) / 2.0),
            max(0.0, (h - d) / 2.0),
            d,
            pattern=MovementPattern.STATIC,
            spawned_at_ms=now_ms,
            points=0,
        )
