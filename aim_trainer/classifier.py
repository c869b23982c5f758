"""
Hit/miss resolution, scoring and recoil tracking samples.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from aim_trainer.config import ScoringConfig, SessionConfig
from aim_trainer.input_tracker import PointerEvent
from aim_trainer.session_log import SessionLog
from aim_trainer.targets import Target


@dataclass(frozen=True)
class Resolution:
    hit: Optional[Target] = None
    miss_vector: Optional[Tuple[float, float]] = None
    score_awarded: int = 0
    counted: bool = False


IGNORED = Resolution()


class HitClassifier:
    def __init__(self, scoring: Optional[ScoringConfig] = None):
        self.scoring = scoring or ScoringConfig()
        self.logger = logging.getLogger("HitClassifier")

    def combo_bonus(self, combo: int) -> int:
        return min(max(0, combo) * self.scoring.combo_step, self.scoring.combo_cap)

    def time_bonus(self, latency_ms: float) -> int:
        window = self.scoring.time_bonus_window_ms
        if window <= 0:
            return 0
        frac = 1.0 - max(0.0, latency_ms) / window
        return int(round(max(0.0, self.scoring.time_bonus_max * frac)))

    def precision(self, error_distance: float) -> float:
        return max(0.0, 100.0 - self.scoring.precision_k * error_distance)

    def resolve(
        self,
        event: PointerEvent,
        active_targets: Sequence[Target],
        log: SessionLog,
        config: SessionConfig,
        play_area: Tuple[float, float],
        now_ms: float,
    ) -> Resolution:
        w, h = play_area
        if not (0 <= event.x <= w and 0 <= event.y <= h):
            self.logger.debug("Click outside play area at (%.1f, %.1f), ignored", event.x, event.y)
            return IGNORED
        if not active_targets:
            self.logger.debug("Click with no active target, ignored")
            return IGNORED

        nearest = min(active_targets, key=lambda t: t.distance_to(event.pos))
        if nearest.check_collision(event.pos):
            latency = max(0.0, now_ms - nearest.spawned_at_ms)
            points = (self.scoring.base_score(config.movement_pattern)
                      + self.combo_bonus(log.combo_current)
                      + self.time_bonus(latency))
            log.record_hit(latency, points)
            self.logger.debug("Hit target %s after %.0f ms for %s points (combo %s)",
                              nearest.id, latency, points, log.combo_current)
            return Resolution(hit=nearest, score_awarded=points, counted=True)

        cx, cy = nearest.center
        offset = (event.x - cx, event.y - cy)
        bearing = (cx - w / 2.0, cy - h / 2.0)
        log.record_miss(offset, bearing)
        self.logger.debug("Miss by (%.1f, %.1f) from target %s", offset[0], offset[1], nearest.id)
        return Resolution(miss_vector=offset, counted=True)

    def track(
        self,
        pointer: Tuple[float, float],
        trajectory_position: Tuple[float, float],
        log: SessionLog,
        now_ms: float,
    ) -> float:
        error = math.hypot(pointer[0] - trajectory_position[0], pointer[1] - trajectory_position[1])
        log.record_tracking_sample(error, now_ms)
        return self.precision(error)
