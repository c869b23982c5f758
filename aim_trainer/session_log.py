"""
Raw per-session event log consumed by the statistics aggregator.
"""
import logging
from dataclasses import dataclass, field
from typing import Sequence, Tuple

Vec = Tuple[float, float]


@dataclass(frozen=True)
class TrackingSample:
    error_distance: float
    timestamp_ms: float


@dataclass
class SessionLog:
    hits: int = 0
    misses: int = 0
    score: int = 0
    combo_current: int = 0
    combo_max: int = 0
    hit_latencies_ms: Sequence[float] = field(default_factory=list)
    miss_offsets: Sequence[Vec] = field(default_factory=list)
    # target centre relative to the play-area centre, one per miss
    miss_bearings: Sequence[Vec] = field(default_factory=list)
    tracking_samples: Sequence[TrackingSample] = field(default_factory=list)
    frozen: bool = False

    def __post_init__(self):
        self.logger = logging.getLogger("SessionLog")

    @property
    def resolved_events(self) -> int:
        return self.hits + self.misses

    def _writable(self, what: str) -> bool:
        if self.frozen:
            self.logger.debug("Ignoring %s on frozen log", what)
            return False
        return True

    def record_hit(self, latency_ms: float, points: int) -> None:
        if not self._writable("hit"):
            return
        self.hits += 1
        self.score += points
        self.hit_latencies_ms.append(float(latency_ms))
        self.combo_current += 1
        self.combo_max = max(self.combo_max, self.combo_current)

    def record_miss(self, offset: Vec, bearing: Vec) -> None:
        if not self._writable("miss"):
            return
        self.misses += 1
        self.miss_offsets.append((float(offset[0]), float(offset[1])))
        self.miss_bearings.append((float(bearing[0]), float(bearing[1])))
        self.fold_combo()
        self.combo_current = 0

    def record_tracking_sample(self, error_distance: float, timestamp_ms: float) -> None:
        if not self._writable("tracking sample"):
            return
        self.tracking_samples.append(TrackingSample(float(error_distance), float(timestamp_ms)))

    def fold_combo(self) -> None:
        self.combo_max = max(self.combo_max, self.combo_current)

    def freeze(self) -> "SessionLog":
        if self.frozen:
            return self
        self.fold_combo()
        self.hit_latencies_ms = tuple(self.hit_latencies_ms)
        self.miss_offsets = tuple(self.miss_offsets)
        self.miss_bearings = tuple(self.miss_bearings)
        self.tracking_samples = tuple(self.tracking_samples)
        self.frozen = True
        self.logger.debug("Log frozen: %s hits, %s misses, %s tracking samples",
                          self.hits, self.misses, len(self.tracking_samples))
        return self
