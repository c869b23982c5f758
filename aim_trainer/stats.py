"""
Post-session statistics.

Everything here is a pure function of a frozen SessionLog: no NaN, no
exceptions on empty input, and repeated calls return equal results.
"""
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from aim_trainer.config import ScoringConfig
from aim_trainer.session_log import SessionLog, TrackingSample

MIN_SUGGESTION_MISSES = 5
OVERSHOOT_RATIO_HIGH = 0.65
OVERSHOOT_RATIO_LOW = 0.35


class Verdict(Enum):
    INSUFFICIENT_DATA = "insufficient-data"
    LOWER = "lower"
    RAISE = "raise"
    BALANCED = "balanced"


@dataclass(frozen=True)
class SensitivitySuggestion:
    verdict: Verdict
    overshoots: int
    undershoots: int
    ratio: float
    adjustment_pct: Tuple[int, int]
    message: str
    sensitivity: Optional[float] = None
    suggested_range: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class HistogramBin:
    start: float
    end: float
    count: int


@dataclass(frozen=True)
class ResultSummary:
    accuracy_pct: float
    hits: int
    misses: int
    score: int
    combo_max: int
    avg_hit_latency_ms: float
    hit_latency_std_ms: float
    hit_latency_histogram: Tuple[HistogramBin, ...]
    miss_scatter: Tuple[Tuple[float, float], ...]
    recoil_control_pct: float
    time_on_target_pct: float
    tracking_samples: int
    sensitivity_suggestion: SensitivitySuggestion

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["sensitivity_suggestion"]["verdict"] = self.sensitivity_suggestion.verdict.value
        return data


def accuracy(hits: int, misses: int) -> float:
    total = hits + misses
    if total <= 0:
        return 0.0
    return hits / total * 100.0


def latency_histogram(latencies: Sequence[float]) -> Tuple[HistogramBin, ...]:
    if not latencies:
        return ()
    values = np.asarray(latencies, dtype=np.float64)
    n_bins = min(10, max(5, len(values) // 3))
    lo = float(values.min())
    hi = float(values.max())
    width = (hi - lo) / n_bins or 1.0
    idx = np.floor((values - lo) / width).astype(int)
    # the maximum lands exactly on the upper edge
    idx = np.clip(idx, 0, n_bins - 1)
    counts = np.bincount(idx, minlength=n_bins)
    return tuple(
        HistogramBin(lo + i * width, lo + (i + 1) * width, int(counts[i]))
        for i in range(n_bins)
    )


def classify_misses(
    offsets: Sequence[Tuple[float, float]],
    bearings: Sequence[Tuple[float, float]],
) -> Tuple[int, int]:
    """Count overshoots and undershoots.

    A miss overshoots when it lands on the far side of the target as seen
    from the play-area centre. Targets sitting on the centre fall back to
    the horizontal rule: right of the target counts as an overshoot.
    """
    overshoots = 0
    undershoots = 0
    for i, (ox, oy) in enumerate(offsets):
        bx, by = bearings[i] if i < len(bearings) else (0.0, 0.0)
        if bx == 0.0 and by == 0.0:
            far = ox > 0
        else:
            far = (ox * bx + oy * by) > 0
        if far:
            overshoots += 1
        else:
            undershoots += 1
    return overshoots, undershoots


def sensitivity_suggestion(
    overshoots: int,
    undershoots: int,
    sensitivity: Optional[float] = None,
) -> SensitivitySuggestion:
    total = overshoots + undershoots
    if total < MIN_SUGGESTION_MISSES:
        return SensitivitySuggestion(
            Verdict.INSUFFICIENT_DATA, overshoots, undershoots, 0.0, (0, 0),
            "Not enough miss data for a suggestion. Keep practicing!",
            sensitivity,
        )

    ratio = overshoots / total
    if ratio > OVERSHOOT_RATIO_HIGH:
        verdict, adjustment = Verdict.LOWER, (10, 15)
        message = ("You're frequently overshooting your targets. Your sensitivity might be "
                   "too high: try lowering it by 10-15% for better control.")
    elif ratio < OVERSHOOT_RATIO_LOW:
        verdict, adjustment = Verdict.RAISE, (5, 10)
        message = ("You're frequently undershooting your targets. Your sensitivity might be "
                   "too low: try raising it by 5-10% to reach targets faster.")
    else:
        verdict, adjustment = Verdict.BALANCED, (0, 0)
        message = "Your aim seems balanced. Your current sensitivity is a good fit, focus on consistency."

    suggested = None
    if sensitivity is not None and sensitivity > 0:
        sign = -1.0 if verdict == Verdict.LOWER else 1.0
        a = round(sensitivity * (1.0 + sign * adjustment[0] / 100.0), 3)
        b = round(sensitivity * (1.0 + sign * adjustment[1] / 100.0), 3)
        suggested = (min(a, b), max(a, b))
        if verdict == Verdict.BALANCED:
            message += f" (current: {sensitivity:g})"
        else:
            message += f" (current: {sensitivity:g}, try {suggested[0]:g}-{suggested[1]:g})"

    return SensitivitySuggestion(verdict, overshoots, undershoots, ratio, adjustment,
                                 message, sensitivity, suggested)


def _recoil_metrics(samples: Sequence[TrackingSample], scoring: ScoringConfig,
                    target_diameter: Optional[float]) -> Tuple[float, float]:
    if not samples:
        return 0.0, 0.0
    errors = np.fromiter((s.error_distance for s in samples), dtype=np.float64, count=len(samples))
    precision = np.maximum(0.0, 100.0 - scoring.precision_k * errors)
    control = float(precision.mean())
    on_target = 0.0
    if target_diameter:
        on_target = float((errors < target_diameter / 2.0).mean() * 100.0)
    return control, on_target


def summarize(
    log: SessionLog,
    scoring: Optional[ScoringConfig] = None,
    target_diameter: Optional[float] = None,
    sensitivity: Optional[float] = None,
) -> ResultSummary:
    scoring = scoring or ScoringConfig()
    latencies = tuple(log.hit_latencies_ms)

    if latencies:
        values = np.asarray(latencies, dtype=np.float64)
        avg = float(values.mean())
        std = float(values.std()) if len(values) > 1 else 0.0
    else:
        avg = 0.0
        std = 0.0

    control, on_target = _recoil_metrics(tuple(log.tracking_samples), scoring, target_diameter)
    overshoots, undershoots = classify_misses(log.miss_offsets, log.miss_bearings)

    return ResultSummary(
        accuracy_pct=accuracy(log.hits, log.misses),
        hits=log.hits,
        misses=log.misses,
        score=log.score,
        combo_max=max(log.combo_max, log.combo_current),
        avg_hit_latency_ms=avg,
        hit_latency_std_ms=std,
        hit_latency_histogram=latency_histogram(latencies),
        miss_scatter=tuple((float(x), float(y)) for x, y in log.miss_offsets),
        recoil_control_pct=control,
        time_on_target_pct=on_target,
        tracking_samples=len(log.tracking_samples),
        sensitivity_suggestion=sensitivity_suggestion(overshoots, undershoots, sensitivity),
    )
