"""
Precomputed recoil trajectories.

Each pattern is a cumulative offset table sampled at a fixed tick interval.
Negative y is an upward climb in screen coordinates. Tables are built once
at import and are read-only, so any number of sessions can share them.
"""
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

import numpy as np

TICK_MS = 80
SPRAY_DURATION_MS = 2400


@dataclass(frozen=True)
class TrajectoryPoint:
    """One sample of a recoil trajectory, relative to the spray origin."""

    offset: Tuple[float, float]

    @property
    def x(self) -> float:
        return self.offset[0]

    @property
    def y(self) -> float:
        return self.offset[1]


@dataclass(frozen=True, eq=False)
class RecoilPattern:
    name: str
    display_name: str
    offsets: np.ndarray
    tick_ms: int = TICK_MS

    def __len__(self) -> int:
        return int(self.offsets.shape[0])

    @property
    def duration_ms(self) -> int:
        return len(self) * self.tick_ms

    def point(self, index: int) -> TrajectoryPoint:
        x, y = self.offsets[index]
        return TrajectoryPoint((float(x), float(y)))

    def points(self) -> List[TrajectoryPoint]:
        return [self.point(i) for i in range(len(self))]

    def __repr__(self) -> str:
        return f"RecoilPattern(name='{self.name}', points={len(self)}, tick_ms={self.tick_ms})"


def _from_steps(dx: np.ndarray, dy: np.ndarray) -> np.ndarray:
    # first shot lands on the origin, every later shot adds its kick
    steps = np.stack([dx, dy], axis=1).astype(np.float64)
    offsets = np.zeros_like(steps)
    offsets[1:] = np.cumsum(steps[:-1], axis=0)
    return offsets


def _freeze(offsets: np.ndarray) -> np.ndarray:
    offsets = np.ascontiguousarray(offsets, dtype=np.float64)
    offsets.setflags(write=False)
    return offsets


def _rifle(n: int) -> np.ndarray:
    # hard vertical climb for the first third, then drift left and back right
    i = np.arange(n)
    dy = -np.linspace(9.0, 2.5, n)
    dx = np.where(i < n // 3, 0.0, np.where(i < 2 * n // 3, -4.5, 4.0))
    return _from_steps(dx, dy)


def _smg(n: int) -> np.ndarray:
    i = np.arange(n)
    dy = -np.linspace(5.0, 1.5, n)
    dx = 4.0 * np.sin(2.0 * np.pi * i / 8.0)
    return _from_steps(dx, dy)


def _lmg(n: int) -> np.ndarray:
    i = np.arange(n)
    dy = -np.full(n, 3.5)
    dx = 6.0 * np.sin(2.0 * np.pi * i / 15.0)
    return _from_steps(dx, dy)


def _sway(n: int) -> np.ndarray:
    t = np.arange(n) * TICK_MS / 1000.0
    x = 40.0 * np.sin(2.0 * np.pi * t / 1.2)
    y = np.zeros(n)
    return np.stack([x, y], axis=1)


def _build_patterns() -> Mapping[str, RecoilPattern]:
    n = SPRAY_DURATION_MS // TICK_MS
    builders = (
        ("rifle", "Assault Rifle", _rifle),
        ("smg", "SMG", _smg),
        ("lmg", "LMG", _lmg),
        ("sway", "Lateral Sway", _sway),
    )
    patterns = {}
    for name, display_name, build in builders:
        patterns[name] = RecoilPattern(name=name, display_name=display_name,
                                       offsets=_freeze(build(n)))
    logging.getLogger("RecoilPatterns").debug(
        "Precomputed %s recoil patterns (%s points each)", len(patterns), n)
    return MappingProxyType(patterns)


PATTERNS: Mapping[str, RecoilPattern] = _build_patterns()


def pattern_names() -> List[str]:
    return sorted(PATTERNS.keys())


def get_pattern(name: Optional[str]) -> Optional[RecoilPattern]:
    if name is None:
        return None
    pattern = PATTERNS.get(name)
    if pattern is None:
        logging.getLogger("RecoilPatterns").warning("Recoil pattern not found: %s", name)
    return pattern
