"""
Session configuration, scoring constants and scenario presets.
"""
import json
import logging
import math
import os
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from aim_trainer.recoil_patterns import PATTERNS


class MovementPattern(Enum):
    STATIC = "static"
    LINEAR = "linear"
    STRAFING = "strafing"


class SpawnPolicy(Enum):
    REPLACE_ON_HIT = "replace-on-hit"
    FIXED_GRID = "fixed-grid"


class TargetSpeed(Enum):
    """Speed presets in pixels per reference frame."""
    STATIONARY = 0.0
    SLOW = 1.5
    MEDIUM = 3.0
    FAST = 5.0


MIN_DURATION_S = 5
MAX_DURATION_S = 300
MIN_DIAMETER = 10.0
MAX_DIAMETER = 200.0
MAX_CONCURRENT = 12
MAX_SPEED = 20.0

DURATION_CHOICES = (15, 30, 60, 90)


def _clamp(value, lo, hi):
    return max(lo, min(hi, value))


def _enum_value(enum_cls, raw, default):
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(raw)
    except (TypeError, ValueError):
        logging.getLogger("SessionConfig").warning(
            "Unknown %s '%s', using '%s'", enum_cls.__name__, raw, default.value)
        return default


def _number(cast, raw, default, name: str, logger_name: str = "SessionConfig"):
    try:
        return cast(raw)
    except (TypeError, ValueError, OverflowError):
        logging.getLogger(logger_name).warning("Invalid %s %r, using %r", name, raw, default)
        return default


@dataclass(frozen=True)
class SessionConfig:
    """Immutable description of one practice drill."""

    duration_seconds: int = 30
    target_diameter: float = 50.0
    movement_pattern: MovementPattern = MovementPattern.STATIC
    spawn_policy: SpawnPolicy = SpawnPolicy.REPLACE_ON_HIT
    max_concurrent_targets: int = 1
    recoil_pattern_id: Optional[str] = None
    target_speed: float = TargetSpeed.MEDIUM.value
    sensitivity: Optional[float] = None
    scenario: Optional[str] = None

    @property
    def is_recoil(self) -> bool:
        return self.recoil_pattern_id is not None

    @property
    def is_moving(self) -> bool:
        return self.movement_pattern != MovementPattern.STATIC and self.target_speed > 0

    def is_valid(self) -> bool:
        if self.duration_seconds < MIN_DURATION_S:
            return False
        if self.target_diameter <= 0 or self.max_concurrent_targets < 1:
            return False
        if self.recoil_pattern_id is not None and (
                not isinstance(self.recoil_pattern_id, str) or self.recoil_pattern_id not in PATTERNS):
            return False
        return True

    def sanitized(self) -> "SessionConfig":
        """Return a copy with every field clamped into its valid range."""
        logger = logging.getLogger("SessionConfig")
        changes: Dict[str, Any] = {}

        duration = int(_clamp(float(self.duration_seconds), MIN_DURATION_S, MAX_DURATION_S))
        if duration != self.duration_seconds:
            changes["duration_seconds"] = duration

        diameter = float(_clamp(float(self.target_diameter), MIN_DIAMETER, MAX_DIAMETER))
        if diameter != self.target_diameter:
            changes["target_diameter"] = diameter

        concurrent = int(_clamp(float(self.max_concurrent_targets), 1, MAX_CONCURRENT))
        if concurrent != self.max_concurrent_targets:
            changes["max_concurrent_targets"] = concurrent

        speed = float(_clamp(float(self.target_speed), 0.0, MAX_SPEED))
        if speed != self.target_speed:
            changes["target_speed"] = speed

        if self.sensitivity is not None and not (
                isinstance(self.sensitivity, (int, float)) and 0 < self.sensitivity < math.inf):
            changes["sensitivity"] = None

        if self.recoil_pattern_id is not None and (
                not isinstance(self.recoil_pattern_id, str) or self.recoil_pattern_id not in PATTERNS):
            changes["recoil_pattern_id"] = None

        for name, value in changes.items():
            logger.warning("Clamped %s: %r -> %r", name, getattr(self, name), value)
        return replace(self, **changes) if changes else self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration_seconds": self.duration_seconds,
            "target_diameter": self.target_diameter,
            "movement_pattern": self.movement_pattern.value,
            "spawn_policy": self.spawn_policy.value,
            "max_concurrent_targets": self.max_concurrent_targets,
            "recoil_pattern_id": self.recoil_pattern_id,
            "target_speed": self.target_speed,
            "sensitivity": self.sensitivity,
            "scenario": self.scenario,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionConfig":
        default = cls()
        speed = data.get("target_speed", default.target_speed)
        if isinstance(speed, str):
            # accept preset names ("slow", "fast") as well as numbers
            preset = speed.upper()
            if preset in TargetSpeed.__members__:
                speed = TargetSpeed[preset].value
            else:
                logging.getLogger("SessionConfig").warning(
                    "Unknown speed preset '%s', using %s", speed, default.target_speed)
                speed = default.target_speed
        return cls(
            duration_seconds=_number(int, data.get("duration_seconds", default.duration_seconds),
                                     default.duration_seconds, "duration_seconds"),
            target_diameter=_number(float, data.get("target_diameter", default.target_diameter),
                                    default.target_diameter, "target_diameter"),
            movement_pattern=_enum_value(
                MovementPattern, data.get("movement_pattern", default.movement_pattern.value),
                default.movement_pattern),
            spawn_policy=_enum_value(
                SpawnPolicy, data.get("spawn_policy", default.spawn_policy.value),
                default.spawn_policy),
            max_concurrent_targets=_number(int, data.get("max_concurrent_targets", default.max_concurrent_targets),
                                           default.max_concurrent_targets, "max_concurrent_targets"),
            recoil_pattern_id=data.get("recoil_pattern_id"),
            target_speed=_number(float, speed, default.target_speed, "target_speed"),
            sensitivity=data.get("sensitivity"),
            scenario=data.get("scenario"),
        ).sanitized()


def _default_base_scores() -> Dict[MovementPattern, int]:
    return {
        MovementPattern.STATIC: 10,
        MovementPattern.LINEAR: 20,
        MovementPattern.STRAFING: 30,
    }


@dataclass(frozen=True)
class ScoringConfig:
    """Tunable constants for scoring, timing and tracking precision."""

    base_scores: Dict[MovementPattern, int] = field(default_factory=_default_base_scores)
    combo_step: int = 2
    combo_cap: int = 20
    time_bonus_max: int = 50
    time_bonus_window_ms: float = 1500.0
    precision_k: float = 2.0
    reference_frame_ms: float = 1000.0 / 60.0
    strafe_min_ms: float = 1000.0
    strafe_max_ms: float = 3000.0
    countdown_ticks: int = 3
    clock_interval_ms: float = 1000.0
    spawn_attempts: int = 30

    def base_score(self, pattern: MovementPattern) -> int:
        return self.base_scores.get(pattern, 10)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScoringConfig":
        logger = logging.getLogger("ScoringConfig")
        default = cls()
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            raw = data[f.name]
            if f.name == "base_scores":
                if not isinstance(raw, dict):
                    logger.warning("'base_scores' must be an object, ignoring")
                    continue
                scores = dict(default.base_scores)
                for key, value in raw.items():
                    pattern = _enum_value(MovementPattern, key, MovementPattern.STATIC)
                    scores[pattern] = _number(int, value, scores[pattern],
                                              f"base score for {pattern.value}", "ScoringConfig")
                kwargs["base_scores"] = scores
                continue
            current = getattr(default, f.name)
            if (not isinstance(raw, (int, float)) or isinstance(raw, bool)
                    or not math.isfinite(raw) or raw < 0):
                logger.warning("Invalid scoring value %s=%r, keeping %r", f.name, raw, current)
                continue
            kwargs[f.name] = type(current)(raw)
        scoring = replace(default, **kwargs)
        if scoring.strafe_max_ms < scoring.strafe_min_ms:
            logger.warning("strafe_max_ms below strafe_min_ms, swapping")
            scoring = replace(scoring, strafe_min_ms=scoring.strafe_max_ms,
                              strafe_max_ms=scoring.strafe_min_ms)
        if scoring.reference_frame_ms <= 0 or scoring.clock_interval_ms <= 0:
            logger.warning("Non-positive frame or clock interval, using defaults")
            scoring = replace(scoring, reference_frame_ms=default.reference_frame_ms,
                              clock_interval_ms=default.clock_interval_ms)
        return scoring


def _build_scenarios() -> Dict[str, Dict[str, Any]]:
    scenarios: Dict[str, Dict[str, Any]] = {
        "classic-static": {
            "movement_pattern": MovementPattern.STATIC,
            "spawn_policy": SpawnPolicy.REPLACE_ON_HIT,
            "max_concurrent_targets": 1,
            "target_diameter": 50.0,
            "target_speed": TargetSpeed.STATIONARY.value,
        },
        "classic-moving": {
            "movement_pattern": MovementPattern.LINEAR,
            "spawn_policy": SpawnPolicy.REPLACE_ON_HIT,
            "max_concurrent_targets": 1,
            "target_diameter": 50.0,
            "target_speed": TargetSpeed.MEDIUM.value,
        },
        "strafe-duel": {
            "movement_pattern": MovementPattern.STRAFING,
            "spawn_policy": SpawnPolicy.REPLACE_ON_HIT,
            "max_concurrent_targets": 1,
            "target_diameter": 45.0,
            "target_speed": TargetSpeed.FAST.value,
        },
        "grid-flick": {
            "movement_pattern": MovementPattern.STATIC,
            "spawn_policy": SpawnPolicy.FIXED_GRID,
            "max_concurrent_targets": 3,
            "target_diameter": 40.0,
            "target_speed": TargetSpeed.STATIONARY.value,
        },
    }
    for name in PATTERNS:
        scenarios[f"recoil-{name}"] = {
            "movement_pattern": MovementPattern.STATIC,
            "spawn_policy": SpawnPolicy.REPLACE_ON_HIT,
            "max_concurrent_targets": 1,
            "target_diameter": 50.0,
            "target_speed": TargetSpeed.STATIONARY.value,
            "recoil_pattern_id": name,
        }
    return scenarios


SCENARIOS: Dict[str, Dict[str, Any]] = _build_scenarios()
DEFAULT_SCENARIO = "classic-static"


def scenario_config(name: str, **overrides) -> SessionConfig:
    """Build a sanitized SessionConfig from a named preset."""
    preset = SCENARIOS.get(name)
    if preset is None:
        logging.getLogger("SessionConfig").warning(
            "Unknown scenario '%s', using '%s'", name, DEFAULT_SCENARIO)
        name = DEFAULT_SCENARIO
        preset = SCENARIOS[name]
    values = dict(preset)
    values.update(overrides)
    values["scenario"] = name
    return SessionConfig(**values).sanitized()


def load_settings(path: str) -> Tuple[Dict[str, SessionConfig], ScoringConfig]:
    """Load scenario overrides and scoring constants from a JSON file.

    Returns the built-in scenarios and default scoring when the file is
    missing or unreadable.
    """
    logger = logging.getLogger("SettingsLoader")
    scenarios = {name: scenario_config(name) for name in SCENARIOS}
    scoring = ScoringConfig()

    if not os.path.exists(path):
        logger.warning("Settings file not found: %s", path)
        return scenarios, scoring

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error("JSON decode error in %s: %s", path, e)
        return scenarios, scoring
    except OSError as e:
        logger.error("Failed to read settings file %s: %s", path, e)
        return scenarios, scoring

    if not isinstance(data, dict):
        logger.error("Settings root must be an object: %s", path)
        return scenarios, scoring

    if isinstance(data.get("scoring"), dict):
        try:
            scoring = ScoringConfig.from_dict(data["scoring"])
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning("Invalid scoring settings, using defaults: %s", e)

    custom = data.get("scenarios", {})
    if not isinstance(custom, dict):
        logger.warning("'scenarios' must be an object, ignoring")
        custom = {}
    for name, values in custom.items():
        if not isinstance(values, dict):
            logger.warning("Scenario '%s' must be an object, skipping", name)
            continue
        base = scenarios.get(name, SessionConfig()).to_dict()
        base.update(values)
        base["scenario"] = name
        try:
            scenarios[name] = SessionConfig.from_dict(base)
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning("Invalid scenario '%s': %s", name, e)
            continue

    logger.info("Loaded %s scenarios from %s", len(scenarios), path)
    return scenarios, scoring
