"""
Aim-training simulation engine: spawner, physics, hit classification,
recoil tracking and post-session statistics.
"""

from .config import (
    MovementPattern,
    SCENARIOS,
    ScoringConfig,
    SessionConfig,
    SpawnPolicy,
    TargetSpeed,
    load_settings,
    scenario_config,
)
from .game_engine import AimTrainerEngine, LiveSnapshot, Phase, SessionEvent, SessionState, transition
from .input_tracker import InputTracker, PointerEvent, PointerKind
from .recoil_patterns import PATTERNS, RecoilPattern, TrajectoryPoint, get_pattern
from .session_log import SessionLog, TrackingSample
from .stats import ResultSummary, SensitivitySuggestion, Verdict, summarize

__version__ = "0.1.0"

__all__ = [
    'AimTrainerEngine',
    'InputTracker',
    'LiveSnapshot',
    'MovementPattern',
    'PATTERNS',
    'Phase',
    'PointerEvent',
    'PointerKind',
    'RecoilPattern',
    'ResultSummary',
    'SCENARIOS',
    'ScoringConfig',
    'SensitivitySuggestion',
    'SessionConfig',
    'SessionEvent',
    'SessionLog',
    'SessionState',
    'SpawnPolicy',
    'TargetSpeed',
    'TrackingSample',
    'TrajectoryPoint',
    'Verdict',
    'get_pattern',
    'load_settings',
    'scenario_config',
    'summarize',
    'transition',
]
