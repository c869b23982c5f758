import os
import random
import sys
from pathlib import Path

import pytest

# Headless drivers for CI/testing
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

# Allow running the suite from a plain checkout without installing
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from aim_trainer.config import scenario_config  # noqa: E402
from aim_trainer.game_engine import AimTrainerEngine, Phase  # noqa: E402

PLAY_AREA = (800, 600)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def make_engine():
    def _make(scenario: str = "classic-static", play_area=PLAY_AREA, **overrides):
        return AimTrainerEngine(play_area, scenario_config(scenario, **overrides), rng=random.Random(99))
    return _make


@pytest.fixture
def running_engine(make_engine):
    """Engine already past its countdown."""
    def _make(scenario: str = "classic-static", **overrides):
        e = make_engine(scenario, **overrides)
        assert e.start() is True
        e.tick(3000)
        assert e.phase == Phase.RUNNING
        return e
    return _make
