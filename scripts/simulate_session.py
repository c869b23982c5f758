#!/usr/bin/env python3
"""
Drive a full practice session headlessly with a simulated player and print
the result summary as JSON.

Usage: scripts/simulate_session.py [scenario] [--seed N] [--aim-error PX]
"""
import argparse
import json
import logging
import random
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from aim_trainer.config import SCENARIOS, scenario_config
from aim_trainer.game_engine import AimTrainerEngine, Phase
from aim_trainer.input_tracker import PointerEvent, PointerKind

FRAME_MS = 1000.0 / 60.0
PLAY_AREA = (800, 600)


def play(scenario: str, seed: int, aim_error: float, reaction_ms: float, duration: int) -> dict:
    rng = random.Random(seed)
    engine = AimTrainerEngine(PLAY_AREA, scenario_config(scenario, duration_seconds=duration),
                              rng=random.Random(seed + 1))
    engine.start()
    next_shot = reaction_ms

    while engine.phase in (Phase.COUNTDOWN, Phase.RUNNING):
        engine.tick(FRAME_MS)
        if engine.phase != Phase.RUNNING:
            continue
        if engine.config.is_recoil:
            aim = engine.recoil_target_position()
            if aim is None:
                continue
            x = aim[0] + rng.gauss(0.0, aim_error)
            y = aim[1] + rng.gauss(0.0, aim_error)
            if not engine.snapshot().tracking:
                engine.handle_pointer(PointerEvent(aim[0], aim[1], PointerKind.DOWN))
            else:
                engine.handle_pointer(PointerEvent(x, y, PointerKind.MOVE))
            continue

        next_shot -= FRAME_MS
        if next_shot > 0 or not engine.targets:
            continue
        cx, cy = rng.choice(engine.targets).center
        engine.handle_pointer(PointerEvent(cx + rng.gauss(0.0, aim_error),
                                           cy + rng.gauss(0.0, aim_error), PointerKind.DOWN))
        next_shot = max(FRAME_MS, rng.gauss(reaction_ms, reaction_ms * 0.25))

    return engine.result.to_dict() if engine.result else {}


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("scenario", nargs="?", default="classic-moving", choices=sorted(SCENARIOS.keys()))
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument("--aim-error", type=float, default=18.0, help="std-dev of aim error in px")
    parser.add_argument("--reaction-ms", type=float, default=450.0)
    parser.add_argument("--duration", type=int, default=15)
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING)
    summary = play(args.scenario, args.seed, args.aim_error, args.reaction_ms, args.duration)
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
