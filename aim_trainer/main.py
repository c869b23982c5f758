import argparse
import logging
import sys
from typing import Dict, List, Optional

import pygame

from aim_trainer.config import (
    DEFAULT_SCENARIO,
    DURATION_CHOICES,
    SCENARIOS,
    SessionConfig,
    load_settings,
    scenario_config,
)
from aim_trainer.game_engine import AimTrainerEngine, Phase
from aim_trainer.input_tracker import pointer_event_from_pygame
from aim_trainer.recoil_patterns import get_pattern

SCREEN_W, SCREEN_H = 1280, 720
HUD_H = 60


class TrainerWindow:
    """Minimal pygame host: feeds input and frame time to the engine and draws its snapshot."""

    def __init__(self, engine: AimTrainerEngine, scenarios: Dict[str, SessionConfig]):
        pygame.init()
        self.engine = engine
        self.scenarios = scenarios
        self.scenario_keys: List[str] = list(scenarios.keys())
        self.screen = pygame.display.set_mode((SCREEN_W, SCREEN_H))
        pygame.display.set_caption("Aim Sensei")
        self.clock = pygame.time.Clock()
        self.font = pygame.font.Font(None, 36)
        self.running = True
        self.engine.set_play_area(SCREEN_W, SCREEN_H - HUD_H)

    def _select(self, index: int) -> None:
        if 0 <= index < len(self.scenario_keys):
            self.engine.configure(self.scenarios[self.scenario_keys[index]])

    def _handle_events(self) -> None:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    if self.engine.phase == Phase.CONFIG:
                        self.running = False
                    else:
                        self.engine.reset()
                elif event.key in (pygame.K_SPACE, pygame.K_RETURN):
                    if self.engine.phase == Phase.FINISHED:
                        self.engine.replay()
                    else:
                        self.engine.start()
                elif pygame.K_1 <= event.key <= pygame.K_9:
                    self._select(event.key - pygame.K_1)
            else:
                pe = pointer_event_from_pygame(event, origin=(0, HUD_H),
                                               window_size=(SCREEN_W, SCREEN_H),
                                               now_ms=self.engine.now_ms)
                if pe is not None:
                    self.engine.handle_pointer(pe)

    def _text(self, msg: str, pos, color=(255, 255, 255), center: bool = False) -> None:
        surf = self.font.render(msg, True, color)
        rect = surf.get_rect(center=pos) if center else surf.get_rect(topleft=pos)
        self.screen.blit(surf, rect)

    def _draw(self) -> None:
        snap = self.engine.snapshot()
        self.screen.fill((15, 15, 18))
        pygame.draw.rect(self.screen, (30, 30, 34), pygame.Rect(0, 0, SCREEN_W, HUD_H))

        for t in snap.targets:
            r = int(t["diameter"] / 2)
            center = (int(t["x"]) + r, int(t["y"]) + r + HUD_H)
            pygame.draw.circle(self.screen, (34, 211, 238), center, r)
            pygame.draw.circle(self.screen, (0, 0, 0), center, r, 2)
        if snap.recoil_target is not None:
            x, y = snap.recoil_target
            r = int(self.engine.config.target_diameter / 2)
            color = (239, 68, 68) if snap.tracking else (34, 211, 238)
            pygame.draw.circle(self.screen, color, (int(x), int(y) + HUD_H), r, 3)

        cfg = self.engine.config
        name = cfg.scenario if cfg and cfg.scenario else "custom"
        if snap.phase == Phase.CONFIG:
            self._text(f"Scenario: {name}  (1-{len(self.scenario_keys)} to change, SPACE to start)", (20, 18))
        elif snap.phase == Phase.COUNTDOWN:
            self._text(str(snap.countdown_remaining), (SCREEN_W // 2, SCREEN_H // 2), (250, 204, 21), center=True)
        elif snap.phase == Phase.RUNNING:
            if cfg.is_recoil:
                pattern = get_pattern(cfg.recoil_pattern_id)
                self._text(f"{pattern.display_name}   Recoil control: {snap.recoil_control_pct:.0f}%", (20, 18))
            else:
                self._text(f"Score: {snap.score}   Combo: {snap.combo}   Misses: {snap.misses}", (20, 18))
            self._text(str(snap.time_remaining), (SCREEN_W - 60, 18), (250, 204, 21))
        elif snap.phase == Phase.FINISHED and self.engine.result is not None:
            res = self.engine.result
            lines = [
                f"Accuracy {res.accuracy_pct:.1f}%   Hits {res.hits}   Misses {res.misses}",
                f"Avg time/hit {res.avg_hit_latency_ms / 1000.0:.2f}s   Best combo {res.combo_max}",
                f"Recoil control {res.recoil_control_pct:.1f}%",
                res.sensitivity_suggestion.message,
                "SPACE to play again, ESC for scenarios",
            ]
            for i, line in enumerate(lines):
                self._text(line, (SCREEN_W // 2, 200 + i * 44), center=True)

    def run(self) -> None:
        try:
            while self.running:
                dt_ms = self.clock.tick(60)
                self._handle_events()
                self.engine.tick(dt_ms)
                self._draw()
                pygame.display.flip()
        finally:
            pygame.quit()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Aim Sensei practice trainer")
    parser.add_argument("--scenario", default=DEFAULT_SCENARIO, choices=sorted(SCENARIOS.keys()))
    parser.add_argument("--duration", type=int, default=None, choices=DURATION_CHOICES,
                        help="session length in seconds")
    parser.add_argument("--size", type=float, default=None, help="target diameter in pixels")
    parser.add_argument("--sensitivity", type=float, default=None,
                        help="current in-game sensitivity, echoed with the suggestion")
    parser.add_argument("--settings", default=None, help="optional JSON settings file")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    logger = logging.getLogger("main")

    if args.settings:
        scenarios, scoring = load_settings(args.settings)
    else:
        scenarios = {name: scenario_config(name) for name in SCENARIOS}
        scoring = None

    overrides = {}
    if args.duration is not None:
        overrides["duration_seconds"] = args.duration
    if args.size is not None:
        overrides["target_diameter"] = args.size
    if args.sensitivity is not None:
        overrides["sensitivity"] = args.sensitivity
    if overrides:
        scenarios = {name: SessionConfig.from_dict({**cfg.to_dict(), **overrides})
                     for name, cfg in scenarios.items()}

    try:
        engine = AimTrainerEngine(config=scenarios.get(args.scenario), scoring=scoring)
        TrainerWindow(engine, scenarios).run()
    except pygame.error as e:
        logger.error("Display unavailable: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
