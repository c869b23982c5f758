from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class PointerKind(Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"


@dataclass(frozen=True)
class PointerEvent:
    """Pointer or touch input in play-area-local coordinates.

    ``timestamp_ms`` is on the engine clock (``AimTrainerEngine.now_ms``);
    when missing, the engine uses the time of its last tick.
    """

    x: float
    y: float
    kind: PointerKind = PointerKind.DOWN
    timestamp_ms: Optional[float] = None

    @property
    def pos(self) -> Tuple[float, float]:
        return (self.x, self.y)


class InputTracker:
    """Pointer state for one session, shared by reference with the classifier."""

    def __init__(self):
        self.x = 0.0
        self.y = 0.0
        self.tracking = False
        self.inside = False
        self.last_event: Optional[PointerEvent] = None

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def update(self, event: PointerEvent, play_area: Tuple[float, float]) -> None:
        self.x = float(event.x)
        self.y = float(event.y)
        w, h = play_area
        self.inside = 0 <= self.x <= w and 0 <= self.y <= h
        if event.kind == PointerKind.DOWN:
            self.tracking = self.inside
        elif event.kind == PointerKind.UP:
            self.tracking = False
        elif not self.inside:
            # leaving the play area releases the trigger
            self.tracking = False
        self.last_event = event

    def reset(self) -> None:
        self.tracking = False
        self.inside = False
        self.last_event = None


def pointer_event_from_pygame(
    event,
    origin: Tuple[int, int] = (0, 0),
    window_size: Tuple[int, int] = (1280, 720),
    now_ms: Optional[float] = None,
) -> Optional[PointerEvent]:
    """Translate a pygame mouse or touch event; returns None for anything else."""
    import pygame

    ox, oy = origin
    if event.type in (pygame.MOUSEBUTTONDOWN, pygame.MOUSEBUTTONUP):
        # left button only
        if getattr(event, "button", 1) != 1:
            return None
        kind = PointerKind.DOWN if event.type == pygame.MOUSEBUTTONDOWN else PointerKind.UP
        x, y = event.pos
    elif event.type == pygame.MOUSEMOTION:
        kind = PointerKind.MOVE
        x, y = event.pos
    elif event.type in (pygame.FINGERDOWN, pygame.FINGERMOTION, pygame.FINGERUP):
        kind = {
            pygame.FINGERDOWN: PointerKind.DOWN,
            pygame.FINGERMOTION: PointerKind.MOVE,
            pygame.FINGERUP: PointerKind.UP,
        }[event.type]
        # finger coordinates are normalized to the window
        x = event.x * window_size[0]
        y = event.y * window_size[1]
    else:
        return None
    return PointerEvent(float(x - ox), float(y - oy), kind, now_ms)
