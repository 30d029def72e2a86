"""
GESTURE GATE

Detect a condition, report it. Nothing else.
- Pure predicate evaluation on the input-delivery path
- No I/O, no timers, no state

A two-finger swipe down is one pointer sample with exactly two active points
where the second point sits more than `min_delta_y` below the first and the
two points are less than `max_delta_x` apart horizontally.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from risa.policy import SWIPE_MAX_DELTA_X, SWIPE_MIN_DELTA_Y


class PointerAction(Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"


@dataclass(frozen=True)
class PointerSample:
    x: float
    y: float


@dataclass(frozen=True)
class GestureEvent:
    action: PointerAction
    points: Tuple[PointerSample, ...]

    @classmethod
    def move(cls, *coords: Tuple[float, float]) -> "GestureEvent":
        """GestureEvent.move((x1, y1), (x2, y2))"""
        return cls(PointerAction.MOVE, tuple(PointerSample(x, y) for x, y in coords))


def is_swipe_down(
    event: GestureEvent,
    min_delta_y: float = SWIPE_MIN_DELTA_Y,
    max_delta_x: float = SWIPE_MAX_DELTA_X,
) -> bool:
    if event.action is not PointerAction.MOVE or len(event.points) != 2:
        return False
    first, second = event.points
    delta_y = second.y - first.y
    distance_x = abs(second.x - first.x)
    return distance_x < max_delta_x and delta_y > min_delta_y
