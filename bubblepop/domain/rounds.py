from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from bubblepop.domain.enums import Difficulty, RoundPhase
from bubblepop.domain.targets import Target


@dataclass
class Item:
    """One tappable element of a round.

    Grid items only use `item_id`, `payload` and `popped`; falling items also
    carry their spatial parameters. Items are never reused: a replacement is
    a new Item with a new id.
    """

    item_id: str
    payload: Any
    popped: bool = False
    x: Optional[float] = None
    size: Optional[float] = None
    speed: Optional[float] = None
    y_start: Optional[float] = None
    float_delay_ms: Optional[int] = None

    def frozen_copy(self) -> "ItemView":
        return ItemView(
            item_id=self.item_id,
            payload=self.payload,
            popped=self.popped,
            x=self.x,
            size=self.size,
            speed=self.speed,
            y_start=self.y_start,
            float_delay_ms=self.float_delay_ms,
        )


@dataclass(frozen=True)
class ItemView:
    """Read-only projection of an Item handed to the rendering layer."""

    item_id: str
    payload: Any
    popped: bool
    x: Optional[float] = None
    size: Optional[float] = None
    speed: Optional[float] = None
    y_start: Optional[float] = None
    float_delay_ms: Optional[int] = None


@dataclass
class Round:
    """Aggregate state of a single round.

    `remaining` counts target items still unpopped. `token` is the engine
    generation that created the round; callbacks compare against it.
    """

    index: int
    target: Target
    items: List[Item] = field(default_factory=list)
    remaining: int = 0
    required: int = 0
    found: int = 0
    time_remaining: Optional[int] = None
    completed: bool = False
    timed_out: bool = False
    progress_reported: bool = False
    token: int = 0

    @property
    def is_first(self) -> bool:
        return self.index == 0

    def find(self, item_id: str) -> Optional[Item]:
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None

    def count_matching(self, *, unpopped_only: bool = False) -> int:
        n = 0
        for item in self.items:
            if unpopped_only and item.popped:
                continue
            if self.target.matches(item.payload):
                n += 1
        return n


@dataclass(frozen=True)
class RoundSnapshot:
    """Read-only projection returned by `RoundEngine.get_round_snapshot()`."""

    phase: RoundPhase
    round_index: int
    target: Optional[Target]
    items: Tuple[ItemView, ...]
    remaining: int
    score: int
    time_remaining: Optional[int] = None
    elapsed_seconds: int = 0
    difficulty: Difficulty = Difficulty.EASY
    streak: int = 0


@dataclass(frozen=True)
class SessionSummary:
    """Results shown when a timed session ends."""

    game: str
    score: int
    rounds_completed: int
    elapsed_seconds: int
    high_score: int
    timed_out: bool = True


def format_clock(seconds: int) -> str:
    """Format whole seconds as M:SS."""
    s = max(0, int(seconds))
    return "{}:{:02d}".format(s // 60, s % 60)


__all__ = [
    "Item",
    "ItemView",
    "Round",
    "RoundSnapshot",
    "SessionSummary",
    "format_clock",
]
