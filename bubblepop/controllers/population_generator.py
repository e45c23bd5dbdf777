"""Population generation: the items presented for one round.

Three layouts are produced:

- grid:       exactly `target_count` items carrying the target payload plus
              distractors drawn from the catalog (target excluded), shuffled.
- answers:    arithmetic; exactly one item carries the answer, distractors are
              unique random integers found within a bounded number of draws.
- falling:    spatial items (x, size, speed, start delay) placed so their
              horizontal extents do not overlap, retrying a bounded number of
              times per item.

Bounded retries never fail a round: when the budget runs out the generator
accepts duplicates / overlap. The "at least one target item" invariant is
enforced structurally by force-inserting the target.
"""

from __future__ import annotations

import itertools
import logging
import random
from dataclasses import replace
from typing import Any, Iterable, List, Optional, Sequence

from bubblepop.domain.rounds import Item
from bubblepop.domain.targets import ArithmeticProblem, Target

logger = logging.getLogger(__name__)

MAX_DISTRACTOR_ATTEMPTS = 100
MAX_PLACEMENT_ATTEMPTS = 10
OVERLAP_MARGIN = 10.0


def _values(catalog: Any) -> List[Any]:
    return list(getattr(catalog, "values", catalog) or ())


def is_overlapping(candidate_x: float, candidate_size: float, items: Iterable[Item], margin: float = OVERLAP_MARGIN) -> bool:
    """True if the candidate's center is closer than the minimum distance to any item."""
    center = candidate_x + candidate_size / 2.0
    for item in items:
        if item.x is None or item.size is None:
            continue
        other = item.x + item.size / 2.0
        min_distance = (candidate_size + item.size) / 2.0 + margin
        if abs(center - other) < min_distance:
            return True
    return False


class PopulationGenerator:
    def __init__(self, rng: Optional[random.Random] = None, *, id_prefix: str = "item") -> None:
        self._rng = rng or random.Random()
        self._prefix = id_prefix
        self._ids = itertools.count(1)

    def new_id(self) -> str:
        return "{}-{}".format(self._prefix, next(self._ids))

    # ----------------------------
    # Grid
    # ----------------------------

    def generate(
        self,
        target: Target,
        total_slots: int,
        target_count: int,
        distractor_catalog: Any,
    ) -> List[Item]:
        total = max(1, int(total_slots))
        count = max(1, min(int(target_count), total))
        pool = [v for v in _values(distractor_catalog) if not target.matches(v)]

        payloads: List[Any] = [target.value] * count
        for _ in range(total - count):
            if pool:
                payloads.append(self._rng.choice(pool))
            else:
                logger.debug("No distractors available for %r; repeating target", target)
                payloads.append(target.value)

        self._rng.shuffle(payloads)
        return [Item(item_id=self.new_id(), payload=p) for p in payloads]

    def generate_uniform(self, target: Target, total_slots: int, payloads: Optional[Sequence[Any]] = None) -> List[Item]:
        """Every slot is a hit. `payloads`, when given, only varies the look."""
        total = max(1, int(total_slots))
        out: List[Item] = []
        for _ in range(total):
            payload = self._rng.choice(list(payloads)) if payloads else target.value
            out.append(Item(item_id=self.new_id(), payload=payload))
        return out

    # ----------------------------
    # Arithmetic answers
    # ----------------------------

    def generate_answers(
        self,
        problem: ArithmeticProblem,
        total_slots: int,
        max_value: int,
        *,
        max_attempts: int = MAX_DISTRACTOR_ATTEMPTS,
    ) -> List[Item]:
        total = max(1, int(total_slots))
        top = max(1, int(max_value))
        answer = problem.answer

        answers: List[int] = [answer]
        seen = {answer}
        attempts = 0
        while len(answers) < total and attempts < max_attempts:
            attempts += 1
            candidate = self._rng.randint(1, top)
            if candidate not in seen:
                seen.add(candidate)
                answers.append(candidate)

        if len(answers) < total:
            # Out of unique values: fill with repeats, never with the answer.
            logger.debug("Accepting duplicate distractors after %d attempts", attempts)
            fallback = [v for v in range(1, top + 1) if v != answer] or [answer + 1]
            while len(answers) < total:
                answers.append(self._rng.choice(fallback))

        self._rng.shuffle(answers)
        return [Item(item_id=self.new_id(), payload=a) for a in answers]

    # ----------------------------
    # Falling items
    # ----------------------------

    def create_falling_item(
        self,
        shapes: Sequence[Any],
        *,
        speed_multiplier: float = 1.0,
        field_width: float = 390.0,
        field_height: float = 844.0,
        payload: Any = None,
        float_delay_ms: Optional[int] = None,
    ) -> Item:
        size = self._rng.random() * 30 + 70
        max_x = max(0.0, float(field_width) - size)
        x = self._rng.random() * max_x
        speed = (self._rng.random() * 3 + 5) * float(speed_multiplier) * 7
        if payload is None:
            payload = self._rng.choice(list(shapes))
        if float_delay_ms is None:
            float_delay_ms = int(self._rng.random() * 500)
        return Item(
            item_id=self.new_id(),
            payload=payload,
            x=x,
            size=size,
            speed=speed,
            y_start=float(field_height) - 20,
            float_delay_ms=float_delay_ms,
        )

    def generate_falling(
        self,
        target: Target,
        count: int,
        shapes: Sequence[Any],
        *,
        speed_multiplier: float = 1.0,
        field_width: float = 390.0,
        field_height: float = 844.0,
        max_attempts: int = MAX_PLACEMENT_ATTEMPTS,
    ) -> List[Item]:
        items: List[Item] = []
        for _ in range(max(1, int(count))):
            attempts = 0
            while True:
                candidate = self.create_falling_item(
                    shapes,
                    speed_multiplier=speed_multiplier,
                    field_width=field_width,
                    field_height=field_height,
                )
                attempts += 1
                if not is_overlapping(candidate.x, candidate.size, items):
                    break
                if attempts >= max_attempts:
                    logger.debug("Accepting overlapping placement after %d attempts", attempts)
                    break
            items.append(candidate)

        self.ensure_target_present(items, target)
        return items

    def replace_item(
        self,
        items: List[Item],
        item_id: str,
        shapes: Sequence[Any],
        *,
        speed_multiplier: float = 1.0,
        field_width: float = 390.0,
        field_height: float = 844.0,
        payload: Any = None,
    ) -> Optional[Item]:
        """Swap the item `item_id` for a brand new one that starts moving at once."""
        for i, old in enumerate(items):
            if old.item_id != item_id:
                continue
            fresh = self.create_falling_item(
                shapes,
                speed_multiplier=speed_multiplier,
                field_width=field_width,
                field_height=field_height,
                payload=payload,
                float_delay_ms=0,
            )
            items[i] = fresh
            return fresh
        return None

    def ensure_target_present(self, items: List[Item], target: Target) -> bool:
        """Force one unpopped item to carry the target payload if none does.

        Returns True when an item had to be rewritten.
        """
        live = [i for i, item in enumerate(items) if not item.popped]
        if not live:
            return False
        if any(target.matches(items[i].payload) for i in live):
            return False
        pick = self._rng.choice(live)
        items[pick] = replace(items[pick], payload=target.value)
        return True

    def chance(self, probability: float) -> bool:
        return self._rng.random() < float(probability)
