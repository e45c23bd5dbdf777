from __future__ import annotations

import random
from typing import Optional

from bubblepop.domain.catalogs import CATALOGS, TargetCatalog
from bubblepop.domain.enums import Difficulty, Operator, SelectionOrder
from bubblepop.domain.targets import ArithmeticProblem, Target, target_for


DEFAULT_MAX_OPERAND = {Difficulty.EASY: 5, Difficulty.MEDIUM: 10, Difficulty.HARD: 10}


class TargetSelector:
    """Chooses the next round's target.

    Enumerable catalogs advance either sequentially (wrapping around) or at
    random; arithmetic problems are generated fresh. There are no error
    conditions: a valid Target always comes back.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def select_target(self, mode: str | TargetCatalog, previous_index: Optional[int] = None) -> Target:
        catalog = mode if isinstance(mode, TargetCatalog) else CATALOGS[str(mode)]
        n = len(catalog)
        if n == 0:
            return target_for(catalog.kind, None)

        if catalog.order is SelectionOrder.SEQUENTIAL:
            index = 0 if previous_index is None else (int(previous_index) + 1) % n
        else:
            index = self._random_index(n, previous_index if catalog.avoid_repeat else None)

        return target_for(catalog.kind, catalog.values[index], index)

    def arithmetic_problem(
        self,
        difficulty: Difficulty = Difficulty.EASY,
        *,
        max_operand: Optional[int] = None,
    ) -> ArithmeticProblem:
        """Addition or subtraction (50/50) with operands in 1..max_operand.

        Subtraction draws operand2 from 1..operand1 so the answer is never
        negative.
        """
        top = int(max_operand if max_operand is not None else DEFAULT_MAX_OPERAND.get(difficulty, 5))
        top = max(1, top)
        if self._rng.random() > 0.5:
            a = self._rng.randint(1, top)
            b = self._rng.randint(1, top)
            return ArithmeticProblem.build(a, b, Operator.ADDITION)
        a = self._rng.randint(1, top)
        b = self._rng.randint(1, a)
        return ArithmeticProblem.build(a, b, Operator.SUBTRACTION)

    def _random_index(self, n: int, avoid: Optional[int]) -> int:
        if avoid is None or n < 2 or not (0 <= int(avoid) < n):
            return self._rng.randrange(n)
        # Uniform over the other n - 1 entries.
        i = self._rng.randrange(n - 1)
        return i if i < int(avoid) else i + 1
