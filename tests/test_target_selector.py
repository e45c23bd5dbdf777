import random

import pytest

from bubblepop.controllers.target_selector import TargetSelector
from bubblepop.domain.catalogs import ALPHABET, ALPHABET_CATALOG, COLOR_CATALOG, NUMBERS_CATALOG
from bubblepop.domain.enums import Difficulty, Operator
from bubblepop.domain.targets import ColorTarget, LetterTarget


def test_sequential_starts_at_first_entry_and_wraps():
    s = TargetSelector(random.Random(0))
    first = s.select_target("alphabet")
    assert isinstance(first, LetterTarget)
    assert first.value == "A" and first.index == 0

    nxt = s.select_target(ALPHABET_CATALOG, first.index)
    assert nxt.value == "B"

    last = len(ALPHABET) - 1
    wrapped = s.select_target("alphabet", last)
    assert wrapped.value == "A"


def test_numbers_catalog_is_sequential_too():
    s = TargetSelector(random.Random(0))
    values = []
    prev = None
    for _ in range(len(NUMBERS_CATALOG) + 1):
        t = s.select_target("numbers", prev)
        values.append(t.value)
        prev = t.index
    assert values[0] == "1"
    assert values[-1] == values[0]


def test_random_colors_avoid_immediate_repeat():
    s = TargetSelector(random.Random(7))
    prev = None
    for _ in range(200):
        t = s.select_target(COLOR_CATALOG, prev)
        assert isinstance(t, ColorTarget)
        assert t.index != prev
        prev = t.index


def test_random_selection_eventually_covers_catalog():
    s = TargetSelector(random.Random(3))
    seen = {s.select_target("colors").value.name for _ in range(300)}
    assert len(seen) == len(COLOR_CATALOG)


@pytest.mark.parametrize("difficulty,top", [(Difficulty.EASY, 5), (Difficulty.HARD, 10)])
def test_arithmetic_operands_stay_in_range(difficulty, top):
    s = TargetSelector(random.Random(11))
    for _ in range(500):
        p = s.arithmetic_problem(difficulty)
        assert 1 <= p.operand1 <= top
        assert 1 <= p.operand2 <= top


def test_subtraction_never_goes_negative():
    s = TargetSelector(random.Random(42))
    subtractions = 0
    for _ in range(1000):
        p = s.arithmetic_problem(Difficulty.HARD)
        assert p.answer >= 0
        if p.operator is Operator.SUBTRACTION:
            subtractions += 1
            assert p.operand2 <= p.operand1
    assert subtractions > 0


def test_explicit_max_operand_overrides_difficulty():
    s = TargetSelector(random.Random(5))
    for _ in range(200):
        p = s.arithmetic_problem(Difficulty.EASY, max_operand=2)
        assert p.operand1 <= 2 and p.operand2 <= 2
