"""Targets: what the player must find in a round.

A target is one of a small tagged family of frozen dataclasses. Every target
answers two questions used by the engine:

- `matches(payload)`: does an item carrying `payload` count as a hit?
- `spoken`: how narration refers to it ("Red", "the letter B", "3 plus 2").

Targets are immutable once selected for a round.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Tuple

from bubblepop.domain.enums import Operator, TargetKind


@dataclass(frozen=True)
class ColorSpec:
    """A named learning colour with its two-stop gradient."""

    name: str
    gradient: Tuple[str, str] = ("#FFFFFF", "#FFFFFF")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Target:
    value: Any
    index: int = -1

    kind: ClassVar[TargetKind] = TargetKind.ANY

    def matches(self, payload: Any) -> bool:
        return payload == self.value

    @property
    def spoken(self) -> str:
        return str(self.value)

    @property
    def label(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class ColorTarget(Target):
    kind: ClassVar[TargetKind] = TargetKind.COLOR

    def matches(self, payload: Any) -> bool:
        # Compare by name so gradient tweaks do not break matching.
        return getattr(payload, "name", payload) == getattr(self.value, "name", self.value)

    @property
    def spoken(self) -> str:
        return getattr(self.value, "name", str(self.value))

    @property
    def label(self) -> str:
        return self.spoken


@dataclass(frozen=True)
class LetterTarget(Target):
    kind: ClassVar[TargetKind] = TargetKind.LETTER


@dataclass(frozen=True)
class DigitTarget(Target):
    kind: ClassVar[TargetKind] = TargetKind.DIGIT


@dataclass(frozen=True)
class ShapeTarget(Target):
    kind: ClassVar[TargetKind] = TargetKind.SHAPE


@dataclass(frozen=True)
class AnyTarget(Target):
    """Every item is a hit (speed mode)."""

    value: Any = None

    def matches(self, payload: Any) -> bool:
        return True

    @property
    def spoken(self) -> str:
        return "bubbles"


@dataclass(frozen=True)
class ArithmeticProblem(Target):
    """Two-operand addition/subtraction with a precomputed answer.

    `value` holds the answer so the generic `matches()` compares payloads to it.
    """

    value: int = 0
    operand1: int = 0
    operand2: int = 0
    operator: Operator = Operator.ADDITION

    kind: ClassVar[TargetKind] = TargetKind.ARITHMETIC

    @classmethod
    def build(cls, operand1: int, operand2: int, operator: Operator) -> "ArithmeticProblem":
        a = int(operand1)
        b = int(operand2)
        if operator is Operator.SUBTRACTION:
            if b > a:
                raise ValueError("subtraction requires operand1 >= operand2")
            answer = a - b
        else:
            answer = a + b
        return cls(value=answer, operand1=a, operand2=b, operator=operator)

    @property
    def answer(self) -> int:
        return int(self.value)

    @property
    def spoken(self) -> str:
        return "{} {} {}".format(self.operand1, self.operator.spoken, self.operand2)

    @property
    def label(self) -> str:
        return "{} {} {} = ?".format(self.operand1, self.operator.symbol, self.operand2)


TARGET_TYPES: dict[TargetKind, type] = {
    TargetKind.COLOR: ColorTarget,
    TargetKind.LETTER: LetterTarget,
    TargetKind.DIGIT: DigitTarget,
    TargetKind.SHAPE: ShapeTarget,
    TargetKind.ARITHMETIC: ArithmeticProblem,
    TargetKind.ANY: AnyTarget,
}


def target_for(kind: TargetKind, value: Any, index: int = -1) -> Target:
    """Wrap a catalog value in the target type for `kind`."""
    cls = TARGET_TYPES.get(kind, Target)
    if cls is AnyTarget:
        return AnyTarget(index=index)
    return cls(value=value, index=index)


__all__ = [
    "AnyTarget",
    "ArithmeticProblem",
    "ColorSpec",
    "ColorTarget",
    "DigitTarget",
    "LetterTarget",
    "ShapeTarget",
    "Target",
    "target_for",
]
