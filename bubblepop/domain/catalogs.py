"""Target catalogs.

This module is DOMAIN DATA: the ordered value lists each game draws targets
and distractors from, plus the selection order used for each.
It contains *no* Qt dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final, Tuple

from bubblepop.domain.enums import SelectionOrder, TargetKind
from bubblepop.domain.targets import ColorSpec


@dataclass(frozen=True)
class TargetCatalog:
    """An ordered set of candidate target values.

    `avoid_repeat` only applies to RANDOM order: the previous pick is excluded
    when the catalog has more than one value.
    """

    name: str
    kind: TargetKind
    values: Tuple[Any, ...]
    order: SelectionOrder = SelectionOrder.RANDOM
    avoid_repeat: bool = False

    def __len__(self) -> int:
        return len(self.values)


# -----------------------------------------------------------------------------
# Colours
# -----------------------------------------------------------------------------

BUBBLE_GRADIENTS: Final[dict[str, Tuple[str, str]]] = {
    "red": ("#FF6B6B", "#FF8E8E"),
    "pink": ("#FF6B95", "#FF9EBD"),
    "purple": ("#9D7FE6", "#BEA9FF"),
    "blue": ("#5B9AE6", "#8CB5FF"),
    "lightBlue": ("#5BC9E6", "#8EDFFF"),
    "teal": ("#4BD5B3", "#7FF4D9"),
    "green": ("#6BD86B", "#9AFF9A"),
    "yellow": ("#FFD86B", "#FFEA9A"),
    "orange": ("#FF9858", "#FFBD8E"),
}

LEARNING_COLORS: Final[Tuple[ColorSpec, ...]] = (
    ColorSpec("Red", BUBBLE_GRADIENTS["red"]),
    ColorSpec("Pink", BUBBLE_GRADIENTS["pink"]),
    ColorSpec("Purple", BUBBLE_GRADIENTS["purple"]),
    ColorSpec("Blue", BUBBLE_GRADIENTS["blue"]),
    ColorSpec("Light Blue", BUBBLE_GRADIENTS["lightBlue"]),
    ColorSpec("Teal", BUBBLE_GRADIENTS["teal"]),
    ColorSpec("Green", BUBBLE_GRADIENTS["green"]),
    ColorSpec("Yellow", BUBBLE_GRADIENTS["yellow"]),
    ColorSpec("Orange", BUBBLE_GRADIENTS["orange"]),
)

# Speed mode just needs something to paint each bubble with.
SPEED_BUBBLE_COLORS: Final[Tuple[str, ...]] = tuple(BUBBLE_GRADIENTS.keys())

# -----------------------------------------------------------------------------
# Letters / digits
# -----------------------------------------------------------------------------

ALPHABET: Final[Tuple[str, ...]] = tuple("ABCDEFGHIJKLMNOPQRSTUVWXYZ")
NUMBERS: Final[Tuple[str, ...]] = tuple(str(i) for i in range(1, 11))

# -----------------------------------------------------------------------------
# Shapes
# -----------------------------------------------------------------------------

# Free-pop themes, in the order the game cycles through them.
SHAPE_THEMES: Final[Tuple[str, ...]] = ("Circle", "Square", "Hexagon", "Heart", "Star", "Animal")

BALLOON_SHAPES: Final[Tuple[str, ...]] = ("circle", "square", "triangle", "star")


COLOR_CATALOG: Final = TargetCatalog(
    name="colors",
    kind=TargetKind.COLOR,
    values=LEARNING_COLORS,
    order=SelectionOrder.RANDOM,
    avoid_repeat=True,
)

ALPHABET_CATALOG: Final = TargetCatalog(
    name="alphabet",
    kind=TargetKind.LETTER,
    values=ALPHABET,
    order=SelectionOrder.SEQUENTIAL,
)

NUMBERS_CATALOG: Final = TargetCatalog(
    name="numbers",
    kind=TargetKind.DIGIT,
    values=NUMBERS,
    order=SelectionOrder.SEQUENTIAL,
)

THEME_CATALOG: Final = TargetCatalog(
    name="themes",
    kind=TargetKind.SHAPE,
    values=SHAPE_THEMES,
    order=SelectionOrder.SEQUENTIAL,
)

BALLOON_CATALOG: Final = TargetCatalog(
    name="balloon_shapes",
    kind=TargetKind.SHAPE,
    values=BALLOON_SHAPES,
    order=SelectionOrder.RANDOM,
)

CATALOGS: Final[dict[str, TargetCatalog]] = {
    c.name: c
    for c in (
        COLOR_CATALOG,
        ALPHABET_CATALOG,
        NUMBERS_CATALOG,
        THEME_CATALOG,
        BALLOON_CATALOG,
    )
}
