"""Game variant descriptors.

One RoundEngine drives every game; what differs between games is declared
here as data: where targets come from, how many target items a round holds,
how scoring and wrong taps behave, which timers run and what gets said.

Speech templates are plain `str.format` strings. Available fields:
    {target}    spoken form of the current target
    {remaining} target items still to find
    {item}      spoken form of the tapped item (wrong-tap feedback)
    {score}     current score
    {answer}    arithmetic answer
    {label}     display form of the target ("3 + 2 = ?")
    {kind}      "letter" / "number" (abc)
    {seconds}   seconds for the round countdown
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from bubblepop.domain.enums import Difficulty, ProgressKind, WrongPopPolicy
from bubblepop.errors import UnknownVariantError


@dataclass(frozen=True)
class VoiceParams:
    rate: float = 0.9
    pitch: float = 1.0
    language: Optional[str] = None


@dataclass(frozen=True)
class SpeechScript:
    announce_first: str = ""
    announce: str = ""
    hint: str = ""
    progress: str = ""
    progress_threshold: int = 0
    wrong: str = ""
    celebration: str = ""
    timeout: str = ""
    mode_switch: str = ""
    countdown_cues: Tuple[Tuple[int, str], ...] = ()


@dataclass(frozen=True)
class VariantDescriptor:
    name: str
    title: str
    modes: Tuple[str, ...] = ()
    layout: str = "grid"

    # Population
    total_slots: int = 16
    target_count: int = 1
    all_items_match: bool = False
    slots_by_difficulty: Dict[Difficulty, int] = field(default_factory=dict)
    carry_population: bool = False
    field_width: float = 390.0
    field_height: float = 844.0

    # Arithmetic
    max_operand: Dict[Difficulty, int] = field(default_factory=dict)
    distractor_max: Dict[Difficulty, int] = field(default_factory=dict)

    # Falling items
    speed_multiplier: Dict[Difficulty, float] = field(default_factory=dict)
    replace_with_target_chance: float = 0.0

    difficulties: Tuple[Difficulty, ...] = (Difficulty.EASY,)

    # Scoring
    points_correct: int = 10
    penalty_wrong: int = 0
    clear_bonus: int = 0
    wrong_pop_policy: WrongPopPolicy = WrongPopPolicy.STAY_POPPED
    revert_delay_ms: int = 1000

    # Timers
    round_seconds: Optional[int] = None
    session_seconds: Optional[int] = None
    inactivity_ms: Optional[int] = None
    hint_delay_ms: Optional[int] = None
    hint_threshold: float = 0.5
    announce_delay_ms: int = 0
    celebration_delay_ms: int = 2000
    advance_on_narration: bool = False
    advance_fallback_ms: int = 8000

    # Collaborators
    progress_kind: Optional[ProgressKind] = None
    correct_cue: str = "correct"
    wrong_cue: str = "incorrect"
    celebration_cue: Optional[str] = "celebration"
    finish_cue: Optional[str] = None
    voice: VoiceParams = VoiceParams()
    script: SpeechScript = SpeechScript()

    @property
    def default_mode(self) -> Optional[str]:
        return self.modes[0] if self.modes else None

    def slots_for(self, difficulty: Difficulty) -> int:
        return int(self.slots_by_difficulty.get(difficulty, self.total_slots))

    def targets_for(self, difficulty: Difficulty) -> int:
        if self.all_items_match:
            return self.slots_for(difficulty)
        return int(self.target_count)

    def next_difficulty(self, current: Difficulty) -> Difficulty:
        levels = self.difficulties or (Difficulty.EASY,)
        try:
            i = levels.index(current)
        except ValueError:
            return levels[0]
        return levels[(i + 1) % len(levels)]


FREE_POP = VariantDescriptor(
    name="free-pop",
    title="Free Pop",
    modes=("themes",),
    total_slots=25,
    all_items_match=True,
    points_correct=0,
    inactivity_ms=10_000,
    hint_delay_ms=15_000,
    correct_cue="pop",
    celebration_delay_ms=2000,
    progress_kind=ProgressKind.SHAPE,
    script=SpeechScript(
        announce_first="Game started. Pop all the {target} bubbles!",
        announce="New shape! Pop all the {target} bubbles!",
        hint="Keep going! {remaining} {target} bubbles left to pop.",
        celebration="Great job! You popped all the {target} bubbles!",
    ),
)

COLORS = VariantDescriptor(
    name="colors",
    title="Colors",
    modes=("colors",),
    total_slots=16,
    target_count=8,
    points_correct=10,
    penalty_wrong=5,
    round_seconds=30,
    celebration_delay_ms=1500,
    progress_kind=ProgressKind.COLOR,
    voice=VoiceParams(rate=0.9, pitch=1.2, language="en-US"),
    script=SpeechScript(
        announce_first="Find the color {target}. You have {seconds} seconds.",
        announce="Find the color {target}. You have {seconds} seconds.",
        progress="Good! {remaining} {target} bubbles left.",
        progress_threshold=2,
        wrong="That's {item}, not {target}.",
        celebration="Great job! You found all the {target} bubbles!",
        timeout="Time's up! Your score is {score} points.",
        countdown_cues=((10, "10 seconds left!"), (5, "Hurry! 5 seconds left!")),
    ),
)

ABC = VariantDescriptor(
    name="abc",
    title="ABC & 123",
    modes=("alphabet", "numbers"),
    total_slots=16,
    target_count=5,
    points_correct=10,
    celebration_delay_ms=2000,
    progress_kind=ProgressKind.LETTER,
    voice=VoiceParams(rate=0.9, pitch=1.2, language="en-US"),
    script=SpeechScript(
        announce_first="Game started! Find the {kind} {target}",
        announce="Quick! Find the {kind} {target}",
        progress="Good! Find {remaining} more",
        progress_threshold=3,
        wrong="That's {item}, not {target}. Try again!",
        celebration="Great job! You found all the {target}s!",
        mode_switch="Switching to {mode} mode",
    ),
)

MATH = VariantDescriptor(
    name="math",
    title="Math Fun",
    total_slots=16,
    target_count=1,
    max_operand={Difficulty.EASY: 5, Difficulty.HARD: 10},
    distractor_max={Difficulty.EASY: 10, Difficulty.HARD: 20},
    difficulties=(Difficulty.EASY, Difficulty.HARD),
    points_correct=10,
    penalty_wrong=5,
    wrong_pop_policy=WrongPopPolicy.REVERT_AFTER_DELAY,
    revert_delay_ms=1000,
    hint_delay_ms=20_000,
    announce_delay_ms=300,
    celebration_delay_ms=0,
    advance_on_narration=True,
    progress_kind=ProgressKind.MATH_PROBLEM,
    voice=VoiceParams(rate=0.9, pitch=1.0),
    script=SpeechScript(
        announce_first="Game started. Target {target}",
        announce="Quick now. Pop {target}",
        hint="Remember, we're trying to solve {label}",
        wrong="Try again!",
        celebration="That's correct! The answer was {answer}.",
    ),
)

SPEED = VariantDescriptor(
    name="speed",
    title="Speed Pop",
    total_slots=16,
    all_items_match=True,
    points_correct=1,
    clear_bonus=5,
    session_seconds=30,
    celebration_delay_ms=300,
    correct_cue="pop",
    finish_cue="celebration",
)

BALLOON = VariantDescriptor(
    name="balloon",
    title="Balloon Shapes",
    modes=("balloon_shapes",),
    layout="falling",
    total_slots=6,
    target_count=1,
    slots_by_difficulty={Difficulty.EASY: 6, Difficulty.MEDIUM: 10, Difficulty.HARD: 14},
    carry_population=True,
    speed_multiplier={Difficulty.EASY: 1.0, Difficulty.MEDIUM: 1.5, Difficulty.HARD: 2.0},
    replace_with_target_chance=0.3,
    difficulties=(Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD),
    points_correct=10,
    wrong_pop_policy=WrongPopPolicy.REPLACE,
    announce_delay_ms=500,
    celebration_delay_ms=0,
    celebration_cue=None,
    progress_kind=ProgressKind.SHAPE,
    voice=VoiceParams(rate=0.8, pitch=1.1),
    script=SpeechScript(
        announce_first="Find the {target}!",
        announce="Find the {target}!",
        wrong="Find the {target}!",
    ),
)


VARIANTS: Dict[str, VariantDescriptor] = {
    v.name: v for v in (FREE_POP, COLORS, ABC, MATH, SPEED, BALLOON)
}


def get_variant(name: str) -> VariantDescriptor:
    key = str(name or "").strip().lower().replace("_", "-")
    try:
        return VARIANTS[key]
    except KeyError:
        raise UnknownVariantError(name) from None


__all__ = [
    "ABC",
    "BALLOON",
    "COLORS",
    "FREE_POP",
    "MATH",
    "SPEED",
    "SpeechScript",
    "VARIANTS",
    "VariantDescriptor",
    "VoiceParams",
    "get_variant",
]
