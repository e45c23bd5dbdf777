"""Enumerations shared by the round engine and its collaborators.

No Qt dependencies live here.
"""

from __future__ import annotations

from enum import Enum


class AudioSetting(str, Enum):
    """Player-selected audio class.

    FULL      : cues + narration
    NO_SPEECH : cues only
    NO_SOUND  : narration only
    MUTE      : nothing
    """

    FULL = "full"
    NO_SPEECH = "noSpeech"
    NO_SOUND = "noSound"
    MUTE = "mute"

    @property
    def allows_speech(self) -> bool:
        return self not in (AudioSetting.NO_SPEECH, AudioSetting.MUTE)

    @property
    def allows_sound(self) -> bool:
        return self not in (AudioSetting.NO_SOUND, AudioSetting.MUTE)

    @classmethod
    def parse(cls, value: object, default: "AudioSetting | None" = None) -> "AudioSetting":
        if isinstance(value, AudioSetting):
            return value
        text = str(value or "").strip()
        for member in cls:
            if member.value.lower() == text.lower() or member.name.lower() == text.lower():
                return member
        return default if default is not None else cls.FULL


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def parse(cls, value: object, default: "Difficulty | None" = None) -> "Difficulty":
        if isinstance(value, Difficulty):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        return default if default is not None else cls.EASY


class TargetKind(str, Enum):
    COLOR = "color"
    LETTER = "letter"
    DIGIT = "digit"
    SHAPE = "shape"
    ARITHMETIC = "arithmetic"
    ANY = "any"


class Operator(str, Enum):
    ADDITION = "addition"
    SUBTRACTION = "subtraction"

    @property
    def symbol(self) -> str:
        return "+" if self is Operator.ADDITION else "-"

    @property
    def spoken(self) -> str:
        return "plus" if self is Operator.ADDITION else "minus"


class SelectionOrder(str, Enum):
    SEQUENTIAL = "sequential"
    RANDOM = "random"


class ProgressKind(str, Enum):
    SHAPE = "shape"
    COLOR = "color"
    LETTER = "letter"
    MATH_PROBLEM = "mathProblem"


class WrongPopPolicy(str, Enum):
    """What happens to a non-target item after it is tapped."""

    STAY_POPPED = "stay_popped"
    REVERT_AFTER_DELAY = "revert_after_delay"
    REPLACE = "replace"


class TimerKind(str, Enum):
    ROUND_COUNTDOWN = "round_countdown"
    INACTIVITY_WATCHDOG = "inactivity_watchdog"
    HINT_DELAY = "hint_delay"
    # Engine-internal one-shots / session clock.
    ANNOUNCE = "announce"
    ADVANCE = "advance"
    REVERT = "revert"
    SESSION_COUNTDOWN = "session_countdown"


class RoundPhase(str, Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    ACTIVE = "active"
    RESOLVING = "resolving"
    CELEBRATING = "celebrating"
    FINISHED = "finished"
    SUSPENDED = "suspended"
    TORN_DOWN = "torn_down"


class UtteranceState(str, Enum):
    PENDING = "pending"
    DONE = "done"
    STOPPED = "stopped"
    DROPPED = "dropped"
    FAILED = "failed"
