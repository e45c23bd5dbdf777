# tests/conftest.py
import os
import random
from typing import Callable, List, Optional

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("BUBBLEPOP_TEST_MODE", "1")

from bubblepop.controllers.round_engine import RoundEngine  # noqa: E402
from bubblepop.controllers.timer_coordinator import TimerCoordinator  # noqa: E402
from bubblepop.domain.enums import AudioSetting  # noqa: E402
from bubblepop.domain.variants import get_variant  # noqa: E402
from bubblepop.services.narration_gate import NarrationGate  # noqa: E402


# ------------------------------
# Manual time
# ------------------------------

class FakeSignal:
    def __init__(self):
        self._slots: List[Callable[[], None]] = []

    def connect(self, fn):
        self._slots.append(fn)

    def emit(self):
        for fn in list(self._slots):
            fn()


class FakeTimer:
    """Just enough of QTimer for TimerCoordinator, driven by ManualClock."""

    def __init__(self, clock: "ManualClock", seq: int):
        self.timeout = FakeSignal()
        self._clock = clock
        self.seq = seq
        self.single_shot = False
        self.interval = 0
        self.due: Optional[int] = None
        self._active = False

    def setSingleShot(self, value):
        self.single_shot = bool(value)

    def start(self, ms=None):
        if ms is not None:
            self.interval = int(ms)
        self.due = self._clock.now + self.interval
        self._active = True

    def stop(self):
        self._active = False

    def isActive(self):
        return self._active


class ManualClock:
    """Millisecond clock; `advance(ms)` fires due timers in order."""

    def __init__(self):
        self.now = 0
        self._timers: List[FakeTimer] = []
        self._seq = 0

    def timer_factory(self) -> FakeTimer:
        self._seq += 1
        t = FakeTimer(self, self._seq)
        self._timers.append(t)
        return t

    def seconds(self) -> float:
        return self.now / 1000.0

    def active_timers(self) -> List[FakeTimer]:
        return [t for t in self._timers if t.isActive()]

    def advance(self, ms: int) -> None:
        end = self.now + int(ms)
        while True:
            self._timers = self.active_timers()
            due = [t for t in self._timers if t.due is not None and t.due <= end]
            if not due:
                break
            t = min(due, key=lambda x: (x.due, x.seq))
            self.now = t.due
            if t.single_shot:
                t.stop()
            else:
                t.due += max(1, t.interval)
            t.timeout.emit()
        self.now = end


# ------------------------------
# Recording collaborators
# ------------------------------

class FakeSpeechBackend:
    """Holds the pending callbacks; the test decides when speech ends."""

    def __init__(self):
        self.spoken: List[str] = []
        self.calls: List[dict] = []
        self.stops = 0
        self._on_done = None
        self._on_stopped = None

    def speak(self, text, *, rate=1.0, pitch=1.0, language=None, on_done=None, on_stopped=None):
        self.spoken.append(text)
        self.calls.append({"text": text, "rate": rate, "pitch": pitch, "language": language})
        self._on_done = on_done
        self._on_stopped = on_stopped

    def stop(self):
        self.stops += 1
        cb = self._on_stopped
        self._on_done = None
        self._on_stopped = None
        if cb is not None:
            cb()

    @property
    def speaking(self) -> bool:
        return self._on_done is not None

    def finish(self):
        cb = self._on_done
        self._on_done = None
        self._on_stopped = None
        if cb is not None:
            cb()


class RecordingCues:
    def __init__(self):
        self.played: List[str] = []

    def play(self, name):
        self.played.append(name)


class RecordingProgress:
    def __init__(self):
        self.reports: List[str] = []
        self.pops = 0
        self.high_scores: List[int] = []

    def report_progress(self, kind):
        self.reports.append(getattr(kind, "value", kind))

    def increment_pops(self, count=1):
        self.pops += count

    def update_high_score(self, score):
        self.high_scores.append(score)
        return True


class MutableAudio:
    def __init__(self, setting=AudioSetting.FULL):
        self.setting = setting

    def __call__(self):
        return self.setting


# ------------------------------
# Fixtures
# ------------------------------

@pytest.fixture(autouse=True)
def _qt_app(qapp):
    return qapp


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def backend():
    return FakeSpeechBackend()


@pytest.fixture
def audio():
    return MutableAudio()


@pytest.fixture
def narrator(backend, audio):
    return NarrationGate(backend, audio)


@pytest.fixture
def cues():
    return RecordingCues()


@pytest.fixture
def progress():
    return RecordingProgress()


@pytest.fixture
def make_engine(clock, narrator, cues, progress):
    created = []

    def _make(game, *, seed=1234, difficulty=None, mode=None):
        engine = RoundEngine(
            get_variant(game),
            narrator=narrator,
            cues=cues,
            progress=progress,
            difficulty=difficulty,
            mode=mode,
            timers=TimerCoordinator(timer_factory=clock.timer_factory),
            rng=random.Random(seed),
            clock=clock.seconds,
        )
        created.append(engine)
        return engine

    yield _make
    for engine in created:
        engine.teardown()


def target_ids(engine):
    r = engine.current_round
    return [i.item_id for i in r.items if not i.popped and r.target.matches(i.payload)]


def miss_ids(engine):
    r = engine.current_round
    return [i.item_id for i in r.items if not i.popped and not r.target.matches(i.payload)]
