"""Round lifecycle orchestration.

RoundEngine is the single state machine behind every game. It is driven by a
VariantDescriptor and by three kinds of events, all delivered on the Qt
event loop:

- player taps (`on_pop`) and off-screen notices (`on_off_screen`),
- timer callbacks from the TimerCoordinator,
- narration completions from the NarrationGate.

Phases:

    SELECTING -> ACTIVE -> RESOLVING -> CELEBRATING -> SELECTING (next)
                  |
                  +--(countdown / session clock expires)--> FINISHED

plus SUSPENDED (app in background) and TORN_DOWN (view gone).

Every callback the engine hands out is bound to the round token that was
current when it was created. `teardown()`, `suspend()`, `restart()` and the
start of each new round move the token on, so late callbacks become no-ops
instead of touching a newer round.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from bubblepop.controllers.population_generator import PopulationGenerator
from bubblepop.controllers.score_tracker import ScoreTracker
from bubblepop.controllers.target_selector import TargetSelector
from bubblepop.controllers.timer_coordinator import TimerCoordinator
from bubblepop.domain.catalogs import CATALOGS, SPEED_BUBBLE_COLORS
from bubblepop.domain.enums import (
    Difficulty,
    ProgressKind,
    RoundPhase,
    TimerKind,
    WrongPopPolicy,
)
from bubblepop.domain.rounds import Item, Round, RoundSnapshot, SessionSummary
from bubblepop.domain.targets import AnyTarget, ArithmeticProblem, Target
from bubblepop.domain.variants import VariantDescriptor

logger = logging.getLogger(__name__)

# Timers that outlive a single round.
_SESSION_KEYS = (TimerKind.SESSION_COUNTDOWN,)

_MODE_KIND = {"alphabet": "letter", "numbers": "number"}


class RoundEngine(QObject):
    snapshot_changed = pyqtSignal(object)
    phase_changed = pyqtSignal(str)
    round_started = pyqtSignal(int)
    session_finished = pyqtSignal(object)

    def __init__(
        self,
        variant: VariantDescriptor,
        *,
        narrator,
        cues,
        progress=None,
        difficulty: Difficulty | str | None = None,
        mode: Optional[str] = None,
        timers: Optional[TimerCoordinator] = None,
        selector: Optional[TargetSelector] = None,
        generator: Optional[PopulationGenerator] = None,
        scores: Optional[ScoreTracker] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        rng = rng or random.Random()

        self._variant = variant
        self._narrator = narrator
        self._cues = cues
        self._progress = progress
        self._timers = timers or TimerCoordinator(parent=self)
        self._selector = selector or TargetSelector(rng)
        self._generator = generator or PopulationGenerator(rng)
        self._scores = scores or ScoreTracker()
        self._clock = clock

        self._difficulty = Difficulty.parse(difficulty, (variant.difficulties or (Difficulty.EASY,))[0])
        self._mode: Optional[str] = mode if mode in variant.modes else variant.default_mode

        self._phase = RoundPhase.IDLE
        self._round: Optional[Round] = None
        self._round_token = 0
        self._session_token = 0
        self._previous_index: Optional[int] = None
        self._selection_base: Optional[int] = None
        self._alive = True

        self._started_at: Optional[float] = None
        self._elapsed_frozen: Optional[float] = None
        self._session_remaining: Optional[int] = None
        self._last_summary: Optional[SessionSummary] = None

    # ----------------------------
    # Read-only state
    # ----------------------------

    @property
    def variant(self) -> VariantDescriptor:
        return self._variant

    @property
    def phase(self) -> RoundPhase:
        return self._phase

    @property
    def current_round(self) -> Optional[Round]:
        return self._round

    @property
    def scores(self) -> ScoreTracker:
        return self._scores

    @property
    def score(self) -> int:
        return self._scores.score

    @property
    def difficulty(self) -> Difficulty:
        return self._difficulty

    @property
    def mode(self) -> Optional[str]:
        return self._mode

    @property
    def timers(self) -> TimerCoordinator:
        return self._timers

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def last_summary(self) -> Optional[SessionSummary]:
        return self._last_summary

    @property
    def elapsed_seconds(self) -> int:
        if self._elapsed_frozen is not None:
            return int(self._elapsed_frozen)
        if self._started_at is None:
            return 0
        return max(0, int(self._clock() - self._started_at))

    def get_round_snapshot(self) -> RoundSnapshot:
        r = self._round
        if self._variant.session_seconds is not None:
            time_remaining = self._session_remaining
        else:
            time_remaining = r.time_remaining if r is not None else None
        return RoundSnapshot(
            phase=self._phase,
            round_index=r.index if r is not None else 0,
            target=r.target if r is not None else None,
            items=tuple(item.frozen_copy() for item in r.items) if r is not None else (),
            remaining=r.remaining if r is not None else 0,
            score=self._scores.score,
            time_remaining=time_remaining,
            elapsed_seconds=self.elapsed_seconds,
            difficulty=self._difficulty,
            streak=self._scores.streak,
        )

    # ----------------------------
    # Session control
    # ----------------------------

    def start(self) -> None:
        """Begin a fresh session at round 0 with a zero score."""
        if not self._alive:
            return
        self._cancel_everything()
        self._scores.reset()
        self._round = None
        self._previous_index = None
        self._last_summary = None
        self._started_at = self._clock()
        self._elapsed_frozen = None
        self._start_session_clock(self._variant.session_seconds)
        self._begin_round(0, selection_base=None)

    def restart(
        self,
        *,
        difficulty: Difficulty | str | None = None,
        mode: Optional[str] = None,
        reset_score: Optional[bool] = None,
    ) -> None:
        """Abandon the current round and start another one.

        Used for difficulty changes, mode switches and "play again". Score is
        kept unless `reset_score` (default: only for session-timed games).
        """
        if not self._alive:
            return
        if difficulty is not None:
            self._difficulty = Difficulty.parse(difficulty, self._difficulty)
        if mode is not None and mode in self._variant.modes and mode != self._mode:
            self._mode = mode
            self._previous_index = None
        if reset_score is None:
            reset_score = self._variant.session_seconds is not None
        if reset_score or self._round is None:
            self.start()
            return

        self._cancel_everything()
        self._thaw_clock()
        if self._phase is RoundPhase.FINISHED:
            self._last_summary = None
            self._start_session_clock(self._variant.session_seconds)
        else:
            self._start_session_clock(self._session_remaining)
        next_index = self._round.index + 1
        self._round = None
        self._begin_round(next_index, selection_base=self._previous_index)

    def set_difficulty(self, difficulty: Difficulty | str) -> None:
        self.restart(difficulty=difficulty)

    def cycle_difficulty(self) -> Difficulty:
        self.restart(difficulty=self._variant.next_difficulty(self._difficulty))
        return self._difficulty

    def switch_mode(self, mode: Optional[str] = None) -> Optional[str]:
        """Switch catalog (alphabet <-> numbers) and restart from its first entry."""
        modes = self._variant.modes
        if not self._alive or len(modes) < 2:
            return self._mode
        if mode is None:
            i = modes.index(self._mode) if self._mode in modes else -1
            mode = modes[(i + 1) % len(modes)]
        if mode not in modes:
            return self._mode

        self._cancel_everything()
        self._mode = mode
        self._previous_index = None
        index = self._round.index + 1 if self._round is not None else 0
        self._round = None
        self._thaw_clock()
        self._begin_round(index, selection_base=None, announce=False)

        text = self._format(self._variant.script.mode_switch, mode=mode)
        utt = self._say(text)
        if utt is None:
            self._announce(first=False)
        else:
            token = self._round_token
            utt.add_done_callback(lambda _u: self._guard(lambda: self._announce(first=False), token)())
        return mode

    def _thaw_clock(self) -> None:
        """Let elapsed time run again from where it was frozen (or from now)."""
        if self._elapsed_frozen is not None:
            self._started_at = self._clock() - self._elapsed_frozen
            self._elapsed_frozen = None
        elif self._started_at is None:
            self._started_at = self._clock()

    def suspend(self) -> None:
        """App went to background: behave like teardown, but remember elapsed time."""
        if not self._alive or self._phase in (RoundPhase.SUSPENDED, RoundPhase.IDLE, RoundPhase.FINISHED):
            return
        self._elapsed_frozen = float(self.elapsed_seconds)
        self._cancel_everything()
        self._set_phase(RoundPhase.SUSPENDED)
        self._emit_snapshot()

    def resume(self, elapsed_adjustment: Optional[float] = None) -> None:
        """Back in foreground: start a fresh round, keeping session clocks continuous.

        `elapsed_adjustment` is the elapsed session time (seconds) to resume
        from; by default the value frozen at suspend.
        """
        if not self._alive or self._phase is not RoundPhase.SUSPENDED:
            return
        elapsed = self._elapsed_frozen if elapsed_adjustment is None else float(elapsed_adjustment)
        self._started_at = self._clock() - float(elapsed or 0.0)
        self._elapsed_frozen = None

        if self._variant.session_seconds is not None:
            self._start_session_clock(self._session_remaining)

        r = self._round
        if r is not None and r.completed:
            self._begin_round(r.index + 1, selection_base=self._previous_index)
        elif r is not None:
            self._begin_round(r.index, selection_base=self._selection_base)
        else:
            self._begin_round(0, selection_base=None)

    def teardown(self) -> None:
        """The host view is gone. Cancel everything; later callbacks are no-ops."""
        if not self._alive:
            return
        self._cancel_everything()
        self._timers.teardown()
        self._alive = False
        self._set_phase(RoundPhase.TORN_DOWN)

    def cancel_all(self) -> None:
        """Cancel every live timer and stop narration without leaving the phase."""
        self._timers.cancel_all()
        self._stop_speech()

    # ----------------------------
    # Player input
    # ----------------------------

    def on_pop(self, item_id: str) -> None:
        if not self._alive or self._phase is not RoundPhase.ACTIVE or self._round is None:
            return
        r = self._round
        item = r.find(item_id)
        if item is None or item.popped:
            return

        item.popped = True
        self._progress_call("increment_pops", 1)

        if r.target.matches(item.payload):
            self._on_correct(r, item)
        else:
            self._on_wrong(r, item)
        self._emit_snapshot()

    def on_off_screen(self, item_id: str) -> None:
        v = self._variant
        if not self._alive or v.layout != "falling" or self._phase is not RoundPhase.ACTIVE:
            return
        r = self._round
        if r is None:
            return
        item = r.find(item_id)
        if item is None or item.popped:
            return
        self._replace_item(r, item_id)
        self._generator.ensure_target_present(r.items, r.target)
        self._emit_snapshot()

    # ----------------------------
    # Round construction
    # ----------------------------

    def _begin_round(
        self,
        index: int,
        *,
        selection_base: Optional[int],
        carry: Optional[Round] = None,
        announce: bool = True,
    ) -> None:
        self._round_token += 1
        token = self._round_token
        self._timers.cancel_all(keep=_SESSION_KEYS)
        self._set_phase(RoundPhase.SELECTING)

        target = self._select_target(selection_base)
        items = self._populate(target, carry)

        v = self._variant
        if v.layout == "falling":
            required = max(1, int(v.target_count))
        else:
            required = sum(1 for item in items if target.matches(item.payload))

        r = Round(
            index=int(index),
            target=target,
            items=items,
            remaining=required,
            required=required,
            time_remaining=v.round_seconds,
            token=token,
        )
        self._round = r
        logger.debug("round %d target=%r items=%d required=%d", r.index, target, len(items), required)

        self._arm_round_timers(r)
        self._set_phase(RoundPhase.ACTIVE)
        self.round_started.emit(r.index)
        if announce:
            self._announce()
        self._emit_snapshot()

    def _select_target(self, selection_base: Optional[int]) -> Target:
        v = self._variant
        self._selection_base = selection_base
        if v.max_operand:
            target: Target = self._selector.arithmetic_problem(
                self._difficulty,
                max_operand=v.max_operand.get(self._difficulty),
            )
        elif self._mode is None:
            target = AnyTarget()
        else:
            target = self._selector.select_target(CATALOGS[self._mode], selection_base)
        if target.index >= 0:
            self._previous_index = target.index
        return target

    def _populate(self, target: Target, carry: Optional[Round]) -> list:
        v = self._variant
        d = self._difficulty
        slots = v.slots_for(d)

        if isinstance(target, ArithmeticProblem):
            return self._generator.generate_answers(target, slots, v.distractor_max.get(d, 10))

        if v.layout == "falling":
            if v.carry_population and carry is not None and carry.items:
                items = list(carry.items)
                self._generator.ensure_target_present(items, target)
                return items
            return self._generator.generate_falling(
                target,
                slots,
                CATALOGS[self._mode].values,
                speed_multiplier=v.speed_multiplier.get(d, 1.0),
                field_width=v.field_width,
                field_height=v.field_height,
            )

        if v.all_items_match:
            looks = SPEED_BUBBLE_COLORS if isinstance(target, AnyTarget) else None
            return self._generator.generate_uniform(target, slots, looks)

        return self._generator.generate(target, slots, v.targets_for(d), CATALOGS[self._mode])

    def _arm_round_timers(self, r: Round) -> None:
        v = self._variant
        if v.round_seconds is not None:
            self._timers.start_countdown(
                v.round_seconds,
                self._guard(self._on_countdown_tick),
                self._guard(self._on_round_timeout),
            )
        if v.inactivity_ms:
            self._arm_watchdog()
        if v.hint_delay_ms:
            self._timers.arm_once(TimerKind.HINT_DELAY, v.hint_delay_ms, self._guard(self._on_hint_delay))

    def _arm_watchdog(self) -> None:
        self._timers.arm_watchdog(self._variant.inactivity_ms, self._guard(self._on_inactivity))

    def _start_session_clock(self, seconds: Optional[int]) -> None:
        self._session_token += 1
        self._timers.cancel(TimerKind.SESSION_COUNTDOWN)
        if seconds is None:
            self._session_remaining = None
            return
        self._session_remaining = int(seconds)
        self._timers.start_countdown(
            int(seconds),
            self._session_guard(self._on_session_tick),
            self._session_guard(self._on_session_expired),
            key=TimerKind.SESSION_COUNTDOWN,
        )

    # ----------------------------
    # Pop resolution
    # ----------------------------

    def _on_correct(self, r: Round, item: Item) -> None:
        v = self._variant
        self._play(v.correct_cue)
        self._scores.award(v.points_correct)
        r.found += 1
        r.remaining = max(0, r.remaining - 1)

        if v.inactivity_ms:
            self._arm_watchdog()
        if v.layout == "falling":
            self._replace_item(r, item.item_id)

        if r.remaining == 0:
            self._resolve(r)
            return

        script = v.script
        if script.progress and r.remaining <= script.progress_threshold:
            self._say(self._format(script.progress))

    def _on_wrong(self, r: Round, item: Item) -> None:
        v = self._variant
        self._play(v.wrong_cue)
        self._scores.penalize(v.penalty_wrong)

        if v.script.wrong:
            self._say(self._format(v.script.wrong, item=self._spoken(item.payload)))

        if v.wrong_pop_policy is WrongPopPolicy.REVERT_AFTER_DELAY:
            item_id = item.item_id
            self._timers.arm_once(
                (TimerKind.REVERT, item_id),
                v.revert_delay_ms,
                self._guard(lambda: self._revert(item_id)),
            )
        elif v.wrong_pop_policy is WrongPopPolicy.REPLACE:
            force = v.replace_with_target_chance > 0 and self._generator.chance(v.replace_with_target_chance)
            self._replace_item(r, item.item_id, payload=r.target.value if force else None)

    def _revert(self, item_id: str) -> None:
        r = self._round
        if r is None or self._phase is not RoundPhase.ACTIVE:
            return
        item = r.find(item_id)
        if item is None or not item.popped or r.target.matches(item.payload):
            return
        item.popped = False
        self._emit_snapshot()

    def _replace_item(self, r: Round, item_id: str, payload: Any = None) -> None:
        v = self._variant
        self._generator.replace_item(
            r.items,
            item_id,
            CATALOGS[self._mode].values,
            speed_multiplier=v.speed_multiplier.get(self._difficulty, 1.0),
            field_width=v.field_width,
            field_height=v.field_height,
            payload=payload,
        )

    # ----------------------------
    # Completion
    # ----------------------------

    def _resolve(self, r: Round) -> None:
        v = self._variant
        self._set_phase(RoundPhase.RESOLVING)
        self._timers.cancel_all(keep=_SESSION_KEYS)
        r.completed = True
        self._scores.complete_round()
        if v.clear_bonus:
            self._scores.bonus(v.clear_bonus)
        if v.progress_kind is not None and not r.progress_reported:
            r.progress_reported = True
            self._report_progress(v.progress_kind)
        self._celebrate(r)

    def _celebrate(self, r: Round) -> None:
        v = self._variant
        self._set_phase(RoundPhase.CELEBRATING)
        self._play(v.celebration_cue)

        token = r.token
        advance = self._guard(lambda: self._advance(r), token)
        text = self._format(v.script.celebration)
        utt = self._say(text) if text else None

        if v.advance_on_narration and utt is not None:
            # Backstop in case the backend never reports back.
            self._timers.arm_once(TimerKind.ADVANCE, v.advance_fallback_ms, advance)
            utt.add_done_callback(lambda _u: advance())
        elif v.celebration_delay_ms > 0:
            self._timers.arm_once(TimerKind.ADVANCE, v.celebration_delay_ms, advance)
        else:
            advance()

    def _advance(self, r: Round) -> None:
        if self._phase is not RoundPhase.CELEBRATING or self._round is not r:
            return
        self._begin_round(r.index + 1, selection_base=self._previous_index, carry=r)

    def _finish(self) -> None:
        v = self._variant
        r = self._round
        if r is not None and not r.completed:
            r.timed_out = True
        self._cancel_everything(stop_speech=False)
        self._set_phase(RoundPhase.FINISHED)
        self._play(v.finish_cue)
        if v.script.timeout:
            self._say(self._format(v.script.timeout))

        high = self._scores.score
        counters = getattr(self._progress, "counters", None)
        self._progress_call("update_high_score", self._scores.score)
        if counters is not None:
            high = max(high, int(getattr(counters, "high_score", high)))

        self._elapsed_frozen = float(self.elapsed_seconds)
        summary = SessionSummary(
            game=v.name,
            score=self._scores.score,
            rounds_completed=self._scores.rounds_completed,
            elapsed_seconds=int(self._elapsed_frozen),
            high_score=high,
        )
        self._last_summary = summary
        logger.info("session finished: %s", summary)
        self.session_finished.emit(summary)
        self._emit_snapshot()

    # ----------------------------
    # Timer callbacks
    # ----------------------------

    def _on_countdown_tick(self, remaining: int) -> None:
        r = self._round
        if r is None:
            return
        r.time_remaining = remaining
        for seconds, text in self._variant.script.countdown_cues:
            if remaining == seconds:
                self._say(text)
        self._emit_snapshot()

    def _on_round_timeout(self) -> None:
        if self._phase is RoundPhase.ACTIVE:
            self._finish()

    def _on_session_tick(self, remaining: int) -> None:
        self._session_remaining = remaining
        self._emit_snapshot()

    def _on_session_expired(self) -> None:
        self._session_remaining = 0
        if self._phase in (RoundPhase.ACTIVE, RoundPhase.RESOLVING, RoundPhase.CELEBRATING):
            self._finish()

    def _on_inactivity(self) -> None:
        r = self._round
        if r is None or r.completed or self._phase is not RoundPhase.ACTIVE:
            return
        self._say(self._format(self._variant.script.hint))

    def _on_hint_delay(self) -> None:
        r = self._round
        if r is None or r.completed or self._phase is not RoundPhase.ACTIVE:
            return
        if r.found < r.required * self._variant.hint_threshold:
            self._say(self._format(self._variant.script.hint))

    # ----------------------------
    # Guards / helpers
    # ----------------------------

    def _guard(self, fn: Callable[..., None], token: Optional[int] = None) -> Callable[..., None]:
        """Bind `fn` to the current round; it no-ops once the round is superseded."""
        bound = self._round_token if token is None else token

        def _run(*args: Any) -> None:
            if not self._alive or bound != self._round_token:
                return
            fn(*args)

        return _run

    def _session_guard(self, fn: Callable[..., None]) -> Callable[..., None]:
        bound = self._session_token

        def _run(*args: Any) -> None:
            if not self._alive or bound != self._session_token:
                return
            fn(*args)

        return _run

    def _cancel_everything(self, *, stop_speech: bool = True) -> None:
        self._round_token += 1
        self._session_token += 1
        self._timers.cancel_all()
        if stop_speech:
            self._stop_speech()

    def _set_phase(self, phase: RoundPhase) -> None:
        if phase is self._phase:
            return
        logger.debug("%s: %s -> %s", self._variant.name, self._phase.value, phase.value)
        self._phase = phase
        self.phase_changed.emit(phase.value)

    def _emit_snapshot(self) -> None:
        self.snapshot_changed.emit(self.get_round_snapshot())

    def _announce(self, first: Optional[bool] = None) -> None:
        r = self._round
        if r is None:
            return
        script = self._variant.script
        is_first = r.is_first if first is None else first
        template = script.announce_first if is_first else script.announce
        text = self._format(template)
        if not text:
            return
        delay = self._variant.announce_delay_ms
        if delay > 0:
            self._timers.arm_once(TimerKind.ANNOUNCE, delay, self._guard(lambda: self._say(text)))
        else:
            self._say(text)

    def _format(self, template: str, **extra: Any) -> str:
        if not template:
            return ""
        r = self._round
        fields = {
            "target": r.target.spoken if r is not None else "",
            "label": r.target.label if r is not None else "",
            "remaining": r.remaining if r is not None else 0,
            "answer": getattr(r.target, "answer", "") if r is not None else "",
            "score": self._scores.score,
            "seconds": self._variant.round_seconds or self._variant.session_seconds or 0,
            "kind": _MODE_KIND.get(self._mode or "", "item"),
            "mode": self._mode or "",
            "item": "",
        }
        fields.update(extra)
        try:
            return template.format(**fields)
        except (KeyError, IndexError, ValueError):
            logger.warning("Bad speech template %r", template)
            return template

    @staticmethod
    def _spoken(payload: Any) -> str:
        return str(getattr(payload, "name", payload))

    def _say(self, text: str):
        if not text:
            return None
        return self._narrator.speak(text, self._variant.voice)

    def _stop_speech(self) -> None:
        try:
            self._narrator.stop()
        except Exception:
            logger.exception("Narration stop failed")

    def _play(self, name: Optional[str]) -> None:
        if not name:
            return
        try:
            play = getattr(self._cues, "play", self._cues)
            play(name)
        except Exception:
            logger.exception("Cue %r failed", name)

    def _report_progress(self, kind: ProgressKind) -> None:
        self._progress_call("report_progress", kind)

    def _progress_call(self, method: str, *args: Any) -> None:
        if self._progress is None:
            return
        fn = getattr(self._progress, method, None)
        if fn is None:
            return
        try:
            fn(*args)
        except Exception:
            logger.exception("Progress collaborator %s failed", method)
