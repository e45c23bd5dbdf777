"""Headless runner for the bubble-pop round engine.

Wires the real collaborators (settings, audio, cues, speech, progress) around
a RoundEngine for one game and runs it on a Qt event loop. There is no
rendering here: `--autoplay` taps items on a timer so a whole session can be
watched in the log.

    python main.py --game colors --autoplay
    python main.py --game math --difficulty hard --seconds 30 -v
"""

from __future__ import annotations

import argparse
import logging
import os
import random
import sys
from dataclasses import dataclass
from typing import List, Optional

from PyQt6.QtCore import QCoreApplication, QObject, QTimer

from bubblepop.controllers.round_engine import RoundEngine
from bubblepop.domain.enums import AudioSetting, Difficulty, RoundPhase
from bubblepop.domain.rounds import format_clock
from bubblepop.domain.variants import VARIANTS, get_variant
from bubblepop.errors import BubblePopError
from bubblepop.services.audio_settings import AudioSettings
from bubblepop.services.cue_player import CuePlayer
from bubblepop.services.narration_gate import NarrationGate
from bubblepop.services.progress_stats import ProgressStats
from bubblepop.services.settings_store import SettingsStore
from bubblepop.services.tts_backend import create_speech_backend

logger = logging.getLogger("bubblepop")


@dataclass
class GameSession:
    """Everything `create_engine` assembled, so callers can tear it down."""

    engine: RoundEngine
    narrator: NarrationGate
    audio: AudioSettings
    cues: CuePlayer
    progress: ProgressStats
    store: SettingsStore

    def close(self) -> None:
        self.engine.teardown()
        self.narrator.close()
        self.cues.unload_all()


def create_engine(
    game: str,
    *,
    store: Optional[SettingsStore] = None,
    difficulty: Difficulty | str | None = None,
    audio: AudioSetting | str | None = None,
    backend=None,
    rng: Optional[random.Random] = None,
    parent: Optional[QObject] = None,
) -> GameSession:
    """Build a RoundEngine for `game` with real collaborators.

    Difficulty falls back to the one saved for this game; an explicit one is
    saved back.
    """
    variant = get_variant(game)
    store = store or SettingsStore()

    if difficulty is None:
        saved = store.get_difficulty(variant.name, variant.difficulties[0])
        chosen = saved if saved in variant.difficulties else variant.difficulties[0]
    else:
        chosen = Difficulty.parse(difficulty, variant.difficulties[0])
        store.set_difficulty(variant.name, chosen)

    audio_settings = AudioSettings(audio, settings_store=store, parent=parent)

    backend = backend if backend is not None else create_speech_backend(parent)
    narrator = NarrationGate(backend, audio_settings, parent=parent)
    audio_settings.changed.connect(narrator.apply_audio_setting)

    cues = CuePlayer(audio_settings)
    progress = ProgressStats(store)

    engine = RoundEngine(
        variant,
        narrator=narrator,
        cues=cues,
        progress=progress,
        difficulty=chosen,
        rng=rng,
        parent=parent,
    )
    logger.info("Created %s engine (difficulty=%s, audio=%s)", variant.name, chosen.value, audio_settings.current.value)
    return GameSession(engine, narrator, audio_settings, cues, progress, store)


class AutoPlayer(QObject):
    """Taps one item every `interval_ms`: a target item, or a miss now and then."""

    def __init__(
        self,
        engine: RoundEngine,
        *,
        interval_ms: int = 400,
        miss_rate: float = 0.1,
        rng: Optional[random.Random] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._engine = engine
        self._miss_rate = miss_rate
        self._rng = rng or random.Random()
        self._timer = QTimer(self)
        self._timer.setInterval(max(1, int(interval_ms)))
        self._timer.timeout.connect(self.tap)

    def start(self) -> None:
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    def tap(self) -> Optional[str]:
        engine = self._engine
        if engine.phase is not RoundPhase.ACTIVE or engine.current_round is None:
            return None
        r = engine.current_round
        live = [item for item in r.items if not item.popped]
        hits = [item for item in live if r.target.matches(item.payload)]
        misses = [item for item in live if not r.target.matches(item.payload)]
        pool: List = hits
        if misses and (not hits or self._rng.random() < self._miss_rate):
            pool = misses
        if not pool:
            return None
        item_id = self._rng.choice(pool).item_id
        engine.on_pop(item_id)
        return item_id


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Run a bubble-pop game headless.")
    p.add_argument("--game", default="colors", choices=sorted(VARIANTS), help="game to run")
    p.add_argument("--difficulty", choices=[d.value for d in Difficulty], default=None)
    p.add_argument("--audio", choices=[a.value for a in AudioSetting], default=None)
    p.add_argument("--seconds", type=int, default=40, help="stop after this many seconds (0 = until finished)")
    p.add_argument("--autoplay", action="store_true", help="tap items automatically")
    p.add_argument("--interval", type=int, default=400, help="autoplay tap interval in ms")
    p.add_argument("--settings", default=None, help="path to settings.yaml")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QCoreApplication.instance() or QCoreApplication(sys.argv if argv is None else ["bubblepop"])
    rng = random.Random(args.seed)

    try:
        session = create_engine(
            args.game,
            store=SettingsStore(args.settings),
            difficulty=args.difficulty,
            audio=args.audio,
            rng=rng,
        )
    except BubblePopError as e:
        logger.error("%s", e)
        return 2

    engine = session.engine

    def _on_round(index: int) -> None:
        r = engine.current_round
        logger.info("Round %d: %s (%d to find)", index + 1, r.target.label if r else "?", r.required if r else 0)

    def _on_finished(summary) -> None:
        print(
            "{}: score {} | rounds {} | time {} | high score {}".format(
                summary.game,
                summary.score,
                summary.rounds_completed,
                format_clock(summary.elapsed_seconds),
                summary.high_score,
            )
        )
        QTimer.singleShot(0, app.quit)

    engine.round_started.connect(_on_round)
    engine.session_finished.connect(_on_finished)

    player = None
    if args.autoplay:
        player = AutoPlayer(engine, interval_ms=args.interval, rng=rng)
        player.start()

    if args.seconds > 0:
        QTimer.singleShot(args.seconds * 1000, app.quit)

    engine.start()
    code = app.exec()

    if player is not None:
        player.stop()
    snap = engine.get_round_snapshot()
    if snap.phase is not RoundPhase.FINISHED:
        print("{}: score {} after {} rounds".format(engine.variant.name, snap.score, engine.scores.rounds_completed))
    session.close()
    return int(code)


if __name__ == "__main__":
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    sys.exit(main())
