"""Sound-effect cues (`playCue(name)`).

Fire-and-forget playback of short WAV samples via QtMultimedia when it is
available. Nothing here ever raises into the caller: missing files, a missing
QtMultimedia module (headless CI) and playback errors are logged and dropped.

Cue names used by the games:
    pop, correct, incorrect, buttonPress, celebration, countdown
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Dict, Optional

from bubblepop.domain.enums import AudioSetting

logger = logging.getLogger(__name__)


CUE_FILES: Dict[str, str] = {
    "pop": "pop.wav",
    "correct": "correct.wav",
    "incorrect": "error.wav",
    "buttonPress": "click.wav",
    "celebration": "celebration.wav",
    "countdown": "countdown.wav",
}


def get_sounds_dir() -> Path:
    """Return the directory holding cue WAV files.

    Priority:
    1) BUBBLEPOP_SOUNDS_DIR env var
    2) <project_root>/assets/sounds
    """
    env = (os.environ.get("BUBBLEPOP_SOUNDS_DIR") or "").strip()
    if env:
        return Path(env).expanduser()
    return Path(__file__).resolve().parents[2] / "assets" / "sounds"


class CuePlayer:
    """Plays named cues, gated by the current AudioSetting."""

    def __init__(
        self,
        audio_setting: Callable[[], AudioSetting],
        *,
        sounds_dir: Optional[Path] = None,
    ) -> None:
        self._audio_setting = audio_setting
        self._sounds_dir = Path(sounds_dir) if sounds_dir is not None else get_sounds_dir()
        self._cache: Dict[str, object] = {}

    def play(self, name: str) -> None:
        try:
            if not self._audio_setting().allows_sound:
                return
        except Exception:
            logger.exception("Audio setting lookup failed; skipping cue %r", name)
            return
        try:
            effect = self._load(name)
            if effect is not None:
                effect.play()
        except Exception:
            logger.exception("Error playing cue %r", name)

    __call__ = play

    def unload_all(self) -> None:
        for name, effect in list(self._cache.items()):
            try:
                effect.stop()
            except Exception:
                logger.exception("Error unloading cue %r", name)
        self._cache.clear()

    def _load(self, name: str):
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        filename = CUE_FILES.get(name)
        if filename is None:
            logger.warning("Unknown cue %r", name)
            return None
        path = self._sounds_dir / filename
        if not path.is_file():
            logger.debug("Cue file missing: %s", path)
            return None

        try:
            from PyQt6.QtCore import QUrl
            from PyQt6.QtMultimedia import QSoundEffect
        except ImportError:
            logger.debug("QtMultimedia unavailable; cue %r is silent", name)
            return None

        effect = QSoundEffect()
        effect.setSource(QUrl.fromLocalFile(str(path)))
        effect.setLoopCount(1)
        effect.setVolume(1.0)
        # QSoundEffect must stay referenced or it is collected mid-play.
        self._cache[name] = effect
        return effect
