"""Speech synthesis backends.

NarrationGate talks to a backend through two calls:

    speak(text, *, rate, pitch, language, on_done, on_stopped) -> None
    stop() -> None

A backend must eventually call exactly one of `on_done` / `on_stopped` for
every utterance it accepted. Callbacks are delivered on the Qt thread.

Backends:
- SystemSpeechBackend: macOS `say`, or pyttsx3 in a child Python process
  elsewhere. Both run under QProcess.
- SilentSpeechBackend: no audio; completes after an estimated speaking time.
  Used headless and when BUBBLEPOP_TEST_MODE is set.
"""

from __future__ import annotations

import logging
import os
import platform
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from PyQt6.QtCore import QObject, QProcess, QTimer

logger = logging.getLogger(__name__)

VoidFn = Callable[[], None]

# Words per minute of a rate=1.0 utterance.
BASE_WPM = 175

# Run with: python -c PYTTSX3_SCRIPT <wpm> <text>
PYTTSX3_SCRIPT = (
    "import sys, pyttsx3\n"
    "engine = pyttsx3.init()\n"
    "engine.setProperty('rate', int(sys.argv[1]))\n"
    "engine.say(sys.argv[2])\n"
    "engine.runAndWait()\n"
)


def test_mode_enabled() -> bool:
    return str(os.environ.get("BUBBLEPOP_TEST_MODE", "")).strip().lower() in ("1", "true", "yes", "on")


def estimate_duration_ms(text: str, rate: float = 1.0) -> int:
    words = max(1, len(str(text or "").split()))
    r = rate if rate and rate > 0 else 1.0
    return max(200, int(words * 60_000 / (BASE_WPM * r)))


def _safe(fn: Optional[VoidFn]) -> None:
    if fn is None:
        return
    try:
        fn()
    except Exception:
        logger.exception("Speech completion callback failed")


@dataclass
class _Voice:
    name: str
    lang: Optional[str]  # e.g. 'en_US', 'en_GB'


def _list_macos_voices() -> List[_Voice]:
    """Return available macOS voices from `say -v '?'`."""
    try:
        out = subprocess.run(["say", "-v", "?"], capture_output=True, text=True, check=True)
    except (OSError, subprocess.SubprocessError):
        return []
    voices: List[_Voice] = []
    for raw in out.stdout.splitlines():
        no_sample = raw.split("#", 1)[0].rstrip()
        parts = no_sample.split()
        if not parts:
            continue
        # Last token like en_US is the language tag; the name is the rest.
        if len(parts) >= 2 and "_" in parts[-1]:
            voices.append(_Voice(name=" ".join(parts[:-1]).strip(), lang=parts[-1]))
        else:
            voices.append(_Voice(name=no_sample.strip(), lang=None))
    return voices


def _pick_voice(voices: List[_Voice], language: Optional[str]) -> Optional[str]:
    env_voice = os.environ.get("BUBBLEPOP_TTS_VOICE", "").strip()
    if env_voice:
        for v in voices:
            if v.name.lower() == env_voice.lower():
                return v.name
    if language:
        wanted = language.replace("-", "_").lower()
        for v in voices:
            if (v.lang or "").lower() == wanted:
                return v.name
    return None


class SystemSpeechBackend(QObject):
    """Speak through the operating system voice.

    Both paths run the synthesizer in a child QProcess, so the Qt event loop
    keeps turning while it talks and `stop()` can kill it mid-sentence.
    """

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.platform = platform.system().lower()
        self._voices: Optional[List[_Voice]] = None
        self._process: Optional[QProcess] = None
        self._on_done: Optional[VoidFn] = None
        self._on_stopped: Optional[VoidFn] = None

    def speak(
        self,
        text: str,
        *,
        rate: float = 1.0,
        pitch: float = 1.0,
        language: Optional[str] = None,
        on_done: Optional[VoidFn] = None,
        on_stopped: Optional[VoidFn] = None,
    ) -> None:
        self.stop()
        program, args = self.command(text, rate, language)

        proc = QProcess(self)
        self._process = proc
        self._on_done = on_done
        self._on_stopped = on_stopped
        proc.finished.connect(lambda *_: self._finished(proc))
        proc.errorOccurred.connect(lambda err: self._error(proc, err))
        proc.start(program, args)

    def stop(self) -> None:
        proc = self._process
        if proc is None:
            return
        cb = self._on_stopped
        self._process = None
        self._on_done = None
        self._on_stopped = None
        for sig in (proc.finished, proc.errorOccurred):
            try:
                sig.disconnect()
            except (TypeError, RuntimeError):
                pass
        if proc.state() != QProcess.ProcessState.NotRunning:
            proc.kill()
            proc.waitForFinished(500)
        proc.deleteLater()
        _safe(cb)

    def command(self, text: str, rate: float, language: Optional[str]) -> Tuple[str, List[str]]:
        """Program and arguments that speak `text` on this platform."""
        wpm = int(BASE_WPM * (rate if rate > 0 else 1.0))
        if self.platform == "darwin":
            if self._voices is None:
                self._voices = _list_macos_voices()
            args: List[str] = []
            voice = _pick_voice(self._voices, language)
            if voice:
                args += ["-v", voice]
            return "say", args + ["-r", str(wpm), text]
        return sys.executable, ["-c", PYTTSX3_SCRIPT, str(wpm), text]

    def _finished(self, proc: QProcess) -> None:
        if proc is not self._process:
            return
        if proc.exitStatus() != QProcess.ExitStatus.NormalExit or proc.exitCode() != 0:
            logger.warning("%s: speech process exited with code %s", self.platform, proc.exitCode())
        cb = self._on_done
        self._process = None
        self._on_done = None
        self._on_stopped = None
        proc.deleteLater()
        _safe(cb)

    def _error(self, proc: QProcess, error: QProcess.ProcessError) -> None:
        # FailedToStart is the one error that is not followed by `finished`.
        if error != QProcess.ProcessError.FailedToStart:
            return
        logger.warning("%s: unable to start speech process (%s)", self.platform, proc.program())
        self._finished(proc)


class SilentSpeechBackend(QObject):
    """Backend that produces no audio but keeps narration timing realistic."""

    def __init__(self, *, scale: float = 1.0, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._scale = max(0.0, float(scale))
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._complete)
        self._on_done: Optional[VoidFn] = None
        self._on_stopped: Optional[VoidFn] = None
        self.spoken: List[str] = []

    def speak(
        self,
        text: str,
        *,
        rate: float = 1.0,
        pitch: float = 1.0,
        language: Optional[str] = None,
        on_done: Optional[VoidFn] = None,
        on_stopped: Optional[VoidFn] = None,
    ) -> None:
        self.stop()
        logger.info("[speech] %s", text)
        self.spoken.append(text)
        self._on_done = on_done
        self._on_stopped = on_stopped
        self._timer.start(int(estimate_duration_ms(text, rate) * self._scale))

    def stop(self) -> None:
        if not self._timer.isActive():
            return
        self._timer.stop()
        cb = self._on_stopped
        self._on_done = None
        self._on_stopped = None
        _safe(cb)

    def _complete(self) -> None:
        cb = self._on_done
        self._on_done = None
        self._on_stopped = None
        _safe(cb)


def create_speech_backend(parent: Optional[QObject] = None) -> QObject:
    if test_mode_enabled():
        return SilentSpeechBackend(scale=0.0, parent=parent)
    return SystemSpeechBackend(parent=parent)
