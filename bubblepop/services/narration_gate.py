"""Single-slot narration.

NarrationGate owns the one "active narration" slot of the application:

- `speak()` first stops whatever is in flight, then starts the new request
  (last caller wins, nothing is queued).
- Each request is tracked by an `Utterance` handle, a small future: it
  resolves exactly once (done / stopped / dropped / failed) and runs its
  callbacks once. Callers hold the handle instead of closures over mutable
  flags, and can `cancel()` it.
- Requests are dropped (resolved as DROPPED, nothing spoken) when the
  current AudioSetting disallows speech.
- Backend failures are logged; the utterance resolves as FAILED and the
  caller carries on.
- After `close()` every late backend callback is ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from bubblepop.domain.enums import AudioSetting, UtteranceState
from bubblepop.domain.variants import VoiceParams

logger = logging.getLogger(__name__)

VoidFn = Callable[[], None]
DoneCallback = Callable[["Utterance"], None]

DEFAULT_LANGUAGE = "en-GB"


@dataclass(frozen=True)
class NarrationRequest:
    text: str
    rate: float = 0.9
    pitch: float = 1.0
    language: Optional[str] = None
    on_done: Optional[VoidFn] = None
    on_stopped: Optional[VoidFn] = None


class Utterance:
    """Handle for one NarrationRequest."""

    def __init__(self, request: NarrationRequest, token: int) -> None:
        self.request = request
        self.token = token
        self._state = UtteranceState.PENDING
        self._callbacks: List[DoneCallback] = []
        self._gate: Optional["NarrationGate"] = None

    def __repr__(self) -> str:
        return "Utterance(#{}, {}, {!r})".format(self.token, self._state.value, self.request.text)

    @property
    def text(self) -> str:
        return self.request.text

    @property
    def state(self) -> UtteranceState:
        return self._state

    def done(self) -> bool:
        return self._state is not UtteranceState.PENDING

    def completed(self) -> bool:
        """True only when the backend finished speaking the whole text."""
        return self._state is UtteranceState.DONE

    def add_done_callback(self, fn: DoneCallback) -> None:
        """Run `fn(self)` once the utterance resolves (immediately if it has)."""
        if self.done():
            self._run(fn)
            return
        self._callbacks.append(fn)

    def cancel(self) -> bool:
        if self.done():
            return False
        gate = self._gate
        if gate is not None and gate.active_utterance is self:
            gate.stop()
        else:
            self._resolve(UtteranceState.STOPPED)
        return True

    def _resolve(self, state: UtteranceState) -> bool:
        if self.done():
            return False
        self._state = state
        if state is UtteranceState.DONE:
            self._run_void(self.request.on_done)
        elif state is UtteranceState.STOPPED:
            self._run_void(self.request.on_stopped)
        callbacks, self._callbacks = self._callbacks, []
        for fn in callbacks:
            self._run(fn)
        return True

    def _run(self, fn: DoneCallback) -> None:
        try:
            fn(self)
        except Exception:
            logger.exception("Narration callback failed for %r", self)

    @staticmethod
    def _run_void(fn: Optional[VoidFn]) -> None:
        if fn is None:
            return
        try:
            fn()
        except Exception:
            logger.exception("Narration request callback failed")


class NarrationGate(QObject):
    """Serialises speech requests onto one backend."""

    started = pyqtSignal(object)
    finished = pyqtSignal(object)

    def __init__(
        self,
        backend,
        audio_setting: Callable[[], AudioSetting],
        *,
        default_language: str = DEFAULT_LANGUAGE,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._backend = backend
        self._audio_setting = audio_setting
        self._default_language = default_language
        self._active: Optional[Utterance] = None
        self._token = 0
        self._closed = False

    # ----------------------------
    # Public API
    # ----------------------------

    @property
    def is_active(self) -> bool:
        return self._active is not None

    @property
    def active_utterance(self) -> Optional[Utterance]:
        return self._active

    @property
    def closed(self) -> bool:
        return self._closed

    def speak(
        self,
        text: str,
        options: Optional[VoiceParams] = None,
        *,
        on_done: Optional[VoidFn] = None,
        on_stopped: Optional[VoidFn] = None,
    ) -> Utterance:
        voice = options or VoiceParams()
        return self.speak_request(
            NarrationRequest(
                text=str(text),
                rate=voice.rate,
                pitch=voice.pitch,
                language=voice.language,
                on_done=on_done,
                on_stopped=on_stopped,
            )
        )

    def speak_request(self, request: NarrationRequest) -> Utterance:
        self._token += 1
        utt = Utterance(request, self._token)
        utt._gate = self

        if self._closed or not request.text:
            utt._resolve(UtteranceState.DROPPED)
            return utt

        if not self._speech_allowed():
            logger.debug("Narration dropped (speech disabled): %s", request.text)
            utt._resolve(UtteranceState.DROPPED)
            return utt

        if self._active is not None:
            self.stop()

        self._active = utt
        logger.debug("Narration start #%d: %s", utt.token, request.text)
        try:
            self._backend.speak(
                request.text,
                rate=request.rate,
                pitch=request.pitch,
                language=request.language or self._default_language,
                on_done=lambda: self._backend_done(utt),
                on_stopped=lambda: self._backend_stopped(utt),
            )
        except Exception:
            logger.exception("Speech backend failed for %r", request.text)
            if self._active is utt:
                self._active = None
            utt._resolve(UtteranceState.FAILED)
            return utt

        if not utt.done():
            self.started.emit(utt)
        return utt

    def stop(self) -> None:
        utt = self._active
        self._active = None
        if utt is None:
            return
        # Resolve first so the backend's own on_stopped is a no-op.
        utt._resolve(UtteranceState.STOPPED)
        try:
            self._backend.stop()
        except Exception:
            logger.exception("Speech backend stop failed")
        self.finished.emit(utt)

    def close(self) -> None:
        """Stop speaking and ignore every later backend callback."""
        self.stop()
        self._closed = True

    def apply_audio_setting(self, setting: AudioSetting) -> None:
        if not AudioSetting.parse(setting).allows_speech:
            self.stop()

    # ----------------------------
    # Backend callbacks
    # ----------------------------

    def _backend_done(self, utt: Utterance) -> None:
        self._settle(utt, UtteranceState.DONE)

    def _backend_stopped(self, utt: Utterance) -> None:
        self._settle(utt, UtteranceState.STOPPED)

    def _settle(self, utt: Utterance, state: UtteranceState) -> None:
        if self._closed or utt.done():
            return
        if self._active is utt:
            self._active = None
        logger.debug("Narration %s #%d", state.value, utt.token)
        utt._resolve(state)
        self.finished.emit(utt)

    def _speech_allowed(self) -> bool:
        try:
            return AudioSetting.parse(self._audio_setting()).allows_speech
        except Exception:
            logger.exception("Audio setting lookup failed; dropping narration")
            return False
