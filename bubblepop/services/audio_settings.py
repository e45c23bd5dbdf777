from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QObject, pyqtSignal

from bubblepop.domain.enums import AudioSetting
from bubblepop.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)


class AudioSettings(QObject):
    """Holds the current AudioSetting and announces changes.

    This is the `getAudioSetting()` collaborator: NarrationGate and CuePlayer
    call the instance to decide whether to speak / play.
    """

    changed = pyqtSignal(object)

    def __init__(
        self,
        initial: AudioSetting | str | None = None,
        *,
        settings_store: Optional[SettingsStore] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._store = settings_store
        if initial is None and settings_store is not None:
            initial = settings_store.get_audio_setting()
        self._setting: AudioSetting = AudioSetting.parse(initial, AudioSetting.FULL)

    def __call__(self) -> AudioSetting:
        return self._setting

    @property
    def current(self) -> AudioSetting:
        return self._setting

    def set(self, value: AudioSetting | str, *, persist: bool = True) -> None:
        new = AudioSetting.parse(value, self._setting)
        if new is self._setting:
            return
        self._setting = new
        logger.debug("Audio setting -> %s", new.value)
        if persist and self._store is not None:
            self._store.set_audio_setting(new)
        self.changed.emit(new)
