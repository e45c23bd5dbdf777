from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from bubblepop.domain.enums import AudioSetting, Difficulty
from bubblepop.errors import SettingsError

logger = logging.getLogger(__name__)


def default_settings_path() -> Path:
    env = (os.environ.get("BUBBLEPOP_SETTINGS_PATH") or "").strip()
    if env:
        return Path(env).expanduser()
    # <project_root>/settings.yaml, next to main.py.
    return Path(__file__).resolve().parents[2] / "settings.yaml"


class SettingsStore:
    """YAML-backed settings store.

    Responsibilities:
      - Load/save settings.yaml atomically
      - Provide typed helpers for the audio setting, per-game difficulty and
        the progress counters

    Notes:
      - Saving is best-effort; failures are logged and never raised.
    """

    def __init__(self, settings_path: str | os.PathLike | None = None) -> None:
        if settings_path is None:
            self._path = default_settings_path()
        else:
            self._path = Path(settings_path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, strict: bool = False) -> dict[str, Any]:
        p = self._path
        if not p.exists():
            return {}
        try:
            with p.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, UnicodeError, yaml.YAMLError) as e:
            if strict:
                raise SettingsError("Cannot read settings from {}: {}".format(p, e)) from e
            logger.warning("Ignoring unreadable settings file %s: %s", p, e)
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, data: dict[str, Any]) -> None:
        p = self._path
        tmp = p.with_suffix(p.suffix + ".tmp")
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                yaml.safe_dump(data or {}, f, allow_unicode=True, sort_keys=True)
            os.replace(str(tmp), str(p))
        except (OSError, yaml.YAMLError):
            logger.exception("Failed to persist settings to %s", p)
            try:
                if tmp.exists():
                    tmp.unlink()
            except OSError:
                pass

    def update(self, **values: Any) -> None:
        s = self.load()
        s.update(values)
        self.save(s)

    # ----------------------------
    # Audio
    # ----------------------------

    def get_audio_setting(self) -> AudioSetting:
        return AudioSetting.parse(self.load().get("audio_setting"), AudioSetting.FULL)

    def set_audio_setting(self, value: AudioSetting) -> None:
        self.update(audio_setting=AudioSetting.parse(value).value)

    # ----------------------------
    # Difficulty (per game)
    # ----------------------------

    def get_difficulty(self, game: str, default: Difficulty = Difficulty.EASY) -> Difficulty:
        d = self.load().get("difficulty") or {}
        if not isinstance(d, dict):
            d = {}
        return Difficulty.parse(d.get(game), default)

    def set_difficulty(self, game: str, value: Difficulty) -> None:
        s = self.load()
        d = s.get("difficulty") or {}
        if not isinstance(d, dict):
            d = {}
        d[str(game)] = Difficulty.parse(value).value
        s["difficulty"] = d
        self.save(s)

    # ----------------------------
    # Progress counters
    # ----------------------------

    def get_stats(self) -> dict[str, int]:
        raw = self.load().get("stats") or {}
        if not isinstance(raw, dict):
            return {}
        out: dict[str, int] = {}
        for k, v in raw.items():
            try:
                out[str(k)] = max(0, int(v))
            except (TypeError, ValueError):
                continue
        return out

    def set_stats(self, stats: dict[str, int]) -> None:
        self.update(stats={str(k): int(v) for k, v in (stats or {}).items()})
