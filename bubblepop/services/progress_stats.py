from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Optional

from bubblepop.domain.enums import ProgressKind
from bubblepop.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)


_KIND_TO_FIELD = {
    ProgressKind.SHAPE: "shapes_completed",
    ProgressKind.COLOR: "colors_learned",
    ProgressKind.LETTER: "letters_learned",
    ProgressKind.MATH_PROBLEM: "math_problems_completed",
}


@dataclass
class ProgressCounters:
    total_pops: int = 0
    shapes_completed: int = 0
    colors_learned: int = 0
    letters_learned: int = 0
    math_problems_completed: int = 0
    high_score: int = 0


class ProgressStats:
    """Learning-progress counters (`reportProgress(kind)`).

    Counters live in memory; when a SettingsStore is given they are loaded
    from and saved back to it after each change (best-effort).
    """

    def __init__(self, settings_store: Optional[SettingsStore] = None) -> None:
        self._store = settings_store
        self._counters = ProgressCounters()
        if settings_store is not None:
            saved = settings_store.get_stats()
            for name in asdict(self._counters):
                if name in saved:
                    setattr(self._counters, name, int(saved[name]))

    @property
    def counters(self) -> ProgressCounters:
        return self._counters

    def report_progress(self, kind: ProgressKind | str) -> None:
        attr = _KIND_TO_FIELD[ProgressKind(kind)]
        setattr(self._counters, attr, getattr(self._counters, attr) + 1)
        logger.debug("Progress %s -> %d", attr, getattr(self._counters, attr))
        self._persist()

    def increment_pops(self, count: int = 1) -> None:
        self._counters.total_pops += max(0, int(count))
        self._persist()

    def update_high_score(self, score: int) -> bool:
        if int(score) > self._counters.high_score:
            self._counters.high_score = int(score)
            self._persist()
            return True
        return False

    def _persist(self) -> None:
        if self._store is None:
            return
        self._store.set_stats(asdict(self._counters))
