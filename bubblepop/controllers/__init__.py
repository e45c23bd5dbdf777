"""
Controller package exports.

The round engine and the pieces it is assembled from.
"""

from .population_generator import PopulationGenerator  # noqa: F401
from .round_engine import RoundEngine  # noqa: F401
from .score_tracker import ScoreTracker  # noqa: F401
from .target_selector import TargetSelector  # noqa: F401
from .timer_coordinator import TimerCoordinator  # noqa: F401

__all__ = [
    "PopulationGenerator",
    "RoundEngine",
    "ScoreTracker",
    "TargetSelector",
    "TimerCoordinator",
]
