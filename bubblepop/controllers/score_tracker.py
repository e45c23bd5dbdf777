from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ScoreTracker:
    """Round and session counters. Score never goes below zero."""

    score: int = 0
    streak: int = 0
    best_streak: int = 0
    correct: int = 0
    wrong: int = 0
    rounds_completed: int = 0

    def award(self, points: int) -> int:
        self.score += max(0, int(points))
        self.correct += 1
        self.streak += 1
        self.best_streak = max(self.best_streak, self.streak)
        return self.score

    def penalize(self, points: int) -> int:
        self.score = max(0, self.score - max(0, int(points)))
        self.wrong += 1
        self.streak = 0
        return self.score

    def bonus(self, points: int) -> int:
        self.score += max(0, int(points))
        return self.score

    def complete_round(self) -> int:
        self.rounds_completed += 1
        return self.rounds_completed

    def reset(self) -> None:
        self.score = 0
        self.streak = 0
        self.best_streak = 0
        self.correct = 0
        self.wrong = 0
        self.rounds_completed = 0
