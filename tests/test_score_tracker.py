from bubblepop.controllers.score_tracker import ScoreTracker


def test_penalty_never_drives_score_negative():
    s = ScoreTracker()
    s.award(10)
    s.penalize(5)
    s.penalize(5)
    s.penalize(5)
    assert s.score == 0
    assert s.wrong == 3


def test_streak_resets_on_wrong_and_best_is_kept():
    s = ScoreTracker()
    for _ in range(3):
        s.award(1)
    s.penalize(0)
    s.award(1)
    assert s.streak == 1
    assert s.best_streak == 3


def test_bonus_and_rounds():
    s = ScoreTracker()
    s.award(1)
    s.bonus(5)
    s.complete_round()
    assert s.score == 6
    assert s.rounds_completed == 1
    s.reset()
    assert (s.score, s.rounds_completed, s.correct) == (0, 0, 0)
