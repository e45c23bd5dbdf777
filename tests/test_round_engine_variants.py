from conftest import miss_ids, target_ids

from bubblepop.domain.enums import AudioSetting, Difficulty, RoundPhase
from bubblepop.domain.targets import AnyTarget, ArithmeticProblem


# ------------------------------
# Math
# ------------------------------

def _answer_id(engine):
    r = engine.current_round
    return next(i.item_id for i in r.items if i.payload == r.target.answer)


def test_math_announces_after_short_delay(make_engine, clock, backend):
    engine = make_engine("math")
    engine.start()
    assert backend.spoken == []
    clock.advance(300)
    problem = engine.current_round.target
    assert isinstance(problem, ArithmeticProblem)
    assert backend.spoken == ["Game started. Target {}".format(problem.spoken)]


def test_math_advances_only_after_narration_completes(make_engine, clock, backend, progress):
    engine = make_engine("math")
    engine.start()
    clock.advance(300)
    answer = engine.current_round.target.answer

    engine.on_pop(_answer_id(engine))
    assert engine.phase is RoundPhase.CELEBRATING
    assert backend.spoken[-1] == "That's correct! The answer was {}.".format(answer)
    assert progress.reports == ["mathProblem"]

    clock.advance(5000)
    assert engine.phase is RoundPhase.CELEBRATING

    backend.finish()
    assert engine.phase is RoundPhase.ACTIVE
    assert engine.current_round.index == 1
    clock.advance(300)
    assert backend.spoken[-1] == "Quick now. Pop {}".format(engine.current_round.target.spoken)


def test_math_muted_narration_still_advances(make_engine, audio, progress):
    audio.setting = AudioSetting.MUTE
    engine = make_engine("math")
    engine.start()
    for n in range(1, 201):
        problem = engine.current_round.target
        assert problem.answer >= 0
        engine.on_pop(_answer_id(engine))
        assert engine.current_round.index == n
    assert progress.reports.count("mathProblem") == 200
    assert engine.score == 2000


def test_math_fallback_advances_when_backend_never_reports(make_engine, clock):
    engine = make_engine("math")
    engine.start()
    engine.on_pop(_answer_id(engine))
    clock.advance(7999)
    assert engine.phase is RoundPhase.CELEBRATING
    clock.advance(1)
    assert engine.phase is RoundPhase.ACTIVE


def test_math_wrong_answer_reverts_after_a_second(make_engine, clock, backend):
    engine = make_engine("math")
    engine.start()
    r = engine.current_round
    wrong = r.find(miss_ids(engine)[0])

    engine.on_pop(wrong.item_id)
    assert wrong.popped
    assert backend.spoken[-1] == "Try again!"
    assert engine.score == 0

    clock.advance(999)
    assert wrong.popped
    clock.advance(1)
    assert not wrong.popped
    assert engine.current_round is r


def test_math_revert_is_dropped_when_round_ends(make_engine, clock, audio):
    audio.setting = AudioSetting.MUTE
    engine = make_engine("math")
    engine.start()
    old = engine.current_round
    wrong = old.find(miss_ids(engine)[0])

    engine.on_pop(wrong.item_id)
    engine.on_pop(_answer_id(engine))
    assert engine.current_round is not old
    clock.advance(2000)
    assert wrong.popped


def test_math_hint_after_twenty_seconds(make_engine, clock, backend):
    engine = make_engine("math")
    engine.start()
    clock.advance(20_000)
    label = engine.current_round.target.label
    assert backend.spoken[-1] == "Remember, we're trying to solve {}".format(label)


def test_math_difficulty_controls_operands_and_keeps_score(make_engine, audio):
    audio.setting = AudioSetting.MUTE
    engine = make_engine("math")
    engine.start()
    engine.on_pop(_answer_id(engine))

    assert engine.cycle_difficulty() is Difficulty.HARD
    assert engine.score == 10
    for _ in range(100):
        p = engine.current_round.target
        assert p.operand1 <= 10 and p.operand2 <= 10
        assert all(1 <= i.payload <= 20 for i in engine.current_round.items if i.payload != p.answer)
        engine.on_pop(_answer_id(engine))
    assert engine.cycle_difficulty() is Difficulty.EASY


# ------------------------------
# ABC
# ------------------------------

def test_abc_walks_the_alphabet(make_engine, clock, backend, progress):
    engine = make_engine("abc")
    engine.start()
    assert engine.current_round.target.value == "A"
    assert backend.spoken[-1] == "Game started! Find the letter A"

    ids = target_ids(engine)
    assert len(ids) == 5
    engine.on_pop(ids[0])
    engine.on_pop(ids[1])
    assert backend.spoken[-1] == "Good! Find 3 more"
    for item_id in ids[2:]:
        engine.on_pop(item_id)
    assert progress.reports == ["letter"]
    assert backend.spoken[-1] == "Great job! You found all the As!"

    clock.advance(2000)
    assert engine.current_round.target.value == "B"
    assert backend.spoken[-1] == "Quick! Find the letter B"


def test_abc_wrong_pop_has_no_penalty(make_engine, backend):
    engine = make_engine("abc")
    engine.start()
    engine.on_pop(target_ids(engine)[0])
    engine.on_pop(miss_ids(engine)[0])
    assert engine.score == 10
    assert backend.spoken[-1].endswith("not A. Try again!")


def test_abc_mode_switch_announces_after_switch_message(make_engine, backend):
    engine = make_engine("abc")
    engine.start()
    assert engine.switch_mode() == "numbers"
    assert engine.current_round.target.value == "1"
    assert backend.spoken[-1] == "Switching to numbers mode"

    backend.finish()
    assert backend.spoken[-1] == "Quick! Find the number 1"

    assert engine.switch_mode() == "alphabet"
    assert engine.current_round.target.value == "A"


def test_abc_mode_switch_while_suspended_keeps_clock_running(make_engine, clock):
    engine = make_engine("abc")
    engine.start()
    clock.advance(4000)
    engine.suspend()

    engine.switch_mode()
    assert engine.phase is RoundPhase.ACTIVE
    assert engine.elapsed_seconds == 4
    clock.advance(3000)
    assert engine.elapsed_seconds == 7


# ------------------------------
# Free pop
# ------------------------------

def test_free_pop_every_bubble_counts(make_engine, clock, backend, progress):
    engine = make_engine("free-pop")
    engine.start()
    r = engine.current_round
    assert r.target.value == "Circle"
    assert len(r.items) == 25 and r.required == 25
    assert backend.spoken[-1] == "Game started. Pop all the Circle bubbles!"

    for item in list(r.items):
        engine.on_pop(item.item_id)
    assert progress.reports == ["shape"]
    assert engine.score == 0
    clock.advance(2000)
    assert engine.current_round.target.value == "Square"
    assert backend.spoken[-1] == "New shape! Pop all the Square bubbles!"


def test_free_pop_inactivity_hint(make_engine, clock, backend):
    engine = make_engine("free-pop")
    engine.start()
    clock.advance(10_000)
    assert backend.spoken[-1] == "Keep going! 25 Circle bubbles left to pop."


def test_free_pop_watchdog_quiet_while_player_is_active(make_engine, clock, backend):
    engine = make_engine("free-pop")
    engine.start()
    ids = [i.item_id for i in engine.current_round.items]
    for item_id in ids[:12]:
        clock.advance(5000)
        engine.on_pop(item_id)
    hints = [s for s in backend.spoken if s.startswith("Keep going!")]
    # Only the 15 s progress hint; the 10 s watchdog is kicked by every pop.
    assert hints == ["Keep going! 23 Circle bubbles left to pop."]


# ------------------------------
# Speed
# ------------------------------

def test_speed_clear_bonus_and_regenerate(make_engine, clock, cues, progress):
    engine = make_engine("speed")
    engine.start()
    r = engine.current_round
    assert isinstance(r.target, AnyTarget)
    assert len(r.items) == 16

    for item in list(r.items):
        engine.on_pop(item.item_id)
    assert engine.score == 16 + 5
    assert engine.phase is RoundPhase.CELEBRATING
    clock.advance(300)
    assert engine.phase is RoundPhase.ACTIVE
    assert engine.current_round is not r
    assert all(not i.popped for i in engine.current_round.items)
    assert progress.reports == []
    assert progress.pops == 16
    assert cues.played.count("pop") == 16


def test_speed_session_clock_spans_rounds(make_engine, clock, cues, progress):
    engine = make_engine("speed")
    summaries = []
    engine.session_finished.connect(summaries.append)
    engine.start()

    clock.advance(10_000)
    for item in list(engine.current_round.items):
        engine.on_pop(item.item_id)
    clock.advance(300)
    assert engine.get_round_snapshot().time_remaining == 20

    clock.advance(19_700)
    assert engine.phase is RoundPhase.FINISHED
    assert cues.played[-1] == "celebration"
    assert progress.high_scores == [21]
    assert summaries[0].score == 21
    assert summaries[0].rounds_completed == 1

    engine.restart()
    assert engine.score == 0
    assert engine.get_round_snapshot().time_remaining == 30


def test_speed_suspend_keeps_session_remaining(make_engine, clock):
    engine = make_engine("speed")
    engine.start()
    clock.advance(10_000)
    engine.suspend()
    clock.advance(100_000)
    engine.resume()
    assert engine.get_round_snapshot().time_remaining == 20
    clock.advance(20_000)
    assert engine.phase is RoundPhase.FINISHED


# ------------------------------
# Balloon
# ------------------------------

def test_balloon_population_by_difficulty(make_engine):
    for difficulty, count in ((Difficulty.EASY, 6), (Difficulty.MEDIUM, 10), (Difficulty.HARD, 14)):
        engine = make_engine("balloon", difficulty=difficulty)
        engine.start()
        r = engine.current_round
        assert len(r.items) == count
        assert r.required == 1
        assert r.count_matching() >= 1
        assert all(i.x is not None and i.speed is not None for i in r.items)


def test_balloon_correct_pop_replaces_and_starts_new_round(make_engine, clock, backend, progress):
    engine = make_engine("balloon", seed=99)
    engine.start()
    clock.advance(500)
    assert backend.spoken[-1] == "Find the {}!".format(engine.current_round.target.value)

    first = engine.current_round
    hit = target_ids(engine)[0]
    engine.on_pop(hit)
    assert progress.reports == ["shape"]
    assert engine.score == 10
    r = engine.current_round
    assert r is not first and r.index == 1
    assert engine.phase is RoundPhase.ACTIVE
    assert len(r.items) == 6
    assert r.find(hit) is None
    assert all(not i.popped for i in r.items)
    assert r.count_matching() >= 1


def test_balloon_wrong_pop_replaces_the_balloon(make_engine, backend, progress):
    engine = make_engine("balloon", seed=5)
    engine.start()
    r = engine.current_round
    misses = miss_ids(engine)
    if not misses:
        engine.restart()
        r = engine.current_round
        misses = miss_ids(engine)
    wrong = misses[0]
    engine.on_pop(wrong)

    assert engine.current_round is r
    assert r.find(wrong) is None
    assert len(r.items) == 6
    assert engine.score == 0
    assert backend.spoken[-1] == "Find the {}!".format(r.target.value)
    assert progress.reports == []


def test_balloon_off_screen_keeps_a_target_available(make_engine):
    engine = make_engine("balloon", seed=17)
    engine.start()
    r = engine.current_round
    for _ in range(50):
        engine.on_off_screen(target_ids(engine)[0])
        assert len(r.items) == 6
        assert r.count_matching(unpopped_only=True) >= 1
    assert engine.score == 0


def test_off_screen_is_ignored_for_grid_games(make_engine):
    engine = make_engine("colors")
    engine.start()
    ids = [i.item_id for i in engine.current_round.items]
    engine.on_off_screen(ids[0])
    assert [i.item_id for i in engine.current_round.items] == ids
