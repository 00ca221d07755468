from __future__ import annotations

import pytest

from recruitflow.core import AssessmentEngine, IllegalTransition, ManualTicker, score_question
from recruitflow.core.assessment import compute_percentage, round_half_up
from recruitflow.schemas import AssessmentKind, AssessmentStatus, Question, QuestionType

from builders import build_quiz


def test_submit_scores_multiple_choice():
    engine = AssessmentEngine(build_quiz())
    engine.start()
    engine.record_answer("q1", 0)
    engine.record_answer("q2", 0)

    result = engine.submit()

    assert result.status is AssessmentStatus.COMPLETED
    assert result.score == 10
    assert result.max_score == 30
    assert result.percentage == 33
    assert result.passed is False
    assert result.auto_submitted is False


def test_double_submit_is_byte_identical():
    engine = AssessmentEngine(build_quiz())
    engine.start()
    engine.record_answer("q1", 0)

    first = engine.submit()
    second = engine.submit()

    assert first.model_dump_json() == second.model_dump_json()


def test_timer_completes_after_time_limit():
    ticker = ManualTicker()
    expired: list = []
    engine = AssessmentEngine(build_quiz(), ticker=ticker, clock=ticker.now, on_expire=expired.append)
    engine.start()
    engine.record_answer("q2", 1)

    ticker.advance(59)
    assert engine.status is AssessmentStatus.IN_PROGRESS
    assert engine.remaining_seconds == 1

    ticker.advance(1)
    assert engine.status is AssessmentStatus.COMPLETED
    assert engine.result.auto_submitted is True
    assert engine.result.score == 20
    assert engine.result.time_spent_seconds == 60
    assert len(expired) == 1
    assert ticker.subscriber_count == 0


def test_pause_stops_countdown():
    ticker = ManualTicker()
    engine = AssessmentEngine(build_quiz(), ticker=ticker)
    engine.start()
    ticker.advance(10)
    engine.pause()
    ticker.advance(120)

    assert engine.is_paused
    assert engine.remaining_seconds == 50
    assert engine.status is AssessmentStatus.IN_PROGRESS

    engine.resume()
    ticker.advance(50)
    assert engine.status is AssessmentStatus.COMPLETED


def test_answers_after_completion_are_ignored():
    engine = AssessmentEngine(build_quiz())
    engine.start()
    done = engine.submit()

    assert engine.record_answer("q1", 0) == done
    assert engine.expire() == done
    assert engine.tick() == done


def test_answers_before_start_are_rejected():
    engine = AssessmentEngine(build_quiz())

    with pytest.raises(IllegalTransition):
        engine.record_answer("q1", 0)
    with pytest.raises(IllegalTransition):
        engine.submit()


def test_unknown_question_is_rejected():
    engine = AssessmentEngine(build_quiz())
    engine.start()

    with pytest.raises(ValueError):
        engine.record_answer("nope", 1)


def test_empty_quiz_cannot_start():
    with pytest.raises(ValueError):
        AssessmentEngine(build_quiz(questions=())).start()


def test_expire_scores_recorded_answers():
    engine = AssessmentEngine(build_quiz())
    engine.start()
    engine.record_answer("q1", "0")

    result = engine.expire()

    assert result.status is AssessmentStatus.EXPIRED
    assert result.score == 10
    assert result.auto_submitted is False


def test_free_text_is_flagged_for_manual_grading():
    quiz = build_quiz(
        AssessmentKind.HR,
        questions=(
            Question(id="t", points=10, type=QuestionType.TEXT),
            Question(id="c", points=10, type=QuestionType.CODE),
            Question(id="r", points=10, type=QuestionType.RATING),
        ),
    )
    engine = AssessmentEngine(quiz)
    engine.start()
    engine.record_answer("t", "A thoughtful essay")
    engine.record_answer("r", 4)

    result = engine.submit()

    assert result.score == 0
    assert set(result.manual_grading) == {"t", "c", "r"}


def test_rating_scores_against_target():
    question = Question(id="r", points=10, type=QuestionType.RATING, target_value=4)

    assert score_question(question, 2).awarded == 5
    assert score_question(question, 9).awarded == 10
    assert score_question(question, "x").awarded == 0
    fallback = Question(id="r2", points=10, type=QuestionType.RATING)
    assert score_question(fallback, 3, rating_target=5).awarded == 6


def test_multiple_choice_ignores_booleans():
    question = Question(id="q", points=5, options=("a", "b"), correct_answer=1)
    assert score_question(question, True).awarded == 0
    assert score_question(question, 1).awarded == 5


@pytest.mark.parametrize(
    "score, max_score, expected",
    [(10, 30, 33), (20, 30, 67), (1, 8, 13), (0, 0, 0), (15, 30, 50)],
)
def test_percentage_rounding(score, max_score, expected):
    assert compute_percentage(score, max_score) == expected


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(0.5) == 1
    assert round_half_up(2.4999) == 2
