from __future__ import annotations

import pytest
from pydantic import ValidationError

from recruitflow.schemas import AssessmentKind, Question, QuestionType, Quiz

from builders import build_quiz


def test_total_points_tracks_question_edits():
    quiz = build_quiz()
    assert quiz.total_points == 30

    added = quiz.with_question(Question(id="q3", points=5, type=QuestionType.TEXT))
    assert added.total_points == 35

    edited = added.with_points("q2", 7)
    assert edited.total_points == 22

    removed = edited.without_question("q1")
    assert removed.total_points == 12
    assert [q.id for q in removed.questions] == ["q2", "q3"]
    assert quiz.total_points == 30


def test_with_question_replaces_existing_id():
    quiz = build_quiz()
    replaced = quiz.with_question(Question(id="q1", points=1, options=("x",), correct_answer=0))

    assert len(replaced.questions) == 2
    assert replaced.question("q1").points == 1
    assert replaced.total_points == 21


def test_supplied_total_points_is_ignored():
    payload = build_quiz().model_dump()
    payload["total_points"] = 999

    restored = Quiz.model_validate(payload)

    assert restored.total_points == 30


def test_without_unknown_question_raises():
    with pytest.raises(KeyError):
        build_quiz().without_question("missing")


def test_duplicate_question_ids_rejected():
    with pytest.raises(ValidationError):
        Quiz(
            id="dup",
            kind=AssessmentKind.HR,
            questions=(Question(id="a", points=1), Question(id="a", points=2)),
            time_limit=5,
            passing_score=50,
        )


def test_correct_answer_must_index_an_option():
    with pytest.raises(ValidationError):
        Question(id="q", points=1, options=("A", "B"), correct_answer=2)


@pytest.mark.parametrize(
    "field, value",
    [("time_limit", 0), ("passing_score", 101), ("passing_score", -1)],
)
def test_quiz_bounds_are_validated(field, value):
    with pytest.raises(ValidationError):
        build_quiz(**{field: value})


def test_empty_quiz_reports_empty():
    quiz = build_quiz(questions=())
    assert quiz.is_empty
    assert quiz.total_points == 0
