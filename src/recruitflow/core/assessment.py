"""Timed assessment engine and scoring policy."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

import pendulum
import structlog

from ..schemas import AssessmentResult, AssessmentStatus, Question, QuestionType, Quiz
from .errors import IllegalTransition
from .ticker import Ticker, Unsubscribe

Clock = Callable[[], datetime]
ExpiryCallback = Callable[[AssessmentResult], None]

MANUAL_TYPES = frozenset({QuestionType.TEXT, QuestionType.CODE, QuestionType.SCENARIO})


@dataclass(slots=True)
class QuestionScore:
    """Automatic score for a single answer."""

    question_id: str
    awarded: float
    max_points: int
    needs_manual_grading: bool = False


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_percentage(score: float, max_score: int) -> int:
    if max_score <= 0:
        return 0
    return round_half_up(score / max_score * 100)


def score_question(question: Question, answer: Any, *, rating_target: float | None = None) -> QuestionScore:
    """Score one answer; never awards points that cannot be verified."""
    if question.type is QuestionType.MULTIPLE_CHOICE:
        selected = _as_index(answer)
        correct = (
            question.correct_answer is not None
            and selected is not None
            and selected == question.correct_answer
        )
        return QuestionScore(question.id, float(question.points) if correct else 0.0, question.points)

    if question.type is QuestionType.RATING:
        target = question.target_value or rating_target
        if target is None:
            return QuestionScore(question.id, 0.0, question.points, needs_manual_grading=True)
        value = _as_number(answer)
        if value is None:
            return QuestionScore(question.id, 0.0, question.points)
        ratio = min(max(value, 0.0) / target, 1.0)
        return QuestionScore(question.id, round(question.points * ratio, 2), question.points)

    return QuestionScore(question.id, 0.0, question.points, needs_manual_grading=True)


def score_answers(quiz: Quiz, answers: dict[str, Any]) -> tuple[float, list[QuestionScore]]:
    scores = [
        score_question(question, answers.get(question.id), rating_target=quiz.rating_target)
        for question in quiz.questions
    ]
    total = round(sum(item.awarded for item in scores), 2)
    return total, scores


def _as_index(answer: Any) -> int | None:
    if isinstance(answer, bool):
        return None
    if isinstance(answer, int):
        return answer
    if isinstance(answer, str) and answer.strip().isdigit():
        return int(answer.strip())
    return None


def _as_number(answer: Any) -> float | None:
    if isinstance(answer, bool) or answer is None:
        return None
    try:
        return float(answer)
    except (TypeError, ValueError):
        return None


class AssessmentEngine:
    """One running attempt at a quiz.

    The countdown only moves on ticks. Completion happens at most once: the
    first of ``submit()``, ``expire()`` or the final tick wins, and every later
    call returns the stored result untouched.
    """

    def __init__(
        self,
        quiz: Quiz,
        *,
        ticker: Ticker | None = None,
        clock: Clock | None = None,
        on_expire: ExpiryCallback | None = None,
    ) -> None:
        self._quiz = quiz
        self._ticker = ticker
        self._clock = clock or (lambda: pendulum.now("UTC"))
        self._on_expire = on_expire
        self._lock = threading.RLock()
        self._answers: dict[str, Any] = {}
        self._remaining = quiz.time_limit * 60
        self._paused = False
        self._unsubscribe: Unsubscribe | None = None
        self._result = AssessmentResult(
            kind=quiz.kind,
            quiz_id=quiz.id,
            max_score=quiz.total_points,
        )
        self._logger = structlog.get_logger(__name__)

    @property
    def quiz(self) -> Quiz:
        return self._quiz

    @property
    def result(self) -> AssessmentResult:
        return self._result

    @property
    def status(self) -> AssessmentStatus:
        return self._result.status

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def is_paused(self) -> bool:
        return self._paused

    def start(self) -> AssessmentResult:
        with self._lock:
            if self._result.status is not AssessmentStatus.NOT_STARTED:
                return self._result
            if self._quiz.is_empty:
                raise ValueError(f"Quiz {self._quiz.id!r} has no questions")
            self._result = self._result.model_copy(
                update={"status": AssessmentStatus.IN_PROGRESS, "started_at": self._clock()}
            )
            if self._ticker is not None:
                self._unsubscribe = self._ticker.subscribe(self.tick)
            self._logger.info(
                "assessment.started",
                quiz_id=self._quiz.id,
                kind=self._quiz.kind.value,
                seconds=self._remaining,
            )
            return self._result

    def record_answer(self, question_id: str, value: Any) -> AssessmentResult:
        with self._lock:
            if self._result.is_finished:
                return self._result
            if self._result.status is not AssessmentStatus.IN_PROGRESS:
                raise IllegalTransition(self._result.status, AssessmentStatus.IN_PROGRESS, record_id=self._quiz.id)
            if self._quiz.question(question_id) is None:
                raise ValueError(f"Unknown question {question_id!r} for quiz {self._quiz.id!r}")
            self._answers[question_id] = value
            self._result = self._result.model_copy(update={"answers": dict(self._answers)})
            return self._result

    def pause(self) -> AssessmentResult:
        with self._lock:
            if self._result.status is AssessmentStatus.IN_PROGRESS:
                self._paused = True
            return self._result

    def resume(self) -> AssessmentResult:
        with self._lock:
            if self._result.status is AssessmentStatus.IN_PROGRESS:
                self._paused = False
            return self._result

    def tick(self) -> AssessmentResult:
        expired = False
        with self._lock:
            if self._result.status is not AssessmentStatus.IN_PROGRESS or self._paused:
                return self._result
            self._remaining -= 1
            if self._remaining <= 0:
                self._remaining = 0
                self._finish(AssessmentStatus.COMPLETED, auto_submitted=True)
                expired = True
            result = self._result
        if expired:
            self._logger.info("assessment.time_expired", quiz_id=self._quiz.id, score=result.score)
            if self._on_expire is not None:
                self._on_expire(result)
        return result

    def submit(self) -> AssessmentResult:
        with self._lock:
            if self._result.is_finished:
                return self._result
            if self._result.status is not AssessmentStatus.IN_PROGRESS:
                raise IllegalTransition(self._result.status, AssessmentStatus.COMPLETED, record_id=self._quiz.id)
            self._finish(AssessmentStatus.COMPLETED)
            self._logger.info(
                "assessment.submitted",
                quiz_id=self._quiz.id,
                score=self._result.score,
                percentage=self._result.percentage,
                passed=self._result.passed,
            )
            return self._result

    def expire(self) -> AssessmentResult:
        """Cancel the attempt, scoring whatever has been recorded so far."""
        with self._lock:
            if self._result.is_finished:
                return self._result
            self._finish(AssessmentStatus.EXPIRED)
            self._logger.info("assessment.cancelled", quiz_id=self._quiz.id)
            return self._result

    def _finish(self, status: AssessmentStatus, *, auto_submitted: bool = False) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        answers = dict(self._answers)
        score, per_question = score_answers(self._quiz, answers)
        max_score = self._result.max_score
        percentage = compute_percentage(score, max_score)
        spent = self._quiz.time_limit * 60 - self._remaining
        self._paused = False
        self._result = self._result.model_copy(
            update={
                "status": status,
                "score": score,
                "percentage": percentage,
                "passed": percentage >= self._quiz.passing_score,
                "completed_at": self._clock(),
                "time_spent_seconds": spent if self._result.started_at is not None else 0,
                "answers": answers,
                "manual_grading": tuple(
                    item.question_id for item in per_question if item.needs_manual_grading
                ),
                "auto_submitted": auto_submitted,
            }
        )


__all__ = [
    "AssessmentEngine",
    "QuestionScore",
    "compute_percentage",
    "round_half_up",
    "score_answers",
    "score_question",
]
