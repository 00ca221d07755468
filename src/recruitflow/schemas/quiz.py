"""Quiz and question definitions."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class AssessmentKind(str, Enum):
    TECHNICAL = "technical"
    HR = "hr"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TEXT = "text"
    CODE = "code"
    RATING = "rating"
    SCENARIO = "scenario"


class Question(BaseModel):
    """A single point-weighted question."""

    id: str
    prompt: str = ""
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    points: int = Field(ge=0)
    options: tuple[str, ...] = ()
    correct_answer: int | None = None
    target_value: float | None = Field(default=None, gt=0)
    category: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _check_correct_answer(self) -> "Question":
        if self.correct_answer is None or not self.options:
            return self
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError(
                f"correct_answer {self.correct_answer} outside options of question {self.id!r}"
            )
        return self


class Quiz(BaseModel):
    """Ordered question set with a time limit and passing threshold.

    ``total_points`` is always derived from the questions; a value supplied on
    input (e.g. from a serialized quiz) is discarded.
    """

    id: str
    title: str = ""
    kind: AssessmentKind
    questions: tuple[Question, ...] = ()
    time_limit: int = Field(gt=0, description="Minutes")
    passing_score: int = Field(ge=0, le=100)
    rating_target: float | None = Field(default=None, gt=0)
    instructions: str = ""

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def _drop_total_points(cls, data: Any) -> Any:
        if isinstance(data, dict) and "total_points" in data:
            data = {k: v for k, v in data.items() if k != "total_points"}
        return data

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "Quiz":
        ids = [question.id for question in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate question ids in quiz {self.id!r}")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_points(self) -> int:
        return sum(question.points for question in self.questions)

    @property
    def is_empty(self) -> bool:
        return not self.questions

    def question(self, question_id: str) -> Question | None:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def with_question(self, question: Question) -> "Quiz":
        """Return a copy with ``question`` appended, or replaced when the id exists."""
        if self.question(question.id) is not None:
            questions = tuple(question if q.id == question.id else q for q in self.questions)
        else:
            questions = self.questions + (question,)
        return self.model_validate({**self._fields(), "questions": questions})

    def without_question(self, question_id: str) -> "Quiz":
        if self.question(question_id) is None:
            raise KeyError(f"Unknown question: {question_id!r}")
        questions = tuple(q for q in self.questions if q.id != question_id)
        return self.model_validate({**self._fields(), "questions": questions})

    def with_points(self, question_id: str, points: int) -> "Quiz":
        question = self.question(question_id)
        if question is None:
            raise KeyError(f"Unknown question: {question_id!r}")
        updated = Question.model_validate({**question.model_dump(), "points": points})
        return self.with_question(updated)

    def _fields(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in type(self).model_fields}
