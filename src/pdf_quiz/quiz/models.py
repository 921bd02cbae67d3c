"""Immutable value types used by the quiz session engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class QuestionKind(Enum):
    """Answer format of a question."""

    CHOICE = "multiple-choice"
    BOOLEAN = "true-false"
    FREE_TEXT = "short-answer"

    @property
    def label(self) -> str:
        if self is QuestionKind.CHOICE:
            return "Multiple Choice"
        if self is QuestionKind.BOOLEAN:
            return "True/False"
        if self is QuestionKind.FREE_TEXT:
            return "Short Answer"
        raise ValueError(f"Unknown question kind: {self!r}")


BOOLEAN_OPTIONS: tuple[str, str] = ("True", "False")


@dataclass(frozen=True)
class Question:
    """A generated quiz question."""

    id: str
    prompt: str
    kind: QuestionKind
    correct_answer: str
    explanation: str = ""
    options: tuple[str, ...] = ()

    def choices(self) -> tuple[str, ...]:
        """Return the selectable options for this question, if any."""

        if self.kind is QuestionKind.CHOICE:
            return self.options
        if self.kind is QuestionKind.BOOLEAN:
            return BOOLEAN_OPTIONS
        if self.kind is QuestionKind.FREE_TEXT:
            return ()
        raise ValueError(f"Unknown question kind: {self.kind!r}")


@dataclass(frozen=True)
class Answer:
    """A committed response to one question."""

    question_id: str
    response: str
    is_correct: bool


_SCORE_MESSAGES: tuple[tuple[int, str], ...] = (
    (90, "Excellent! You've mastered this material!"),
    (80, "Great job! You have a strong understanding!"),
    (70, "Good work! You're on the right track!"),
    (60, "Not bad! Keep studying to improve!"),
    (50, "You're making progress, but need more practice."),
)
_FALLBACK_MESSAGE = "Keep studying! You'll improve with more practice."


@dataclass(frozen=True)
class QuizResult:
    """Score summary for a completed session."""

    score: int
    correct_answers: int
    total_questions: int
    answers: tuple[Answer, ...]
    questions: tuple[Question, ...]

    @property
    def incorrect_answers(self) -> int:
        return self.total_questions - self.correct_answers

    @property
    def score_message(self) -> str:
        for threshold, message in _SCORE_MESSAGES:
            if self.score >= threshold:
                return message
        return _FALLBACK_MESSAGE

    def answer_for(self, question_id: str) -> Answer | None:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None
