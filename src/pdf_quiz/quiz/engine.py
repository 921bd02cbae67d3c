"""Quiz session state machine.

A :class:`QuizSession` owns one pass through a fixed list of questions. The
caller drives it with explicit method calls: responses are staged with
``select_response`` and committed with ``advance``, ``retreat`` undoes the
most recent answer, and time only moves when the caller invokes ``tick``.
Nothing is scheduled in the background, so a paused session cannot change.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum

from ..errors import (
    AtStartError,
    InvalidInputError,
    MissingResponseError,
    NotFinishedError,
    SessionStateError,
)
from .grading import is_correct, score_percent
from .models import Answer, Question, QuestionKind, QuizResult

__all__ = [
    "DEFAULT_TIME_BUDGET",
    "MAX_QUESTIONS",
    "QuizSession",
    "SessionState",
]

DEFAULT_TIME_BUDGET = 60
MAX_QUESTIONS = 20

logger = logging.getLogger(__name__)


class SessionState(Enum):
    AWAITING_ANSWER = "awaiting_answer"
    PAUSED = "paused"
    ADVANCING = "advancing"
    COMPLETED = "completed"


class QuizSession:
    """Drive one quiz attempt, one question at a time."""

    def __init__(
        self,
        questions: Sequence[Question],
        *,
        time_budget: int = DEFAULT_TIME_BUDGET,
    ) -> None:
        self._questions = _validate_questions(questions)
        if time_budget <= 0:
            raise InvalidInputError("time_budget must be positive")
        self._time_budget = int(time_budget)
        self._index = 0
        self._remaining = self._time_budget
        self._pending: str | None = None
        self._answers: list[Answer] = []
        self._state = SessionState.AWAITING_ANSWER
        self._result: QuizResult | None = None
        logger.debug(
            "quiz session started",
            extra={
                "questions": len(self._questions),
                "time_budget": self._time_budget,
            },
        )

    @classmethod
    def start(
        cls,
        questions: Sequence[Question],
        *,
        time_budget: int = DEFAULT_TIME_BUDGET,
    ) -> "QuizSession":
        return cls(questions, time_budget=time_budget)

    # Read-only views -----------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def total_questions(self) -> int:
        return len(self._questions)

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> Question:
        return self._questions[self._index]

    @property
    def time_budget(self) -> int:
        return self._time_budget

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def paused(self) -> bool:
        return self._state is SessionState.PAUSED

    @property
    def completed(self) -> bool:
        return self._state is SessionState.COMPLETED

    @property
    def pending(self) -> str | None:
        return self._pending

    @property
    def answers(self) -> tuple[Answer, ...]:
        return tuple(self._answers)

    @property
    def progress(self) -> float:
        """Fraction of the quiz reached, counting the current question."""

        if self.completed:
            return 1.0
        return (self._index + 1) / len(self._questions)

    # Operations ----------------------------------------------------------

    def select_response(self, raw: str) -> None:
        """Stage ``raw`` as the candidate response for the current question."""

        if self._state is not SessionState.AWAITING_ANSWER:
            raise SessionStateError(
                f"Cannot select a response while {self._state.value}."
            )
        self._pending = str(raw)

    def pause(self) -> None:
        self._ensure_active("pause")
        if self._state is SessionState.AWAITING_ANSWER:
            self._state = SessionState.PAUSED

    def resume(self) -> None:
        self._ensure_active("resume")
        if self._state is SessionState.PAUSED:
            self._state = SessionState.AWAITING_ANSWER

    def toggle_pause(self) -> bool:
        """Flip the pause flag and return whether the session is now paused."""

        if self.paused:
            self.resume()
        else:
            self.pause()
        return self.paused

    def tick(self, units: int = 1) -> bool:
        """Advance the clock by ``units``.

        Returns ``True`` when the tick ran out the time budget and committed
        the pending response. Ticks are ignored unless the session is awaiting
        an answer.
        """

        for _ in range(max(0, int(units))):
            if self._state is not SessionState.AWAITING_ANSWER:
                return False
            self._remaining -= 1
            if self._remaining <= 0:
                self._remaining = 0
                logger.info(
                    "question timed out",
                    extra={"question_id": self.current.id},
                )
                self._commit(self._pending or "")
                return True
        return False

    def advance(self) -> None:
        """Commit the pending response and move to the next question."""

        self._ensure_active("advance")
        candidate = self._pending or ""
        if not candidate.strip():
            raise MissingResponseError(
                _missing_response_message(self.current)
            )
        self._commit(candidate)

    def retreat(self) -> None:
        """Drop the most recent answer and return to its question."""

        self._ensure_active("go back")
        if self._index == 0:
            raise AtStartError("Already at the first question.")
        self._answers.pop()
        self._index -= 1
        self._reset_question_state()

    def result(self) -> QuizResult:
        if self._result is None:
            raise NotFinishedError("The quiz has not been completed yet.")
        return self._result

    # Internals -----------------------------------------------------------

    def _ensure_active(self, action: str) -> None:
        if self._state is SessionState.COMPLETED:
            raise SessionStateError(
                f"Cannot {action}: the quiz is already completed."
            )

    def _commit(self, response: str) -> None:
        self._state = SessionState.ADVANCING
        question = self.current
        answer = Answer(
            question_id=question.id,
            response=response,
            is_correct=is_correct(question, response),
        )
        self._answers.append(answer)
        if self._index + 1 < len(self._questions):
            self._index += 1
            self._reset_question_state()
            return
        self._pending = None
        self._state = SessionState.COMPLETED
        self._result = self._build_result()
        logger.info(
            "quiz completed",
            extra={
                "score": self._result.score,
                "correct": self._result.correct_answers,
                "total": self._result.total_questions,
            },
        )

    def _reset_question_state(self) -> None:
        self._remaining = self._time_budget
        self._pending = None
        self._state = SessionState.AWAITING_ANSWER

    def _build_result(self) -> QuizResult:
        correct = sum(1 for answer in self._answers if answer.is_correct)
        total = len(self._questions)
        return QuizResult(
            score=score_percent(correct, total),
            correct_answers=correct,
            total_questions=total,
            answers=tuple(self._answers),
            questions=self._questions,
        )


def _validate_questions(questions: Sequence[Question]) -> tuple[Question, ...]:
    if questions is None:
        raise InvalidInputError("questions are required")
    items = tuple(questions)
    if not items:
        raise InvalidInputError("A quiz needs at least one question.")
    if len(items) > MAX_QUESTIONS:
        raise InvalidInputError(
            f"A quiz can hold at most {MAX_QUESTIONS} questions "
            f"(got {len(items)})."
        )
    seen: set[str] = set()
    for item in items:
        if not isinstance(item, Question):
            raise InvalidInputError(
                f"Expected Question instances, got {type(item).__name__}."
            )
        if not item.id:
            raise InvalidInputError("Every question needs an identifier.")
        if item.id in seen:
            raise InvalidInputError(f"Duplicate question id: {item.id}")
        seen.add(item.id)
    return items


def _missing_response_message(question: Question) -> str:
    if question.kind is QuestionKind.CHOICE:
        return "Please select an answer."
    if question.kind is QuestionKind.BOOLEAN:
        return "Please select true or false."
    if question.kind is QuestionKind.FREE_TEXT:
        return "Please enter your answer."
    raise ValueError(f"Unknown question kind: {question.kind!r}")
