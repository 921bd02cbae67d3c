"""Answer grading and score aggregation.

Choice and true/false questions are graded by exact string equality. Short
answers use a loose text heuristic that accepts substrings and near-prefix
matches. The heuristic is approximate: it over-grades short fragments that
happen to appear in the reference and under-grades paraphrases. It is kept as
is because no stricter grading rule has been defined.
"""

from __future__ import annotations

from .models import Question, QuestionKind

_PREFIX_RATIO = 0.7
_MIN_PREFIX_LENGTH = 3


def is_correct(question: Question, response: str) -> bool:
    """Return whether ``response`` answers ``question`` correctly."""

    if question.kind is QuestionKind.CHOICE:
        return response == question.correct_answer
    if question.kind is QuestionKind.BOOLEAN:
        return response == question.correct_answer
    if question.kind is QuestionKind.FREE_TEXT:
        return free_text_matches(response, question.correct_answer)
    raise ValueError(f"Unknown question kind: {question.kind!r}")


def free_text_matches(response: str, reference: str) -> bool:
    """Apply the short-answer heuristic to ``response``.

    Both strings are trimmed and lower-cased. The response is accepted when
    either string contains the other, or when it is longer than three
    characters and the reference contains its first 70% (rounded down).
    """

    candidate = response.strip().lower()
    expected = reference.strip().lower()
    if not candidate:
        return False
    if candidate in expected or expected in candidate:
        return True
    if len(candidate) > _MIN_PREFIX_LENGTH:
        prefix = candidate[: int(len(candidate) * _PREFIX_RATIO)]
        return prefix in expected
    return False


def score_percent(correct: int, total: int) -> int:
    """Return ``correct / total`` as a whole percentage, rounding half up."""

    if total <= 0:
        raise ValueError("total must be positive")
    if correct < 0 or correct > total:
        raise ValueError("correct must be between 0 and total")
    return (200 * correct + total) // (2 * total)
