from .models import Answer, Question, QuestionKind, QuizResult
from .grading import free_text_matches, is_correct, score_percent
from .engine import (
    DEFAULT_TIME_BUDGET,
    MAX_QUESTIONS,
    QuizSession,
    SessionState,
)
from .view import SessionCommand, parse_session_command
from .runner import QuizRunOutcome, run_quiz_session

__all__ = [
    "Answer",
    "Question",
    "QuestionKind",
    "QuizResult",
    "free_text_matches",
    "is_correct",
    "score_percent",
    "DEFAULT_TIME_BUDGET",
    "MAX_QUESTIONS",
    "QuizSession",
    "SessionState",
    "SessionCommand",
    "parse_session_command",
    "QuizRunOutcome",
    "run_quiz_session",
]
