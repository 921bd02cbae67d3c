"""Generate quizzes from PDF documents and take them in the terminal."""

from .errors import PdfQuizError
from .generator import QuizSettings, generate_questions
from .quiz import Question, QuestionKind, QuizResult, QuizSession

__all__ = [
    "PdfQuizError",
    "QuizSettings",
    "generate_questions",
    "Question",
    "QuestionKind",
    "QuizResult",
    "QuizSession",
]
