"""Stage machine behind the interactive quiz flow.

:class:`QuizWorkflow` walks the linear stages credential entry, upload,
settings, quiz, and results. It owns the OpenAI client, the extracted text,
and at most one :class:`QuizSession`. Collaborators are injected so the CLI
and tests can swap them.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from .config import AppConfig
from .core.ai import load_client, validate_api_key
from .errors import CredentialError, StageError
from .extract import extract_text
from .generator import QuizSettings, generate_questions
from .quiz.engine import QuizSession
from .quiz.models import Question, QuizResult

__all__ = ["Stage", "QuizWorkflow"]

logger = logging.getLogger(__name__)


class Stage(Enum):
    AUTH = "auth"
    UPLOAD = "upload"
    SETTINGS = "settings"
    QUIZ = "quiz"
    RESULTS = "results"


class QuizWorkflow:
    """Hold the state of one user's pass through the quiz screens."""

    def __init__(
        self,
        config: AppConfig,
        *,
        client_factory: Callable[[Optional[str]], Any] = load_client,
        key_validator: Callable[..., bool] = validate_api_key,
        extractor: Callable[..., str] = extract_text,
        generator: Callable[..., List[Question]] = generate_questions,
    ) -> None:
        self._config = config
        self._client_factory = client_factory
        self._key_validator = key_validator
        self._extractor = extractor
        self._generator = generator

        self.stage = Stage.AUTH
        self.client: Any = None
        self.filename: Optional[str] = None
        self.text = ""
        self.settings: QuizSettings = config.settings
        self.questions: List[Question] = []
        self.session: Optional[QuizSession] = None
        self.result: Optional[QuizResult] = None

    @property
    def config(self) -> AppConfig:
        return self._config

    def authenticate(self, api_key: str, *, validate: bool = True) -> None:
        """Check ``api_key`` with the provider and keep a client for it."""

        self._require(Stage.AUTH)
        key = (api_key or "").strip()
        if not key:
            raise CredentialError("Please enter your OpenAI API key.")
        if validate and not self._key_validator(key):
            raise CredentialError(
                "Invalid API key. Please check and try again."
            )
        self.client = self._client_factory(key)
        self.stage = Stage.UPLOAD
        logger.info("api key accepted", extra={"validated": validate})

    def use_client(self, client: Any) -> None:
        """Adopt an already configured client and skip credential entry."""

        self._require(Stage.AUTH)
        self.client = client
        self.stage = Stage.UPLOAD

    def upload(self, data: bytes, *, filename: Optional[str] = None) -> str:
        """Extract text from an uploaded PDF and move on to settings."""

        self._require(Stage.UPLOAD)
        text = self._extractor(data, filename=filename)
        self.filename = filename
        self.text = text
        self.stage = Stage.SETTINGS
        return text

    def configure(self, settings: QuizSettings) -> None:
        self._require(Stage.SETTINGS)
        settings.validate()
        self.settings = settings

    def generate(self) -> QuizSession:
        """Generate questions for the current text and start the quiz.

        On failure the workflow stays on the settings stage so the caller can
        retry.
        """

        self._require(Stage.SETTINGS)
        questions = self._generator(
            self.text,
            self.settings,
            client=self.client,
            model=self._config.model,
            temperature=self._config.temperature,
            max_content_chars=self._config.max_content_chars,
        )
        return self.begin(questions)

    def begin(self, questions: Sequence[Question]) -> QuizSession:
        """Start a quiz with ``questions`` without calling the generator."""

        if self.stage is Stage.QUIZ:
            raise StageError("A quiz is already in progress.")
        session = QuizSession.start(
            questions, time_budget=self._config.time_limit
        )
        self.questions = list(questions)
        self.session = session
        self.result = None
        self.stage = Stage.QUIZ
        return session

    def finish(self) -> QuizResult:
        """Collect the result of the completed session."""

        self._require(Stage.QUIZ)
        if self.session is None:
            raise StageError("No quiz has been started.")
        self.result = self.session.result()
        self.stage = Stage.RESULTS
        return self.result

    def restart(self) -> QuizSession:
        """Retake the same questions from the results screen."""

        self._require(Stage.RESULTS)
        return self.begin(self.questions)

    def retake(self) -> None:
        """Return to settings to generate a fresh quiz from the same text."""

        self._require(Stage.RESULTS)
        if not self.text:
            raise StageError("No document is loaded; upload a PDF first.")
        self._discard_quiz()
        self.stage = Stage.SETTINGS

    def new_quiz(self) -> None:
        """Drop the document and quiz and go back to upload."""

        if self.stage is Stage.AUTH:
            raise StageError("Enter an API key before uploading a document.")
        self._discard_quiz()
        self.filename = None
        self.text = ""
        self.stage = Stage.UPLOAD

    def _discard_quiz(self) -> None:
        self.questions = []
        self.session = None
        self.result = None

    def _require(self, stage: Stage) -> None:
        if self.stage is not stage:
            raise StageError(
                f"Expected stage '{stage.value}', currently "
                f"'{self.stage.value}'."
            )
