"""Generate quiz questions from document text with an OpenAI chat model."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

from .errors import (
    InvalidSettingsError,
    MalformedResultError,
    NoContentError,
    UpstreamUnavailableError,
)
from .quiz.engine import MAX_QUESTIONS
from .quiz.models import BOOLEAN_OPTIONS, Question, QuestionKind

__all__ = [
    "DEFAULT_MODEL",
    "DEFAULT_TEMPERATURE",
    "DIFFICULTIES",
    "MAX_CONTENT_CHARS",
    "QuizSettings",
    "build_prompts",
    "build_question",
    "generate_questions",
    "parse_kind",
    "parse_questions",
]

DEFAULT_MODEL = "gpt-4o"
DEFAULT_TEMPERATURE = 0.7
MAX_CONTENT_CHARS = 12000
TRUNCATION_MARKER = "... (content truncated for token limit)"
DIFFICULTIES: Tuple[str, ...] = ("easy", "medium", "hard")

_KIND_ALIASES: Dict[str, QuestionKind] = {
    "multiple-choice": QuestionKind.CHOICE,
    "multiple_choice": QuestionKind.CHOICE,
    "multiplechoice": QuestionKind.CHOICE,
    "mcq": QuestionKind.CHOICE,
    "choice": QuestionKind.CHOICE,
    "true-false": QuestionKind.BOOLEAN,
    "true_false": QuestionKind.BOOLEAN,
    "truefalse": QuestionKind.BOOLEAN,
    "boolean": QuestionKind.BOOLEAN,
    "bool": QuestionKind.BOOLEAN,
    "short-answer": QuestionKind.FREE_TEXT,
    "short_answer": QuestionKind.FREE_TEXT,
    "shortanswer": QuestionKind.FREE_TEXT,
    "freetext": QuestionKind.FREE_TEXT,
    "free-text": QuestionKind.FREE_TEXT,
    "free_text": QuestionKind.FREE_TEXT,
    "text": QuestionKind.FREE_TEXT,
}
_TRUE_WORDS = {"true", "t", "yes"}
_FALSE_WORDS = {"false", "f", "no"}

logger = logging.getLogger(__name__)


def parse_kind(value: object) -> QuestionKind:
    """Map a kind label (or ``QuestionKind``) to a ``QuestionKind``."""

    if isinstance(value, QuestionKind):
        return value
    key = str(value or "").strip().lower().replace(" ", "-")
    try:
        return _KIND_ALIASES[key]
    except KeyError as exc:
        raise ValueError(f"Unknown question type: {value!r}") from exc


@dataclass(frozen=True)
class QuizSettings:
    """Generation parameters chosen on the settings screen."""

    difficulty: str = "medium"
    num_questions: int = 5
    kinds: FrozenSet[QuestionKind] = field(
        default_factory=lambda: frozenset({QuestionKind.CHOICE})
    )

    @classmethod
    def from_values(
        cls,
        *,
        difficulty: str = "medium",
        num_questions: int = 5,
        kinds: Sequence[object] = ("multiple-choice",),
    ) -> "QuizSettings":
        try:
            parsed = frozenset(parse_kind(kind) for kind in kinds)
        except ValueError as exc:
            raise InvalidSettingsError(str(exc)) from exc
        settings = cls(
            difficulty=str(difficulty).strip().lower(),
            num_questions=int(num_questions),
            kinds=parsed,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.difficulty not in DIFFICULTIES:
            raise InvalidSettingsError(
                "difficulty must be one of: {0}".format(", ".join(DIFFICULTIES))
            )
        if not 1 <= self.num_questions <= MAX_QUESTIONS:
            raise InvalidSettingsError(
                f"num_questions must be between 1 and {MAX_QUESTIONS}"
            )
        if not self.kinds:
            raise InvalidSettingsError(
                "At least one question type must be selected"
            )

    def kind_labels(self) -> List[str]:
        """Return kind labels in a stable order."""

        return [kind.value for kind in QuestionKind if kind in self.kinds]


def generate_questions(
    text: str,
    settings: QuizSettings,
    *,
    client: object,
    model: str = DEFAULT_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
    max_content_chars: int = MAX_CONTENT_CHARS,
) -> List[Question]:
    """Ask the model for questions about ``text`` and validate the reply."""

    settings.validate()
    if not text or not text.strip():
        raise NoContentError("There is no document text to build a quiz from.")

    sys_prompt, user_prompt = build_prompts(
        text, settings, max_content_chars=max_content_chars
    )
    logger.info(
        "requesting quiz generation",
        extra={
            "model": model,
            "difficulty": settings.difficulty,
            "num_questions": settings.num_questions,
            "kinds": settings.kind_labels(),
            "content_chars": len(text),
        },
    )
    content = _chat_completion_content(
        client,
        model=model,
        system_prompt=sys_prompt,
        user_prompt=user_prompt,
        temperature=temperature,
    )
    if not content:
        raise NoContentError("No content returned from the model.")

    questions = parse_questions(content, settings)
    logger.info(
        "generated quiz questions",
        extra={"requested": settings.num_questions, "received": len(questions)},
    )
    return questions


def build_prompts(
    text: str,
    settings: QuizSettings,
    *,
    max_content_chars: int = MAX_CONTENT_CHARS,
) -> Tuple[str, str]:
    sys_prompt = (
        "You are a helpful assistant that generates quiz questions based on "
        'provided content. Always return a valid JSON object with a '
        '"questions" array.'
    )
    content = _truncate_content(text, max_content_chars)
    count = settings.num_questions
    schema = (
        "{\n"
        '  "questions": [\n'
        "    {\n"
        '      "id": "q1",\n'
        '      "question": "Question text here?",\n'
        '      "options": ["Option A", "Option B", "Option C", "Option D"],\n'
        '      "correctAnswer": "Option A",\n'
        '      "explanation": "Explanation why Option A is correct",\n'
        '      "type": "multiple-choice"\n'
        "    }\n"
        "  ]\n"
        "}"
    )
    rules = (
        "Each question must have a unique ID, question text, correct answer, "
        "and explanation.\n"
        "For multiple-choice questions, include 4 options with one correct "
        "answer, and repeat the correct option verbatim in correctAnswer.\n"
        'For true-false questions, correctAnswer must be "True" or "False".\n'
        "For short-answer questions, keep correctAnswer to a few words."
    )
    user_prompt = (
        "Generate a quiz based on the following PDF content.\n"
        f"Difficulty level: {settings.difficulty}\n"
        f"Number of questions: {count}\n"
        f"Question types: {', '.join(settings.kind_labels())}\n\n"
        f"PDF Content:\n{content}\n\n"
        f"Create exactly {count} questions based on the content above.\n"
        f"{rules}\n\n"
        "Format your response as a valid JSON object with this structure:\n"
        f"{schema}"
    )
    return sys_prompt, user_prompt


def _truncate_content(text: str, limit: int) -> str:
    if limit > 0 and len(text) > limit:
        return text[:limit] + TRUNCATION_MARKER
    return text


def _chat_completion_content(
    client: object,
    *,
    model: str,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
) -> str:
    try:
        resp = client.chat.completions.create(  # type: ignore[attr-defined]
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            response_format={"type": "json_object"},
        )
    except Exception as exc:
        logger.error(
            "quiz generation request failed",
            extra={"model": model, "error": str(exc)},
        )
        raise UpstreamUnavailableError(
            f"Failed to reach the model provider: {exc}"
        ) from exc
    try:
        raw_content = resp.choices[0].message.content  # type: ignore[index]
    except (AttributeError, IndexError, TypeError) as exc:
        raise MalformedResultError(
            "The model response did not include a message."
        ) from exc
    return (raw_content or "").strip()


def parse_questions(
    content: str, settings: Optional[QuizSettings] = None
) -> List[Question]:
    """Turn a model reply into validated questions.

    Entries that cannot be repaired are skipped, and so are entries of a kind
    ``settings`` did not ask for. Raises :class:`MalformedResultError` when
    nothing usable remains.
    """

    records = _extract_question_records(content)
    limit = settings.num_questions if settings else MAX_QUESTIONS
    questions: List[Question] = []
    used_ids: set[str] = set()
    skipped = 0
    unrequested = 0
    for position, record in enumerate(records, start=1):
        if len(questions) >= limit:
            break
        try:
            question = build_question(
                record, position=position, used_ids=used_ids
            )
        except ValueError:
            skipped += 1
            continue
        if settings is not None and question.kind not in settings.kinds:
            unrequested += 1
            continue
        used_ids.add(question.id)
        questions.append(question)
    if skipped:
        logger.warning(
            "skipped invalid generated questions", extra={"skipped": skipped}
        )
    if unrequested:
        logger.warning(
            "dropped generated questions of unrequested types",
            extra={"dropped": unrequested},
        )
    if not questions:
        raise MalformedResultError(
            "Failed to parse quiz questions from the model response."
        )
    return questions


def _extract_question_records(content: str) -> List[Any]:
    fenced = re.search(r"```(?:json)?\s*(.+?)```", content, re.DOTALL)
    payload = fenced.group(1) if fenced else content
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise MalformedResultError(
            "Failed to parse quiz questions from the model response."
        ) from exc
    if isinstance(data, dict):
        data = data.get("questions")
    if not isinstance(data, list) or not data:
        raise MalformedResultError("Invalid response format from the model.")
    return data


def build_question(
    record: Any, *, position: int = 1, used_ids: Optional[set[str]] = None
) -> Question:
    """Validate one question record and return the :class:`Question`.

    Choice answers given as an index or letter are resolved to option text,
    boolean answers are normalized to ``"True"``/``"False"``, and a missing
    or duplicate id is replaced with ``q<position>``. Raises ``ValueError``
    naming the first problem found.
    """

    if not isinstance(record, dict):
        raise ValueError("question entry must be an object")
    prompt = str(record.get("question") or record.get("prompt") or "").strip()
    if not prompt:
        raise ValueError("question text is empty")
    kind = parse_kind(record.get("type") or _infer_kind(record))
    raw_answer = record.get("correctAnswer", record.get("answer"))
    explanation = str(record.get("explanation") or "").strip()

    options: Tuple[str, ...] = ()
    if kind is QuestionKind.CHOICE:
        options = _normalize_options(record.get("options"))
        if not options:
            raise ValueError("multiple-choice question has no options")
        answer = _resolve_choice_answer(raw_answer, options)
        if answer not in options:
            raise ValueError(
                f"correct answer {answer!r} is not one of the options"
            )
    elif kind is QuestionKind.BOOLEAN:
        answer = _resolve_boolean_answer(raw_answer)
    elif kind is QuestionKind.FREE_TEXT:
        answer = str(raw_answer if raw_answer is not None else "").strip()
    else:  # pragma: no cover - closed enum
        raise ValueError(f"Unknown question kind: {kind!r}")
    if not answer:
        raise ValueError("correct answer is missing")

    taken = used_ids or set()
    identifier = str(record.get("id") or "").strip()
    if not identifier or identifier in taken:
        identifier = _synthesize_id(position, taken)
    return Question(
        id=identifier,
        prompt=prompt,
        kind=kind,
        correct_answer=answer,
        explanation=explanation,
        options=options,
    )


def _infer_kind(record: Dict[str, Any]) -> str:
    if isinstance(record.get("options"), list) and record.get("options"):
        return "multiple-choice"
    return "short-answer"


def _normalize_options(raw: Any) -> Tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    out: List[str] = []
    for item in raw:
        if isinstance(item, dict):
            text = str(item.get("text", "")).strip()
        else:
            text = str(item).strip()
        if text and text not in out:
            out.append(text)
    return tuple(out)


def _resolve_choice_answer(raw: Any, options: Tuple[str, ...]) -> str:
    if isinstance(raw, bool):
        return ""
    if isinstance(raw, int) and 0 <= raw < len(options):
        return options[raw]
    candidate = str(raw if raw is not None else "").strip()
    if candidate in options:
        return candidate
    for option in options:
        if candidate.lower() == option.lower():
            return option
    if len(candidate) == 1 and candidate.isalpha():
        index = ord(candidate.upper()) - ord("A")
        if 0 <= index < len(options):
            return options[index]
    return candidate


def _resolve_boolean_answer(raw: Any) -> str:
    if isinstance(raw, bool):
        return BOOLEAN_OPTIONS[0] if raw else BOOLEAN_OPTIONS[1]
    word = str(raw if raw is not None else "").strip().lower()
    if word in _TRUE_WORDS:
        return BOOLEAN_OPTIONS[0]
    if word in _FALSE_WORDS:
        return BOOLEAN_OPTIONS[1]
    return ""


def _synthesize_id(position: int, used_ids: set[str]) -> str:
    candidate = f"q{position}"
    suffix = position
    while candidate in used_ids:
        suffix += 1
        candidate = f"q{suffix}"
    return candidate
