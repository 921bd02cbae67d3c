import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set

from .errors import InvalidInputError
from .generator import build_question
from .quiz.models import Question, QuizResult


def read_jsonl(path: Path) -> List[dict]:
    data: List[dict] = []
    with Path(path).open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            data.append(json.loads(line))
    return data


def write_jsonl(path: Path, records: Sequence[dict]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as fh:
        for rec in records:
            fh.write(json.dumps(rec, ensure_ascii=False))
            fh.write("\n")


def question_to_dict(question: Question) -> Dict[str, object]:
    """Serialize a question using the field names the model is asked for."""
    record: Dict[str, object] = {
        "id": question.id,
        "question": question.prompt,
        "type": question.kind.value,
        "correctAnswer": question.correct_answer,
        "explanation": question.explanation,
    }
    if question.options:
        record["options"] = list(question.options)
    return record


def question_from_dict(
    record: Dict[str, object],
    *,
    position: int = 1,
    used_ids: Optional[Set[str]] = None,
) -> Question:
    """Rebuild a question, applying the checks used for model output."""
    try:
        return build_question(record, position=position, used_ids=used_ids)
    except ValueError as exc:
        raise InvalidInputError(f"Invalid question #{position}: {exc}") from exc


def save_question_bank(path: Path, questions: Sequence[Question]) -> Path:
    write_jsonl(path, [question_to_dict(q) for q in questions])
    return Path(path)


def load_question_bank(path: Path) -> List[Question]:
    """Read questions written by :func:`save_question_bank`."""
    try:
        records = read_jsonl(path)
    except json.JSONDecodeError as exc:
        raise InvalidInputError(f"Invalid question bank {path}: {exc}") from exc
    questions: List[Question] = []
    used_ids: Set[str] = set()
    for position, record in enumerate(records, start=1):
        question = question_from_dict(
            record, position=position, used_ids=used_ids
        )
        used_ids.add(question.id)
        questions.append(question)
    return questions


def format_results_text(result: QuizResult) -> str:
    """Render a plain-text report of a completed quiz."""
    lines = [
        "Quiz Results",
        "",
        f"Score: {result.score}%",
        "Correct Answers: {0} out of {1}".format(
            result.correct_answers, result.total_questions
        ),
        "",
    ]
    for idx, question in enumerate(result.questions, start=1):
        answer = result.answer_for(question.id)
        response = answer.response if answer and answer.response else ""
        lines.append(f"Question {idx}: {question.prompt}")
        lines.append(f"Your Answer: {response or 'Not answered'}")
        lines.append(f"Correct Answer: {question.correct_answer}")
        outcome = "Correct" if answer and answer.is_correct else "Incorrect"
        lines.append(f"Result: {outcome}")
        if question.explanation:
            lines.append(f"Explanation: {question.explanation}")
        lines.append("")
    return "\n".join(lines)


def write_results_report(
    result: QuizResult,
    *,
    path: Optional[Path] = None,
    directory: Optional[Path] = None,
    now: Optional[datetime] = None,
) -> Path:
    """Write the report to ``path`` or a timestamped file in ``directory``."""
    if path is None:
        if directory is None:
            raise ValueError("path or directory is required")
        stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d-%H%M%S")
        path = Path(directory) / f"quiz-results-{stamp}.txt"
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(format_results_text(result), encoding="utf-8")
    return target
