"""Rich rendering and command parsing for the terminal quiz screen."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .engine import QuizSession
from .models import Question, QuestionKind, QuizResult

CommandType = Literal["next", "prev", "pause", "quit", "select"]

_NEXT_WORDS = {"n", "next"}
_PREV_WORDS = {"p", "prev", "previous", "back"}
_PAUSE_WORDS = {"pause", "resume", "space"}
_QUIT_WORDS = {"q", "quit", "exit"}
_LITERAL_PREFIX = "="


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: CommandType
    value: str | None = None


def parse_session_command(
    raw: str | None, question: Question
) -> SessionCommand | None:
    """Parse console input for ``question`` into a command.

    Choice questions accept the option text, its letter, or its number, with
    the text winning when they collide. True/false questions accept
    ``t``/``f``, and short-answer questions take any other text as the
    answer. A leading ``=`` forces the rest of the line to be read as an
    answer, for short answers that collide with a command word.
    """

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    if text.startswith(_LITERAL_PREFIX):
        return _parse_response(text[1:].strip(), question)
    lowered = text.lower()
    if lowered in _NEXT_WORDS:
        return SessionCommand("next")
    if lowered in _PREV_WORDS:
        return SessionCommand("prev")
    if lowered in _PAUSE_WORDS:
        return SessionCommand("pause")
    if lowered in _QUIT_WORDS:
        return SessionCommand("quit")
    return _parse_response(text, question)


def _parse_response(text: str, question: Question) -> SessionCommand | None:
    if not text:
        return None
    if question.kind is QuestionKind.CHOICE:
        option = _option_for(text, question.options)
        return SessionCommand("select", option) if option else None
    if question.kind is QuestionKind.BOOLEAN:
        lowered = text.lower()
        if lowered in {"t", "true"}:
            return SessionCommand("select", "True")
        if lowered in {"f", "false"}:
            return SessionCommand("select", "False")
        return None
    if question.kind is QuestionKind.FREE_TEXT:
        return SessionCommand("select", text)
    raise ValueError(f"Unknown question kind: {question.kind!r}")


def _option_for(text: str, options: tuple[str, ...]) -> str | None:
    # Option text first: an option "4" is not the fourth option.
    if text in options:
        return text
    for option in options:
        if option.lower() == text.lower():
            return option
    index = -1
    if text.isdigit():
        index = int(text) - 1
    elif len(text) == 1 and text.isalpha():
        index = ord(text.upper()) - ord("A")
    if 0 <= index < len(options):
        return options[index]
    return None


def option_key(index: int) -> str:
    return chr(ord("A") + index)


def format_time(seconds: int) -> str:
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


def timer_style(seconds: int) -> str:
    if seconds > 30:
        return "green"
    if seconds > 10:
        return "yellow"
    return "red"


def render_question(
    console: Console, session: QuizSession, *, notice: str | None = None
) -> None:
    question = session.current
    header = Text.assemble(
        (f"Question {session.index + 1}", "bold cyan"),
        (f" / {session.total_questions}", "dim"),
        ("  ·  ", "dim"),
        (question.kind.label, "magenta"),
    )
    console.print()
    console.rule(header)

    remaining = session.remaining
    clock = Text.assemble(
        ("Time left ", "dim"),
        (format_time(remaining), f"bold {timer_style(remaining)}"),
        ("  (paused)" if session.paused else "", "bold yellow"),
        (f"   {round(session.progress * 100)}% complete", "dim"),
    )
    console.print(clock)
    console.print(Text(question.prompt, style="bold"))

    selected = session.pending
    choices = question.choices()
    if choices:
        table = Table(show_header=False, box=box.SIMPLE, expand=True)
        table.add_column("Key", justify="center", style="cyan")
        table.add_column("Choice")
        for idx, choice in enumerate(choices):
            is_selected = choice == selected
            row_text = Text("• " if is_selected else "  ")
            row_text += Text(
                choice, style="bold green" if is_selected else ""
            )
            table.add_row(option_key(idx), row_text)
        console.print(table)
    elif selected:
        console.print(
            Text.assemble(("Your answer: ", "dim"), (selected, "bold green"))
        )

    if notice:
        console.print(Text(notice, style="yellow"))
    console.print(Text(_command_hint(question), style="dim"))


def _command_hint(question: Question) -> str:
    if question.kind is QuestionKind.CHOICE:
        keys = ", ".join(option_key(i) for i in range(len(question.options)))
        answer_hint = f"choices [{keys}]"
    elif question.kind is QuestionKind.BOOLEAN:
        answer_hint = "t (true), f (false)"
    elif question.kind is QuestionKind.FREE_TEXT:
        answer_hint = "type your answer (prefix with = to force text)"
    else:  # pragma: no cover - closed enum
        raise ValueError(f"Unknown question kind: {question.kind!r}")
    return (
        f"Commands: {answer_hint}, n (next), p (prev), pause, quit. "
        "Press Enter to refresh the timer."
    )


def render_results(
    console: Console,
    result: QuizResult,
    *,
    show_explanations: bool = True,
) -> None:
    console.print()
    console.rule(Text("Quiz Results", style="bold magenta"))

    overview = Table(
        show_header=False,
        box=box.MINIMAL_DOUBLE_HEAD,
        expand=False,
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    score_style = _score_style(result.score)
    overview.add_row("Score", Text(f"{result.score}%", style=score_style))
    overview.add_row("Correct", str(result.correct_answers))
    overview.add_row("Incorrect", str(result.incorrect_answers))
    overview.add_row("Total questions", str(result.total_questions))
    console.print(overview)
    console.print(Text(result.score_message, style=f"bold {score_style}"))

    response_table = Table(title="Responses", box=box.SIMPLE, expand=True)
    response_table.add_column("#", justify="right")
    response_table.add_column("Question", overflow="fold")
    response_table.add_column("Your answer", overflow="fold")
    response_table.add_column("Correct answer", overflow="fold")
    response_table.add_column("Result", justify="center")
    for idx, question in enumerate(result.questions, start=1):
        answer = result.answer_for(question.id)
        your = answer.response if answer and answer.response else "—"
        correct = bool(answer and answer.is_correct)
        response_table.add_row(
            str(idx),
            question.prompt,
            your,
            question.correct_answer,
            "✅" if correct else "❌",
        )
    console.print(response_table)

    if not show_explanations:
        return
    for idx, question in enumerate(result.questions, start=1):
        if not question.explanation:
            continue
        answer = result.answer_for(question.id)
        border = "green" if answer and answer.is_correct else "red"
        console.print(
            Panel(
                question.explanation,
                title=f"Explanation for question {idx}",
                border_style=border,
            )
        )


def _score_style(score: int) -> str:
    if score >= 80:
        return "green"
    if score >= 60:
        return "yellow"
    return "red"
