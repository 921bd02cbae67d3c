"""Interactive terminal loop that drives a :class:`QuizSession`.

The loop renders the current question, reads one line of input, and turns
the wall-clock time spent waiting into whole-second ``tick`` calls before
applying the command. The clock is injectable so tests can control time.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Literal

from rich.console import Console

from ..errors import AtStartError, MissingResponseError, SessionStateError
from .engine import QuizSession
from .models import QuizResult
from .view import (
    SessionCommand,
    parse_session_command,
    render_question,
    render_results,
)

InputProvider = Callable[[], str]
Clock = Callable[[], float]
ExitAction = Literal["completed", "quit"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuizRunOutcome:
    """Return value from :func:`run_quiz_session`."""

    session: QuizSession
    exit_action: ExitAction

    @property
    def result(self) -> QuizResult | None:
        return self.session.result() if self.session.completed else None


class _TickClock:
    """Convert elapsed seconds into whole ticks, carrying the remainder."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._mark = clock()
        self._carry = 0.0

    def restart(self) -> None:
        self._mark = self._clock()
        self._carry = 0.0

    def take(self) -> int:
        now = self._clock()
        elapsed = max(0.0, now - self._mark) + self._carry
        self._mark = now
        whole = int(elapsed)
        self._carry = elapsed - whole
        return whole


def run_quiz_session(
    session: QuizSession,
    console: Console,
    input_provider: InputProvider,
    *,
    clock: Clock = time.monotonic,
    show_explanations: bool = True,
) -> QuizRunOutcome:
    """Run ``session`` interactively until it completes or the user quits."""

    ticks = _TickClock(clock)
    notice: str | None = None
    while not session.completed:
        render_question(console, session, notice=notice)
        notice = None
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            return _quit(session)

        position = session.index
        question = session.current
        elapsed = ticks.take()
        if session.paused:
            elapsed = 0
        if session.tick(elapsed):
            notice = _timeout_notice(position)
            ticks.restart()
            # Answers typed too late are dropped; quit and pause still apply.
            late = parse_session_command(raw, question)
            if late is None or session.completed:
                continue
            if late.type == "quit":
                console.print(
                    "\n[bold yellow]Ending quiz without submission.[/]"
                )
                return _quit(session)
            if late.type == "pause":
                notice = f"{notice} {_apply_command(late, session)}"
            continue

        command = parse_session_command(raw, session.current)
        if command is None:
            if raw and raw.strip():
                notice = "Unrecognized command. Try again."
            continue
        if command.type == "quit":
            console.print("\n[bold yellow]Ending quiz without submission.[/]")
            return _quit(session)
        notice = _apply_command(command, session)
        if session.index != position:
            ticks.restart()

    result = session.result()
    render_results(console, result, show_explanations=show_explanations)
    return QuizRunOutcome(session, "completed")


def _apply_command(command: SessionCommand, session: QuizSession) -> str | None:
    if command.type == "select" and command.value is not None:
        try:
            session.select_response(command.value)
        except SessionStateError:
            return "The quiz is paused. Type 'pause' to resume."
        return None
    if command.type == "next":
        try:
            session.advance()
        except MissingResponseError as exc:
            return str(exc)
        return None
    if command.type == "prev":
        try:
            session.retreat()
        except AtStartError as exc:
            return str(exc)
        return None
    if command.type == "pause":
        paused = session.toggle_pause()
        return "Paused." if paused else "Resumed."
    return None


def _timeout_notice(position: int) -> str:
    return (
        f"Time's up for question {position + 1}. "
        "Your answer input was not applied."
    )


def _quit(session: QuizSession) -> QuizRunOutcome:
    logger.info(
        "quiz abandoned",
        extra={"answered": len(session.answers), "total": session.total_questions},
    )
    return QuizRunOutcome(session, "quit")
