"""Command line entry point for pdf-quiz."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import AppConfig, load_config, write_template
from .core.ai import API_KEY_ENV, load_client, validate_api_key
from .core.config import TomlConfigError
from .core.logging import configure_logger
from .core.workspace import WorkspaceError, WorkspaceLayout, ensure_workspace
from .errors import (
    CredentialError,
    ExtractionError,
    GenerationError,
    InvalidSettingsError,
    PdfQuizError,
    StageError,
)
from .extract import extract_file
from .generator import DIFFICULTIES, QuizSettings, generate_questions
from .quiz.models import QuestionKind
from .quiz.runner import run_quiz_session
from .shell import QuizWorkflow
from .utils import (
    load_question_bank,
    save_question_bank,
    write_results_report,
)

__all__ = ["build_arg_parser", "main"]

logger = logging.getLogger(__name__)

_MAX_KEY_ATTEMPTS = 3
_KIND_CHOICES = [kind.value for kind in QuestionKind]


@dataclass
class _Context:
    console: Console
    layout: WorkspaceLayout
    config: AppConfig
    log_path: Path


def _make_console() -> Console:
    return Console()


def _prompt(console: Console, message: str, *, password: bool = False) -> str:
    return console.input(message, markup=False, password=password)


def _make_workflow(config: AppConfig) -> QuizWorkflow:
    return QuizWorkflow(
        config,
        client_factory=load_client,
        key_validator=validate_api_key,
        generator=generate_questions,
    )


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a pdf_quiz.toml file (defaults to the workspace copy).",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root for config, logs, and results.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Echo debug logs to stderr.",
    )


def _add_generation_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--difficulty", choices=list(DIFFICULTIES))
    parser.add_argument(
        "--num", type=int, help="Number of questions to generate (1-20)."
    )
    parser.add_argument(
        "--types",
        nargs="+",
        choices=_KIND_CHOICES,
        help="Question types to request.",
    )
    parser.add_argument("--model", help="OpenAI chat model to use.")
    parser.add_argument(
        "--api-key",
        help=f"OpenAI API key (defaults to ${API_KEY_ENV} or .env).",
    )


def _add_export_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--export",
        nargs="?",
        const="",
        metavar="PATH",
        help="Write a results report; without PATH it goes to the workspace "
        "results directory.",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pdf-quiz",
        description="Generate and take quizzes from PDF documents",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("-V", "--version", action="store_true")
    sub = p.add_subparsers(dest="command")

    sp_init = sub.add_parser(
        "init", help="Write the pdf_quiz.toml template to the workspace"
    )
    sp_init.add_argument("--force", action="store_true")
    _add_common_options(sp_init)

    sp_extract = sub.add_parser("extract", help="Print the text of a PDF")
    sp_extract.add_argument("pdf", type=Path)
    sp_extract.add_argument("--out", type=Path)
    _add_common_options(sp_extract)

    sp_gen = sub.add_parser(
        "generate", help="Generate a question bank from a PDF"
    )
    sp_gen.add_argument("pdf", type=Path)
    sp_gen.add_argument("--out", type=Path, required=True)
    _add_generation_options(sp_gen)
    _add_common_options(sp_gen)

    sp_start = sub.add_parser(
        "start", help="Take a quiz from a saved question bank"
    )
    sp_start.add_argument("bank", type=Path)
    sp_start.add_argument("--time-limit", type=int)
    _add_export_option(sp_start)
    sp_start.add_argument("--explain", dest="explain", action="store_true")
    sp_start.add_argument("--no-explain", dest="explain", action="store_false")
    sp_start.set_defaults(explain=True)
    _add_common_options(sp_start)

    sp_run = sub.add_parser(
        "run", help="Upload a PDF, generate a quiz, and take it"
    )
    sp_run.add_argument("pdf", type=Path)
    _add_generation_options(sp_run)
    sp_run.add_argument("--time-limit", type=int)
    sp_run.add_argument(
        "--customize",
        action="store_true",
        help="Prompt for difficulty, count, and types before generating.",
    )
    sp_run.add_argument(
        "--skip-validation",
        action="store_true",
        help="Do not probe the API key before use.",
    )
    _add_export_option(sp_run)
    sp_run.add_argument("--explain", dest="explain", action="store_true")
    sp_run.add_argument("--no-explain", dest="explain", action="store_false")
    sp_run.set_defaults(explain=True)
    _add_common_options(sp_run)
    return p


def _prepare(args: argparse.Namespace) -> _Context:
    layout = ensure_workspace(path=getattr(args, "workspace", None))
    config = load_config(getattr(args, "config", None), layout=layout)
    config = config.with_overrides(
        model=getattr(args, "model", None),
        difficulty=getattr(args, "difficulty", None),
        num_questions=getattr(args, "num", None),
        types=getattr(args, "types", None),
        time_limit=getattr(args, "time_limit", None),
    )
    app_logger, log_path = configure_logger(
        "pdf_quiz",
        log_dir=layout.path_for("logs"),
        level=config.log_level,
        verbose=bool(getattr(args, "verbose", False)),
        filename="pdf_quiz.log",
    )
    app_logger.debug(
        "pdf-quiz CLI invoked",
        extra={"command": args.command, "config_path": config.config_path},
    )
    return _Context(_make_console(), layout, config, log_path)


def _cmd_init(args: argparse.Namespace) -> int:
    layout = ensure_workspace(path=args.workspace)
    try:
        path = write_template(layout, overwrite=bool(args.force))
    except TomlConfigError as exc:
        print(f"{exc}. Use --force to overwrite.")
        return 0
    print(f"Created template {path}")
    return 0


def _cmd_extract(args: argparse.Namespace) -> int:
    _prepare(args)
    text = extract_file(args.pdf)
    if args.out:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(text, encoding="utf-8")
        print(f"Wrote {len(text)} character(s) -> {args.out}")
    else:
        sys.stdout.write(text.rstrip("\n") + "\n")
    return 0


def _cmd_generate(args: argparse.Namespace) -> int:
    ctx = _prepare(args)
    text = extract_file(args.pdf)
    client = load_client(args.api_key)
    questions = generate_questions(
        text,
        ctx.config.settings,
        client=client,
        model=ctx.config.model,
        temperature=ctx.config.temperature,
        max_content_chars=ctx.config.max_content_chars,
    )
    path = save_question_bank(args.out, questions)
    print(f"Wrote {len(questions)} question(s) -> {path}")
    return 0


def _cmd_start(args: argparse.Namespace) -> int:
    ctx = _prepare(args)
    if not args.bank.exists():
        print(f"No question bank found at {args.bank}.")
        return 1
    questions = load_question_bank(args.bank)
    if not questions:
        print("Question bank is empty.")
        return 1
    workflow = _make_workflow(ctx.config)
    workflow.begin(questions)
    return _quiz_loop(ctx, workflow, args, allow_new=False)


def _cmd_run(args: argparse.Namespace) -> int:
    ctx = _prepare(args)
    workflow = _make_workflow(ctx.config)
    ctx.console.print(
        Panel(
            "Generate a quiz from your PDF with OpenAI.",
            title="PDF Quiz",
            border_style="magenta",
        )
    )
    if not _authenticate(ctx, workflow, args):
        return 1
    if not _upload(ctx, workflow, args.pdf):
        return 1
    return _settings_and_quiz(ctx, workflow, args)


def _authenticate(
    ctx: _Context, workflow: QuizWorkflow, args: argparse.Namespace
) -> bool:
    validate = not args.skip_validation
    supplied = args.api_key
    if not supplied:
        load_dotenv()
        supplied = os.getenv(API_KEY_ENV)
    for _ in range(_MAX_KEY_ATTEMPTS):
        key = supplied or _prompt(
            ctx.console, "Enter your OpenAI API key: ", password=True
        )
        supplied = None
        try:
            workflow.authenticate(key, validate=validate)
        except CredentialError as exc:
            ctx.console.print(f"[red]{exc}[/red]")
            continue
        ctx.console.print("[green]API key validated successfully![/green]")
        return True
    return False


def _upload(ctx: _Context, workflow: QuizWorkflow, pdf: Path) -> bool:
    source = pdf.expanduser()
    if not source.is_file():
        ctx.console.print(f"[red]Input not found: {source}[/red]")
        return False
    try:
        text = workflow.upload(source.read_bytes(), filename=source.name)
    except ExtractionError as exc:
        ctx.console.print(f"[red]{exc}[/red]")
        return False
    ctx.console.print(
        f"[green]PDF uploaded successfully![/green] "
        f"Extracted {len(text)} characters from {source.name}."
    )
    return True


def _settings_and_quiz(
    ctx: _Context,
    workflow: QuizWorkflow,
    args: argparse.Namespace,
    *,
    ask: bool = False,
) -> int:
    if ask or args.customize:
        workflow.configure(_ask_settings(ctx.console, workflow.settings))
    _print_settings(ctx.console, workflow.settings)
    while True:
        try:
            with ctx.console.status("Generating quiz..."):
                workflow.generate()
        except GenerationError as exc:
            ctx.console.print(f"[red]Failed to generate quiz: {exc}[/red]")
            answer = _prompt(ctx.console, "Try again? [y/N] ").strip().lower()
            if answer in {"y", "yes"}:
                continue
            return 1
        ctx.console.print("[green]Quiz generated successfully![/green]")
        return _quiz_loop(ctx, workflow, args, allow_new=True)


def _quiz_loop(
    ctx: _Context,
    workflow: QuizWorkflow,
    args: argparse.Namespace,
    *,
    allow_new: bool,
) -> int:
    while True:
        if workflow.session is None:
            raise StageError("No quiz has been started.")
        outcome = run_quiz_session(
            workflow.session,
            ctx.console,
            lambda: _prompt(ctx.console, "> "),
            show_explanations=bool(args.explain),
        )
        if outcome.exit_action == "quit":
            return 0
        result = workflow.finish()
        if args.export is not None:
            path = write_results_report(
                result,
                path=Path(args.export) if args.export else None,
                directory=ctx.layout.path_for("results"),
            )
            ctx.console.print(f"Results saved -> {path}")
        action = _results_menu(ctx, workflow, allow_new=allow_new)
        if action == "restart":
            workflow.restart()
            continue
        if action == "retake":
            workflow.retake()
            return _settings_and_quiz(ctx, workflow, args, ask=True)
        if action == "new":
            workflow.new_quiz()
            path = Path(_prompt(ctx.console, "Path to the next PDF: ").strip())
            if not _upload(ctx, workflow, path):
                return 1
            return _settings_and_quiz(ctx, workflow, args)
        return 0


def _results_menu(
    ctx: _Context, workflow: QuizWorkflow, *, allow_new: bool
) -> str:
    options = ["a (take again)", "s (save results)", "q (quit)"]
    if allow_new:
        options[1:1] = ["r (retake with new questions)", "n (new PDF)"]
    hint = "Next: " + ", ".join(options) + " "
    while True:
        choice = _prompt(ctx.console, hint).strip().lower()
        if choice in {"a", "again"}:
            return "restart"
        if allow_new and choice in {"r", "retake"}:
            return "retake"
        if allow_new and choice in {"n", "new"}:
            return "new"
        if choice in {"s", "save"}:
            if workflow.result is None:
                raise StageError("No results to save.")
            path = write_results_report(
                workflow.result, directory=ctx.layout.path_for("results")
            )
            ctx.console.print(f"Results saved -> {path}")
            continue
        if choice in {"", "q", "quit", "exit"}:
            return "quit"
        ctx.console.print("[red]Unrecognized choice. Try again.[/red]")


def _ask_settings(console: Console, current: QuizSettings) -> QuizSettings:
    while True:
        difficulty = _prompt(
            console,
            f"Difficulty ({'/'.join(DIFFICULTIES)}) [{current.difficulty}]: ",
        ).strip() or current.difficulty
        count = _prompt(
            console, f"Number of questions (1-20) [{current.num_questions}]: "
        ).strip() or str(current.num_questions)
        default_types = " ".join(current.kind_labels())
        types = _prompt(
            console,
            f"Question types ({', '.join(_KIND_CHOICES)}) "
            f"[{default_types}]: ",
        ).replace(",", " ").split() or current.kind_labels()
        try:
            return QuizSettings.from_values(
                difficulty=difficulty,
                num_questions=int(count),
                kinds=types,
            )
        except (InvalidSettingsError, ValueError) as exc:
            console.print(f"[red]{exc}[/red]")


def _print_settings(console: Console, settings: QuizSettings) -> None:
    table = Table(show_header=False, title="Quiz settings")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Difficulty", settings.difficulty)
    table.add_row("Questions", str(settings.num_questions))
    table.add_row("Types", ", ".join(settings.kind_labels()))
    console.print(table)


def _version() -> str:
    try:
        return metadata.version("pdf-quiz")
    except metadata.PackageNotFoundError:
        return "unknown"


_HANDLERS = {
    "init": _cmd_init,
    "extract": _cmd_extract,
    "generate": _cmd_generate,
    "start": _cmd_start,
    "run": _cmd_run,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.version:
        print(_version())
        return 0
    handler = _HANDLERS.get(args.command or "")
    if handler is None:
        parser.print_help()
        return 2
    try:
        return handler(args)
    except (TomlConfigError, WorkspaceError, InvalidSettingsError) as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 2
    except (PdfQuizError, FileNotFoundError) as exc:
        _log_failure(args.command, exc)
        sys.stderr.write(f"Error: {exc}\n")
        return 1


def _log_failure(command: str, exc: Exception) -> None:
    logger.error(
        "command failed",
        extra={"command": command, "error": type(exc).__name__},
    )

