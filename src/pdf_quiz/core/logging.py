"""JSON-lines logging for pdf-quiz.

Every command logs to ``pdf_quiz.log`` in the workspace ``logs`` directory.
The interactive quiz screen owns the terminal, so a stderr handler is only
attached with ``--verbose``.
"""

from __future__ import annotations

import json
import logging
import sys
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator

__all__ = [
    "JsonLogFormatter",
    "configure_logger",
]

_FILE_MARKER = "_pdf_quiz_file"
_CONSOLE_MARKER = "_pdf_quiz_console"
_REDACTED = "***"
_SECRET_KEYS = frozenset({"api_key", "authorization", "password"})

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime"}


class JsonLogFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    Values passed through ``extra`` land under ``"extra"``. Keys that look
    like credentials are masked.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = _collect_extra(record)
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = record.stack_info
        return json.dumps(entry, ensure_ascii=True)


def configure_logger(
    name: str,
    *,
    log_dir: Path,
    level: str = "INFO",
    verbose: bool = False,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    filename: str | None = None,
) -> tuple[logging.Logger, Path]:
    """Attach the JSON file handler to ``name`` and return it with its path.

    A second call for the same logger keeps the existing file handler and
    only adjusts levels and the console handler.
    """

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    handler = _marked(logger, _FILE_MARKER)
    if handler is None:
        target = filename or name.rsplit(".", 1)[-1] + ".log"
        handler = _open_file_handler(
            Path(log_dir), target, max_bytes, backup_count
        )
        handler.setFormatter(JsonLogFormatter())
        setattr(handler, _FILE_MARKER, True)
        logger.addHandler(handler)
    handler.setLevel(logging.DEBUG if verbose else _level_number(level))

    console = _marked(logger, _CONSOLE_MARKER)
    if verbose and console is None:
        console = logging.StreamHandler(stream=sys.stderr)
        console.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        setattr(console, _CONSOLE_MARKER, True)
        logger.addHandler(console)
    elif not verbose and console is not None:
        logger.removeHandler(console)
        console.close()
    if console is not None and verbose:
        console.setLevel(logging.DEBUG)

    return logger, Path(handler.baseFilename)  # type: ignore[attr-defined]


def _marked(logger: logging.Logger, marker: str) -> logging.Handler | None:
    for handler in logger.handlers:
        if getattr(handler, marker, False):
            return handler
    return None


def _open_file_handler(
    log_dir: Path, filename: str, max_bytes: int, backup_count: int
) -> RotatingFileHandler:
    failure: PermissionError | None = None
    for directory in _log_dir_candidates(log_dir):
        try:
            directory.mkdir(parents=True, exist_ok=True)
            path = directory / filename
            path.touch(exist_ok=True)
            _restrict(path)
            return RotatingFileHandler(
                path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        except PermissionError as exc:
            failure = exc
    raise failure if failure else PermissionError(str(log_dir))


def _log_dir_candidates(log_dir: Path) -> Iterator[Path]:
    yield log_dir
    yield _fallback_log_dir()


def _restrict(path: Path) -> None:
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass


def _level_number(level: str) -> int:
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO


def _collect_extra(record: logging.LogRecord) -> dict[str, Any]:
    extra: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_ATTRS:
            continue
        extra[key] = _REDACTED if key in _SECRET_KEYS else _jsonable(value)
    return extra


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    return repr(value)


def _fallback_log_dir() -> Path:
    return Path(tempfile.gettempdir()) / "pdf-quiz-logs"
