from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from pdf_quiz.core import logging as core_logging


def _close(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_configure_logger_writes_json(tmp_path) -> None:
    logger, log_path = core_logging.configure_logger(
        "pdf_quiz.test_json",
        log_dir=tmp_path / "logs",
        filename="test.log",
    )

    logger.info("hello world", extra={"event": "unit", "value": 3})
    logger.debug("hidden at INFO")
    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception(
            "with error",
            extra={"items": [Path("a"), 1], "obj": object()},
        )
    for handler in logger.handlers:
        handler.flush()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["message"] == "hello world"
    assert first["level"] == "INFO"
    assert first["extra"] == {"event": "unit", "value": 3}
    last = json.loads(lines[-1])
    assert "ValueError: boom" in last["exception"]
    assert last["extra"]["items"] == ["a", 1]
    assert last["extra"]["obj"].startswith("<object")
    _close(logger)


def test_verbose_logs_debug_and_adds_console(tmp_path) -> None:
    logger, log_path = core_logging.configure_logger(
        "pdf_quiz.test_verbose",
        log_dir=tmp_path / "logs",
        level="WARNING",
        verbose=True,
        filename="verbose.log",
    )

    logger.debug("debug line")
    for handler in logger.handlers:
        handler.flush()

    consoles = [
        h for h in logger.handlers if getattr(h, "_pdf_quiz_console", False)
    ]
    assert len(consoles) == 1
    assert "debug line" in log_path.read_text(encoding="utf-8")
    _close(logger)


def test_reconfigure_reuses_file_handler_and_drops_console(tmp_path) -> None:
    name = "pdf_quiz.test_toggle"
    logger, first_path = core_logging.configure_logger(
        name, log_dir=tmp_path / "logs", verbose=True, filename="t.log"
    )

    _, second_path = core_logging.configure_logger(
        name, log_dir=tmp_path / "other", verbose=False, filename="t.log"
    )

    assert second_path == first_path
    files = [h for h in logger.handlers if getattr(h, "_pdf_quiz_file", False)]
    consoles = [
        h for h in logger.handlers if getattr(h, "_pdf_quiz_console", False)
    ]
    assert len(files) == 1
    assert consoles == []
    _close(logger)


def test_configure_logger_fallback_directory(tmp_path, monkeypatch) -> None:
    target = tmp_path / "blocked"
    fallback = tmp_path / "fallback"
    original_mkdir = Path.mkdir

    def fake_mkdir(self, *args, **kwargs):  # noqa: ANN001
        if self == target:
            raise PermissionError("denied")
        return original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", fake_mkdir)
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback)

    logger, log_path = core_logging.configure_logger(
        "pdf_quiz.test_blocked", log_dir=target, filename="blocked.log"
    )

    assert log_path == fallback / "blocked.log"
    assert log_path.exists()
    _close(logger)


def test_rotating_handler_fallback(tmp_path, monkeypatch) -> None:
    calls = {"count": 0}
    fallback_dir = tmp_path / "rotate-fallback"
    original_handler = core_logging.RotatingFileHandler

    def fake_handler(path, *args, **kwargs):  # noqa: ANN001
        calls["count"] += 1
        if calls["count"] == 1:
            raise PermissionError("denied")
        return original_handler(path, *args, **kwargs)

    monkeypatch.setattr(core_logging, "RotatingFileHandler", fake_handler)
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback_dir)

    logger, log_path = core_logging.configure_logger(
        "pdf_quiz.test_rotating",
        log_dir=tmp_path / "primary",
        filename="rotate.log",
    )

    assert log_path.parent == fallback_dir
    assert calls["count"] == 2
    _close(logger)


def test_fallback_log_dir_uses_tempdir(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(tempfile, "gettempdir", lambda: str(tmp_path))

    assert core_logging._fallback_log_dir() == tmp_path / "pdf-quiz-logs"


def test_unknown_level_defaults_to_info(tmp_path) -> None:
    logger, _ = core_logging.configure_logger(
        "pdf_quiz.test_level", log_dir=tmp_path, level="chatty"
    )
    files = [h for h in logger.handlers if getattr(h, "_pdf_quiz_file", False)]
    assert files[0].level == logging.INFO
    _close(logger)


def test_credentials_in_extra_are_masked(tmp_path) -> None:
    logger, log_path = core_logging.configure_logger(
        "pdf_quiz.test_secret", log_dir=tmp_path, filename="secret.log"
    )

    logger.info("client ready", extra={"api_key": "sk-live", "model": "m"})
    for handler in logger.handlers:
        handler.flush()

    record = json.loads(log_path.read_text(encoding="utf-8").strip())
    assert record["extra"] == {"api_key": "***", "model": "m"}
    assert "sk-live" not in log_path.read_text(encoding="utf-8")
    _close(logger)
