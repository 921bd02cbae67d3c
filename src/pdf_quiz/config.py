"""Configuration loading for pdf-quiz."""

from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from .core.config import TomlConfigError, load_toml, merge_defaults
from .core.config import write_toml_template
from .core.workspace import WorkspaceLayout
from .errors import InvalidSettingsError
from .generator import QuizSettings

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_CONFIG",
    "AppConfig",
    "load_config",
    "read_template",
    "write_template",
]

CONFIG_FILENAME = "pdf_quiz.toml"

DEFAULT_CONFIG: Mapping[str, Any] = {
    "ai": {
        "model": "gpt-4o",
        "temperature": 0.7,
        "max_content_chars": 12000,
    },
    "quiz": {
        "difficulty": "medium",
        "num_questions": 5,
        "types": ["multiple-choice"],
        "time_limit": 60,
    },
    "logging": {
        "level": "INFO",
    },
}


@dataclass(frozen=True)
class AppConfig:
    """Validated settings resolved from defaults and the TOML file."""

    model: str
    temperature: float
    max_content_chars: int
    settings: QuizSettings
    time_limit: int
    log_level: str
    config_path: Optional[Path] = None

    def with_overrides(
        self,
        *,
        model: Optional[str] = None,
        difficulty: Optional[str] = None,
        num_questions: Optional[int] = None,
        types: Optional[Sequence[str]] = None,
        time_limit: Optional[int] = None,
    ) -> "AppConfig":
        """Return a copy with CLI overrides applied and re-validated."""

        settings = QuizSettings.from_values(
            difficulty=difficulty or self.settings.difficulty,
            num_questions=(
                num_questions
                if num_questions is not None
                else self.settings.num_questions
            ),
            kinds=types or self.settings.kind_labels(),
        )
        limit = time_limit if time_limit is not None else self.time_limit
        if int(limit) <= 0:
            raise InvalidSettingsError("time_limit must be positive")
        return AppConfig(
            model=model or self.model,
            temperature=self.temperature,
            max_content_chars=self.max_content_chars,
            settings=settings,
            time_limit=int(limit),
            log_level=self.log_level,
            config_path=self.config_path,
        )


def load_config(
    path: Optional[Path] = None,
    *,
    layout: Optional[WorkspaceLayout] = None,
) -> AppConfig:
    """Load config from ``path``, the workspace, or defaults.

    An explicit ``path`` must exist. Without one, the workspace config file
    is used when present.
    """

    resolved = _resolve_path(path, layout)
    raw: Mapping[str, Any] = {}
    if resolved is not None:
        raw = load_toml(resolved)
    data = merge_defaults(DEFAULT_CONFIG, raw)
    return _build_config(data, resolved)


def _resolve_path(
    path: Optional[Path], layout: Optional[WorkspaceLayout]
) -> Optional[Path]:
    if path is not None:
        candidate = Path(path).expanduser()
        if not candidate.exists():
            raise TomlConfigError(f"Config file not found: {candidate}")
        return candidate
    if layout is not None:
        candidate = layout.path_for("config") / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


def _build_config(data: Mapping[str, Any], path: Optional[Path]) -> AppConfig:
    ai = data["ai"]
    quiz = data["quiz"]
    types = quiz["types"]
    if isinstance(types, str):
        types = [types]
    try:
        settings = QuizSettings.from_values(
            difficulty=str(quiz["difficulty"]),
            num_questions=int(quiz["num_questions"]),
            kinds=list(types),
        )
        time_limit = int(quiz["time_limit"])
        max_chars = int(ai["max_content_chars"])
        temperature = float(ai["temperature"])
    except (InvalidSettingsError, TypeError, ValueError) as exc:
        raise TomlConfigError(f"Invalid quiz configuration: {exc}") from exc
    if time_limit <= 0:
        raise TomlConfigError("quiz.time_limit must be positive")
    return AppConfig(
        model=str(ai["model"]),
        temperature=temperature,
        max_content_chars=max_chars,
        settings=settings,
        time_limit=time_limit,
        log_level=str(data["logging"]["level"]),
        config_path=path,
    )


def read_template() -> str:
    """Return the packaged config template text."""

    resource = resources.files("pdf_quiz.templates").joinpath(CONFIG_FILENAME)
    return resource.read_text(encoding="utf-8")


def write_template(
    layout: WorkspaceLayout, *, overwrite: bool = False
) -> Path:
    """Write the config template into the workspace config directory."""

    target = layout.path_for("config") / CONFIG_FILENAME
    return write_toml_template(
        target, template=read_template(), overwrite=overwrite
    )
