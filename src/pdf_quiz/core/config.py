"""Reading, merging and seeding ``pdf_quiz.toml`` files."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Mapping

__all__ = [
    "TomlConfigError",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
]


class TomlConfigError(RuntimeError):
    """The config file is missing, malformed, or has keys we don't know."""


def load_toml(path: Path) -> Mapping[str, Any]:
    path = Path(path)
    if not path.is_file():
        raise TomlConfigError(f"Config file not found: {path}")
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Could not parse {path.name}: {exc}") from exc


def merge_defaults(
    defaults: Mapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> dict[str, Any]:
    """Overlay ``override`` on ``defaults`` and return a fresh dict.

    Only keys present in ``defaults`` may be overridden, and a table may only
    be replaced by another table. Neither argument is modified.
    """

    unknown = [key for key in override if key not in defaults]
    if unknown:
        raise TomlConfigError(
            f"Unknown configuration key '{path}{unknown[0]}'."
        )

    merged: dict[str, Any] = {}
    for key, default in defaults.items():
        if key not in override:
            merged[key] = _copy(default)
            continue
        value = override[key]
        if not isinstance(default, Mapping):
            merged[key] = _copy(value)
        elif isinstance(value, Mapping):
            merged[key] = merge_defaults(default, value, path=f"{path}{key}.")
        else:
            raise TomlConfigError(
                f"Expected table for '{path}{key}', "
                f"found {type(value).__name__}."
            )
    return merged


def _copy(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _copy(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_copy(item) for item in value]
    return value


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    """Seed ``path`` with ``template``; refuse to clobber unless asked."""

    path = Path(path)
    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(template, encoding="utf-8")
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path
