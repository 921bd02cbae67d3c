"""Where pdf-quiz keeps its config, logs, and exported results."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

WORKSPACE_ENV = "PDF_QUIZ_DATA_HOME"
DEFAULT_WORKSPACE = Path.home() / ".pdf-quiz-data"

_FOLDERS = ("config", "logs", "results")


class WorkspaceError(RuntimeError):
    """The workspace root or one of its folders is unusable."""


@dataclass(frozen=True)
class WorkspaceLayout:
    home: Path
    directories: Mapping[str, Path]

    def path_for(self, key: str) -> Path:
        if key not in self.directories:
            raise KeyError(f"Unknown workspace directory '{key}'.")
        return self.directories[key]


def ensure_workspace(
    *,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
    create: bool = True,
) -> WorkspaceLayout:
    """Resolve the workspace and, when ``create`` is set, make its folders.

    ``path`` wins over ``PDF_QUIZ_DATA_HOME``, which wins over
    ``~/.pdf-quiz-data``. Only the default location may fall back to the
    temp directory when it cannot be written.
    """

    chosen = path
    if chosen is None:
        chosen = ((os.environ if env is None else env).get(WORKSPACE_ENV) or "")
        chosen = chosen.strip() or None

    if chosen is not None:
        return _materialize_layout(
            Path(chosen).expanduser().absolute(), create=create
        )

    try:
        return _materialize_layout(DEFAULT_WORKSPACE, create=create)
    except PermissionError as exc:
        if not create:
            raise WorkspaceError(
                f"Unable to prepare workspace at {DEFAULT_WORKSPACE}"
            ) from exc
        fallback = Path(tempfile.gettempdir()) / "pdf-quiz-data"
        try:
            return _materialize_layout(fallback, create=True)
        except PermissionError as again:
            raise WorkspaceError(
                f"Unable to prepare workspace at {DEFAULT_WORKSPACE}"
            ) from again


def _materialize_layout(base: Path, *, create: bool) -> WorkspaceLayout:
    if base.exists() and not base.is_dir():
        raise WorkspaceError(f"Workspace path is not a directory: {base}")

    directories = {name: base / name for name in _FOLDERS}
    clashes = [n for n, p in directories.items() if p.exists() and not p.is_dir()]
    if clashes:
        raise WorkspaceError(
            f"Workspace folder '{clashes[0]}' is a file: "
            f"{directories[clashes[0]]}"
        )

    if create:
        for folder in directories.values():
            folder.mkdir(parents=True, exist_ok=True)
            _private(folder)
        _private(base)
    return WorkspaceLayout(home=base, directories=MappingProxyType(directories))


def _private(path: Path) -> None:
    try:
        path.chmod(0o700)
    except (PermissionError, NotImplementedError):
        pass
