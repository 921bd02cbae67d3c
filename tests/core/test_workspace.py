from __future__ import annotations

import pytest

from pdf_quiz.core import workspace


def test_ensure_workspace_creates_directories(tmp_path, monkeypatch) -> None:
    root = tmp_path / "data"
    monkeypatch.setenv(workspace.WORKSPACE_ENV, str(root))

    layout = workspace.ensure_workspace()

    assert layout.home == root.absolute()
    assert set(layout.directories) == {"config", "logs", "results"}
    for path in layout.directories.values():
        assert path.is_dir()


def test_ensure_workspace_is_idempotent(tmp_path) -> None:
    first = workspace.ensure_workspace(path=tmp_path / "ws")
    second = workspace.ensure_workspace(path=tmp_path / "ws")
    assert first == second


def test_explicit_path_wins_over_env(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv(workspace.WORKSPACE_ENV, str(tmp_path / "env"))

    layout = workspace.ensure_workspace(path=tmp_path / "explicit")

    assert layout.home == (tmp_path / "explicit").absolute()
    assert not (tmp_path / "env").exists()


def test_env_mapping_is_injectable(tmp_path) -> None:
    layout = workspace.ensure_workspace(
        env={workspace.WORKSPACE_ENV: str(tmp_path / "mapped")}
    )
    assert layout.home == (tmp_path / "mapped").absolute()


def test_ensure_workspace_without_create(tmp_path) -> None:
    root = tmp_path / "deferred"

    layout = workspace.ensure_workspace(path=root, create=False)

    assert layout.path_for("logs") == root.absolute() / "logs"
    assert not root.exists()


def test_ensure_workspace_errors_when_path_is_file(tmp_path) -> None:
    root = tmp_path / "file"
    root.write_text("not a dir", encoding="utf-8")

    with pytest.raises(workspace.WorkspaceError):
        workspace.ensure_workspace(path=root)


def test_ensure_workspace_errors_when_subdir_is_file(tmp_path) -> None:
    root = tmp_path / "ws"
    root.mkdir()
    (root / "logs").write_text("", encoding="utf-8")

    with pytest.raises(workspace.WorkspaceError, match="logs"):
        workspace.ensure_workspace(path=root)


def test_default_location_falls_back_to_tempdir(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv(workspace.WORKSPACE_ENV, raising=False)
    monkeypatch.setattr(workspace, "DEFAULT_WORKSPACE", tmp_path / "home")
    monkeypatch.setattr(workspace.tempfile, "gettempdir", lambda: str(tmp_path))
    original = workspace._materialize_layout

    def _deny_home(base, *, create):
        if base == tmp_path / "home":
            raise PermissionError("denied")
        return original(base, create=create)

    monkeypatch.setattr(workspace, "_materialize_layout", _deny_home)

    layout = workspace.ensure_workspace()

    assert layout.home == tmp_path / "pdf-quiz-data"


def test_path_for_unknown_key_errors(tmp_path) -> None:
    layout = workspace.ensure_workspace(path=tmp_path, create=False)

    with pytest.raises(KeyError):
        layout.path_for("unknown")
