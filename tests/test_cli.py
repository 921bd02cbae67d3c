from __future__ import annotations

import pytest
from rich.console import Console

from fixtures.openai import OpenAIStub
from fixtures.quiz import choice_question, question_payload
from pdf_quiz import cli, extract
from pdf_quiz.utils import load_question_bank, save_question_bank


@pytest.fixture
def console(monkeypatch) -> Console:
    recorded = Console(record=True, width=100)
    monkeypatch.setattr(cli, "_make_console", lambda: recorded)
    return recorded


@pytest.fixture
def fake_converter(monkeypatch):
    monkeypatch.setattr(
        extract,
        "build_converter",
        lambda: (lambda data: "Extracted lecture notes."),
    )


def _feed(monkeypatch, answers):
    iterator = iter(answers)
    prompts = []

    def _prompt(console, message, *, password=False):
        prompts.append(message)
        return next(iterator)

    monkeypatch.setattr(cli, "_prompt", _prompt)
    return prompts


def test_main_without_command_prints_help(capsys) -> None:
    assert cli.main([]) == 2
    assert "pdf-quiz" in capsys.readouterr().out


def test_init_writes_template(tmp_path, capsys) -> None:
    ws = tmp_path / "ws"

    assert cli.main(["init", "--workspace", str(ws)]) == 0
    target = ws / "config" / "pdf_quiz.toml"
    assert target.exists()
    assert "Created template" in capsys.readouterr().out

    assert cli.main(["init", "--workspace", str(ws)]) == 0
    assert "--force" in capsys.readouterr().out
    assert cli.main(["init", "--workspace", str(ws), "--force"]) == 0


def test_extract_prints_text(workspace, fake_converter, capsys) -> None:
    pdf = workspace.write_pdf("lecture.pdf")

    assert cli.main(["extract", str(pdf)]) == 0

    assert "Extracted lecture notes." in capsys.readouterr().out


def test_extract_writes_log_file(workspace, fake_converter, tmp_path) -> None:
    pdf = workspace.write_pdf("lecture.pdf")
    out = tmp_path / "out" / "lecture.txt"
    ws = tmp_path / "ws"

    assert cli.main(
        ["extract", str(pdf), "--out", str(out), "--workspace", str(ws)]
    ) == 0

    assert out.read_text(encoding="utf-8") == "Extracted lecture notes."
    assert (ws / "logs" / "pdf_quiz.log").exists()


def test_extract_reports_unsupported_file(workspace, capsys) -> None:
    path = workspace.write("notes.txt", "plain text")

    assert cli.main(["extract", str(path)]) == 1
    assert "Please upload a PDF file" in capsys.readouterr().err


def test_extract_missing_file(tmp_path, capsys) -> None:
    assert cli.main(["extract", str(tmp_path / "missing.pdf")]) == 1
    assert "Input not found" in capsys.readouterr().err


def test_invalid_settings_exit_code(workspace, capsys) -> None:
    pdf = workspace.write_pdf()

    code = cli.main(["generate", str(pdf), "--out", "x.jsonl", "--num", "50"])

    assert code == 2
    assert "num_questions" in capsys.readouterr().err


def test_missing_config_exit_code(workspace, tmp_path) -> None:
    pdf = workspace.write_pdf()
    code = cli.main(
        ["extract", str(pdf), "--config", str(tmp_path / "nope.toml")]
    )
    assert code == 2


def test_generate_writes_bank(
    workspace, fake_converter, monkeypatch, tmp_path
) -> None:
    client = OpenAIStub()
    client.queue_response(question_payload(3))
    seen_keys = []

    def _load_client(api_key=None):
        seen_keys.append(api_key)
        return client

    monkeypatch.setattr(cli, "load_client", _load_client)
    pdf = workspace.write_pdf()
    out = tmp_path / "bank.jsonl"

    code = cli.main(
        [
            "generate",
            str(pdf),
            "--out",
            str(out),
            "--num",
            "3",
            "--difficulty",
            "hard",
            "--types",
            "multiple-choice",
            "true-false",
            "--model",
            "gpt-4o-mini",
            "--api-key",
            "sk-test",
        ]
    )

    assert code == 0
    assert seen_keys == ["sk-test"]
    assert len(load_question_bank(out)) == 3
    call = client.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert "Difficulty level: hard" in call["messages"][1]["content"]


def test_start_runs_quiz_and_exports(
    console, monkeypatch, tmp_path
) -> None:
    bank = save_question_bank(tmp_path / "bank.jsonl", [choice_question()])
    report = tmp_path / "report.txt"
    _feed(monkeypatch, ["a", "n", "q"])

    code = cli.main(["start", str(bank), "--export", str(report)])

    assert code == 0
    assert "Quiz Results" in console.export_text()
    assert "Score: 100%" in report.read_text(encoding="utf-8")


def test_start_take_again(console, monkeypatch, tmp_path) -> None:
    bank = save_question_bank(tmp_path / "bank.jsonl", [choice_question()])
    prompts = _feed(monkeypatch, ["b", "n", "a", "a", "n", "quit"])

    assert cli.main(["start", str(bank), "--no-explain"]) == 0

    output = console.export_text()
    assert output.count("Quiz Results") == 2
    assert "Explanation for question" not in output
    assert any("take again" in prompt for prompt in prompts)


def test_start_missing_bank(tmp_path, capsys) -> None:
    assert cli.main(["start", str(tmp_path / "none.jsonl")]) == 1
    assert "No question bank" in capsys.readouterr().out


def test_start_quit_mid_quiz(console, monkeypatch, tmp_path) -> None:
    bank = save_question_bank(tmp_path / "bank.jsonl", [choice_question()])
    _feed(monkeypatch, ["q"])

    assert cli.main(["start", str(bank)]) == 0
    assert "Ending quiz without submission." in console.export_text()


def _patch_run(monkeypatch, client):
    monkeypatch.setattr(cli, "load_dotenv", lambda *a, **k: False)
    monkeypatch.setattr(cli, "load_client", lambda api_key=None: client)
    monkeypatch.setattr(
        cli, "validate_api_key", lambda key, **kwargs: key == "sk-good"
    )


def test_run_full_flow(
    console, workspace, fake_converter, monkeypatch, tmp_path
) -> None:
    client = OpenAIStub()
    client.queue_response(question_payload(1))
    _patch_run(monkeypatch, client)
    _feed(monkeypatch, ["sk-bad", "sk-good", "b", "n", "s", "q"])
    pdf = workspace.write_pdf()
    ws = tmp_path / "ws"

    code = cli.main(["run", str(pdf), "--num", "1", "--workspace", str(ws)])

    assert code == 0
    output = console.export_text()
    assert "Invalid API key" in output
    assert "API key validated successfully!" in output
    assert "PDF uploaded successfully!" in output
    assert "Quiz generated successfully!" in output
    assert "Excellent!" in output
    saved = list((ws / "results").glob("quiz-results-*.txt"))
    assert len(saved) == 1


def test_run_gives_up_after_three_bad_keys(
    console, workspace, monkeypatch
) -> None:
    _patch_run(monkeypatch, OpenAIStub())
    _feed(monkeypatch, ["sk-1", "", "sk-3"])

    assert cli.main(["run", str(workspace.write_pdf())]) == 1
    assert "Please enter your OpenAI API key." in console.export_text()


def test_run_generation_failure_retry_then_stop(
    console, workspace, fake_converter, monkeypatch
) -> None:
    client = OpenAIStub()
    client.queue_response("not json")
    client.queue_response("still not json")
    _patch_run(monkeypatch, client)
    _feed(monkeypatch, ["y", "n"])

    code = cli.main(
        ["run", str(workspace.write_pdf()), "--api-key", "sk-good"]
    )

    assert code == 1
    assert len(client.calls) == 2
    assert "Failed to generate quiz" in console.export_text()


def test_run_customize_and_retake(
    console, workspace, fake_converter, monkeypatch
) -> None:
    client = OpenAIStub()
    client.queue_response(question_payload(1))
    client.queue_response(question_payload(1))
    _patch_run(monkeypatch, client)
    _feed(
        monkeypatch,
        [
            "extreme", "", "",
            "easy", "1", "multiple-choice",
            "b", "n", "r",
            "", "", "",
            "a", "n", "q",
        ],
    )

    code = cli.main(
        [
            "run",
            str(workspace.write_pdf()),
            "--api-key",
            "sk-good",
            "--customize",
        ]
    )

    assert code == 0
    assert len(client.calls) == 2
    assert "Difficulty level: easy" in client.calls[0]["messages"][1]["content"]
    output = console.export_text()
    assert "difficulty must be one of" in output
    assert "Keep studying!" in output


def test_run_unreadable_pdf(console, workspace, monkeypatch) -> None:
    _patch_run(monkeypatch, OpenAIStub())
    path = workspace.write("doc.pdf", b"not a pdf")

    code = cli.main(["run", str(path), "--api-key", "sk-good"])

    assert code == 1
    assert "Invalid file type" in console.export_text()


def test_start_export_defaults_to_results_dir(
    console, monkeypatch, tmp_path
) -> None:
    bank = save_question_bank(tmp_path / "bank.jsonl", [choice_question()])
    ws = tmp_path / "ws"
    _feed(monkeypatch, ["a", "n", "q"])

    code = cli.main(
        ["start", str(bank), "--workspace", str(ws), "--export"]
    )

    assert code == 0
    saved = list((ws / "results").glob("quiz-results-*.txt"))
    assert len(saved) == 1


def test_run_retake_always_asks_for_settings(
    console, workspace, fake_converter, monkeypatch
) -> None:
    client = OpenAIStub()
    client.queue_response(question_payload(1))
    client.queue_response(question_payload(1))
    _patch_run(monkeypatch, client)
    prompts = _feed(
        monkeypatch,
        ["b", "n", "r", "hard", "1", "", "b", "n", "q"],
    )

    code = cli.main(
        ["run", str(workspace.write_pdf()), "--api-key", "sk-good"]
    )

    assert code == 0
    assert not any(p.startswith("Difficulty") for p in prompts[:3])
    assert any(p.startswith("Difficulty") for p in prompts[3:])
    assert "Difficulty level: hard" in client.calls[1]["messages"][1]["content"]
