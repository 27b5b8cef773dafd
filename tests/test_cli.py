"""CLI parser and exit-code behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from erdcheck import cli
from erdcheck.cli import _build_parser
from erdcheck.llm.runner import LLMRunner


def test_cli_accepts_verbose_before_and_after_command() -> None:
    parser = _build_parser()
    assert parser.parse_args(["--verbose", "check"]).verbose is True
    assert parser.parse_args(["check", "--verbose"]).verbose is True
    assert parser.parse_args(["check"]).verbose is False


def test_cli_check_options() -> None:
    args = _build_parser().parse_args(
        ["check", "repo", "--output-path", "ERD.md", "--schema-globs", "db/*.sql", "--include-models"]
    )

    assert args.path == "repo"
    assert args.output_path == "ERD.md"
    assert args.schema_globs == "db/*.sql"
    assert args.include_models is True
    assert args.model is None


def test_cli_include_models_defaults_to_unset() -> None:
    args = _build_parser().parse_args(["check"])
    assert args.include_models is None


def _seed(root: Path) -> None:
    (root / "db").mkdir(parents=True)
    (root / "db" / "structure.sql").write_text("CREATE TABLE a (id int);\n", encoding="utf-8")


def _clear_action_env(monkeypatch) -> None:
    for key in ("GITHUB_ACTIONS", "GITHUB_STEP_SUMMARY", "INPUT_OPENAI_API_KEY", "ERDCHECK_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


def test_cli_exits_zero_when_up_to_date(tmp_path: Path, monkeypatch, capsys) -> None:
    _seed(tmp_path)
    _clear_action_env(monkeypatch)
    monkeypatch.setattr(LLMRunner, "run", lambda self, prompt: "NO_CHANGE")

    cli.main(["check", str(tmp_path)])

    assert "ERD up to date" in capsys.readouterr().out


def test_cli_fails_on_material_change(tmp_path: Path, monkeypatch, capsys) -> None:
    _seed(tmp_path)
    _clear_action_env(monkeypatch)
    monkeypatch.setattr(LLMRunner, "run", lambda self, prompt: "erDiagram\n  A { int id }")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["check", str(tmp_path)])

    assert excinfo.value.code == 1
    captured = capsys.readouterr()
    assert "```mermaid\nerDiagram\n  A { int id }\n```" in captured.out
    assert "ERD out of date" in captured.err


def test_cli_fails_without_schema_files(tmp_path: Path, monkeypatch, capsys) -> None:
    _clear_action_env(monkeypatch)

    def unexpected(self, prompt):  # pragma: no cover - must not be called
        raise AssertionError("generator should not be called")

    monkeypatch.setattr(LLMRunner, "run", unexpected)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["check", str(tmp_path)])

    assert excinfo.value.code == 1
    assert "No schema-like files found" in capsys.readouterr().err
