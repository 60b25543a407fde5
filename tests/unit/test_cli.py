"""
Unit tests for CLI module
"""

import argparse
import json
import sys
from pathlib import Path
from unittest.mock import patch

import pandas as pd
import pytest
from rich.console import Console

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from timesheet_bot import cli
from timesheet_bot.cli import CLIHandler, exit_code_for
from timesheet_bot.models.results import AggregateResult
from timesheet_bot.services.credentials import EnvCredentialProvider, StaticCredentialProvider


class TestCLIHandler:
    """CLI handler test class"""

    def setup_method(self):
        self.cli_handler = CLIHandler(Console(file=None, force_terminal=False))

    def test_create_argument_parser(self):
        parser = self.cli_handler.create_argument_parser()
        assert isinstance(parser, argparse.ArgumentParser)

        args = parser.parse_args(['submit', '--csv', 'entries.csv', '--backend', 'mock', '--headless'])
        assert args.command == 'submit'
        assert args.csv == 'entries.csv'
        assert args.backend == 'mock'
        assert args.headless is True
        assert args.mock_website is False

        args = parser.parse_args(['quarters', '--json'])
        assert args.command == 'quarters'
        assert args.json is True

    def test_parser_rejects_missing_csv(self):
        parser = self.cli_handler.create_argument_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(['submit'])
        with pytest.raises(SystemExit):
            parser.parse_args(['submit', '--csv', 'x.csv', '--backend', 'selenium'])

    def test_exit_codes(self):
        assert exit_code_for(AggregateResult(ok=True)) == 0
        assert exit_code_for(AggregateResult(ok=False, error="Some rows failed in: Q4-2025")) == 1
        assert exit_code_for(AggregateResult(ok=False, cancelled=True)) == 130

    def test_credentials_from_environment(self, monkeypatch):
        monkeypatch.setenv("SMARTSHEET_EMAIL", "user@example.com")
        monkeypatch.setenv("SMARTSHEET_PASSWORD", "pw")
        assert isinstance(self.cli_handler.resolve_credentials(None), EnvCredentialProvider)
        assert isinstance(self.cli_handler.resolve_credentials("user@example.com"), EnvCredentialProvider)

    def test_credentials_prompted_for_other_email(self, monkeypatch):
        monkeypatch.delenv("SMARTSHEET_EMAIL", raising=False)
        with patch("timesheet_bot.cli.Prompt.ask", return_value="typed") as ask:
            provider = self.cli_handler.resolve_credentials("other@example.com")
        assert isinstance(provider, StaticCredentialProvider)
        assert provider.get("smartsheet").secret == "typed"
        assert ask.call_args.kwargs["password"] is True

    def test_cancel_aborts_controller(self):
        from timesheet_bot.services.automation.abort import AbortController
        self.cli_handler.abort_controller = AbortController()
        self.cli_handler.cancel()
        assert self.cli_handler.abort_controller.signal.aborted is True

    def test_print_result_json(self, capsys):
        self.cli_handler.print_result(AggregateResult(ok=True, submitted_ids=[1], total_processed=1), as_json=True)
        data = json.loads(capsys.readouterr().out)
        assert data["submittedIds"] == [1]
        assert data["successCount"] == 1


class TestMainFunction:

    def test_quarters_json(self, capsys):
        assert cli.main(['quarters', '--json']) == 0
        quarters = json.loads(capsys.readouterr().out)
        assert [q["id"] for q in quarters] == ["Q4-2025", "Q1-2026"]

    def test_submit_with_mock_backend(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv("SMARTSHEET_EMAIL", "user@example.com")
        monkeypatch.setenv("SMARTSHEET_PASSWORD", "pw")
        csv_file = tmp_path / "entries.csv"
        csv_file.write_text(
            "id,date,project,task_description,hours,status\n"
            "1,10/15/2025,A,Review,8,Pending\n"
            "2,10/16/2025,A,Review,30,Pending\n",
            encoding="utf-8",
        )

        code = cli.main(['submit', '--csv', str(csv_file), '--backend', 'mock', '--json'])

        assert code == 1
        data = json.loads(capsys.readouterr().out)
        assert data["submittedIds"] == [1]
        assert data["removedIds"] == [2]
        statuses = list(pd.read_csv(csv_file, dtype=str)["status"])
        assert statuses == ["Submitted", "Pending"]

    def test_submit_without_credentials(self, tmp_path, capsys, monkeypatch):
        monkeypatch.delenv("SMARTSHEET_EMAIL", raising=False)
        monkeypatch.delenv("SMARTSHEET_PASSWORD", raising=False)
        csv_file = tmp_path / "entries.csv"
        csv_file.write_text("date,project,task_description,hours\n10/15/2025,A,Review,8\n", encoding="utf-8")

        assert cli.main(['submit', '--csv', str(csv_file), '--backend', 'mock', '--json']) == 1
        assert "credentials not found" in json.loads(capsys.readouterr().out)["error"]
