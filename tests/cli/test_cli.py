"""Tests for the ``apiwatch`` CLI commands."""

from __future__ import annotations

import re
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from apiwatch import signing
from apiwatch.cli import app
from apiwatch.core.errors import SigningKeyError
from apiwatch.execution.collector import FailureRecord
from apiwatch.execution.orchestrator import RunReport
from apiwatch.models import CapturedResponse
from tests._support.fakes import chain_id, descriptor_record

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("apiwatch ")

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "run" in result.output
        assert "check" in result.output


class TestKeygen:
    def test_prints_matching_pair(self):
        result = runner.invoke(app, ["keygen"])
        assert result.exit_code == 0
        secret = re.search(r"secret_key\s+([0-9a-f]{128})", result.output).group(1)
        public = re.search(r"public_key\s+([0-9a-f]{64})", result.output).group(1)
        assert signing.public_key(secret).hex() == public

    def test_json(self):
        result = runner.invoke(app, ["keygen", "--json"])
        assert result.exit_code == 0
        assert '"secret_key"' in result.output
        assert '"public_key"' in result.output


class TestCheck:
    def test_valid(self, write_source, secret_key):
        path = write_source(
            descriptor_record(chain=chain_id(1), key=secret_key),
            descriptor_record(chain=chain_id(2), key=secret_key),
        )
        result = runner.invoke(app, ["check", str(path)])
        assert result.exit_code == 0
        assert "2 job(s) ok" in result.output
        assert secret_key not in result.output

    def test_invalid_key(self, write_source, secret_key):
        path = write_source(
            descriptor_record(chain=chain_id(1), key=secret_key),
            descriptor_record(chain=chain_id(2), key="abcd"),
        )
        result = runner.invoke(app, ["check", str(path)])
        assert result.exit_code == 1
        assert "1 of 2 job(s) invalid" in result.output

    def test_invalid_chain_id(self, write_source, secret_key):
        path = write_source(descriptor_record(chain="nope", key=secret_key))
        result = runner.invoke(app, ["check", str(path)])
        assert result.exit_code == 1

    def test_malformed(self, write_source, secret_key):
        path = write_source(descriptor_record(chain=chain_id(1), key=secret_key), "{broken")
        result = runner.invoke(app, ["check", str(path)])
        assert result.exit_code == 1
        assert "record 1" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["check", str(tmp_path / "absent.json")])
        assert result.exit_code == 1
        assert "cannot open job source" in result.output


@patch("apiwatch.cli.run.configure_logging")
class TestRun:
    @patch("apiwatch.cli.run.Orchestrator")
    def test_success(self, mock_cls, _logging, tmp_path):
        mock_cls.return_value.run = AsyncMock(return_value=RunReport(launched=2, succeeded=2))

        result = runner.invoke(app, ["run", str(tmp_path / "conf.json")])

        assert result.exit_code == 0
        assert "2 job(s) launched" in result.output
        settings = mock_cls.call_args.args[0]
        assert settings.settle_delay_seconds == 10.0
        assert settings.dry_run is False

    @patch("apiwatch.cli.run.Orchestrator")
    def test_flags_override_settings(self, mock_cls, _logging, tmp_path):
        mock_cls.return_value.run = AsyncMock(return_value=RunReport())

        result = runner.invoke(app, [
            "run", str(tmp_path / "conf.json"),
            "--settle-delay", "0",
            "--max-concurrency", "4",
            "--dry-run",
            "--strict-keys",
            "--log-level", "DEBUG",
        ])

        assert result.exit_code == 0
        settings = mock_cls.call_args.args[0]
        assert settings.settle_delay_seconds == 0.0
        assert settings.max_concurrency == 4
        assert settings.dry_run is True
        assert settings.strict_keys is True
        _logging.assert_called_once_with("DEBUG", json_format=settings.json_logs)

    @patch("apiwatch.cli.run.Orchestrator")
    def test_failures_listed(self, mock_cls, _logging, tmp_path):
        report = RunReport(
            launched=2,
            succeeded=1,
            failed=1,
            failures=[FailureRecord(error=SigningKeyError("bad key"), job="https://x", failed_in="signing")],
        )
        mock_cls.return_value.run = AsyncMock(return_value=report)

        result = runner.invoke(app, ["run", str(tmp_path / "conf.json")])

        assert result.exit_code == 0
        assert "1 failed" in result.output
        assert "SigningKeyError" in result.output

    @patch("apiwatch.cli.run.Orchestrator")
    def test_strict_keys_exit(self, mock_cls, _logging, tmp_path):
        report = RunReport(
            strict_keys=True,
            failures=[FailureRecord(error=SigningKeyError("bad key"), job="https://x")],
        )
        mock_cls.return_value.run = AsyncMock(return_value=report)

        result = runner.invoke(app, ["run", str(tmp_path / "conf.json"), "--strict-keys"])
        assert result.exit_code == 1

    def test_missing_config_exits_1(self, _logging, tmp_path):
        result = runner.invoke(app, ["run", str(tmp_path / "absent.json")])
        assert result.exit_code == 1
        assert "cannot open job source" in result.output

    def test_rejects_zero_concurrency(self, _logging, tmp_path):
        result = runner.invoke(app, ["run", str(tmp_path / "conf.json"), "--max-concurrency", "0"])
        assert result.exit_code != 0

    @patch("apiwatch.cli.run.Orchestrator")
    def test_unknown_log_level_exits_1(self, mock_cls, _logging, tmp_path):
        result = runner.invoke(app, ["run", str(tmp_path / "conf.json"), "--log-level", "verbose"])

        assert result.exit_code == 1
        assert "invalid setting log_level" in result.output
        mock_cls.assert_not_called()
        _logging.assert_not_called()

    @patch("apiwatch.execution.orchestrator.HttpFetcher")
    def test_dry_run_end_to_end(self, mock_fetcher, _logging, write_source, secret_key):
        mock_fetcher.return_value = AsyncMock(return_value=CapturedResponse(b'{"ok": true}', 200))
        path = write_source(
            descriptor_record(url="https://api.example.com/0", chain=chain_id(0), key=secret_key),
            descriptor_record(url="https://api.example.com/1", chain=chain_id(1), key="00"),
        )

        result = runner.invoke(app, ["run", str(path), "--dry-run", "--settle-delay", "0"])

        assert result.exit_code == 0
        assert "1 succeeded, 1 failed" in result.output
        assert mock_fetcher.return_value.await_count == 2
