"""Tests for the replyagent command line."""

import json
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from src.cli.main import app
from src.orchestrator.models import ReplyResult, ReplyStatus

runner = CliRunner()


class StubOrchestrator:
    def __init__(self, result: ReplyResult) -> None:
        self.result = result
        self.events = []

    async def handle(self, event):
        self.events.append(event)
        return self.result


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("REPLYAGENT_CONFIG_PATH", raising=False)
    path = tmp_path / "replyagent.yaml"
    path.write_text(yaml.dump({
        "database": {"url": f"sqlite:///{tmp_path / 'cli.db'}"},
        "completion": {"api_key": "sk-ant-secret-1234"},
    }))
    return str(path)


def _patched(result: ReplyResult):
    stub = StubOrchestrator(result)
    return stub, patch("src.cli.factory.build_orchestrator", return_value=stub)


class TestReplyCommand:

    def test_json_output(self, config_file):
        stub, patcher = _patched(ReplyResult(
            success=True, status=ReplyStatus.SENT, message="Olá!", sent=True,
        ))
        with patcher:
            result = runner.invoke(app, [
                "--config", config_file, "reply",
                "--text", "pedido 123456", "--sender", "11 98765-4321",
                "--contact-type", "carrier", "--json",
            ])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["status"] == "sent"
        [event] = stub.events
        assert event.conversation_id == "11 98765-4321"
        assert event.contact_type == "carrier"

    def test_failure_exits_nonzero(self, config_file):
        _, patcher = _patched(ReplyResult(
            success=False, status=ReplyStatus.ERROR, reason="configuration_error",
            error_code="E-1001",
        ))
        with patcher:
            result = runner.invoke(app, [
                "--config", config_file, "reply", "--text", "oi", "--sender", "5511987654321",
            ])

        assert result.exit_code == 1
        assert "E-1001" in result.output

    def test_invalid_contact_type(self, config_file):
        _, patcher = _patched(ReplyResult(success=True, status=ReplyStatus.SKIPPED))
        with patcher:
            result = runner.invoke(app, [
                "--config", config_file, "reply", "--text", "oi",
                "--sender", "5511987654321", "--contact-type", "robot",
            ])
        assert result.exit_code == 2


class TestOtherCommands:

    def test_config_show_masks_secrets(self, config_file):
        result = runner.invoke(app, ["--config", config_file, "config", "show"])
        assert result.exit_code == 0
        assert "sk-ant-secret-1234" not in result.output
        assert "****1234" in result.output

    def test_missing_config_file(self, tmp_path):
        result = runner.invoke(app, ["--config", str(tmp_path / "nope.yaml"), "config", "show"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_init_db(self, config_file, tmp_path):
        result = runner.invoke(app, ["--config", config_file, "init-db"])
        assert result.exit_code == 0
        assert (tmp_path / "cli.db").exists()

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "ReplyAgent" in result.output
