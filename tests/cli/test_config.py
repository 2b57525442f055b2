"""Tests for configuration loading and validation."""

import pytest
import yaml

from src.cli.config import (
    CONFIG_PATH_ENV,
    DEFAULT_MODEL,
    CompletionConfig,
    GatewayConfig,
    PipelineConfig,
    ServerConfig,
    load_config,
    resolve_env_vars,
)
from src.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    """Keep config discovery away from the real working directory and home."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    for name in ("ANTHROPIC_API_KEY", "ANTHROPIC_MODEL", "GATEWAY_API_URL", "GATEWAY_API_TOKEN"):
        monkeypatch.delenv(name, raising=False)


class TestSectionDefaults:

    def test_server_defaults(self):
        cfg = ServerConfig()
        assert cfg.host == "127.0.0.1"
        assert cfg.port == 8000
        assert cfg.log_level == "info"

    def test_pipeline_defaults(self):
        cfg = PipelineConfig()
        assert cfg.history_limit == 20
        assert cfg.knowledge_candidate_limit == 10
        assert cfg.knowledge_top_k == 3
        assert cfg.channel == "whatsapp"
        assert cfg.handoff_acknowledgment

    def test_completion_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-env")
        cfg = CompletionConfig()
        assert cfg.api_key == "sk-env"
        assert cfg.default_model == DEFAULT_MODEL

    def test_gateway_reads_environment(self, monkeypatch):
        monkeypatch.setenv("GATEWAY_API_URL", "gw.example.com")
        monkeypatch.setenv("GATEWAY_API_TOKEN", "tok")
        cfg = GatewayConfig()
        assert cfg.base_url == "gw.example.com"
        assert cfg.token == "tok"
        assert "{instance}" in cfg.send_path


class TestResolveEnvVars:
    """Tests for ${VAR} resolution in config values."""

    def test_resolves_env_var(self, monkeypatch):
        monkeypatch.setenv("TEST_SECRET", "my-secret-key")
        assert resolve_env_vars("${TEST_SECRET}") == "my-secret-key"

    def test_passthrough_no_vars(self):
        assert resolve_env_vars("plain-value") == "plain-value"

    def test_missing_env_var_returns_empty(self):
        assert resolve_env_vars("${DEFINITELY_NOT_SET_XYZ}") == ""

    def test_mixed_content(self, monkeypatch):
        monkeypatch.setenv("MY_HOST", "localhost")
        assert resolve_env_vars("http://${MY_HOST}:8080") == "http://localhost:8080"


class TestLoadConfig:
    """Tests for YAML config file loading."""

    def test_load_from_explicit_path(self, tmp_path):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(yaml.dump({
            "server": {"port": 9000},
            "pipeline": {"history_limit": 5},
        }))

        cfg = load_config(config_path=str(config_file))
        assert cfg.server.port == 9000
        assert cfg.pipeline.history_limit == 5

    def test_discovers_file_in_working_directory(self, tmp_path):
        (tmp_path / "replyagent.yaml").write_text(yaml.dump({"server": {"port": 7000}}))
        assert load_config().server.port == 7000

    def test_path_from_environment(self, tmp_path, monkeypatch):
        config_file = tmp_path / "elsewhere.yml"
        config_file.write_text(yaml.dump({"server": {"port": 7100}}))
        monkeypatch.setenv(CONFIG_PATH_ENV, str(config_file))
        assert load_config().server.port == 7100

    def test_defaults_when_no_file(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-env")
        cfg = load_config()
        assert cfg.completion.api_key == "sk-env"
        assert cfg.gateway.base_url == ""

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(config_path=str(tmp_path / "nope.yaml"))

    def test_env_var_override(self, tmp_path, monkeypatch):
        config_file = tmp_path / "replyagent.yaml"
        config_file.write_text(yaml.dump({"pipeline": {"history_limit": 20}}))
        monkeypatch.setenv("REPLYAGENT_PIPELINE_HISTORY_LIMIT", "7")
        monkeypatch.setenv("REPLYAGENT_GATEWAY_BASE_URL", "https://gw.override")

        cfg = load_config(config_path=str(config_file))
        assert cfg.pipeline.history_limit == 7
        assert cfg.gateway.base_url == "https://gw.override"

    def test_numeric_env_overrides_keep_string_fields(self, monkeypatch):
        monkeypatch.setenv("REPLYAGENT_GATEWAY_TOKEN", "839201774")
        monkeypatch.setenv("REPLYAGENT_GATEWAY_DEFAULT_COUNTRY_CODE", "351")
        monkeypatch.setenv("REPLYAGENT_COMPLETION_TEMPERATURE", "0.2")
        monkeypatch.setenv("REPLYAGENT_SERVER_PORT", "9100")

        cfg = load_config()
        assert cfg.gateway.token == "839201774"
        assert cfg.gateway.default_country_code == "351"
        assert cfg.completion.temperature == 0.2
        assert cfg.server.port == 9100

    def test_numeric_yaml_token_is_text(self, tmp_path):
        config_file = tmp_path / "replyagent.yaml"
        config_file.write_text("gateway:\n  token: 839201774\n  default_country_code: 351\n")

        cfg = load_config(config_path=str(config_file))
        assert cfg.gateway.token == "839201774"
        assert cfg.gateway.default_country_code == "351"

    def test_dollar_var_resolution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MY_GATEWAY_TOKEN", "resolved-token")
        config_file = tmp_path / "replyagent.yaml"
        config_file.write_text(yaml.dump({"gateway": {"token": "${MY_GATEWAY_TOKEN}"}}))

        assert load_config(config_path=str(config_file)).gateway.token == "resolved-token"

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "replyagent.yaml"
        config_file.write_text("server: [unclosed")
        with pytest.raises(ConfigurationError) as exc:
            load_config(config_path=str(config_file))
        assert exc.value.code == "E-1002"

    def test_non_mapping_top_level(self, tmp_path):
        config_file = tmp_path / "replyagent.yaml"
        config_file.write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            load_config(config_path=str(config_file))

    def test_validation_error(self, tmp_path):
        config_file = tmp_path / "replyagent.yaml"
        config_file.write_text(yaml.dump({"server": {"port": "not-a-port"}}))
        with pytest.raises(ConfigurationError) as exc:
            load_config(config_path=str(config_file))
        assert exc.value.code == "E-1002"
