"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. --config <path> CLI flag
2. ./replyagent.yaml or ./replyagent.yml (working directory)
3. ~/.replyagent/config.yaml (user home)

When no file exists, defaults are built from the environment so the
service can run from environment variables alone.

Environment variables override YAML: REPLYAGENT_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.errors import ConfigurationError

logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

CONFIG_PATH_ENV = "REPLYAGENT_CONFIG_PATH"

DEFAULT_MODEL = "claude-haiku-4-5"

DEFAULT_HANDOFF_ACKNOWLEDGMENT = (
    "Entendi! Vou transferir seu atendimento para um de nossos atendentes. "
    "Em instantes alguém da equipe vai falar com você por aqui. 🙏"
)


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Missing env vars resolve to empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def _default_database_url() -> str:
    from src.db.connection import get_database_url
    return get_database_url()


class DatabaseConfig(BaseModel):
    """Relational store connection."""

    url: str = Field(default_factory=_default_database_url)


class CompletionConfig(BaseModel):
    """Completion provider (Anthropic Messages API) settings.

    Persona values (model, response time) take precedence over these
    defaults at call time.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    api_key: str = Field(default_factory=lambda: _env("ANTHROPIC_API_KEY"))
    default_model: str = Field(
        default_factory=lambda: _env("ANTHROPIC_MODEL", DEFAULT_MODEL)
    )
    max_tokens: int = 300
    temperature: float = 0.7
    timeout_seconds: float = 30.0


class GatewayConfig(BaseModel):
    """Messaging gateway (WhatsApp HTTP API) settings."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    base_url: str = Field(default_factory=lambda: _env("GATEWAY_API_URL"))
    token: str = Field(default_factory=lambda: _env("GATEWAY_API_TOKEN"))
    send_path: str = "/rest/sendMessage/{instance}/text"
    attempt_timeout_seconds: float = 10.0
    default_country_code: str = "55"


class PipelineConfig(BaseModel):
    """Reply pipeline tuning knobs."""

    history_limit: int = 20
    knowledge_candidate_limit: int = 10
    knowledge_top_k: int = 3
    knowledge_snippet_chars: int = 600
    handoff_acknowledgment: str = DEFAULT_HANDOFF_ACKNOWLEDGMENT
    channel: str = "whatsapp"


class ServerConfig(BaseModel):
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"


class ReplyAgentConfig(BaseModel):
    """Top-level configuration for the ReplyAgent service."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    completion: CompletionConfig = Field(default_factory=CompletionConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


def _find_config_file() -> Path | None:
    """Search for config file in standard locations."""
    candidates = [
        Path.cwd() / "replyagent.yaml",
        Path.cwd() / "replyagent.yml",
        Path.home() / ".replyagent" / "config.yaml",
        Path.home() / ".replyagent" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply REPLYAGENT_<SECTION>_<KEY> env var overrides to config data.

    Matches section names by longest prefix. For example,
    ``REPLYAGENT_PIPELINE_HISTORY_LIMIT`` maps to section ``pipeline``,
    field ``history_limit``.

    Args:
        data: Parsed YAML config dict.

    Returns:
        Config dict with env var overrides applied.
    """
    prefix = "REPLYAGENT_"
    known_sections = sorted(
        ReplyAgentConfig.model_fields.keys(), key=len, reverse=True
    )
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        suffix = key[len(prefix):].lower()
        matched_section = None
        matched_field = None
        for section in known_sections:
            section_prefix = section + "_"
            if suffix.startswith(section_prefix):
                matched_section = section
                matched_field = suffix[len(section_prefix):]
                break
        if matched_section is None or not matched_field:
            continue
        if matched_section not in data or data[matched_section] is None:
            data[matched_section] = {}
        if isinstance(data[matched_section], dict):
            # Kept as text; pydantic coerces per field type
            data[matched_section][matched_field] = value
    return data


def load_config(config_path: str | None = None) -> ReplyAgentConfig:
    """Load ReplyAgent configuration from YAML file with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, uses
            REPLYAGENT_CONFIG_PATH, then searches standard locations
            (cwd, then ~/.replyagent/).

    Returns:
        Parsed and validated ReplyAgentConfig. Environment-derived
        defaults when no file is found.

    Raises:
        FileNotFoundError: If an explicit config_path does not exist.
        ConfigurationError: If the file is not valid YAML or fails validation.
    """
    config_path = config_path or os.environ.get(CONFIG_PATH_ENV, "").strip() or None
    if config_path:
        path: Path | None = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file()

    raw_data: Any = {}
    if path is not None:
        logger.info("Loading config from %s", path)
        try:
            with open(path) as f:
                raw_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError.from_code(
                "E-1002", path=str(path), reason=str(e)
            ) from e
        if not isinstance(raw_data, dict):
            raise ConfigurationError.from_code(
                "E-1002", path=str(path), reason="top level must be a mapping"
            )
    else:
        logger.debug("No config file found, using environment defaults")

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_env_overrides(data)

    try:
        return ReplyAgentConfig(**data)
    except ValidationError as e:
        raise ConfigurationError.from_code(
            "E-1002", path=str(path or "<environment>"), reason=str(e)
        ) from e
