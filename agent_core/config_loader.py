"""
Configuration Loader

Loads agent configuration from YAML file with environment variable substitution.
Process-level settings (config path, logging, session backend) come from the
environment via pydantic-settings.
"""

import os
import re
from typing import Any, Literal, Optional
from pathlib import Path

import yaml
import structlog
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)


def _substitute_env_vars(value: Any) -> Any:
    """
    Recursively substitute environment variables in configuration.

    Supports format: ${VAR_NAME:-default_value}
    """
    if isinstance(value, str):
        # Pattern: ${VAR:-default} or ${VAR}
        pattern = r"\$\{([^}:]+)(?::-([^}]*))?\}"

        def replace(match):
            var_name = match.group(1)
            default = match.group(2) if match.group(2) is not None else ""
            return os.getenv(var_name, default)

        return re.sub(pattern, replace, value)

    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]

    return value


class Settings(BaseSettings):
    """Process settings read from the environment (and .env)"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    config_path: str = "config.yaml"
    log_format: str = "json"
    log_level: str = "INFO"
    session_backend: Optional[Literal["memory", "redis"]] = None


class AgentConfig(BaseModel):
    """Agent identification configuration"""
    name: str = "connector_orchestrator"
    type: str = "orchestrator"
    version: str = "1.0.0"
    description: str = "Multi-agent orchestrator for the Sentinel AWS connector setup"


class ServerConfig(BaseModel):
    """HTTP server configuration"""
    host: str = "0.0.0.0"
    port: int = 8080
    capabilities: list[str] = Field(default_factory=lambda: ["submit_message"])


class WorkflowConfig(BaseModel):
    """Conversation loop configuration"""
    mode: Literal["group_chat", "delegation"] = "group_chat"
    lead_agent: Optional[str] = None
    invoker: Literal["llm", "a2a"] = "llm"
    max_iterations: int = Field(default=20, ge=1)
    deadline_seconds: float = Field(default=30.0, gt=0)
    fallback_window: int = 5
    history_window: int = 10
    phase_window: int = 5
    recovery_threshold: int = 5
    stop_recovery_threshold: int = 3
    specialist_error_cap: int = 3
    stuck_window: int = 10
    stuck_repeat: int = 3
    busy_policy: Literal["reject", "queue"] = "reject"


class RosterEntry(BaseModel):
    """One roster agent as written in config.yaml"""
    id: str
    display_name: str
    role: Literal["coordinator", "specialist", "synthesizer"] = "specialist"
    priority: int = 10
    capabilities: list[str] = Field(default_factory=list)
    url: Optional[str] = None
    instructions: Optional[str] = None


class LLMSettings(BaseModel):
    """LLM configuration"""
    provider: Literal["bedrock", "openai", "anthropic"] = "bedrock"
    model: str = "anthropic.claude-3-sonnet-20240229-v1:0"
    temperature: float = 0.0
    max_tokens: int = 4096
    aws_region: Optional[str] = None


class A2AClientConfig(BaseModel):
    """Outbound A2A call configuration"""
    timeout_seconds: float = 30.0
    max_retries: int = 3


class RedisConfig(BaseModel):
    """Redis configuration"""
    url: str = "redis://redis:6379"
    key_prefix: str = "connector_orchestrator:session:"
    ttl_seconds: int = 86400


class SessionConfig(BaseModel):
    """Session persistence configuration"""
    backend: Literal["memory", "redis"] = "memory"


class ObservabilityConfig(BaseModel):
    """Observability configuration"""
    log_level: str = "INFO"
    log_format: str = "json"


class Config(BaseModel):
    """Complete agent configuration"""
    agent: AgentConfig = Field(default_factory=AgentConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    roster: list[RosterEntry] = Field(default_factory=list)
    lexicons: dict[str, list[str]] = Field(default_factory=dict)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    a2a: A2AClientConfig = Field(default_factory=A2AClientConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    sessions: SessionConfig = Field(default_factory=SessionConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses CONFIG_PATH (default config.yaml).

    Returns:
        Parsed Config object
    """
    settings = Settings()
    if config_path is None:
        config_path = settings.config_path

    path = Path(config_path)
    if not path.exists():
        logger.warning(
            "Config file not found, using defaults",
            path=str(path),
        )
        config = Config()
    else:
        logger.info("Loading configuration", path=str(path))

        with open(path, "r") as f:
            raw_config = yaml.safe_load(f) or {}

        # Substitute environment variables
        config_data = _substitute_env_vars(raw_config)

        # Parse into Config model
        config = Config(**config_data)

    if settings.session_backend:
        config.sessions.backend = settings.session_backend

    logger.info(
        "Configuration loaded",
        agent_name=config.agent.name,
        agent_version=config.agent.version,
        roster_size=len(config.roster),
        session_backend=config.sessions.backend,
    )

    return config


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get global configuration (loads on first call)"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Config) -> None:
    """Set global configuration (for testing)"""
    global _config
    _config = config
