"""
Tests for configuration loading
"""

import pytest

from .. import config_loader
from ..config_loader import Config, _substitute_env_vars, get_config, load_config, set_config


ROSTER_YAML = """
agent:
  name: ${AGENT_NAME:-connector_orchestrator}
workflow:
  max_iterations: 12
  busy_policy: queue
roster:
  - id: coordinator
    display_name: Coordinator
    role: coordinator
    priority: 1
  - id: aws
    display_name: AWS Specialist
    capabilities: [aws]
    url: ${AWS_AGENT_URL}
"""


@pytest.fixture(autouse=True)
def reset_global_config():
    yield
    config_loader._config = None


class TestSubstituteEnvVars:
    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("MISSING_VAR", raising=False)
        assert _substitute_env_vars("${MISSING_VAR:-fallback}") == "fallback"

    def test_env_value_wins(self, monkeypatch):
        monkeypatch.setenv("REGION", "eu-west-1")
        assert _substitute_env_vars({"r": ["${REGION:-us-east-1}"]}) == {"r": ["eu-west-1"]}

    def test_unset_without_default_is_empty(self, monkeypatch):
        monkeypatch.delenv("MISSING_VAR", raising=False)
        assert _substitute_env_vars("x${MISSING_VAR}y") == "xy"

    def test_non_strings_untouched(self):
        assert _substitute_env_vars(5) == 5


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SESSION_BACKEND", raising=False)

        config = load_config(str(tmp_path / "absent.yaml"))

        assert config.workflow.max_iterations == 20
        assert config.workflow.mode == "group_chat"
        assert config.sessions.backend == "memory"
        assert config.roster == []

    def test_yaml_roster(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AWS_AGENT_URL", "http://aws:8080")
        monkeypatch.delenv("AGENT_NAME", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(ROSTER_YAML)

        config = load_config(str(path))

        assert config.agent.name == "connector_orchestrator"
        assert config.workflow.max_iterations == 12
        assert config.workflow.busy_policy == "queue"
        assert [e.id for e in config.roster] == ["coordinator", "aws"]
        assert config.roster[1].url == "http://aws:8080"

    def test_session_backend_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SESSION_BACKEND", "redis")

        config = load_config(str(tmp_path / "absent.yaml"))

        assert config.sessions.backend == "redis"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(str(path)).agent.version == "1.0.0"


class TestGlobalConfig:
    def test_set_and_get(self):
        config = Config()
        set_config(config)
        assert get_config() is config
