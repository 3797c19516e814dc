"""
Connector Orchestrator Main Entry Point

Serves the orchestrator over HTTP: python -m agents.connector_orchestrator.main
"""

import os

from agent_core.main import run_agent

from .service import ConnectorOrchestrator, ERROR_STATUS


def main():
    """Run the Connector Orchestrator"""
    config_path = os.getenv(
        "CONFIG_PATH",
        os.path.join(os.path.dirname(__file__), "config.yaml"),
    )
    run_agent(ConnectorOrchestrator.from_config, config_path, ERROR_STATUS)


if __name__ == "__main__":
    main()
