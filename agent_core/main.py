"""
Agent Core Main Entry Point

Configures logging and runs a session service behind the HTTP server.
Agents pass a factory that builds their service from the loaded Config.
"""

import logging
from typing import Any, Callable, Optional

import structlog
import uvicorn
from dotenv import load_dotenv

from .config_loader import Config, Settings, load_config
from .api.server import SessionServer, SessionService

logger = structlog.get_logger(__name__)


def configure_logging(log_format: str = "json", log_level: str = "INFO") -> None:
    """
    Configure structured logging.

    Args:
        log_format: "json" for JSON lines, anything else for console output
        log_level: Minimum level passed through by the stdlib filter
    """
    logging.basicConfig(format="%(message)s", level=log_level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
            if log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AgentRunner:
    """
    Agent Runner

    Builds the service from configuration and serves it with uvicorn.
    """

    def __init__(
        self,
        service_factory: Callable[[Config], SessionService],
        config_path: Optional[str] = None,
        error_status: Optional[dict[type, int]] = None,
    ):
        """
        Initialize agent runner.

        Args:
            service_factory: Builds the session service from Config
            config_path: Path to config.yaml
            error_status: Exception type -> HTTP status code for the server
        """
        # Load environment variables
        load_dotenv()
        settings = Settings()
        configure_logging(settings.log_format, settings.log_level)

        self.config = load_config(config_path)
        self.service_factory = service_factory
        self.error_status = error_status or {}

        self._service: Optional[SessionService] = None
        self._server: Optional[SessionServer] = None

    def initialize(self) -> SessionService:
        """Build the service"""
        logger.info(
            "Initializing agent",
            name=self.config.agent.name,
            version=self.config.agent.version,
        )
        self._service = self.service_factory(self.config)
        logger.info("Agent initialized successfully")
        return self._service

    def create_server(self) -> SessionServer:
        """Create session server"""
        if self._service is None:
            self.initialize()

        self._server = SessionServer(
            service=self._service,
            agent_name=self.config.agent.name,
            agent_version=self.config.agent.version,
            agent_description=self.config.agent.description,
            error_status=self.error_status,
            tags=[self.config.agent.type],
        )
        return self._server

    @property
    def app(self) -> Any:
        if self._server is None:
            self.create_server()
        return self._server.app

    def run(self) -> None:
        """Run the agent server"""
        server = self.create_server()

        logger.info(
            "Starting session server",
            host=self.config.server.host,
            port=self.config.server.port,
        )

        uvicorn.run(
            server.app,
            host=self.config.server.host,
            port=self.config.server.port,
            log_level=self.config.observability.log_level.lower(),
        )


def run_agent(
    service_factory: Callable[[Config], SessionService],
    config_path: Optional[str] = None,
    error_status: Optional[dict[type, int]] = None,
) -> None:
    """
    Convenience function to run an agent.

    Args:
        service_factory: Builds the session service from Config
        config_path: Path to configuration file
        error_status: Exception type -> HTTP status code
    """
    runner = AgentRunner(service_factory, config_path, error_status)
    runner.run()
