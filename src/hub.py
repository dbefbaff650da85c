"""
Top-level facade wiring configuration, connections, fan-out and health checks.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from clients import RancherClient
from config import HubConfig, ServerConfig
from errors import ConfigError, NotConnectedError, NotFoundError
from fanout import FanOutExecutor
from fleet import FleetManager
from health import HealthMonitor
from models import ServerConnection
from registry import ClientFactory, ConnectionRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RancherHub:
    """Uniform access to a fleet of Rancher servers."""

    def __init__(self, config: HubConfig, client_factory: ClientFactory = RancherClient):
        """
        Args:
            config: Loaded hub configuration
            client_factory: Builds a client for each server config
        """
        self.config = config
        self.registry = ConnectionRegistry(
            default_server=config.default_server, client_factory=client_factory
        )
        self.executor = FanOutExecutor(self.registry, max_workers=config.max_concurrency)
        self.health = HealthMonitor(self.registry, max_workers=config.max_concurrency)

    def __enter__(self) -> "RancherHub":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def initialize(self) -> List[str]:
        """
        Validate configuration and connect to every configured server.

        Returns:
            Names of the servers that connected

        Raises:
            ConfigError: If the configuration is invalid
        """
        logger.info("Initializing Rancher hub")
        errors = self.config.validate()
        if errors:
            raise ConfigError(f"Configuration errors: {', '.join(errors)}")

        connected = self.registry.connect_all(self.config.all_servers())
        logger.info(
            f"Rancher hub initialized. Connected servers: {len(connected)}/{len(self.config.servers)}"
        )
        return connected

    def connect(self, server: ServerConfig) -> ServerConnection:
        return self.registry.connect(server)

    def connect_server(self, name: str) -> ServerConnection:
        """Connect a server by its configured name."""
        server = self.config.get_server(name)
        if server is None:
            raise NotFoundError(name, f"Server {name} is not configured")
        return self.registry.connect(server)

    def disconnect(self, name: str) -> None:
        self.registry.disconnect(name)

    def restart_connection(self, name: str) -> ServerConnection:
        """Drop and re-establish a connection from its configured settings."""
        connection = self.registry.get(name)
        server = connection.config if connection else self.config.get_server(name)
        if server is None:
            raise NotFoundError(name, f"Server {name} is not configured")
        if connection is not None:
            try:
                self.registry.disconnect(name)
            except Exception as e:
                logger.warning(f"Error disconnecting {name} before reconnect: {e}")
        return self.registry.connect(server)

    def get(self, name: Optional[str] = None) -> Optional[ServerConnection]:
        return self.registry.get(name)

    def set_default_server(self, name: str) -> None:
        self.config.default_server = name
        self.registry.set_default(name)

    def connected_servers(self) -> List[str]:
        return self.registry.list_connected_names()

    def execute_on_server(self, name: str, operation: Callable[[RancherClient], T]) -> T:
        return self.executor.execute_on_server(name, operation)

    def execute_on_all_servers(
        self, operation: Callable[[RancherClient, str], T]
    ) -> Dict[str, T]:
        return self.executor.execute_on_all_servers(operation)

    def ping_server(self, name: str) -> bool:
        return self.health.ping_server(name)

    def ping_all_servers(self) -> Dict[str, bool]:
        return self.health.ping_all_servers()

    def server_status(self, name: Optional[str] = None) -> Dict[str, Any]:
        return self.health.server_status(name)

    def fleet(self, name: Optional[str] = None, degrade_on_error: bool = True) -> FleetManager:
        """
        Fleet resource access on one server (the default server if omitted).

        Raises:
            NotConnectedError: If the server is absent or disconnected
        """
        connection = self.registry.get(name)
        if connection is None or not connection.is_connected:
            raise NotConnectedError(name or self.registry.default_server)
        return FleetManager(connection.client, degrade_on_error=degrade_on_error)

    def broadcast_fleet(self, operation: Callable[[FleetManager], T]) -> Dict[str, T]:
        """Run a Fleet operation on every connected server."""
        return self.executor.execute_on_all_servers(
            lambda client, _name: operation(FleetManager(client))
        )

    def close(self) -> None:
        self.registry.disconnect_all()
