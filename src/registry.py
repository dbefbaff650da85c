"""
In-memory registry of named Rancher server connections.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from clients import RancherClient
from config import ServerConfig
from errors import NotFoundError
from log_utils import log_operation, log_operation_error
from models import ServerConnection

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ServerConfig], RancherClient]


class ConnectionRegistry:
    """Keyed table of ServerConnection records, one per server name.

    Only ``connect``, ``disconnect`` and ``update_health`` mutate the table.
    All access goes through one lock, and list operations return snapshots.
    """

    def __init__(
        self,
        default_server: str = "default",
        client_factory: ClientFactory = RancherClient,
    ):
        """
        Initialize an empty registry.

        Args:
            default_server: Name used by get() when no name is given
            client_factory: Builds a client for a server config
        """
        self.default_server = default_server
        self._client_factory = client_factory
        self._connections: Dict[str, ServerConnection] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._connections

    def connect(self, config: ServerConfig) -> ServerConnection:
        """
        Connect to a server and register it under config.name.

        Any previous entry for the name is replaced only after the new
        client initializes successfully.

        Raises:
            Exception: Whatever the client's initialize() raised
        """
        logger.info(f"Connecting to server: {config.name}")
        try:
            client = self._client_factory(config)
            client.initialize()
        except Exception as e:
            log_operation_error(logger, "connect", config.name, e)
            raise

        connection = ServerConnection(
            name=config.name,
            config=config,
            client=client,
            is_connected=True,
            last_ping=datetime.now(timezone.utc),
        )
        with self._lock:
            previous = self._connections.get(config.name)
            self._connections[config.name] = connection

        if previous is not None and previous.client is not client:
            try:
                previous.client.disconnect()
            except Exception as e:
                logger.warning(f"Error closing replaced client for {config.name}: {e}")

        log_operation(logger, "connect", config.name, url=config.url, status="connected")
        return connection

    def connect_all(self, configs: Iterable[ServerConfig]) -> List[str]:
        """Connect every configured server, skipping the ones that fail."""
        connected: List[str] = []
        for config in configs:
            try:
                self.connect(config)
                connected.append(config.name)
            except Exception as e:
                logger.error(f"Error connecting to server {config.name}: {e}")
        return connected

    def disconnect(self, name: str) -> None:
        """
        Disconnect a server and remove it from the registry.

        Raises:
            NotFoundError: If no connection is registered under name
            Exception: Whatever the client's disconnect() raised; the entry
                is kept so the caller can retry
        """
        with self._lock:
            connection = self._connections.get(name)
        if connection is None:
            raise NotFoundError(name)

        try:
            connection.client.disconnect()
        except Exception as e:
            log_operation_error(logger, "disconnect", name, e)
            raise

        with self._lock:
            if self._connections.get(name) is connection:
                del self._connections[name]
            connection.is_connected = False
        log_operation(logger, "disconnect", name)

    def disconnect_all(self) -> None:
        """Disconnect every server, logging failures, and clear the table."""
        logger.info("Disconnecting all Rancher servers")
        for connection in self.list_all():
            try:
                self.disconnect(connection.name)
            except Exception as e:
                logger.error(f"Error disconnecting from server {connection.name}: {e}")
        with self._lock:
            self._connections.clear()

    def get(self, name: Optional[str] = None) -> Optional[ServerConnection]:
        """Look up a connection by name, falling back to the default server."""
        with self._lock:
            return self._connections.get(name or self.default_server)

    def set_default(self, name: str) -> None:
        self.default_server = name
        logger.info(f"Server {name} set as default server")

    def list_all(self) -> List[ServerConnection]:
        with self._lock:
            return list(self._connections.values())

    def list_connected_names(self) -> List[str]:
        with self._lock:
            return [c.name for c in self._connections.values() if c.is_connected]

    def update_health(self, name: str, is_alive: bool) -> Optional[ServerConnection]:
        """Record a liveness result; returns None if the entry is gone."""
        with self._lock:
            connection = self._connections.get(name)
            if connection is None:
                return None
            connection.is_connected = is_alive
            connection.last_ping = datetime.now(timezone.utc)
            return connection
