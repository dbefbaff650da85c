"""
Liveness probes for registered Rancher servers.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

from log_utils import log_operation_error
from registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class HealthMonitor:
    """Refreshes is_connected / last_ping on registry entries.

    A failed ping demotes a connection but never removes it, so a degraded
    server stays discoverable and can come back on a later successful ping.
    """

    def __init__(self, registry: ConnectionRegistry, max_workers: int = 10):
        self.registry = registry
        self.max_workers = max(1, max_workers)

    def ping_server(self, name: str) -> bool:
        """
        Probe one server and record the outcome.

        Args:
            name: Registered server name

        Returns:
            True if the server answered, False otherwise (including when
            the name is not registered)
        """
        connection = self.registry.get(name) if name else None
        if connection is None:
            return False

        try:
            is_alive = bool(connection.client.ping())
        except Exception as e:
            log_operation_error(logger, "ping", name, e)
            is_alive = False
        else:
            if not is_alive:
                logger.warning(f"Server {name} is not responding")

        self.registry.update_health(name, is_alive)
        return is_alive

    def ping_all_servers(self) -> Dict[str, bool]:
        """Ping every registered server, connected or not."""
        names = [c.name for c in self.registry.list_all()]
        if not names:
            return {}

        workers = min(self.max_workers, len(names))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = pool.map(self.ping_server, names)
            return dict(zip(names, outcomes))

    def server_status(self, name: Optional[str] = None) -> Dict[str, Any]:
        """
        Describe one server, or every registered server when name is omitted.

        Returns:
            For one server: a status dict (an "error" key if it is unknown).
            Otherwise: a mapping of server name to status dict.
        """
        if name is None:
            return {c.name: self.server_status(c.name) for c in self.registry.list_all()}

        connection = self.registry.get(name)
        if connection is None:
            return {"name": name, "error": f"Server {name} not found"}

        status: Dict[str, Any] = {
            "name": name,
            "url": connection.config.url,
            "is_connected": connection.is_connected,
            "last_ping": connection.last_ping.isoformat() if connection.last_ping else None,
        }
        try:
            status["status"] = connection.client.get_server_status()
        except Exception as e:
            status["is_connected"] = False
            status["error"] = str(e)
        return status
