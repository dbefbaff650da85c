"""
Run operations against one named Rancher server or broadcast them to all.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, TypeVar

from clients import RancherClient
from errors import NotConnectedError
from log_utils import log_operation_error
from registry import ConnectionRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FanOutExecutor:
    """Executes client operations through the connection registry."""

    def __init__(self, registry: ConnectionRegistry, max_workers: int = 10):
        """
        Args:
            registry: Registry to resolve server names against
            max_workers: Upper bound on concurrent broadcast requests
        """
        self.registry = registry
        self.max_workers = max(1, max_workers)

    def execute_on_server(self, name: str, operation: Callable[[RancherClient], T]) -> T:
        """
        Run operation(client) against one named server.

        Raises:
            NotConnectedError: If the server is not registered or is disconnected
            Exception: Whatever the operation raised, after logging it
        """
        connection = self.registry.get(name)
        if connection is None or not connection.is_connected:
            raise NotConnectedError(name)

        try:
            return operation(connection.client)
        except Exception as e:
            log_operation_error(logger, "executeOnServer", name, e)
            raise

    def execute_on_all_servers(
        self, operation: Callable[[RancherClient, str], T]
    ) -> Dict[str, T]:
        """
        Run operation(client, name) against every connected server concurrently.

        A server whose operation raises is logged and left out of the
        result; it never aborts the other servers.

        Returns:
            Mapping of server name to result for each server that succeeded
        """
        targets = [c for c in self.registry.list_all() if c.is_connected]
        results: Dict[str, T] = {}
        if not targets:
            return results

        workers = min(self.max_workers, len(targets))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(operation, c.client, c.name): c.name for c in targets
            }
            for future in as_completed(futures):
                name = futures[future]
                try:
                    results[name] = future.result()
                except Exception as e:
                    log_operation_error(logger, "executeOnAllServers", name, e)

        failed = len(targets) - len(results)
        if failed:
            logger.warning(
                f"Broadcast finished with {failed} of {len(targets)} server(s) failing"
            )
        return results
