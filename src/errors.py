"""
Exception types for the Rancher Fleet Hub.
"""

from typing import Optional


class HubError(Exception):
    """Base class for all hub errors."""


class ConfigError(HubError):
    """Raised when the hub configuration is invalid."""


class NotFoundError(HubError):
    """Raised when an explicitly named server is not registered."""

    def __init__(self, server_name: str, message: Optional[str] = None):
        self.server_name = server_name
        super().__init__(message or f"Connection to server {server_name} not found")


class NotConnectedError(HubError):
    """Raised when a single-target operation names an absent or disconnected server."""

    def __init__(self, server_name: str):
        self.server_name = server_name
        super().__init__(f"Server {server_name} is not connected")


class UpstreamError(HubError):
    """Raised when a request to a Rancher server fails."""

    def __init__(
        self,
        message: str,
        server_name: str = "",
        status_code: Optional[int] = None,
        method: str = "",
        path: str = "",
    ):
        self.server_name = server_name
        self.status_code = status_code
        self.method = method
        self.path = path
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class AuthenticationError(UpstreamError):
    """Raised when the username/password login exchange fails."""
