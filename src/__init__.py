"""
Rancher Fleet Hub: one interface over many Rancher management servers.
"""

from clients import RancherClient
from config import HubConfig, ServerConfig, load_config
from errors import (
    AuthenticationError,
    ConfigError,
    HubError,
    NotConnectedError,
    NotFoundError,
    UpstreamError,
)
from fanout import FanOutExecutor
from fleet import FleetManager
from health import HealthMonitor
from hub import RancherHub
from log_utils import setup_logging
from models import (
    FleetBundle,
    FleetCluster,
    FleetGitRepo,
    FleetWorkspace,
    ServerConnection,
)
from registry import ConnectionRegistry

__all__ = [
    "RancherClient",
    "HubConfig",
    "ServerConfig",
    "load_config",
    "HubError",
    "ConfigError",
    "NotFoundError",
    "NotConnectedError",
    "UpstreamError",
    "AuthenticationError",
    "ConnectionRegistry",
    "FanOutExecutor",
    "HealthMonitor",
    "FleetManager",
    "RancherHub",
    "setup_logging",
    "ServerConnection",
    "FleetBundle",
    "FleetGitRepo",
    "FleetCluster",
    "FleetWorkspace",
]
