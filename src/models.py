"""
Data models for the Rancher Fleet Hub.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from config import ServerConfig


@dataclass
class ServerConnection:
    """A named, stateful link to one Rancher server."""

    name: str
    config: ServerConfig
    client: Any  # clients.RancherClient
    is_connected: bool = False
    last_ping: Optional[datetime] = None


@dataclass
class FleetTarget:
    """Rollout state of a bundle or git repo on one downstream cluster."""

    cluster_id: Optional[str] = None
    cluster_name: Optional[str] = None
    state: Optional[str] = None
    message: Optional[str] = None


@dataclass
class FleetResource:
    """A Kubernetes object deployed by a bundle."""

    api_version: Optional[str] = None
    kind: Optional[str] = None
    name: Optional[str] = None
    namespace: Optional[str] = None
    state: Optional[str] = None


@dataclass
class FleetBundle:
    """Normalized Fleet bundle."""

    id: Optional[str]
    name: Optional[str] = None
    namespace: Optional[str] = None
    cluster_id: Optional[str] = None
    state: str = "unknown"  # upstream value, not constrained locally
    targets: List[FleetTarget] = field(default_factory=list)
    resources: List[FleetResource] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class FleetGitRepo:
    """Normalized Fleet git repository (deployment source)."""

    id: Optional[str]
    name: Optional[str] = None
    namespace: Optional[str] = None
    repo: Optional[str] = None
    branch: Optional[str] = None
    paths: List[str] = field(default_factory=list)
    targets: List[FleetTarget] = field(default_factory=list)
    state: str = "unknown"
    last_commit: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class FleetCluster:
    """Normalized Fleet-managed downstream cluster."""

    id: Optional[str]
    name: Optional[str] = None
    namespace: Optional[str] = None
    state: str = "unknown"
    labels: Dict[str, str] = field(default_factory=dict)
    fleet_workspace: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class FleetWorkspace:
    """Normalized Fleet workspace."""

    id: Optional[str]
    name: Optional[str] = None
    namespace: Optional[str] = None
    state: str = "unknown"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
