"""
Fleet resource access and normalization for one Rancher server.

Upstream Fleet payloads are Kubernetes-style objects whose ``metadata``,
``spec`` and ``status`` sections may be partially or entirely missing.
The ``map_*`` functions turn them into stable records without ever failing
on partial data, and FleetManager degrades request failures to empty
results so callers aggregating many resources need no per-call handling.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from clients import RancherClient
from log_utils import log_operation_error
from models import (
    FleetBundle,
    FleetCluster,
    FleetGitRepo,
    FleetResource,
    FleetTarget,
    FleetWorkspace,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_NAMESPACE = "fleet-default"
DEFAULT_BRANCH = "main"
TIMESTAMP_ANNOTATION = "cattle.io/timestamp"

BUNDLE_TYPE = "fleet.cattle.io.bundle"
GITREPO_TYPE = "fleet.cattle.io.gitrepo"


def _section(raw: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _require(raw: Optional[Dict[str, Any]], kind: str) -> Dict[str, Any]:
    if raw is None:
        raise ValueError(f"Cannot map empty {kind} payload")
    if not isinstance(raw, dict):
        raise ValueError(f"Cannot map {kind} payload of type {type(raw).__name__}")
    return raw


def _common(raw: Dict[str, Any]) -> Dict[str, Any]:
    metadata = _section(raw, "metadata")
    annotations = _section(metadata, "annotations")
    return {
        "id": raw.get("id"),
        "name": metadata.get("name"),
        "namespace": metadata.get("namespace"),
        "state": _section(raw, "status").get("state") or "unknown",
        "created_at": metadata.get("creationTimestamp"),
        "updated_at": annotations.get(TIMESTAMP_ANNOTATION),
    }


def map_target(raw: Dict[str, Any]) -> FleetTarget:
    return FleetTarget(
        cluster_id=raw.get("clusterId"),
        cluster_name=raw.get("clusterName"),
        state=raw.get("state"),
        message=raw.get("message"),
    )


def map_resource(raw: Dict[str, Any]) -> FleetResource:
    return FleetResource(
        api_version=raw.get("apiVersion"),
        kind=raw.get("kind"),
        name=raw.get("name"),
        namespace=raw.get("namespace"),
        state=raw.get("state"),
    )


def _targets(status: Dict[str, Any]) -> List[FleetTarget]:
    return [map_target(t) for t in _list(status.get("targets")) if isinstance(t, dict)]


def map_bundle(raw: Optional[Dict[str, Any]]) -> FleetBundle:
    """Normalize a raw bundle payload."""
    raw = _require(raw, "bundle")
    status = _section(raw, "status")
    return FleetBundle(
        cluster_id=raw.get("clusterId"),
        targets=_targets(status),
        resources=[
            map_resource(r)
            for r in _list(status.get("resources"))
            if isinstance(r, dict)
        ],
        **_common(raw),
    )


def map_git_repo(raw: Optional[Dict[str, Any]]) -> FleetGitRepo:
    """Normalize a raw git repository payload."""
    raw = _require(raw, "git repo")
    spec = _section(raw, "spec")
    status = _section(raw, "status")
    return FleetGitRepo(
        repo=spec.get("repo"),
        branch=spec.get("branch"),
        paths=[p for p in _list(spec.get("paths")) if isinstance(p, str)],
        targets=_targets(status),
        last_commit=status.get("lastCommit"),
        **_common(raw),
    )


def map_fleet_cluster(raw: Optional[Dict[str, Any]]) -> FleetCluster:
    """Normalize a raw Fleet cluster payload."""
    raw = _require(raw, "cluster")
    return FleetCluster(
        labels=dict(_section(_section(raw, "metadata"), "labels")),
        fleet_workspace=_section(raw, "spec").get("fleetWorkspace"),
        **_common(raw),
    )


def map_workspace(raw: Optional[Dict[str, Any]]) -> FleetWorkspace:
    """Normalize a raw Fleet workspace payload."""
    return FleetWorkspace(**_common(_require(raw, "workspace")))


class FleetManager:
    """Fleet bundles, git repos, clusters and workspaces on one server.

    With ``degrade_on_error`` (the default) every operation logs a failure
    and returns an empty result: ``[]`` for lists, ``None`` for single
    records and ``False`` for actions. Not-found and any other failure are
    reported the same way. Pass ``degrade_on_error=False`` to get the
    underlying UpstreamError instead, e.g. to check ``is_not_found``.
    """

    def __init__(self, client: RancherClient, degrade_on_error: bool = True):
        self.client = client
        self.degrade_on_error = degrade_on_error

    @property
    def server_name(self) -> str:
        return getattr(self.client, "name", "")

    def _degrade(self, default: T, context: str, call: Callable[[], T]) -> T:
        try:
            return call()
        except Exception as e:
            if not self.degrade_on_error:
                raise
            log_operation_error(logger, context, self.server_name, e)
            return default

    def _list_collection(
        self,
        path: str,
        mapper: Callable[[Dict[str, Any]], T],
        params: Optional[Dict[str, Any]] = None,
    ) -> List[T]:
        body = self.client.request("GET", path, params=params)
        items = body.get("data") if isinstance(body, dict) else None
        records: List[T] = []
        for item in _list(items):
            if not isinstance(item, dict):
                logger.debug(f"Skipping malformed item in {path}: {item!r}")
                continue
            records.append(mapper(item))
        return records

    @staticmethod
    def _bundles_path(cluster_id: Optional[str] = None) -> str:
        if cluster_id:
            return f"/v3/clusters/{cluster_id}/fleet.cattle.io.bundles"
        return "/v3/fleet.cattle.io.bundles"

    @staticmethod
    def _gitrepos_path(cluster_id: Optional[str] = None) -> str:
        if cluster_id:
            return f"/v3/clusters/{cluster_id}/fleet.cattle.io.gitrepos"
        return "/v3/fleet.cattle.io.gitrepos"

    # Bundles

    def list_bundles(self, cluster_id: Optional[str] = None) -> List[FleetBundle]:
        """List bundles in one cluster, or across the global Fleet API."""
        scope = f"cluster {cluster_id}" if cluster_id else "global Fleet API"
        return self._degrade(
            [],
            f"Failed to list Fleet bundles for {scope}",
            lambda: self._list_collection(self._bundles_path(cluster_id), map_bundle),
        )

    def get_bundle(self, bundle_id: str, cluster_id: str) -> Optional[FleetBundle]:
        path = f"{self._bundles_path(cluster_id)}/{bundle_id}"
        return self._degrade(
            None,
            f"Error getting Fleet bundle {bundle_id} in cluster {cluster_id}",
            lambda: map_bundle(self.client.request("GET", path)),
        )

    def create_bundle(
        self, data: Dict[str, Any], cluster_id: str
    ) -> Optional[FleetBundle]:
        """
        Create a bundle from name, namespace, targets and resources.

        Args:
            data: Bundle fields; namespace defaults to fleet-default
            cluster_id: Cluster to create the bundle in

        Returns:
            The created bundle, or None on failure
        """
        body = {
            "type": BUNDLE_TYPE,
            "metadata": {
                "name": data.get("name"),
                "namespace": data.get("namespace") or DEFAULT_NAMESPACE,
            },
            "spec": {
                "targets": data.get("targets") or [],
                "resources": data.get("resources") or [],
            },
        }
        return self._degrade(
            None,
            f"Error creating Fleet bundle {data.get('name')} in cluster {cluster_id}",
            lambda: map_bundle(
                self.client.request("POST", self._bundles_path(cluster_id), body)
            ),
        )

    def update_bundle(
        self, bundle_id: str, cluster_id: str, updates: Dict[str, Any]
    ) -> Optional[FleetBundle]:
        path = f"{self._bundles_path(cluster_id)}/{bundle_id}"
        body = {**updates, "type": BUNDLE_TYPE}
        return self._degrade(
            None,
            f"Error updating Fleet bundle {bundle_id} in cluster {cluster_id}",
            lambda: map_bundle(self.client.request("PUT", path, body)),
        )

    def delete_bundle(self, bundle_id: str, cluster_id: str) -> bool:
        path = f"{self._bundles_path(cluster_id)}/{bundle_id}"

        def call() -> bool:
            self.client.request("DELETE", path)
            logger.info(f"Deleted Fleet bundle {bundle_id} on {self.server_name}")
            return True

        return self._degrade(
            False, f"Error deleting Fleet bundle {bundle_id} in cluster {cluster_id}", call
        )

    def force_sync_bundle(self, bundle_id: str, cluster_id: str) -> bool:
        """Ask Fleet to redeploy a bundle immediately."""
        path = f"{self._bundles_path(cluster_id)}/{bundle_id}"

        def call() -> bool:
            self.client.request("POST", path, params={"action": "forceSync"})
            logger.info(f"Forced sync for Fleet bundle {bundle_id} on {self.server_name}")
            return True

        return self._degrade(
            False, f"Error forcing sync for bundle {bundle_id} in cluster {cluster_id}", call
        )

    def get_deployment_status(
        self, bundle_id: str, cluster_id: str
    ) -> Optional[Dict[str, Any]]:
        path = f"{self._bundles_path(cluster_id)}/{bundle_id}/status"
        return self._degrade(
            None,
            f"Error getting deployment status for bundle {bundle_id} in cluster {cluster_id}",
            lambda: self.client.request("GET", path),
        )

    def get_fleet_logs(
        self, cluster_id: str, namespace: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Return raw bundle objects for a cluster, optionally one namespace."""
        params = {"namespace": namespace} if namespace else None

        def call() -> List[Dict[str, Any]]:
            body = self.client.request("GET", self._bundles_path(cluster_id), params=params)
            return _list(body.get("data")) if isinstance(body, dict) else []

        return self._degrade([], f"Error getting Fleet logs for cluster {cluster_id}", call)

    # Git repositories

    def list_git_repos(self, cluster_id: Optional[str] = None) -> List[FleetGitRepo]:
        """List git repos in one cluster, or across the global Fleet API."""
        scope = f"cluster {cluster_id}" if cluster_id else "global Fleet API"
        return self._degrade(
            [],
            f"Failed to list Fleet Git repos for {scope}",
            lambda: self._list_collection(self._gitrepos_path(cluster_id), map_git_repo),
        )

    def get_git_repo(self, repo_id: str, cluster_id: str) -> Optional[FleetGitRepo]:
        path = f"{self._gitrepos_path(cluster_id)}/{repo_id}"
        return self._degrade(
            None,
            f"Error getting Fleet Git repo {repo_id} in cluster {cluster_id}",
            lambda: map_git_repo(self.client.request("GET", path)),
        )

    def create_git_repo(
        self, data: Dict[str, Any], cluster_id: str
    ) -> Optional[FleetGitRepo]:
        """
        Create a git repo from name, namespace, repo, branch, paths and targets.

        Args:
            data: Repo fields; namespace defaults to fleet-default, branch to main
            cluster_id: Cluster to create the repo in

        Returns:
            The created repo, or None on failure
        """
        body = {
            "type": GITREPO_TYPE,
            "metadata": {
                "name": data.get("name"),
                "namespace": data.get("namespace") or DEFAULT_NAMESPACE,
            },
            "spec": {
                "repo": data.get("repo"),
                "branch": data.get("branch") or DEFAULT_BRANCH,
                "paths": data.get("paths") or [],
                "targets": data.get("targets") or [],
            },
        }
        return self._degrade(
            None,
            f"Error creating Fleet Git repo {data.get('name')} in cluster {cluster_id}",
            lambda: map_git_repo(
                self.client.request("POST", self._gitrepos_path(cluster_id), body)
            ),
        )

    def update_git_repo(
        self, repo_id: str, cluster_id: str, updates: Dict[str, Any]
    ) -> Optional[FleetGitRepo]:
        path = f"{self._gitrepos_path(cluster_id)}/{repo_id}"
        body = {**updates, "type": GITREPO_TYPE}
        return self._degrade(
            None,
            f"Error updating Fleet Git repo {repo_id} in cluster {cluster_id}",
            lambda: map_git_repo(self.client.request("PUT", path, body)),
        )

    def delete_git_repo(self, repo_id: str, cluster_id: str) -> bool:
        path = f"{self._gitrepos_path(cluster_id)}/{repo_id}"

        def call() -> bool:
            self.client.request("DELETE", path)
            logger.info(f"Deleted Fleet Git repo {repo_id} on {self.server_name}")
            return True

        return self._degrade(
            False, f"Error deleting Fleet Git repo {repo_id} in cluster {cluster_id}", call
        )

    # Clusters and workspaces

    def list_fleet_clusters(self) -> List[FleetCluster]:
        return self._degrade(
            [],
            "Failed to list Fleet clusters for global Fleet API",
            lambda: self._list_collection("/v3/fleet.cattle.io.clusters", map_fleet_cluster),
        )

    def get_fleet_cluster(self, cluster_id: str) -> Optional[FleetCluster]:
        return self._degrade(
            None,
            f"Error getting Fleet cluster {cluster_id}",
            lambda: map_fleet_cluster(
                self.client.request("GET", f"/v3/fleet.cattle.io.clusters/{cluster_id}")
            ),
        )

    def list_workspaces(self) -> List[FleetWorkspace]:
        return self._degrade(
            [],
            "Failed to list Fleet workspaces for global Fleet API",
            lambda: self._list_collection("/v3/fleet.cattle.io.workspaces", map_workspace),
        )

    def get_workspace(self, workspace_id: str) -> Optional[FleetWorkspace]:
        return self._degrade(
            None,
            f"Error getting Fleet workspace {workspace_id}",
            lambda: map_workspace(
                self.client.request("GET", f"/v3/fleet.cattle.io.workspaces/{workspace_id}")
            ),
        )
