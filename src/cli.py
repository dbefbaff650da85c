"""Console entry point for the Rancher Fleet Hub CLI."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict, is_dataclass
from typing import Any, Callable, Dict, List

from config import HubConfig
from errors import ConfigError, HubError
from fleet import FleetManager
from hub import RancherHub
from log_utils import setup_logging

logger = logging.getLogger(__name__)

RESOURCE_COMMANDS: Dict[str, Callable[[FleetManager, argparse.Namespace], Any]] = {
    "bundles": lambda fleet, args: fleet.list_bundles(args.cluster),
    "gitrepos": lambda fleet, args: fleet.list_git_repos(args.cluster),
    "fleet-clusters": lambda fleet, args: fleet.list_fleet_clusters(),
    "workspaces": lambda fleet, args: fleet.list_workspaces(),
}


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Query and manage Fleet resources across several Rancher servers"
    )
    parser.add_argument("--config", help="Path to a JSON config file (default: ./config.json)")
    parser.add_argument("--default-server", help="Server used when none is named")
    parser.add_argument(
        "--max-concurrency",
        type=int,
        help="Maximum number of servers queried at once",
    )
    parser.add_argument("--log-file", help="Also write logs to this rotating file")
    parser.add_argument("--verbose", action="store_true")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("servers", help="List configured servers and their state")

    ping = commands.add_parser("ping", help="Probe server liveness")
    ping.add_argument("--server", help="Ping only this server")

    status = commands.add_parser("status", help="Show server version and health")
    status.add_argument("--server", help="Show only this server")

    for name in RESOURCE_COMMANDS:
        sub = commands.add_parser(name, help=f"List Fleet {name} on one or all servers")
        sub.add_argument("--server", help="Query only this server (default: all)")
        if name in ("bundles", "gitrepos"):
            sub.add_argument("--cluster", help="Restrict to one managed cluster")
    return parser


def _to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


def _emit(payload: Any) -> None:
    json.dump(_to_jsonable(payload), sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


def _run_command(hub: RancherHub, args: argparse.Namespace) -> int:
    if args.command == "servers":
        connected = set(hub.connected_servers())
        _emit(
            [
                {
                    "name": name,
                    "url": server.url,
                    "default": name == hub.config.default_server,
                    "connected": name in connected,
                }
                for name, server in hub.config.servers.items()
            ]
        )
        return 0

    if args.command == "ping":
        if args.server:
            alive = hub.ping_server(args.server)
            _emit({args.server: alive})
            return 0 if alive else 1
        _emit(hub.ping_all_servers())
        return 0

    if args.command == "status":
        _emit(hub.server_status(args.server))
        return 0

    listing = RESOURCE_COMMANDS[args.command]
    if args.server:
        try:
            result = hub.execute_on_server(
                args.server, lambda client: listing(FleetManager(client), args)
            )
        except HubError as e:
            logger.error(f"{args.command} failed on {args.server}: {e}")
            return 1
        _emit({args.server: result})
    else:
        _emit(hub.broadcast_fleet(lambda fleet: listing(fleet, args)))
    return 0


def main(argv: List[str] | None = None) -> int:
    """CLI main for console_scripts entry point."""
    parser = build_parser()
    args = parser.parse_args(args=argv)

    config = HubConfig.from_args(args)
    log_file = args.log_file
    if not log_file and config.enable_file_logging:
        log_file = os.path.join(config.log_directory, "combined.log")
    setup_logging(verbose=config.verbose, log_file=log_file, log_level=config.log_level)

    hub = RancherHub(config)
    try:
        try:
            connected = hub.initialize()
        except ConfigError as e:
            logger.error(str(e))
            return 1
        if not connected:
            logger.error("No Rancher server could be connected")
            return 1
        return _run_command(hub, args)
    finally:
        hub.close()
