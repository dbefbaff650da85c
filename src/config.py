"""
Configuration management for the Rancher Fleet Hub.

Server definitions come from environment variables (a primary server plus
up to nine numbered extras) and an optional JSON config file layered on top.
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

MAX_EXTRA_SERVERS = 10

# config.json key -> HubConfig attribute
FILE_KEYS = {
    "logLevel": "log_level",
    "defaultServer": "default_server",
    "cacheTimeout": "cache_timeout",
    "maxConcurrentRequests": "max_concurrency",
    "requestTimeout": "request_timeout",
}
INT_FILE_KEYS = {"cacheTimeout", "maxConcurrentRequests", "requestTimeout"}


def _env_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def _env_int(value: Optional[Any], default: int) -> int:
    try:
        return int(value) if value else default
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-integer setting {value!r}, using {default}")
        return default


@dataclass
class ServerConfig:
    """Endpoint and authentication parameters for one Rancher server."""

    name: str
    url: str
    token: str = ""
    username: Optional[str] = None
    password: Optional[str] = None
    insecure: bool = False
    timeout: int = 30  # seconds per request
    retries: int = 3

    @classmethod
    def from_dict(cls, data: Mapping, default_timeout: int = 30) -> "ServerConfig":
        return cls(
            name=data["name"],
            url=data["url"],
            token=data.get("token") or "",
            username=data.get("username"),
            password=data.get("password"),
            insecure=bool(data.get("insecure", False)),
            timeout=int(data.get("timeout") or default_timeout),
            retries=int(data.get("retries") or 3),
        )


@dataclass
class HubConfig:
    """Global settings plus the ordered set of configured servers."""

    servers: Dict[str, ServerConfig] = field(default_factory=dict)
    default_server: str = "default"
    log_level: str = "info"
    cache_timeout: int = 300
    request_timeout: int = 30
    max_concurrency: int = 10
    enable_file_logging: bool = False
    log_directory: str = "logs"
    verbose: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HubConfig":
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            HubConfig instance
        """
        env = os.environ if environ is None else environ
        config = cls(
            default_server=env.get("DEFAULT_RANCHER_SERVER") or "default",
            log_level=env.get("LOG_LEVEL") or "info",
            cache_timeout=_env_int(env.get("CACHE_TIMEOUT"), 300),
            request_timeout=_env_int(env.get("REQUEST_TIMEOUT"), 30),
            max_concurrency=_env_int(env.get("MAX_CONCURRENT_REQUESTS"), 10),
            enable_file_logging=_env_bool(env.get("ENABLE_FILE_LOGGING")),
            log_directory=env.get("LOG_DIRECTORY") or "logs",
        )

        if env.get("RANCHER_URL") and env.get("RANCHER_TOKEN"):
            name = env.get("RANCHER_NAME") or "default"
            config.add_server(config._server_from_env(env, "RANCHER", name))

        for i in range(2, MAX_EXTRA_SERVERS + 1):
            prefix = f"RANCHER_SERVER_{i}"
            if env.get(f"{prefix}_URL") and env.get(f"{prefix}_TOKEN"):
                name = env.get(f"{prefix}_NAME") or f"server-{i}"
                config.add_server(config._server_from_env(env, prefix, name))

        return config

    def _server_from_env(self, env: Mapping[str, str], prefix: str, name: str) -> ServerConfig:
        return ServerConfig(
            name=name,
            url=env[f"{prefix}_URL"],
            token=env[f"{prefix}_TOKEN"],
            username=env.get(f"{prefix}_USERNAME"),
            password=env.get(f"{prefix}_PASSWORD"),
            insecure=_env_bool(env.get(f"{prefix}_INSECURE")),
            timeout=_env_int(env.get(f"{prefix}_TIMEOUT"), self.request_timeout),
            retries=_env_int(env.get(f"{prefix}_RETRIES"), 3),
        )

    def merge_file(self, path: str) -> None:
        """
        Layer a JSON config file on top of the current settings.

        Global keys override; servers with name, url and token are added or
        replaced, with requestTimeout as their default timeout. A missing
        file is skipped. An unreadable or wrongly shaped file is logged and
        ignored, and a malformed server entry is logged and skipped.
        """
        if not os.path.exists(path):
            return
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Error loading {path}: {e}")
            return
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {path}: expected a JSON object, got {type(data).__name__}")
            return

        for file_key, attr in FILE_KEYS.items():
            value = data.get(file_key)
            if not value:
                continue
            if file_key in INT_FILE_KEYS:
                value = _env_int(value, getattr(self, attr))
            setattr(self, attr, value)

        servers = data.get("servers") or []
        if not isinstance(servers, list):
            logger.warning(f"Ignoring servers in {path}: expected a list")
            return

        for entry in servers:
            if not (isinstance(entry, dict) and entry.get("name") and entry.get("url") and entry.get("token")):
                continue
            try:
                server = ServerConfig.from_dict(entry, default_timeout=self.request_timeout)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping server {entry.get('name')!r} in {path}: {e}")
                continue
            self.add_server(server)

    @classmethod
    def from_args(cls, args, base: Optional["HubConfig"] = None) -> "HubConfig":
        """
        Apply command-line overrides to a loaded configuration.

        Args:
            args: Parsed argparse arguments
            base: Configuration to override (loaded from env/file if omitted)

        Returns:
            HubConfig instance
        """
        config = base if base is not None else load_config(getattr(args, "config", None))
        if getattr(args, "default_server", None):
            config.default_server = args.default_server
        if getattr(args, "max_concurrency", None):
            config.max_concurrency = args.max_concurrency
        config.verbose = bool(getattr(args, "verbose", False))
        return config

    def get_server(self, name: Optional[str] = None) -> Optional[ServerConfig]:
        return self.servers.get(name or self.default_server)

    def all_servers(self) -> List[ServerConfig]:
        return list(self.servers.values())

    def server_names(self) -> List[str]:
        return list(self.servers.keys())

    def add_server(self, server: ServerConfig) -> None:
        self.servers[server.name] = server

    def remove_server(self, name: str) -> bool:
        return self.servers.pop(name, None) is not None

    def update_server(self, name: str, **changes) -> bool:
        existing = self.servers.get(name)
        if existing is None:
            return False
        self.servers[name] = replace(existing, **changes)
        return True

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when valid)."""
        errors: List[str] = []
        if not self.servers:
            errors.append("No Rancher servers configured")
        for name, server in self.servers.items():
            if not server.url:
                errors.append(f"Server {name}: missing URL")
            if not server.token and not (server.username and server.password):
                errors.append(f"Server {name}: missing token or credentials")
        return errors


def load_config(
    config_file: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> HubConfig:
    """
    Load configuration from the environment and an optional JSON file.

    Args:
        config_file: Path to a JSON config file (defaults to ./config.json)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        HubConfig instance
    """
    config = HubConfig.from_env(environ)
    config.merge_file(config_file or os.path.join(os.getcwd(), "config.json"))
    return config
