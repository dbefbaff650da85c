"""
Unit tests for configuration.
"""

import json
import os
import tempfile
import unittest
from argparse import Namespace

from config import HubConfig, ServerConfig, load_config


class TestServerConfig(unittest.TestCase):
    """Test ServerConfig data model."""

    def test_defaults(self):
        """Test default per-server values."""
        server = ServerConfig(name="prod", url="https://rancher", token="t")
        self.assertFalse(server.insecure)
        self.assertEqual(server.timeout, 30)
        self.assertEqual(server.retries, 3)
        self.assertIsNone(server.username)

    def test_from_dict(self):
        """Test building a server from a config file entry."""
        server = ServerConfig.from_dict(
            {"name": "lab", "url": "https://lab", "token": "t", "insecure": True, "timeout": 10}
        )
        self.assertTrue(server.insecure)
        self.assertEqual(server.timeout, 10)
        self.assertEqual(server.retries, 3)


class TestHubConfigFromEnv(unittest.TestCase):
    """Test environment variable loading."""

    def test_empty_environment(self):
        """Test defaults with nothing configured."""
        config = HubConfig.from_env({})

        self.assertEqual(config.servers, {})
        self.assertEqual(config.default_server, "default")
        self.assertEqual(config.max_concurrency, 10)
        self.assertEqual(config.request_timeout, 30)
        self.assertFalse(config.enable_file_logging)
        self.assertEqual(config.log_directory, "logs")

    def test_primary_and_numbered_servers(self):
        """Test primary and extra servers are read in order."""
        env = {
            "RANCHER_URL": "https://main",
            "RANCHER_TOKEN": "t1",
            "RANCHER_INSECURE": "true",
            "RANCHER_SERVER_2_URL": "https://second",
            "RANCHER_SERVER_2_TOKEN": "t2",
            "RANCHER_SERVER_2_NAME": "staging",
            "RANCHER_SERVER_2_TIMEOUT": "15",
            "RANCHER_SERVER_3_URL": "https://third",
            "RANCHER_SERVER_3_TOKEN": "t3",
            "RANCHER_SERVER_4_URL": "https://no-token",
            "DEFAULT_RANCHER_SERVER": "staging",
            "MAX_CONCURRENT_REQUESTS": "4",
            "ENABLE_FILE_LOGGING": "true",
        }

        config = HubConfig.from_env(env)

        self.assertEqual(config.server_names(), ["default", "staging", "server-3"])
        self.assertTrue(config.servers["default"].insecure)
        self.assertEqual(config.servers["staging"].timeout, 15)
        self.assertEqual(config.default_server, "staging")
        self.assertEqual(config.max_concurrency, 4)
        self.assertTrue(config.enable_file_logging)
        self.assertEqual(config.get_server().url, "https://second")

    def test_request_timeout_is_server_default(self):
        """Test REQUEST_TIMEOUT applies to servers without their own timeout."""
        env = {
            "REQUEST_TIMEOUT": "20",
            "RANCHER_URL": "https://main",
            "RANCHER_TOKEN": "t",
            "RANCHER_SERVER_2_URL": "https://second",
            "RANCHER_SERVER_2_TOKEN": "t",
            "RANCHER_SERVER_2_TIMEOUT": "5",
        }

        config = HubConfig.from_env(env)

        self.assertEqual(config.servers["default"].timeout, 20)
        self.assertEqual(config.servers["server-2"].timeout, 5)

    def test_bad_integer_falls_back(self):
        """Test non-numeric tunables fall back to defaults."""
        config = HubConfig.from_env({"MAX_CONCURRENT_REQUESTS": "lots"})
        self.assertEqual(config.max_concurrency, 10)


class TestConfigFile(unittest.TestCase):
    """Test JSON config file layering."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "config.json")

    def tearDown(self):
        self.tmpdir.cleanup()

    def write(self, data):
        with open(self.path, "w", encoding="utf-8") as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)

    def test_file_overrides_and_adds_servers(self):
        """Test global keys override and complete servers are added."""
        self.write(
            {
                "defaultServer": "lab",
                "maxConcurrentRequests": 2,
                "servers": [
                    {"name": "lab", "url": "https://lab", "token": "t"},
                    {"name": "incomplete", "url": "https://x"},
                ],
            }
        )

        config = load_config(self.path, environ={"RANCHER_URL": "https://main", "RANCHER_TOKEN": "t"})

        self.assertEqual(config.default_server, "lab")
        self.assertEqual(config.max_concurrency, 2)
        self.assertEqual(config.server_names(), ["default", "lab"])

    def test_missing_file_is_skipped(self):
        """Test a missing file leaves env settings alone."""
        config = load_config(os.path.join(self.tmpdir.name, "nope.json"), environ={})
        self.assertEqual(config.servers, {})

    def test_invalid_file_is_ignored(self):
        """Test a malformed file logs a warning and is ignored."""
        self.write("{not json")

        with self.assertLogs("config", level="WARNING"):
            config = load_config(self.path, environ={})

        self.assertEqual(config.default_server, "default")

    def test_non_object_file_is_ignored(self):
        """Test a file whose top level is not an object is ignored."""
        self.write([])

        with self.assertLogs("config", level="WARNING"):
            config = load_config(self.path, environ={"RANCHER_URL": "https://main", "RANCHER_TOKEN": "t"})

        self.assertEqual(config.server_names(), ["default"])

    def test_bad_server_entry_is_skipped(self):
        """Test a server entry with an unusable value is skipped, others load."""
        self.write(
            {
                "servers": [
                    {"name": "slow", "url": "https://slow", "token": "t", "timeout": "fast"},
                    {"name": "lab", "url": "https://lab", "token": "t"},
                ]
            }
        )

        with self.assertLogs("config", level="WARNING") as logs:
            config = load_config(self.path, environ={})

        self.assertEqual(config.server_names(), ["lab"])
        self.assertIn("slow", logs.output[0])

    def test_non_list_servers_is_ignored(self):
        """Test a servers value that is not a list is ignored."""
        self.write({"defaultServer": "lab", "servers": 5})

        with self.assertLogs("config", level="WARNING"):
            config = load_config(self.path, environ={})

        self.assertEqual(config.default_server, "lab")
        self.assertEqual(config.servers, {})

    def test_integer_keys_are_coerced(self):
        """Test numeric settings given as strings become integers."""
        self.write({"maxConcurrentRequests": "5", "cacheTimeout": "60", "requestTimeout": "12"})

        config = load_config(self.path, environ={})

        self.assertEqual(config.max_concurrency, 5)
        self.assertEqual(config.cache_timeout, 60)
        self.assertEqual(config.request_timeout, 12)

    def test_non_numeric_integer_key_keeps_default(self):
        """Test a non-numeric numeric setting keeps the current value."""
        self.write({"maxConcurrentRequests": "many"})

        with self.assertLogs("config", level="WARNING"):
            config = load_config(self.path, environ={})

        self.assertEqual(config.max_concurrency, 10)

    def test_request_timeout_is_server_default(self):
        """Test requestTimeout applies to servers without their own timeout."""
        self.write(
            {
                "requestTimeout": 12,
                "servers": [
                    {"name": "lab", "url": "https://lab", "token": "t"},
                    {"name": "edge", "url": "https://edge", "token": "t", "timeout": 45},
                ],
            }
        )

        config = load_config(self.path, environ={})

        self.assertEqual(config.servers["lab"].timeout, 12)
        self.assertEqual(config.servers["edge"].timeout, 45)


class TestHubConfigOperations(unittest.TestCase):
    """Test server management, validation and CLI overrides."""

    def setUp(self):
        self.config = HubConfig()
        self.config.add_server(ServerConfig(name="a", url="https://a", token="t"))

    def test_validate_ok(self):
        """Test a complete configuration validates."""
        self.assertEqual(self.config.validate(), [])

    def test_validate_reports_problems(self):
        """Test missing servers, urls and credentials are reported."""
        self.assertEqual(HubConfig().validate(), ["No Rancher servers configured"])

        self.config.add_server(ServerConfig(name="b", url=""))
        errors = self.config.validate()
        self.assertIn("Server b: missing URL", errors)
        self.assertIn("Server b: missing token or credentials", errors)

    def test_credentials_instead_of_token(self):
        """Test username/password satisfies the credentials check."""
        self.config.add_server(
            ServerConfig(name="b", url="https://b", username="admin", password="pw")
        )
        self.assertEqual(self.config.validate(), [])

    def test_update_and_remove_server(self):
        """Test updating and removing servers."""
        self.assertTrue(self.config.update_server("a", timeout=5))
        self.assertEqual(self.config.get_server("a").timeout, 5)
        self.assertFalse(self.config.update_server("zz", timeout=5))

        self.assertTrue(self.config.remove_server("a"))
        self.assertFalse(self.config.remove_server("a"))

    def test_from_args_overrides(self):
        """Test command-line overrides apply on top of a base config."""
        args = Namespace(default_server="a", max_concurrency=3, verbose=True)

        config = HubConfig.from_args(args, base=self.config)

        self.assertEqual(config.default_server, "a")
        self.assertEqual(config.max_concurrency, 3)
        self.assertTrue(config.verbose)


if __name__ == "__main__":
    unittest.main()
