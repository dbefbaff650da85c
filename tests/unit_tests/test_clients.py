"""
Unit tests for RancherClient.
"""

import unittest
from unittest.mock import MagicMock, patch

import requests

from clients import PING_PATH, RancherClient
from config import ServerConfig
from errors import AuthenticationError, UpstreamError


def make_response(status_code=200, payload=None, text="", headers=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else {}
    resp.text = text
    resp.content = b"{}" if payload is not None else b""
    resp.headers = headers or {}
    return resp


class TestRancherClient(unittest.TestCase):
    """Test RancherClient REST API interactions."""

    def setUp(self):
        """Set up test fixtures."""
        self.config = ServerConfig(
            name="prod", url="https://rancher.example.com/", token="token-abc"
        )
        self.client = RancherClient(self.config, base_delay=0.01)
        self.session = MagicMock()
        self.session.headers = {}
        self.client.session = self.session

    def test_client_initialization(self):
        """Test client picks up timeout, retries and TLS policy from config."""
        client = RancherClient(
            ServerConfig(name="lab", url="https://lab", token="t", insecure=True, timeout=5, retries=1)
        )
        self.assertEqual(client.name, "lab")
        self.assertEqual(client.timeout_s, 5)
        self.assertEqual(client.max_retries, 1)
        self.assertFalse(client.session.verify)
        self.assertFalse(client.is_connected())
        self.assertEqual(client.get_config().name, "lab")

    def test_url_construction(self):
        """Test API URL construction strips duplicate slashes."""
        self.assertEqual(
            self.client._url("/v3/clusters"), "https://rancher.example.com/v3/clusters"
        )

    def test_initialize_with_token(self):
        """Test token auth sets the bearer header and pings the server."""
        self.session.request.return_value = make_response(200, {"value": "v2.8.0"})

        self.client.initialize()

        self.assertEqual(self.session.headers["Authorization"], "Bearer token-abc")
        self.assertTrue(self.client.is_connected())
        method, url = self.session.request.call_args[0]
        self.assertEqual(method, "GET")
        self.assertTrue(url.endswith(PING_PATH))

    def test_initialize_fails_when_ping_fails(self):
        """Test initialize raises when the liveness probe is refused."""
        self.session.request.side_effect = requests.ConnectionError("refused")

        with self.assertRaises(UpstreamError):
            self.client.initialize()
        self.assertFalse(self.client.is_connected())

    def test_initialize_with_credentials(self):
        """Test username/password login exchanges for a token."""
        self.client.config = ServerConfig(
            name="prod", url="https://rancher.example.com", username="admin", password="pw"
        )
        self.session.request.side_effect = [
            make_response(201, {"token": "login-token"}),
            make_response(200, {"value": "v2.8.0"}),
        ]

        self.client.initialize()

        self.assertEqual(self.session.headers["Authorization"], "Bearer login-token")
        login_call = self.session.request.call_args_list[0]
        self.assertEqual(login_call.kwargs["json"], {"username": "admin", "password": "pw"})

    def test_authenticate_rejected(self):
        """Test a rejected login raises AuthenticationError."""
        self.client.config = ServerConfig(
            name="prod", url="https://rancher.example.com", username="admin", password="bad"
        )
        self.session.request.return_value = make_response(401, {}, text="Unauthorized")

        with self.assertRaises(AuthenticationError) as ctx:
            self.client.authenticate()
        self.assertEqual(ctx.exception.status_code, 401)

    def test_ping_false_on_error_status(self):
        """Test ping reports False for a non-200 answer."""
        self.session.request.return_value = make_response(401, {})
        self.assertFalse(self.client.ping())

    def test_ping_does_not_retry(self):
        """Test ping makes a single attempt."""
        self.session.request.side_effect = requests.Timeout("slow")
        self.assertFalse(self.client.ping())
        self.assertEqual(self.session.request.call_count, 1)

    def test_request_returns_json(self):
        """Test generic request returns the decoded body."""
        self.session.request.return_value = make_response(200, {"data": [{"id": "c-1"}]})

        body = self.client.request("GET", "/v3/clusters", params={"name": "x"})

        self.assertEqual(body["data"][0]["id"], "c-1")
        self.assertEqual(self.session.request.call_args.kwargs["params"], {"name": "x"})
        self.assertEqual(self.session.request.call_args.kwargs["timeout"], 30)

    def test_request_sends_json_body(self):
        """Test request forwards the body as JSON."""
        self.session.request.return_value = make_response(201, {"id": "b-1"})

        self.client.request("POST", "/v3/things", {"name": "b"})

        self.assertEqual(self.session.request.call_args.kwargs["json"], {"name": "b"})

    def test_request_empty_response(self):
        """Test 204 responses decode to None."""
        self.session.request.return_value = make_response(204)
        self.assertIsNone(self.client.request("DELETE", "/v3/things/1"))

    def test_request_raises_on_not_found(self):
        """Test non-2xx responses raise UpstreamError with context."""
        self.session.request.return_value = make_response(404, {}, text="not found")

        with self.assertRaises(UpstreamError) as ctx:
            self.client.request("GET", "/v3/clusters/missing")

        self.assertTrue(ctx.exception.is_not_found)
        self.assertEqual(ctx.exception.server_name, "prod")
        self.assertEqual(ctx.exception.path, "/v3/clusters/missing")

    @patch("clients.time.sleep")
    def test_request_with_retry_on_503(self, mock_sleep):
        """Test retry logic on 503 service unavailable."""
        self.session.request.side_effect = [
            make_response(503, {}),
            make_response(200, {"ok": True}),
        ]

        result = self.client._request_with_retry("GET", "https://example.com/test")

        self.assertEqual(result["status_code"], 200)
        self.assertEqual(self.session.request.call_count, 2)
        self.assertTrue(mock_sleep.called)

    @patch("clients.time.sleep")
    def test_request_with_retry_exhausted(self, mock_sleep):
        """Test connection errors raise after the configured retries."""
        self.session.request.side_effect = requests.ConnectionError("down")

        with self.assertRaises(UpstreamError):
            self.client._request_with_retry("GET", "https://example.com/test")

        self.assertEqual(self.session.request.call_count, self.config.retries + 1)

    def test_calculate_delay_with_retry_after_header(self):
        """Test delay calculation when Retry-After header is present."""
        resp = make_response(429, headers={"Retry-After": "10"})
        self.assertEqual(self.client._calculate_delay(0, resp), 10.0)

    def test_get_server_status_healthy(self):
        """Test server status combines version and settings."""
        self.session.request.side_effect = [
            make_response(200, {"value": "v2.8.0"}),
            make_response(200, {"data": [{"id": "server-url"}]}),
        ]

        status = self.client.get_server_status()

        self.assertEqual(status["status"], "healthy")
        self.assertEqual(status["version"], "v2.8.0")

    def test_get_server_status_unhealthy(self):
        """Test server status reports errors instead of raising."""
        self.session.request.return_value = make_response(500, {}, text="boom")

        status = self.client.get_server_status()

        self.assertEqual(status["status"], "unhealthy")
        self.assertIn("500", status["error"])

    def test_disconnect_closes_session(self):
        """Test disconnect closes the session and clears state."""
        self.client._initialized = True
        self.client.disconnect()
        self.session.close.assert_called_once()
        self.assertFalse(self.client.is_connected())


if __name__ == "__main__":
    unittest.main()
