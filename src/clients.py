"""
REST API client for a single Rancher management server (v3 API).
"""

import logging
import time
from typing import Any, Dict, Optional

import requests

from config import ServerConfig
from errors import AuthenticationError, UpstreamError

logger = logging.getLogger(__name__)

PING_PATH = "/v3/settings/server-version"
LOGIN_PATH = "/v3-public/localProviders/local?action=login"


class RancherClient:
    """REST client for one Rancher server.

    One instance owns one authenticated ``requests.Session``. Auth headers
    are set once during ``initialize``; afterwards the client holds no
    per-call state and may be used from several threads at once.
    """

    RETRYABLE_STATUS_CODES = {429, 502, 503, 504}

    def __init__(self, config: ServerConfig, base_delay: float = 1.0):
        """
        Initialize the Rancher REST client.

        Args:
            config: Endpoint and auth parameters for the server
            base_delay: Base delay for exponential backoff between retries
        """
        self.config = config
        self.name = config.name
        self.timeout_s = config.timeout
        self.max_retries = config.retries
        self.base_delay = base_delay
        self._initialized = False

        self.session = requests.Session()
        self.session.verify = not config.insecure
        self.session.headers.update({"Accept": "application/json"})

    def _url(self, path: str) -> str:
        """Construct full API URL from path."""
        return f"{self.config.url.rstrip('/')}/{path.lstrip('/')}"

    def _request_with_retry(
        self, method: str, url: str, retries: Optional[int] = None, **kwargs
    ) -> dict:
        """
        Execute HTTP request with exponential backoff retry for transient errors.

        Args:
            method: HTTP method
            url: Request URL
            retries: Override for the configured retry count
            **kwargs: Additional request parameters

        Returns:
            Dictionary with 'response' and 'status_code' keys

        Raises:
            UpstreamError: If max retries exceeded
        """
        max_retries = self.max_retries if retries is None else retries
        last_error = None

        for attempt in range(max_retries + 1):
            try:
                logger.debug(f"Rancher API request [{self.name}]: {method.upper()} {url}")
                resp = self.session.request(
                    method.upper(), url, timeout=self.timeout_s, **kwargs
                )

                if resp.status_code in self.RETRYABLE_STATUS_CODES and attempt < max_retries:
                    delay = self._calculate_delay(attempt, resp)
                    logger.warning(
                        f"Retryable error {resp.status_code} from {self.name}, attempt {attempt + 1}/{max_retries + 1}, waiting {delay:.1f}s..."
                    )
                    time.sleep(delay)
                    continue

                logger.debug(
                    f"Rancher API response [{self.name}]: {resp.status_code} {url}"
                )
                return {"response": resp, "status_code": resp.status_code}

            except requests.RequestException as e:
                last_error = str(e)
                if attempt >= max_retries:
                    break
                delay = self._calculate_delay(attempt)
                logger.warning(
                    f"Request error for {self.name}: {e}, attempt {attempt + 1}/{max_retries + 1}, waiting {delay:.1f}s..."
                )
                time.sleep(delay)

        raise UpstreamError(
            f"Request to {self.name} failed: {last_error}",
            server_name=self.name,
            method=method.upper(),
            path=url,
        )

    def _calculate_delay(self, attempt: int, resp=None) -> float:
        """
        Calculate delay with exponential backoff and jitter.

        Args:
            attempt: Current attempt number
            resp: Optional response object (to check Retry-After header)

        Returns:
            Delay in seconds
        """
        if resp is not None and "Retry-After" in resp.headers:
            try:
                return float(resp.headers["Retry-After"])
            except ValueError:
                pass

        delay = self.base_delay * (2**attempt)
        jitter = delay * 0.2 * (0.5 - time.time() % 1)
        return min(delay + jitter, 30.0)

    def initialize(self) -> None:
        """
        Authenticate and verify the server responds.

        Raises:
            AuthenticationError: If the login exchange fails
            UpstreamError: If the initial liveness probe fails
        """
        logger.info(f"Initializing Rancher client for {self.name}")

        if self.config.token:
            self.session.headers["Authorization"] = f"Bearer {self.config.token}"
        elif self.config.username and self.config.password:
            self.authenticate()

        if not self.ping():
            raise UpstreamError(
                f"Server {self.name} did not respond at {self.config.url}",
                server_name=self.name,
                method="GET",
                path=PING_PATH,
            )

        self._initialized = True
        logger.info(f"Rancher client {self.name} initialized")

    def authenticate(self) -> None:
        """Exchange username/password for a bearer token."""
        try:
            result = self._request_with_retry(
                "POST",
                self._url(LOGIN_PATH),
                json={
                    "username": self.config.username,
                    "password": self.config.password,
                },
            )
        except UpstreamError as e:
            raise AuthenticationError(
                f"Authentication error: {e}", server_name=self.name, method="POST", path=LOGIN_PATH
            ) from e

        resp = result["response"]
        if resp.status_code not in (200, 201):
            raise AuthenticationError(
                f"Authentication error ({resp.status_code}): {resp.text[:200]}",
                server_name=self.name,
                status_code=resp.status_code,
                method="POST",
                path=LOGIN_PATH,
            )
        token = resp.json().get("token")
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def ping(self) -> bool:
        """Return True if the server answers the version endpoint."""
        try:
            result = self._request_with_retry("GET", self._url(PING_PATH), retries=0)
        except UpstreamError as e:
            logger.debug(f"Ping to {self.name} failed: {e}")
            return False
        return result["status_code"] == 200

    def request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Execute an API request and return the decoded JSON body.

        Args:
            method: HTTP method
            path: API path, e.g. '/v3/clusters'
            body: Optional JSON body
            params: Optional query parameters

        Returns:
            Decoded JSON payload, or None for an empty response

        Raises:
            UpstreamError: On transport failure or a non-2xx response
        """
        kwargs: Dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = body
        if params:
            kwargs["params"] = params

        result = self._request_with_retry(method, self._url(path), **kwargs)
        resp = result["response"]
        if not 200 <= resp.status_code < 300:
            logger.debug(
                f"Rancher API response error [{self.name}]: {method.upper()} {path} -> {resp.status_code}"
            )
            raise UpstreamError(
                f"{method.upper()} {path} failed ({resp.status_code}): {resp.text[:200]}",
                server_name=self.name,
                status_code=resp.status_code,
                method=method.upper(),
                path=path,
            )
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    def get_server_status(self) -> Dict[str, Any]:
        """Return version and settings, or an unhealthy marker with the error."""
        try:
            version = self.request("GET", PING_PATH) or {}
            settings = self.request("GET", "/v3/settings") or {}
        except UpstreamError as e:
            return {"status": "unhealthy", "error": str(e)}
        return {
            "version": version.get("value"),
            "settings": settings.get("data", []),
            "status": "healthy",
        }

    def disconnect(self) -> None:
        """Close the HTTP session."""
        self._initialized = False
        self.session.close()
        logger.info(f"Rancher client {self.name} disconnected")

    def get_config(self) -> ServerConfig:
        return self.config

    def is_connected(self) -> bool:
        return self._initialized
