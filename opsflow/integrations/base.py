"""
Base classes for integration adapters.

BaseIntegration is the contract every adapter implements (connection test
plus static metadata). HTTPIntegration adds the request helpers shared by
the four HTTP-based adapters; all of them route through execute_with_retry.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from opsflow.config import Settings, settings as default_settings
from opsflow.integrations.errors import IntegrationError, parse_error
from opsflow.integrations.http_client import create_http_client, execute_with_retry
from opsflow.models.schemas import IntegrationType

logger = logging.getLogger(__name__)


class BaseIntegration(ABC):
    """Base class for all integration adapters"""

    display_name: str = ""
    integration_type: IntegrationType

    @abstractmethod
    async def test_connection(self) -> None:
        """
        Perform one lightweight call proving reachability and valid credentials.

        Raises:
            IntegrationError: when the service cannot be reached or rejects the credentials
        """

    def get_name(self) -> str:
        return self.display_name

    def get_integration_type(self) -> IntegrationType:
        return self.integration_type

    @abstractmethod
    def get_base_url(self) -> str:
        """Base URL (or equivalent locator) of the service"""

    async def close(self):
        """Release the connection held by the adapter"""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.get_base_url()}>"


class HTTPIntegration(BaseIntegration):
    """Base class for adapters talking to a JSON-over-HTTP API"""

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or default_settings
        self.base_url = self.normalize_base_url(base_url)
        self.client = client or create_http_client(
            connect_timeout=self.settings.http_connect_timeout,
            timeout=self.settings.http_request_timeout,
        )

    @staticmethod
    def normalize_base_url(base_url: str) -> str:
        return base_url.strip().rstrip("/")

    def get_base_url(self) -> str:
        return self.base_url

    def api_url(self, endpoint: str) -> str:
        """Build the full API URL for an endpoint starting with '/'"""
        return f"{self.base_url}{endpoint}"

    def _get_headers(self) -> Dict[str, str]:
        """Get default headers for API requests"""
        return {"Accept": "application/json"}

    def _get_auth(self) -> Optional[httpx.Auth]:
        """Get basic auth credentials if the service uses them"""
        return None

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        idempotent: bool = True,
    ) -> httpx.Response:
        """Make an HTTP request to the service API through the retry layer"""
        url = self.api_url(endpoint)
        logger.debug(f"{self.display_name} API {method}: {url}")

        req_headers = self._get_headers()
        if headers:
            req_headers.update(headers)

        request = self.client.build_request(
            method,
            url,
            params=params,
            json=json,
            headers=req_headers,
            timeout=self.settings.http_request_timeout,
        )
        try:
            return await execute_with_retry(
                self.client,
                request,
                max_retries=self.settings.http_max_retries if idempotent else 0,
                base_delay=self.settings.http_retry_base_delay,
                auth=self._get_auth(),
            )
        except IntegrationError as e:
            logger.error(f"{self.display_name} API error for {method} {url}: {e}")
            raise

    def _parse_json(self, response: httpx.Response) -> Any:
        """Decode a JSON body; anything undecodable is a ConfigError"""
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Failed to parse {self.display_name} API response: {e}")
            raise parse_error(e, response.text)

    async def get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._request("GET", endpoint, params=params)
        return self._parse_json(response)

    async def post(
        self,
        endpoint: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """POSTs trigger side effects, so they are sent exactly once"""
        return await self._request(
            "POST", endpoint, params=params, json=json, headers=headers, idempotent=False
        )

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
