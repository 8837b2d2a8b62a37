"""
Keycloak Admin API Integration
"""
import logging
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from opsflow.config import Settings
from opsflow.integrations.base import HTTPIntegration
from opsflow.integrations.errors import AuthError, ConfigError, NotFound, malformed_response
from opsflow.models.schemas import IntegrationType, KeycloakClient, KeycloakRealm

logger = logging.getLogger(__name__)


class KeycloakIntegration(HTTPIntegration):
    """Keycloak Admin API integration"""

    display_name = "Keycloak"
    integration_type = IntegrationType.KEYCLOAK

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(base_url, client=client, settings=settings)
        self._username = username
        self._password = password

    def _get_auth(self) -> Optional[httpx.Auth]:
        return httpx.BasicAuth(self._username, self._password)

    async def test_connection(self) -> None:
        # Public discovery document, no admin role needed
        await self.get_json("/realms/master/.well-known/openid-configuration")

    async def _get_admin_list(self, endpoint: str, what: str) -> List[Any]:
        """Admin endpoints need an admin role; without it the list is empty"""
        try:
            data = await self.get_json(endpoint)
        except (AuthError, NotFound):
            logger.warning(f"Admin access not available for fetching {what}. Returning empty list.")
            return []
        if not isinstance(data, list):
            raise ConfigError(f"Invalid response format: expected a list of {what}")
        return data

    async def fetch_realms(self) -> List[KeycloakRealm]:
        realms = []
        for item in await self._get_admin_list("/admin/realms", "realms"):
            if not isinstance(item, dict) or not item.get("realm"):
                raise ConfigError("Invalid realm format: missing 'realm'")
            with malformed_response("realm"):
                realms.append(KeycloakRealm(realm=item["realm"], enabled=item.get("enabled", True)))
        return realms

    async def fetch_clients(self, realm: str) -> List[KeycloakClient]:
        endpoint = f"/admin/realms/{quote(realm, safe='')}/clients"
        clients = []
        for item in await self._get_admin_list(endpoint, "clients"):
            if not isinstance(item, dict) or not item.get("clientId"):
                raise ConfigError("Invalid client format: missing 'clientId'")
            with malformed_response("client"):
                clients.append(
                    KeycloakClient(
                        client_id=item["clientId"],
                        name=item.get("name") or item["clientId"],
                        enabled=item.get("enabled", True),
                    )
                )
        return clients
