"""
Keycloak API router
"""
from typing import List

from fastapi import APIRouter, Depends

from opsflow.integrations.registry import AdapterRegistry
from opsflow.models.schemas import Integration, IntegrationType, KeycloakClient, KeycloakRealm
from opsflow.routers.dependencies import get_registry, integration_of_type

router = APIRouter(prefix="/keycloak", tags=["Keycloak"])

keycloak_integration = integration_of_type(IntegrationType.KEYCLOAK)


@router.get("/{integration_id}/realms", response_model=List[KeycloakRealm])
async def list_realms(
    integration: Integration = Depends(keycloak_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    """List realms (empty without admin access)"""
    async with registry.adapter(integration) as keycloak:
        return await keycloak.fetch_realms()


@router.get("/{integration_id}/realms/{realm}/clients", response_model=List[KeycloakClient])
async def list_clients(
    realm: str,
    integration: Integration = Depends(keycloak_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    """List clients of a realm (empty without admin access)"""
    async with registry.adapter(integration) as keycloak:
        return await keycloak.fetch_clients(realm)
