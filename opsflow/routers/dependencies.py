"""
Shared router dependencies: the config store, credentials service and adapter
registry live on app.state (built in the lifespan) and reach routes via Depends.
"""
from fastapi import Depends, HTTPException, Request

from opsflow.integrations.registry import AdapterRegistry
from opsflow.models.schemas import Integration, IntegrationType
from opsflow.services.config_store import ConfigStore
from opsflow.services.credentials import CredentialService


def get_config_store(request: Request) -> ConfigStore:
    return request.app.state.config_store


def get_credentials(request: Request) -> CredentialService:
    return request.app.state.credentials


def get_registry(request: Request) -> AdapterRegistry:
    return request.app.state.registry


def find_integration(store: ConfigStore, integration_id: str) -> Integration:
    integration = store.get_integration(integration_id)
    if integration is None:
        raise HTTPException(status_code=404, detail=f"Integration not found: {integration_id}")
    return integration


def integration_of_type(integration_type: IntegrationType):
    """Dependency resolving the {integration_id} path parameter to an integration of one type"""

    def dependency(integration_id: str, store: ConfigStore = Depends(get_config_store)) -> Integration:
        integration = find_integration(store, integration_id)
        if integration.integration_type != integration_type:
            raise HTTPException(
                status_code=400,
                detail=f"Integration '{integration_id}' is a {integration.integration_type.value} "
                       f"integration, not {integration_type.value}",
            )
        return integration

    return dependency
