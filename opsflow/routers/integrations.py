"""
Integration connection testing
"""
from fastapi import APIRouter, Depends

from opsflow.integrations.registry import AdapterRegistry
from opsflow.models.schemas import APIResponse
from opsflow.routers.dependencies import find_integration, get_config_store, get_registry
from opsflow.services.config_store import ConfigStore

router = APIRouter(prefix="/integrations", tags=["Integrations"])


@router.post("/{integration_id}/test", response_model=APIResponse)
async def test_integration_connection(
    integration_id: str,
    store: ConfigStore = Depends(get_config_store),
    registry: AdapterRegistry = Depends(get_registry),
):
    """One lightweight authenticated call; failures come back as the error's JSON"""
    integration = find_integration(store, integration_id)
    async with registry.adapter(integration) as adapter:
        await adapter.test_connection()
        return APIResponse(
            success=True,
            message=f"Connected to {adapter.get_name()} at {adapter.get_base_url()}",
        )
