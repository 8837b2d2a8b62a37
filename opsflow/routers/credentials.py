"""
Credentials router. Secrets go in, only their presence comes back out.
"""
from fastapi import APIRouter, Depends, HTTPException

from opsflow.models.schemas import APIResponse, CredentialsStatus, IntegrationCredentials
from opsflow.routers.dependencies import get_credentials
from opsflow.services.credentials import CredentialService

router = APIRouter(prefix="/credentials", tags=["Credentials"])


@router.put("/{key}", response_model=APIResponse)
async def save_credentials(
    key: str,
    credentials: IntegrationCredentials,
    service: CredentialService = Depends(get_credentials),
):
    await service.save(key, credentials)
    return APIResponse(success=True, message=f"Credentials saved for '{key}'")


@router.get("/{key}", response_model=CredentialsStatus)
async def get_credentials_status(key: str, service: CredentialService = Depends(get_credentials)):
    status = await service.status(key)
    if status is None:
        raise HTTPException(status_code=404, detail=f"No credentials stored for '{key}'")
    return status


@router.delete("/{key}", response_model=APIResponse)
async def delete_credentials(key: str, service: CredentialService = Depends(get_credentials)):
    await service.delete(key)
    return APIResponse(success=True, message=f"Credentials deleted for '{key}'")
