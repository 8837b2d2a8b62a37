"""
Flow editor documents
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from opsflow.models.schemas import APIResponse, Flow, FlowMetadata
from opsflow.routers.dependencies import get_config_store
from opsflow.services.config_store import ConfigStore

router = APIRouter(prefix="/flows", tags=["Flows"])


@router.get("", response_model=List[FlowMetadata])
def list_flows(store: ConfigStore = Depends(get_config_store)):
    """Saved flows, most recently updated first"""
    return store.list_flows()


@router.get("/{flow_id}", response_model=Flow)
def load_flow(flow_id: str, store: ConfigStore = Depends(get_config_store)):
    return store.load_flow(flow_id)


@router.put("/{flow_id}", response_model=APIResponse)
def save_flow(flow_id: str, flow: Flow, store: ConfigStore = Depends(get_config_store)):
    if flow.id != flow_id:
        raise HTTPException(status_code=400, detail="Flow ID in path and body differ")
    store.save_flow(flow)
    return APIResponse(success=True, message=f"Flow '{flow.name}' saved")


@router.delete("/{flow_id}", response_model=APIResponse)
def delete_flow(flow_id: str, store: ConfigStore = Depends(get_config_store)):
    store.delete_flow(flow_id)
    return APIResponse(success=True, message=f"Flow '{flow_id}' deleted")
