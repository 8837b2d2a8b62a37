"""
Kubernetes API router
"""
from typing import List

from fastapi import APIRouter, Depends

from opsflow.integrations.registry import AdapterRegistry
from opsflow.models.schemas import Integration, IntegrationType, K8sNamespace, K8sPod, K8sService
from opsflow.routers.dependencies import get_registry, integration_of_type

router = APIRouter(prefix="/kubernetes", tags=["Kubernetes"])

kubernetes_integration = integration_of_type(IntegrationType.KUBERNETES)


@router.get("/{integration_id}/namespaces", response_model=List[K8sNamespace])
async def list_namespaces(
    integration: Integration = Depends(kubernetes_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    async with registry.adapter(integration) as cluster:
        return await cluster.fetch_namespaces()


@router.get("/{integration_id}/namespaces/{namespace}/pods", response_model=List[K8sPod])
async def list_pods(
    namespace: str,
    integration: Integration = Depends(kubernetes_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    async with registry.adapter(integration) as cluster:
        return await cluster.fetch_pods(namespace)


@router.get("/{integration_id}/namespaces/{namespace}/pods/{pod_name}", response_model=K8sPod)
async def get_pod(
    namespace: str,
    pod_name: str,
    integration: Integration = Depends(kubernetes_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    async with registry.adapter(integration) as cluster:
        return await cluster.fetch_pod_details(namespace, pod_name)


@router.get("/{integration_id}/namespaces/{namespace}/services", response_model=List[K8sService])
async def list_services(
    namespace: str,
    integration: Integration = Depends(kubernetes_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    async with registry.adapter(integration) as cluster:
        return await cluster.fetch_services(namespace)
