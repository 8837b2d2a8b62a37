"""
GitLab API router
"""
from typing import List

from fastapi import APIRouter, Depends

from opsflow.integrations.registry import AdapterRegistry
from opsflow.models.schemas import (
    GitLabPipeline,
    GitLabProject,
    GitLabTriggerPipeline,
    GitLabWebhook,
    Integration,
    IntegrationType,
)
from opsflow.routers.dependencies import get_registry, integration_of_type

router = APIRouter(prefix="/gitlab", tags=["GitLab"])

gitlab_integration = integration_of_type(IntegrationType.GITLAB)


# ============================================================================
# Projects
# ============================================================================

@router.get("/{integration_id}/projects", response_model=List[GitLabProject])
async def list_projects(
    integration: Integration = Depends(gitlab_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    """List GitLab projects visible to the token"""
    async with registry.adapter(integration) as gitlab:
        return await gitlab.fetch_projects()


# ============================================================================
# Pipelines
# ============================================================================

@router.get("/{integration_id}/projects/{project_id}/pipelines", response_model=List[GitLabPipeline])
async def list_pipelines(
    project_id: int,
    integration: Integration = Depends(gitlab_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    """List pipelines for a project"""
    async with registry.adapter(integration) as gitlab:
        return await gitlab.fetch_pipelines(project_id)


@router.post("/{integration_id}/projects/{project_id}/pipelines", response_model=GitLabPipeline)
async def trigger_pipeline(
    project_id: int,
    trigger: GitLabTriggerPipeline,
    integration: Integration = Depends(gitlab_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    """Trigger a new pipeline"""
    async with registry.adapter(integration) as gitlab:
        return await gitlab.trigger_pipeline(project_id, trigger.ref)


# ============================================================================
# Webhooks
# ============================================================================

@router.get("/{integration_id}/projects/{project_id}/webhooks", response_model=List[GitLabWebhook])
async def list_webhooks(
    project_id: int,
    integration: Integration = Depends(gitlab_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    """List project webhooks"""
    async with registry.adapter(integration) as gitlab:
        return await gitlab.fetch_webhooks(project_id)
