"""
Jenkins API router
"""
from typing import List

from fastapi import APIRouter, Depends, Query

from opsflow.integrations.registry import AdapterRegistry
from opsflow.models.schemas import (
    APIResponse,
    Integration,
    IntegrationType,
    JenkinsBuild,
    JenkinsJob,
    JenkinsTriggerBuild,
)
from opsflow.routers.dependencies import get_registry, integration_of_type

router = APIRouter(prefix="/jenkins", tags=["Jenkins"])

jenkins_integration = integration_of_type(IntegrationType.JENKINS)


@router.get("/{integration_id}/jobs", response_model=List[JenkinsJob])
async def list_jobs(
    integration: Integration = Depends(jenkins_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    """List all jobs, folders flattened into 'folder/job' names"""
    async with registry.adapter(integration) as jenkins:
        return await jenkins.fetch_jobs()


@router.get("/{integration_id}/builds", response_model=List[JenkinsBuild])
async def list_builds(
    job: str = Query(..., description="Full job name, e.g. folder/sub/job"),
    integration: Integration = Depends(jenkins_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    """List recent builds of a job"""
    async with registry.adapter(integration) as jenkins:
        return await jenkins.fetch_builds(job)


@router.get("/{integration_id}/builds/{build_number}", response_model=JenkinsBuild)
async def get_build(
    build_number: int,
    job: str = Query(...),
    integration: Integration = Depends(jenkins_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    """Get one build"""
    async with registry.adapter(integration) as jenkins:
        return await jenkins.fetch_build_details(job, build_number)


@router.post("/{integration_id}/builds", response_model=APIResponse)
async def trigger_build(
    trigger: JenkinsTriggerBuild,
    integration: Integration = Depends(jenkins_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    """Queue a build, with parameters when given"""
    async with registry.adapter(integration) as jenkins:
        await jenkins.trigger_build(trigger.job, trigger.parameters)
    return APIResponse(success=True, message=f"Build triggered for {trigger.job}")
