"""
SonarQube API router
"""
from typing import List

from fastapi import APIRouter, Depends

from opsflow.integrations.registry import AdapterRegistry
from opsflow.models.schemas import Integration, IntegrationType, SonarQubeMetrics, SonarQubeProject
from opsflow.routers.dependencies import get_registry, integration_of_type

router = APIRouter(prefix="/sonarqube", tags=["SonarQube"])

sonarqube_integration = integration_of_type(IntegrationType.SONARQUBE)


@router.get("/{integration_id}/projects", response_model=List[SonarQubeProject])
async def list_projects(
    integration: Integration = Depends(sonarqube_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    """List SonarQube projects"""
    async with registry.adapter(integration) as sonarqube:
        return await sonarqube.fetch_projects()


@router.get("/{integration_id}/projects/{project_key}/metrics", response_model=SonarQubeMetrics)
async def get_project_metrics(
    project_key: str,
    integration: Integration = Depends(sonarqube_integration),
    registry: AdapterRegistry = Depends(get_registry),
):
    """Coverage, bugs, vulnerabilities, code smells and technical debt of a project"""
    async with registry.adapter(integration) as sonarqube:
        return await sonarqube.fetch_metrics(project_key)
