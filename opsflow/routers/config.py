"""
Configuration router: whole-collection load/save for projects, environments,
integrations and mappings. Collections are replaced wholesale on PUT.
"""
from typing import List

from fastapi import APIRouter, Depends

from opsflow.integrations.registry import AdapterRegistry
from opsflow.models.schemas import Environment, Integration, Mapping, Project
from opsflow.routers.dependencies import get_config_store, get_registry
from opsflow.services.config_store import ConfigStore

router = APIRouter(prefix="/config", tags=["Configuration"])


# ============================================================================
# Projects
# ============================================================================

@router.get("/projects", response_model=List[Project])
def load_projects(store: ConfigStore = Depends(get_config_store)):
    return store.load("projects")


@router.put("/projects", response_model=List[Project])
def save_projects(projects: List[Project], store: ConfigStore = Depends(get_config_store)):
    store.save("projects", projects)
    return projects


# ============================================================================
# Environments
# ============================================================================

@router.get("/environments", response_model=List[Environment])
def load_environments(store: ConfigStore = Depends(get_config_store)):
    return store.load("environments")


@router.put("/environments", response_model=List[Environment])
def save_environments(environments: List[Environment], store: ConfigStore = Depends(get_config_store)):
    store.save("environments", environments)
    return environments


# ============================================================================
# Integrations
# ============================================================================

@router.get("/integrations", response_model=List[Integration], response_model_by_alias=True)
def load_integrations(store: ConfigStore = Depends(get_config_store)):
    return store.load_integrations()


@router.put("/integrations", response_model=List[Integration], response_model_by_alias=True)
async def save_integrations(
    integrations: List[Integration],
    store: ConfigStore = Depends(get_config_store),
    registry: AdapterRegistry = Depends(get_registry),
):
    """Replace the integration list; adapters of removed integrations are dropped"""
    previous = {i.id for i in store.load_integrations()}
    store.save("integrations", integrations)
    for removed in previous - {i.id for i in integrations}:
        await registry.invalidate(removed)
    return integrations


# ============================================================================
# Mappings
# ============================================================================

@router.get("/mappings", response_model=List[Mapping])
def load_mappings(store: ConfigStore = Depends(get_config_store)):
    return store.load("mappings")


@router.put("/mappings", response_model=List[Mapping])
def save_mappings(mappings: List[Mapping], store: ConfigStore = Depends(get_config_store)):
    store.save("mappings", mappings)
    return mappings
