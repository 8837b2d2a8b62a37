"""
File: opsflow/models/schemas.py
Purpose: Pydantic schemas for the integration layer -- integration records and credential bundles,
    the per-service records each adapter produces (GitLab, Jenkins, Keycloak, Kubernetes,
    SonarQube), and the configuration entities persisted on disk (projects, environments,
    mappings, flows).
When Used: Imported by the adapters to build their results, by the config store to (de)serialize
    YAML/JSON files, and by routers as response models.
Why Created: One shared schema library so the adapters, the stores and the API agree on field names
    and serialized shapes without duplication.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FrozenModel(BaseModel):
    """Immutable value record produced fresh on every fetch"""
    model_config = ConfigDict(frozen=True)


# ============================================================================
# Integrations & Credentials
# ============================================================================

class IntegrationType(str, Enum):
    GITLAB = "gitlab"
    JENKINS = "jenkins"
    KUBERNETES = "kubernetes"
    SONARQUBE = "sonarqube"
    KEYCLOAK = "keycloak"


class Integration(BaseModel):
    """Integration configuration (never contains credentials)"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    integration_type: IntegrationType = Field(alias="type")
    name: str
    base_url: str
    # Key of the secret store entry; the integration id is used when unset
    credentials_ref: Optional[str] = None

    @property
    def credentials_key(self) -> str:
        return self.credentials_ref or self.id


class IntegrationCredentials(BaseModel):
    token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    custom: Dict[str, str] = Field(default_factory=dict)


class CredentialsStatus(BaseModel):
    """Which credential fields are set, without exposing their values"""
    key: str
    has_token: bool
    has_username: bool
    has_password: bool
    custom_keys: List[str] = []


# ============================================================================
# GitLab Schemas
# ============================================================================

class GitLabProject(FrozenModel):
    id: int
    name: str
    path: str
    web_url: str


class GitLabPipeline(FrozenModel):
    id: int
    status: str
    ref: str
    created_at: str


class GitLabWebhook(FrozenModel):
    id: int
    url: str
    events: List[str] = []


class GitLabTriggerPipeline(BaseModel):
    ref: str = "main"


# ============================================================================
# Jenkins Schemas
# ============================================================================

class JenkinsJob(FrozenModel):
    # Full path for jobs inside folders, e.g. "team/service/build"
    name: str
    url: str
    color: str


class JenkinsBuildStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    UNSTABLE = "unstable"
    ABORTED = "aborted"
    NOT_BUILT = "notbuilt"
    BUILDING = "building"
    PENDING = "pending"


class JenkinsBuild(FrozenModel):
    number: int
    status: JenkinsBuildStatus
    # Milliseconds since epoch, kept as strings like the Jenkins API numbers they mirror
    timestamp: str
    url: str
    duration: Optional[str] = None


class JenkinsTriggerBuild(BaseModel):
    job: str
    parameters: Optional[Dict[str, str]] = None


# ============================================================================
# Keycloak Schemas
# ============================================================================

class KeycloakRealm(FrozenModel):
    realm: str
    enabled: bool = True


class KeycloakClient(FrozenModel):
    client_id: str
    name: str
    enabled: bool = True


# ============================================================================
# Kubernetes Schemas
# ============================================================================

class K8sNamespace(FrozenModel):
    name: str
    status: str
    created_at: str


class K8sPod(FrozenModel):
    name: str
    namespace: str
    status: str
    containers: List[str] = []
    node: Optional[str] = None


class K8sServicePort(FrozenModel):
    name: Optional[str] = None
    port: int
    target_port: Optional[str] = None
    protocol: str = "TCP"


class K8sService(FrozenModel):
    name: str
    namespace: str
    type: str
    ports: List[K8sServicePort] = []
    endpoint_count: Optional[int] = None


# ============================================================================
# SonarQube Schemas
# ============================================================================

class SonarQubeProject(FrozenModel):
    key: str
    name: str
    qualifier: str


class SonarQubeMetrics(FrozenModel):
    coverage: Optional[float] = None
    bugs: int = 0
    vulnerabilities: int = 0
    code_smells: int = 0
    # sqale_index in minutes, passed through verbatim
    technical_debt: Optional[str] = None


# ============================================================================
# Configuration entities
# ============================================================================

class Project(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    environments: List[str] = []


class Environment(BaseModel):
    id: str
    name: str
    namespace: Optional[str] = None
    project_id: str


class Mapping(BaseModel):
    """Links a repository, a job, a namespace and a service across systems"""
    id: str
    repo_id: Optional[str] = None
    job_id: Optional[str] = None
    namespace: Optional[str] = None
    service_name: Optional[str] = None
    project_id: Optional[str] = None
    environment_id: Optional[str] = None


class FlowMetadata(BaseModel):
    id: str
    name: str
    created_at: str
    updated_at: str


class Flow(BaseModel):
    id: str
    name: str
    created_at: str
    updated_at: str
    nodes: Any = Field(default_factory=list)
    edges: Any = Field(default_factory=list)
    viewport: Optional[Any] = None


class APIResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Any] = None
