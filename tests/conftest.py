"""
Shared pytest fixtures.

Provides:
- Settings pointing at a temporary config directory, with zero retry delay
- In-memory secret store and credentials service
- FastAPI test client wired to both
"""
import pytest
from fastapi.testclient import TestClient

from opsflow.config import Settings
from opsflow.integrations.vault_client import MemorySecretStore
from opsflow.main import create_app
from opsflow.models.schemas import Integration, IntegrationType
from opsflow.services.credentials import CredentialService


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        config_dir=str(tmp_path / "config"),
        flows_dir=str(tmp_path / "flows"),
        http_retry_base_delay=0.0,
        secret_backend="memory",
        kubeconfig_candidates=[str(tmp_path / "no-such-kubeconfig")],
    )


@pytest.fixture
def secret_store() -> MemorySecretStore:
    return MemorySecretStore()


@pytest.fixture
def credential_service(secret_store) -> CredentialService:
    return CredentialService(secret_store)


@pytest.fixture
def client(test_settings, secret_store):
    """Test client with the lifespan running"""
    app = create_app(test_settings, secret_store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def gitlab_integration() -> Integration:
    return Integration(
        id="gl-main",
        type=IntegrationType.GITLAB,
        name="Main GitLab",
        base_url="https://gitlab.example.com",
    )


@pytest.fixture
def jenkins_integration() -> Integration:
    return Integration(
        id="jenkins-ci",
        type=IntegrationType.JENKINS,
        name="CI Jenkins",
        base_url="https://jenkins.example.com",
    )
