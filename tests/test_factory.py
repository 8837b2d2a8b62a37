"""
Tests for the adapter factory.
"""
import pytest

from opsflow.integrations.errors import ConfigError
from opsflow.integrations.factory import PendingAdapter, build_adapter, create_adapter
from opsflow.integrations.gitlab import GitLabIntegration
from opsflow.integrations.jenkins import JenkinsIntegration
from opsflow.integrations.keycloak import KeycloakIntegration
from opsflow.integrations.sonarqube import SonarQubeIntegration
from opsflow.models.schemas import Integration, IntegrationCredentials, IntegrationType


def integration(integration_type, base_url="https://svc.example.com"):
    return Integration(id="i1", type=integration_type, name="Service", base_url=base_url)


class TestGitLab:
    def test_token_builds_adapter(self, test_settings):
        adapter = create_adapter(
            integration(IntegrationType.GITLAB), IntegrationCredentials(token="glpat"), test_settings
        )
        assert isinstance(adapter, GitLabIntegration)

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token(self, token, test_settings):
        credentials = IntegrationCredentials(token=token, username="bob", password="pw")
        with pytest.raises(ConfigError) as exc_info:
            create_adapter(integration(IntegrationType.GITLAB), credentials, test_settings)
        assert "Personal Access Token" in exc_info.value.message


class TestBasicAuthServices:
    def test_jenkins_token_fallback(self, test_settings):
        credentials = IntegrationCredentials(username="bob", password=None, token="t")
        adapter = create_adapter(integration(IntegrationType.JENKINS), credentials, test_settings)
        assert isinstance(adapter, JenkinsIntegration)
        assert adapter._password == "t"

    def test_password_preferred_over_token(self, test_settings):
        credentials = IntegrationCredentials(username="bob", password="pw", token="t")
        adapter = create_adapter(integration(IntegrationType.KEYCLOAK), credentials, test_settings)
        assert isinstance(adapter, KeycloakIntegration)
        assert adapter._password == "pw"

    @pytest.mark.parametrize("label,kind", [("Jenkins", IntegrationType.JENKINS), ("Keycloak", IntegrationType.KEYCLOAK)])
    def test_missing_username(self, label, kind, test_settings):
        with pytest.raises(ConfigError) as exc_info:
            create_adapter(integration(kind), IntegrationCredentials(password="pw"), test_settings)
        assert exc_info.value.message == f"{label} integration requires a username"

    def test_missing_secret(self, test_settings):
        with pytest.raises(ConfigError) as exc_info:
            create_adapter(
                integration(IntegrationType.JENKINS), IntegrationCredentials(username="bob", password=""), test_settings
            )
        assert exc_info.value.message == "Jenkins integration requires a password or token"


class TestSonarQube:
    def test_token_required(self, test_settings):
        with pytest.raises(ConfigError) as exc_info:
            create_adapter(integration(IntegrationType.SONARQUBE), IntegrationCredentials(), test_settings)
        assert exc_info.value.message == "SonarQube integration requires a token"

    def test_builds_adapter(self, test_settings):
        adapter = create_adapter(
            integration(IntegrationType.SONARQUBE), IntegrationCredentials(token="squ"), test_settings
        )
        assert isinstance(adapter, SonarQubeIntegration)


class TestKubernetes:
    def test_returns_pending_adapter(self, test_settings):
        credentials = IntegrationCredentials(custom={"kubeconfig_path": "/etc/kube/config"})
        pending = create_adapter(integration(IntegrationType.KUBERNETES), credentials, test_settings)
        assert pending == PendingAdapter(IntegrationType.KUBERNETES, "/etc/kube/config")

    def test_no_kubeconfig(self, test_settings):
        with pytest.raises(ConfigError):
            create_adapter(integration(IntegrationType.KUBERNETES), IntegrationCredentials(), test_settings)

    @pytest.mark.asyncio
    async def test_build_adapter_surfaces_missing_file(self, test_settings, tmp_path):
        credentials = IntegrationCredentials(custom={"kubeconfig_path": str(tmp_path / "absent")})
        with pytest.raises(ConfigError) as exc_info:
            await build_adapter(integration(IntegrationType.KUBERNETES), credentials, test_settings)
        assert "Kubeconfig file not found" in exc_info.value.message


class TestBuildAdapter:
    @pytest.mark.asyncio
    async def test_ready_adapter_passed_through(self, test_settings):
        adapter = await build_adapter(
            integration(IntegrationType.GITLAB, "https://gitlab.com/"), IntegrationCredentials(token="x"), test_settings
        )
        assert adapter.get_base_url() == "https://gitlab.com"
        await adapter.close()
