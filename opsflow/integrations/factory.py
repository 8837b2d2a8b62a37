"""
File: factory.py
Purpose: Maps an Integration record plus its credentials to a concrete adapter, validating that the
    credential fields the service needs are present.
When Used: Called by the AdapterRegistry every time it has to construct a fresh adapter.
Why Created: Keeps per-service credential rules (token vs username/password, kubeconfig lookup) in one
    place so routers and the registry never branch on integration type.
"""
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from opsflow.config import Settings, settings as default_settings
from opsflow.integrations.base import BaseIntegration
from opsflow.integrations.errors import ConfigError
from opsflow.integrations.gitlab import GitLabIntegration
from opsflow.integrations.jenkins import JenkinsIntegration
from opsflow.integrations.keycloak import KeycloakIntegration
from opsflow.integrations.kubernetes import KubernetesIntegration, resolve_kubeconfig_path
from opsflow.integrations.sonarqube import SonarQubeIntegration
from opsflow.models.schemas import Integration, IntegrationCredentials, IntegrationType


@dataclass
class PendingAdapter:
    """An adapter whose construction still has to be awaited (kubeconfig loading)"""
    integration_type: IntegrationType
    kubeconfig_path: str

    async def build(self) -> BaseIntegration:
        return await KubernetesIntegration.create(self.kubeconfig_path)


AdapterOrPending = Union[BaseIntegration, PendingAdapter]


def _value(value: Optional[str]) -> Optional[str]:
    # Empty strings from the credentials form count as missing
    return value if value else None


def _basic_auth_pair(label: str, credentials: IntegrationCredentials):
    username = _value(credentials.username)
    if not username:
        raise ConfigError(f"{label} integration requires a username")
    password = _value(credentials.password) or _value(credentials.token)
    if not password:
        raise ConfigError(f"{label} integration requires a password or token")
    return username, password


def _gitlab(integration: Integration, credentials: IntegrationCredentials, settings: Settings):
    token = _value(credentials.token)
    if not token:
        raise ConfigError(
            "GitLab integration requires a Personal Access Token. "
            "GitLab API v4 does not support Basic Auth with username/password."
        )
    return GitLabIntegration(integration.base_url, token, settings=settings)


def _jenkins(integration: Integration, credentials: IntegrationCredentials, settings: Settings):
    username, password = _basic_auth_pair("Jenkins", credentials)
    return JenkinsIntegration(integration.base_url, username, password, settings=settings)


def _keycloak(integration: Integration, credentials: IntegrationCredentials, settings: Settings):
    username, password = _basic_auth_pair("Keycloak", credentials)
    return KeycloakIntegration(integration.base_url, username, password, settings=settings)


def _sonarqube(integration: Integration, credentials: IntegrationCredentials, settings: Settings):
    token = _value(credentials.token)
    if not token:
        raise ConfigError("SonarQube integration requires a token")
    return SonarQubeIntegration(integration.base_url, token, settings=settings)


def _kubernetes(integration: Integration, credentials: IntegrationCredentials, settings: Settings):
    path = resolve_kubeconfig_path(credentials, settings.kubeconfig_candidates)
    return PendingAdapter(IntegrationType.KUBERNETES, path)


ADAPTER_BUILDERS: Dict[IntegrationType, Callable[..., AdapterOrPending]] = {
    IntegrationType.GITLAB: _gitlab,
    IntegrationType.JENKINS: _jenkins,
    IntegrationType.KEYCLOAK: _keycloak,
    IntegrationType.SONARQUBE: _sonarqube,
    IntegrationType.KUBERNETES: _kubernetes,
}


def create_adapter(
    integration: Integration,
    credentials: IntegrationCredentials,
    settings: Optional[Settings] = None,
) -> AdapterOrPending:
    """
    Validate credentials for the integration type and construct its adapter.

    Returns a ready adapter, or a PendingAdapter when construction has to
    do I/O first (Kubernetes).

    Raises:
        ConfigError: a credential field the service needs is missing
    """
    builder = ADAPTER_BUILDERS.get(integration.integration_type)
    if builder is None:
        raise ConfigError(f"Unsupported integration type: {integration.integration_type}")
    return builder(integration, credentials, settings or default_settings)


async def build_adapter(
    integration: Integration,
    credentials: IntegrationCredentials,
    settings: Optional[Settings] = None,
) -> BaseIntegration:
    """create_adapter() with pending constructions completed"""
    adapter = create_adapter(integration, credentials, settings)
    if isinstance(adapter, PendingAdapter):
        return await adapter.build()
    return adapter
