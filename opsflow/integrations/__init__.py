"""
Integration adapters for GitLab, Jenkins, Keycloak, Kubernetes and SonarQube.

Adapters are obtained through opsflow.integrations.registry.AdapterRegistry;
every failure they raise is an opsflow.integrations.errors.IntegrationError.
"""
