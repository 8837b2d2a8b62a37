"""
File: kubernetes.py
Purpose: Kubernetes adapter built on the official kubernetes client. Authenticates from a kubeconfig
         file and reads namespaces, pods and services through CoreV1Api.
When Used: Behind the /kubernetes routes. Construction loads a kubeconfig from disk, so the factory
           hands back a PendingAdapter and build_adapter() awaits KubernetesIntegration.create().
Why Created: The cluster API is not plain JSON-over-HTTP with a token; kubeconfig contexts carry
             certificates, exec plugins and so on, which the official client already understands.
"""
import asyncio
import logging
import os
from functools import partial
from typing import Any, Callable, List, Optional, Sequence

import urllib3
import yaml
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from opsflow.integrations.base import BaseIntegration
from opsflow.integrations.errors import ConfigError, NetworkError, NotFound
from opsflow.models.schemas import (
    IntegrationCredentials,
    IntegrationType,
    K8sNamespace,
    K8sPod,
    K8sService,
    K8sServicePort,
)

logger = logging.getLogger(__name__)

KUBECONFIG_PATH_KEY = "kubeconfig_path"
DEFAULT_KUBECONFIG_CANDIDATES = ("~/.kube/microk8s-config", "~/.kube/config")

CLUSTER_ERRORS = (ApiException, urllib3.exceptions.HTTPError, OSError)
# Raised by the client while deserializing a response into its models
DESERIALIZE_ERRORS = (ValueError, TypeError)


def resolve_kubeconfig_path(
    credentials: IntegrationCredentials,
    candidates: Sequence[str] = DEFAULT_KUBECONFIG_CANDIDATES,
) -> str:
    """Explicit custom path first, then the first default kubeconfig that exists"""
    explicit = credentials.custom.get(KUBECONFIG_PATH_KEY)
    if explicit:
        return explicit
    for candidate in candidates:
        if os.path.exists(os.path.expanduser(candidate)):
            return candidate
    raise ConfigError(
        "Kubernetes integration requires a kubeconfig_path in custom fields "
        "or default kubeconfig file"
    )


# ============================================================================
# Mapping from client models
# ============================================================================

def namespace_from_model(ns: Any) -> K8sNamespace:
    created = ns.metadata.creation_timestamp
    return K8sNamespace(
        name=ns.metadata.name or "",
        status=(ns.status.phase if ns.status else None) or "Unknown",
        created_at=created.isoformat() if created else "Unknown",
    )


def pod_status(status: Any) -> str:
    """Phase when reported, else derived from the first container state that says anything"""
    if status is None:
        return "Unknown"
    if status.phase:
        return status.phase
    for cs in status.container_statuses or []:
        if cs.state is None:
            continue
        if cs.state.waiting is not None:
            return "Pending"
        if cs.state.terminated is not None:
            return "Terminated"
    return "Unknown"


def pod_from_model(pod: Any, namespace: str) -> K8sPod:
    spec = pod.spec
    return K8sPod(
        name=pod.metadata.name or "",
        namespace=pod.metadata.namespace or namespace,
        status=pod_status(pod.status),
        containers=[c.name for c in spec.containers] if spec else [],
        node=spec.node_name if spec else None,
    )


def service_from_model(svc: Any, namespace: str) -> K8sService:
    spec = svc.spec
    ports = [
        K8sServicePort(
            name=p.name,
            port=p.port,
            target_port=str(p.target_port) if p.target_port is not None else None,
            protocol=p.protocol or "TCP",
        )
        for p in ((spec.ports if spec else None) or [])
    ]
    endpoint_count = None
    load_balancer = svc.status.load_balancer if svc.status else None
    if load_balancer is not None and load_balancer.ingress is not None:
        endpoint_count = len(load_balancer.ingress)
    return K8sService(
        name=svc.metadata.name or "",
        namespace=svc.metadata.namespace or namespace,
        type=(spec.type if spec else None) or "ClusterIP",
        ports=ports,
        endpoint_count=endpoint_count,
    )


# ============================================================================
# Adapter
# ============================================================================

class KubernetesIntegration(BaseIntegration):
    """Kubernetes cluster integration (kubeconfig authentication)"""

    display_name = "Kubernetes"
    integration_type = IntegrationType.KUBERNETES

    def __init__(self, kubeconfig_path: str, api_client: Any, core_api: Optional[Any] = None):
        self.kubeconfig_path = kubeconfig_path
        self.api_client = api_client
        self.core_api = core_api or k8s_client.CoreV1Api(api_client)

    @classmethod
    async def create(cls, kubeconfig_path: str) -> "KubernetesIntegration":
        """Load the kubeconfig (off the event loop) and build the adapter"""
        path = os.path.expanduser(kubeconfig_path)
        logger.debug(f"Creating Kubernetes adapter with kubeconfig: {path}")
        if not os.path.exists(path):
            raise ConfigError(f"Kubeconfig file not found: {path}")

        loop = asyncio.get_running_loop()
        try:
            api_client = await loop.run_in_executor(
                None, partial(k8s_config.new_client_from_config, config_file=path)
            )
        except (ConfigException, yaml.YAMLError, OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to load kubeconfig {path}: {e}")
            raise ConfigError(f"Failed to load kubeconfig: {e}")
        return cls(path, api_client)

    def get_base_url(self) -> str:
        return self.kubeconfig_path

    async def _call(self, what: str, fn: Callable, *args, **kwargs) -> Any:
        """Run a blocking client call in the default executor, classifying failures"""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(fn, *args, **kwargs))
        except CLUSTER_ERRORS as e:
            logger.error(f"Failed to {what}: {e}")
            raise NetworkError(f"Failed to {what}: {e}")
        except DESERIALIZE_ERRORS as e:
            logger.error(f"Unexpected cluster response while trying to {what}: {e}")
            raise ConfigError(f"Failed to {what}: unexpected response from cluster: {e}")

    async def test_connection(self) -> None:
        await self.fetch_namespaces()

    async def fetch_namespaces(self) -> List[K8sNamespace]:
        logger.debug("Fetching Kubernetes namespaces")
        result = await self._call("list namespaces", self.core_api.list_namespace)
        return [namespace_from_model(ns) for ns in result.items]

    async def fetch_pods(self, namespace: str) -> List[K8sPod]:
        logger.debug(f"Fetching Kubernetes pods in namespace: {namespace}")
        result = await self._call("list pods", self.core_api.list_namespaced_pod, namespace)
        return [pod_from_model(p, namespace) for p in result.items]

    async def fetch_services(self, namespace: str) -> List[K8sService]:
        logger.debug(f"Fetching Kubernetes services in namespace: {namespace}")
        result = await self._call("list services", self.core_api.list_namespaced_service, namespace)
        return [service_from_model(s, namespace) for s in result.items]

    async def fetch_pod_details(self, namespace: str, pod_name: str) -> K8sPod:
        logger.debug(f"Fetching Kubernetes pod {namespace}/{pod_name}")
        pod = await self._call("get pod", self._read_pod, namespace, pod_name)
        return pod_from_model(pod, namespace)

    def _read_pod(self, namespace: str, pod_name: str) -> Any:
        # NotFound is raised inside the executor so it escapes _call unclassified
        try:
            return self.core_api.read_namespaced_pod(pod_name, namespace)
        except ApiException as e:
            if e.status == 404:
                raise NotFound()
            raise

    async def close(self):
        self.api_client.close()
