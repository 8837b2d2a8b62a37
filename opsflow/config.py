"""
File: opsflow/config.py
Purpose: Central configuration management -- loads settings from environment variables and the
    .env file (OPSFLOW_ prefix): HTTP timeouts and retry policy, on-disk config locations,
    kubeconfig fallbacks, adapter caching and the secret store backend (Vault or memory).
When Used: Imported at application startup by opsflow/main.py, and by the adapter factory and
    registry whenever an adapter is constructed without explicit settings.
Why Created: Keeps every tunable of the integration layer in one Pydantic Settings class instead
    of constants scattered across the five adapters.
"""
import os
from typing import List

from pydantic_settings import BaseSettings


def _default_data_dir() -> str:
    return os.path.join(os.path.expanduser("~"), ".config", "ops-flow")


class Settings(BaseSettings):
    """Application settings"""
    app_name: str = "Ops Flow Backend"
    app_version: str = "0.3.0"
    debug: bool = False
    log_level: str = "INFO"

    # API Settings
    api_prefix: str = "/api/v1"
    cors_origins: list = ["*"]

    # Config persistence (integrations.yaml, projects.yaml, ... and flows/*.json)
    config_dir: str = os.path.join(_default_data_dir(), "config")
    flows_dir: str = os.path.join(_default_data_dir(), "flows")

    # HTTP execution layer
    http_connect_timeout: float = 10.0
    http_request_timeout: float = 30.0
    http_max_retries: int = 3
    http_retry_base_delay: float = 0.5

    # GitLab pagination cap (per_page=100, so 10 pages = 1000 projects)
    gitlab_max_pages: int = 10

    # Kubernetes: tried in order when credentials carry no kubeconfig_path
    kubeconfig_candidates: List[str] = [
        "~/.kube/microk8s-config",
        "~/.kube/config",
    ]

    # Registry
    adapter_cache_enabled: bool = True

    # Secret store: "vault" or "memory"
    secret_backend: str = "vault"
    vault_url: str = "http://127.0.0.1:8200"
    vault_token: str = ""
    vault_mount: str = "secret"
    vault_path_prefix: str = "ops-flow"

    class Config:
        env_prefix = "OPSFLOW_"
        env_file = ".env"
        env_file_encoding = "utf-8"


# Global instance
settings = Settings()
