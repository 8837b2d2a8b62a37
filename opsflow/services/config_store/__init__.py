"""
File: __init__.py
Purpose: Package initializer for the configuration store. Exposes ConfigStore (YAML collections and
    JSON flow documents on disk) and its error types.
When Used: Imported by opsflow/main.py, which builds one ConfigStore in the lifespan, and by the
    config, flows and per-service routers to look integrations up.
Why Created: Single import path for on-disk configuration persistence.
"""
from opsflow.services.config_store.service import (
    COLLECTIONS,
    ConfigStore,
    ConfigStoreError,
    FlowNotFoundError,
    InvalidConfigError,
)

__all__ = [
    "COLLECTIONS",
    "ConfigStore",
    "ConfigStoreError",
    "FlowNotFoundError",
    "InvalidConfigError",
]
