"""
File: __init__.py
Purpose: Package initializer for the credentials service. Exposes CredentialService, which stores
    integration credentials as JSON blobs in the secret store.
When Used: Imported by opsflow/main.py (built in the lifespan), the registry and the credentials router.
Why Created: Single import path for credential persistence, independent of the secret backend.
"""
from opsflow.services.credentials.service import CredentialService

__all__ = ["CredentialService"]
