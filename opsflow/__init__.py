"""
File: opsflow/__init__.py
Purpose: Package initializer for the Ops Flow backend, which aggregates GitLab, Jenkins,
    Keycloak, Kubernetes and SonarQube data behind one adapter interface.
When Used: Imported automatically when any module under the 'opsflow' package is loaded.
Why Created: Marks the 'opsflow' directory as a Python package, enabling imports like
    'from opsflow.config import settings' and 'from opsflow.integrations import registry'.
"""
__version__ = "0.3.0"
