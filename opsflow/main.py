"""
File: opsflow/main.py
Purpose: FastAPI application entry point -- creates the app, builds the config store, credentials
    service and adapter registry in the lifespan, registers the routers under /api/v1, configures
    CORS and logging, and serializes integration errors into their tagged JSON form.
When Used: Loaded by Uvicorn ('uvicorn opsflow.main:app') or run directly with 'python -m opsflow.main'.
    Tests call create_app() with their own settings and an in-memory secret store.
Why Created: Single composition root wiring the integration layer to HTTP.

Integrated services:
- GitLab: projects, pipelines, webhooks
- Jenkins: jobs (folders flattened), builds
- Keycloak: realms, clients
- Kubernetes: namespaces, pods, services
- SonarQube: projects, quality metrics
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from opsflow.config import Settings, settings as default_settings
from opsflow.integrations.errors import (
    ApiError,
    AuthError,
    ConfigError,
    IntegrationError,
    NetworkError,
    NotFound,
)
from opsflow.integrations.registry import AdapterRegistry
from opsflow.integrations.vault_client import SecretStore, SecretStoreError, create_secret_store
from opsflow.routers import config, credentials, flows, gitlab, integrations, jenkins, keycloak, kubernetes, sonarqube
from opsflow.services.config_store import ConfigStore, ConfigStoreError
from opsflow.services.credentials import CredentialService

logger = logging.getLogger(__name__)

# HTTP status for each integration error variant
ERROR_STATUS = {
    AuthError: 401,
    NotFound: 404,
    ConfigError: 400,
    NetworkError: 502,
    ApiError: 502,
}


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def create_app(app_settings: Optional[Settings] = None, secret_store: Optional[SecretStore] = None) -> FastAPI:
    app_settings = app_settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler"""
        logger.info(f"Starting {app_settings.app_name} v{app_settings.app_version}")
        app.state.config_store = ConfigStore(app_settings.config_dir, app_settings.flows_dir)
        app.state.credentials = CredentialService(secret_store or create_secret_store(app_settings))
        app.state.registry = AdapterRegistry(app.state.credentials, app_settings)
        logger.info(f"Config directory: {app.state.config_store.config_dir}")
        yield
        logger.info("Shutting down...")
        await app.state.registry.close()

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description=__doc__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for module in (config, integrations, credentials, flows, gitlab, jenkins, keycloak, kubernetes, sonarqube):
        app.include_router(module.router, prefix=app_settings.api_prefix)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "version": app_settings.app_version}

    # ========================================================================
    # Error handlers
    # ========================================================================

    @app.exception_handler(IntegrationError)
    async def integration_error_handler(request: Request, exc: IntegrationError):
        status_code = ERROR_STATUS.get(type(exc), 500)
        logger.warning(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(ConfigStoreError)
    async def config_store_error_handler(request: Request, exc: ConfigStoreError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc)},
        )

    @app.exception_handler(SecretStoreError)
    async def secret_store_error_handler(request: Request, exc: SecretStoreError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=503, content={"success": False, "message": str(exc)})

    return app


configure_logging(default_settings.log_level)
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
