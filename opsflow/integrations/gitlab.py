"""
GitLab API Integration

Personal Access Token authentication only (PRIVATE-TOKEN header): GitLab API v4
does not support Basic Auth with username/password.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from opsflow.config import Settings
from opsflow.integrations.base import HTTPIntegration
from opsflow.integrations.errors import ConfigError, malformed_response, truncate
from opsflow.models.schemas import (
    GitLabPipeline,
    GitLabProject,
    GitLabWebhook,
    IntegrationType,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v4"

# Flags on a project hook, exposed as the webhook's event list
WEBHOOK_EVENT_FLAGS = (
    "push_events",
    "tag_push_events",
    "merge_requests_events",
    "issues_events",
    "confidential_issues_events",
    "note_events",
    "confidential_note_events",
    "job_events",
    "pipeline_events",
    "wiki_page_events",
    "deployment_events",
    "releases_events",
)


class GitLabIntegration(HTTPIntegration):
    """GitLab API integration"""

    display_name = "GitLab"
    integration_type = IntegrationType.GITLAB

    def __init__(
        self,
        base_url: str,
        token: str,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(base_url, client=client, settings=settings)
        self._token = token

    @staticmethod
    def normalize_base_url(base_url: str) -> str:
        """Instance root without trailing slash; a pasted '/api/v4' suffix is dropped"""
        url = base_url.strip().rstrip("/")
        if url.endswith(API_PREFIX):
            url = url[: -len(API_PREFIX)].rstrip("/")
        return url

    def api_url(self, endpoint: str) -> str:
        return f"{self.base_url}{API_PREFIX}{endpoint}"

    def _get_headers(self) -> Dict[str, str]:
        headers = super()._get_headers()
        headers["PRIVATE-TOKEN"] = self._token
        return headers

    def _parse_json(self, response: httpx.Response) -> Any:
        """Reject HTML and empty bodies before trusting the JSON parser"""
        url = str(response.request.url) if response.request else "<unknown>"
        content_type = response.headers.get("content-type", "")
        body = response.text.strip()

        if "text/html" in content_type or body.startswith("<"):
            logger.error(f"GitLab returned HTML instead of JSON for {url}")
            raise ConfigError(
                f"GitLab returned an HTML page instead of JSON for {url}. "
                f"The configured base URL ({self.base_url}) probably points at the web UI, "
                f"a login page or a proxy rather than the GitLab instance root "
                f"(expected something like https://gitlab.example.com). "
                f"Response starts with: {truncate(body, 200)!r}"
            )
        if not body:
            logger.error(f"GitLab returned an empty response for {url}")
            raise ConfigError(
                f"GitLab returned an empty response for {url}. "
                f"Check that the configured base URL ({self.base_url}) is the GitLab "
                f"instance root and that the token has the 'read_api' scope."
            )
        return super()._parse_json(response)

    async def _get_paginated(self, endpoint: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Follow X-Next-Page headers up to the configured page cap"""
        items: List[Dict[str, Any]] = []
        page: Optional[str] = "1"
        fetched = 0
        while page and fetched < self.settings.gitlab_max_pages:
            response = await self._request("GET", endpoint, params={**params, "page": page})
            data = self._parse_json(response)
            if not isinstance(data, list):
                raise ConfigError(f"Invalid response format for {endpoint}: expected a list")
            items.extend(data)
            fetched += 1
            page = response.headers.get("x-next-page") or None
        if page:
            logger.warning(
                f"GitLab pagination for {endpoint} stopped after {fetched} pages; more results exist"
            )
        return items

    async def test_connection(self) -> None:
        # Current user: lightweight and requires a valid token
        await self.get_json("/user")

    # ========================================================================
    # Projects
    # ========================================================================

    async def fetch_projects(self) -> List[GitLabProject]:
        """List projects visible to the token"""
        data = await self._get_paginated("/projects", {"per_page": 100})
        return [_project(p) for p in _records(data, ("id", "name", "web_url"), "project")]

    # ========================================================================
    # Pipelines
    # ========================================================================

    async def fetch_pipelines(self, project_id: int) -> List[GitLabPipeline]:
        """List the most recent pipelines of a project"""
        data = await self.get_json(f"/projects/{project_id}/pipelines", params={"per_page": 100})
        return [_pipeline(p) for p in _records(data, ("id", "status", "ref"), "pipeline")]

    async def trigger_pipeline(self, project_id: int, ref: str) -> GitLabPipeline:
        """Create a new pipeline for a branch or tag"""
        logger.info(f"Triggering GitLab pipeline for project {project_id} on {ref}")
        response = await self.post(f"/projects/{project_id}/pipeline", json={"ref": ref})
        data = self._parse_json(response)
        return _pipeline(_records([data], ("id", "status", "ref"), "pipeline")[0])

    # ========================================================================
    # Webhooks
    # ========================================================================

    async def fetch_webhooks(self, project_id: int) -> List[GitLabWebhook]:
        """List project hooks"""
        data = await self.get_json(f"/projects/{project_id}/hooks")
        return [_webhook(h) for h in _records(data, ("id", "url"), "webhook")]


def _records(data: Any, required: tuple, kind: str) -> List[Dict[str, Any]]:
    """Validate a list of API objects carries the fields a model needs"""
    if not isinstance(data, list):
        raise ConfigError(f"Invalid response format: expected a list of {kind}s")
    for item in data:
        if not isinstance(item, dict):
            raise ConfigError(f"Invalid {kind} format: expected an object")
        missing = [field for field in required if item.get(field) is None]
        if missing:
            raise ConfigError(f"Invalid {kind} format: missing {', '.join(repr(m) for m in missing)}")
    return data


def _project(p: Dict[str, Any]) -> GitLabProject:
    with malformed_response("project"):
        return GitLabProject(
            id=p["id"],
            name=p["name"],
            path=p.get("path_with_namespace") or p["path"],
            web_url=p["web_url"],
        )


def _pipeline(p: Dict[str, Any]) -> GitLabPipeline:
    with malformed_response("pipeline"):
        return GitLabPipeline(
            id=p["id"],
            status=p["status"],
            ref=p["ref"],
            created_at=p.get("created_at") or "",
        )


def _webhook(h: Dict[str, Any]) -> GitLabWebhook:
    with malformed_response("webhook"):
        return GitLabWebhook(
            id=h["id"],
            url=h["url"],
            events=[flag for flag in WEBHOOK_EVENT_FLAGS if h.get(flag)],
        )
