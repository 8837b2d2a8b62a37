"""
File: jenkins.py
Purpose: Jenkins REST API adapter for jobs and builds. Walks folder hierarchies breadth-first,
         maps build results onto JenkinsBuildStatus and triggers builds (with a CSRF crumb
         when the server issues one).
When Used: Behind the /jenkins routes, always obtained through the AdapterRegistry.
Why Created: Jenkins folders hide jobs one level down per folder; the traversal flattens them
             into "folder/sub/job" paths the rest of the system can address.
"""
import logging
from collections import deque
from typing import Any, Deque, Dict, List, Optional
from urllib.parse import quote

import httpx

from opsflow.config import Settings
from opsflow.integrations.base import HTTPIntegration
from opsflow.integrations.errors import ConfigError, IntegrationError, NotFound, malformed_response
from opsflow.models.schemas import (
    IntegrationType,
    JenkinsBuild,
    JenkinsBuildStatus,
    JenkinsJob,
)

logger = logging.getLogger(__name__)

JOB_TREE = "jobs[name,url,color,_class]"
BUILD_TREE = "builds[number,result,timestamp,url,duration]"

RESULT_STATUS = {
    "SUCCESS": JenkinsBuildStatus.SUCCESS,
    "FAILURE": JenkinsBuildStatus.FAILURE,
    "UNSTABLE": JenkinsBuildStatus.UNSTABLE,
    "ABORTED": JenkinsBuildStatus.ABORTED,
    "NOT_BUILT": JenkinsBuildStatus.NOT_BUILT,
}


def parse_build_status(result: Optional[str], building: Optional[bool] = None) -> JenkinsBuildStatus:
    """
    Map a Jenkins build ``result`` onto JenkinsBuildStatus.

    A missing result means the build has not finished. The list view has no
    ``building`` flag (None) and reports it as building; the detail view
    distinguishes a running build from one still waiting in the queue.
    Unrecognized results fall back to notbuilt.
    """
    if result is None:
        if building is None or building:
            return JenkinsBuildStatus.BUILDING
        return JenkinsBuildStatus.PENDING
    return RESULT_STATUS.get(result, JenkinsBuildStatus.NOT_BUILT)


def job_path(name: str) -> str:
    """'a/b/c' -> '/job/a/job/b/job/c' with every segment percent-encoded"""
    segments = [s for s in name.split("/") if s]
    if not segments:
        raise ConfigError("Jenkins job name must not be empty")
    return "".join(f"/job/{quote(s, safe='')}" for s in segments)


def _is_folder(item: Dict[str, Any]) -> bool:
    # Folders have _class like "com.cloudbees.hudson.plugins.folder.Folder"
    class_name = item.get("_class")
    return (isinstance(class_name, str) and "Folder" in class_name) or item.get("color") == "folder"


def _build(data: Any, building: Optional[bool] = None) -> JenkinsBuild:
    if not isinstance(data, dict):
        raise ConfigError("Invalid build format: expected an object")
    for field in ("number", "url", "timestamp"):
        if data.get(field) is None:
            raise ConfigError(f"Invalid build format: missing '{field}'")
    duration = data.get("duration")
    with malformed_response("build"):
        return JenkinsBuild(
            number=data["number"],
            status=parse_build_status(data.get("result"), building),
            timestamp=str(data["timestamp"]),
            url=data["url"],
            duration=str(duration) if duration is not None else None,
        )


class JenkinsIntegration(HTTPIntegration):
    """Jenkins REST API integration"""

    display_name = "Jenkins"
    integration_type = IntegrationType.JENKINS

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(base_url, client=client, settings=settings)
        self._username = username
        self._password = password

    def _get_auth(self) -> Optional[httpx.Auth]:
        # Jenkins accepts an API token in place of the password
        return httpx.BasicAuth(self._username, self._password)

    async def test_connection(self) -> None:
        await self.get_json("/api/json", params={"tree": "nodeName"})

    # ========================================================================
    # Jobs
    # ========================================================================

    async def fetch_jobs(self) -> List[JenkinsJob]:
        """All jobs, with folders expanded breadth-first into 'folder/job' names"""
        jobs: List[JenkinsJob] = []
        queue: Deque[str] = deque([""])

        while queue:
            path = queue.popleft()
            endpoint = f"{job_path(path)}/api/json" if path else "/api/json"
            try:
                data = await self.get_json(endpoint, params={"tree": JOB_TREE})
            except IntegrationError as e:
                if not path:
                    raise
                logger.warning(f"Failed to fetch from path {path}: {e}")
                continue

            items = data.get("jobs") if isinstance(data, dict) else None
            if not isinstance(items, list):
                if not path:
                    raise ConfigError("Invalid response format: missing 'jobs' array")
                logger.warning(f"Invalid response format for path {path}: missing 'jobs' array")
                continue

            for item in items:
                if not isinstance(item, dict):
                    continue
                name, url = item.get("name"), item.get("url")
                if not (name and url and isinstance(name, str) and isinstance(url, str)):
                    continue
                full_name = f"{path}/{name}" if path else name
                if _is_folder(item):
                    queue.append(full_name)
                else:
                    with malformed_response("job"):
                        jobs.append(
                            JenkinsJob(name=full_name, url=url, color=item.get("color") or "notbuilt")
                        )

        return jobs

    # ========================================================================
    # Builds
    # ========================================================================

    async def fetch_builds(self, job_name: str) -> List[JenkinsBuild]:
        """Recent builds of a job"""
        data = await self.get_json(f"{job_path(job_name)}/api/json", params={"tree": BUILD_TREE})
        builds = data.get("builds") if isinstance(data, dict) else None
        if not isinstance(builds, list):
            raise ConfigError("Invalid response format: missing 'builds' array")
        return [_build(b) for b in builds]

    async def fetch_build_details(self, job_name: str, build_number: int) -> JenkinsBuild:
        """One build, telling a running build apart from a queued one"""
        data = await self.get_json(f"{job_path(job_name)}/{build_number}/api/json")
        if not isinstance(data, dict):
            raise ConfigError("Invalid build format: expected an object")
        return _build(data, building=bool(data.get("building")))

    async def _crumb_header(self) -> Dict[str, str]:
        """CSRF crumb header, or nothing when the server has crumbs disabled"""
        try:
            data = await self.get_json("/crumbIssuer/api/json")
        except NotFound:
            return {}
        if not isinstance(data, dict) or not data.get("crumb"):
            return {}
        return {str(data.get("crumbRequestField") or "Jenkins-Crumb"): str(data["crumb"])}

    async def trigger_build(self, job_name: str, parameters: Optional[Dict[str, str]] = None) -> None:
        """Queue a build, with parameters when given"""
        if parameters:
            endpoint = f"{job_path(job_name)}/buildWithParameters"
        else:
            endpoint = f"{job_path(job_name)}/build"
        headers = await self._crumb_header()
        logger.info(f"Triggering Jenkins build for {job_name}")
        await self.post(endpoint, params=parameters or None, headers=headers)
