"""
SonarQube API Integration
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from opsflow.config import Settings
from opsflow.integrations.base import HTTPIntegration
from opsflow.integrations.errors import ConfigError, malformed_response
from opsflow.models.schemas import IntegrationType, SonarQubeMetrics, SonarQubeProject

logger = logging.getLogger(__name__)

METRIC_KEYS = "coverage,bugs,vulnerabilities,code_smells,sqale_index"


def _to_int(value: Optional[str]) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _to_float(value: Optional[str]) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def fold_measures(measures: List[Dict[str, Any]]) -> SonarQubeMetrics:
    """Collect the measures we know about; unknown metrics are ignored"""
    values: Dict[str, Any] = {}
    for measure in measures:
        if not isinstance(measure, dict):
            raise ConfigError("Invalid measure format: expected an object")
        metric = measure.get("metric") or ""
        value = measure.get("value")
        if value is None:
            continue
        if metric == "coverage":
            values["coverage"] = _to_float(value)
        elif metric in ("bugs", "vulnerabilities", "code_smells"):
            values[metric] = _to_int(value)
        elif metric == "sqale_index":
            # Technical debt in minutes, kept as the raw string
            values["technical_debt"] = str(value)
    with malformed_response("measure"):
        return SonarQubeMetrics(**values)


class SonarQubeIntegration(HTTPIntegration):
    """SonarQube API integration"""

    display_name = "SonarQube"
    integration_type = IntegrationType.SONARQUBE

    def __init__(
        self,
        base_url: str,
        token: str,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(base_url, client=client, settings=settings)
        self._token = token

    def api_url(self, endpoint: str) -> str:
        return f"{self.base_url}/api{endpoint}"

    def _get_auth(self) -> Optional[httpx.Auth]:
        # Token-based auth: token as username, empty password
        return httpx.BasicAuth(self._token, "")

    async def test_connection(self) -> None:
        await self.get_json("/system/status")

    # ========================================================================
    # Projects
    # ========================================================================

    async def fetch_projects(self) -> List[SonarQubeProject]:
        """List SonarQube projects"""
        data = await self.get_json("/projects/search", params={"ps": 100})
        components = data.get("components") if isinstance(data, dict) else None
        if not isinstance(components, list):
            raise ConfigError("Invalid response format: missing 'components' array")

        projects = []
        for c in components:
            if not isinstance(c, dict):
                raise ConfigError("Invalid project format: expected an object")
            if not c.get("key"):
                raise ConfigError("Invalid project format: missing 'key'")
            if not c.get("name"):
                raise ConfigError("Invalid project format: missing 'name'")
            with malformed_response("project"):
                projects.append(
                    SonarQubeProject(key=c["key"], name=c["name"], qualifier=c.get("qualifier") or "TRK")
                )
        return projects

    # ========================================================================
    # Metrics
    # ========================================================================

    async def fetch_metrics(self, project_key: str) -> SonarQubeMetrics:
        """Coverage, issue counts and technical debt of one project"""
        data = await self.get_json(
            "/measures/component",
            params={"component": project_key, "metricKeys": METRIC_KEYS},
        )
        component = data.get("component") if isinstance(data, dict) else None
        measures = component.get("measures") if isinstance(component, dict) else None
        if not isinstance(measures, list):
            raise ConfigError("Invalid response format: missing 'measures' array")
        return fold_measures(measures)
