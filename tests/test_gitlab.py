"""
Tests for the GitLab adapter.
"""
import json

import httpx
import pytest

from opsflow.integrations.errors import ApiError, AuthError, ConfigError
from opsflow.integrations.gitlab import GitLabIntegration

BASE = "https://gitlab.example.com"
API = f"{BASE}/api/v4"


@pytest.fixture
def gitlab(test_settings):
    return GitLabIntegration(BASE, "glpat-secret", settings=test_settings)


class TestUrls:
    def test_api_url_with_trailing_slash(self, test_settings):
        adapter = GitLabIntegration("https://gitlab.com/", "t", settings=test_settings)
        assert adapter.api_url("/projects") == "https://gitlab.com/api/v4/projects"

    @pytest.mark.parametrize(
        "raw",
        [
            "https://gitlab.com",
            "https://gitlab.com/",
            "https://gitlab.com///",
            "https://gitlab.com/api/v4",
            "https://gitlab.com/api/v4/",
            "  https://gitlab.com  ",
        ],
    )
    def test_normalization(self, raw):
        assert GitLabIntegration.normalize_base_url(raw) == "https://gitlab.com"

    @pytest.mark.parametrize("raw", ["https://gitlab.com/", "https://git.corp/gitlab/api/v4/"])
    def test_normalization_idempotent(self, raw):
        once = GitLabIntegration.normalize_base_url(raw)
        assert GitLabIntegration.normalize_base_url(once) == once

    def test_metadata(self, gitlab):
        assert gitlab.get_name() == "GitLab"
        assert gitlab.get_integration_type().value == "gitlab"
        assert gitlab.get_base_url() == BASE


class TestFetchProjects:
    @pytest.mark.asyncio
    async def test_sends_private_token(self, gitlab, respx_mock):
        route = respx_mock.get(f"{API}/projects").mock(return_value=httpx.Response(200, json=[]))
        assert await gitlab.fetch_projects() == []
        request = route.calls.last.request
        assert request.headers["PRIVATE-TOKEN"] == "glpat-secret"
        assert request.url.params["per_page"] == "100"
        assert "Authorization" not in request.headers

    @pytest.mark.asyncio
    async def test_maps_projects(self, gitlab, respx_mock):
        respx_mock.get(f"{API}/projects").mock(
            return_value=httpx.Response(
                200,
                json=[
                    {
                        "id": 7,
                        "name": "api",
                        "path": "api",
                        "path_with_namespace": "team/api",
                        "web_url": f"{BASE}/team/api",
                    }
                ],
            )
        )
        projects = await gitlab.fetch_projects()
        assert len(projects) == 1
        assert projects[0].id == 7
        assert projects[0].path == "team/api"

    @pytest.mark.asyncio
    async def test_follows_next_page(self, gitlab, respx_mock):
        page1 = [{"id": 1, "name": "a", "path": "a", "web_url": f"{BASE}/a"}]
        page2 = [{"id": 2, "name": "b", "path": "b", "web_url": f"{BASE}/b"}]
        route = respx_mock.get(f"{API}/projects").mock(
            side_effect=[
                httpx.Response(200, json=page1, headers={"X-Next-Page": "2"}),
                httpx.Response(200, json=page2, headers={"X-Next-Page": ""}),
            ]
        )
        projects = await gitlab.fetch_projects()
        assert [p.id for p in projects] == [1, 2]
        assert route.calls[1].request.url.params["page"] == "2"

    @pytest.mark.asyncio
    async def test_stops_at_page_cap(self, test_settings, respx_mock):
        settings = test_settings.model_copy(update={"gitlab_max_pages": 1})
        adapter = GitLabIntegration(BASE, "t", settings=settings)
        route = respx_mock.get(f"{API}/projects").mock(
            return_value=httpx.Response(200, json=[], headers={"X-Next-Page": "2"})
        )
        await adapter.fetch_projects()
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_html_body_is_config_error(self, gitlab, respx_mock):
        respx_mock.get(f"{API}/projects").mock(
            return_value=httpx.Response(
                200, text="<!DOCTYPE html><html>sign in</html>", headers={"Content-Type": "text/html"}
            )
        )
        with pytest.raises(ConfigError) as exc_info:
            await gitlab.fetch_projects()
        assert f"{API}/projects" in exc_info.value.message
        assert BASE in exc_info.value.message

    @pytest.mark.asyncio
    async def test_empty_body_is_config_error(self, gitlab, respx_mock):
        respx_mock.get(f"{API}/projects").mock(return_value=httpx.Response(200, content=b""))
        with pytest.raises(ConfigError) as exc_info:
            await gitlab.fetch_projects()
        assert "empty response" in exc_info.value.message
        assert BASE in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_field_is_config_error(self, gitlab, respx_mock):
        respx_mock.get(f"{API}/projects").mock(return_value=httpx.Response(200, json=[{"id": 1}]))
        with pytest.raises(ConfigError):
            await gitlab.fetch_projects()

    @pytest.mark.asyncio
    async def test_unauthorized(self, gitlab, respx_mock):
        respx_mock.get(f"{API}/projects").mock(return_value=httpx.Response(401, json={"message": "401 Unauthorized"}))
        with pytest.raises(AuthError):
            await gitlab.fetch_projects()


class TestPipelines:
    @pytest.mark.asyncio
    async def test_fetch_pipelines(self, gitlab, respx_mock):
        respx_mock.get(f"{API}/projects/7/pipelines").mock(
            return_value=httpx.Response(
                200,
                json=[{"id": 99, "status": "success", "ref": "main", "created_at": "2024-01-01T00:00:00Z"}],
            )
        )
        pipelines = await gitlab.fetch_pipelines(7)
        assert pipelines[0].id == 99
        assert pipelines[0].status == "success"

    @pytest.mark.asyncio
    async def test_trigger_pipeline_posts_ref_once(self, gitlab, respx_mock):
        route = respx_mock.post(f"{API}/projects/7/pipeline").mock(
            return_value=httpx.Response(201, json={"id": 100, "status": "created", "ref": "develop"})
        )
        pipeline = await gitlab.trigger_pipeline(7, "develop")
        assert pipeline.id == 100
        assert json.loads(route.calls.last.request.content) == {"ref": "develop"}

    @pytest.mark.asyncio
    async def test_trigger_pipeline_not_replayed_on_server_error(self, gitlab, respx_mock):
        route = respx_mock.post(f"{API}/projects/7/pipeline").mock(return_value=httpx.Response(500))
        with pytest.raises(ApiError):
            await gitlab.trigger_pipeline(7, "main")
        assert route.call_count == 1


class TestWebhooks:
    @pytest.mark.asyncio
    async def test_events_from_flags(self, gitlab, respx_mock):
        respx_mock.get(f"{API}/projects/7/hooks").mock(
            return_value=httpx.Response(
                200,
                json=[
                    {
                        "id": 3,
                        "url": "https://ci.example.com/hook",
                        "push_events": True,
                        "merge_requests_events": True,
                        "tag_push_events": False,
                    }
                ],
            )
        )
        hooks = await gitlab.fetch_webhooks(7)
        assert hooks[0].events == ["push_events", "merge_requests_events"]


class TestConnection:
    @pytest.mark.asyncio
    async def test_connection_uses_current_user(self, gitlab, respx_mock):
        route = respx_mock.get(f"{API}/user").mock(return_value=httpx.Response(200, json={"id": 1}))
        await gitlab.test_connection()
        assert route.called


class TestMalformedItems:
    @pytest.mark.asyncio
    async def test_project_without_any_path(self, gitlab, respx_mock):
        respx_mock.get(f"{API}/projects").mock(
            return_value=httpx.Response(200, json=[{"id": 1, "name": "a", "web_url": "u"}])
        )
        with pytest.raises(ConfigError) as exc_info:
            await gitlab.fetch_projects()
        assert "'path'" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_project_id_of_wrong_type(self, gitlab, respx_mock):
        respx_mock.get(f"{API}/projects").mock(
            return_value=httpx.Response(200, json=[{"id": "abc", "name": "a", "path": "a", "web_url": "u"}])
        )
        with pytest.raises(ConfigError):
            await gitlab.fetch_projects()

    @pytest.mark.asyncio
    async def test_pipeline_status_of_wrong_type(self, gitlab, respx_mock):
        respx_mock.get(f"{API}/projects/5/pipelines").mock(
            return_value=httpx.Response(200, json=[{"id": 1, "status": 5, "ref": "main"}])
        )
        with pytest.raises(ConfigError):
            await gitlab.fetch_pipelines(5)

    @pytest.mark.asyncio
    async def test_webhook_url_of_wrong_type(self, gitlab, respx_mock):
        respx_mock.get(f"{API}/projects/5/hooks").mock(
            return_value=httpx.Response(200, json=[{"id": 1, "url": ["https://hook"]}])
        )
        with pytest.raises(ConfigError):
            await gitlab.fetch_webhooks(5)
