"""Unit tests for the backend API client (HTTP faked with httpx.MockTransport)."""

import json

import httpx
import pytest

from seo_context.api.client import BackendClient
from seo_context.errors import SiteResolutionError


def make_client(routes):
    """Build a client whose requests are answered from a {(method, path): response} map."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        route = routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        status, payload = route
        return httpx.Response(status, json=payload)

    client = BackendClient(
        "http://backend.test/", api_key="key-1", transport=httpx.MockTransport(handler)
    )
    return client, seen


class TestRequests:
    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        client, seen = make_client({("GET", "/api/ping"): (200, {"ok": True})})

        assert await client.get("/api/ping") == {"ok": True}
        assert seen[0].headers["Authorization"] == "Bearer key-1"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_get_returns_none_on_404(self):
        client, _ = make_client({})

        assert await client.get("/api/missing") is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_get_raises_on_server_error(self):
        client, _ = make_client({("GET", "/api/broken"): (500, {"error": "boom"})})

        with pytest.raises(httpx.HTTPStatusError):
            await client.get("/api/broken")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unset_params_are_dropped(self):
        client, seen = make_client({("GET", "/api/sites/s1/urls"): (200, {"urls": []})})

        await client.get_site_urls("s1", limit=10)

        assert dict(seen[0].url.params) == {"limit": "10"}
        await client.aclose()


class TestSiteResolution:
    @pytest.mark.asyncio
    async def test_resolve_by_domain(self):
        client, _ = make_client(
            {
                ("GET", "/api/clients"): (200, {"data": {"id": "c1", "domain": "example.com"}}),
                ("GET", "/api/clients/c1/site"): (200, {"id": "s1", "client_id": "c1"}),
            }
        )

        site = await client.resolve_site(domain="example.com")

        assert site.site_id == "s1"
        assert site.client_id == "c1"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unknown_domain(self):
        client, _ = make_client({("GET", "/api/clients"): (200, {"data": None})})

        with pytest.raises(SiteResolutionError, match="example.com"):
            await client.resolve_site(domain="example.com")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_project_id_that_is_a_site_id(self):
        client, _ = make_client({("GET", "/api/sites/s9"): (200, {"id": "s9", "client_id": "c9"})})

        site = await client.resolve_site(project_id="s9")

        assert site.site_id == "s9"
        assert site.client_id == "c9"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_nothing_to_resolve(self):
        client, _ = make_client({})

        with pytest.raises(SiteResolutionError):
            await client.resolve_site()
        await client.aclose()


class TestPayloadMapping:
    @pytest.mark.asyncio
    async def test_site_urls(self):
        client, _ = make_client(
            {
                ("GET", "/api/sites/s1/urls"): (
                    200,
                    {
                        "urls": [
                            {
                                "id": "u1",
                                "url": "https://example.com/blog/hello",
                                "current_http_status": 200,
                                "current_has_title": True,
                                "current_has_meta_description": False,
                                "current_issues": [{"type": "missing_meta_description"}],
                            }
                        ],
                        "total": 1,
                    },
                )
            }
        )

        page = await client.get_site_urls("s1")

        assert page.total == 1
        assert page.pathnames() == ["/blog/hello"]
        url = page.urls[0]
        assert url.has_title is True
        assert url.has_meta_description is False
        assert url.issues == [{"type": "missing_meta_description"}]
        assert page.find_by_pathname("/blog/hello/") is url
        await client.aclose()

    @pytest.mark.asyncio
    async def test_url_queries_computes_summary_when_missing(self):
        client, _ = make_client(
            {
                ("GET", "/api/urls/u1/queries"): (
                    200,
                    {
                        "queries": [
                            {"query": "a", "clicks": 3, "impressions": 100, "position": 4.0},
                            {"query": "b", "clicks": 1, "impressions": 100, "position": 8.0},
                        ]
                    },
                )
            }
        )

        result = await client.get_url_queries("u1", days=28)

        assert result.summary.total_clicks == 4
        assert result.summary.total_impressions == 200
        assert result.summary.avg_position == 6.0
        assert result.summary.avg_ctr == pytest.approx(0.02)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_url_queries_uses_api_summary(self):
        client, _ = make_client(
            {
                ("GET", "/api/urls/u1/queries"): (
                    200,
                    {
                        "queries": [],
                        "summary": {
                            "totalClicks": 7,
                            "totalImpressions": 900,
                            "avgPosition": 12.5,
                            "avgCtr": 0.01,
                        },
                    },
                )
            }
        )

        result = await client.get_url_queries("u1")

        assert result.queries == []
        assert result.summary.total_impressions == 900
        assert result.summary.avg_position == 12.5
        await client.aclose()

    @pytest.mark.asyncio
    async def test_queries_empty_when_gsc_not_connected(self):
        client, _ = make_client({})

        result = await client.get_site_queries("s1")

        assert result.queries == []
        assert result.summary.total_clicks == 0
        await client.aclose()

    @pytest.mark.asyncio
    async def test_site_queries_maps_camel_case(self):
        client, _ = make_client(
            {
                ("GET", "/api/sites/s1/queries"): (
                    200,
                    {
                        "queries": [
                            {"query": "a", "totalClicks": 10, "totalImpressions": 100,
                             "avgCtr": 0.1, "avgPosition": 2.0},
                            {"query": "b", "totalClicks": 0, "totalImpressions": 100,
                             "avgCtr": 0.0, "avgPosition": 6.0},
                        ],
                        "summary": {"totalClicks": 10, "totalImpressions": 200},
                    },
                )
            }
        )

        result = await client.get_site_queries("s1", limit=20)

        assert result.queries[0].clicks == 10
        assert result.queries[1].position == 6.0
        assert result.summary.avg_position == 4.0
        assert result.summary.avg_ctr == 0.05
        await client.aclose()

    @pytest.mark.asyncio
    async def test_trigger_site_analysis(self):
        client, seen = make_client(
            {
                ("POST", "/api/clients/c1/analyze"): (
                    200,
                    {
                        "success": True,
                        "summary": {
                            "totalUrls": 40,
                            "urlsChecked": 38,
                            "issuesFound": 5,
                            "duration": 1234,
                        },
                    },
                )
            }
        )

        result = await client.trigger_site_analysis("c1")

        assert seen[0].method == "POST"
        assert result.success is True
        assert result.summary.total_urls == 40
        assert result.summary.duration_ms == 1234
        await client.aclose()

    @pytest.mark.asyncio
    async def test_site_issues_and_stats(self):
        client, seen = make_client(
            {
                ("GET", "/api/sites/s1/issues"): (
                    200,
                    {"issues": [{"url": None, "type": "missing_sitemap", "severity": "critical"}]},
                ),
                ("GET", "/api/sites/s1/stats"): (200, {"health_score": 72, "health_grade": "C"}),
            }
        )

        issues = await client.get_site_issues("s1", severity="critical")
        stats = await client.get_site_stats("s1")

        assert issues[0].type == "missing_sitemap"
        assert issues[0].title == "missing_sitemap"
        assert seen[0].url.params["severity"] == "critical"
        assert stats.health_grade == "C"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_gsc_insights(self):
        payload = {
            "period": {"start": "2026-09-01", "end": "2026-09-28", "days": 28},
            "summary": {"total_clicks": 50, "total_impressions": 5000,
                        "avg_position": 11.2, "avg_ctr": 0.01},
            "top_pages": [{"url_id": "u1", "url": "https://example.com/", "clicks": 30,
                           "top_queries": [{"query": "example", "clicks": 20}]}],
            "opportunities": [{"query": "seo tool", "opportunity_type": ["improve_ctr"]}],
            "content_recommendations": [{"title": "Write a guide", "priority": "high"}],
            "meta": {"total_queries": 120, "total_pages_with_data": 8,
                     "data_freshness": "Synced weekly"},
        }
        client, seen = make_client({("GET", "/api/sites/s1/gsc-insights"): (200, payload)})

        insights = await client.get_gsc_insights("s1", 28, include_recommendations=False)

        assert seen[0].url.params["include_recommendations"] == "false"
        assert insights.summary.total_impressions == 5000
        assert insights.top_pages[0].top_queries[0].query == "example"
        assert insights.opportunities[0].opportunity_type == ["improve_ctr"]
        assert insights.meta.total_queries == 120
        await client.aclose()

    @pytest.mark.asyncio
    async def test_post_with_empty_body(self):
        def handler(request):
            assert json.loads(request.content) == {"force": True}
            return httpx.Response(204)

        client = BackendClient("http://backend.test", transport=httpx.MockTransport(handler))

        assert await client.post("/api/anything", json={"force": True}) is None
        await client.aclose()


class TestFeatureSpecs:
    @pytest.mark.asyncio
    async def test_create_posts_body_and_returns_spec(self):
        client, seen = make_client(
            {("POST", "/api/sites/s1/feature-specs"): (201, {"spec": {"id": "fs-1"}})}
        )

        created = await client.create_feature_spec("s1", {"title": "Add dark mode"})

        assert created == {"id": "fs-1"}
        assert json.loads(seen[0].content) == {"title": "Add dark mode"}
        await client.aclose()

    @pytest.mark.asyncio
    async def test_get_sends_include_flags(self):
        client, seen = make_client(
            {("GET", "/api/feature-specs/fs-1"): (200, {"spec": {"id": "fs-1"}, "tasks": []})}
        )

        data = await client.get_feature_spec("fs-1", include_criteria=False)

        assert data["spec"]["id"] == "fs-1"
        assert dict(seen[0].url.params) == {"include_criteria": "false", "include_tasks": "true"}
        await client.aclose()

    @pytest.mark.asyncio
    async def test_get_unknown_spec(self):
        client, _ = make_client({})

        assert await client.get_feature_spec("missing") is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_search(self):
        client, seen = make_client(
            {("GET", "/api/sites/s1/feature-specs"): (200, {"specs": [{"id": "fs-1"}]})}
        )

        assert await client.search_feature_specs("s1", "dark") == [{"id": "fs-1"}]
        assert seen[0].url.params["search"] == "dark"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_update_uses_patch(self):
        client, seen = make_client(
            {("PATCH", "/api/feature-specs/fs-1"): (200, {"success": True, "next_action": "Ship"})}
        )

        data = await client.update_feature_spec("fs-1", {"status": "in_progress"})

        assert data == {"success": True, "next_action": "Ship"}
        assert seen[0].method == "PATCH"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_site_client_id(self):
        client, _ = make_client({("GET", "/api/sites/s1"): (200, {"client_id": "c1"})})

        assert await client.get_site_client_id("s1") == "c1"
        assert await client.get_site_client_id("s2") is None
        await client.aclose()
