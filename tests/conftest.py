"""Pytest configuration and shared fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from seo_context.api.types import (
    AnalysisResult,
    AnalysisSummary,
    QueriesResult,
    SiteRef,
    SiteStats,
    UrlsPage,
)
from seo_context.config import SeoContextConfig
from seo_context.routing import PathResolver
from seo_context.utils.cache import ResponseCache


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ResponseCache:
    """A fresh cache per test, driven by the fake clock."""
    return ResponseCache(default_ttl=3600, clock=clock)


@pytest.fixture
def config(tmp_path: Path) -> SeoContextConfig:
    return SeoContextConfig(
        backend_api_url="http://backend.test",
        api_key="test-key",
        default_domain="example.com",
        project_root=tmp_path,
    )


@pytest.fixture
def resolver() -> PathResolver:
    return PathResolver()


@pytest.fixture
def mock_api() -> MagicMock:
    """BackendClient double with empty-but-valid responses.

    Tests override individual methods with their own return values.
    """
    api = MagicMock()
    api.resolve_site = AsyncMock(return_value=SiteRef(site_id="site-1", client_id="client-1"))
    api.get_site_urls = AsyncMock(return_value=UrlsPage(urls=[]))
    api.get_url_queries = AsyncMock(return_value=QueriesResult.empty())
    api.get_site_queries = AsyncMock(return_value=QueriesResult.empty())
    api.get_site_issues = AsyncMock(return_value=[])
    api.get_site_stats = AsyncMock(return_value=SiteStats(health_score=100, health_grade="A"))
    api.get_gsc_insights = AsyncMock(return_value=None)
    api.trigger_site_analysis = AsyncMock(
        return_value=AnalysisResult(success=True, summary=AnalysisSummary())
    )
    api.get_site_client_id = AsyncMock(return_value="client-1")
    api.create_feature_spec = AsyncMock(return_value=None)
    api.get_feature_spec = AsyncMock(return_value=None)
    api.search_feature_specs = AsyncMock(return_value=[])
    api.update_feature_spec = AsyncMock(return_value={})
    api.aclose = AsyncMock()
    return api
