from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, List, Optional

from .api.client import BackendClient
from .config import SeoContextConfig, load_config
from .models.responses import (
    CrawlSiteResult,
    CreateFeatureSpecResult,
    FeatureSpecDetail,
    FeatureSpecSearchResult,
    FeatureSpecUpdateResult,
    GscInsightsResult,
    SeoContext,
    SiteScanResult,
)
from .routing import PathResolver, ResolvedPath
from .services.crawl import CrawlService
from .services.feature_specs import FeatureSpecService
from .services.insights import GscInsightsService
from .services.issues import DEFAULT_LIMIT, IssuesService
from .services.page_seo import PageSeoService
from .utils.cache import ResponseCache

logger = logging.getLogger(__name__)


class SeoContextServer:
    """Server facade delegating requests to service layers.

    Owns the single ResponseCache and hands it to every service that needs it.
    """

    def __init__(
        self,
        project_path: Optional[str] = None,
        config: Optional[SeoContextConfig] = None,
        api: Optional[BackendClient] = None,
    ) -> None:
        self.project_path = project_path or os.getcwd()
        self.config = config or load_config(Path(self.project_path))

        self.cache = ResponseCache(default_ttl=self.config.cache_ttl)
        self.resolver = PathResolver(project_root=self.config.project_root)
        self.api = api or BackendClient(
            self.config.backend_api_url,
            api_key=self.config.api_key,
            timeout=self.config.request_timeout,
        )

        self.page_seo = PageSeoService(self.api, self.cache, self.resolver, self.config)
        self.issues = IssuesService(self.api, self.cache, self.config)
        self.crawl = CrawlService(self.api, self.cache, self.config)
        self.insights = GscInsightsService(self.api, self.cache, self.config)
        self.feature_specs = FeatureSpecService(self.api, self.config)

    async def start(self) -> None:
        logger.info("SEO context server starting: %s", self.config.summary())
        if not self.config.api_key:
            logger.warning("No API key configured; backend requests are unauthenticated")

    async def stop(self) -> None:
        """Close the backend connection pool."""
        await self.api.aclose()

    # Page context
    async def get_page_seo(
        self,
        domain: Optional[str] = None,
        url_path: Optional[str] = None,
        file_path: Optional[str] = None,
        content: Optional[str] = None,
    ) -> SeoContext:
        return await self.page_seo.get_page_seo(domain, url_path, file_path, content)

    def resolve_url_path(self, file_path: str) -> Optional[ResolvedPath]:
        return self.resolver.resolve(file_path)

    # Site
    async def get_issues(
        self,
        domain: Optional[str] = None,
        severity: Optional[List[str]] = None,
        issue_types: Optional[List[str]] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> SiteScanResult:
        return await self.issues.get_issues(domain, severity, issue_types, limit)

    async def crawl_site(self, domain: Optional[str] = None) -> CrawlSiteResult:
        return await self.crawl.crawl_site(domain)

    async def get_gsc_insights(
        self,
        domain: Optional[str] = None,
        period: str = "28d",
        include_recommendations: bool = True,
    ) -> GscInsightsResult:
        return await self.insights.get_gsc_insights(domain, period, include_recommendations)

    # Feature specs
    async def create_feature_spec(self, title: str, **fields: Any) -> CreateFeatureSpecResult:
        return await self.feature_specs.create_feature_spec(title, **fields)

    async def get_feature_spec(
        self,
        spec_id: str,
        include_criteria: bool = True,
        include_tasks: bool = True,
    ) -> FeatureSpecDetail:
        return await self.feature_specs.get_feature_spec(spec_id, include_criteria, include_tasks)

    async def search_feature_specs(
        self,
        search: str,
        domain: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> FeatureSpecSearchResult:
        return await self.feature_specs.search_feature_specs(search, domain, project_id)

    async def update_feature_spec(
        self, spec_id: str, **changes: Optional[str]
    ) -> FeatureSpecUpdateResult:
        return await self.feature_specs.update_feature_spec(spec_id, **changes)
