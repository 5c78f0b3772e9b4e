from __future__ import annotations

import logging
from typing import Optional

from ..api.client import BackendClient
from ..config import SeoContextConfig
from ..errors import DomainRequiredError
from ..models.responses import CrawlSiteResult, CrawlSummary
from ..utils.cache import ResponseCache
from . import issues, page_seo

logger = logging.getLogger(__name__)


class CrawlService:
    def __init__(self, api: BackendClient, cache: ResponseCache, config: SeoContextConfig) -> None:
        self.api = api
        self.cache = cache
        self.config = config

    async def crawl_site(self, domain: Optional[str] = None) -> CrawlSiteResult:
        """Trigger a fresh crawl and drop cached scans and page contexts for the domain."""
        domain = domain or self.config.default_domain
        if not domain:
            raise DomainRequiredError()

        logger.info("Triggering site crawl: %s", domain)
        site = await self.api.resolve_site(domain=domain)
        result = await self.api.trigger_site_analysis(site.client_id)

        logger.info(
            "Crawl completed for site %s: %d URLs, %d issues",
            site.site_id,
            result.summary.total_urls,
            result.summary.issues_found,
        )

        deleted_scan = self.cache.delete_pattern(
            self.cache.generate_key(issues.CACHE_CATEGORY, domain)
        )
        deleted_context = self.cache.delete_pattern(
            self.cache.generate_key(page_seo.CACHE_CATEGORY, domain)
        )
        if deleted_scan or deleted_context:
            logger.info(
                "Invalidated cached data after crawl of %s: %d scan, %d context entries",
                domain,
                deleted_scan,
                deleted_context,
            )

        return CrawlSiteResult(
            success=result.success,
            message=(
                f"Successfully crawled {domain}. Found {result.summary.total_urls} URLs "
                f"and {result.summary.issues_found} issues."
            ),
            summary=CrawlSummary(
                total_urls=result.summary.total_urls,
                urls_checked=result.summary.urls_checked,
                issues_found=result.summary.issues_found,
                crawl_duration_ms=result.summary.duration_ms,
                # Backend does not report the crawl method yet
                crawl_method="sitemap",
            ),
            invalidated_cache_entries=deleted_scan + deleted_context,
        )
