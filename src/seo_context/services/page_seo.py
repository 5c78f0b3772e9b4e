from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from ..api.client import BackendClient
from ..api.types import QueriesResult, SiteUrl, UrlsPage
from ..config import SeoContextConfig
from ..errors import DomainRequiredError
from ..models.responses import (
    Fix,
    Impact,
    Keyword,
    Opportunity,
    PageIssue,
    Performance,
    PerformanceContext,
    SeoContext,
)
from ..routing import PathResolver, ResolvedPath
from ..utils.cache import ResponseCache
from .local_analyzer import analyze_html, build_local_context, fetch_local_html, is_local_domain

logger = logging.getLogger(__name__)

CACHE_CATEGORY = "seo-context"

_NOT_INDEXED_MARKERS = ("not indexed", "excluded", "blocked", "noindex", "error")


@dataclass(frozen=True)
class GscDataState:
    has_data: bool
    emoji: str
    message: str


def detect_gsc_data_state(site_url: SiteUrl, impressions: int, clicks: int) -> GscDataState:
    """Classify how much Search Console knows about a page.

    Messages for states with data carry no trailing period; the caller
    punctuates them.
    """
    if clicks > 0:
        return GscDataState(
            True, "📈", f"Getting {clicks} clicks from {impressions} impressions in the last 28 days"
        )
    if impressions > 0:
        return GscDataState(
            True, "👀", f"Showing in search ({impressions} impressions) but no clicks yet"
        )

    coverage = (site_url.gsc_coverage_state or site_url.gsc_indexing_state or "").lower()
    if not coverage:
        return GscDataState(
            False,
            "⏳",
            "No Search Console data for this page yet. GSC syncs weekly and new pages "
            "can take a few days to appear.",
        )
    if any(marker in coverage for marker in _NOT_INDEXED_MARKERS):
        return GscDataState(
            False,
            "🚫",
            f"Google has not indexed this page (coverage: {site_url.gsc_coverage_state}).",
        )
    return GscDataState(False, "🔍", "Page is indexed but had no impressions in the last 28 days.")


def _top_keywords(queries: QueriesResult) -> List[Keyword]:
    return [
        Keyword(
            keyword=q.query,
            position=q.position,
            clicks=q.clicks,
            impressions=q.impressions,
        )
        for q in queries.queries[:10]
    ]


class PageSeoService:
    """SEO context for a single page, from the backend or a local dev server."""

    def __init__(
        self,
        api: BackendClient,
        cache: ResponseCache,
        resolver: PathResolver,
        config: SeoContextConfig,
    ) -> None:
        self.api = api
        self.cache = cache
        self.resolver = resolver
        self.config = config

    async def get_page_seo(
        self,
        domain: Optional[str] = None,
        url_path: Optional[str] = None,
        file_path: Optional[str] = None,
        content: Optional[str] = None,
    ) -> SeoContext:
        """Get SEO data for a page.

        Args:
            domain: Site domain (falls back to the configured default)
            url_path: Page URL path, e.g. "/blog/post"
            file_path: Local source file for the page, used when url_path is absent
            content: Current file content (accepted for editor context, not analysed)

        Raises:
            DomainRequiredError: If no domain is given or configured
            SiteResolutionError: If the backend does not know the domain
            LocalServerError: If a local dev server is unreachable
        """
        domain = domain or self.config.default_domain
        if not domain:
            raise DomainRequiredError()

        logger.info(
            "Getting page SEO data: domain=%s url_path=%s file_path=%s",
            domain,
            url_path,
            "(provided)" if file_path else None,
        )

        resolved = None
        if not url_path and file_path:
            resolved = self.resolver.resolve(file_path)
            if resolved:
                logger.debug("Resolved %s to %r", file_path, resolved)

        if is_local_domain(domain):
            return await self._local_context(domain, url_path, resolved)

        key = self.cache.generate_key(CACHE_CATEGORY, domain, url_path or file_path or "")
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Returning cached SEO context for %s", key)
            return cached

        site = await self.api.resolve_site(domain=domain)
        urls = await self.api.get_site_urls(site.site_id, limit=1000)

        target_path = url_path or (resolved.url_path if resolved else None)
        target_url = None
        if target_path:
            match = self.resolver.find_match(target_path, urls.pathnames())
            if match:
                target_url = urls.find_by_pathname(match)

        if target_url is None:
            context = await self._site_level_context(site.site_id, domain, urls)
        else:
            context = await self._url_level_context(target_url, site.site_id)

        if resolved:
            context.resolved_url_path = resolved.url_path
            context.resolution_confidence = resolved.confidence.value

        self.cache.set(key, context)
        return context

    async def _local_context(
        self,
        domain: str,
        url_path: Optional[str],
        resolved: Optional[ResolvedPath],
    ) -> SeoContext:
        logger.info("Detected local domain, fetching from dev server: %s", domain)
        path = url_path or (resolved.url_path if resolved else "/")

        html = await fetch_local_html(domain, path, timeout=self.config.local_timeout)
        context = build_local_context(analyze_html(html, domain), domain, path)
        if resolved:
            context.resolved_url_path = resolved.url_path
            context.resolution_confidence = resolved.confidence.value
        return context

    async def _site_level_context(self, site_id: str, domain: str, urls: UrlsPage) -> SeoContext:
        queries = await self.api.get_site_queries(site_id, limit=20)

        total_urls = len(urls.urls)
        urls_with_404 = sum(1 for u in urls.urls if u.http_status == 404)
        urls_without_title = sum(1 for u in urls.urls if not u.has_title)
        top_keywords = _top_keywords(queries)

        issues: List[PageIssue] = []
        if urls_with_404 > 0:
            issues.append(
                PageIssue(
                    type="http_404",
                    severity="critical",
                    title=f"{urls_with_404} pages returning 404",
                    description=f"Found {urls_with_404} URLs that return 404 Not Found errors",
                    current_state={"count": urls_with_404},
                    recommended={"action": "Fix or remove 404 pages"},
                    impact=Impact(
                        estimated_change=f"Potential to improve {urls_with_404} pages",
                        reasoning="404 pages hurt user experience and waste crawl budget",
                        confidence="high",
                    ),
                    fix=Fix(
                        type="remove",
                        instructions=(
                            "Review each 404 page and either fix the content "
                            "or redirect to relevant pages"
                        ),
                        suggested_location="Server configuration or routing files",
                    ),
                )
            )

        if urls_without_title > 0:
            issues.append(
                PageIssue(
                    type="missing_title",
                    severity="high",
                    title=f"{urls_without_title} pages missing title tags",
                    description=f"Found {urls_without_title} URLs without title tags",
                    current_state={"count": urls_without_title},
                    recommended={"action": "Add title tags to all pages"},
                    impact=Impact(
                        estimated_change=f"Improve {urls_without_title} pages",
                        reasoning="Title tags are critical for SEO and user experience",
                        confidence="high",
                    ),
                    fix=Fix(
                        type="add",
                        code_snippet="<title>Your Page Title Here</title>",
                        instructions="Add descriptive, keyword-rich title tags to each page",
                        suggested_location="<head> section or layout component",
                    ),
                )
            )

        summary = f"Your site has {total_urls} indexed pages. "
        if urls_with_404 > 0:
            summary += f"⚠️ Critical: {urls_with_404} pages are returning 404 errors. "
        if urls_without_title > 0:
            summary += f"⚠️ {urls_without_title} pages are missing title tags. "
        if top_keywords:
            summary += (
                f'Top performing keyword: "{top_keywords[0].keyword}" '
                f"(position {top_keywords[0].position})."
            )
        else:
            summary += 'Top performing keyword: "N/A" (position N/A).'

        return SeoContext(
            url=f"https://{domain}",
            last_analyzed=datetime.now(timezone.utc).isoformat(),
            source="production_database",
            fetched_from=f"https://{domain} (site-level data)",
            performance=Performance(
                clicks_last_28_days=queries.summary.total_clicks,
                impressions=queries.summary.total_impressions,
                avg_position=queries.summary.avg_position,
                ctr=queries.summary.avg_ctr,
                top_keywords=top_keywords,
                context=PerformanceContext(
                    your_site_average_position=queries.summary.avg_position,
                ),
            ),
            issues=issues,
            ai_summary=summary,
            quick_wins=list(issues[:3]),
        )

    async def _url_level_context(self, site_url: SiteUrl, site_id: str) -> SeoContext:
        queries = await self.api.get_url_queries(site_url.id, days=28, limit=20)
        site_queries = await self.api.get_site_queries(site_id)

        top_keywords = _top_keywords(queries)

        issues = [
            PageIssue(
                type=issue.get("type", "unknown"),
                severity=issue.get("severity", "info"),
                title=issue.get("title") or issue.get("type", ""),
                description=issue.get("description") or "",
                current_state=dict(issue),
                impact=Impact(
                    estimated_change=(
                        "High impact" if issue.get("severity") == "critical" else "Medium impact"
                    ),
                    reasoning="Standard SEO best practice",
                ),
                fix=Fix(
                    type="replace",
                    instructions="Fix the issue based on type",
                    suggested_location=site_url.url,
                ),
            )
            for issue in site_url.issues
        ]

        opportunities: List[Opportunity] = []
        if not site_url.has_meta_description:
            opportunities.append(
                Opportunity(
                    title="Add meta description",
                    description="This page is missing a meta description",
                    estimated_impact="Could improve CTR by 5-10%",
                    effort="Low (5 minutes)",
                    priority_score=80,
                    suggestion=(
                        "Add a compelling 150-160 character description "
                        "that includes your target keywords"
                    ),
                    code_example='<meta name="description" content="Your compelling description here" />',
                )
            )

        page_position = queries.summary.avg_position or 0.0
        site_position = site_queries.summary.avg_position or 0.0
        if page_position < site_position:
            percentile = "top 25th"
        elif page_position == site_position:
            percentile = "50th"
        else:
            percentile = "bottom 25th"

        state = detect_gsc_data_state(
            site_url, queries.summary.total_impressions, queries.summary.total_clicks
        )

        position_text = ""
        if page_position > 0:
            position_text = f"This page ranks at position {page_position:.1f} on average"
            if page_position < site_position:
                position_text += " (better than site average!)"
            position_text += ". "

        issues_text = (
            f"⚠️ {len(issues)} SEO issues detected." if issues else "✅ No major issues detected."
        )
        if state.has_data:
            summary = f"{state.emoji} {position_text}{state.message}. {issues_text}"
        else:
            summary = f"{state.emoji} {state.message} {issues_text}"

        keywords_note = None
        if not top_keywords and queries.summary.total_impressions > 0:
            keywords_note = (
                "Keywords hidden due to low search volume (Google privacy threshold). "
                f"Total: {queries.summary.total_impressions} impressions across "
                "multiple low-volume queries."
            )

        return SeoContext(
            url=site_url.url,
            last_analyzed=site_url.last_checked_at or datetime.now(timezone.utc).isoformat(),
            source="production_database",
            fetched_from=site_url.url,
            performance=Performance(
                clicks_last_28_days=queries.summary.total_clicks,
                impressions=queries.summary.total_impressions,
                avg_position=page_position,
                ctr=queries.summary.avg_ctr,
                top_keywords=top_keywords,
                keywords_note=keywords_note,
                context=PerformanceContext(
                    your_site_average_position=site_position,
                    this_page_vs_average=site_position - page_position,
                    percentile_on_site=percentile,
                ),
            ),
            issues=issues,
            opportunities=opportunities,
            ai_summary=summary,
            quick_wins=[*opportunities, *issues][:3],
        )
