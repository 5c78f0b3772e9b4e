"""Google Search Console insights and their markdown report."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional

import httpx

from ..api.client import BackendClient
from ..api.types import GscInsights, QueryOpportunity
from ..config import SeoContextConfig
from ..errors import DomainRequiredError, SeoContextError
from ..models.responses import GscInsightsResult
from ..utils.cache import ResponseCache

logger = logging.getLogger(__name__)

CACHE_CATEGORY = "gsc-insights"

PERIODS = {"7d": 7, "28d": 28, "90d": 90}

_PRIORITY_MARKERS = {"high": "🔴", "medium": "🟡"}


class InsightsUnavailableError(SeoContextError):
    """Raised when the backend has no Search Console data for a site."""


class GscInsightsService:
    def __init__(self, api: BackendClient, cache: ResponseCache, config: SeoContextConfig) -> None:
        self.api = api
        self.cache = cache
        self.config = config

    async def get_gsc_insights(
        self,
        domain: Optional[str] = None,
        period: str = "28d",
        include_recommendations: bool = True,
    ) -> GscInsightsResult:
        """Get GSC insights with content recommendations.

        Results are cached with the short insights TTL. Empty data sets are
        reported as errors and never cached.

        Raises:
            DomainRequiredError: If no domain is given or configured
            ValueError: If period is not one of 7d, 28d, 90d
            InsightsUnavailableError: If there is no Search Console data
        """
        domain = domain or self.config.default_domain
        if not domain:
            raise DomainRequiredError()
        if period not in PERIODS:
            raise ValueError(f"period must be one of {', '.join(PERIODS)}, got {period!r}")

        logger.info(
            "Getting GSC insights: domain=%s period=%s include_recommendations=%s",
            domain,
            period,
            include_recommendations,
        )

        key = self.cache.generate_key(
            CACHE_CATEGORY, domain, period, "with-recs" if include_recommendations else "no-recs"
        )
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Returning cached GSC insights for %s", domain)
            return cached

        try:
            site = await self.api.resolve_site(domain=domain)
            insights = await self.api.get_gsc_insights(
                site.site_id, PERIODS[period], include_recommendations
            )
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise InsightsUnavailableError(
                    f'Site not found for domain "{domain}". Please add this site first.'
                ) from e
            if status in (401, 403):
                raise InsightsUnavailableError(
                    "Authentication failed. Please check your API key."
                ) from e
            raise

        if insights is None:
            raise InsightsUnavailableError("Failed to fetch GSC insights from API")

        if insights.summary.total_impressions == 0:
            raise InsightsUnavailableError(
                f'No Google Search Console data found for "{domain}". Either:\n'
                "1. GSC is not connected\n"
                "2. Site has no search traffic yet\n"
                "3. GSC sync hasn't run yet - data syncs weekly"
            )

        result = GscInsightsResult(insights=insights, report=format_insights_markdown(insights))
        self.cache.set(key, result, ttl=self.config.insights_cache_ttl)

        logger.info(
            "Fetched GSC insights for %s: %d clicks, %d queries, %d opportunities",
            domain,
            insights.summary.total_clicks,
            insights.meta.total_queries,
            len(insights.opportunities),
        )
        return result


def _opportunity_section(
    lines: List[str],
    heading: str,
    opportunities: List[QueryOpportunity],
    limit: int,
    detail: str,
) -> None:
    if not opportunities:
        return
    lines.extend([f"### {heading}", ""])
    for opp in opportunities[:limit]:
        lines.append(f'- **"{opp.query}"**')
        if detail == "ctr":
            lines.append(
                f"  - {opp.impressions} impressions, {opp.clicks} clicks "
                f"({opp.ctr * 100:.1f}% CTR)"
            )
            lines.append(f"  - Position: {opp.position:.1f}")
        elif detail == "ranking":
            lines.append(f"  - Position: {opp.position:.1f} | {opp.impressions} impressions")
        elif detail == "gap":
            lines.append(f"  - Position: {opp.position:.1f} | Only {opp.impressions} impressions")
        lines.append(f"  - 💡 {opp.recommendation}")
        lines.append("")


def format_insights_markdown(insights: GscInsights) -> str:
    """Format GSC insights as a markdown report for LLM consumption."""
    lines = [
        f"# GSC Performance Insights for {insights.period.days}-Day Period",
        f"**Period:** {insights.period.start} to {insights.period.end}",
        "",
        "## 📊 Performance Summary",
        "",
        f"- **Total Clicks:** {insights.summary.total_clicks:,}",
        f"- **Total Impressions:** {insights.summary.total_impressions:,}",
        f"- **Average Position:** {insights.summary.avg_position:.1f}",
        f"- **Average CTR:** {insights.summary.avg_ctr * 100:.2f}%",
        "",
    ]

    if insights.top_pages:
        lines.extend(["## 🏆 Top Performing Pages", ""])
        for idx, page in enumerate(insights.top_pages[:10], start=1):
            lines.append(f"### {idx}. {page.url}")
            lines.append(
                f"- **Clicks:** {page.clicks} | **Impressions:** {page.impressions} | "
                f"**Position:** {page.avg_position:.1f} | **CTR:** {page.ctr * 100:.1f}%"
            )
            if page.top_queries:
                lines.append("- **Top Queries:**")
                for q in page.top_queries[:3]:
                    lines.append(
                        f'  - "{q.query}" - {q.clicks} clicks, position {q.position:.1f}'
                    )
            lines.append("")

    if insights.opportunities:
        lines.extend(
            [
                "## 🎯 Query Opportunities",
                "",
                "These queries represent actionable opportunities to improve your search performance:",
                "",
            ]
        )

        by_type: Dict[str, List[QueryOpportunity]] = defaultdict(list)
        for opp in insights.opportunities:
            for opp_type in opp.opportunity_type:
                by_type[opp_type].append(opp)

        _opportunity_section(
            lines,
            "🔴 High Impressions, Low CTR (Optimize Meta Tags)",
            by_type["improve_ctr"],
            5,
            "ctr",
        )
        _opportunity_section(
            lines, "🟡 Improve Rankings (Target Page 1)", by_type["improve_ranking"], 5, "ranking"
        )
        _opportunity_section(
            lines,
            "⚠️ Keyword Cannibalization (Multiple Pages Competing)",
            by_type["cannibalization"],
            3,
            "none",
        )
        _opportunity_section(
            lines, "🟢 Keyword Gaps (Expand Content)", by_type["keyword_gap"], 3, "gap"
        )

    if insights.content_recommendations:
        lines.extend(
            [
                "## 💡 Content Recommendations",
                "",
                "AI-powered recommendations based on your search performance:",
                "",
            ]
        )
        for rec in insights.content_recommendations:
            marker = _PRIORITY_MARKERS.get(rec.priority, "🟢")
            lines.extend([f"### {marker} {rec.title}", "", rec.description, ""])
            if rec.queries:
                lines.append("**Target Queries:**")
                lines.extend(f'- "{q}"' for q in rec.queries[:5])
                lines.append("")

    lines.extend(
        [
            "---",
            "",
            f"**Total Queries Tracked:** {insights.meta.total_queries:,}",
            f"**Pages with Data:** {insights.meta.total_pages_with_data}",
            f"**Note:** {insights.meta.data_freshness}",
        ]
    )
    return "\n".join(lines)
