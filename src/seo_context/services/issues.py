from __future__ import annotations

import json
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from ..api.client import BackendClient
from ..config import SeoContextConfig
from ..errors import DomainRequiredError
from ..models.responses import Fix, ScanIssue, ScanSummary, SiteScanResult
from ..utils.cache import ResponseCache

logger = logging.getLogger(__name__)

CACHE_CATEGORY = "site-scan"

DEFAULT_LIMIT = 50
MAX_LIMIT = 100

# Fix templates keyed by issue type
FIXES: Dict[str, Fix] = {
    "missing_title": Fix(
        type="add",
        code_snippet="<title>Your Page Title (50-60 chars)</title>",
        instructions="Add a descriptive title tag in the <head> section",
    ),
    "missing_meta_description": Fix(
        type="add",
        code_snippet='<meta name="description" content="Your description (150-160 chars)" />',
        instructions="Add a compelling meta description in the <head> section",
    ),
    "missing_sitemap": Fix(
        type="create",
        instructions=(
            "Create a sitemap.xml file listing all important pages. For Next.js, use "
            "next-sitemap or create app/sitemap.ts. For static sites, use a sitemap generator."
        ),
        code_snippet=(
            "// Next.js 14+ sitemap example (app/sitemap.ts)\n"
            "export default function sitemap() {\n"
            "  return [\n"
            '    { url: "https://yourdomain.com", lastModified: new Date() },\n'
            '    { url: "https://yourdomain.com/about", lastModified: new Date() },\n'
            "  ];\n"
            "}"
        ),
    ),
    "missing_robots_txt": Fix(
        type="create",
        instructions="Create a robots.txt file in your public directory that references your sitemap.",
        code_snippet=(
            "# robots.txt\nUser-agent: *\nAllow: /\n\n"
            "Sitemap: https://yourdomain.com/sitemap.xml"
        ),
    ),
    "http_404": Fix(
        type="fix-or-redirect",
        instructions="Either fix the content or set up a 301 redirect to a relevant page",
    ),
    "slow_response": Fix(
        type="optimize",
        instructions="Optimize page load time - check images, scripts, and server response time",
    ),
}

_REVIEW_FIX = Fix(type="review", instructions="Review and fix this issue manually")

_GRADE_TEXT = {"A": "Excellent", "B": "Good", "C": "Fair", "D": "Poor"}


def generate_fix(issue_type: str) -> Fix:
    return FIXES.get(issue_type, _REVIEW_FIX)


def estimate_impact(severity: str) -> str:
    if severity == "critical":
        return "High - immediate impact on search visibility"
    if severity in ("high", "warning"):
        return "Medium - noticeable improvement when fixed"
    return "Low - minor improvement"


def filters_key(
    severity: Optional[Sequence[str]],
    issue_types: Optional[Sequence[str]],
    limit: int,
) -> str:
    """Canonical JSON for a filter set, so equal filters share one cache entry."""
    filters = {
        "issue_types": sorted(issue_types) if issue_types else None,
        "limit": limit,
        "severity": sorted(severity) if severity else None,
    }
    return json.dumps(filters, sort_keys=True, separators=(",", ":"))


def summarize_scan(summary: ScanSummary, score: int, grade: str) -> str:
    grade_text = _GRADE_TEXT.get(grade, "Critical")
    text = f"Your site has a health score of {score}/100 ({grade_text}, grade {grade}). "

    if summary.critical_issues > 0:
        text += f"🚨 {summary.critical_issues} critical issues require immediate attention. "
    if summary.warning_issues > 0:
        text += f"⚠️ {summary.warning_issues} warnings should be fixed soon. "

    if summary.critical_issues == 0 and summary.warning_issues == 0:
        text += "✅ No critical or warning issues detected!"
        if summary.info_issues > 0:
            text += f" ({summary.info_issues} info-level items for optimization)"
    else:
        text += f"Total: {summary.total_issues} issues across {summary.pages_with_issues} pages."

    return text


def recommend_actions(summary: ScanSummary, categories: Dict[str, int]) -> List[str]:
    """Top five actions, most urgent first."""
    actions: List[str] = []

    missing_sitemap = categories.get("missing_sitemap", 0)
    if missing_sitemap > 0:
        actions.append(
            "🚨 Create a sitemap.xml immediately - this is critical for search engine discovery"
        )

    other_critical = summary.critical_issues - missing_sitemap
    if summary.critical_issues > 0 and other_critical > 0:
        actions.append(
            f"Fix {other_critical} critical issues immediately - "
            f"these are actively hurting your SEO"
        )

    if categories.get("http_404", 0) > 5:
        actions.append(
            f"Audit and fix {categories['http_404']} 404 errors - redirect or restore missing pages"
        )

    if categories.get("missing_title", 0) > 0:
        actions.append(
            f"Add title tags to {categories['missing_title']} pages - critical for SEO"
        )

    if categories.get("missing_robots_txt", 0) > 0:
        actions.append("Create a robots.txt file to help guide search engines")

    if categories.get("missing_meta_description", 0) > 10:
        actions.append(
            f"Consider adding meta descriptions to {categories['missing_meta_description']} "
            f"pages - can improve CTR"
        )

    if summary.warning_issues > 0:
        actions.append(f"Review {summary.warning_issues} warnings and create a fix plan")

    if not actions:
        actions.append("Keep monitoring your site regularly for new issues")
        actions.append("Consider implementing structured data for better search visibility")

    return actions[:5]


class IssuesService:
    """Site-wide issue scan with health score."""

    def __init__(self, api: BackendClient, cache: ResponseCache, config: SeoContextConfig) -> None:
        self.api = api
        self.cache = cache
        self.config = config

    async def get_issues(
        self,
        domain: Optional[str] = None,
        severity: Optional[Sequence[str]] = None,
        issue_types: Optional[Sequence[str]] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> SiteScanResult:
        """Get site issues with health score.

        Raises:
            DomainRequiredError: If no domain is given or configured
            ValueError: If limit is outside 1..100
        """
        domain = domain or self.config.default_domain
        if not domain:
            raise DomainRequiredError()
        if not 1 <= limit <= MAX_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_LIMIT}, got {limit}")

        logger.info(
            "Getting site issues: domain=%s severity=%s issue_types=%s limit=%d",
            domain,
            severity,
            issue_types,
            limit,
        )

        key = self.cache.generate_key(
            CACHE_CATEGORY, domain, filters_key(severity, issue_types, limit)
        )
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Returning cached scan result for %s", domain)
            return cached

        site = await self.api.resolve_site(domain=domain)
        stats = await self.api.get_site_stats(site.site_id)
        urls = await self.api.get_site_urls(site.site_id, limit=1000)
        site_issues = await self.api.get_site_issues(site.site_id)

        all_issues = [
            ScanIssue(
                url=issue.url,
                type=issue.type,
                severity=issue.severity,
                title=issue.title,
                description=issue.description,
                fix=generate_fix(issue.type),
                estimated_impact=estimate_impact(issue.severity),
            )
            for issue in site_issues
        ]

        filtered = all_issues
        if severity:
            filtered = [i for i in filtered if i.severity in severity]
        if issue_types:
            filtered = [i for i in filtered if i.type in issue_types]

        severities = Counter(i.severity for i in all_issues)
        summary = ScanSummary(
            total_pages=len(urls.urls),
            pages_with_issues=len(
                {i.url for i in all_issues if i.severity in ("critical", "warning")}
            ),
            total_issues=len(all_issues),
            critical_issues=severities["critical"],
            warning_issues=severities["warning"],
            info_issues=severities["info"],
        )
        categories = dict(Counter(i.type for i in all_issues))
        showing = filtered[:limit]

        result = SiteScanResult(
            domain=domain,
            scanned_at=datetime.now(timezone.utc).isoformat(),
            scan_summary=summary,
            health_score=stats.health_score,
            health_grade=stats.health_grade,
            issue_categories=categories,
            issues=showing,
            showing=len(showing),
            total_matching=len(filtered),
            has_more=len(filtered) > limit,
            summary=summarize_scan(summary, stats.health_score, stats.health_grade),
            recommended_actions=recommend_actions(summary, categories),
        )

        self.cache.set(key, result)
        return result
