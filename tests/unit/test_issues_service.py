"""Unit tests for the site issue scan."""

import pytest

from seo_context.api.types import SiteIssue, SiteStats, SiteUrl, UrlsPage
from seo_context.models.responses import ScanSummary
from seo_context.services.issues import (
    IssuesService,
    estimate_impact,
    filters_key,
    generate_fix,
    recommend_actions,
    summarize_scan,
)


@pytest.fixture
def service(mock_api, cache, config):
    return IssuesService(mock_api, cache, config)


@pytest.fixture
def site_issues():
    return [
        SiteIssue(url=None, type="missing_sitemap", severity="critical", title="No sitemap"),
        SiteIssue(url="https://example.com/a", type="http_404", severity="critical"),
        SiteIssue(url="https://example.com/a", type="missing_title", severity="warning"),
        SiteIssue(url="https://example.com/b", type="missing_meta_description", severity="info"),
    ]


class TestGetIssues:
    @pytest.mark.asyncio
    async def test_builds_scan_result(self, service, mock_api, site_issues):
        mock_api.get_site_stats.return_value = SiteStats(health_score=64, health_grade="D")
        mock_api.get_site_urls.return_value = UrlsPage(
            urls=[SiteUrl(id=str(i), url=f"https://example.com/{i}") for i in range(3)]
        )
        mock_api.get_site_issues.return_value = site_issues

        result = await service.get_issues()

        assert result.domain == "example.com"
        assert result.health_grade == "D"
        assert result.scan_summary.total_pages == 3
        assert result.scan_summary.total_issues == 4
        assert result.scan_summary.critical_issues == 2
        assert result.scan_summary.warning_issues == 1
        assert result.scan_summary.info_issues == 1
        # None (site-level) and /a; /b only has an info issue
        assert result.scan_summary.pages_with_issues == 2
        assert result.issue_categories["http_404"] == 1
        assert result.showing == 4
        assert result.has_more is False
        assert result.issues[0].fix.type == "create"
        assert result.issues[0].estimated_impact.startswith("High")
        assert "(Poor, grade D)" in result.summary
        assert result.recommended_actions[0].startswith("🚨 Create a sitemap.xml")

    @pytest.mark.asyncio
    async def test_filters_and_limit(self, service, mock_api, site_issues):
        mock_api.get_site_issues.return_value = site_issues

        result = await service.get_issues(severity=["critical"], limit=1)

        assert result.showing == 1
        assert result.total_matching == 2
        assert result.has_more is True
        # Summary counts are computed before filtering
        assert result.scan_summary.total_issues == 4

    @pytest.mark.asyncio
    async def test_issue_type_filter(self, service, mock_api, site_issues):
        mock_api.get_site_issues.return_value = site_issues

        result = await service.get_issues(issue_types=["missing_title"])

        assert [i.type for i in result.issues] == ["missing_title"]

    @pytest.mark.asyncio
    async def test_equal_filters_share_cache_entry(self, service, mock_api):
        await service.get_issues(severity=["warning", "critical"])
        await service.get_issues(severity=["critical", "warning"])

        assert mock_api.get_site_issues.await_count == 1

    @pytest.mark.asyncio
    async def test_different_filters_are_cached_separately(self, service, mock_api):
        await service.get_issues(severity=["critical"])
        await service.get_issues(severity=["warning"])

        assert mock_api.get_site_issues.await_count == 2

    @pytest.mark.asyncio
    async def test_limit_out_of_range(self, service):
        with pytest.raises(ValueError):
            await service.get_issues(limit=0)
        with pytest.raises(ValueError):
            await service.get_issues(limit=101)


class TestHelpers:
    def test_filters_key_is_canonical(self):
        assert filters_key(["b", "a"], None, 50) == filters_key(["a", "b"], [], 50)
        assert filters_key(None, None, 50) != filters_key(None, None, 10)

    def test_unknown_issue_type_gets_review_fix(self):
        assert generate_fix("something_new").type == "review"
        assert generate_fix("http_404").type == "fix-or-redirect"

    def test_estimate_impact(self):
        assert estimate_impact("warning").startswith("Medium")
        assert estimate_impact("info").startswith("Low")

    def test_clean_site_summary(self):
        summary = ScanSummary(info_issues=3)

        text = summarize_scan(summary, 95, "A")

        assert "(Excellent, grade A)" in text
        assert "(3 info-level items for optimization)" in text

    def test_actions_for_clean_site(self):
        assert recommend_actions(ScanSummary(), {}) == [
            "Keep monitoring your site regularly for new issues",
            "Consider implementing structured data for better search visibility",
        ]

    def test_actions_are_capped_at_five(self):
        summary = ScanSummary(critical_issues=12, warning_issues=4)
        categories = {
            "missing_sitemap": 1,
            "http_404": 8,
            "missing_title": 3,
            "missing_robots_txt": 1,
            "missing_meta_description": 20,
        }

        actions = recommend_actions(summary, categories)

        assert len(actions) == 5
        assert actions[1] == (
            "Fix 11 critical issues immediately - these are actively hurting your SEO"
        )
