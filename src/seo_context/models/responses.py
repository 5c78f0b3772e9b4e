from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

from ..api.types import GscInsights

Severity = Literal["critical", "high", "medium", "low", "warning", "info"]


# Page context
@dataclass
class Keyword:
    keyword: str
    position: float
    clicks: int
    impressions: int
    trend: Literal["up", "down", "stable"] = "stable"  # needs historical data


@dataclass
class PerformanceContext:
    your_site_average_position: float = 0.0
    this_page_vs_average: float = 0.0
    percentile_on_site: str = "50th"


@dataclass
class Performance:
    clicks_last_28_days: int = 0
    impressions: int = 0
    avg_position: float = 0.0
    ctr: float = 0.0
    top_keywords: List[Keyword] = field(default_factory=list)
    context: PerformanceContext = field(default_factory=PerformanceContext)
    keywords_note: Optional[str] = None  # Set when GSC hides low-volume queries


@dataclass
class Impact:
    estimated_change: str
    reasoning: str
    confidence: Literal["high", "medium", "low"] = "medium"


@dataclass
class Fix:
    type: str  # "add", "replace", "remove", "create", ...
    instructions: str
    code_snippet: str = ""
    suggested_location: str = ""


@dataclass
class PageIssue:
    type: str
    severity: Severity
    title: str
    description: str
    impact: Impact
    fix: Fix
    current_state: Dict[str, Any] = field(default_factory=dict)
    recommended: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Opportunity:
    title: str
    description: str
    estimated_impact: str
    effort: str
    priority_score: int
    suggestion: str
    code_example: str = ""


@dataclass
class SeoContext:
    """SEO context for one page (or the whole site when no page matched)."""

    url: str
    last_analyzed: str
    source: Literal["production_database", "local_dev_server"]
    fetched_from: str
    performance: Performance
    issues: List[PageIssue] = field(default_factory=list)
    opportunities: List[Opportunity] = field(default_factory=list)
    ai_summary: str = ""
    quick_wins: List[Union[Opportunity, PageIssue]] = field(default_factory=list)
    # How a file_path input was mapped, if one was given
    resolved_url_path: Optional[str] = None
    resolution_confidence: Optional[str] = None


# Site scan
@dataclass
class ScanIssue:
    url: Optional[str]
    type: str
    severity: str
    title: str
    description: str
    fix: Fix
    estimated_impact: str


@dataclass
class ScanSummary:
    total_pages: int = 0
    pages_with_issues: int = 0  # Only pages with critical/warning issues
    total_issues: int = 0
    critical_issues: int = 0
    warning_issues: int = 0
    info_issues: int = 0


@dataclass
class SiteScanResult:
    domain: str
    scanned_at: str
    scan_summary: ScanSummary
    health_score: int
    health_grade: str
    issue_categories: Dict[str, int]
    issues: List[ScanIssue]
    showing: int
    total_matching: int
    has_more: bool
    summary: str
    recommended_actions: List[str] = field(default_factory=list)


# Crawl
@dataclass
class CrawlSummary:
    total_urls: int
    urls_checked: int
    issues_found: int
    crawl_duration_ms: int
    crawl_method: Literal["sitemap", "navigation", "failed"] = "sitemap"


@dataclass
class CrawlSiteResult:
    success: bool
    message: str
    summary: CrawlSummary
    invalidated_cache_entries: int = 0


# Insights
@dataclass
class GscInsightsResult:
    insights: GscInsights
    report: str  # Markdown formatted for LLM consumption


# Path resolution
@dataclass
class UrlPathResolution:
    file_path: str
    url_path: str
    confidence: str
    convention: str
    dynamic_segments: List[str] = field(default_factory=list)


# Feature specs
@dataclass
class CreatedFeatureSpec:
    id: str
    title: str
    status: str
    priority: str
    feature_type: str
    criteria_count: int = 0
    tasks_count: int = 0
    created_at: Optional[str] = None


@dataclass
class CreateFeatureSpecResult:
    spec: CreatedFeatureSpec
    url: str  # Dashboard link
    success: bool = True


@dataclass
class FeatureSpecSummary:
    title: str
    status: str
    priority: str
    next_action: Optional[str] = None
    tasks_total: int = 0
    tasks_completed: int = 0
    criteria_total: int = 0


@dataclass
class FeatureSpecDetail:
    """A full feature spec as stored by the backend, plus a progress summary."""

    spec: Dict[str, Any]
    summary: FeatureSpecSummary
    criteria: List[Dict[str, Any]] = field(default_factory=list)
    tasks: List[Dict[str, Any]] = field(default_factory=list)
    dashboard_url: Optional[str] = None


@dataclass
class FeatureSpecMatch:
    spec_id: str
    title: str
    status: Optional[str] = None
    priority: Optional[str] = None
    feature_type: Optional[str] = None
    next_action: Optional[str] = None
    tasks_count: Optional[int] = None
    completed_tasks_count: Optional[int] = None


@dataclass
class FeatureSpecSearchResult:
    message: str
    specs: List[FeatureSpecMatch] = field(default_factory=list)


@dataclass
class FeatureSpecUpdateResult:
    spec_id: str
    success: bool = True
    next_action: Optional[str] = None
    suggested_commit: Optional[str] = None
