"""Typed results returned by the backend API client.

The backend speaks camelCase JSON with many optional fields; the client
normalizes every payload into these dataclasses before handing it on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional
from urllib.parse import urlsplit

from ..utils.path import normalize_url_path


@dataclass
class ClientRecord:
    id: str
    company_name: str = ""
    domain: str = ""


@dataclass
class SiteRef:
    """A backend site together with the client (project) that owns it."""

    site_id: str
    client_id: str


@dataclass
class SiteUrl:
    id: str
    url: str
    http_status: Optional[int] = None
    has_title: bool = False
    title_text: Optional[str] = None
    has_meta_description: bool = False
    meta_description_text: Optional[str] = None
    issues: List[Dict[str, Any]] = field(default_factory=list)
    gsc_coverage_state: Optional[str] = None
    gsc_indexing_state: Optional[str] = None
    gsc_impressions_28d: Optional[int] = None
    gsc_clicks_28d: Optional[int] = None
    last_checked_at: Optional[str] = None

    @property
    def pathname(self) -> str:
        return urlsplit(self.url).path or "/"


@dataclass
class UrlsPage:
    urls: List[SiteUrl]
    total: Optional[int] = None

    def pathnames(self) -> List[str]:
        """Known URL paths for the site, as consumed by PathResolver.find_match."""
        return [u.pathname for u in self.urls]

    def find_by_pathname(self, pathname: str) -> Optional[SiteUrl]:
        target = normalize_url_path(pathname)
        for site_url in self.urls:
            if normalize_url_path(site_url.pathname) == target:
                return site_url
        return None


@dataclass
class QueryRow:
    query: str
    clicks: int = 0
    impressions: int = 0
    ctr: float = 0.0
    position: float = 0.0
    date: str = ""


@dataclass
class QuerySummary:
    total_clicks: int = 0
    total_impressions: int = 0
    avg_position: float = 0.0
    avg_ctr: float = 0.0


@dataclass
class QueriesResult:
    queries: List[QueryRow] = field(default_factory=list)
    summary: QuerySummary = field(default_factory=QuerySummary)

    @classmethod
    def empty(cls) -> "QueriesResult":
        """Result used when Search Console is not connected."""
        return cls()


@dataclass
class AnalysisSummary:
    total_urls: int = 0
    urls_checked: int = 0
    issues_found: int = 0
    critical_issues: int = 0
    warnings: int = 0
    duration_ms: int = 0


@dataclass
class AnalysisResult:
    success: bool
    summary: AnalysisSummary


@dataclass
class SiteIssue:
    url: Optional[str]
    type: str
    severity: str  # "critical" | "warning" | "info"
    title: str = ""
    description: str = ""


@dataclass
class SiteStats:
    health_score: int = 0
    health_grade: str = "F"


# GSC insights


@dataclass
class InsightsPeriod:
    start: str
    end: str
    days: int


@dataclass
class PageQuery:
    query: str
    clicks: int = 0
    impressions: int = 0
    position: float = 0.0


@dataclass
class TopPage:
    url_id: str
    url: str
    clicks: int = 0
    impressions: int = 0
    avg_position: float = 0.0
    ctr: float = 0.0
    top_queries: List[PageQuery] = field(default_factory=list)


@dataclass
class QueryOpportunity:
    query: str
    impressions: int = 0
    clicks: int = 0
    position: float = 0.0
    ctr: float = 0.0
    opportunity_type: List[str] = field(default_factory=list)
    recommendation: str = ""


@dataclass
class ContentRecommendation:
    title: str
    description: str = ""
    priority: Literal["high", "medium", "low"] = "medium"
    based_on: str = ""
    queries: List[str] = field(default_factory=list)


@dataclass
class InsightsMeta:
    total_queries: int = 0
    total_pages_with_data: int = 0
    data_freshness: str = ""


@dataclass
class GscInsights:
    period: InsightsPeriod
    summary: QuerySummary
    top_pages: List[TopPage] = field(default_factory=list)
    opportunities: List[QueryOpportunity] = field(default_factory=list)
    content_recommendations: List[ContentRecommendation] = field(default_factory=list)
    meta: InsightsMeta = field(default_factory=InsightsMeta)
