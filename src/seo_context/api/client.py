"""Backend API client.

This module provides an async HTTP client for the SEO data backend and turns
its loosely shaped JSON into the typed results in api.types.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..errors import SiteResolutionError
from .types import (
    AnalysisResult,
    AnalysisSummary,
    ClientRecord,
    ContentRecommendation,
    GscInsights,
    InsightsMeta,
    InsightsPeriod,
    PageQuery,
    QueriesResult,
    QueryOpportunity,
    QueryRow,
    QuerySummary,
    SiteIssue,
    SiteRef,
    SiteStats,
    SiteUrl,
    TopPage,
    UrlsPage,
)

logger = logging.getLogger(__name__)


async def _log_request(request: httpx.Request) -> None:
    logger.debug("API Request: %s %s", request.method, request.url)


async def _log_response(response: httpx.Response) -> None:
    request = response.request
    if response.is_error and response.status_code != 404:
        logger.error("API Error: %s %s %s", response.status_code, request.method, request.url)
    else:
        logger.debug("API Response: %s %s", response.status_code, request.url)


def _is_not_found(error: httpx.HTTPStatusError) -> bool:
    return error.response.status_code == 404


class BackendClient:
    """Async HTTP client for the SEO data backend."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize backend client.

        Args:
            base_url: Backend base URL (e.g., http://localhost:3000)
            api_key: Bearer token sent with every request, if set
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
            event_hooks={"request": [_log_request], "response": [_log_response]},
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    # Generic requests

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """GET a JSON document, or None if the backend answers 404.

        Raises:
            httpx.HTTPError: If request fails for any other reason
        """
        response = await self.client.get(path, params=_clean_params(params))
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def post(self, path: str, json: Optional[Any] = None) -> Any:
        response = await self.client.post(path, json=json)
        response.raise_for_status()
        if not response.content:
            return None
        return response.json()

    async def patch(self, path: str, json: Optional[Any] = None) -> Any:
        response = await self.client.patch(path, json=json)
        response.raise_for_status()
        if not response.content:
            return None
        return response.json()

    # Clients and sites

    async def get_client_by_domain(self, domain: str) -> Optional[ClientRecord]:
        """Look up the client (project) registered for a domain."""
        payload = await self.get("/api/clients", params={"domain": domain})
        data = (payload or {}).get("data")
        if not data:
            return None
        return ClientRecord(
            id=data["id"],
            company_name=data.get("company_name") or "",
            domain=data.get("domain") or domain,
        )

    async def resolve_site(
        self,
        domain: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> SiteRef:
        """Resolve site and client ids from either a project id or a domain.

        All tools use this instead of implementing their own resolution logic.

        Raises:
            SiteResolutionError: If nothing is registered for the domain/project
        """
        if project_id:
            client_id = project_id
        elif domain:
            client = await self.get_client_by_domain(domain)
            if client is None:
                raise SiteResolutionError(
                    f'No project found for domain "{domain}". '
                    f"Add this domain in the dashboard first.",
                    domain=domain,
                )
            client_id = client.id
        else:
            raise SiteResolutionError(
                "No domain or project_id specified. Provide domain, project_id, "
                "or set SEO_CLIENT_DOMAIN / SEO_PROJECT_ID env var."
            )

        site = await self.get(f"/api/clients/{client_id}/site")
        if site and site.get("id"):
            return SiteRef(site_id=site["id"], client_id=site.get("client_id") or client_id)

        # A project id might be a site id rather than a client id
        if project_id:
            site_data = await self.get(f"/api/sites/{project_id}")
            if site_data and site_data.get("client_id"):
                return SiteRef(site_id=project_id, client_id=site_data["client_id"])

        target = f'ID "{project_id}"' if project_id else f'domain "{domain}"'
        raise SiteResolutionError(
            f"Could not resolve a project for {target}. Check your dashboard.",
            domain=domain,
        )

    async def get_site_urls(
        self,
        site_id: str,
        limit: Optional[int] = 1000,
        offset: Optional[int] = None,
        status: Optional[str] = None,
    ) -> UrlsPage:
        """Get the known URLs of a site with their current SEO state."""
        response = await self.client.get(
            f"/api/sites/{site_id}/urls",
            params=_clean_params({"limit": limit, "offset": offset, "status": status}),
        )
        response.raise_for_status()
        data = response.json()

        urls = [
            SiteUrl(
                id=u["id"],
                url=u["url"],
                http_status=u.get("current_http_status"),
                has_title=bool(u.get("current_has_title")),
                title_text=u.get("current_title_text"),
                has_meta_description=bool(u.get("current_has_meta_description")),
                meta_description_text=u.get("current_meta_description_text"),
                issues=list(u.get("current_issues") or u.get("issues") or []),
                gsc_coverage_state=u.get("current_gsc_coverage_state"),
                gsc_indexing_state=u.get("current_gsc_indexing_state"),
                gsc_impressions_28d=u.get("gsc_impressions_28d"),
                gsc_clicks_28d=u.get("gsc_clicks_28d"),
                last_checked_at=u.get("last_checked_at"),
            )
            for u in data.get("urls") or []
        ]
        return UrlsPage(urls=urls, total=data.get("total"))

    # Search Console

    async def get_url_queries(
        self,
        url_id: str,
        days: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> QueriesResult:
        """Get GSC queries for a URL (empty when GSC is not connected)."""
        try:
            response = await self.client.get(
                f"/api/urls/{url_id}/queries",
                params=_clean_params({"days": days, "limit": limit}),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if _is_not_found(e):
                return QueriesResult.empty()
            raise

        data = response.json()
        queries = [
            QueryRow(
                query=q.get("query", ""),
                clicks=q.get("clicks") or 0,
                impressions=q.get("impressions") or 0,
                ctr=q.get("ctr") or 0.0,
                position=q.get("position") or 0.0,
                date=q.get("date") or "",
            )
            for q in data.get("queries") or []
        ]

        # The summary includes rollup data even when queries is empty
        if data.get("summary"):
            s = data["summary"]
            summary = QuerySummary(
                total_clicks=s.get("totalClicks") or 0,
                total_impressions=s.get("totalImpressions") or 0,
                avg_position=s.get("avgPosition") or 0.0,
                avg_ctr=s.get("avgCtr") or 0.0,
            )
        else:
            summary = _summarize(queries)

        return QueriesResult(queries=queries, summary=summary)

    async def get_site_queries(
        self,
        site_id: str,
        limit: Optional[int] = None,
    ) -> QueriesResult:
        """Get GSC queries for a whole site (empty when GSC is not connected)."""
        try:
            response = await self.client.get(
                f"/api/sites/{site_id}/queries",
                params=_clean_params({"limit": limit}),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if _is_not_found(e):
                return QueriesResult.empty()
            raise

        data = response.json()
        queries = [
            QueryRow(
                query=q.get("query", ""),
                clicks=q.get("totalClicks") or 0,
                impressions=q.get("totalImpressions") or 0,
                ctr=q.get("avgCtr") or 0.0,
                position=q.get("avgPosition") or 0.0,
                date=q.get("date") or "",
            )
            for q in data.get("queries") or []
        ]

        site_summary = data.get("summary") or {}
        total_clicks = site_summary.get("totalClicks") or 0
        total_impressions = site_summary.get("totalImpressions") or 0
        avg_position = sum(q.position for q in queries) / len(queries) if queries else 0.0
        avg_ctr = total_clicks / total_impressions if total_impressions > 0 else 0.0

        return QueriesResult(
            queries=queries,
            summary=QuerySummary(
                total_clicks=total_clicks,
                total_impressions=total_impressions,
                avg_position=avg_position,
                avg_ctr=avg_ctr,
            ),
        )

    async def get_gsc_insights(
        self,
        site_id: str,
        days: int,
        include_recommendations: bool = True,
    ) -> Optional[GscInsights]:
        data = await self.get(
            f"/api/sites/{site_id}/gsc-insights",
            params={
                "days": days,
                "include_recommendations": "true" if include_recommendations else "false",
            },
        )
        if not data:
            return None
        return _parse_insights(data, days)

    # Analysis

    async def trigger_site_analysis(self, client_id: str) -> AnalysisResult:
        """Trigger a fresh crawl and analysis for a client's site."""
        data = await self.post(f"/api/clients/{client_id}/analyze") or {}
        summary = data.get("summary") or {}
        return AnalysisResult(
            success=bool(data.get("success")),
            summary=AnalysisSummary(
                total_urls=summary.get("totalUrls") or 0,
                urls_checked=summary.get("urlsChecked") or 0,
                issues_found=summary.get("issuesFound") or 0,
                critical_issues=summary.get("criticalIssues") or 0,
                warnings=summary.get("warnings") or 0,
                duration_ms=summary.get("duration") or 0,
            ),
        )

    async def get_site_issues(
        self,
        site_id: str,
        severity: Optional[str] = None,
    ) -> List[SiteIssue]:
        """Get issues for a site (real-time detection from current URL state)."""
        response = await self.client.get(
            f"/api/sites/{site_id}/issues",
            params=_clean_params({"severity": severity}),
        )
        response.raise_for_status()
        return [
            SiteIssue(
                url=i.get("url"),
                type=i.get("type", "unknown"),
                severity=i.get("severity", "info"),
                title=i.get("title") or i.get("type", ""),
                description=i.get("description") or "",
            )
            for i in response.json().get("issues") or []
        ]

    async def get_site_stats(self, site_id: str) -> SiteStats:
        response = await self.client.get(f"/api/sites/{site_id}/stats")
        response.raise_for_status()
        data = response.json()
        return SiteStats(
            health_score=data.get("health_score") or 0,
            health_grade=data.get("health_grade") or "F",
        )

    # Feature specs

    async def get_site_client_id(self, site_id: str) -> Optional[str]:
        """Get the id of the client that owns a site, if the site exists."""
        data = await self.get(f"/api/sites/{site_id}")
        return (data or {}).get("client_id") or None

    async def create_feature_spec(
        self, site_id: str, body: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Create a feature spec for a site. Returns the stored spec record."""
        data = await self.post(f"/api/sites/{site_id}/feature-specs", json=body)
        return (data or {}).get("spec")

    async def get_feature_spec(
        self,
        spec_id: str,
        include_criteria: bool = True,
        include_tasks: bool = True,
    ) -> Optional[Dict[str, Any]]:
        """Get one feature spec with its criteria and tasks, or None if unknown."""
        data = await self.get(
            f"/api/feature-specs/{spec_id}",
            params={
                "include_criteria": "true" if include_criteria else "false",
                "include_tasks": "true" if include_tasks else "false",
            },
        )
        if not data or not data.get("spec"):
            return None
        return data

    async def search_feature_specs(self, site_id: str, search: str) -> List[Dict[str, Any]]:
        data = await self.get(f"/api/sites/{site_id}/feature-specs", params={"search": search})
        return list((data or {}).get("specs") or [])

    async def update_feature_spec(self, spec_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self.patch(f"/api/feature-specs/{spec_id}", json=body) or {}


def _clean_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Drop unset query parameters."""
    if params is None:
        return None
    return {key: value for key, value in params.items() if value is not None}


def _summarize(queries: List[QueryRow]) -> QuerySummary:
    """Compute a summary from query-level rows."""
    total_clicks = sum(q.clicks for q in queries)
    total_impressions = sum(q.impressions for q in queries)
    return QuerySummary(
        total_clicks=total_clicks,
        total_impressions=total_impressions,
        avg_position=sum(q.position for q in queries) / len(queries) if queries else 0.0,
        avg_ctr=total_clicks / total_impressions if total_impressions > 0 else 0.0,
    )


def _parse_insights(data: Dict[str, Any], days: int) -> GscInsights:
    period = data.get("period") or {}
    summary = data.get("summary") or {}
    meta = data.get("meta") or {}

    return GscInsights(
        period=InsightsPeriod(
            start=period.get("start", ""),
            end=period.get("end", ""),
            days=period.get("days") or days,
        ),
        summary=QuerySummary(
            total_clicks=summary.get("total_clicks") or 0,
            total_impressions=summary.get("total_impressions") or 0,
            avg_position=summary.get("avg_position") or 0.0,
            avg_ctr=summary.get("avg_ctr") or 0.0,
        ),
        top_pages=[
            TopPage(
                url_id=p.get("url_id", ""),
                url=p.get("url", ""),
                clicks=p.get("clicks") or 0,
                impressions=p.get("impressions") or 0,
                avg_position=p.get("avg_position") or 0.0,
                ctr=p.get("ctr") or 0.0,
                top_queries=[
                    PageQuery(
                        query=q.get("query", ""),
                        clicks=q.get("clicks") or 0,
                        impressions=q.get("impressions") or 0,
                        position=q.get("position") or 0.0,
                    )
                    for q in p.get("top_queries") or []
                ],
            )
            for p in data.get("top_pages") or []
        ],
        opportunities=[
            QueryOpportunity(
                query=o.get("query", ""),
                impressions=o.get("impressions") or 0,
                clicks=o.get("clicks") or 0,
                position=o.get("position") or 0.0,
                ctr=o.get("ctr") or 0.0,
                opportunity_type=list(o.get("opportunity_type") or []),
                recommendation=o.get("recommendation") or "",
            )
            for o in data.get("opportunities") or []
        ],
        content_recommendations=[
            ContentRecommendation(
                title=r.get("title", ""),
                description=r.get("description") or "",
                priority=r.get("priority") or "medium",
                based_on=r.get("based_on") or "",
                queries=list(r.get("queries") or []),
            )
            for r in data.get("content_recommendations") or []
        ],
        meta=InsightsMeta(
            total_queries=meta.get("total_queries") or 0,
            total_pages_with_data=meta.get("total_pages_with_data") or 0,
            data_freshness=meta.get("data_freshness") or "",
        ),
    )
