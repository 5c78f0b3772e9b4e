"""Local development server analyzer.

Fetches a page from a dev server (localhost) and derives SEO issues from its
HTML alone, without any search performance data.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

import httpx
from bs4 import BeautifulSoup

from ..errors import LocalServerError
from ..models.responses import Fix, Impact, PageIssue, Performance, PerformanceContext, SeoContext

logger = logging.getLogger(__name__)

USER_AGENT = "SEO-Context-MCP/1.0"

_SCHEME = re.compile(r"^https?://")


@dataclass
class LocalAnalysis:
    title: Optional[str] = None
    meta_description: Optional[str] = None
    schema_types: List[str] = field(default_factory=list)
    has_schema_org: bool = False
    h1: int = 0
    h2: int = 0
    h3: int = 0
    images_total: int = 0
    images_without_alt: int = 0
    internal_links: int = 0
    external_links: int = 0


def is_local_domain(domain: str) -> bool:
    """Check if domain is a local development server."""
    return "localhost" in domain or "127.0.0.1" in domain or domain.startswith("local.")


def local_page_url(domain: str, url_path: str) -> str:
    if domain.startswith("https://"):
        return f"{domain}{url_path}"
    return f"http://{_SCHEME.sub('', domain)}{url_path}"


async def fetch_local_html(
    domain: str,
    url_path: str,
    timeout: float = 5.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Fetch HTML from a local dev server.

    Raises:
        LocalServerError: If the server is down, times out or answers non-2xx
    """
    url = local_page_url(domain, url_path)
    logger.info("Fetching from local dev server: %s", url)

    async with httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
        transport=transport,
    ) as client:
        try:
            response = await client.get(url)
        except httpx.TimeoutException:
            raise LocalServerError(url, "timed out") from None
        except httpx.ConnectError as e:
            raise LocalServerError(url, str(e) or "connection refused") from None

    if response.is_error:
        raise LocalServerError(url, f"HTTP {response.status_code}: {response.reason_phrase}")

    logger.debug(
        "Fetched local HTML from %s (%d bytes, %s)",
        url,
        len(response.text),
        response.headers.get("content-type"),
    )
    return response.text


def analyze_html(html: str, domain: str) -> LocalAnalysis:
    """Extract the on-page SEO signals from an HTML document."""
    soup = BeautifulSoup(html, "html.parser")
    analysis = LocalAnalysis()

    title_tag = soup.find("title")
    if title_tag:
        analysis.title = title_tag.get_text().strip() or None

    meta = soup.find("meta", attrs={"name": "description"})
    if meta and meta.get("content"):
        analysis.meta_description = meta["content"].strip() or None

    scripts = soup.find_all("script", attrs={"type": "application/ld+json"})
    analysis.has_schema_org = len(scripts) > 0
    for script in scripts:
        try:
            data = json.loads(script.string or "")
        except json.JSONDecodeError:
            continue
        schema_type = data.get("@type") if isinstance(data, dict) else None
        if isinstance(schema_type, list):
            analysis.schema_types.append(", ".join(schema_type))
        elif schema_type:
            analysis.schema_types.append(schema_type)

    analysis.h1 = len(soup.find_all("h1"))
    analysis.h2 = len(soup.find_all("h2"))
    analysis.h3 = len(soup.find_all("h3"))

    images = soup.find_all("img")
    analysis.images_total = len(images)
    analysis.images_without_alt = sum(1 for img in images if not img.get("alt"))

    for link in soup.find_all("a", href=True):
        href = link["href"]
        if href.startswith(("/", "#")) or domain in href:
            analysis.internal_links += 1
        elif href.startswith("http"):
            analysis.external_links += 1

    return analysis


def _title_issue(title: Optional[str]) -> Optional[PageIssue]:
    if not title:
        return PageIssue(
            type="title_issue",
            severity="critical",
            title="Missing page title",
            description="Page does not have a <title> tag",
            current_state={"has_title": False, "sub_type": "missing"},
            recommended={"has_title": True},
            impact=Impact(
                estimated_change="Critical for SEO - title is the most important on-page factor",
                reasoning="Search engines use titles as the primary heading in search results",
                confidence="high",
            ),
            fix=Fix(
                type="add",
                code_snippet="export const metadata = {\n  title: 'Your Page Title Here',\n};",
                instructions="Add a title to your page metadata (Next.js) or <title> tag (HTML)",
                suggested_location="page.tsx metadata or <head> section",
            ),
        )
    if len(title) < 30:
        return PageIssue(
            type="title_issue",
            severity="medium",
            title="Title is too short",
            description=f"Title is only {len(title)} characters (recommended: 50-60)",
            current_state={"title": title, "length": len(title), "sub_type": "too_short"},
            recommended={"min_length": 50, "max_length": 60},
            impact=Impact(
                estimated_change="Longer titles provide more context to search engines",
                reasoning="Optimal title length is 50-60 characters for full display in search results",
            ),
            fix=Fix(
                type="replace",
                code_snippet=f"title: '{title} - Add more descriptive text here'",
                instructions="Expand your title to 50-60 characters with relevant keywords",
                suggested_location="page.tsx metadata",
            ),
        )
    if len(title) > 60:
        return PageIssue(
            type="title_issue",
            severity="low",
            title="Title might be truncated in search results",
            description=f"Title is {len(title)} characters (recommended: 50-60)",
            current_state={"title": title, "length": len(title), "sub_type": "too_long"},
            recommended={"max_length": 60},
            impact=Impact(
                estimated_change="Shorter titles display fully in search results",
                reasoning="Google typically displays first 50-60 characters of title",
            ),
            fix=Fix(
                type="replace",
                code_snippet=f"title: '{title[:57]}...'",
                instructions="Shorten your title to 50-60 characters",
                suggested_location="page.tsx metadata",
            ),
        )
    return None


def _meta_description_issue(description: Optional[str]) -> Optional[PageIssue]:
    if not description:
        return PageIssue(
            type="meta_description_issue",
            severity="high",
            title="Missing meta description",
            description="Page does not have a meta description",
            current_state={"has_meta_description": False},
            recommended={"has_meta_description": True},
            impact=Impact(
                estimated_change="Improves click-through rate from search results",
                reasoning="Meta descriptions are shown as snippets in search results",
                confidence="high",
            ),
            fix=Fix(
                type="add",
                code_snippet=(
                    "export const metadata = {\n  title: '...',\n"
                    "  description: 'A compelling 150-160 character description of this page',\n};"
                ),
                instructions="Add a meta description to your page metadata",
                suggested_location="page.tsx metadata or <head> section",
            ),
        )
    if len(description) < 120:
        return PageIssue(
            type="meta_description_issue",
            severity="low",
            title="Meta description is too short",
            description=f"Description is only {len(description)} characters (recommended: 150-160)",
            current_state={"description": description, "length": len(description)},
            recommended={"min_length": 150, "max_length": 160},
            impact=Impact(
                estimated_change="Longer descriptions provide more context in search results",
                reasoning="Optimal description length is 150-160 characters",
            ),
            fix=Fix(
                type="replace",
                code_snippet=(
                    f"description: '{description} - Add more descriptive text here "
                    f"to reach 150-160 characters'"
                ),
                instructions="Expand your description to 150-160 characters",
                suggested_location="page.tsx metadata",
            ),
        )
    return None


def _heading_issue(h1_count: int) -> Optional[PageIssue]:
    if h1_count == 0:
        return PageIssue(
            type="missing_h1",
            severity="high",
            title="Missing H1 heading",
            description="Page does not have an H1 heading",
            current_state={"h1_count": 0},
            recommended={"h1_count": 1},
            impact=Impact(
                estimated_change="H1 helps search engines understand page topic",
                reasoning="Every page should have exactly one H1 heading",
                confidence="high",
            ),
            fix=Fix(
                type="add",
                code_snippet="<h1>Your Main Page Heading</h1>",
                instructions="Add a single H1 heading that describes the main topic of the page",
                suggested_location="Top of page content",
            ),
        )
    if h1_count > 1:
        return PageIssue(
            type="multiple_h1",
            severity="medium",
            title="Multiple H1 headings",
            description=f"Page has {h1_count} H1 headings (should be 1)",
            current_state={"h1_count": h1_count},
            recommended={"h1_count": 1},
            impact=Impact(
                estimated_change="Single H1 provides clearer page hierarchy",
                reasoning="Multiple H1s can confuse search engines about page topic",
            ),
            fix=Fix(
                type="replace",
                code_snippet="<!-- Change extra H1s to H2 or H3 -->\n<h2>Secondary Heading</h2>",
                instructions="Keep only one H1 and change others to H2 or H3",
                suggested_location="Page content",
            ),
        )
    return None


def find_local_issues(analysis: LocalAnalysis) -> List[PageIssue]:
    issues = [
        issue
        for issue in (
            _title_issue(analysis.title),
            _meta_description_issue(analysis.meta_description),
            _heading_issue(analysis.h1),
        )
        if issue is not None
    ]

    if analysis.images_without_alt > 0:
        issues.append(
            PageIssue(
                type="images_missing_alt",
                severity="medium",
                title="Images missing alt text",
                description=(
                    f"{analysis.images_without_alt} out of {analysis.images_total} "
                    f"images are missing alt text"
                ),
                current_state={
                    "images_without_alt": analysis.images_without_alt,
                    "total_images": analysis.images_total,
                },
                recommended={"images_without_alt": 0},
                impact=Impact(
                    estimated_change="Improves accessibility and image search ranking",
                    reasoning="Alt text helps search engines understand image content",
                    confidence="high",
                ),
                fix=Fix(
                    type="add",
                    code_snippet='<Image src="/photo.jpg" alt="Descriptive text about the image" />',
                    instructions="Add descriptive alt text to all images",
                    suggested_location="Image tags in page content",
                ),
            )
        )

    if not analysis.has_schema_org:
        issues.append(
            PageIssue(
                type="missing_schema",
                severity="low",
                title="No structured data found",
                description="Page does not have Schema.org structured data",
                current_state={"has_schema": False},
                recommended={"has_schema": True},
                impact=Impact(
                    estimated_change="Structured data enables rich results in search",
                    reasoning="Schema.org helps search engines understand page content better",
                ),
                fix=Fix(
                    type="add",
                    code_snippet=(
                        '<script type="application/ld+json">\n{\n'
                        '  "@context": "https://schema.org",\n'
                        '  "@type": "Article",\n'
                        '  "headline": "Your Article Title",\n'
                        '  "author": { "@type": "Person", "name": "Author Name" }\n'
                        "}\n</script>"
                    ),
                    instructions="Add appropriate Schema.org markup for your content type",
                    suggested_location="<head> or <body> section",
                ),
            )
        )

    return issues


def _local_summary(analysis: LocalAnalysis, issues: List[PageIssue]) -> str:
    priority = [i for i in issues if i.severity in ("critical", "high")]
    critical_count = sum(1 for i in issues if i.severity == "critical")

    lines = ["**Local Development Analysis**", ""]
    if not issues:
        lines.append("✅ Great job! This page has no major SEO issues detected.")
    else:
        plural = "" if len(issues) == 1 else "s"
        text = f"Found {len(issues)} SEO issue{plural}"
        if critical_count:
            text += f" ({critical_count} critical)"
        lines.append(text + ".")
    lines.append("")

    title = f'"{analysis.title}" ({len(analysis.title)} chars)' if analysis.title else "❌ Missing"
    description = (
        f"{len(analysis.meta_description)} chars" if analysis.meta_description else "❌ Missing"
    )
    schema = f"✅ {', '.join(analysis.schema_types)}" if analysis.has_schema_org else "❌ Not found"

    lines.extend(
        [
            "**Page Structure:**",
            f"- Title: {title}",
            f"- Meta Description: {description}",
            f"- Headings: {analysis.h1} H1, {analysis.h2} H2, {analysis.h3} H3",
            f"- Images: {analysis.images_total} total ({analysis.images_without_alt} missing alt text)",
            f"- Links: {analysis.internal_links} internal, {analysis.external_links} external",
            f"- Schema.org: {schema}",
            "",
        ]
    )

    if priority:
        lines.append("**Priority Actions:**")
        lines.extend(f"- {issue.title}" for issue in priority[:3])

    return "\n".join(lines)


def build_local_context(analysis: LocalAnalysis, domain: str, url_path: str) -> SeoContext:
    """Build an SEO context from a local HTML analysis."""
    url = local_page_url(domain, url_path)
    issues = find_local_issues(analysis)

    return SeoContext(
        url=url,
        last_analyzed=datetime.now(timezone.utc).isoformat(),
        source="local_dev_server",
        fetched_from=url,
        performance=Performance(
            keywords_note="Local development - no search performance data available",
            context=PerformanceContext(percentile_on_site="N/A (local dev)"),
        ),
        issues=issues,
        ai_summary=_local_summary(analysis, issues),
        quick_wins=[i for i in issues if i.severity in ("critical", "high")],
    )
