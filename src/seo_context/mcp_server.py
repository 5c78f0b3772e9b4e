"""MCP Server for SEO context.

Exposes page, site and Search Console SEO data as MCP tools using FastMCP.
"""

from __future__ import annotations

import asyncio
import atexit
import logging
import os
import signal
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from mcp.server import FastMCP

from .config import find_config_file
from .models.responses import UrlPathResolution
from .server import SeoContextServer
from .utils.log import configure_logging

logger = logging.getLogger(__name__)

# Global server instance and project path
_seo_server: Optional[SeoContextServer] = None
_project_path: Optional[str] = None

mcp = FastMCP("SEO Context")


def set_project_path(path: str) -> None:
    """Set the project path the server resolves file paths against."""
    global _project_path
    _project_path = str(Path(path).resolve())


def get_project_path() -> str:
    """Get the current project path."""
    return _project_path or os.getenv("SEO_PROJECT_PATH") or os.getcwd()


async def get_server() -> SeoContextServer:
    """Get or create the server instance."""
    global _seo_server
    if _seo_server is None:
        _seo_server = SeoContextServer(project_path=get_project_path())
        # .env and .seo-context.toml may set a different level than the process env
        configure_logging(_seo_server.config.log_level)
        await _seo_server.start()
    return _seo_server


def _cleanup_server() -> None:
    """Close the backend connection pool on exit."""
    global _seo_server
    if _seo_server is not None:
        try:
            # Run cleanup in a new event loop since we might be called from atexit
            loop = asyncio.new_event_loop()
            try:
                loop.run_until_complete(_seo_server.stop())
            finally:
                loop.close()
        except Exception as e:
            logger.debug("Error during shutdown: %s", e)
        finally:
            _seo_server = None


def _setup_cleanup_handlers() -> None:
    """Set up signal handlers and atexit hooks for cleanup."""
    atexit.register(_cleanup_server)

    def signal_handler(signum, frame):
        _cleanup_server()
        # Re-raise the signal to allow normal termination
        signal.signal(signum, signal.SIG_DFL)
        signal.raise_signal(signum)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def _to_dict(obj: Any) -> Any:
    """Convert dataclass objects to dictionaries for JSON serialization."""
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    elif isinstance(obj, list):
        return [_to_dict(item) for item in obj]
    elif isinstance(obj, dict):
        return {k: _to_dict(v) for k, v in obj.items()}
    return obj


# ============================================================================
# QUICK START GUIDE
# ============================================================================
#
# 📄 PAGE CONTEXT
#     get_page_seo         - Performance, issues and opportunities for one page
#     resolve_url_path     - Which URL does this source file serve?
#
# 🩺 SITE HEALTH
#     get_issues           - Site-wide issues with health score
#     crawl_site           - Re-crawl after deploying fixes (clears cached scans)
#
# 📈 SEARCH CONSOLE
#     get_gsc_insights     - Top pages, query opportunities, content ideas
#
# 📝 FEATURE SPECS
#     create_feature_spec  - Save a spec with acceptance criteria and tasks
#     get_feature_spec     - Read a spec by id, or search by keyword
#     update_feature_spec  - Tick off tasks and criteria, advance next_action
#
# 🔧 CONFIGURATION
#     get_server_config    - Effective settings and cache size
#
# Domains like localhost:3000 are analysed live from the dev server instead
# of the backend.
#
# ============================================================================
# Page Tools
# ============================================================================


@mcp.tool()
async def get_page_seo(
    domain: str | None = None,
    url_path: str | None = None,
    file_path: str | None = None,
    content: str | None = None,
) -> Dict[str, Any]:
    """Get SEO performance data and insights for a specific page.

    Provide either url_path or file_path. A file path is mapped to its URL
    using the framework's file-based routing (Next.js, Astro, Nuxt, SvelteKit).
    When the page cannot be matched, site-level context is returned instead.

    Args:
        domain: Site domain (e.g., "example.com"). Uses SEO_CLIENT_DOMAIN env var if not provided.
            Local domains (localhost, 127.0.0.1, local.*) are fetched from the dev server.
        url_path: Page URL path (e.g., "/blog/post")
        file_path: Local file path of the page source (e.g., "app/blog/[slug]/page.tsx")
        content: Current file content

    Returns:
        SEO context including:
        - performance: clicks, impressions, position, CTR and top keywords (last 28 days)
        - issues: detected problems, each with impact and a concrete fix
        - opportunities and quick_wins
        - ai_summary: one-paragraph overview
        - resolved_url_path / resolution_confidence when file_path was used
    """
    try:
        server = await get_server()
        result = await server.get_page_seo(domain, url_path, file_path, content)
        return _to_dict(result)
    except Exception as e:
        logger.error("Failed to get SEO context: %s", e)
        return {"error": f"Failed to fetch SEO context: {e}"}


@mcp.tool()
async def resolve_url_path(file_path: str) -> Dict[str, Any]:
    """Map a local source file to the URL path it serves.

    Args:
        file_path: Path to a page file, relative to the project or absolute

    Returns:
        url_path (":name" marks a dynamic segment), confidence (high/medium/low)
        and the routing convention used, or an error when the file is not a route.

    Example:
        resolve_url_path("app/blog/[slug]/page.tsx")
        → {"url_path": "/blog/:slug", "confidence": "medium", "convention": "next-app"}
    """
    try:
        server = await get_server()
        resolved = server.resolve_url_path(file_path)
    except Exception as e:
        return {"error": str(e)}

    if resolved is None:
        return {"error": f"Could not resolve a URL path for {file_path}", "file_path": file_path}

    return _to_dict(
        UrlPathResolution(
            file_path=file_path,
            url_path=resolved.url_path,
            confidence=resolved.confidence.value,
            convention=resolved.convention,
            dynamic_segments=list(resolved.dynamic_segments),
        )
    )


# ============================================================================
# Site Tools
# ============================================================================


@mcp.tool()
async def get_issues(
    domain: str | None = None,
    severity: List[Literal["critical", "high", "medium", "low", "warning", "info"]] | None = None,
    issue_types: List[str] | None = None,
    limit: int = 50,
) -> Dict[str, Any]:
    """Get SEO issues for the entire site with a health score.

    Args:
        domain: Site domain (e.g., "example.com"). Uses SEO_CLIENT_DOMAIN env var if not provided.
        severity: Only return issues with these severities
        issue_types: Only return these issue types (e.g., ["missing_title", "http_404"])
        limit: Max number of issues to return (1-100, default: 50)

    Returns:
        Site scan including health_score/health_grade, scan_summary counts,
        issue_categories, the filtered issues with fixes, and up to five
        recommended_actions. Results are cached until the next crawl_site.
    """
    try:
        server = await get_server()
        result = await server.get_issues(domain, severity, issue_types, limit)
        return _to_dict(result)
    except Exception as e:
        logger.error("Failed to scan site: %s", e)
        return {"error": f"Failed to scan site: {e}"}


@mcp.tool()
async def crawl_site(domain: str | None = None) -> Dict[str, Any]:
    """Trigger a fresh site crawl and analysis.

    Run this after deploying fixes. Cached issue scans and page contexts for
    the domain are invalidated so the next calls see fresh data.

    Args:
        domain: Site domain (e.g., "example.com"). Uses SEO_CLIENT_DOMAIN env var if not provided.
    """
    try:
        server = await get_server()
        result = await server.crawl_site(domain)
        return _to_dict(result)
    except Exception as e:
        logger.error("Failed to crawl site: %s", e)
        return {"error": f"Failed to crawl site: {e}"}


# ============================================================================
# Search Console Tools
# ============================================================================


@mcp.tool()
async def get_gsc_insights(
    domain: str | None = None,
    period: Literal["7d", "28d", "90d"] = "28d",
    include_recommendations: bool = True,
) -> Dict[str, Any]:
    """Get Google Search Console insights with content recommendations.

    Args:
        domain: Site domain (e.g., "example.com"). Uses SEO_CLIENT_DOMAIN env var if not provided.
        period: Time period for analysis (default: 28d)
        include_recommendations: Include content recommendations (default: true)

    Returns:
        insights (summary, top_pages, opportunities, content_recommendations)
        and report, the same data as a markdown document.
    """
    try:
        server = await get_server()
        result = await server.get_gsc_insights(domain, period, include_recommendations)
        return _to_dict(result)
    except Exception as e:
        logger.error("Failed to get GSC insights for %s: %s", domain, e)
        return {"error": str(e)}


# ============================================================================
# Feature Spec Tools
# ============================================================================


@mcp.tool()
async def create_feature_spec(
    title: str,
    domain: str | None = None,
    project_id: str | None = None,
    description: str | None = None,
    feature_type: Literal["new_feature", "enhancement", "refactor", "bug_fix"] = "new_feature",
    priority: Literal["critical", "high", "normal", "low"] = "normal",
    ai_context_summary: str | None = None,
    next_action: str | None = None,
    tech_stack: List[str] | None = None,
    affected_files: List[str] | None = None,
    tags: List[str] | None = None,
    criteria: List[Dict[str, Any]] | None = None,
    tasks: List[Dict[str, Any]] | None = None,
) -> Dict[str, Any]:
    """Save a feature spec for the site.

    Fill in every field from the codebase before calling. The spec is saved
    with status "planned" and a dashboard link is returned.

    Args:
        title: Short, imperative title (e.g., "Add dark mode toggle")
        domain: Site domain (e.g., "example.com"). Uses SEO_CLIENT_DOMAIN env var if not provided.
        project_id: Site UUID, used instead of domain when the domain is not registered
        description: Purpose of the feature and its user value
        feature_type: new_feature, enhancement, refactor or bug_fix
        priority: critical, high, normal or low
        ai_context_summary: 2-3 sentences on architecture decisions for future agents
        next_action: The single next concrete step
        tech_stack: Technologies involved (e.g., ["Next.js", "Tailwind CSS"])
        affected_files: Files that will be created or modified (relative paths)
        tags: Free-form labels
        criteria: Acceptance criteria, each {title, description?, criterion_type?,
            verification_method?, is_required?}
        tasks: Ordered implementation tasks, each {title, description?, task_type?,
            files_to_modify?, code_snippet?}
    """
    try:
        server = await get_server()
        result = await server.create_feature_spec(
            title,
            domain=domain,
            project_id=project_id,
            description=description,
            feature_type=feature_type,
            priority=priority,
            ai_context_summary=ai_context_summary,
            next_action=next_action,
            tech_stack=tech_stack,
            affected_files=affected_files,
            tags=tags,
            criteria=criteria,
            tasks=tasks,
        )
        return _to_dict(result)
    except Exception as e:
        logger.error("Failed to create feature spec: %s", e)
        return {"error": f"Failed to create feature spec: {e}"}


@mcp.tool()
async def get_feature_spec(
    spec_id: str | None = None,
    search: str | None = None,
    domain: str | None = None,
    project_id: str | None = None,
    include_criteria: bool = True,
    include_tasks: bool = True,
) -> Dict[str, Any]:
    """Retrieve a feature spec before starting work on it.

    Args:
        spec_id: UUID of one spec. Returns the full spec with criteria and tasks.
        search: Keyword matched against spec titles and descriptions. Returns a list.
        domain: Site domain for search. Uses SEO_CLIENT_DOMAIN env var if not provided.
        project_id: Site UUID for search, used instead of domain
        include_criteria: Include acceptance criteria (spec_id only)
        include_tasks: Include implementation tasks (spec_id only)
    """
    if not spec_id and not search:
        return {
            "error": "Provide either spec_id (for a specific spec) or search (keyword lookup)."
        }

    try:
        server = await get_server()
        if spec_id:
            result = await server.get_feature_spec(spec_id, include_criteria, include_tasks)
        else:
            result = await server.search_feature_specs(search, domain, project_id)
        return _to_dict(result)
    except Exception as e:
        logger.error("Failed to get feature spec: %s", e)
        return {"error": f"Failed to get feature spec: {e}"}


@mcp.tool()
async def update_feature_spec(
    spec_id: str,
    status: Literal["planned", "in_progress", "completed", "verified", "deprecated"] | None = None,
    next_action: str | None = None,
    task_id: str | None = None,
    task_status: Literal["todo", "in_progress", "completed", "blocked"] | None = None,
    criterion_id: str | None = None,
    criterion_status: Literal["pending", "implemented", "tested", "verified"] | None = None,
) -> Dict[str, Any]:
    """Record progress on a feature spec.

    Call after finishing a task to keep the spec in sync. next_action advances
    automatically after a task completes unless given.

    Returns:
        success, the new next_action and a suggested git commit message
    """
    try:
        server = await get_server()
        result = await server.update_feature_spec(
            spec_id,
            status=status,
            next_action=next_action,
            task_id=task_id,
            task_status=task_status,
            criterion_id=criterion_id,
            criterion_status=criterion_status,
        )
        return _to_dict(result)
    except Exception as e:
        logger.error("Failed to update feature spec %s: %s", spec_id, e)
        return {"error": f"Failed to update feature spec: {e}"}


# ============================================================================
# Configuration Tools
# ============================================================================


@mcp.tool()
async def get_server_config() -> Dict[str, Any]:
    """Get the server's effective configuration.

    Returns:
        Configuration including backend URL, cache TTLs, default domain,
        project path, whether .seo-context.toml exists and the number of
        cached responses. The API key itself is never shown.
    """
    try:
        server = await get_server()
    except Exception as e:
        return {"error": str(e)}

    config_file = find_config_file(Path(server.project_path))
    return {
        **server.config.summary(),
        "project_path": server.project_path,
        "config_file": str(config_file) if config_file else None,
        "cached_entries": len(server.cache),
    }


# ============================================================================
# Entry Point
# ============================================================================


def main():
    """Run the MCP server.

    The project path can be set via:
    1. First command line argument
    2. SEO_PROJECT_PATH environment variable
    3. Current working directory (default)
    """
    import sys

    # Set up cleanup handlers FIRST to ensure proper shutdown
    _setup_cleanup_handlers()

    if len(sys.argv) > 1 and not sys.argv[1].startswith("-"):
        set_project_path(sys.argv[1])
        # Remove the argument so FastMCP doesn't see it
        sys.argv = [sys.argv[0]] + sys.argv[2:]

    configure_logging(os.getenv("LOG_LEVEL", "info"))

    project_path = get_project_path()
    logger.info("Starting SEO Context MCP Server for %s", project_path)

    # FastMCP handles the server lifecycle and stdio communication
    mcp.run()


if __name__ == "__main__":
    main()
