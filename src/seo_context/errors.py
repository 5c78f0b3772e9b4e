"""Exceptions raised by the services behind the MCP tools."""

from __future__ import annotations

from typing import Optional


class SeoContextError(Exception):
    """Base class for expected, user-facing failures."""


class DomainRequiredError(SeoContextError):
    """Raised when a tool has no domain and none is configured."""

    def __init__(self) -> None:
        super().__init__(
            "No domain specified. Either provide domain parameter "
            "or set SEO_CLIENT_DOMAIN environment variable."
        )


class SiteResolutionError(SeoContextError):
    """Raised when a domain or project id is not registered with the backend."""

    def __init__(self, message: str, domain: Optional[str] = None) -> None:
        self.domain = domain
        super().__init__(message)


class LocalServerError(SeoContextError):
    """Raised when a local development server cannot be reached."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        super().__init__(
            f"Could not connect to local dev server at {url} ({reason}). "
            f"Make sure your dev server is running (e.g., npm run dev)."
        )
