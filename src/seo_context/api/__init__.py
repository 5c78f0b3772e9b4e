"""Backend API client and its typed results."""

from .client import BackendClient
from .types import QueriesResult, SiteRef, SiteUrl, UrlsPage

__all__ = ["BackendClient", "QueriesResult", "SiteRef", "SiteUrl", "UrlsPage"]
