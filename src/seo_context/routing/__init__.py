"""Resolution between local source files and live URL paths."""

from .resolver import PathResolver
from .specs import ROUTING_CONVENTIONS, RoutingConvention
from .types import Confidence, ResolvedPath

__all__ = [
    "PathResolver",
    "ResolvedPath",
    "Confidence",
    "RoutingConvention",
    "ROUTING_CONVENTIONS",
]
