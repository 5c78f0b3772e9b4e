"""Data types for file path to URL path resolution."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class Confidence(str, Enum):
    """How trustworthy a heuristically resolved URL path is.

    - HIGH: convention unambiguous, no dynamic segment
    - MEDIUM: a dynamic segment was replaced by a wildcard token
    - LOW: routing conventions or candidate routing roots disagreed
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ResolvedPath:
    """Result of resolving a local file path to the URL path it serves.

    Attributes:
        url_path: Absolute URL path ("/" for the root, no trailing slash otherwise)
        confidence: Coarse estimate of how reliable the mapping is
        convention: Name of the routing convention used to build url_path
        dynamic_segments: Parameter names that were replaced by wildcard tokens
    """

    url_path: str
    confidence: Confidence
    convention: str
    dynamic_segments: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_dynamic(self) -> bool:
        return bool(self.dynamic_segments)

    def __repr__(self) -> str:
        return f"<ResolvedPath {self.url_path} ({self.confidence.value}, {self.convention})>"
