"""Utility modules (cache, logging, path)."""

from .cache import ResponseCache
from .path import (
    is_absolute_path,
    make_relative_to_project,
    normalize_url_path,
    split_path_segments,
)

__all__ = [
    "ResponseCache",
    "is_absolute_path",
    "make_relative_to_project",
    "normalize_url_path",
    "split_path_segments",
]
