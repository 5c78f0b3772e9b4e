"""Convention-based resolver between local source files and live URL paths."""

import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..utils.path import (
    is_absolute_path,
    make_relative_to_project,
    normalize_url_path,
    split_path_segments,
)
from .specs import ROUTING_CONVENTIONS, RoutingConvention
from .types import Confidence, ResolvedPath

logger = logging.getLogger(__name__)

# Project layers that sit above the route tree
SOURCE_PREFIXES = ("src",)

_NOT_ROUTABLE_DIRS = frozenset({"node_modules", ".next", ".svelte-kit", ".nuxt", "dist"})


class PathResolver:
    """Best-effort resolver for framework file-based routing.

    Works for any framework defined in ROUTING_CONVENTIONS.
    Uses declarative conventions instead of framework-specific code.
    Routine misses (unrecognised files, no or ambiguous match) return None.
    """

    def __init__(
        self,
        project_root: Optional[Union[str, Path]] = None,
        conventions: Optional[Sequence[RoutingConvention]] = None,
    ):
        """Initialize resolver.

        Args:
            project_root: Root path of the web project. Absolute file paths
                inside it are made project-relative before resolution.
            conventions: Routing conventions to apply (defaults to all known)
        """
        self.project_root = project_root
        self.conventions = (
            list(conventions) if conventions is not None else list(ROUTING_CONVENTIONS)
        )

    def resolve(self, file_path: str) -> Optional[ResolvedPath]:
        """Resolve a local file path to the URL path it most likely serves.

        The route tree may start anywhere in the path (monorepo packages,
        absolute paths outside the project root). Every directory that could
        be a routing root is tried. A root directly under "src/" is preferred,
        then the outermost one. When the candidate roots yield different URL
        paths the result is downgraded to LOW confidence.

        Args:
            file_path: Relative or absolute OS-native path inside a web project

        Returns:
            ResolvedPath, or None if the file is not under any routing root

        Raises:
            TypeError: If file_path is not a string
        """
        if not isinstance(file_path, str):
            raise TypeError(f"file_path must be a string, got {type(file_path).__name__}")

        segments = self._project_segments(file_path)
        if not segments:
            return None

        resolutions: List[ResolvedPath] = []
        for index in self._route_root_indexes(segments):
            resolved = self._resolve_from(segments[index:], file_path)
            if resolved is not None:
                resolutions.append(resolved)

        if not resolutions:
            return None

        chosen = resolutions[0]
        if any(other.url_path != chosen.url_path for other in resolutions[1:]):
            logger.debug(
                "Routing roots disagree for %s: %s",
                file_path,
                ", ".join(r.url_path for r in resolutions),
            )
            return replace(chosen, confidence=Confidence.LOW)
        return chosen

    def find_match(self, url_path: str, known_paths: Iterable[str]) -> Optional[str]:
        """Find the known site path that a candidate URL path refers to.

        Matching order:
        1. Exact match after trailing-slash normalization
        2. Wildcard match against exactly one concrete known path

        Several equally plausible wildcard matches are ambiguous and yield None:
        attributing SEO data to the wrong page is worse than no data.

        Args:
            url_path: Candidate URL path, possibly with ":name" wildcard tokens
            known_paths: Known absolute pathnames for the site

        Returns:
            The matching entry from known_paths (as given), or None

        Raises:
            TypeError: If url_path or any known path is not a string
        """
        if not isinstance(url_path, str):
            raise TypeError(f"url_path must be a string, got {type(url_path).__name__}")

        by_normalized: Dict[str, List[str]] = {}
        for known in known_paths:
            if not isinstance(known, str):
                raise TypeError(f"known paths must be strings, got {type(known).__name__}")
            by_normalized.setdefault(normalize_url_path(known), []).append(known)

        candidate = normalize_url_path(url_path)

        # 1. Static exact match always wins
        if candidate in by_normalized:
            return _pick_original(candidate, by_normalized[candidate])

        pattern = _wildcard_pattern(candidate)
        if pattern is None:
            return None

        # 2. Wildcard match, only when unambiguous
        matches = sorted(
            path
            for path in by_normalized
            if not _has_wildcard(path) and pattern.match(path)
        )
        if len(matches) == 1:
            return _pick_original(matches[0], by_normalized[matches[0]])

        if matches:
            logger.debug(
                "Ambiguous match for %s: %d candidates (%s)",
                url_path,
                len(matches),
                ", ".join(matches[:5]),
            )
        return None

    def _project_segments(self, file_path: str) -> List[str]:
        """Split a file path into segments, project-relative where possible."""
        if is_absolute_path(file_path) and self.project_root is not None:
            relative = make_relative_to_project(file_path, self.project_root)
            if relative is not None:
                file_path = relative

        segments = split_path_segments(file_path)
        if segments and segments[0] in SOURCE_PREFIXES:
            segments = segments[1:]

        if any(segment in _NOT_ROUTABLE_DIRS for segment in segments):
            return []

        return segments

    def _route_root_indexes(self, segments: List[str]) -> List[int]:
        """Indexes where a routing root starts, most plausible first."""
        # The last segment is the file itself, never a root directory
        indexes = [
            index
            for index in range(len(segments) - 1)
            if any(
                tuple(segments[index : index + len(c.root)]) == c.root for c in self.conventions
            )
        ]

        # A path that starts at a routing root is already anchored
        if 0 in indexes:
            return [0]

        # A root directly under "src/" is the conventional layout, then the outermost
        return sorted(
            indexes, key=lambda index: (segments[index - 1] not in SOURCE_PREFIXES, index)
        )

    def _resolve_from(self, segments: List[str], file_path: str) -> Optional[ResolvedPath]:
        """Resolve segments that start at a routing root."""
        candidates: List[Tuple[int, RoutingConvention, str, Tuple[str, ...]]] = []
        for convention in self.conventions:
            root = convention.root
            if tuple(segments[: len(root)]) != root:
                continue

            built = self._apply_convention(convention, segments[len(root):])
            if built is None:
                continue

            url_path, dynamic = built
            candidates.append((len(root), convention, url_path, dynamic))

        if not candidates:
            return None

        # Longer roots are more specific; equal scores are a genuine tie
        best_score = max(score for score, _, _, _ in candidates)
        best = [c for c in candidates if c[0] == best_score]
        _, convention, url_path, dynamic = best[0]

        if len(best) > 1:
            confidence = Confidence.LOW
            logger.debug(
                "Ambiguous routing for %s: %s",
                file_path,
                ", ".join(c[1].name for c in best),
            )
        elif dynamic:
            confidence = Confidence.MEDIUM
        else:
            confidence = Confidence.HIGH

        return ResolvedPath(
            url_path=url_path,
            confidence=confidence,
            convention=convention.name,
            dynamic_segments=dynamic,
        )

    def _apply_convention(
        self,
        convention: RoutingConvention,
        rest: List[str],
    ) -> Optional[Tuple[str, Tuple[str, ...]]]:
        """Build the URL path for segments below a convention's root."""
        if not rest:
            return None

        *dirs, filename = rest
        stem, extension = _split_extension(filename)
        if extension not in convention.extensions:
            return None

        prefix = convention.private_prefix
        if prefix and (
            stem.startswith(prefix) or any(d.startswith(prefix) for d in dirs)
        ):
            return None

        if dirs and dirs[0] in convention.excluded_dirs:
            return None

        if stem in convention.page_files:
            parts = dirs
        elif convention.page_files_only:
            # Colocated component or helper module, not a route
            return None
        else:
            parts = dirs + [stem]

        url_segments: List[str] = []
        dynamic: List[str] = []
        for segment in parts:
            if convention.hidden_segment and convention.hidden_segment.match(segment):
                continue
            if segment in convention.index_segments:
                continue

            match = convention.dynamic_segment.match(segment)
            if match:
                name = match.group("name")
                dynamic.append(name)
                url_segments.append(f":{name}*" if match.group("catch_all") else f":{name}")
            else:
                url_segments.append(segment)

        return "/" + "/".join(url_segments), tuple(dynamic)


def _split_extension(filename: str) -> Tuple[str, str]:
    """Split off the last extension ("+page.server.ts" -> "+page.server", ".ts")."""
    stem, dot, extension = filename.rpartition(".")
    if not dot or not stem:
        return filename, ""
    return stem, f".{extension.lower()}"


def _has_wildcard(url_path: str) -> bool:
    return any(segment.startswith(":") for segment in url_path.split("/"))


def _wildcard_pattern(url_path: str) -> Optional["re.Pattern[str]"]:
    """Compile a wildcard URL path into a regex, or None if it has no wildcard."""
    if not _has_wildcard(url_path):
        return None

    parts = []
    for segment in url_path.strip("/").split("/"):
        if segment.startswith(":") and segment.endswith("*"):
            parts.append(r"[^/]+(?:/[^/]+)*")
        elif segment.startswith(":"):
            parts.append(r"[^/]+")
        else:
            parts.append(re.escape(segment))

    return re.compile("^/" + "/".join(parts) + "$")


def _pick_original(normalized: str, originals: List[str]) -> str:
    """Prefer the already-normalized spelling among equivalent known paths."""
    if normalized in originals:
        return normalized
    return sorted(originals)[0]
