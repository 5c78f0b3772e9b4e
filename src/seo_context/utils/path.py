"""Path normalization utilities for project file paths and URL paths."""

from __future__ import annotations

import posixpath
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import List, Optional, Union


def is_absolute_path(path: str) -> bool:
    """Check whether a POSIX or Windows style path is absolute.

    Examples:
        >>> is_absolute_path("/home/dev/site/app/page.tsx")
        True
        >>> is_absolute_path("C:\\\\site\\\\app\\\\page.tsx")
        True
        >>> is_absolute_path("app/page.tsx")
        False
    """
    return path.startswith(("/", "\\")) or bool(PureWindowsPath(path).drive)


def split_path_segments(path: str) -> List[str]:
    """Split an OS-native path into forward-slash segments.

    Backslashes are treated as separators, a Windows drive is dropped and
    empty or "." segments are removed.

    Examples:
        >>> split_path_segments("src\\\\app\\\\blog\\\\page.tsx")
        ['src', 'app', 'blog', 'page.tsx']
        >>> split_path_segments("./pages/index.tsx")
        ['pages', 'index.tsx']
    """
    drive = PureWindowsPath(path).drive
    if drive:
        path = path[len(drive):]
    normalized = path.replace("\\", "/")
    return [segment for segment in normalized.split("/") if segment not in ("", ".")]


def make_relative_to_project(
    path: str,
    project_root: Union[str, Path],
) -> Optional[str]:
    """Convert an absolute file path to be relative to the project root.

    Works purely on the strings: the file does not need to exist on this machine.

    Args:
        path: Absolute path to convert
        project_root: Root directory of the project

    Returns:
        Forward-slash path relative to project_root, or None if the path
        is not within project_root

    Examples:
        >>> make_relative_to_project("/project/src/app/page.tsx", "/project")
        'src/app/page.tsx'
        >>> make_relative_to_project("/elsewhere/page.tsx", "/project") is None
        True
    """
    path_obj = PurePosixPath("/", *split_path_segments(path))
    root_obj = PurePosixPath("/", *split_path_segments(str(project_root)))

    try:
        return str(path_obj.relative_to(root_obj))
    except ValueError:
        # Path is outside project root
        return None


def normalize_url_path(url_path: str) -> str:
    """Normalize a URL path for comparison.

    Drops any query string or fragment, guarantees a leading slash, collapses
    repeated slashes and removes the trailing slash (except for the root).

    Examples:
        >>> normalize_url_path("/about/")
        '/about'
        >>> normalize_url_path("blog//post?ref=x")
        '/blog/post'
        >>> normalize_url_path("")
        '/'
    """
    path = url_path.split("#", 1)[0].split("?", 1)[0]
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return "/"
    return posixpath.join("/", *segments)
