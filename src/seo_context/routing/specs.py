"""Declarative routing conventions for the supported web frameworks.

This is DATA, not code. To support a new framework, just add its convention here.
"""

import re
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Pattern, Tuple

# "[slug]", "[...slug]", "[[...slug]]", "[[lang]]", "[id=integer]" (SvelteKit matchers)
BRACKET_DYNAMIC = re.compile(
    r"^\[{1,2}(?P<catch_all>\.\.\.)?(?P<name>[A-Za-z0-9_-]+)(?:=[A-Za-z0-9_]+)?\]{1,2}$"
)

# "(marketing)" route groups never reach the URL
ROUTE_GROUP = re.compile(r"^\(.+\)$")

# Route groups plus Next.js parallel route slots ("@modal")
ROUTE_GROUP_OR_SLOT = re.compile(r"^(\(.+\)|@.+)$")


@dataclass(frozen=True)
class RoutingConvention:
    """How one framework's file tree maps to URL segments.

    Attributes:
        name: Stable identifier (e.g., "next-app")
        display_name: Human readable framework name
        root: Directory segments the route tree lives under (after "src/" is stripped)
        extensions: File extensions the framework treats as routes
        page_files: File stems that define their directory's page and add no segment
        page_files_only: When True, any other file in the tree is a colocated module, not a route
        index_segments: Directory names that add no segment
        hidden_segment: Directory names matching this are dropped from the URL
        private_prefix: Files or directories starting with this are never routable
        excluded_dirs: First-level directories under the root that hold no pages
        dynamic_segment: Pattern recognising a dynamic parameter segment
    """

    name: str
    display_name: str
    root: Tuple[str, ...]
    extensions: FrozenSet[str]
    page_files: FrozenSet[str]
    page_files_only: bool = False
    index_segments: FrozenSet[str] = field(default_factory=frozenset)
    hidden_segment: Optional[Pattern[str]] = None
    private_prefix: Optional[str] = None
    excluded_dirs: FrozenSet[str] = field(default_factory=frozenset)
    dynamic_segment: Pattern[str] = BRACKET_DYNAMIC


# Order matters only for picking the URL when conventions tie (confidence is LOW then)
ROUTING_CONVENTIONS: List[RoutingConvention] = [
    RoutingConvention(
        name="next-app",
        display_name="Next.js (App Router)",
        root=("app",),
        extensions=frozenset({".tsx", ".ts", ".jsx", ".js", ".mdx"}),
        page_files=frozenset(
            {
                "page",
                "layout",
                "template",
                "route",
                "default",
                "loading",
                "error",
                "not-found",
            }
        ),
        page_files_only=True,
        hidden_segment=ROUTE_GROUP_OR_SLOT,
        private_prefix="_",
    ),
    RoutingConvention(
        name="next-pages",
        display_name="Next.js (Pages Router)",
        root=("pages",),
        extensions=frozenset({".tsx", ".ts", ".jsx", ".js", ".mdx"}),
        page_files=frozenset({"index"}),
        index_segments=frozenset({"index"}),
        private_prefix="_",  # _app, _document, _error
        excluded_dirs=frozenset({"api"}),
    ),
    RoutingConvention(
        name="astro",
        display_name="Astro",
        root=("pages",),
        extensions=frozenset({".astro", ".md", ".mdx", ".html"}),
        page_files=frozenset({"index"}),
        index_segments=frozenset({"index"}),
        private_prefix="_",
    ),
    RoutingConvention(
        name="nuxt",
        display_name="Nuxt",
        root=("pages",),
        extensions=frozenset({".vue"}),
        page_files=frozenset({"index"}),
        index_segments=frozenset({"index"}),
    ),
    RoutingConvention(
        name="sveltekit",
        display_name="SvelteKit",
        root=("routes",),
        extensions=frozenset({".svelte", ".ts", ".js"}),
        page_files=frozenset(
            {
                "+page",
                "+page.server",
                "+layout",
                "+layout.server",
                "+server",
                "+error",
            }
        ),
        page_files_only=True,
        hidden_segment=ROUTE_GROUP,
    ),
]


def get_routing_convention(name: str) -> RoutingConvention:
    """Get a routing convention by name.

    Args:
        name: Convention name (e.g., "next-app")

    Returns:
        The matching RoutingConvention

    Raises:
        ValueError: If no convention has that name
    """
    for convention in ROUTING_CONVENTIONS:
        if convention.name == name:
            return convention

    supported = ", ".join(c.name for c in ROUTING_CONVENTIONS)
    raise ValueError(
        f"Routing convention '{name}' not supported. "
        f"Supported conventions: {supported}"
    )
