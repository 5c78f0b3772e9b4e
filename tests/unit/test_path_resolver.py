"""Unit tests for file path to URL path resolution."""

import pytest

from seo_context.routing import Confidence, PathResolver
from seo_context.routing.specs import get_routing_convention


class TestResolveNextApp:
    """Next.js app router files."""

    def test_root_page(self, resolver):
        resolved = resolver.resolve("app/page.tsx")

        assert resolved is not None
        assert resolved.url_path == "/"
        assert resolved.confidence == Confidence.HIGH
        assert resolved.convention == "next-app"

    def test_static_page_under_src(self, resolver):
        resolved = resolver.resolve("src/app/about/page.tsx")

        assert resolved.url_path == "/about"
        assert resolved.confidence == Confidence.HIGH
        assert resolved.dynamic_segments == ()

    def test_dynamic_segment_is_medium_confidence(self, resolver):
        resolved = resolver.resolve("app/blog/[slug]/page.tsx")

        assert resolved.url_path == "/blog/:slug"
        assert resolved.confidence == Confidence.MEDIUM
        assert resolved.dynamic_segments == ("slug",)
        assert resolved.is_dynamic

    def test_catch_all_segment(self, resolver):
        resolved = resolver.resolve("app/docs/[...path]/page.mdx")

        assert resolved.url_path == "/docs/:path*"
        assert resolved.confidence == Confidence.MEDIUM

    def test_optional_catch_all_segment(self, resolver):
        resolved = resolver.resolve("app/shop/[[...filters]]/page.tsx")

        assert resolved.url_path == "/shop/:filters*"

    def test_route_groups_and_slots_are_hidden(self, resolver):
        assert resolver.resolve("app/(marketing)/pricing/page.tsx").url_path == "/pricing"
        assert resolver.resolve("app/@modal/login/page.tsx").url_path == "/login"

    def test_layout_maps_to_its_directory(self, resolver):
        assert resolver.resolve("app/blog/layout.tsx").url_path == "/blog"

    def test_colocated_component_is_not_a_route(self, resolver):
        assert resolver.resolve("app/blog/components/Card.tsx") is None

    def test_private_folder_is_not_a_route(self, resolver):
        assert resolver.resolve("app/_lib/page.tsx") is None

    def test_unsupported_extension(self, resolver):
        assert resolver.resolve("app/about/page.css") is None


class TestResolvePagesFrameworks:
    """Next.js pages router, Astro and Nuxt share the pages/ root."""

    def test_next_pages_index(self, resolver):
        resolved = resolver.resolve("pages/index.tsx")

        assert resolved.url_path == "/"
        assert resolved.confidence == Confidence.HIGH
        assert resolved.convention == "next-pages"

    def test_nested_index(self, resolver):
        assert resolver.resolve("pages/blog/index.jsx").url_path == "/blog"

    def test_next_pages_named_file(self, resolver):
        assert resolver.resolve("src/pages/contact.tsx").url_path == "/contact"

    def test_next_pages_api_routes_are_excluded(self, resolver):
        assert resolver.resolve("pages/api/hello.ts") is None

    def test_next_pages_special_files_are_excluded(self, resolver):
        assert resolver.resolve("pages/_app.tsx") is None
        assert resolver.resolve("pages/_document.tsx") is None

    def test_astro_page(self, resolver):
        resolved = resolver.resolve("src/pages/about.astro")

        assert resolved.url_path == "/about"
        assert resolved.convention == "astro"
        assert resolved.confidence == Confidence.HIGH

    def test_nuxt_dynamic_page(self, resolver):
        resolved = resolver.resolve("pages/users/[id].vue")

        assert resolved.url_path == "/users/:id"
        assert resolved.convention == "nuxt"
        assert resolved.confidence == Confidence.MEDIUM

    def test_tie_between_conventions_is_low_confidence(self, resolver):
        # .mdx under pages/ is valid for both Next.js pages router and Astro
        resolved = resolver.resolve("pages/blog.mdx")

        assert resolved.url_path == "/blog"
        assert resolved.confidence == Confidence.LOW


class TestResolveSvelteKit:
    def test_root_page(self, resolver):
        resolved = resolver.resolve("src/routes/+page.svelte")

        assert resolved.url_path == "/"
        assert resolved.convention == "sveltekit"

    def test_dynamic_page_with_server_load(self, resolver):
        resolved = resolver.resolve("src/routes/blog/[slug]/+page.server.ts")

        assert resolved.url_path == "/blog/:slug"
        assert resolved.confidence == Confidence.MEDIUM

    def test_param_matcher_is_stripped(self, resolver):
        assert resolver.resolve("src/routes/items/[id=integer]/+page.svelte").url_path == (
            "/items/:id"
        )

    def test_group_is_hidden(self, resolver):
        assert resolver.resolve("src/routes/(app)/settings/+page.svelte").url_path == (
            "/settings"
        )

    def test_non_route_module(self, resolver):
        assert resolver.resolve("src/routes/blog/utils.ts") is None


class TestResolveOutsideRoutes:
    def test_file_outside_any_routing_root(self, resolver):
        assert resolver.resolve("lib/utils.ts") is None
        assert resolver.resolve("components/Header.tsx") is None

    def test_build_output_and_dependencies(self, resolver):
        assert resolver.resolve(".next/server/app/page.js") is None
        assert resolver.resolve("node_modules/pkg/pages/index.js") is None

    def test_empty_path(self, resolver):
        assert resolver.resolve("") is None

    def test_non_string_raises(self, resolver):
        with pytest.raises(TypeError):
            resolver.resolve(None)  # type: ignore[arg-type]


class TestResolveAbsolutePaths:
    def test_inside_project_root(self):
        resolver = PathResolver(project_root="/home/dev/site")

        resolved = resolver.resolve("/home/dev/site/src/app/about/page.tsx")

        assert resolved.url_path == "/about"
        assert resolved.confidence == Confidence.HIGH

    def test_outside_project_root_anchors_on_route_tree(self):
        resolver = PathResolver(project_root="/home/dev/site")

        resolved = resolver.resolve("/home/dev/other/app/contact/page.tsx")

        assert resolved.url_path == "/contact"

    def test_routing_root_under_src_is_preferred(self, resolver):
        # "pages" appears twice; the one under src/ is the route tree
        resolved = resolver.resolve("/srv/pages/site/src/pages/pricing.astro")

        assert resolved.url_path == "/pricing"
        assert resolved.confidence == Confidence.LOW

    def test_route_segment_named_like_a_routing_root(self, resolver):
        resolved = resolver.resolve("/home/dev/site/app/docs/pages/page.tsx")

        assert resolved.url_path == "/docs/pages"
        assert resolved.convention == "next-app"
        assert resolved.confidence == Confidence.LOW

    def test_route_segment_named_like_a_routing_root_inside_project(self):
        resolver = PathResolver(project_root="/home/dev/site")

        resolved = resolver.resolve("/home/dev/site/app/docs/pages/page.tsx")

        assert resolved.url_path == "/docs/pages"
        assert resolved.confidence == Confidence.HIGH

    def test_windows_path(self, resolver):
        resolved = resolver.resolve("C:\\Users\\dev\\site\\app\\blog\\page.tsx")

        assert resolved.url_path == "/blog"

    def test_absolute_path_without_routing_root(self, resolver):
        assert resolver.resolve("/home/dev/site/lib/seo.ts") is None


class TestResolveMonorepoPaths:
    """Web app nested in a workspace package below the project root."""

    def test_absolute_path_inside_project_root(self):
        resolver = PathResolver(project_root="/repo")

        resolved = resolver.resolve("/repo/apps/web/src/app/blog/page.tsx")

        assert resolved.url_path == "/blog"
        assert resolved.confidence == Confidence.HIGH
        assert resolved.convention == "next-app"

    def test_same_result_with_and_without_project_root(self):
        file_path = "/repo/apps/web/src/app/blog/page.tsx"

        assert PathResolver(project_root="/repo").resolve(file_path) == (
            PathResolver().resolve(file_path)
        )

    def test_relative_path_with_package_prefix(self, resolver):
        resolved = resolver.resolve("apps/web/app/blog/page.tsx")

        assert resolved.url_path == "/blog"
        assert resolved.confidence == Confidence.HIGH

    def test_relative_sveltekit_package(self, resolver):
        resolved = resolver.resolve("packages/site/src/routes/about/+page.svelte")

        assert resolved.url_path == "/about"
        assert resolved.convention == "sveltekit"

    def test_dependencies_inside_package_are_skipped(self, resolver):
        assert resolver.resolve("apps/web/node_modules/pkg/pages/index.js") is None


class TestRestrictedConventions:
    def test_only_configured_conventions_apply(self):
        resolver = PathResolver(conventions=[get_routing_convention("astro")])

        assert resolver.resolve("pages/index.tsx") is None
        assert resolver.resolve("pages/blog.mdx").confidence == Confidence.HIGH

    def test_unknown_convention_name(self):
        with pytest.raises(ValueError, match="not supported"):
            get_routing_convention("gatsby")


class TestFindMatch:
    def test_dynamic_pattern_with_two_candidates_is_ambiguous(self, resolver):
        assert resolver.find_match("/blog/:slug", ["/blog/hello", "/blog/world"]) is None

    def test_dynamic_pattern_with_one_candidate(self, resolver):
        assert resolver.find_match("/blog/:slug", ["/blog/hello"]) == "/blog/hello"

    def test_trailing_slash_is_ignored(self, resolver):
        assert resolver.find_match("/about", ["/about", "/about/"]) == "/about"
        assert resolver.find_match("/about/", ["/about/"]) == "/about/"
        assert resolver.find_match("/about", ["/about/"]) == "/about/"

    def test_exact_match_beats_wildcard(self, resolver):
        known = ["/blog/hello", "/blog/world", "/blog/:slug"]
        assert resolver.find_match("/blog/hello", known) == "/blog/hello"

    def test_wildcard_only_matches_same_depth(self, resolver):
        known = ["/blog", "/blog/hello", "/blog/hello/comments"]
        assert resolver.find_match("/blog/:slug", known) == "/blog/hello"

    def test_catch_all_matches_several_segments(self, resolver):
        known = ["/docs/guides/setup", "/blog/post"]
        assert resolver.find_match("/docs/:path*", known) == "/docs/guides/setup"

    def test_catch_all_needs_at_least_one_segment(self, resolver):
        assert resolver.find_match("/docs/:path*", ["/docs"]) is None

    def test_root_path(self, resolver):
        assert resolver.find_match("/", ["/", "/about"]) == "/"

    def test_no_match(self, resolver):
        assert resolver.find_match("/pricing", ["/about", "/blog/post"]) is None
        assert resolver.find_match("/pricing", []) is None

    def test_query_string_in_known_path(self, resolver):
        assert resolver.find_match("/about", ["/about?ref=nav"]) == "/about?ref=nav"

    def test_non_string_known_path_raises(self, resolver):
        with pytest.raises(TypeError):
            resolver.find_match("/about", ["/about", 42])  # type: ignore[list-item]

    def test_resolve_then_match(self, resolver):
        resolved = resolver.resolve("app/blog/[slug]/page.tsx")

        match = resolver.find_match(resolved.url_path, ["/", "/blog/launch-notes"])

        assert match == "/blog/launch-notes"
